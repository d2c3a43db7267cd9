"""
Shared test fixtures — SQLite test database, test client, sample rooms and catalog.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point settings at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["DEFAULT_TAX_RATE"] = "0.0"

from paintquote.database import Base, get_db
from paintquote.main import app
from paintquote.schemas import CatalogItem, OrgSettings, Room, Surface


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# --- Sample data builders ---

@pytest.fixture
def bedroom():
    """Single bedroom — 400 sq ft of wall, 2 coats."""
    return Room(
        id="r-bed",
        name="Bedroom",
        surfaces=[Surface(id="s-bed-wall", surface_type="wall", quantity=400, coats=2)],
    )


@pytest.fixture
def house():
    """Three rooms over two floors plus one untagged room."""
    return [
        Room(id="r-living", name="Living Room", floor="Main", phase="Phase 1", surfaces=[
            Surface(id="s1", surface_type="wall", quantity=300, coats=2),
            Surface(id="s2", surface_type="ceiling", quantity=180, coats=1),
            Surface(id="s3", surface_type="trim", quantity=60, coats=2),
        ]),
        Room(id="r-kitchen", name="Kitchen", floor="Main", phase="Phase 2", surfaces=[
            Surface(id="s4", surface_type="wall", quantity=200, coats=2),
            Surface(id="s5", surface_type="door", quantity=2, coats=2),
        ]),
        Room(id="r-master", name="Master Bedroom", floor="Upper", surfaces=[
            Surface(id="s6", surface_type="wall", quantity=350, coats=2, primer=True),
            Surface(id="s7", surface_type="ceiling", quantity=150, coats=2),
        ]),
        Room(id="r-garage", name="Garage", surfaces=[
            Surface(id="s8", surface_type="wall", quantity=250, coats=1),
        ]),
    ]


@pytest.fixture
def catalog():
    """Catalog covering every labor model and material strategy."""
    return [
        # unit_sqft labor
        CatalogItem(id="lab-wall", name="Wall labor", kind="labor", unit="sqft",
                    unit_rate=1.50, surface_type="wall"),
        CatalogItem(id="lab-ceiling", name="Ceiling labor", kind="labor", unit="sqft",
                    unit_rate=1.00, surface_type="ceiling"),
        CatalogItem(id="lab-trim", name="Trim labor", kind="labor", unit="lf",
                    unit_rate=2.00, surface_type="trim"),
        CatalogItem(id="lab-door", name="Door labor", kind="labor", unit="ea",
                    unit_rate=45.00, surface_type="door"),
        # fixed / hourly / day rate labor, generic
        CatalogItem(id="lab-lot", name="Lump sum", kind="labor", unit="lot", unit_rate=500.00),
        CatalogItem(id="lab-hr", name="Painter hour", kind="labor", unit="hr", unit_rate=60.00),
        CatalogItem(id="lab-day", name="Crew day", kind="labor", unit="day", unit_rate=450.00),
        # materials
        CatalogItem(id="mat-allow", name="Material Allowance", kind="material",
                    unit="allowance", unit_rate=150.00),
        CatalogItem(id="paint-wall", name="Regal Select Eggshell", kind="paint", unit="gal",
                    unit_rate=45.00, surface_type="wall", coverage_rate=350),
        CatalogItem(id="paint-generic", name="Contractor Flat", kind="paint", unit="gal",
                    unit_rate=30.00),
        CatalogItem(id="primer", name="Fresh Start Primer", kind="primer", unit="sqft",
                    unit_rate=0.50),
        CatalogItem(id="prod-aura", name="Aura Matte", kind="paint", unit="sqft", unit_rate=0.40),
    ]


@pytest.fixture
def org():
    return OrgSettings(org_id="org-1", tax_rate=0.08)
