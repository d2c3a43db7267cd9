from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
import enum

from .engine.display_config import QuoteDisplayConfig


# --- Inputs (supplied by the measurement, catalog and estimating collaborators) ---

class Surface(BaseModel):
    id: str
    surface_type: str
    quantity: float = 0.0          # canonical unit for the surface type
    coats: int = Field(default=2, ge=0)
    primer: bool = False           # explicit primer coat requested

    class Config:
        frozen = True


class Room(BaseModel):
    id: str
    name: str
    floor: Optional[str] = None
    phase: Optional[str] = None
    surfaces: List[Surface] = []

    class Config:
        frozen = True


class CatalogKind(str, enum.Enum):
    PAINT = "paint"
    PRIMER = "primer"
    MATERIAL = "material"
    LABOR = "labor"


class CatalogItem(BaseModel):
    id: str
    name: str
    kind: CatalogKind
    unit: str                                  # sqft | lf | ea | lot | hr | day | gal | allowance
    unit_rate: float = Field(ge=0)
    surface_type: Optional[str] = None         # None = applies to every surface type
    minimum_charge: Optional[float] = Field(default=None, ge=0)
    coverage_rate: Optional[float] = Field(default=None, gt=0)   # sq ft per gallon

    class Config:
        frozen = True


class LaborEstimate(BaseModel):
    """Estimated duration for one (room, surface type) task."""
    room_id: str
    surface_type: str
    hours: Optional[float] = Field(default=None, ge=0)
    days: Optional[float] = Field(default=None, ge=0)

    class Config:
        frozen = True


class SupplyCondition(str, enum.Enum):
    ALWAYS = "always"
    IF_CEILING = "if_ceiling"
    IF_TRIM = "if_trim"
    IF_PRIMER = "if_primer"
    IF_FLOOR_AREA = "if_floor_area"


class SupplyQuantityType(str, enum.Enum):
    FIXED = "fixed"
    PER_SQFT_WALL = "per_sqft_wall"
    PER_SQFT_FLOOR = "per_sqft_floor"
    PER_GALLON_TOTAL = "per_gallon_total"
    PER_GALLON_PRIMER = "per_gallon_primer"
    PER_LINEAR_FT_PERIMETER = "per_linear_ft_perimeter"


class SupplyRule(BaseModel):
    """
    Project consumable added to quotes that itemize paint.
    fixed: quantity_base items. Otherwise one item per quantity_base units
    of the measured basis, rounded up.
    """
    id: str
    name: str
    category: str = "Application"
    unit: str = "each"
    unit_price: float = Field(ge=0)
    condition: SupplyCondition = SupplyCondition.ALWAYS
    quantity_type: SupplyQuantityType = SupplyQuantityType.FIXED
    quantity_base: float = Field(default=1, gt=0)

    class Config:
        frozen = True


class OrgSettings(BaseModel):
    """Organization-level values threaded into every assembly call."""
    org_id: str = "default"
    tax_rate: float = Field(default=0.0, ge=0)     # fraction, 0.0825 = 8.25%
    default_template_id: Optional[str] = None

    class Config:
        frozen = True


# --- Intermediate pipeline values ---

class BillableUnit(BaseModel):
    room_id: str
    surface_type: str
    quantity: Decimal
    unit: str
    coats: int
    coated_quantity: Decimal       # sum of quantity × coats over merged surfaces
    primed_quantity: Decimal = Decimal("0")
    task_index: int = 0

    class Config:
        frozen = True


class LineKind(str, enum.Enum):
    LABOR = "labor"
    MATERIAL = "material"
    PREP = "prep"
    BUNDLED = "bundled"


class PricedLine(BaseModel):
    """Resolver output. Amount is unrounded until it becomes a LineItem."""
    task_index: int
    kind: LineKind
    description: str
    amount: Decimal
    room_id: Optional[str] = None
    surface_type: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None
    rate: Optional[Decimal] = None
    coats: int = 0
    section_key: Optional[str] = None     # set for per-section lines (allowance, supplies)

    class Config:
        frozen = True


# --- Output ---

class LineItem(BaseModel):
    description: str
    amount: float
    section: str
    kind: LineKind
    quantity: Optional[float] = None
    unit: Optional[str] = None
    rate: Optional[float] = None
    room_id: Optional[str] = None
    surface_type: Optional[str] = None

    class Config:
        frozen = True


class QuoteWarning(BaseModel):
    message: str
    section: Optional[str] = None
    room_id: Optional[str] = None
    surface_type: Optional[str] = None
    kind: Optional[str] = None

    class Config:
        frozen = True


class Section(BaseModel):
    key: str
    title: str
    line_items: List[LineItem] = []
    subtotal: float = 0.0
    warnings: List[QuoteWarning] = []

    class Config:
        frozen = True


class QuoteDocument(BaseModel):
    template_id: Optional[str] = None
    sections: List[Section] = []
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    show_tax_line: bool = True
    warnings: List[QuoteWarning] = []

    class Config:
        frozen = True

    @property
    def line_items(self) -> List[LineItem]:
        return [item for section in self.sections for item in section.line_items]


# --- Templates ---

class QuoteTemplate(BaseModel):
    id: str
    org_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    config: QuoteDisplayConfig = QuoteDisplayConfig()

    class Config:
        frozen = True


class TemplateOut(BaseModel):
    """API shape of a template: display config in its flat storage form."""
    id: str
    org_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    config: dict

    @classmethod
    def from_template(cls, template: QuoteTemplate) -> "TemplateOut":
        return cls(
            id=template.id,
            org_id=template.org_id,
            name=template.name,
            description=template.description,
            is_default=template.is_default,
            config=template.config.to_flat(),
        )
