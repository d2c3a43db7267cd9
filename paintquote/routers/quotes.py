import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from ..config import settings
from ..database import get_db
from ..engine.assembler import QuoteAssembler
from ..engine.display_config import DEFAULT_DISPLAY_CONFIG, QuoteDisplayConfig
from ..errors import TemplateNotFoundError, ValidationError
from ..schemas import CatalogItem, LaborEstimate, OrgSettings, QuoteDocument, Room, SupplyRule
from ..template_store import TemplateStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


# --- Schemas ---
class AssembleRequest(BaseModel):
    org_id: str = settings.DEFAULT_ORG_ID
    rooms: List[Room]
    catalog: List[CatalogItem]
    template_id: Optional[str] = None
    config: Optional[dict] = None           # inline flat config, wins over template_id
    tax_rate: Optional[float] = Field(default=None, ge=0)
    labor_estimates: List[LaborEstimate] = []
    product_selections: Dict[str, str] = {}  # surface_type -> catalog item id
    supply_rules: List[SupplyRule] = []


def resolve_template(body: AssembleRequest, store: TemplateStore, default=None):
    """
    Template precedence: inline config > template_id > org default template
    > built-in default config. default is the org default template, if any.
    """
    if body.config is not None:
        return QuoteDisplayConfig.from_flat(body.config)
    if body.template_id:
        return store.get(body.template_id)
    if default is not None:
        return default
    return DEFAULT_DISPLAY_CONFIG


@router.post("/assemble", response_model=QuoteDocument)
def assemble(body: AssembleRequest, db: Session = Depends(get_db)):
    store = TemplateStore(db, body.org_id)
    try:
        default = store.default()
        template = resolve_template(body, store, default)
        org_settings = OrgSettings(
            org_id=body.org_id,
            tax_rate=body.tax_rate if body.tax_rate is not None else settings.DEFAULT_TAX_RATE,
            default_template_id=default.id if default else None,
        )
        return QuoteAssembler().assemble(
            body.rooms, body.catalog, template, org_settings,
            labor_estimates=body.labor_estimates,
            product_selections=body.product_selections,
            default_coverage=settings.DEFAULT_COVERAGE_SQFT_PER_GAL,
            supply_rules=body.supply_rules,
        )
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")
    except ValidationError as e:
        logger.warning("Quote assembly rejected for org %s: %s", body.org_id, e)
        raise HTTPException(status_code=422, detail=str(e))
