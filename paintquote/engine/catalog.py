"""
Catalog Index — lookup of an organization's priced items.

Items are matched by kind, surface type and unit. A surface-specific item
wins over a generic one (surface_type=None); between equal candidates the
first one in catalog order wins.
"""

import logging
from typing import Iterable, List, Optional

from ..errors import ValidationError
from ..schemas import CatalogItem, CatalogKind
from .display_config import LaborPricingModel

logger = logging.getLogger(__name__)

ALLOWANCE_UNIT = "allowance"

# Labor item unit expected for each pricing model.
# unit_sqft labor is priced in the billable unit's own unit (sqft, lf or ea).
LABOR_UNITS = {
    LaborPricingModel.FIXED: "lot",
    LaborPricingModel.HOURLY: "hr",
    LaborPricingModel.DAY_RATE: "day",
}


class CatalogIndex:

    def __init__(self, items: Iterable[CatalogItem]):
        self._items: List[CatalogItem] = list(items)
        self._by_id: dict[str, CatalogItem] = {}
        for item in self._items:
            if item.id in self._by_id:
                raise ValidationError(f"Duplicate catalog item id: {item.id}")
            self._by_id[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[CatalogItem]:
        return self._by_id.get(item_id)

    def find(self, kind: CatalogKind, surface_type: Optional[str] = None,
             unit: Optional[str] = None) -> Optional[CatalogItem]:
        """Best match for kind/surface/unit, or None."""
        generic = None
        for item in self._items:
            if item.kind != kind:
                continue
            if unit is not None and item.unit != unit:
                continue
            if surface_type is not None and item.surface_type == surface_type:
                return item
            if item.surface_type is None and generic is None:
                generic = item
        return generic

    def labor_item(self, surface_type: str, model: LaborPricingModel,
                   billable_unit: str) -> Optional[CatalogItem]:
        unit = LABOR_UNITS.get(model, billable_unit)
        return self.find(CatalogKind.LABOR, surface_type, unit)

    def paint_item(self, surface_type: str) -> Optional[CatalogItem]:
        return self.find(CatalogKind.PAINT, surface_type)

    def primer_item(self, surface_type: str) -> Optional[CatalogItem]:
        return self.find(CatalogKind.PRIMER, surface_type)

    def allowance_item(self) -> Optional[CatalogItem]:
        return self.find(CatalogKind.MATERIAL, unit=ALLOWANCE_UNIT)
