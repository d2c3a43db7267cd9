"""
Supply rules — project-level consumables (brushes, rollers, tape, drop cloths).

Rules are evaluated once per quote against totals measured over every
billable unit:

    wall_sqft        wall area
    floor_sqft       ceiling area, standing in for floor area
    perimeter_lf     trim length
    paint_gallons    ceil(coated area / coverage) over painted area surfaces
    primer_gallons   ceil(primed area / coverage)

Supply lines are material lines keyed to the project setup section, so the
grouping stage folds them into the "Project Materials" package under
combined_setup and lists them in that section otherwise.
"""

import logging
import math
from decimal import Decimal
from typing import List, Optional, Sequence

from pydantic import BaseModel

from ..schemas import (
    BillableUnit, LineKind, PricedLine, SupplyCondition, SupplyQuantityType, SupplyRule,
)
from .grouping import SETUP_KEY
from .surfaces import is_labor_only

logger = logging.getLogger(__name__)


DEFAULT_SUPPLY_RULES = [
    SupplyRule(id="default-brush", name="2-inch Angled Sash Brush", unit_price=12.99,
               quantity_type="fixed", quantity_base=2),
    SupplyRule(id="default-roller-frame", name="9-inch Roller Frame", unit_price=8.50,
               quantity_type="fixed", quantity_base=1),
    SupplyRule(id="default-roller-cover", name='9-inch Roller Covers (3/8" nap)', unit_price=5.99,
               quantity_type="per_gallon_total", quantity_base=2),
    SupplyRule(id="default-tray", name="Paint Tray and Liners", unit_price=7.50,
               quantity_type="fixed", quantity_base=1),
    SupplyRule(id="default-spackle", name="Spackling Paste & Putty Knife", category="Prep",
               unit_price=6.99, quantity_type="fixed", quantity_base=1),
    SupplyRule(id="default-primer", name="PVA Primer Sealer", category="Prep", unit="gal",
               unit_price=18.00, condition="if_primer",
               quantity_type="per_gallon_primer", quantity_base=5),
    SupplyRule(id="default-drop-cloth", name="Canvas Drop Cloth (9x12)", category="Prep",
               unit_price=22.00, condition="if_floor_area",
               quantity_type="per_sqft_floor", quantity_base=200),
    SupplyRule(id="default-tape", name="Painter's Tape (1.88\")", category="Prep", unit="roll",
               unit_price=8.99, condition="if_floor_area",
               quantity_type="per_linear_ft_perimeter", quantity_base=180),
]


class ProjectMeasures(BaseModel):
    wall_sqft: Decimal
    floor_sqft: Decimal
    perimeter_lf: Decimal
    paint_gallons: Decimal
    primer_gallons: Decimal
    has_ceiling: bool
    has_trim: bool
    has_primer: bool

    class Config:
        frozen = True

    @classmethod
    def from_units(cls, units: Sequence[BillableUnit], coverage: Decimal) -> "ProjectMeasures":
        def total(surface_type):
            return sum((u.quantity for u in units if u.surface_type == surface_type), Decimal("0"))

        coated_area = sum(
            (u.coated_quantity for u in units
             if u.unit == "sqft" and not is_labor_only(u.surface_type)),
            Decimal("0"),
        )
        primed = sum((u.primed_quantity for u in units), Decimal("0"))
        return cls(
            wall_sqft=total("wall"),
            floor_sqft=total("ceiling"),
            perimeter_lf=total("trim"),
            paint_gallons=Decimal(math.ceil(coated_area / coverage)),
            primer_gallons=Decimal(math.ceil(primed / coverage)),
            has_ceiling=any(u.surface_type == "ceiling" for u in units),
            has_trim=any(u.surface_type == "trim" for u in units),
            has_primer=primed > 0,
        )

    def applies(self, condition: SupplyCondition) -> bool:
        if condition == SupplyCondition.IF_CEILING:
            return self.has_ceiling
        if condition == SupplyCondition.IF_TRIM:
            return self.has_trim
        if condition == SupplyCondition.IF_PRIMER:
            return self.has_primer
        if condition == SupplyCondition.IF_FLOOR_AREA:
            return self.floor_sqft > 0
        return True

    def basis(self, quantity_type: SupplyQuantityType) -> Decimal:
        return {
            SupplyQuantityType.PER_SQFT_WALL: self.wall_sqft,
            SupplyQuantityType.PER_SQFT_FLOOR: self.floor_sqft,
            SupplyQuantityType.PER_GALLON_TOTAL: self.paint_gallons,
            SupplyQuantityType.PER_GALLON_PRIMER: self.primer_gallons,
            SupplyQuantityType.PER_LINEAR_FT_PERIMETER: self.perimeter_lf,
        }[quantity_type]


def supply_quantity(rule: SupplyRule, measures: ProjectMeasures) -> Decimal:
    """Items needed for one rule; 0 when its condition does not hold."""
    if not measures.applies(rule.condition):
        return Decimal("0")
    base = Decimal(str(rule.quantity_base))
    if rule.quantity_type == SupplyQuantityType.FIXED:
        return base
    return Decimal(math.ceil(measures.basis(rule.quantity_type) / base))


def price_supplies(rules: Optional[Sequence[SupplyRule]], units: Sequence[BillableUnit],
                   coverage: Decimal, first_task_index: int) -> List[PricedLine]:
    """One setup-section material line per rule that yields a positive quantity."""
    if not rules or not units:
        return []
    measures = ProjectMeasures.from_units(units, coverage)
    lines = []
    for rule in rules:
        quantity = supply_quantity(rule, measures)
        if quantity <= 0:
            continue
        rate = Decimal(str(rule.unit_price))
        lines.append(PricedLine(
            task_index=first_task_index + len(lines),
            kind=LineKind.MATERIAL,
            description=rule.name,
            amount=quantity * rate,
            quantity=quantity,
            unit=rule.unit,
            rate=rate,
            section_key=SETUP_KEY,
        ))
    logger.debug("Priced %d of %d supply rules", len(lines), len(rules))
    return lines
