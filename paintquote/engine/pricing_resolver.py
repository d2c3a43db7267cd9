"""
Stage 2 — Pricing Resolver.

BillableUnit + catalog → PricedLines, according to the template's labor
pricing model and material strategy.

    unit_sqft        labor = quantity × coats × rate
    fixed            labor = catalog fixed rate (quantity kept for display)
    hourly/day_rate  labor = estimated hours (days) × rate. Durations come
                     from the estimating-defaults collaborator, never from area.

    inclusive        no material line; the labor rate already includes materials
    allowance        one flat material line per section (see price_allowance)
    itemized_volume  gallons drawn from a per-product pool (see PaintPool) × paint rate
    specific_product quantity × selected product's unit rate

All math is Decimal. Amounts stay unrounded here; they are rounded to cents
only when the grouping stage turns them into LineItems.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import MissingRateError
from ..schemas import BillableUnit, CatalogItem, LaborEstimate, LineKind, PricedLine
from .catalog import CatalogIndex
from .display_config import LaborPricingModel, MaterialStrategy, QuoteDisplayConfig
from .surfaces import display_name, is_labor_only, task_name

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
GALLON_PRECISION = Decimal("0.000001")


def to_cents(value: Decimal) -> Decimal:
    """Round a money amount to cents. The only rounding step in the engine."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class PaintPool:
    """
    Paint bought per product across the tasks of one quote.

    Each task adds the gallons it needs to its product's running total; the
    pool buys only the whole gallons that total has grown past. A task whose
    paint fits in gallons already bought gets 0 new gallons.
    """

    def __init__(self):
        self._needed: Dict[str, Decimal] = {}
        self._bought: Dict[str, Decimal] = {}

    def allocate(self, product_id: str, gallons_needed: Decimal) -> Decimal:
        """Register usage; returns the whole gallons to buy for this task."""
        needed = self._needed.get(product_id, Decimal("0")) + gallons_needed
        bought = self._bought.get(product_id, Decimal("0"))
        # quantized so repeating fractions (e.g. thirds) do not tip over a whole gallon
        total = Decimal(math.ceil(needed.quantize(GALLON_PRECISION)))
        new = max(total - bought, Decimal("0"))
        self._needed[product_id] = needed
        self._bought[product_id] = bought + new
        return new

    def gallons_bought(self, product_id: Optional[str] = None) -> Decimal:
        if product_id is not None:
            return self._bought.get(product_id, Decimal("0"))
        return sum(self._bought.values(), Decimal("0"))


class PricingResolver:
    """
    Stage 2 of the pipeline.
    Prices one billable unit at a time. The only state is the paint pool, so
    one resolver serves exactly one quote and units must be priced in task order.
    """

    DEFAULT_COVERAGE_SQFT_PER_GAL = Decimal("350")
    ALLOWANCE_DESCRIPTION = "Material Allowance"
    SHARED_SUFFIX = " (Shared with previous tasks)"

    def __init__(self, catalog: CatalogIndex, config: QuoteDisplayConfig,
                 labor_estimates: Optional[Iterable[LaborEstimate]] = None,
                 product_selections: Optional[dict] = None,
                 default_coverage: Optional[Decimal] = None):
        self.catalog = catalog
        self.config = config
        self.default_coverage = _dec(default_coverage or self.DEFAULT_COVERAGE_SQFT_PER_GAL)
        self._estimates = {
            (e.room_id, e.surface_type): e for e in (labor_estimates or [])
        }
        # surface_type -> catalog item id chosen by the user
        self._selections = dict(product_selections or {})
        self.paint_pool = PaintPool()

    # --- Whole unit ---

    def price_unit(self, unit: BillableUnit) -> Tuple[List[PricedLine], List[MissingRateError]]:
        """
        Price labor, prep and material for one unit.
        Each line fails independently: a missing material rate does not drop labor.
        Returns (lines, missing) — missing holds one MissingRateError per skipped line.
        """
        lines: List[PricedLine] = []
        missing: List[MissingRateError] = []
        for price in (self.price_prep, self.price_labor, self.price_material):
            try:
                line = price(unit)
            except MissingRateError as e:
                logger.info("Skipping %s line for %s/%s: %s",
                            e.kind, unit.room_id, unit.surface_type, e)
                missing.append(e)
                continue
            if line is not None:
                lines.append(line)
        return lines, missing

    # --- Labor ---

    def price_labor(self, unit: BillableUnit) -> Optional[PricedLine]:
        model = self.config.labor_pricing_model
        if model == LaborPricingModel.UNIT_SQFT and unit.coated_quantity <= 0:
            # primer only, no finish coats
            return None
        item = self.catalog.labor_item(unit.surface_type, model, unit.unit)
        if item is None:
            raise self._missing(unit, "labor",
                                f"No {model.value} labor rate in catalog for {display_name(unit.surface_type)}")
        rate = _dec(item.unit_rate)

        if model == LaborPricingModel.UNIT_SQFT:
            amount = self._apply_minimum(unit.coated_quantity * rate, item)
            quantity, qty_unit = unit.quantity, unit.unit
            shown_rate = amount / quantity if quantity else rate
        elif model == LaborPricingModel.FIXED:
            amount = self._apply_minimum(rate, item)
            quantity, qty_unit = unit.quantity, unit.unit
            shown_rate = None
        else:
            duration, qty_unit = self._duration(unit, model)
            amount = self._apply_minimum(duration * rate, item)
            quantity = duration
            shown_rate = rate

        return PricedLine(
            task_index=unit.task_index,
            kind=LineKind.LABOR,
            description=self._task_description(unit),
            amount=amount,
            room_id=unit.room_id,
            surface_type=unit.surface_type,
            quantity=quantity,
            unit=qty_unit,
            rate=shown_rate,
            coats=unit.coats,
        )

    def _duration(self, unit: BillableUnit, model: LaborPricingModel) -> Tuple[Decimal, str]:
        estimate = self._estimates.get((unit.room_id, unit.surface_type))
        if model == LaborPricingModel.HOURLY:
            value, label = (estimate.hours if estimate else None), "hr"
        else:
            value, label = (estimate.days if estimate else None), "day"
        if value is None:
            noun = "hours" if label == "hr" else "days"
            raise self._missing(unit, "labor",
                                f"No estimated {noun} supplied for {display_name(unit.surface_type)}")
        return _dec(value), label

    # --- Prep (primer) ---

    def price_prep(self, unit: BillableUnit) -> Optional[PricedLine]:
        if unit.primed_quantity <= 0:
            return None
        item = self.catalog.primer_item(unit.surface_type)
        if item is None:
            raise self._missing(unit, "prep",
                                f"No primer rate in catalog for {display_name(unit.surface_type)}")
        rate = _dec(item.unit_rate)
        amount = self._apply_minimum(unit.primed_quantity * rate, item)
        return PricedLine(
            task_index=unit.task_index,
            kind=LineKind.PREP,
            description=f"Prime {display_name(unit.surface_type)}",
            amount=amount,
            room_id=unit.room_id,
            surface_type=unit.surface_type,
            quantity=unit.primed_quantity,
            unit=unit.unit,
            rate=rate,
        )

    # --- Materials ---

    def price_material(self, unit: BillableUnit) -> Optional[PricedLine]:
        """Per-task material line. None for inclusive and allowance strategies."""
        if is_labor_only(unit.surface_type) or unit.coated_quantity <= 0:
            return None
        strategy = self.config.material_strategy
        if strategy == MaterialStrategy.ITEMIZED_VOLUME:
            return self._price_volume(unit)
        if strategy == MaterialStrategy.SPECIFIC_PRODUCT:
            return self._price_product(unit)
        return None

    def _price_volume(self, unit: BillableUnit) -> PricedLine:
        item = self.catalog.paint_item(unit.surface_type)
        if item is None:
            raise self._missing(unit, "material",
                                f"No paint product in catalog for {display_name(unit.surface_type)}")
        coverage = _dec(item.coverage_rate) if item.coverage_rate else self.default_coverage
        # Paint is bought in whole containers, shared with earlier tasks on the same product
        gallons = self.paint_pool.allocate(item.id, unit.coated_quantity / coverage)
        rate = _dec(item.unit_rate)
        description = f"Paint & Supplies: {display_name(unit.surface_type)}"
        if gallons > 0:
            amount = self._apply_minimum(gallons * rate, item)
        else:
            amount = Decimal("0")
            description += self.SHARED_SUFFIX
        return PricedLine(
            task_index=unit.task_index,
            kind=LineKind.MATERIAL,
            description=description,
            amount=amount,
            room_id=unit.room_id,
            surface_type=unit.surface_type,
            quantity=gallons,
            unit="gal",
            rate=rate,
        )

    def _price_product(self, unit: BillableUnit) -> PricedLine:
        product_id = self._selections.get(unit.surface_type)
        product = self.catalog.get(product_id) if product_id else None
        if product is None:
            detail = f" (unknown product id {product_id})" if product_id else ""
            raise self._missing(unit, "material",
                                f"No product selected for {display_name(unit.surface_type)}{detail}")
        rate = _dec(product.unit_rate)
        return PricedLine(
            task_index=unit.task_index,
            kind=LineKind.MATERIAL,
            description=f"{product.name} ({display_name(unit.surface_type)})",
            amount=self._apply_minimum(unit.quantity * rate, product),
            room_id=unit.room_id,
            surface_type=unit.surface_type,
            quantity=unit.quantity,
            unit=unit.unit,
            rate=rate,
        )

    def price_allowance(self, section_key: str, task_index: int) -> PricedLine:
        """Flat material allowance for one section, independent of measured quantity."""
        item = self.catalog.allowance_item()
        if item is None:
            raise MissingRateError("No material allowance in catalog", kind="material")
        amount = self._apply_minimum(_dec(item.unit_rate), item)
        return PricedLine(
            task_index=task_index,
            kind=LineKind.MATERIAL,
            description=item.name or self.ALLOWANCE_DESCRIPTION,
            amount=amount,
            quantity=Decimal("1"),
            unit="lot",
            rate=amount,
            section_key=section_key,
        )

    # --- Helpers ---

    def _task_description(self, unit: BillableUnit) -> str:
        desc = task_name(unit.surface_type)
        if self.config.toggles.show_coat_counts and unit.coats > 0:
            desc += f" - {unit.coats} Coats"
        return desc

    def _apply_minimum(self, amount: Decimal, item: CatalogItem) -> Decimal:
        if item.minimum_charge is not None:
            return max(amount, _dec(item.minimum_charge))
        return amount

    def _missing(self, unit: BillableUnit, kind: str, message: str) -> MissingRateError:
        return MissingRateError(message, room_id=unit.room_id,
                                surface_type=unit.surface_type, kind=kind)
