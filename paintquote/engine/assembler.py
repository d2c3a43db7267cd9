"""
Stage 4 — Quote Assembler.

Runs the pipeline and computes totals:

    rooms ──aggregate──► billable units ──price──► priced lines ──group──► sections
                                                                              │
                                       subtotal / tax / total ◄───────────────┘

Input: rooms, catalog, template (or bare display config), OrgSettings,
       optional labor estimates, product selections and supply rules
Output: QuoteDocument (frozen)

Tax is charged only when the template shows the tax line; with it hidden the
total equals the subtotal.

Missing rates never abort assembly: the affected line is left out and a
QuoteWarning is attached to the document and to its section. Every other
error propagates unchanged.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..errors import MissingRateError
from ..schemas import (
    CatalogItem, LaborEstimate, OrgSettings, PricedLine, QuoteDocument,
    QuoteTemplate, QuoteWarning, Room, SupplyRule,
)
from .aggregator import aggregate_rooms
from .catalog import CatalogIndex
from .display_config import MaterialStrategy, QuoteDisplayConfig
from .grouping import GroupingEngine
from .pricing_resolver import PricingResolver, to_cents
from .supplies import price_supplies

logger = logging.getLogger(__name__)

# Strategies that bill itemized paint also bill project supplies
SUPPLY_STRATEGIES = (MaterialStrategy.ITEMIZED_VOLUME, MaterialStrategy.SPECIFIC_PRODUCT)


class QuoteAssembler:
    """
    Top-level orchestrator.
    Holds no state between calls; each assemble() works on its own inputs.
    """

    def assemble(self, rooms: Sequence[Room],
                 catalog: Union[CatalogIndex, Iterable[CatalogItem]],
                 template: Union[QuoteTemplate, QuoteDisplayConfig],
                 org_settings: Optional[OrgSettings] = None,
                 labor_estimates: Optional[Iterable[LaborEstimate]] = None,
                 product_selections: Optional[dict] = None,
                 default_coverage: Optional[Decimal] = None,
                 supply_rules: Optional[Sequence[SupplyRule]] = None) -> QuoteDocument:
        org_settings = org_settings or OrgSettings()
        if isinstance(template, QuoteTemplate):
            config, template_id = template.config, template.id
        else:
            config, template_id = template, None
        index = catalog if isinstance(catalog, CatalogIndex) else CatalogIndex(catalog)

        # Stage 1: ValidationError propagates before anything is priced
        units = aggregate_rooms(rooms)

        # Stage 2
        resolver = PricingResolver(index, config, labor_estimates, product_selections,
                                   default_coverage=default_coverage)
        grouper = GroupingEngine(config, rooms)
        lines: List[PricedLine] = []
        warnings_by_section: Dict[str, List[QuoteWarning]] = {}

        for unit in units:
            priced, missing = resolver.price_unit(unit)
            lines.extend(priced)
            section = grouper.section_key(unit.room_id, unit.surface_type)
            for error in missing:
                warnings_by_section.setdefault(section, []).append(_warning(error, section))

        if config.material_strategy == MaterialStrategy.ALLOWANCE:
            lines.extend(self._allowances(resolver, grouper, units, warnings_by_section))
        elif config.material_strategy in SUPPLY_STRATEGIES:
            first = len(units) + len(grouper.plan_sections(units))
            lines.extend(price_supplies(supply_rules, units, resolver.default_coverage, first))

        # Stage 3
        sections = grouper.group(lines, units, warnings_by_section)

        # Totals: sum of already rounded line amounts
        subtotal = sum(
            (Decimal(str(item.amount)) for s in sections for item in s.line_items),
            Decimal("0"),
        )
        tax_rate = Decimal(str(org_settings.tax_rate))
        if config.toggles.show_tax_line:
            tax = to_cents(subtotal * tax_rate)
        else:
            tax = Decimal("0")
        total = subtotal + tax

        warnings = [w for s in sections for w in s.warnings]
        document = QuoteDocument(
            template_id=template_id,
            sections=sections,
            subtotal=float(subtotal),
            tax_rate=float(tax_rate),
            tax=float(tax),
            total=float(total),
            show_tax_line=config.toggles.show_tax_line,
            warnings=warnings,
        )
        logger.info(
            "Assembled quote (template=%s): %d sections, %d lines, subtotal=%.2f, %d warnings",
            template_id, len(sections), len(document.line_items), document.subtotal, len(warnings),
            extra={"template_id": template_id},
        )
        return document

    def _allowances(self, resolver: PricingResolver, grouper: GroupingEngine,
                    units: Sequence, warnings_by_section: Dict[str, List[QuoteWarning]]) -> List[PricedLine]:
        """One allowance line per section, placed after every task line."""
        lines = []
        for offset, (key, _title) in enumerate(grouper.plan_sections(units)):
            try:
                lines.append(resolver.price_allowance(key, task_index=len(units) + offset))
            except MissingRateError as e:
                warnings_by_section.setdefault(key, []).append(_warning(e, key))
        return lines


def _warning(error: MissingRateError, section: str) -> QuoteWarning:
    return QuoteWarning(
        message=str(error),
        section=section,
        room_id=error.room_id,
        surface_type=error.surface_type,
        kind=error.kind,
    )


def assemble_quote(rooms: Sequence[Room],
                   catalog: Union[CatalogIndex, Iterable[CatalogItem]],
                   template: Union[QuoteTemplate, QuoteDisplayConfig],
                   org_settings: Optional[OrgSettings] = None,
                   labor_estimates: Optional[Iterable[LaborEstimate]] = None,
                   product_selections: Optional[dict] = None,
                   supply_rules: Optional[Sequence[SupplyRule]] = None) -> QuoteDocument:
    """Primary engine entry point. Pure: same inputs, same document."""
    return QuoteAssembler().assemble(
        rooms, catalog, template, org_settings,
        labor_estimates=labor_estimates,
        product_selections=product_selections,
        supply_rules=supply_rules,
    )
