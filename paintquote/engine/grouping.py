"""
Stage 3 — Organization & Grouping Engine.

Priced lines → ordered Sections, following the template's organization axis
and its composition / material grouping settings.

Section order:
    room      room input order (creation order)
    surface   canonical order: walls, ceilings, trim, doors, other
    floor     tag first-seen order, untagged rooms in a trailing "Unassigned"
    phase     same as floor, on the phase tag

Inside a section lines are ordered by task index (prep, labor, material per
task), then per-section lines such as the material allowance. Project-level
supply lines go to a leading "Project Materials" section. Ordering never
depends on dict iteration of intermediate maps.

Pure function of its inputs. Amounts are rounded to cents here, once, as
each LineItem is emitted.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from ..schemas import BillableUnit, LineItem, LineKind, PricedLine, QuoteWarning, Room, Section
from .display_config import MaterialGrouping, Organization, QuoteDisplayConfig
from .pricing_resolver import to_cents
from .surfaces import display_name, surface_rank

logger = logging.getLogger(__name__)

UNASSIGNED_KEY = "unassigned"
UNASSIGNED_TITLE = "Unassigned"
SETUP_KEY = "setup"
SETUP_TITLE = "Project Materials"
SETUP_DESCRIPTION = "Project Materials & Supplies Package"

# Order of lines belonging to the same task
KIND_ORDER = {LineKind.PREP: 0, LineKind.LABOR: 1, LineKind.BUNDLED: 1, LineKind.MATERIAL: 2}


class GroupingEngine:

    def __init__(self, config: QuoteDisplayConfig, rooms: Sequence[Room]):
        self.config = config
        self._rooms = {room.id: room for room in rooms}

    # --- Section planning ---

    def section_key(self, room_id: str, surface_type: str) -> str:
        org = self.config.organization
        if org == Organization.ROOM:
            return f"room:{room_id}"
        if org == Organization.SURFACE:
            return f"surface:{surface_type}"
        tag = self._tag(self._rooms[room_id])
        if not tag:
            return UNASSIGNED_KEY
        return f"{org.value}:{tag}"

    def plan_sections(self, units: Sequence[BillableUnit]) -> List[Tuple[str, str]]:
        """Ordered (key, title) pairs for every section that has at least one unit."""
        org = self.config.organization
        plan: List[Tuple[str, str]] = []
        seen = set()

        if org == Organization.SURFACE:
            ordered = sorted(units, key=lambda u: (surface_rank(u.surface_type), u.task_index))
        else:
            ordered = list(units)

        has_unassigned = False
        for unit in ordered:
            key = self.section_key(unit.room_id, unit.surface_type)
            if key in seen:
                continue
            seen.add(key)
            if key == UNASSIGNED_KEY:
                has_unassigned = True
                continue
            plan.append((key, self._title(unit)))

        if has_unassigned:
            plan.append((UNASSIGNED_KEY, UNASSIGNED_TITLE))
        return plan

    def _tag(self, room: Room) -> Optional[str]:
        tag = room.floor if self.config.organization == Organization.FLOOR else room.phase
        return tag.strip() if tag and tag.strip() else None

    def _title(self, unit: BillableUnit) -> str:
        org = self.config.organization
        if org == Organization.ROOM:
            return self._rooms[unit.room_id].name
        if org == Organization.SURFACE:
            return display_name(unit.surface_type)
        return self._tag(self._rooms[unit.room_id])

    # --- Grouping ---

    def group(self, lines: Sequence[PricedLine], units: Sequence[BillableUnit],
              warnings: Optional[Dict[str, List[QuoteWarning]]] = None) -> List[Section]:
        warnings = warnings or {}
        plan = self.plan_sections(units)
        buckets: Dict[str, List[PricedLine]] = {key: [] for key, _ in plan}

        # project-level supply lines, already in rule order
        supplies: List[PricedLine] = []
        for line in lines:
            if line.section_key == SETUP_KEY:
                supplies.append(line)
                continue
            key = line.section_key or self.section_key(line.room_id, line.surface_type)
            buckets[key].append(line)

        grouping = self.config.material_grouping
        setup_lines: List[PricedLine] = []
        composed: List[Tuple[str, str, List[PricedLine]]] = []

        for key, title in plan:
            section_lines = sorted(buckets[key], key=lambda l: (l.task_index, KIND_ORDER[l.kind]))
            if not self.config.toggles.show_prep_tasks:
                section_lines = self._fold_prep(section_lines)
            if self.config.is_bundled:
                section_lines = self._bundle(section_lines)
            elif grouping == MaterialGrouping.COMBINED_SECTION:
                section_lines = self._combine_section(section_lines, title)
            elif grouping == MaterialGrouping.COMBINED_SETUP:
                setup_lines.extend(l for l in section_lines if l.kind == LineKind.MATERIAL)
                section_lines = [l for l in section_lines if l.kind != LineKind.MATERIAL]
            composed.append((key, title, section_lines))

        if grouping == MaterialGrouping.COMBINED_SETUP:
            setup_lines.extend(supplies)
            if setup_lines:
                package = self._combined_line(setup_lines, SETUP_DESCRIPTION, SETUP_KEY)
                composed.insert(0, (SETUP_KEY, SETUP_TITLE, [package]))
        elif supplies:
            composed.insert(0, (SETUP_KEY, SETUP_TITLE, supplies))

        sections = [
            self._emit_section(key, title, section_lines, warnings.get(key, []))
            for key, title, section_lines in composed
        ]
        logger.debug("Grouped %d priced lines into %d sections (%s)",
                     len(lines), len(sections), self.config.organization.value)
        return sections

    # --- Composition steps ---

    def _fold_prep(self, lines: List[PricedLine]) -> List[PricedLine]:
        """Hide prep lines by adding their amount to the same task's labor line."""
        labor_by_task = {l.task_index: l for l in lines if l.kind == LineKind.LABOR}
        prep_by_task = {l.task_index: l for l in lines if l.kind == LineKind.PREP}
        result = []
        for line in lines:
            if line.kind == LineKind.PREP and line.task_index in labor_by_task:
                continue
            if line.kind == LineKind.LABOR and line.task_index in prep_by_task:
                line = _merge(line, prep_by_task[line.task_index], line.description, line.kind)
            result.append(line)
        return result

    def _bundle(self, lines: List[PricedLine]) -> List[PricedLine]:
        """One line per task: labor + material merged, descriptions joined."""
        material_by_task = {
            l.task_index: l for l in lines
            if l.kind == LineKind.MATERIAL and l.section_key is None
        }
        labor_tasks = {l.task_index for l in lines if l.kind == LineKind.LABOR}
        result = []
        for line in lines:
            if line.kind == LineKind.MATERIAL and line.section_key is None \
                    and line.task_index in labor_tasks:
                continue
            if line.kind == LineKind.LABOR and line.task_index in material_by_task:
                material = material_by_task[line.task_index]
                line = _merge(line, material, f"{line.description} + {material.description}",
                              LineKind.BUNDLED)
            result.append(line)
        return result

    def _combine_section(self, lines: List[PricedLine], title: str) -> List[PricedLine]:
        materials = [l for l in lines if l.kind == LineKind.MATERIAL]
        rest = [l for l in lines if l.kind != LineKind.MATERIAL]
        if materials:
            rest.append(self._combined_line(materials, f"Materials for {title}", None))
        return rest

    def _combined_line(self, materials: List[PricedLine], description: str,
                       section_key: Optional[str]) -> PricedLine:
        amount = sum((l.amount for l in materials), Decimal("0"))
        return PricedLine(
            task_index=materials[-1].task_index,
            kind=LineKind.MATERIAL,
            description=description,
            amount=amount,
            quantity=Decimal("1"),
            unit="lot",
            rate=amount,
            section_key=section_key,
        )

    # --- Output ---

    def _emit_section(self, key: str, title: str, lines: List[PricedLine],
                      warnings: List[QuoteWarning]) -> Section:
        items = [self._emit_line(line, key) for line in lines]
        subtotal = sum((Decimal(str(i.amount)) for i in items), Decimal("0"))
        return Section(key=key, title=title, line_items=items,
                       subtotal=float(subtotal), warnings=list(warnings))

    def _emit_line(self, line: PricedLine, section_key: str) -> LineItem:
        toggles = self.config.toggles
        show_qty = toggles.show_quantities and line.quantity is not None
        show_rate = toggles.show_rates and line.rate is not None
        return LineItem(
            description=line.description,
            amount=float(to_cents(line.amount)),
            section=section_key,
            kind=line.kind,
            quantity=float(line.quantity.quantize(Decimal("0.01"))) if show_qty else None,
            unit=line.unit if show_qty else None,
            rate=float(to_cents(line.rate)) if show_rate else None,
            room_id=line.room_id,
            surface_type=line.surface_type,
        )


def _merge(primary: PricedLine, other: PricedLine, description: str, kind: LineKind) -> PricedLine:
    """Fold other into primary. Quantity stays primary's; rate becomes amount per unit."""
    amount = primary.amount + other.amount
    rate = None
    if primary.quantity and primary.rate is not None:
        rate = amount / primary.quantity
    return primary.model_copy(update={
        "amount": amount,
        "description": description,
        "kind": kind,
        "rate": rate,
    })


def group_lines(lines: Sequence[PricedLine], units: Sequence[BillableUnit],
                rooms: Sequence[Room], config: QuoteDisplayConfig,
                warnings: Optional[Dict[str, List[QuoteWarning]]] = None) -> List[Section]:
    """Functional entry point for GroupingEngine.group()."""
    return GroupingEngine(config, rooms).group(lines, units, warnings)
