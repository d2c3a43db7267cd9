"""
Stage 1 — Measurement Aggregator.

Rooms/Surfaces → BillableUnits, one per distinct (room, surface type) pair.

Input: ordered list of Room (room order = creation order)
Output: list of BillableUnit in room order, then first-seen surface type order
        within each room. task_index records that position.

Surfaces with quantity <= 0 are treated as not yet measured and dropped;
they produce no line and no warning. So are surfaces with zero coats and no
primer: nothing is applied to them. Labor-only surfaces (wallpaper removal)
count one pass regardless of coats.
"""

import logging
from decimal import Decimal
from typing import List, Sequence

from ..errors import ValidationError
from ..schemas import BillableUnit, Room
from .surfaces import is_known_surface, is_labor_only, unit_for, SURFACE_ORDER

logger = logging.getLogger(__name__)


def aggregate_rooms(rooms: Sequence[Room]) -> List[BillableUnit]:
    """Sum surface quantities per (room, surface type). Raises ValidationError."""
    seen_rooms = set()
    units: List[BillableUnit] = []
    dropped = 0

    for room in rooms:
        if room.id in seen_rooms:
            raise ValidationError(f"Duplicate room id: {room.id}")
        seen_rooms.add(room.id)

        # surface_type -> running totals, in first-seen order
        totals: dict[str, dict] = {}
        order: List[str] = []

        for surface in room.surfaces:
            if not is_known_surface(surface.surface_type):
                raise ValidationError(
                    f"Unknown surface type '{surface.surface_type}' on surface {surface.id} "
                    f"in room '{room.name}'. Expected one of: {', '.join(SURFACE_ORDER)}"
                )
            labor_only = is_labor_only(surface.surface_type)
            if surface.quantity <= 0 or (surface.coats == 0 and not surface.primer and not labor_only):
                dropped += 1
                continue

            qty = Decimal(str(surface.quantity))
            bucket = totals.get(surface.surface_type)
            if bucket is None:
                bucket = {"quantity": Decimal("0"), "coated": Decimal("0"),
                          "primed": Decimal("0"), "coats": 0}
                totals[surface.surface_type] = bucket
                order.append(surface.surface_type)

            bucket["quantity"] += qty
            bucket["coated"] += qty if labor_only else qty * surface.coats
            if surface.primer:
                bucket["primed"] += qty
            if not labor_only:
                bucket["coats"] = max(bucket["coats"], surface.coats)

        for surface_type in order:
            bucket = totals[surface_type]
            units.append(BillableUnit(
                room_id=room.id,
                surface_type=surface_type,
                quantity=bucket["quantity"],
                unit=unit_for(surface_type),
                coats=bucket["coats"],
                coated_quantity=bucket["coated"],
                primed_quantity=bucket["primed"],
                task_index=len(units),
            ))

    logger.debug("Aggregated %d rooms into %d billable units (%d unmeasured surfaces dropped)",
                 len(rooms), len(units), dropped)
    return units
