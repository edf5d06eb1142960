"""Optimizer entry points used by the host application."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG, OptimizerConfig
from .models import (
    Arrangement,
    Constraint,
    Event,
    Guest,
    OptimizationResult,
    SeatAssignment,
    Table,
)
from .scoring import current_arrangement, find_violations, score_graph
from .solver import SeatingModel

logger = logging.getLogger(__name__)


def _unique_guests(guests: Optional[Iterable[Guest]]) -> List[Guest]:
    out: List[Guest] = []
    seen = set()
    for g in guests or []:
        if g.id not in seen:
            seen.add(g.id)
            out.append(g)
    return out


def assign_seat_indices(
    guests: List[Guest],
    before: Arrangement,
    after: Arrangement,
    capacity: Dict[str, int],
) -> Dict[str, Optional[int]]:
    """Seat numbers for the new arrangement.

    Guests that stay at their table keep a valid seat index. Everyone else
    takes the lowest free index at their table.
    """
    seats: Dict[str, Optional[int]] = {g.id: None for g in guests}
    taken: Dict[str, set] = {}
    newcomers: List[Guest] = []

    for g in guests:
        table = after.get(g.id)
        if table is None:
            continue
        used = taken.setdefault(table, set())
        idx = g.seat_index
        stays = before.get(g.id) == table
        if stays and isinstance(idx, int) and 0 <= idx < capacity.get(table, 0) and idx not in used:
            seats[g.id] = idx
            used.add(idx)
        else:
            newcomers.append(g)

    for g in newcomers:
        table = after[g.id]
        used = taken[table]
        idx = 0
        while idx in used:
            idx += 1
        seats[g.id] = idx
        used.add(idx)
    return seats


def optimize(
    guests: Optional[Iterable[Guest]],
    tables: Optional[Iterable[Table]],
    constraints: Optional[Iterable[Constraint]] = None,
    config: OptimizerConfig = DEFAULT_CONFIG,
) -> OptimizationResult:
    """Compute a new seating and report what changed.

    Inputs are not mutated. Apply ``result.updates`` (for example with
    :func:`apply_updates`) to get the new guest records.
    """
    guests = _unique_guests(guests)
    tables = list(tables or [])
    constraints = list(constraints or [])

    model = SeatingModel(config)
    model.build(guests, tables, constraints)

    before = current_arrangement(guests)
    after = model.solve()
    before_score = score_graph(model.graph, before)
    after_score = score_graph(model.graph, after)

    seats = assign_seat_indices(guests, before, after, model.capacity)

    moved: List[str] = []
    newly_seated = 0
    updates: List[SeatAssignment] = []
    previous: Dict[str, SeatAssignment] = {}
    for g in guests:
        old_table, new_table = before.get(g.id), after.get(g.id)
        if old_table != new_table:
            moved.append(g.id)
            if old_table is None:
                newly_seated += 1
        if old_table != new_table or g.seat_index != seats[g.id]:
            updates.append(SeatAssignment(guest_id=g.id, table_id=new_table, seat_index=seats[g.id]))
            previous[g.id] = SeatAssignment(guest_id=g.id, table_id=g.table_id, seat_index=g.seat_index)

    result = OptimizationResult(
        before_score=before_score,
        after_score=after_score,
        moved_guests=moved,
        newly_seated=newly_seated,
        updates=updates,
        violations=find_violations(guests, constraints, after, config),
        previous=previous,
    )
    logger.info(
        "Seating optimized: score %s -> %s, %d moved, %d newly seated",
        before_score, after_score, len(moved), newly_seated,
    )
    return result


def optimize_event(event: Optional[Event], config: OptimizerConfig = DEFAULT_CONFIG) -> OptimizationResult:
    """Run :func:`optimize` on an event snapshot. A missing event yields an empty result."""
    if event is None:
        return OptimizationResult()
    return optimize(event.guests, event.tables, event.constraints, config)


def apply_updates(guests: Iterable[Guest], updates: Iterable[SeatAssignment]) -> List[Guest]:
    """Return copies of ``guests`` with the updates applied."""
    by_id = {u.guest_id: u for u in updates}
    out = []
    for g in guests or []:
        u = by_id.get(g.id)
        out.append(replace(g, table_id=u.table_id, seat_index=u.seat_index) if u else g)
    return out
