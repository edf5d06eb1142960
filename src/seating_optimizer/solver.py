"""
Relationship aware seating solver.

Confirmed guests are grouped into affinity clusters and placed cluster by
cluster with a beam search. Candidate tables are ranked by:
    1. no repulsion partner already at the table
    2. score gained at the table
    3. shared interests and industry mix with guests already there
    4. free seats left afterwards (spreads guests evenly)
    5. table order
Split partner or family blocks are then reunited and a local move and swap
hill climb polishes the result.

The existing seating is polished the same way and kept unless the fresh
search beats it, so running again on an applied result moves nobody.
"""
from __future__ import annotations

import logging
from heapq import nlargest
from typing import Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, OptimizerConfig
from .graph import (
    REPULSION,
    build_clusters,
    build_relationship_graph,
    close_blocks,
    is_close,
    is_repulsion,
    pair_value,
    split_cluster,
)
from .models import Arrangement, Constraint, Guest, Table

logger = logging.getLogger(__name__)

# (assignments, free slots, (-repulsions, score, interest matches))
BeamState = Tuple[Dict[str, str], Dict[str, int], Tuple[int, int, int]]


class SeatingModel:
    """Beam search seating solver with local swaps and churn awareness."""

    def __init__(self, config: OptimizerConfig = DEFAULT_CONFIG) -> None:
        self.config = config
        # Inputs
        self.guests: List[Guest] = []
        self.table_ids: List[str] = []
        self.capacity: Dict[str, int] = {}
        self.graph = build_relationship_graph([], None, config)
        # Pending guests that keep the seat they already have
        self.pinned: Dict[str, str] = {}
        # Valid current table of each confirmed guest
        self.current: Dict[str, Optional[str]] = {}

    def build(
        self,
        guests: Iterable[Guest],
        tables: Iterable[Table],
        constraints: Optional[Iterable[Constraint]] = None,
    ) -> None:
        """Store model data and derive free capacity."""
        self.guests = []
        seen = set()
        for g in guests or []:
            if g.id in seen:
                continue
            seen.add(g.id)
            self.guests.append(g)

        self.table_ids = []
        self.capacity = {}
        for t in tables or []:
            if t.id in self.capacity:
                logger.warning("Duplicate table id %s ignored", t.id)
                continue
            try:
                cap = max(int(t.capacity), 0)
            except (TypeError, ValueError):
                cap = 0
            self.table_ids.append(t.id)
            self.capacity[t.id] = cap

        self.graph = build_relationship_graph(self.guests, constraints, self.config)

        self.pinned = {}
        self.current = {}
        held: Dict[str, int] = {}
        for g in self.guests:
            valid_table = g.table_id if g.table_id in self.capacity else None
            if g.is_confirmed:
                self.current[g.id] = valid_table
            elif not g.is_declined and valid_table is not None:
                # Pending guests keep their seat in input order while it fits
                if held.get(valid_table, 0) < self.capacity[valid_table]:
                    self.pinned[g.id] = valid_table
                    held[valid_table] = held.get(valid_table, 0) + 1
                else:
                    logger.warning("Pending guest %s unseated, table %s is over capacity", g.id, valid_table)

    def get_value(self, a: str, b: str) -> int:
        """Signed pair weight. Zero when unrelated."""
        return pair_value(self.graph, a, b)

    def free_slots(self) -> Dict[str, int]:
        """Seats per table left after pinned guests."""
        slots = dict(self.capacity)
        for table in self.pinned.values():
            slots[table] -= 1
        return {t: max(n, 0) for t, n in slots.items()}

    # ----------------------------- internals -----------------------------
    def _order(self, guest_id: str) -> int:
        return self.graph.nodes[guest_id].get("order", 0)

    def _units(self, slots: Dict[str, int]) -> List[List[str]]:
        """Affinity clusters, split to fit the roomiest table."""
        max_size = max(slots.values(), default=0)
        units: List[List[str]] = []
        for cluster in build_clusters(self.graph):
            units.extend(split_cluster(self.graph, cluster, max_size))
        return sorted(units, key=lambda u: (-len(u), self._order(u[0])))

    def _left(self, assignments: Dict[str, str]) -> Dict[str, int]:
        slots = self.free_slots()
        for table_id in assignments.values():
            slots[table_id] -= 1
        return slots

    def _repulsions_at(self, guest_id: str, table_id: str, assignments: Dict[str, str], ignore: str = "") -> int:
        return sum(
            1 for n, data in self.graph[guest_id].items()
            if data["kind"] == REPULSION and n != ignore and assignments.get(n) == table_id
        )

    def _value_at(self, guest_id: str, table_id: str, assignments: Dict[str, str], ignore: str = "") -> int:
        return sum(
            data["weight"] for n, data in self.graph[guest_id].items()
            if n != ignore and n != guest_id and assignments.get(n) == table_id
        )

    def _close_at(self, guest_id: str, table_id: str, assignments: Dict[str, str]) -> bool:
        """True when a partner or family member of ``guest_id`` sits at ``table_id``."""
        return any(
            n != guest_id and assignments.get(n) == table_id and is_close(self.graph, guest_id, n)
            for n in self.graph[guest_id]
        )

    def _affinity_hint(self, unit: List[str], table_id: str, assignments: Dict[str, str]) -> int:
        """Two points per shared interest, one for joining a mixed industry table."""
        nodes = self.graph.nodes
        at_table = [n for n, t in assignments.items() if t == table_id]
        hint = 0
        for member in unit:
            interests = nodes[member]["interests"]
            if interests:
                hint += 2 * sum(len(interests & nodes[n]["interests"]) for n in at_table)
            industry = nodes[member]["industry"]
            if industry and at_table:
                same = sum(1 for n in at_table if nodes[n]["industry"] == industry)
                if 0 < same < len(at_table) / 2:
                    hint += 1
        return hint

    def _local_score(self, nodes: Iterable[str], assignments: Dict[str, str]) -> int:
        """Score of every edge touching ``nodes``, each edge counted once."""
        total = 0
        counted = set()
        for a in nodes:
            table = assignments.get(a)
            for b, data in self.graph[a].items():
                edge = frozenset((a, b))
                if edge in counted:
                    continue
                counted.add(edge)
                if table is not None and assignments.get(b) == table:
                    total += data["weight"]
        return total

    def _quality(self, assignments: Dict[str, str]) -> Tuple[int, int, int, int]:
        """``(seated, -repulsions, partner/family pairs together, score)``."""
        repulsions = close = score = 0
        for a, b, data in self.graph.edges(data=True):
            table = assignments.get(a)
            if table is None or table != assignments.get(b):
                continue
            score += data["weight"]
            if data["kind"] == REPULSION:
                repulsions += 1
            elif data["close"]:
                close += 1
        return len(assignments), -repulsions, close, score

    def _feasible_with(self, unit: List[str], table_id: str, assignments: Dict[str, str], slots: Dict[str, int]) -> bool:
        """Capacity plus repulsion check."""
        if slots[table_id] < len(unit):
            return False
        return all(self._repulsions_at(m, table_id, assignments) == 0 for m in unit)

    def _table_delta(self, unit: List[str], table_id: str, assignments: Dict[str, str]) -> Tuple[int, int]:
        """Return ``(repulsions, score)`` added by seating ``unit`` at ``table_id``."""
        trial = dict(assignments)
        repulsions = score = 0
        for member in unit:
            repulsions += self._repulsions_at(member, table_id, trial)
            score += self._value_at(member, table_id, trial)
            trial[member] = table_id
        return repulsions, score

    def _rank_tables(self, unit: List[str], assignments: Dict[str, str], slots: Dict[str, int]) -> List[Tuple[tuple, str]]:
        ranked = []
        for index, table_id in enumerate(self.table_ids):
            if slots[table_id] < len(unit):
                continue
            repulsions, score = self._table_delta(unit, table_id, assignments)
            hint = self._affinity_hint(unit, table_id, assignments)
            key = (repulsions == 0, score, hint, slots[table_id] - len(unit), -index)
            ranked.append((key, table_id))
        ranked.sort(key=lambda c: c[0], reverse=True)
        return ranked

    @staticmethod
    def _seat(state: BeamState, unit: List[str], table_id: str, key: tuple) -> BeamState:
        assignments, slots, (neg_rep, score, hints) = state
        new_assign = dict(assignments)
        new_slots = dict(slots)
        for member in unit:
            new_assign[member] = table_id
        new_slots[table_id] -= len(unit)
        feasible, delta, hint = key[0], key[1], key[2]
        rep = 0 if feasible else 1
        return new_assign, new_slots, (neg_rep - rep, score + delta, hints + hint)

    def _seat_one_by_one(self, state: BeamState, unit: List[str]) -> BeamState:
        """Split a unit that fits no table whole. Members without a free seat stay out."""
        for member in unit:
            ranked = self._rank_tables([member], state[0], state[1])
            if not ranked:
                logger.debug("No free seat left for %s", member)
                continue
            key, table_id = ranked[0]
            state = self._seat(state, [member], table_id, key)
        return state

    def _beam_search(self, units: List[List[str]], slots: Dict[str, int]) -> BeamState:
        beam: List[BeamState] = [({}, dict(slots), (0, 0, 0))]
        width = max(int(self.config.beam_width), 1)

        for unit in units:
            next_beam: List[BeamState] = []
            for state in beam:
                ranked = self._rank_tables(unit, state[0], state[1])
                feasible = [c for c in ranked if c[0][0]]
                if not feasible:
                    next_beam.append(self._seat_one_by_one(state, unit))
                    continue
                for key, table_id in feasible[:width]:
                    next_beam.append(self._seat(state, unit, table_id, key))
            beam = nlargest(width, next_beam, key=lambda s: s[2])

        return max(beam, key=lambda s: s[2])

    def _gather(self, block: List[str], assignments: Dict[str, str], slots: Dict[str, int]) -> bool:
        """Move a split block to one table with room for the missing members."""
        best = None
        for index, table_id in enumerate(self.table_ids):
            movers = [m for m in block if assignments[m] != table_id]
            if slots[table_id] < len(movers):
                continue
            if any(self._repulsions_at(m, table_id, assignments) for m in movers):
                continue
            trial = dict(assignments)
            for m in movers:
                trial[m] = table_id
            gain = self._local_score(movers, trial) - self._local_score(movers, assignments)
            key = (gain, -len(movers), -index)
            if best is None or key > best[0]:
                best = (key, table_id, movers)
        if best is None:
            return False
        _, table_id, movers = best
        for m in movers:
            slots[assignments[m]] += 1
            slots[table_id] -= 1
            assignments[m] = table_id
        return True

    def _gather_by_swaps(self, block: List[str], assignments: Dict[str, str]) -> bool:
        """Swap outsiders off the table holding most of a split block."""
        counts: Dict[str, int] = {}
        for m in block:
            counts[assignments[m]] = counts.get(assignments[m], 0) + 1
        target = max(counts, key=lambda t: (counts[t], -self.table_ids.index(t)))
        members = set(block)

        trial = dict(assignments)
        for m in block:
            origin = trial[m]
            if origin == target:
                continue
            best = None
            for c in sorted(trial, key=self._order):
                if trial[c] != target or c in members or self._close_at(c, target, trial):
                    continue
                if self._repulsions_at(m, target, trial, ignore=c):
                    continue
                if self._repulsions_at(c, origin, trial, ignore=m):
                    continue
                swapped = dict(trial)
                swapped[m], swapped[c] = target, origin
                gain = self._local_score([m, c], swapped) - self._local_score([m, c], trial)
                if best is None or gain > best[0]:
                    best = (gain, c)
            if best is None:
                return False
            c = best[1]
            trial[m], trial[c] = target, origin
        assignments.update(trial)
        return True

    def _reunite_blocks(self, assignments: Dict[str, str], slots: Dict[str, int]) -> bool:
        """Seat split partner and family blocks together where the tables allow it."""
        changed = False
        for block in close_blocks(self.graph, assignments):
            if len({assignments[m] for m in block}) < 2:
                continue
            if any(is_repulsion(self.graph, a, b) for i, a in enumerate(block) for b in block[i + 1:]):
                continue
            if self._gather(block, assignments, slots) or self._gather_by_swaps(block, assignments):
                logger.debug("Reunited %s", ", ".join(block))
                changed = True
        return changed

    def _optimize_assignments(self, assignments: Dict[str, str], slots: Dict[str, int]) -> Dict[str, str]:
        """Local move and pair swap hill climb.

        Never co-seats a repulsion pair and never pulls a guest away from a
        partner or family member at the same table.
        """
        assignments = dict(assignments)
        slots = dict(slots)
        seated = sorted(assignments, key=self._order)
        linked = [g for g in seated if self.graph.degree(g) > 0]

        def accept(rep_gain: int, score_gain: int) -> bool:
            return rep_gain > 0 or (rep_gain == 0 and score_gain > 0)

        improved = True
        passes = 0
        while improved and passes < self.config.max_passes:
            improved = False
            passes += 1

            # Moves into free seats
            for g in linked:
                t1 = assignments[g]
                for t2 in self.table_ids:
                    if t2 == t1 or slots[t2] <= 0:
                        continue
                    if self._repulsions_at(g, t2, assignments) or self._close_at(g, t1, assignments):
                        continue
                    rep_gain = self._repulsions_at(g, t1, assignments)
                    score_gain = self._value_at(g, t2, assignments) - self._value_at(g, t1, assignments)
                    if accept(rep_gain, score_gain):
                        assignments[g] = t2
                        slots[t1] += 1
                        slots[t2] -= 1
                        t1 = t2
                        improved = True

            # Swaps between tables
            for g1 in linked:
                for g2 in seated:
                    if g2 == g1:
                        continue
                    t1, t2 = assignments[g1], assignments[g2]
                    if t1 == t2:
                        continue
                    if self._close_at(g1, t1, assignments) or self._close_at(g2, t2, assignments):
                        continue
                    if self._repulsions_at(g1, t2, assignments, ignore=g2):
                        continue
                    if self._repulsions_at(g2, t1, assignments, ignore=g1):
                        continue
                    rep_gain = (self._repulsions_at(g1, t1, assignments)
                                + self._repulsions_at(g2, t2, assignments))
                    score_gain = (
                        self._value_at(g1, t2, assignments, ignore=g2) - self._value_at(g1, t1, assignments)
                        + self._value_at(g2, t1, assignments, ignore=g1) - self._value_at(g2, t2, assignments)
                    )
                    if accept(rep_gain, score_gain):
                        assignments[g1], assignments[g2] = t2, t1
                        improved = True

        logger.debug("Hill climb finished after %d passes", passes)
        return assignments

    def _polish(self, assignments: Dict[str, str]) -> Dict[str, str]:
        """Reunite blocks and hill climb until neither changes anything."""
        assignments = dict(assignments)
        for _ in range(max(int(self.config.max_passes), 1)):
            before = dict(assignments)
            slots = self._left(assignments)
            self._reunite_blocks(assignments, slots)
            assignments = self._optimize_assignments(assignments, slots)
            if assignments == before:
                break
        return assignments

    def _existing(self, slots: Dict[str, int]) -> Dict[str, str]:
        """Current seats of confirmed guests, trimmed to the free seats."""
        left = dict(slots)
        existing: Dict[str, str] = {}
        for g in self.guests:
            table_id = self.current.get(g.id)
            if table_id is None or g.id not in self.graph:
                continue
            if left[table_id] <= 0:
                logger.debug("Guest %s loses a seat at full table %s", g.id, table_id)
                continue
            existing[g.id] = table_id
            left[table_id] -= 1
        return existing

    def _fill(self, assignments: Dict[str, str]) -> Dict[str, str]:
        """Seat confirmed guests missing from ``assignments`` one at a time."""
        missing = [n for n in sorted(self.graph.nodes, key=self._order) if n not in assignments]
        state: BeamState = (dict(assignments), self._left(assignments), (0, 0, 0))
        return self._seat_one_by_one(state, missing)[0]

    # ----------------------------- solve -----------------------------
    def solve(self) -> Arrangement:
        """Assign confirmed guests to tables. Unseated guests map to ``None``."""
        slots = self.free_slots()
        units = self._units(slots)
        logger.debug(
            "Placing %d confirmed guests in %d units over %d tables (%d free seats)",
            self.graph.number_of_nodes(), len(units), len(self.table_ids), sum(slots.values()),
        )

        placed: Dict[str, str] = {}
        if units:
            placed, _, _ = self._beam_search(units, slots)
            placed = self._polish(placed)

        existing = self._existing(slots)
        if existing:
            kept = self._polish(self._fill(existing))
            if self._quality(kept) >= self._quality(placed):
                logger.debug("Keeping the existing seating")
                placed = kept

        arrangement: Arrangement = {}
        for g in self.guests:
            if g.id in self.pinned:
                arrangement[g.id] = self.pinned[g.id]
            else:
                arrangement[g.id] = placed.get(g.id)
        return arrangement
