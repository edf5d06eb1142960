"""
Arrangement scoring, table grading and violation checks.

Pair scale:
    affinity pair at one table:  +strength
    repulsion pair at one table: -strength
    anything else:               0
Table compatibility is graded A to F based on the average pair score among all pairs at the table.
"""
from __future__ import annotations

from itertools import combinations
from typing import Callable, Dict, Iterable, List, Optional

import networkx as nx

from .config import DEFAULT_CONFIG, OptimizerConfig
from .graph import REPULSION, build_relationship_graph, pair_value
from .models import Arrangement, Constraint, ConstraintViolation, Guest, Table, normalize_type


TOGETHER_CONSTRAINTS = {"same_table", "must_sit_together"}
APART_CONSTRAINTS = {"different_table", "must_not_sit_together"}


def current_arrangement(guests: Iterable[Guest]) -> Arrangement:
    """Arrangement as recorded on the guest records."""
    arrangement: Arrangement = {}
    for g in guests or []:
        arrangement.setdefault(g.id, g.table_id)
    return arrangement


def score_graph(graph: nx.Graph, arrangement: Arrangement) -> float:
    total = 0
    for a, b, data in graph.edges(data=True):
        table = arrangement.get(a)
        if table is not None and table == arrangement.get(b):
            total += data["weight"]
    return float(total)


def score_arrangement(
    guests: Iterable[Guest],
    arrangement: Optional[Arrangement] = None,
    constraints: Optional[Iterable[Constraint]] = None,
    config: OptimizerConfig = DEFAULT_CONFIG,
) -> float:
    """Score an arrangement, higher is better.

    ``arrangement`` defaults to the guests' current ``table_id``. Only
    confirmed guests count.
    """
    guests = list(guests or [])
    if arrangement is None:
        arrangement = current_arrangement(guests)
    graph = build_relationship_graph(guests, constraints, config)
    return score_graph(graph, arrangement)


# ----------------------------- table grading -----------------------------
def compute_table_stats(members: List[str], get_value: Callable[[str, str], int]) -> Dict[str, int | float]:
    """Sum the signed pair weights at a table.

    Affinity pairs add their strength and repulsion pairs subtract theirs, so
    ``mean_score`` is the average strength per seated pair.
    """
    total = 0
    affinity = repulsion = neutral = 0
    pairs = 0
    for a, b in combinations(members, 2):
        v = get_value(a, b)
        total += v
        pairs += 1
        if v > 0:
            affinity += 1
        elif v < 0:
            repulsion += 1
        else:
            neutral += 1
    mean = total / pairs if pairs else 0.0
    return {
        "total_score": total,
        "mean_score": mean,
        "pair_count": pairs,
        "affinity_pairs": affinity,
        "repulsion_pairs": repulsion,
        "neutral_pairs": neutral,
    }


def grade_tables(stats: List[Dict[str, int | float]]) -> List[Dict[str, int | float | str]]:
    """Grade A to F by mean pair strength. A table seating a repulsion pair is an F."""
    graded = []
    for s in stats:
        m = s["mean_score"]
        if s.get("repulsion_pairs", 0):
            g = "F"
        elif m >= 2.5:
            g = "A"
        elif m >= 1.5:
            g = "B"
        elif m >= 0.8:
            g = "C"
        elif m >= 0.2:
            g = "D"
        else:
            g = "F"
        out = dict(s)
        out["grade"] = g
        graded.append(out)
    return graded


def table_report(
    guests: Iterable[Guest],
    tables: Iterable[Table],
    constraints: Optional[Iterable[Constraint]] = None,
    arrangement: Optional[Arrangement] = None,
    config: OptimizerConfig = DEFAULT_CONFIG,
) -> List[Dict[str, object]]:
    """Graded stats for every table, in table order."""
    guests = list(guests or [])
    if arrangement is None:
        arrangement = current_arrangement(guests)
    graph = build_relationship_graph(guests, constraints, config)

    stats = []
    for table in tables or []:
        members = [g.id for g in guests if arrangement.get(g.id) == table.id]
        s = compute_table_stats(members, lambda a, b: pair_value(graph, a, b))
        s["table"] = table.id
        s["name"] = table.name
        s["capacity"] = table.capacity
        s["members"] = members
        stats.append(s)
    return grade_tables(stats)


# ----------------------------- violations -----------------------------
def find_violations(
    guests: Iterable[Guest],
    constraints: Optional[Iterable[Constraint]] = None,
    arrangement: Optional[Arrangement] = None,
    config: OptimizerConfig = DEFAULT_CONFIG,
) -> List[ConstraintViolation]:
    """List co-seated repulsion pairs and broken explicit constraints."""
    guests = list(guests or [])
    if arrangement is None:
        arrangement = current_arrangement(guests)
    names = {g.id: (g.name or g.id) for g in guests}
    confirmed = {g.id for g in guests if g.is_confirmed}

    def label(ids: Iterable[str]) -> str:
        return " & ".join(names.get(i, "Unknown") for i in ids)

    violations: List[ConstraintViolation] = []
    seen = set()
    for guest in guests:
        table = arrangement.get(guest.id)
        if table is None or guest.id not in confirmed:
            continue
        for rel in guest.relationships or []:
            relation = normalize_type(rel.type)
            if config.classify(relation) != REPULSION or rel.guest_id == guest.id or rel.guest_id not in confirmed:
                continue
            if arrangement.get(rel.guest_id) != table:
                continue
            pair = frozenset((guest.id, rel.guest_id))
            if pair in seen:
                continue
            seen.add(pair)
            ids = [guest.id, rel.guest_id]
            violations.append(ConstraintViolation(
                kind=relation,
                priority="preferred",
                description=f"{label(ids)} should not sit together",
                guest_ids=ids,
                table_id=table,
            ))

    for constraint in constraints or []:
        kind = normalize_type(constraint.type)
        priority = normalize_type(constraint.priority) or "preferred"
        if priority == "optional":
            priority = "preferred"
        members = list(constraint.guest_ids or [])
        seated = [gid for gid in members if gid in confirmed and arrangement.get(gid) is not None]
        if kind in TOGETHER_CONSTRAINTS:
            if len({arrangement[gid] for gid in seated}) > 1:
                violations.append(ConstraintViolation(
                    kind=kind,
                    priority=priority,
                    description=f"{label(members)} should sit together",
                    guest_ids=members,
                ))
        elif kind in APART_CONSTRAINTS:
            by_table: Dict[str, List[str]] = {}
            for gid in seated:
                by_table.setdefault(arrangement[gid], []).append(gid)
            for table, ids in by_table.items():
                if len(ids) > 1:
                    violations.append(ConstraintViolation(
                        kind=kind,
                        priority=priority,
                        description=f"{label(ids)} should not sit together",
                        guest_ids=ids,
                        table_id=table,
                    ))
    return violations
