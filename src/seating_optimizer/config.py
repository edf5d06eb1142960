"""Tunable settings for scoring and placement."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet


AFFINITY_TYPES = frozenset({
    "partner",
    "family",
    "friend",
    "colleague",
    "acquaintance",
    "prefer",
    "seat_together",
    "same_table",
    "must_sit_together",
})

REPULSION_TYPES = frozenset({
    "avoid",
    "keep_apart",
    "different_table",
    "must_not_sit_together",
})

# Affinity types whose pairs are never split while a table has room for both
CLOSE_TYPES = frozenset({"partner", "family"})

CONSTRAINT_STRENGTH = {
    "required": 10,
    "preferred": 5,
    "optional": 2,
}


@dataclass
class OptimizerConfig:
    """Knobs shared by the relationship graph, scoring and the solver."""

    affinity_types: FrozenSet[str] = AFFINITY_TYPES
    repulsion_types: FrozenSet[str] = REPULSION_TYPES
    close_types: FrozenSet[str] = CLOSE_TYPES
    constraint_strength: Dict[str, int] = field(default_factory=lambda: dict(CONSTRAINT_STRENGTH))
    default_strength: int = 1
    beam_width: int = 8
    max_passes: int = 12

    def classify(self, relation_type: str) -> str | None:
        """Return ``"repulsion"``, ``"affinity"`` or ``None`` for neutral types."""
        if relation_type in self.repulsion_types:
            return "repulsion"
        if relation_type in self.affinity_types:
            return "affinity"
        return None

    def strength_for_priority(self, priority: str) -> int:
        return int(self.constraint_strength.get(priority, self.constraint_strength.get("preferred", 5)))


DEFAULT_CONFIG = OptimizerConfig()
