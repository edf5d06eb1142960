"""Data models for the seating optimizer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import math


RSVP_PENDING = "pending"
RSVP_CONFIRMED = "confirmed"
RSVP_DECLINED = "declined"

# guest id -> table id, ``None`` when unassigned
Arrangement = Dict[str, Optional[str]]


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list.

    Empty values such as ``""`` or ``None`` return an empty list.
    ``pandas`` often provides ``float('nan')`` for missing values which is
    also treated as empty.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_optional_int(value: object) -> Optional[int]:
    """Parse an integer cell, returning ``None`` for blanks and NaN."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return None
    return int(float(text))


def normalize_type(value: object) -> str:
    """Lower case a relationship or constraint type, ``seat-together`` -> ``seat_together``."""
    return str(value or "").strip().lower().replace("-", "_").replace(" ", "_")


@dataclass
class Relationship:
    """Link from the owning guest to another guest."""

    guest_id: str
    type: str
    strength: int = 1
    notes: str = ""


@dataclass
class Guest:
    """Representation of an event guest."""

    id: str
    name: str = ""
    rsvp_status: str = RSVP_PENDING
    relationships: List[Relationship] = field(default_factory=list)
    table_id: Optional[str] = None
    seat_index: Optional[int] = None
    # Soft hints: a shared group pulls guests together, interests and
    # industry break ties between equally good tables.
    group: Optional[str] = None
    interests: List[str] = field(default_factory=list)
    industry: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return normalize_type(self.rsvp_status) == RSVP_CONFIRMED

    @property
    def is_declined(self) -> bool:
        return normalize_type(self.rsvp_status) == RSVP_DECLINED


@dataclass
class Table:
    """Dinner table definition."""

    id: str
    name: str = ""
    capacity: int = 0


@dataclass
class Constraint:
    """Explicit seating rule over a set of guests."""

    id: str
    type: str
    guest_ids: List[str] = field(default_factory=list)
    priority: str = "preferred"
    description: str = ""


@dataclass
class Event:
    """Snapshot of an event as handed over by the host application."""

    id: str = ""
    name: str = ""
    guests: List[Guest] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)


@dataclass
class SeatAssignment:
    """A single table/seat update for the host to apply."""

    guest_id: str
    table_id: Optional[str] = None
    seat_index: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {"guestId": self.guest_id, "tableId": self.table_id, "seatIndex": self.seat_index}


@dataclass
class ConstraintViolation:
    """A relationship or constraint that the arrangement does not honor."""

    kind: str
    priority: str
    description: str
    guest_ids: List[str] = field(default_factory=list)
    table_id: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "priority": self.priority,
            "description": self.description,
            "guestIds": list(self.guest_ids),
            "tableId": self.table_id,
        }


@dataclass
class OptimizationResult:
    """Outcome of one optimizer run.

    ``updates`` lists every guest whose table or seat changed and
    ``previous`` keeps their assignment from before the run so the host can
    undo it with :meth:`revert_updates`.
    """

    before_score: float = 0.0
    after_score: float = 0.0
    moved_guests: List[str] = field(default_factory=list)
    newly_seated: int = 0
    updates: List[SeatAssignment] = field(default_factory=list)
    violations: List[ConstraintViolation] = field(default_factory=list)
    previous: Dict[str, SeatAssignment] = field(default_factory=dict)

    def revert_updates(self) -> List[SeatAssignment]:
        """Updates restoring the arrangement that existed before the run."""
        return [
            SeatAssignment(guest_id=u.guest_id, table_id=self.previous[u.guest_id].table_id,
                           seat_index=self.previous[u.guest_id].seat_index)
            for u in self.updates
            if u.guest_id in self.previous
        ]

    def to_dict(self) -> Dict[str, object]:
        return {
            "beforeScore": self.before_score,
            "afterScore": self.after_score,
            "movedGuests": list(self.moved_guests),
            "newlySeated": self.newly_seated,
            "updates": [u.to_dict() for u in self.updates],
            "violations": [v.to_dict() for v in self.violations],
        }
