"""Seating optimizer package."""
from .models import (
    Guest,
    Table,
    Relationship,
    Constraint,
    Event,
    SeatAssignment,
    ConstraintViolation,
    OptimizationResult,
)
from .config import OptimizerConfig
from .csv_loader import (
    load_guests,
    load_relationships,
    load_tables,
    load_constraints,
    load_all,
)
from .scoring import score_arrangement, find_violations, table_report
from .solver import SeatingModel
from .optimizer import optimize, optimize_event, apply_updates

__all__ = [
    "Guest",
    "Table",
    "Relationship",
    "Constraint",
    "Event",
    "SeatAssignment",
    "ConstraintViolation",
    "OptimizationResult",
    "OptimizerConfig",
    "load_guests",
    "load_relationships",
    "load_tables",
    "load_constraints",
    "load_all",
    "score_arrangement",
    "find_violations",
    "table_report",
    "SeatingModel",
    "optimize",
    "optimize_event",
    "apply_updates",
]
