"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from .models import (
    Constraint,
    Guest,
    Relationship,
    Table,
    RSVP_PENDING,
    normalize_type,
    parse_optional_int,
    parse_pipe_list,
)

Source = Union[Path, str, IO[Any]]


def _text(value: object, default: str = "") -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    return str(value).strip()


def load_guests(path: Source) -> List[Guest]:
    """Load guests from ``guests.csv``.

    Columns: ``id``, ``name``, ``rsvp`` and optionally ``table_id`` and
    ``seat_index`` for an existing seating. ``group``, ``interests`` (pipe
    separated) and ``industry`` are optional seating hints.
    """
    df = pd.read_csv(path, dtype=str)
    guests: List[Guest] = []
    for _, row in df.iterrows():
        table_id = _text(row.get("table_id", "")) or None
        guests.append(
            Guest(
                id=_text(row["id"]),
                name=_text(row.get("name", "")),
                rsvp_status=normalize_type(_text(row.get("rsvp", ""), RSVP_PENDING)) or RSVP_PENDING,
                table_id=table_id,
                seat_index=parse_optional_int(row.get("seat_index")) if table_id else None,
                group=_text(row.get("group", "")) or None,
                interests=parse_pipe_list(row.get("interests", "")),
                industry=_text(row.get("industry", "")) or None,
            )
        )
    return guests


def load_tables(path: Source) -> List[Table]:
    """Load table definitions."""
    df = pd.read_csv(path, dtype=str)
    tables: List[Table] = []
    for _, row in df.iterrows():
        tables.append(
            Table(
                id=_text(row["id"]),
                name=_text(row.get("name", "")),
                capacity=int(row["capacity"]),
            )
        )
    return tables


def load_relationships(path: Source, guest_ids: Optional[Iterable[str]] = None) -> Dict[str, List[Relationship]]:
    """Load relationships keyed by the declaring guest (``guest1_id``).

    If ``guest_ids`` is provided it validates that both endpoints exist.
    """
    df = pd.read_csv(path, dtype=str)
    known = {str(g).strip() for g in guest_ids} if guest_ids is not None else None
    relationships: Dict[str, List[Relationship]] = {}
    for _, row in df.iterrows():
        a = _text(row["guest1_id"])
        b = _text(row["guest2_id"])
        if known is not None and (a not in known or b not in known):
            raise ValueError(f"Relationship references unknown guest: {a}, {b}")
        strength = parse_optional_int(row.get("strength"))
        relationships.setdefault(a, []).append(
            Relationship(
                guest_id=b,
                type=normalize_type(_text(row.get("relationship", ""), "neutral")),
                strength=1 if strength is None else strength,
                notes=_text(row.get("notes", "")),
            )
        )
    return relationships


def load_constraints(path: Source, guest_ids: Optional[Iterable[str]] = None) -> List[Constraint]:
    """Load explicit constraints. ``guest_ids`` is pipe separated."""
    df = pd.read_csv(path, dtype=str)
    known = {str(g).strip() for g in guest_ids} if guest_ids is not None else None
    constraints: List[Constraint] = []
    for index, row in df.iterrows():
        members = parse_pipe_list(row.get("guest_ids", ""))
        if known is not None:
            missing = [m for m in members if m not in known]
            if missing:
                raise ValueError(f"Constraint references unknown guest: {', '.join(missing)}")
        constraints.append(
            Constraint(
                id=_text(row.get("id", ""), f"constraint-{index + 1}") or f"constraint-{index + 1}",
                type=normalize_type(_text(row["type"])),
                guest_ids=members,
                priority=normalize_type(_text(row.get("priority", ""), "preferred")) or "preferred",
                description=_text(row.get("description", "")),
            )
        )
    return constraints


def load_all(
    guests_path: Source,
    relationships_path: Source,
    tables_path: Source,
    constraints_path: Optional[Source] = None,
):
    """Convenience wrapper returning guests (with relationships attached), tables and constraints."""
    guests = load_guests(guests_path)
    guest_ids = {g.id for g in guests}
    relationships = load_relationships(relationships_path, guest_ids)
    for g in guests:
        g.relationships = relationships.get(g.id, [])
    tables = load_tables(tables_path)
    constraints = load_constraints(constraints_path, guest_ids) if constraints_path else []
    return guests, tables, constraints
