import pathlib
import sys

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import io

import pytest

from seating_optimizer import csv_loader

DATA_DIR = pathlib.Path(__file__).parent / "data"


def test_load_guests():
    guests = csv_loader.load_guests(DATA_DIR / "guests.csv")

    assert len(guests) == 12
    assert guests[0].id == "g1"
    assert guests[0].name == "Alice Moreau"
    assert guests[0].is_confirmed
    assert guests[0].table_id is None
    assert guests[10].rsvp_status == "pending"
    assert guests[11].is_declined
    assert guests[11].table_id == "t1"
    assert guests[11].seat_index == 0


def test_load_tables():
    tables = csv_loader.load_tables(DATA_DIR / "tables.csv")
    assert [(t.id, t.name, t.capacity) for t in tables] == [
        ("t1", "Head Table", 4),
        ("t2", "Family Table", 4),
        ("t3", "Friends Table", 4),
    ]


def test_load_relationships_keyed_by_declaring_guest():
    relationships = csv_loader.load_relationships(DATA_DIR / "relationships.csv")

    assert [r.guest_id for r in relationships["g1"]] == ["g2", "g12"]
    assert relationships["g6"][0].type == "avoid"
    assert relationships["g6"][0].strength == 5
    assert relationships["g6"][0].notes == "business dispute"
    assert "g9" not in relationships


def test_load_relationships_rejects_unknown_guest():
    csv_text = io.StringIO("guest1_id,guest2_id,relationship,strength\ng1,nobody,friend,2\n")
    with pytest.raises(ValueError):
        csv_loader.load_relationships(csv_text, {"g1"})


def test_load_constraints():
    constraints = csv_loader.load_constraints(DATA_DIR / "constraints.csv")

    assert constraints[0].type == "must_not_sit_together"
    assert constraints[0].guest_ids == ["g1", "g3"]
    assert constraints[0].priority == "required"
    assert constraints[1].priority == "preferred"
    assert constraints[1].description == ""


def test_load_constraints_rejects_unknown_guest():
    csv_text = io.StringIO("id,type,guest_ids,priority\nc1,same_table,g1|ghost,required\n")
    with pytest.raises(ValueError):
        csv_loader.load_constraints(csv_text, {"g1"})


def test_load_all_attaches_relationships():
    guests, tables, constraints = csv_loader.load_all(
        DATA_DIR / "guests.csv",
        DATA_DIR / "relationships.csv",
        DATA_DIR / "tables.csv",
        DATA_DIR / "constraints.csv",
    )
    by_id = {g.id: g for g in guests}

    assert len(tables) == 3
    assert len(constraints) == 2
    assert [r.guest_id for r in by_id["g3"].relationships] == ["g4", "g5"]
    assert by_id["g10"].relationships == []


def test_load_guests_with_seating_hints():
    csv_text = io.StringIO(
        "id,name,rsvp,group,interests,industry\n"
        "g1,Ana,confirmed,Bride family,jazz| hiking,design\n"
        "g2,Ben,confirmed,,,\n"
    )
    guests = csv_loader.load_guests(csv_text)

    assert guests[0].group == "Bride family"
    assert guests[0].interests == ["jazz", "hiking"]
    assert guests[0].industry == "design"
    assert guests[1].group is None
    assert guests[1].interests == []
    assert guests[1].industry is None
