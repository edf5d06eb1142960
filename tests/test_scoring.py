import pathlib
import sys

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import pytest

from seating_optimizer.models import Constraint, Guest, Relationship, Table
from seating_optimizer.scoring import (
    compute_table_stats,
    find_violations,
    grade_tables,
    score_arrangement,
    table_report,
)


def guest(gid, rels=(), rsvp="confirmed", table=None):
    return Guest(id=gid, name=gid.upper(), rsvp_status=rsvp, relationships=list(rels), table_id=table)


def test_empty_guest_list_scores_zero():
    assert score_arrangement([]) == 0
    assert score_arrangement(None) == 0


def test_affinity_pair_counts_once():
    guests = [
        guest("a", [Relationship("b", "partner", 5)], table="t1"),
        guest("b", [Relationship("a", "partner", 5)], table="t1"),
    ]
    assert score_arrangement(guests) == 5


def test_separated_pairs_score_zero():
    guests = [
        guest("a", [Relationship("b", "friend", 3)]),
        guest("b"),
    ]
    assert score_arrangement(guests, {"a": "t1", "b": "t2"}) == 0
    assert score_arrangement(guests, {"a": "t1", "b": None}) == 0
    assert score_arrangement(guests, {"a": "t1", "b": "t1"}) == 3


def test_repulsion_pair_is_penalized():
    guests = [guest("a", [Relationship("b", "keep-apart", 4)]), guest("b")]
    assert score_arrangement(guests, {"a": "t1", "b": "t1"}) == -4
    assert score_arrangement(guests, {"a": "t1", "b": "t2"}) == 0


def test_repulsion_dominates_conflicting_declarations():
    guests = [
        guest("a", [Relationship("b", "family", 5)]),
        guest("b", [Relationship("a", "avoid", 2)]),
    ]
    assert score_arrangement(guests, {"a": "t1", "b": "t1"}) == -2


def test_stronger_declaration_wins_within_a_class():
    guests = [
        guest("a", [Relationship("b", "friend", 2)]),
        guest("b", [Relationship("a", "partner", 5)]),
    ]
    assert score_arrangement(guests, {"a": "t1", "b": "t1"}) == 5


@pytest.mark.parametrize("rsvp", ["declined", "pending"])
def test_unconfirmed_guests_are_excluded(rsvp):
    guests = [
        guest("a", [Relationship("b", "partner", 5)], table="t1"),
        guest("b", [Relationship("a", "partner", 5)], rsvp=rsvp, table="t1"),
    ]
    assert score_arrangement(guests) == 0


def test_neutral_types_and_missing_guests_score_zero():
    guests = [guest("a", [Relationship("b", "neighbor", 5), Relationship("zed", "partner", 5)], table="t1"),
              guest("b", table="t1")]
    assert score_arrangement(guests) == 0


def test_scoring_is_deterministic():
    guests = [
        guest("a", [Relationship("b", "friend", 3), Relationship("c", "avoid", 2)], table="t1"),
        guest("b", table="t1"),
        guest("c", table="t1"),
    ]
    assert score_arrangement(guests) == score_arrangement(guests) == 1


def test_constraints_feed_the_score():
    guests = [guest("a", table="t1"), guest("b", table="t1"), guest("c", table="t1")]
    constraints = [
        Constraint("c1", "same_table", ["a", "b"], priority="required"),
        Constraint("c2", "different_table", ["b", "c"], priority="optional"),
        Constraint("c3", "near_front", ["a"], priority="required"),
    ]
    assert score_arrangement(guests, constraints=constraints) == 10 - 2


# ----------------------------- grading -----------------------------
def test_compute_table_stats():
    values = {frozenset(("a", "b")): 5, frozenset(("a", "c")): -3}
    stats = compute_table_stats(["a", "b", "c"], lambda x, y: values.get(frozenset((x, y)), 0))

    assert stats["total_score"] == 2
    assert stats["pair_count"] == 3
    assert stats["affinity_pairs"] == 1
    assert stats["repulsion_pairs"] == 1
    assert stats["neutral_pairs"] == 1
    assert stats["mean_score"] == pytest.approx(2 / 3)


def test_compute_table_stats_without_pairs():
    stats = compute_table_stats(["solo"], lambda x, y: 0)
    assert stats["pair_count"] == 0
    assert stats["mean_score"] == 0.0


@pytest.mark.parametrize("mean,grade", [(3.0, "A"), (2.5, "A"), (1.5, "B"), (1.0, "C"), (0.2, "D"), (0.0, "F"), (-2, "F")])
def test_grade_thresholds(mean, grade):
    assert grade_tables([{"mean_score": mean}])[0]["grade"] == grade


def test_repulsion_pair_fails_the_table():
    stats = [{"mean_score": 4.0, "repulsion_pairs": 1}, {"mean_score": 4.0, "repulsion_pairs": 0}]
    assert [s["grade"] for s in grade_tables(stats)] == ["F", "A"]


def test_table_report_lists_every_table():
    guests = [
        guest("a", [Relationship("b", "partner", 5)], table="t1"),
        guest("b", table="t1"),
        guest("c", table="t2"),
    ]
    report = table_report(guests, [Table("t1", "Head", 4), Table("t2", "Side", 4), Table("t3", "Empty", 4)])

    assert [r["table"] for r in report] == ["t1", "t2", "t3"]
    assert report[0]["members"] == ["a", "b"]
    assert report[0]["grade"] == "A"
    assert report[2]["members"] == []


# ----------------------------- violations -----------------------------
def test_violation_for_co_seated_avoid_pair_reported_once():
    guests = [
        guest("a", [Relationship("b", "avoid", 5)], table="t1"),
        guest("b", [Relationship("a", "avoid", 5)], table="t1"),
    ]
    violations = find_violations(guests)

    assert len(violations) == 1
    assert violations[0].kind == "avoid"
    assert violations[0].table_id == "t1"
    assert "A & B" in violations[0].description


def test_violations_for_constraints():
    guests = [guest("a", table="t1"), guest("b", table="t2"), guest("c", table="t2"), guest("d")]
    constraints = [
        Constraint("c1", "must_sit_together", ["a", "b"], priority="optional"),
        Constraint("c2", "must_not_sit_together", ["b", "c", "d"], priority="required"),
        Constraint("c3", "same_table", ["c", "d"]),
    ]
    violations = find_violations(guests, constraints)

    assert [(v.kind, v.priority) for v in violations] == [
        ("must_sit_together", "preferred"),
        ("must_not_sit_together", "required"),
    ]
    assert violations[1].guest_ids == ["b", "c"]
    assert violations[1].table_id == "t2"


def test_no_violations_for_custom_arrangement():
    guests = [guest("a", [Relationship("b", "avoid", 5)], table="t1"), guest("b", table="t1")]
    assert find_violations(guests, arrangement={"a": "t1", "b": "t2"}) == []


def test_pending_guests_are_not_reported():
    guests = [
        guest("p", [Relationship("c", "avoid", 5)], rsvp="pending", table="t1"),
        guest("c", [Relationship("p", "avoid", 5)], table="t1"),
    ]
    constraints = [Constraint("c1", "different_table", ["p", "c"], priority="required")]

    assert find_violations(guests, constraints) == []
    assert score_arrangement(guests, constraints=constraints) == 0


def test_constraint_without_guest_ids():
    guests = [guest("a", table="t1")]
    constraints = [Constraint("c1", "same_table", None), Constraint("c2", "different_table", None)]
    assert find_violations(guests, constraints) == []
