import pathlib
import sys

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from seating_optimizer import Guest, OptimizationResult, SeatAssignment
from seating_optimizer.config import OptimizerConfig
from seating_optimizer.models import normalize_type, parse_optional_int, parse_pipe_list


def test_guest_instantiation():
    guest = Guest(id="g1", name="Alex")
    assert guest.name == "Alex"
    assert guest.rsvp_status == "pending"
    assert guest.relationships == []
    assert guest.table_id is None
    assert not guest.is_confirmed
    assert guest.group is None
    assert guest.interests == []
    assert guest.industry is None


def test_rsvp_status_is_case_insensitive():
    assert Guest(id="a", rsvp_status="Confirmed").is_confirmed
    assert Guest(id="b", rsvp_status=" DECLINED ").is_declined


def test_parse_helpers():
    assert parse_pipe_list("a| b ||c") == ["a", "b", "c"]
    assert parse_pipe_list(float("nan")) == []
    assert parse_pipe_list(None) == []
    assert parse_optional_int("3") == 3
    assert parse_optional_int("2.0") == 2
    assert parse_optional_int("") is None
    assert parse_optional_int(float("nan")) is None
    assert normalize_type("Seat-Together") == "seat_together"


def test_config_classifies_types():
    config = OptimizerConfig()
    assert config.classify("partner") == "affinity"
    assert config.classify("keep_apart") == "repulsion"
    assert config.classify("neighbor") is None
    assert config.strength_for_priority("required") == 10
    assert config.strength_for_priority("unheard_of") == 5


def test_result_revert_and_dict():
    result = OptimizationResult(
        before_score=1.0,
        after_score=6.0,
        moved_guests=["a"],
        newly_seated=1,
        updates=[SeatAssignment("a", "t1", 0)],
        previous={"a": SeatAssignment("a", None, None)},
    )

    assert result.revert_updates() == [SeatAssignment("a", None, None)]
    assert result.to_dict() == {
        "beforeScore": 1.0,
        "afterScore": 6.0,
        "movedGuests": ["a"],
        "newlySeated": 1,
        "updates": [{"guestId": "a", "tableId": "t1", "seatIndex": 0}],
        "violations": [],
    }
