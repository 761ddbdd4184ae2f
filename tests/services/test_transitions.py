"""
Unit tests for transition classification and the TransitionTracker.
"""

import pytest

from status_monitor.services.transitions import Transition, TransitionTracker, classify


@pytest.mark.parametrize(
    "prior, new, expected",
    [
        (None, "success", Transition.FIRST_OBSERVATION_UP),
        (None, "failure", Transition.FIRST_OBSERVATION_DOWN),
        (None, "timeout", Transition.FIRST_OBSERVATION_DOWN),
        ("success", "failure", Transition.UP_TO_DOWN),
        ("success", "timeout", Transition.UP_TO_DOWN),
        ("failure", "success", Transition.DOWN_TO_UP),
        ("timeout", "success", Transition.DOWN_TO_UP),
        ("success", "success", Transition.NO_CHANGE),
        ("failure", "timeout", Transition.NO_CHANGE),
        ("timeout", "failure", Transition.NO_CHANGE),
    ],
)
def test_classify(prior, new, expected) -> None:
    assert classify(new, prior) is expected


def test_tracker_records_every_observation() -> None:
    # Arrange
    tracker = TransitionTracker()

    # Act
    first = tracker.observe(1, "success")
    second = tracker.observe(1, "timeout")
    third = tracker.observe(1, "failure")
    fourth = tracker.observe(1, "success")

    # Assert
    assert [first, second, third, fourth] == [
        Transition.FIRST_OBSERVATION_UP,
        Transition.UP_TO_DOWN,
        Transition.NO_CHANGE,
        Transition.DOWN_TO_UP,
    ]
    assert tracker.last_status(1) == "success"


def test_tracker_keeps_endpoints_independent() -> None:
    tracker = TransitionTracker({1: "success"})

    assert tracker.observe(2, "failure") is Transition.FIRST_OBSERVATION_DOWN
    assert tracker.observe(1, "failure") is Transition.UP_TO_DOWN
    assert len(tracker) == 2


def test_seed_down_only_fills_unknown_endpoints() -> None:
    # Arrange
    tracker = TransitionTracker({1: "success"})

    # Act
    seeded = tracker.seed_down([1, 2, 3])

    # Assert
    assert seeded == 2
    assert tracker.last_status(1) == "success"
    assert tracker.observe(2, "success") is Transition.DOWN_TO_UP
    assert tracker.observe(3, "failure") is Transition.NO_CHANGE


def test_transition_flags() -> None:
    assert Transition.UP_TO_DOWN.opens_incident
    assert Transition.FIRST_OBSERVATION_DOWN.opens_incident
    assert not Transition.FIRST_OBSERVATION_UP.opens_incident
    assert Transition.DOWN_TO_UP.resolves_incident
    assert not Transition.NO_CHANGE.resolves_incident
