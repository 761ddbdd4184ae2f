"""Transition detection between consecutive probe outcomes."""
from enum import Enum
from typing import Dict, Iterable, Optional

from ..models.ping_log import PING_FAILURE, PING_SUCCESS


class Transition(str, Enum):
    """Classification of a new outcome against the previous one."""

    FIRST_OBSERVATION_UP = "first_observation_up"
    FIRST_OBSERVATION_DOWN = "first_observation_down"
    UP_TO_DOWN = "up_to_down"
    DOWN_TO_UP = "down_to_up"
    NO_CHANGE = "no_change"

    @property
    def opens_incident(self) -> bool:
        return self in (Transition.UP_TO_DOWN, Transition.FIRST_OBSERVATION_DOWN)

    @property
    def resolves_incident(self) -> bool:
        return self is Transition.DOWN_TO_UP


def is_up(status: str) -> bool:
    """Only ``success`` counts as up; failure and timeout are equally down."""
    return status == PING_SUCCESS


def classify(new_status: str, prior_status: Optional[str]) -> Transition:
    """Pure classification of ``new_status`` given the prior status or None."""
    if prior_status is None:
        return Transition.FIRST_OBSERVATION_UP if is_up(new_status) else Transition.FIRST_OBSERVATION_DOWN
    if is_up(prior_status) and not is_up(new_status):
        return Transition.UP_TO_DOWN
    if not is_up(prior_status) and is_up(new_status):
        return Transition.DOWN_TO_UP
    return Transition.NO_CHANGE


class TransitionTracker:
    """Last observed status per endpoint for the lifetime of the process.

    Owned by the monitoring service and written only from its sequential
    per-tick loop.
    """

    def __init__(self, initial: Optional[Dict[int, str]] = None):
        self._last_status: Dict[int, str] = dict(initial or {})

    def observe(self, endpoint_id: int, new_status: str) -> Transition:
        """Classify the new outcome, then record it as the last status."""
        try:
            return classify(new_status, self._last_status.get(endpoint_id))
        finally:
            self._last_status[endpoint_id] = new_status

    def last_status(self, endpoint_id: int) -> Optional[str]:
        return self._last_status.get(endpoint_id)

    def seed_down(self, endpoint_ids: Iterable[int]) -> int:
        """Mark endpoints as down unless already observed; returns how many were seeded."""
        seeded = 0
        for endpoint_id in endpoint_ids:
            if endpoint_id not in self._last_status:
                self._last_status[endpoint_id] = PING_FAILURE
                seeded += 1
        return seeded

    def __len__(self) -> int:
        return len(self._last_status)
