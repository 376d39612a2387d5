"""Submission state machine and busy-flag transitions."""

from __future__ import annotations

from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    """Finite state machine for a single submission lifecycle."""

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    AWAITING_CONTEXT = "AWAITING_CONTEXT"
    SENDING = "SENDING"
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"


class StateManager:
    """Track the current submission state.

    All transitions run on the event loop thread without awaiting, so a
    check-and-set through ``transition_if`` cannot interleave with another
    task.
    """

    def __init__(self) -> None:
        self._state = SubmissionState.IDLE

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state == SubmissionState.IDLE

    @property
    def is_sending(self) -> bool:
        return self._state == SubmissionState.SENDING

    def transition_to(self, new_state: SubmissionState) -> SubmissionState:
        """Transition to a new state and return it."""
        LOGGER.debug(
            "session.state.transition",
            extra={
                "event": "session.state.transition",
                "from_state": self._state.value,
                "to_state": new_state.value,
            },
        )
        self._state = new_state
        return self._state

    def transition_if(
        self,
        expected_state: SubmissionState,
        new_state: SubmissionState,
    ) -> bool:
        """Transition only when current state matches expected state."""
        if self._state != expected_state:
            return False
        self.transition_to(new_state)
        return True
