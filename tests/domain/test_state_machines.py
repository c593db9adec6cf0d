"""Tests for the order poller state machine."""

import pytest

from packstore.domain.exceptions import InvalidStateTransitionError
from packstore.domain.state_machines import PollerState, validate_poller_transition


class TestPollerStateMachine:
    """Tests for PollerState transitions."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (PollerState.VERIFYING_PAYMENT, PollerState.POLLING_FOR_ORDER),
            (PollerState.VERIFYING_PAYMENT, PollerState.ERROR),
            (PollerState.VERIFYING_PAYMENT, PollerState.NOT_FOUND_TIMEOUT),
            (PollerState.POLLING_FOR_ORDER, PollerState.FOUND),
            (PollerState.POLLING_FOR_ORDER, PollerState.ERROR),
            (PollerState.POLLING_FOR_ORDER, PollerState.NOT_FOUND_TIMEOUT),
        ],
    )
    def test_valid_transitions(self, current: PollerState, target: PollerState) -> None:
        assert current.can_transition_to(target)
        validate_poller_transition("cs_test", current, target)

    def test_found_only_from_polling(self) -> None:
        """An order cannot be found before payment is verified."""
        assert not PollerState.VERIFYING_PAYMENT.can_transition_to(PollerState.FOUND)

    @pytest.mark.parametrize(
        "state",
        [PollerState.FOUND, PollerState.NOT_FOUND_TIMEOUT, PollerState.ERROR],
    )
    def test_terminal_states(self, state: PollerState) -> None:
        assert state.is_terminal()
        assert state.allowed_transitions() == []

    def test_invalid_transition_raises(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_poller_transition("cs_test", PollerState.FOUND, PollerState.ERROR)

        assert exc_info.value.details["entity_id"] == "cs_test"
        assert exc_info.value.details["current_state"] == "found"
        assert exc_info.value.details["allowed_transitions"] == []
