"""State machine for order materialization polling.

After the payment redirect returns, the poller confirms payment and then
waits for the webhook-created order record to appear.

State diagram:
    VERIFYING_PAYMENT ──────────────┬──────────────► ERROR
      │                             │
      │ paid                        │ ceiling
      ▼                             ▼
    POLLING_FOR_ORDER ──────► NOT_FOUND_TIMEOUT
      │          │
      │ 2xx      │ non-404 failure
      ▼          ▼
    FOUND      ERROR
"""

from enum import Enum

from packstore.domain.exceptions import InvalidStateTransitionError


class PollerState(str, Enum):
    """Order materialization poller states."""

    VERIFYING_PAYMENT = "verifying_payment"
    POLLING_FOR_ORDER = "polling_for_order"
    FOUND = "found"
    NOT_FOUND_TIMEOUT = "not_found_timeout"
    ERROR = "error"

    def can_transition_to(self, target: "PollerState") -> bool:
        return target in _POLLER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["PollerState"]:
        return sorted(_POLLER_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Terminal states accept no further transitions."""
        return len(_POLLER_TRANSITIONS.get(self, set())) == 0


_POLLER_TRANSITIONS: dict[PollerState, set[PollerState]] = {
    PollerState.VERIFYING_PAYMENT: {
        PollerState.POLLING_FOR_ORDER,
        PollerState.ERROR,
        PollerState.NOT_FOUND_TIMEOUT,
    },
    PollerState.POLLING_FOR_ORDER: {
        PollerState.FOUND,
        PollerState.ERROR,
        PollerState.NOT_FOUND_TIMEOUT,
    },
    PollerState.FOUND: set(),  # Terminal state
    PollerState.NOT_FOUND_TIMEOUT: set(),  # Terminal state
    PollerState.ERROR: set(),  # Terminal state
}


def validate_poller_transition(
    session_id: str,
    current_state: PollerState,
    target_state: PollerState,
) -> None:
    """Validate and raise if a poller transition is invalid.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_state.can_transition_to(target_state):
        raise InvalidStateTransitionError(
            entity_type="OrderPoller",
            entity_id=session_id,
            current_state=current_state.value,
            target_state=target_state.value,
            allowed_transitions=[s.value for s in current_state.allowed_transitions()],
        )
