"""
Order lifecycle state machine. Orders start ACTIVE; DELIVERED and CANCELLED are terminal.
"""
from purevia.errors import InvalidTransition

ACTIVE = "ACTIVE"
DELIVERED = "DELIVERED"
CANCELLED = "CANCELLED"

# Current status -> allowed next status
VALID_TRANSITIONS: dict[str, list[str]] = {
    ACTIVE: [DELIVERED, CANCELLED],
    DELIVERED: [],  # terminal
    CANCELLED: [],  # terminal
}


def is_valid_transition(current_status: str, new_status: str) -> bool:
    """True if new_status is allowed after current_status."""
    allowed = VALID_TRANSITIONS.get(current_status, [])
    return new_status in allowed


def ensure_transition(current_status: str, new_status: str) -> None:
    if not is_valid_transition(current_status, new_status):
        raise InvalidTransition(current_status, new_status)
