"""Deal lifecycle: transition table and state machine."""

from src.deals.fsm import (
    evaluate_status_transition,
    evaluate_transition,
    get_available_transitions,
    is_terminal,
    requires_quote,
    triggers_rating,
)

__all__ = [
    "evaluate_status_transition",
    "evaluate_transition",
    "get_available_transitions",
    "is_terminal",
    "requires_quote",
    "triggers_rating",
]
