"""Dialog module."""

from .machine import DialogStateMachine, IDialogStateMachine
from .session_store import SessionStore
from .throttle import SupportThrottle, ThrottleDecision

__all__ = [
    "DialogStateMachine",
    "IDialogStateMachine",
    "SessionStore",
    "SupportThrottle",
    "ThrottleDecision",
]
