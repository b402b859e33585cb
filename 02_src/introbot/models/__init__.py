"""Core data models for the intro bot."""

from .dialog import PROFILE_STEPS, DialogMode, DialogSession
from .matching import MatchingRunResult, RunStatus, SimilarityPair
from .messaging import Button, Contact, DailyMessage, OutgoingMessage
from .profile import ProfileStatistics, UserProfile
from .support import RequestStatus, SupportRequest
from .tracing import TraceEvent

__all__ = [
    # Profile
    "UserProfile",
    "ProfileStatistics",
    # Dialog
    "DialogMode",
    "DialogSession",
    "PROFILE_STEPS",
    # Support
    "SupportRequest",
    "RequestStatus",
    # Matching
    "SimilarityPair",
    "MatchingRunResult",
    "RunStatus",
    # Messaging
    "Button",
    "Contact",
    "OutgoingMessage",
    "DailyMessage",
    # Tracing
    "TraceEvent",
]
