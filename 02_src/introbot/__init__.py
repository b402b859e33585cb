"""Intro bot core: onboarding dialog and weekly profile matching."""

from .app import Application, IApplication
from .clock import Clock, FixedClock, SystemClock
from .config import Settings
from .dialog import DialogStateMachine, SessionStore, SupportThrottle, ThrottleDecision
from .errors import (
    DeliveryError,
    IntroBotError,
    PairingError,
    PersistenceError,
    RecipientBlockedError,
    SimilarityComputationError,
)
from .matching import MatchingOrchestrator, PairingEngine, SimilarityScorer
from .messaging import IMessenger, OutboxMessenger
from .models import (
    DialogMode,
    DialogSession,
    MatchingRunResult,
    RunStatus,
    SimilarityPair,
    SupportRequest,
    UserProfile,
)
from .scheduler import DailyTrigger, Scheduler, WeeklyTrigger
from .storage import Storage

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Clock
    "Clock",
    "SystemClock",
    "FixedClock",
    # Models
    "UserProfile",
    "DialogMode",
    "DialogSession",
    "SupportRequest",
    "SimilarityPair",
    "MatchingRunResult",
    "RunStatus",
    # Errors
    "IntroBotError",
    "PersistenceError",
    "SimilarityComputationError",
    "PairingError",
    "DeliveryError",
    "RecipientBlockedError",
    # Components
    "Storage",
    "IMessenger",
    "OutboxMessenger",
    "SessionStore",
    "SupportThrottle",
    "ThrottleDecision",
    "DialogStateMachine",
    "SimilarityScorer",
    "PairingEngine",
    "MatchingOrchestrator",
    "Scheduler",
    "DailyTrigger",
    "WeeklyTrigger",
]
