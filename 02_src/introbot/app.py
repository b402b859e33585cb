"""Application bootstrap and lifecycle management."""

import asyncio
from typing import Protocol

from .clock import Clock, SystemClock
from .config import Settings
from .dialog import DialogStateMachine, SessionStore, SupportThrottle
from .jobs import DailyBroadcast, StatisticsCollector
from .logging_config import get_logger
from .matching import MatchingOrchestrator, PairingEngine, SimilarityScorer
from .messaging import IMessenger, OutboxMessenger
from .models import MatchingRunResult
from .scheduler import DailyTrigger, Scheduler, WeeklyTrigger
from .storage import Storage
from .tracker import Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Drop all stored data and dialog sessions."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        db_path: str | None = None,
        clock: Clock | None = None,
        messenger: IMessenger | None = None,
        run_scheduler: bool = True,
    ):
        self._settings = settings or Settings.from_env()
        self._db_path = db_path if db_path is not None else self._settings.db_path
        self._clock = clock or SystemClock()
        self._custom_messenger = messenger
        self._run_scheduler = run_scheduler
        self._matching_lock = asyncio.Lock()

        # Components (will be initialized in start())
        self._storage: Storage | None = None
        self._messenger: IMessenger | None = None
        self._tracker: Tracker | None = None
        self._sessions: SessionStore | None = None
        self._dialog: DialogStateMachine | None = None
        self._orchestrator: MatchingOrchestrator | None = None
        self._broadcast: DailyBroadcast | None = None
        self._statistics: StatisticsCollector | None = None
        self._scheduler: Scheduler | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Messenger and Tracker (depend on Storage)
        self._messenger = self._custom_messenger or OutboxMessenger(self._storage, self._clock)
        self._tracker = Tracker(self._storage, self._clock)

        # 3. Dialog (sessions, throttle, state machine)
        self._sessions = SessionStore()
        throttle = SupportThrottle(
            self._storage, self._clock, window_minutes=settings.support_cooldown_minutes
        )
        self._dialog = DialogStateMachine(
            sessions=self._sessions,
            profiles=self._storage,
            support=self._storage,
            messenger=self._messenger,
            throttle=throttle,
            tracker=self._tracker,
            clock=self._clock,
            max_answer_length=settings.max_answer_length,
            max_support_length=settings.max_support_length,
            name_prompt_photo=settings.name_prompt_photo,
        )
        logger.info("Dialog state machine initialized")

        # 4. Matching and the daily jobs
        self._orchestrator = MatchingOrchestrator(
            profiles=self._storage,
            results=self._storage,
            messenger=self._messenger,
            engine=PairingEngine(SimilarityScorer()),
            tracker=self._tracker,
            clock=self._clock,
            special_user_id=settings.special_user_id,
        )
        self._broadcast = DailyBroadcast(self._storage, self._messenger)
        self._statistics = StatisticsCollector(self._storage, self._clock)

        # 5. Scheduler (depends on everything above)
        self._scheduler = Scheduler(self._clock, poll_interval=settings.scheduler_poll_seconds)
        tz = settings.schedule_timezone
        self._scheduler.register(
            "matching",
            WeeklyTrigger(settings.matching_weekday, settings.matching_hour, timezone=tz),
            self.run_matching,
        )
        self._scheduler.register(
            "daily_broadcast", DailyTrigger(settings.broadcast_hour, timezone=tz), self._broadcast.run
        )
        self._scheduler.register(
            "statistics", DailyTrigger(settings.statistics_hour, timezone=tz), self._statistics.run
        )
        if self._run_scheduler:
            self._scheduler.start()
            logger.info("Scheduler started")

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._scheduler:
            await self._scheduler.stop()
        if self._sessions is not None:
            self._sessions.clear()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Drop all stored data and dialog sessions."""
        if self._sessions is not None:
            self._sessions.clear()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    async def run_matching(self) -> MatchingRunResult:
        """Run matching, waiting for a run already in progress to finish first."""
        async with self._matching_lock:
            return await self.orchestrator.run_matching()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def storage(self) -> Storage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def dialog(self) -> DialogStateMachine:
        """Get dialog state machine."""
        if not self._dialog:
            raise RuntimeError("Application not started")
        return self._dialog

    @property
    def sessions(self) -> SessionStore:
        if self._sessions is None:
            raise RuntimeError("Application not started")
        return self._sessions

    @property
    def orchestrator(self) -> MatchingOrchestrator:
        if not self._orchestrator:
            raise RuntimeError("Application not started")
        return self._orchestrator

    @property
    def broadcast(self) -> DailyBroadcast:
        if not self._broadcast:
            raise RuntimeError("Application not started")
        return self._broadcast

    @property
    def statistics(self) -> StatisticsCollector:
        if not self._statistics:
            raise RuntimeError("Application not started")
        return self._statistics

    @property
    def scheduler(self) -> Scheduler:
        if not self._scheduler:
            raise RuntimeError("Application not started")
        return self._scheduler
