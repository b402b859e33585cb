"""Weekly matching run: pair eligible users and introduce them to each other."""

from dataclasses import replace
from typing import Protocol

from ..clock import Clock, SystemClock
from ..dialog.profile_view import send_introduction
from ..errors import (
    DeliveryError,
    IntroBotError,
    PairingError,
    PersistenceError,
    RecipientBlockedError,
    SimilarityComputationError,
)
from ..logging_config import get_logger
from ..messaging import IMessenger
from ..models import MatchingRunResult, RunStatus, UserProfile
from ..storage import IProfileRepository, IRunResultSink
from ..tracker import ITracker
from .pairing import PairingEngine

logger = get_logger(__name__)


class IMatchingOrchestrator(Protocol):
    """Runs one matching batch."""

    async def run_matching(self) -> MatchingRunResult:
        """Pair users, send introductions and record the run."""
        ...


class MatchingOrchestrator:
    """Runs the Pairing Engine over visible users and dispatches introductions.

    Callers must not start a run while another one is in progress.
    """

    def __init__(
        self,
        profiles: IProfileRepository,
        results: IRunResultSink,
        messenger: IMessenger,
        engine: PairingEngine | None = None,
        tracker: ITracker | None = None,
        clock: Clock | None = None,
        special_user_id: int | None = None,
    ):
        self._profiles = profiles
        self._results = results
        self._messenger = messenger
        self._engine = engine or PairingEngine()
        self._tracker = tracker
        self._clock = clock or SystemClock()
        self._special_user_id = special_user_id

    async def run_matching(self) -> MatchingRunResult:
        """Pair users, send introductions and record the run."""
        executed_at = self._clock.now()
        logger.info("Starting matching run")

        try:
            users = await self._profiles.list_visible_profiles()
            pairing = self._engine.match(users)
        except (PersistenceError, SimilarityComputationError, PairingError) as e:
            logger.error(f"Matching run failed: {e}", exc_info=True)
            result = MatchingRunResult(
                executed_at=executed_at, status=RunStatus.FAILED, error=str(e)
            )
            return await self._finish(result)

        logger.info(f"Similarity pairs: {[p.label for p in pairing.pairs]}")

        pairs = tuple(pairing.pairs)
        unpaired_ids = tuple(u.user_id for u in pairing.unpaired)
        by_id = {u.user_id: u for u in users}
        try:
            for pair in pairing.pairs:
                first, second = by_id[pair.user_id_1], by_id[pair.user_id_2]
                await self._introduce(first.user_id, second)
                await self._introduce(second.user_id, first)

            fallback_user_id = await self._handle_unpaired(pairing.unpaired)
        except IntroBotError as e:
            # Introductions sent before the failure stay sent
            logger.error(f"Matching run aborted during dispatch: {e}", exc_info=True)
            result = MatchingRunResult(
                executed_at=executed_at,
                status=RunStatus.FAILED,
                pairs=pairs,
                unpaired_user_ids=unpaired_ids,
                error=str(e),
            )
            return await self._finish(result)

        result = MatchingRunResult(
            executed_at=executed_at,
            status=RunStatus.SUCCESS,
            pairs=pairs,
            unpaired_user_ids=unpaired_ids,
            fallback_user_id=fallback_user_id,
        )
        return await self._finish(result)

    async def _handle_unpaired(self, unpaired: list[UserProfile]) -> int | None:
        """Introduce the leftover user to the special user. Returns the special id if done."""
        if not unpaired:
            return None

        leftover = unpaired[0]
        if self._special_user_id is None:
            logger.warning(f"User {leftover.user_id} unpaired and no special user configured")
            return None
        if leftover.user_id == self._special_user_id:
            logger.info("Special user is the leftover, no fallback introduction")
            return None

        await self._introduce(self._special_user_id, leftover)
        try:
            special_profile = await self._profiles.load_profile(self._special_user_id)
        except PersistenceError as e:
            logger.error(f"Could not load special user profile: {e}", exc_info=True)
            special_profile = None
        if special_profile is not None:
            await self._introduce(leftover.user_id, special_profile)

        logger.info(f"Unpaired user {leftover.user_id} sent to special user")
        return self._special_user_id

    async def _introduce(self, recipient_id: int, profile: UserProfile) -> bool:
        try:
            await send_introduction(self._messenger, recipient_id, profile)
            return True
        except RecipientBlockedError:
            logger.warning(f"User {recipient_id} blocked the bot, marking profile")
            try:
                await self._profiles.set_bot_blocked(recipient_id, True)
            except PersistenceError as e:
                logger.error(f"Could not mark {recipient_id} as bot-blocked: {e}")
        except DeliveryError as e:
            logger.error(f"Introduction to {recipient_id} failed: {e}", exc_info=True)
        return False

    async def _finish(self, result: MatchingRunResult) -> MatchingRunResult:
        try:
            result_id = await self._results.save_matching_result(result)
            result = replace(result, id=result_id)
        except PersistenceError as e:
            logger.error(f"Could not save matching result: {e}", exc_info=True)

        if self._tracker is not None:
            await self._tracker.track(
                event_type="matching_run_finished",
                actor="matching",
                data={
                    "status": result.status.value,
                    "pairs": [p.label for p in result.pairs],
                    "unpaired": list(result.unpaired_user_ids),
                    "error": result.error,
                },
            )
        logger.info(
            f"Matching run finished with status {result.status.value}",
            extra={"run_status": result.status.value},
        )
        return result
