"""Daily snapshot of profile counts."""

from ..clock import Clock, SystemClock
from ..logging_config import get_logger
from ..models import ProfileStatistics
from ..storage import Storage

logger = get_logger(__name__)


class StatisticsCollector:
    """Counts profiles by flag and stores the snapshot for today."""

    def __init__(self, storage: Storage, clock: Clock | None = None):
        self._storage = storage
        self._clock = clock or SystemClock()

    async def run(self) -> ProfileStatistics:
        logger.info("Collecting profile statistics.")
        counts = await self._storage.count_profiles()
        stats = ProfileStatistics(date=self._clock.now().date(), **counts)
        await self._storage.save_profile_statistics(stats)
        logger.info(
            f"Profile statistics collected: Total = {stats.total}, Visible = {stats.visible}, "
            f"Banned = {stats.banned}, BotBlocked = {stats.bot_blocked}, "
            f"Eligible = {stats.eligible}"
        )
        return stats
