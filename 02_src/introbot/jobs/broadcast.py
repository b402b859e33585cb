"""Daily broadcast of a queued message to every reachable user."""

from ..errors import DeliveryError, PersistenceError, RecipientBlockedError
from ..logging_config import get_logger
from ..messaging import IMessenger
from ..storage import Storage

logger = get_logger(__name__)


class DailyBroadcast:
    """Sends the oldest unsent daily message to all profiles that did not block the bot."""

    def __init__(self, storage: Storage, messenger: IMessenger):
        self._storage = storage
        self._messenger = messenger

    async def run(self) -> int:
        """Send one queued message. Returns the number of users it reached."""
        daily_message = await self._storage.get_unsent_daily_message()
        if daily_message is None:
            logger.info("No unsent daily messages found.")
            return 0

        delivered = 0
        for profile in await self._storage.list_profiles():
            if profile.is_bot_blocked:
                continue
            try:
                await self._messenger.send_text(profile.user_id, daily_message.text)
                delivered += 1
            except RecipientBlockedError:
                logger.warning(f"User {profile.user_id} blocked the bot, marking profile")
                try:
                    await self._storage.set_bot_blocked(profile.user_id, True)
                except PersistenceError as e:
                    logger.error(f"Could not mark {profile.user_id} as bot-blocked: {e}")
            except DeliveryError as e:
                logger.error(f"Daily message to {profile.user_id} failed: {e}")

        await self._storage.mark_daily_message_sent(daily_message.id)
        logger.info(f"Daily message {daily_message.id} sent to {delivered} users.")
        return delivered
