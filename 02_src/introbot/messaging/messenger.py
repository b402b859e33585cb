"""Messenger protocol and the outbox implementation."""

from typing import Protocol

from ..clock import Clock, SystemClock
from ..errors import DeliveryError
from ..logging_config import get_logger
from ..models import Button, Contact
from ..storage import Storage

logger = get_logger(__name__)


class IMessenger(Protocol):
    """Outgoing side of the chat transport."""

    async def send_text(self, user_id: int, text: str) -> int:
        """Send plain text. Returns the message id."""
        ...

    async def send_text_with_buttons(
        self, user_id: int, text: str, buttons: list[Button]
    ) -> int:
        """Send text with inline buttons. Returns the message id."""
        ...

    async def edit_text(
        self,
        user_id: int,
        message_id: int,
        text: str,
        buttons: list[Button] | None = None,
    ) -> None:
        """Replace the text (and buttons) of a message sent earlier."""
        ...

    async def send_photo(self, user_id: int, photo_ref: str) -> int:
        """Send a photo by reference. Returns the message id."""
        ...

    async def get_contact(self, user_id: int) -> Contact | None:
        """Alias and photo of a user, if the transport knows them."""
        ...


class OutboxMessenger:
    """Records outgoing messages in Storage for a transport to pick up."""

    def __init__(self, storage: Storage, clock: Clock | None = None):
        self._storage = storage
        self._clock = clock or SystemClock()

    async def send_text(self, user_id: int, text: str) -> int:
        return await self._storage.add_outgoing_message(
            user_id, "text", self._clock.now(), text=text
        )

    async def send_text_with_buttons(
        self, user_id: int, text: str, buttons: list[Button]
    ) -> int:
        return await self._storage.add_outgoing_message(
            user_id, "text", self._clock.now(), text=text, buttons=buttons
        )

    async def edit_text(
        self,
        user_id: int,
        message_id: int,
        text: str,
        buttons: list[Button] | None = None,
    ) -> None:
        message = await self._storage.get_outgoing_message(message_id)
        if message is None or message.user_id != user_id:
            raise DeliveryError(f"Message {message_id} not found for user {user_id}")
        if message.kind != "text":
            raise DeliveryError(f"Message {message_id} has no text to edit")
        await self._storage.update_outgoing_message(
            message_id, text, buttons, self._clock.now()
        )
        logger.debug(f"Edited message {message_id} for {user_id}")

    async def send_photo(self, user_id: int, photo_ref: str) -> int:
        return await self._storage.add_outgoing_message(
            user_id, "photo", self._clock.now(), photo_ref=photo_ref
        )

    async def get_contact(self, user_id: int) -> Contact | None:
        return await self._storage.get_contact(user_id)
