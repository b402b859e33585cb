"""Messaging-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal


@dataclass(frozen=True)
class Button:
    """Inline button: visible label plus the callback token it sends back."""

    label: str
    callback: str


@dataclass
class Contact:
    """What the transport knows about a user's account."""

    user_id: int
    alias: str | None = None
    photo_ref: str | None = None


@dataclass
class OutgoingMessage:
    """A message queued for delivery to a user."""

    id: int
    user_id: int
    kind: Literal["text", "photo"]
    created_at: datetime
    text: str | None = None
    buttons: list[Button] = field(default_factory=list)
    photo_ref: str | None = None
    edited_at: datetime | None = None


@dataclass
class DailyMessage:
    """Broadcast text queued for the daily job."""

    id: int
    text: str
    created_at: datetime
    sent: bool = False
