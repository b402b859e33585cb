"""Support-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class RequestStatus(str, Enum):
    """Lifecycle of a support request."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


@dataclass
class SupportRequest:
    """A message a user sent to support."""

    user_id: int
    message: str
    created_at: datetime
    status: RequestStatus = RequestStatus.OPEN
    id: int | None = None
