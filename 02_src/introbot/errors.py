"""Exception hierarchy shared across the intro bot."""


class IntroBotError(Exception):
    """Base class for all intro bot errors."""


class PersistenceError(IntroBotError):
    """A storage operation failed."""


class SimilarityComputationError(IntroBotError):
    """Profile texts could not be turned into a similarity matrix."""


class PairingError(IntroBotError):
    """The pairing pass produced an inconsistent result."""


class DeliveryError(IntroBotError):
    """An outgoing message could not be delivered."""


class RecipientBlockedError(DeliveryError):
    """The recipient has blocked the bot."""

    def __init__(self, user_id: int, message: str | None = None):
        super().__init__(message or f"User {user_id} blocked the bot")
        self.user_id = user_id
