"""Matching-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RunStatus(str, Enum):
    """Outcome of one matching run."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SimilarityPair:
    """Unordered pair of users with their similarity score."""

    user_id_1: int
    user_id_2: int
    score: float

    def __post_init__(self) -> None:
        if self.user_id_1 == self.user_id_2:
            raise ValueError("A user cannot be paired with themselves")
        if self.user_id_1 > self.user_id_2:
            a, b = self.user_id_2, self.user_id_1
            object.__setattr__(self, "user_id_1", a)
            object.__setattr__(self, "user_id_2", b)

    @property
    def label(self) -> str:
        return f"{self.user_id_1} <-> {self.user_id_2}"

    def other(self, user_id: int) -> int:
        """Return the partner of ``user_id``."""
        if user_id == self.user_id_1:
            return self.user_id_2
        if user_id == self.user_id_2:
            return self.user_id_1
        raise KeyError(user_id)


@dataclass(frozen=True)
class MatchingRunResult:
    """Summary of a matching run, immutable once built."""

    executed_at: datetime
    status: RunStatus
    pairs: tuple[SimilarityPair, ...] = field(default_factory=tuple)
    unpaired_user_ids: tuple[int, ...] = field(default_factory=tuple)
    error: str | None = None
    fallback_user_id: int | None = None
    id: int | None = None
