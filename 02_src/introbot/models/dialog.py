"""Dialog-related data models."""

from dataclasses import dataclass
from enum import Enum

from .profile import UserProfile

PROFILE_STEPS = 4


class DialogMode(str, Enum):
    """Conversational flow a user is currently in."""

    NONE = "none"
    PROFILE = "profile"
    SUPPORT = "support"


@dataclass(frozen=True)
class DialogSession:
    """Transient per-user dialog state.

    ``step`` is set only in PROFILE mode and a PROFILE session always carries
    a draft. Use the ``profile``/``support`` constructors to build one.
    """

    mode: DialogMode
    step: int | None = None
    draft: UserProfile | None = None

    def __post_init__(self) -> None:
        if self.mode is DialogMode.PROFILE:
            if self.step is None or not 1 <= self.step <= PROFILE_STEPS:
                raise ValueError(f"Invalid profile step: {self.step}")
            if self.draft is None:
                raise ValueError("Profile session requires a draft")
        elif self.step is not None:
            raise ValueError(f"Step is only meaningful in PROFILE mode, got {self.mode}")

    @classmethod
    def profile(cls, draft: UserProfile, step: int = 1) -> "DialogSession":
        return cls(mode=DialogMode.PROFILE, step=step, draft=draft)

    @classmethod
    def support(cls) -> "DialogSession":
        return cls(mode=DialogMode.SUPPORT)
