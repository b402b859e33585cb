"""Profile-related data models."""

from dataclasses import dataclass
from datetime import date


@dataclass
class UserProfile:
    """Answers a user gave in the profile dialog plus moderation flags."""

    user_id: int
    name: str = ""
    age: str = ""  # free text, never parsed
    discussion_topic: str = ""
    fun_fact: str = ""
    is_visible: bool = True
    is_banned: bool = False
    is_bot_blocked: bool = False

    @property
    def is_eligible(self) -> bool:
        """Visible, not banned and reachable."""
        return self.is_visible and not self.is_banned and not self.is_bot_blocked

    @property
    def matching_text(self) -> str:
        """Text the similarity scorer compares."""
        return f"{self.discussion_topic}\n{self.fun_fact}"


@dataclass
class ProfileStatistics:
    """Daily snapshot of profile counts."""

    date: date
    total: int
    visible: int
    banned: int
    bot_blocked: int
    eligible: int
