"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def clock():
    """Fixed clock on a Monday morning."""
    from introbot.clock import FixedClock

    return FixedClock(datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from introbot.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def messenger(storage, clock):
    """Outbox messenger writing into the test storage."""
    from introbot.messaging import OutboxMessenger

    return OutboxMessenger(storage, clock)


@pytest.fixture
def tracker(storage, clock):
    from introbot.tracker import Tracker

    return Tracker(storage, clock)


@pytest.fixture
def sessions():
    from introbot.dialog import SessionStore

    return SessionStore()


@pytest.fixture
def throttle(storage, clock):
    from introbot.dialog import SupportThrottle

    return SupportThrottle(storage, clock, window_minutes=15)


@pytest.fixture
def machine(sessions, storage, messenger, throttle, tracker, clock):
    """Dialog state machine wired to in-memory storage."""
    from introbot.dialog import DialogStateMachine

    return DialogStateMachine(
        sessions=sessions,
        profiles=storage,
        support=storage,
        messenger=messenger,
        throttle=throttle,
        tracker=tracker,
        clock=clock,
    )


@pytest.fixture
def outbox(storage):
    """Return a coroutine function listing the messages sent to a user."""

    async def _outbox(user_id: int, after_id: int | None = None):
        return await storage.get_outgoing_messages(user_id, after_id=after_id)

    return _outbox


def make_profile(user_id: int, topic: str = "", fun_fact: str = "", **kwargs):
    """Build a completed profile with sensible defaults."""
    from introbot.models import UserProfile

    return UserProfile(
        user_id=user_id,
        name=kwargs.pop("name", f"User {user_id}"),
        age=kwargs.pop("age", "30"),
        discussion_topic=topic,
        fun_fact=fun_fact,
        **kwargs,
    )
