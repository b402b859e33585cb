"""Dialog state machine: commands, button callbacks and the profile/support flows."""

from dataclasses import replace
from typing import Awaitable, Callable, Protocol

from ..clock import Clock, SystemClock
from ..errors import DeliveryError, PersistenceError
from ..logging_config import get_logger
from ..messaging import IMessenger
from ..models import (
    PROFILE_STEPS,
    Button,
    DialogMode,
    DialogSession,
    RequestStatus,
    SupportRequest,
    UserProfile,
)
from ..storage import IProfileRepository, ISupportRepository
from ..tracker import ITracker
from . import texts
from .profile_view import render_profile_preview
from .session_store import SessionStore
from .throttle import SupportThrottle

logger = get_logger(__name__)

DEFAULT_MAX_ANSWER_LENGTH = 255
DEFAULT_MAX_SUPPORT_LENGTH = 2000

# Profile field filled by each step
STEP_FIELDS = {
    1: "name",
    2: "age",
    3: "discussion_topic",
    4: "fun_fact",
}

CommandHandler = Callable[[int], Awaitable[None]]
CallbackHandler = Callable[[int, int | None], Awaitable[None]]


class IDialogStateMachine(Protocol):
    """Interprets incoming updates of one user at a time."""

    async def handle_incoming(
        self,
        user_id: int,
        text: str | None = None,
        callback: str | None = None,
        message_id: int | None = None,
    ) -> None:
        """Handle one inbound update: a command, a button callback or a dialog answer."""
        ...

    async def dispatch(
        self,
        user_id: int,
        text: str | None = None,
        callback: str | None = None,
        message_id: int | None = None,
    ) -> None:
        ...


class DialogStateMachine:
    """Drives the per-user onboarding and support dialogs."""

    def __init__(
        self,
        sessions: SessionStore,
        profiles: IProfileRepository,
        support: ISupportRepository,
        messenger: IMessenger,
        throttle: SupportThrottle,
        tracker: ITracker | None = None,
        clock: Clock | None = None,
        max_answer_length: int = DEFAULT_MAX_ANSWER_LENGTH,
        max_support_length: int = DEFAULT_MAX_SUPPORT_LENGTH,
        name_prompt_photo: str | None = None,
    ):
        self._sessions = sessions
        self._profiles = profiles
        self._support = support
        self._messenger = messenger
        self._throttle = throttle
        self._tracker = tracker
        self._clock = clock or SystemClock()
        self._max_answer_length = max_answer_length
        self._max_support_length = max_support_length
        self._name_prompt_photo = name_prompt_photo

        self._commands: dict[str, CommandHandler] = {
            "/start": self._handle_start,
            "/profile": self._handle_profile,
            "/help": self._handle_help,
            "/restart": self._handle_restart,
            "/support": self._handle_support,
        }
        self._callbacks: dict[str, CallbackHandler] = {
            texts.CALLBACK_START: self._handle_start_acknowledged,
            texts.CALLBACK_ACCEPTED: self._handle_info_acknowledged,
            texts.CALLBACK_TOGGLE_VISIBILITY: self._handle_toggle_visibility,
        }

    async def handle_incoming(
        self,
        user_id: int,
        text: str | None = None,
        callback: str | None = None,
        message_id: int | None = None,
    ) -> None:
        """Handle one inbound update: a command, a button callback or a dialog answer."""
        async with self._sessions.lock(user_id):
            await self.dispatch(user_id, text, callback, message_id)

    async def dispatch(
        self,
        user_id: int,
        text: str | None = None,
        callback: str | None = None,
        message_id: int | None = None,
    ) -> None:
        """Same as handle_incoming for a caller already holding the user's session lock."""
        text = (text or "").strip()

        if text.startswith("/"):
            logger.info(f"Command: {text[:100]}", extra={"user_id": user_id})
            await self._handle_command(user_id, text)
        elif callback:
            logger.info(f"Callback: {callback}", extra={"user_id": user_id})
            await self._handle_callback(user_id, callback, message_id)
        elif text:
            logger.info(f"Message received: {text[:100]}...", extra={"user_id": user_id})
            await self._handle_dialog(user_id, text)
        else:
            logger.debug(f"Ignoring empty update from {user_id}")

    # Dispatch
    async def _handle_command(self, user_id: int, text: str) -> None:
        command = text.split(maxsplit=1)[0].split("@", 1)[0].lower()
        handler = self._commands.get(command)
        if handler is None:
            await self._messenger.send_text(user_id, texts.UNKNOWN_COMMAND)
            return
        await handler(user_id)

    async def _handle_callback(
        self, user_id: int, callback: str, message_id: int | None
    ) -> None:
        handler = self._callbacks.get(callback)
        if handler is None:
            await self._messenger.send_text(user_id, texts.UNKNOWN_COMMAND)
            return
        await handler(user_id, message_id)

    async def _handle_dialog(self, user_id: int, text: str) -> None:
        session = self._sessions.get(user_id)
        if session is None:
            await self._messenger.send_text(user_id, texts.BEGIN_WITH_START)
            return

        if session.mode is DialogMode.PROFILE:
            await self._handle_profile_answer(user_id, session, text)
        elif session.mode is DialogMode.SUPPORT:
            await self._handle_support_message(user_id, text)

    # Commands
    async def _handle_start(self, user_id: int) -> None:
        await self._messenger.send_text_with_buttons(
            user_id, texts.load_message("start"), [texts.START_BUTTON]
        )

    async def _handle_profile(self, user_id: int) -> None:
        session = self._sessions.get(user_id)
        if session is not None and session.mode is DialogMode.SUPPORT:
            self._sessions.remove(user_id)

        profile = await self._profiles.load_profile(user_id)
        if profile is None:
            await self._messenger.send_text(user_id, texts.PROFILE_NOT_FOUND)
            return
        await self._send_profile_view(user_id, profile)

    async def _handle_help(self, user_id: int) -> None:
        await self._messenger.send_text(user_id, texts.load_message("help"))

    async def _handle_restart(self, user_id: int) -> None:
        self._sessions.remove(user_id)
        try:
            await self._profiles.delete_profile(user_id)
        except PersistenceError as e:
            logger.error(f"Failed to delete profile of {user_id}: {e}", exc_info=True)
            await self._messenger.send_text(user_id, texts.PROFILE_SAVE_FAILED)
            return
        await self._track("dialog_restarted", {"user_id": user_id})
        await self._ask_full_name(user_id)

    async def _handle_support(self, user_id: int) -> None:
        decision = await self._throttle.check(user_id)
        if not decision.allowed:
            await self._messenger.send_text(
                user_id,
                texts.SUPPORT_RECENTLY_CONTACTED.format(minutes=decision.minutes_remaining),
            )
            return

        self._sessions.put(user_id, DialogSession.support())
        await self._messenger.send_text(user_id, self._support_prompt())

    # Callbacks
    async def _handle_start_acknowledged(self, user_id: int, message_id: int | None) -> None:
        await self._edit_or_send(
            user_id, message_id, texts.load_message("start") + texts.START_ACKNOWLEDGED
        )
        await self._messenger.send_text_with_buttons(
            user_id, texts.load_message("info"), [texts.ACCEPT_BUTTON]
        )

    async def _handle_info_acknowledged(self, user_id: int, message_id: int | None) -> None:
        await self._edit_or_send(
            user_id, message_id, texts.load_message("info") + texts.INFO_ACKNOWLEDGED
        )
        await self._ask_full_name(user_id)

    async def _handle_toggle_visibility(self, user_id: int, message_id: int | None) -> None:
        profile = await self._profiles.load_profile(user_id)
        if profile is None:
            await self._messenger.send_text(user_id, texts.PROFILE_NOT_FOUND)
            return

        updated = replace(profile, is_visible=not profile.is_visible)
        try:
            await self._profiles.save_profile(updated)
        except PersistenceError as e:
            logger.error(f"Failed to toggle visibility of {user_id}: {e}", exc_info=True)
            await self._messenger.send_text(user_id, texts.PROFILE_SAVE_FAILED)
            return

        await self._track(
            "visibility_toggled", {"user_id": user_id, "is_visible": updated.is_visible}
        )
        await self._send_profile_view(user_id, updated, message_id)

    # Profile flow
    async def _ask_full_name(self, user_id: int) -> None:
        existing = await self._profiles.load_profile(user_id)
        draft = replace(existing) if existing else UserProfile(user_id=user_id)
        self._sessions.put(user_id, DialogSession.profile(draft))
        logger.debug(f"User {user_id} entered profile flow (existing={existing is not None})")

        if existing is None and self._name_prompt_photo:
            await self._messenger.send_photo(user_id, self._name_prompt_photo)
        await self._messenger.send_text(user_id, texts.STEP_PROMPTS[1])

    async def _handle_profile_answer(
        self, user_id: int, session: DialogSession, text: str
    ) -> None:
        step = session.step
        if len(text) > self._max_answer_length:
            await self._messenger.send_text(
                user_id, texts.ANSWER_TOO_LONG.format(limit=self._max_answer_length)
            )
            await self._messenger.send_text(user_id, texts.STEP_PROMPTS[step])
            return

        draft = replace(session.draft, **{STEP_FIELDS[step]: text})

        if step < PROFILE_STEPS:
            self._sessions.put(user_id, DialogSession.profile(draft, step + 1))
            logger.debug(f"User {user_id} moved to profile step {step + 1}")
            await self._messenger.send_text(user_id, texts.STEP_PROMPTS[step + 1])
            return

        try:
            draft = await self._with_stored_flags(draft)
            await self._profiles.save_profile(draft)
        except PersistenceError as e:
            logger.error(f"Failed to save profile of {user_id}: {e}", exc_info=True)
            self._sessions.put(user_id, DialogSession.profile(draft, step))
            await self._messenger.send_text(user_id, texts.PROFILE_SAVE_FAILED)
            return

        self._sessions.remove(user_id)
        await self._track("profile_completed", {"user_id": user_id})
        await self._send_profile_view(user_id, draft)

    async def _with_stored_flags(self, draft: UserProfile) -> UserProfile:
        """Answers from the draft, visibility and moderation flags as stored now."""
        stored = await self._profiles.load_profile(draft.user_id)
        if stored is None:
            return draft
        return replace(
            draft,
            is_visible=stored.is_visible,
            is_banned=stored.is_banned,
            is_bot_blocked=stored.is_bot_blocked,
        )

    async def _send_profile_view(
        self, user_id: int, profile: UserProfile, message_id: int | None = None
    ) -> None:
        contact = await self._messenger.get_contact(user_id)
        view = render_profile_preview(profile, contact)
        if message_id is None and contact and contact.photo_ref:
            await self._messenger.send_photo(user_id, contact.photo_ref)
        await self._edit_or_send(user_id, message_id, view, texts.PROFILE_BUTTONS)

    # Support flow
    async def _handle_support_message(self, user_id: int, text: str) -> None:
        if len(text) > self._max_support_length:
            await self._messenger.send_text(
                user_id, texts.SUPPORT_TOO_LONG.format(limit=self._max_support_length)
            )
            await self._messenger.send_text(user_id, self._support_prompt())
            return

        decision = await self._throttle.check(user_id)
        if not decision.allowed:
            await self._messenger.send_text(
                user_id,
                texts.SUPPORT_TOO_FREQUENT.format(
                    window=self._throttle.window_minutes,
                    minutes=decision.minutes_remaining,
                ),
            )
            return

        request = SupportRequest(
            user_id=user_id,
            message=text,
            status=RequestStatus.OPEN,
            created_at=self._clock.now(),
        )
        try:
            request_id = await self._support.save_support_request(request)
        except PersistenceError as e:
            logger.error(f"Failed to save support request of {user_id}: {e}", exc_info=True)
            await self._messenger.send_text(user_id, texts.SUPPORT_SAVE_FAILED)
            return

        self._sessions.remove(user_id)
        await self._track(
            "support_request_created", {"user_id": user_id, "request_id": request_id}
        )
        await self._messenger.send_text(user_id, texts.SUPPORT_SENT)

    def _support_prompt(self) -> str:
        return texts.SUPPORT_PROMPT.format(
            limit=self._max_support_length, window=self._throttle.window_minutes
        )

    # Helpers
    async def _edit_or_send(
        self,
        user_id: int,
        message_id: int | None,
        text: str,
        buttons: list[Button] | None = None,
    ) -> None:
        """Edit the message a button was pressed on, or send a new one."""
        if message_id is not None:
            try:
                await self._messenger.edit_text(user_id, message_id, text, buttons)
                return
            except DeliveryError as e:
                logger.warning(f"Could not edit message {message_id} for {user_id}: {e}")

        if buttons:
            await self._messenger.send_text_with_buttons(user_id, text, buttons)
        else:
            await self._messenger.send_text(user_id, text)

    async def _track(self, event_type: str, data: dict) -> None:
        if self._tracker is not None:
            await self._tracker.track(event_type=event_type, actor="dialog", data=data)
