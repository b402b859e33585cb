"""User-facing texts and buttons of the dialog."""

from functools import lru_cache
from pathlib import Path

from ..models import Button

MESSAGES_DIR = Path(__file__).parent / "messages"

CALLBACK_START = "start"
CALLBACK_ACCEPTED = "accepted"
CALLBACK_TOGGLE_VISIBILITY = "toggle_visibility"

START_BUTTON = Button("Let's go 🚀", CALLBACK_START)
ACCEPT_BUTTON = Button("Got it 😊", CALLBACK_ACCEPTED)
PROFILE_BUTTONS = [
    Button("Edit", CALLBACK_ACCEPTED),
    Button("Change visibility", CALLBACK_TOGGLE_VISIBILITY),
]

START_ACKNOWLEDGED = "\n\n➪ Let's go 🚀"
INFO_ACKNOWLEDGED = "\n\n➪ Got it 🫡"

UNKNOWN_COMMAND = "Unknown command. Try /start."
BEGIN_WITH_START = "Please begin with /start."
PROFILE_NOT_FOUND = "Profile not found. Please fill it in with /start."

STEP_PROMPTS = {
    1: "Please enter your first and last name.",
    2: "Please tell us your age.",
    3: "👀 What would you like to talk about?",
    4: "Please share a fun fact about yourself.",
}
ANSWER_TOO_LONG = "Your answer is too long. Please shorten it to {limit} characters."
PROFILE_SAVE_FAILED = "Something went wrong while saving your profile. Please try again."

PROFILE_PREVIEW_HEADER = (
    "This is how your profile will look in the message we send to your partner:\n⏬\n"
)
PROFILE_VISIBLE = "\n✅ Your profile is visible."
PROFILE_HIDDEN = "\n❌ Nobody can see your profile right now."
PROFILE_LINK = '<a href="tg://user?id={user_id}">User profile</a>'

SUPPORT_PROMPT = (
    "Please describe your problem. The maximum message length is {limit} characters. "
    "You can send at most one message every {window} minutes. "
    "If you changed your mind, press /profile."
)
SUPPORT_RECENTLY_CONTACTED = (
    "You already contacted support recently. Please wait {minutes} more minutes."
)
SUPPORT_TOO_FREQUENT = (
    "You can send only one message every {window} minutes. "
    "Please wait {minutes} more minutes."
)
SUPPORT_TOO_LONG = "Your message is too long. Please shorten it to {limit} characters."
SUPPORT_SENT = "Your support request has been sent. Thank you!"
SUPPORT_SAVE_FAILED = "Something went wrong while saving your request. Please try again."

WEEKLY_INTRO = (
    "Hi! 👋\n"
    "Your conversation partner for this week:\n"
    "{profile}\n"
    "Don't put it off: agree on a meeting right away. "
    "For the first meeting we recommend a public place you both know 💻\n\n"
    "Questions? Write to /support 😉"
)


@lru_cache(maxsize=None)
def load_message(name: str) -> str:
    """Read a long message template from the messages directory."""
    path = MESSAGES_DIR / f"{name}.txt"
    return path.read_text(encoding="utf-8").strip()
