"""Rendering of profiles for previews and weekly introductions."""

from html import escape

from ..messaging import IMessenger
from ..models import Contact, UserProfile
from . import texts


def contact_info(user_id: int, contact: Contact | None) -> str:
    """Alias when the transport knows a usable one, else a deep link to the user."""
    alias = contact.alias if contact else None
    if alias and alias != "@null":
        return alias if alias.startswith("@") else f"@{alias}"
    return texts.PROFILE_LINK.format(user_id=user_id)


def format_profile(profile: UserProfile, contact: str) -> str:
    return (
        f"<b>{escape(profile.name)}</b>, {escape(profile.age)}\n"
        f"💬 Would like to talk about: {escape(profile.discussion_topic)}\n"
        f"✨ Fun fact: {escape(profile.fun_fact)}\n"
        f"📇 Contact: {contact}"
    )


def render_profile_preview(profile: UserProfile, contact: Contact | None) -> str:
    """Profile as its owner sees it, with the visibility status line."""
    visibility = texts.PROFILE_VISIBLE if profile.is_visible else texts.PROFILE_HIDDEN
    return (
        texts.PROFILE_PREVIEW_HEADER
        + format_profile(profile, contact_info(profile.user_id, contact))
        + visibility
    )


def render_introduction(profile: UserProfile, contact: Contact | None) -> str:
    """Weekly message introducing ``profile`` to its partner."""
    return texts.WEEKLY_INTRO.format(
        profile=format_profile(profile, contact_info(profile.user_id, contact))
    )


async def send_introduction(
    messenger: IMessenger, recipient_id: int, profile: UserProfile
) -> None:
    """Send ``profile`` (photo first when known) to ``recipient_id``."""
    contact = await messenger.get_contact(profile.user_id)
    if contact and contact.photo_ref:
        await messenger.send_photo(recipient_id, contact.photo_ref)
    await messenger.send_text(recipient_id, render_introduction(profile, contact))
