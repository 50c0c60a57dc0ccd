"""Inbound platform events.

A closed set of tagged variants, discriminated on ``kind``. The transport
in front of subctl (webhook receiver, long poller) hands raw Bot API
updates to :func:`classify_update`, which picks exactly one variant or
returns ``None`` for shapes subctl does not act on.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

ACTIVE_MEMBERSHIP = "active"

# Bot API chat member statuses that mean "inside the group".
_PRESENT_STATUSES = frozenset({"member", "administrator", "creator"})


class Member(BaseModel):
    """One account listed in a :class:`NewMembers` event."""

    model_config = {"frozen": True}

    external_id: str
    handle: str | None = None
    display_name: str | None = None
    is_automated: bool = False


class NewMembers(BaseModel):
    model_config = {"frozen": True}

    kind: Literal["new_members"] = "new_members"
    members: list[Member]


class MembershipChanged(BaseModel):
    """An account's membership changed; ``new_status`` is normalized.

    ``"active"`` means the account is now inside the group. Anything else
    (``"left"``, ``"banned"``) is acknowledged without action.
    """

    model_config = {"frozen": True}

    kind: Literal["membership_changed"] = "membership_changed"
    external_id: str
    handle: str | None = None
    display_name: str | None = None
    new_status: str


class AdminMessage(BaseModel):
    model_config = {"frozen": True}

    kind: Literal["admin_message"] = "admin_message"
    sender_id: str
    text: str


class ChannelIdentified(BaseModel):
    """The bot learned the id of the group it manages."""

    model_config = {"frozen": True}

    kind: Literal["channel_identified"] = "channel_identified"
    channel_id: str
    title: str | None = None


InboundEvent = Annotated[
    NewMembers | MembershipChanged | AdminMessage | ChannelIdentified,
    Field(discriminator="kind"),
]

inbound_event_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


# ---------------------------------------------------------------------------
# Classification of raw Bot API updates
# ---------------------------------------------------------------------------


def classify_update(update: dict[str, Any]) -> InboundEvent | None:
    """Map a raw Bot API update to an inbound event variant.

    Already-typed payloads (carrying a ``kind`` key) are validated directly.
    """
    if "kind" in update:
        return inbound_event_adapter.validate_python(update)

    message = update.get("message")
    if isinstance(message, dict):
        if message.get("new_chat_members"):
            return NewMembers(members=[_member(u) for u in message["new_chat_members"]])
        sender = message.get("from") or {}
        text = message.get("text")
        if text and "id" in sender:
            return AdminMessage(sender_id=str(sender["id"]), text=text)
        return None

    chat_member = update.get("chat_member")
    if isinstance(chat_member, dict):
        new = chat_member.get("new_chat_member") or {}
        user = new.get("user") or {}
        if "id" not in user:
            return None
        return MembershipChanged(
            external_id=str(user["id"]),
            handle=user.get("username"),
            display_name=_display_name(user),
            new_status=_normalize_membership(new),
        )

    my_chat_member = update.get("my_chat_member")
    if isinstance(my_chat_member, dict):
        chat = my_chat_member.get("chat") or {}
        new = my_chat_member.get("new_chat_member") or {}
        if chat.get("type") != "private" and new.get("status") in _PRESENT_STATUSES:
            return ChannelIdentified(channel_id=str(chat["id"]), title=chat.get("title"))
        return None

    channel_post = update.get("channel_post")
    if isinstance(channel_post, dict):
        chat = channel_post.get("chat") or {}
        if "id" in chat:
            return ChannelIdentified(channel_id=str(chat["id"]), title=chat.get("title"))

    return None


def _member(user: dict[str, Any]) -> Member:
    return Member(
        external_id=str(user["id"]),
        handle=user.get("username"),
        display_name=_display_name(user),
        is_automated=bool(user.get("is_bot", False)),
    )


def _display_name(user: dict[str, Any]) -> str | None:
    parts = [user.get("first_name"), user.get("last_name")]
    name = " ".join(p for p in parts if p)
    return name or None


def _normalize_membership(chat_member: dict[str, Any]) -> str:
    status = chat_member.get("status")
    if status in _PRESENT_STATUSES:
        return ACTIVE_MEMBERSHIP
    if status == "restricted":
        return ACTIVE_MEMBERSHIP if chat_member.get("is_member") else "left"
    if status == "kicked":
        return "banned"
    return "left"
