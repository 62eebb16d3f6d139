"""Interaction and reaction events, reply payloads and the session interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol


class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


RESPONSE_CHANNEL_MESSAGE = 4
RESPONSE_AUTOCOMPLETE_RESULT = 8
EPHEMERAL_FLAG = 64


class CommandError(Exception):
    """A command failed; the message is shown to the user who ran it."""


@dataclass
class Member:
    user_id: str
    username: str
    nick: str = ""


@dataclass
class Option:
    name: str
    type: int = 0
    value: Any = None
    options: list[Option] = field(default_factory=list)

    def get(self, name: str) -> Option | None:
        """The nested option called ``name``, if it was supplied."""
        return next((o for o in self.options if o.name == name), None)


@dataclass
class Interaction:
    id: str
    token: str
    type: int
    command_name: str = ""
    application_id: str = ""
    guild_id: str = ""
    channel_id: str = ""
    member: Member | None = None
    options: list[Option] = field(default_factory=list)
    resolved_users: dict[str, str] = field(default_factory=dict)

    def option(self, name: str) -> Option | None:
        """The top-level option called ``name``, if it was supplied."""
        return next((o for o in self.options if o.name == name), None)

    def display_name(self) -> str:
        """Server nickname, falling back to the username."""
        if self.member is None:
            return "unknown"
        return self.member.nick or self.member.username


@dataclass
class Reaction:
    user_id: str
    channel_id: str
    message_id: str
    guild_id: str
    emoji: str


class Session(Protocol):
    """The chat-service operations the command handlers rely on."""

    async def send_message(self, channel_id: str, content: str) -> dict: ...

    async def edit_message(self, channel_id: str, message_id: str, content: str) -> dict: ...

    async def pin_message(self, channel_id: str, message_id: str) -> None: ...

    async def get_message(self, channel_id: str, message_id: str) -> dict: ...

    async def get_channel(self, channel_id: str) -> dict: ...

    async def create_channel(
        self, guild_id: str, name: str, parent_id: str = "", topic: str = ""
    ) -> dict: ...

    async def edit_channel_name(self, channel_id: str, name: str) -> dict: ...

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None: ...

    async def respond(self, interaction: Interaction, response: dict) -> None: ...

    async def get_user(self, user_id: str) -> dict: ...


def ephemeral_response(content: str) -> dict[str, Any]:
    """A reply only the invoking user can see."""
    return {
        "type": RESPONSE_CHANNEL_MESSAGE,
        "data": {"content": content, "flags": EPHEMERAL_FLAG},
    }


def public_response(content: str) -> dict[str, Any]:
    """A reply visible to everyone in the channel."""
    return {"type": RESPONSE_CHANNEL_MESSAGE, "data": {"content": content}}


def _parse_options(raw: list[dict[str, Any]] | None) -> list[Option]:
    return [
        Option(
            name=o["name"],
            type=o.get("type", 0),
            value=o.get("value"),
            options=_parse_options(o.get("options")),
        )
        for o in raw or []
    ]


def _parse_member(raw: dict[str, Any] | None) -> Member | None:
    if not raw:
        return None
    user = raw.get("user") or {}
    return Member(
        user_id=str(user.get("id", "")),
        username=user.get("username") or "",
        nick=raw.get("nick") or "",
    )


def parse_interaction(payload: dict[str, Any]) -> Interaction:
    """Build an Interaction from an INTERACTION_CREATE event body."""
    data = payload.get("data") or {}
    users = (data.get("resolved") or {}).get("users") or {}
    return Interaction(
        id=str(payload["id"]),
        token=payload["token"],
        type=payload["type"],
        command_name=data.get("name", ""),
        application_id=str(payload.get("application_id", "")),
        guild_id=payload.get("guild_id") or "",
        channel_id=payload.get("channel_id") or "",
        member=_parse_member(payload.get("member")),
        options=_parse_options(data.get("options")),
        resolved_users={uid: u.get("username", "") for uid, u in users.items()},
    )


def parse_reaction(payload: dict[str, Any]) -> Reaction:
    """Build a Reaction from a MESSAGE_REACTION_ADD event body."""
    emoji = payload.get("emoji") or {}
    return Reaction(
        user_id=payload["user_id"],
        channel_id=payload["channel_id"],
        message_id=payload["message_id"],
        guild_id=payload.get("guild_id") or "",
        emoji=emoji.get("name") or "",
    )