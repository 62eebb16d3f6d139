"""Brew-date polls: starting, closing on majority, and opening the brew channel."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from brewbot.board import update_blackboard
from brewbot.db import Database, Poll, RotationMember
from brewbot.interactions import (
    CommandError,
    Interaction,
    Reaction,
    Session,
    ephemeral_response,
)

POLL_EMOJIS = ("1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟")
DEFAULT_VOTERS = 2
UNDECIDED_DATE = "TBD"

log = logging.getLogger(__name__)


def dedupe_dates(dates: Iterable[str]) -> list[str]:
    """Drop repeated dates, keeping the first occurrence of each."""
    return list(dict.fromkeys(dates))


def majority_threshold(members: Iterable[RotationMember]) -> int:
    """Votes needed to win: a strict majority of the active rotation."""
    active = sum(1 for m in members if m.active) or DEFAULT_VOTERS
    return active // 2 + 1


def channel_slug(name: str) -> str:
    """Lower-case ``name`` with spaces turned into hyphens."""
    return name.replace(" ", "-").lower()


def _reaction_votes(message: dict) -> list[tuple[str, int]]:
    # Each count includes the bot's own priming reaction.
    return [
        ((r.get("emoji") or {}).get("name") or "", r.get("count", 0) - 1)
        for r in message.get("reactions") or []
    ]


async def start_poll(session: Session, db: Database, interaction: Interaction) -> None:
    """Post a vote over the proposed dates and prime it with reactions."""
    guild_id = interaction.guild_id
    if db.get_open_poll(guild_id) is not None:
        raise CommandError("there's already an open poll — use `/closepoll` to close it first")

    proposed = db.get_proposed_dates(guild_id)
    if not proposed:
        raise CommandError("no dates proposed yet — use `/propose` first")

    dates = dedupe_dates(pd.date for pd in proposed)[: len(POLL_EMOJIS)]
    options = list(zip(POLL_EMOJIS, dates))

    lines = "".join(f"{emoji}  {date}\n" for emoji, date in options)
    content = (
        "🍺 **Vote for the next brew date!**\n\n"
        + lines
        + "\nReact with your choice. First option to reach majority wins!"
    )

    await session.respond(interaction, ephemeral_response("📊 Starting poll..."))

    try:
        msg = await session.send_message(interaction.channel_id, content)
    except Exception as exc:
        raise CommandError(f"sending poll message: {exc}") from exc

    poll_id = db.create_poll(guild_id, interaction.channel_id)
    db.set_poll_message(poll_id, msg["id"])
    for emoji, date in options:
        db.add_poll_option(poll_id, emoji, date)

    for emoji, _ in options:
        try:
            await session.add_reaction(interaction.channel_id, msg["id"], emoji)
        except Exception as exc:
            log.warning("priming reaction %s failed: %s", emoji, exc)


async def close_poll(session: Session, db: Database, interaction: Interaction) -> None:
    """Close the open poll by hand, picking the most-voted date."""
    poll = db.get_open_poll(interaction.guild_id)
    if poll is None:
        raise CommandError("no open poll")
    await session.respond(interaction, ephemeral_response("Closing poll..."))
    await close_poll_and_create_channel(session, db, interaction.guild_id, poll, "")


async def check_poll_reaction(session: Session, db: Database, reaction: Reaction) -> None:
    """Close the poll once any option reaches a majority of the active rotation."""
    poll, options = db.get_poll_by_message(reaction.message_id)
    if poll is None or poll.status != "open":
        return

    majority = majority_threshold(db.get_rotation(reaction.guild_id))
    message = await session.get_message(reaction.channel_id, reaction.message_id)

    for emoji, votes in _reaction_votes(message):
        if votes < majority:
            continue
        for option in options:
            if option.emoji == emoji:
                await close_poll_and_create_channel(
                    session, db, reaction.guild_id, poll, option.date
                )
                return


async def close_poll_and_create_channel(
    session: Session, db: Database, guild_id: str, poll: Poll, winning_date: str
) -> None:
    """Record the winner, schedule the next brewer and open their brew channel."""
    if not winning_date:
        winning_date = await pick_winner(session, db, poll)
    if not winning_date:
        winning_date = UNDECIDED_DATE

    db.close_poll(poll.id, winning_date)
    db.clear_proposed_dates(guild_id)

    brewer = db.next_brewer(guild_id)
    if brewer is None:
        await session.send_message(
            poll.channel_id,
            f"🏆 **Poll closed!** Winning date: **{winning_date}**\n\n"
            "⚠️ No brewers in rotation — use `/rotation add @user` to set up the rotation.",
        )
        return

    brew_id = db.create_brew(guild_id, brewer.user_id, brewer.username, winning_date)

    poll_channel = await session.get_channel(poll.channel_id)
    channel_name = f"brew-{channel_slug(brewer.username)}"
    try:
        new_channel = await session.create_channel(
            guild_id, channel_name, parent_id=poll_channel.get("parent_id") or ""
        )
    except Exception as exc:
        raise CommandError(f"creating brew channel: {exc}") from exc
    new_id = new_channel["id"]

    db.set_brew_channel(brew_id, new_id)
    db.skip_brewer(guild_id, brewer.user_id)

    welcome = (
        "📌 **Brew Planning**\n"
        f"🍺 **Brewer:** <@{brewer.user_id}>\n"
        f"📅 **Date:** {winning_date}\n\n"
        f"<@{brewer.user_id}> — run `/recipe submit` to add your recipe. "
        "The channel will be renamed to your brew name once you do!"
    )
    try:
        pin = await session.send_message(new_id, welcome)
        await session.pin_message(new_id, pin["id"])
    except Exception as exc:
        log.warning("welcome message in %s failed: %s", new_id, exc)

    await update_blackboard(session, db, guild_id)

    await session.send_message(
        poll.channel_id,
        f"🏆 **Poll closed!** Winning date: **{winning_date}**\n"
        f"🍺 **Brewer:** <@{brewer.user_id}>\n"
        f"📣 Brew channel: <#{new_id}>\n\n"
        f"<@{brewer.user_id}> head over and submit your recipe!",
    )


async def pick_winner(session: Session, db: Database, poll: Poll) -> str:
    """The date of the most-reacted option, or "" if it cannot be determined."""
    if not poll.message_id:
        return ""
    try:
        message = await session.get_message(poll.channel_id, poll.message_id)
    except Exception as exc:
        log.warning("reading poll message failed: %s", exc)
        return ""

    options = db.get_poll_options(poll.id)
    best = -1
    winner = ""
    for emoji, votes in _reaction_votes(message):
        if votes > best:
            best = votes
            for option in options:
                if option.emoji == emoji:
                    winner = option.date
    return winner