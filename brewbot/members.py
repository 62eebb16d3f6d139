"""Member-facing commands: proposing dates, the rotation, rating and ABV."""

from __future__ import annotations

import logging
import sqlite3

from brewbot.board import post_or_update_stats_card, update_blackboard
from brewbot.cards import average_rating, build_abv_report, star_bar
from brewbot.db import Brew, Database
from brewbot.interactions import (
    CommandError,
    Interaction,
    Option,
    Session,
    ephemeral_response,
    public_response,
)

NOT_A_BREW_CHANNEL = "this command only works in a brew channel"

log = logging.getLogger(__name__)


def _brew_here(db: Database, interaction: Interaction) -> Brew:
    brew = db.get_brew_by_channel(interaction.channel_id)
    if brew is None:
        raise CommandError(NOT_A_BREW_CHANNEL)
    return brew


def parse_dates(raw: str) -> list[str]:
    """Split a comma-separated list of dates, dropping blank entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


# --- /propose ---


async def handle_propose(session: Session, db: Database, interaction: Interaction) -> None:
    """Record proposed brew dates and list everything proposed so far."""
    option = interaction.option("dates")
    dates = parse_dates(str(option.value) if option and option.value is not None else "")
    if not dates:
        raise CommandError(
            "no dates found — use comma-separated dates, e.g. `March 15, March 22`"
        )

    username = interaction.display_name()
    try:
        db.add_proposed_dates(interaction.guild_id, username, dates)
    except sqlite3.Error as exc:
        raise CommandError(f"saving dates: {exc}") from exc

    proposed = db.get_proposed_dates(interaction.guild_id)
    lines = "".join(f"• {pd.date} _(by {pd.proposed_by})_\n" for pd in proposed)
    content = (
        f"📅 **{username}** proposed: {', '.join(dates)}\n\n"
        "**All proposed dates so far:**\n"
        + lines
        + "\nRun `/startpoll` when everyone has proposed to kick off the vote."
    )
    await session.respond(interaction, public_response(content))


# --- /rotation ---


async def _user_of(session: Session, interaction: Interaction, option: Option) -> tuple[str, str]:
    user_id = str(option.value)
    username = interaction.resolved_users.get(user_id)
    if not username:
        user = await session.get_user(user_id)
        username = user.get("username", "")
    return user_id, username


async def handle_rotation(session: Session, db: Database, interaction: Interaction) -> None:
    """Dispatch /rotation to its subcommand."""
    if not interaction.options:
        return
    sub = interaction.options[0]
    if sub.name == "list":
        await _rotation_list(session, db, interaction)
    elif sub.name == "add":
        await _rotation_add(session, db, interaction, sub)
    elif sub.name == "skip":
        await _rotation_skip(session, db, interaction, sub)
    elif sub.name == "next":
        await _rotation_next(session, db, interaction)


async def _rotation_list(session: Session, db: Database, interaction: Interaction) -> None:
    members = db.get_rotation(interaction.guild_id)
    if not members:
        await session.respond(
            interaction,
            ephemeral_response(
                "No brewers in rotation yet. Use `/rotation add @user` to add members."
            ),
        )
        return

    lines = ["**🍺 Brew Rotation**\n"]
    for place, member in enumerate(members, start=1):
        marker = "👉" if place == 1 and member.active else "   "
        status = "" if member.active else " _(inactive)_"
        lines.append(f"{marker} {place}. <@{member.user_id}>{status}\n")
    await session.respond(interaction, public_response("".join(lines)))


async def _rotation_add(
    session: Session, db: Database, interaction: Interaction, sub: Option
) -> None:
    option = sub.get("user")
    if option is None:
        raise CommandError("a user is required")
    user_id, username = await _user_of(session, interaction, option)
    db.add_rotation_member(interaction.guild_id, user_id, username)
    await session.respond(
        interaction, public_response(f"✅ <@{user_id}> added to the rotation.")
    )


async def _rotation_skip(
    session: Session, db: Database, interaction: Interaction, sub: Option
) -> None:
    option = sub.get("user")
    if option is None:
        raise CommandError("a user is required")
    user_id = str(option.value)
    reason_option = sub.get("reason")
    reason = str(reason_option.value) if reason_option and reason_option.value else ""

    db.skip_brewer(interaction.guild_id, user_id)

    msg = f"⏭️ <@{user_id}> skipped this round — moved to end of rotation."
    if reason:
        msg += f"\n> _{reason}_"
    await session.respond(interaction, public_response(msg))


async def _rotation_next(session: Session, db: Database, interaction: Interaction) -> None:
    brewer = db.next_brewer(interaction.guild_id)
    if brewer is None:
        await session.respond(
            interaction,
            ephemeral_response(
                "No brewers in rotation. Use `/rotation add @user` to add members."
            ),
        )
        return
    await session.respond(
        interaction, public_response(f"🍺 Next up to brew: <@{brewer.user_id}>")
    )


# --- /rate and /complete ---


async def handle_rate(session: Session, db: Database, interaction: Interaction) -> None:
    """Record the invoking member's rating for this brew."""
    brew = _brew_here(db, interaction)
    if interaction.member is None:
        raise CommandError("this command only works in a server")

    rating_option = interaction.option("rating")
    if rating_option is None or rating_option.value is None:
        raise CommandError("a rating from 1 to 5 is required")
    rating = int(rating_option.value)
    notes_option = interaction.option("notes")
    notes = str(notes_option.value) if notes_option and notes_option.value else ""

    username = interaction.display_name()
    try:
        db.upsert_rating(brew.id, interaction.member.user_id, username, rating, notes)
    except sqlite3.Error as exc:
        raise CommandError(str(exc)) from exc

    msg = f"{star_bar(rating)} **{username}** rated **{brew.name}** — {rating}/5"
    if notes:
        msg += f"\n> {notes}"
    if brew.status == "complete":
        msg += "\n_Brew is complete — rating added to the blackboard._"
    await session.respond(interaction, public_response(msg))

    try:
        await post_or_update_stats_card(session, db, brew)
    except Exception as exc:
        log.warning("stats card for brew %s failed: %s", brew.id, exc)
    await update_blackboard(session, db, interaction.guild_id)


async def handle_complete(session: Session, db: Database, interaction: Interaction) -> None:
    """Mark this brew complete so it shows on the blackboard."""
    brew = _brew_here(db, interaction)
    if brew.status == "complete":
        raise CommandError("this brew is already marked complete")

    db.complete_brew(brew.id)

    ratings = db.get_ratings(brew.id)
    parts = [f"🏆 **{brew.name}** is complete — added to the blackboard!\n"]
    if ratings:
        parts.append(
            f"**Final rating:** {average_rating(ratings):.1f}/5 ({len(ratings)} votes)\n"
        )
    else:
        parts.append("No ratings yet — everyone can still `/rate` this brew.\n")
    parts.append("\nThe blackboard has been updated.")

    await session.respond(interaction, public_response("".join(parts)))


# --- /abv ---


async def handle_abv(session: Session, interaction: Interaction) -> None:
    """Reply privately with ABV and attenuation for the given gravities."""
    og_option = interaction.option("og")
    fg_option = interaction.option("fg")
    if og_option is None or fg_option is None:
        raise CommandError("both OG and FG are required")
    report = build_abv_report(float(og_option.value), float(fg_option.value))
    await session.respond(interaction, ephemeral_response(report))