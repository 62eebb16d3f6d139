"""Keeping the guild blackboard and per-brew stats cards up to date."""

from __future__ import annotations

import logging
import sqlite3

from brewbot.cards import build_blackboard, build_stats_card
from brewbot.db import Brew, Database
from brewbot.interactions import Session

BLACKBOARD_CHANNEL_KEY = "blackboard_channel_id"
BLACKBOARD_MESSAGE_KEY = "blackboard_message_id"
BLACKBOARD_CHANNEL_NAME = "blackboard"

log = logging.getLogger(__name__)


async def _pin_quietly(session: Session, channel_id: str, message_id: str) -> None:
    try:
        await session.pin_message(channel_id, message_id)
    except Exception as exc:
        log.warning("pin %s in %s failed: %s", message_id, channel_id, exc)


async def update_blackboard(session: Session, db: Database, guild_id: str) -> None:
    """Create the blackboard channel if needed, then post or edit its live message.

    Failures are logged rather than raised; the board is refreshed again on the
    next change.
    """
    channel_id = db.get_config(guild_id, BLACKBOARD_CHANNEL_KEY)
    message_id = db.get_config(guild_id, BLACKBOARD_MESSAGE_KEY)
    log.info("blackboard: guild=%s channel=%s message=%s", guild_id, channel_id, message_id)

    try:
        content = build_blackboard(db.get_blackboard(guild_id))
    except sqlite3.Error as exc:
        log.error("blackboard: building failed: %s", exc)
        return

    if not channel_id:
        try:
            channel = await session.create_channel(guild_id, BLACKBOARD_CHANNEL_NAME)
        except Exception as exc:
            log.error("blackboard: create channel failed: %s", exc)
            return
        channel_id = channel["id"]
        db.set_config(guild_id, BLACKBOARD_CHANNEL_KEY, channel_id)

    if message_id:
        try:
            await session.edit_message(channel_id, message_id, content)
            return
        except Exception as exc:
            log.warning("blackboard: edit failed: %s — reposting", exc)

    try:
        msg = await session.send_message(channel_id, content)
    except Exception as exc:
        log.error("blackboard: send failed: %s", exc)
        return
    await _pin_quietly(session, channel_id, msg["id"])
    db.set_config(guild_id, BLACKBOARD_MESSAGE_KEY, msg["id"])
    log.info("blackboard: posted message %s", msg["id"])


async def post_or_update_stats_card(session: Session, db: Database, brew: Brew) -> None:
    """Post and pin the brew's stats card the first time, edit it afterwards."""
    card = build_stats_card(brew, db.get_recipe(brew.id), db.get_ratings(brew.id))

    if not brew.stats_message_id:
        msg = await session.send_message(brew.channel_id, card)
        await _pin_quietly(session, brew.channel_id, msg["id"])
        db.set_brew_stats_message(brew.id, msg["id"])
        brew.stats_message_id = msg["id"]
        return

    await session.edit_message(brew.channel_id, brew.stats_message_id, card)