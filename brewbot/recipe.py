"""The /recipe command: submitting, finishing and viewing a brew's recipe."""

from __future__ import annotations

import logging

from brewbot.board import post_or_update_stats_card, update_blackboard
from brewbot.cards import abv_from_gravity, apparent_attenuation, average_rating, star_bar
from brewbot.db import Brew, Database
from brewbot.interactions import (
    CommandError,
    Interaction,
    Option,
    Session,
    ephemeral_response,
    public_response,
)
from brewbot.poll import channel_slug

NOT_A_BREW_CHANNEL = "this command only works in a brew channel"

log = logging.getLogger(__name__)


def _brew_here(db: Database, interaction: Interaction) -> Brew:
    brew = db.get_brew_by_channel(interaction.channel_id)
    if brew is None:
        raise CommandError(NOT_A_BREW_CHANNEL)
    return brew


def _text(sub: Option, name: str) -> str:
    option = sub.get(name)
    return "" if option is None or option.value is None else str(option.value)


def _number(sub: Option, name: str) -> float:
    option = sub.get(name)
    return 0.0 if option is None or option.value is None else float(option.value)


async def _refresh_stats_card(session: Session, db: Database, channel_id: str) -> None:
    brew = db.get_brew_by_channel(channel_id)
    if brew is None:
        return
    try:
        await post_or_update_stats_card(session, db, brew)
    except Exception as exc:
        log.warning("stats card for brew %s failed: %s", brew.id, exc)


async def handle_recipe(session: Session, db: Database, interaction: Interaction) -> None:
    """Dispatch /recipe to its subcommand."""
    if not interaction.options:
        return
    sub = interaction.options[0]
    if sub.name == "submit":
        await recipe_submit(session, db, interaction, sub)
    elif sub.name == "fg":
        await recipe_fg(session, db, interaction, sub)
    elif sub.name == "view":
        await recipe_view(session, db, interaction)


async def recipe_submit(
    session: Session, db: Database, interaction: Interaction, sub: Option
) -> None:
    """Store the recipe, rename the channel and post the recipe card."""
    brew = _brew_here(db, interaction)

    name = _text(sub, "name")
    if not name:
        raise CommandError("a brew name is required")
    style = _text(sub, "style")
    og = _number(sub, "og")
    fg = _number(sub, "fg")
    abv = abv_from_gravity(og, fg) if og > 0 and fg > 0 and og > fg else 0.0
    ingredients = _text(sub, "ingredients")
    notes = _text(sub, "notes")

    db.set_brew_name(brew.id, name)
    db.upsert_recipe(brew.id, style, og, fg, abv, ingredients, notes)

    try:
        await session.edit_channel_name(interaction.channel_id, f"brew-{channel_slug(name)}")
    except Exception as exc:
        log.warning("renaming channel %s failed: %s", interaction.channel_id, exc)

    parts = [f"🍺 **{name}** — Recipe\n", f"**Brewer:** <@{brew.brewer_id}>\n"]
    if brew.date:
        parts.append(f"**Brew Date:** {brew.date}\n")
    if style:
        parts.append(f"**Style:** {style}\n")
    if og > 0:
        parts.append(f"**OG:** {og:.3f}")
        if fg > 0:
            parts.append(f"  **FG:** {fg:.3f}  **ABV:** {abv:.1f}%")
        else:
            parts.append("  _FG TBD — run `/recipe fg` at kegging to lock in ABV_")
        parts.append("\n")
    if ingredients:
        parts.append(f"\n**Ingredients:**\n{ingredients}\n")
    if notes:
        parts.append(f"\n**Notes:** {notes}\n")

    await _refresh_stats_card(session, db, interaction.channel_id)
    await session.respond(interaction, public_response("".join(parts)))
    await update_blackboard(session, db, interaction.guild_id)


async def recipe_view(session: Session, db: Database, interaction: Interaction) -> None:
    """Show the recipe and its ratings for this brew channel."""
    brew = _brew_here(db, interaction)

    recipe = db.get_recipe(brew.id)
    if recipe is None:
        await session.respond(
            interaction,
            ephemeral_response("No recipe submitted yet. Use `/recipe submit` to add one."),
        )
        return

    ratings = db.get_ratings(brew.id)

    parts = [
        f"🍺 **{brew.name}** — Recipe\n",
        f"**Brewer:** <@{brew.brewer_id}>  **Date:** {brew.date}\n",
    ]
    if recipe.style:
        parts.append(f"**Style:** {recipe.style}\n")
    if recipe.og > 0:
        parts.append(
            f"**OG:** {recipe.og:.3f}  **FG:** {recipe.fg:.3f}  **ABV:** {recipe.abv:.1f}%\n"
        )

    if ratings:
        parts.append(
            f"**Rating:** {average_rating(ratings):.1f}/5 ({len(ratings)} votes)\n"
        )
        for r in ratings:
            line = f"  {star_bar(r.rating)} {r.username} — {r.rating}/5"
            if r.notes:
                line += f": _{r.notes}_"
            parts.append(line + "\n")
    else:
        parts.append("**Rating:** no ratings yet\n")

    if recipe.ingredients:
        parts.append(f"\n**Ingredients:**\n{recipe.ingredients}\n")
    if recipe.notes:
        parts.append(f"\n**Notes:** {recipe.notes}\n")

    await session.respond(interaction, public_response("".join(parts)))


async def recipe_fg(
    session: Session, db: Database, interaction: Interaction, sub: Option
) -> None:
    """Record the final gravity and lock in the ABV."""
    brew = _brew_here(db, interaction)

    recipe = db.get_recipe(brew.id)
    if recipe is None:
        raise CommandError("no recipe submitted yet — run `/recipe submit` first")
    if recipe.og == 0:
        raise CommandError(
            "no OG on record — submit the recipe with OG first so ABV can be calculated"
        )

    fg = _number(sub, "fg")
    if fg >= recipe.og:
        raise CommandError(f"FG ({fg:.3f}) must be less than OG ({recipe.og:.3f})")

    abv = db.set_final_gravity(brew.id, fg)
    attenuation = apparent_attenuation(recipe.og, fg)

    await session.respond(
        interaction,
        public_response(
            f"🍺 **{brew.name}** — FG locked in!\n"
            f"**OG:** {recipe.og:.3f} → **FG:** {fg:.3f}\n"
            f"**ABV: {abv:.1f}%**  _(apparent attenuation: {attenuation:.1f}%)_"
        ),
    )

    await _refresh_stats_card(session, db, interaction.channel_id)
    await update_blackboard(session, db, interaction.guild_id)