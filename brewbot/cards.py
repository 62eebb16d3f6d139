"""Message bodies: ABV report, per-brew stats card and the guild blackboard."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from brewbot.db import ABV_FACTOR, BlackboardEntry, Brew, Rating, Recipe
from brewbot.interactions import CommandError

MAX_STARS = 5
FULL_STAR = "⭐"
EMPTY_STAR = "☆"
STATS_RULE = "─────────────────────"


def abv_from_gravity(og: float, fg: float) -> float:
    """Alcohol by volume from original and final gravity."""
    return (og - fg) * ABV_FACTOR


def apparent_attenuation(og: float, fg: float) -> float:
    """Percentage of the fermentable gravity that was consumed."""
    return ((og - fg) / (og - 1.0)) * 100


def star_bar(rating: int) -> str:
    """A five-slot bar of filled and empty stars."""
    return FULL_STAR * rating + EMPTY_STAR * (MAX_STARS - rating)


def average_rating(ratings: Sequence[Rating]) -> float:
    """Mean rating, or 0.0 when there are none."""
    if not ratings:
        return 0.0
    return sum(r.rating for r in ratings) / len(ratings)


def build_abv_report(og: float, fg: float) -> str:
    """Reply for the ABV calculator; raises CommandError on implausible input."""
    if og <= fg:
        raise CommandError(f"OG ({og:.3f}) must be greater than FG ({fg:.3f})")
    if og < 1.0 or og > 1.200:
        raise CommandError("OG looks off — expected something like 1.040–1.120")
    abv = abv_from_gravity(og, fg)
    attenuation = apparent_attenuation(og, fg)
    return (
        "🧪 **ABV Calculator**\n"
        f"`OG {og:.3f}` → `FG {fg:.3f}`\n"
        f"**ABV: {abv:.1f}%**\n"
        f"Apparent attenuation: {attenuation:.1f}%"
    )


def _rating_lines(ratings: Iterable[Rating], bold_name: bool) -> list[str]:
    lines = []
    for r in ratings:
        name = f"**{r.username}**" if bold_name else r.username
        line = f"{star_bar(r.rating)} {name} — {r.rating}/5"
        if r.notes:
            line += f": _{r.notes}_"
        lines.append(line + "\n")
    return lines


def build_stats_card(brew: Brew, recipe: Recipe | None, ratings: Sequence[Rating]) -> str:
    """The pinned stats message for a brew channel."""
    parts = [f"📌 **{brew.name}**\n", f"**Brewer:** <@{brew.brewer_id}>"]
    if brew.date:
        parts.append(f"  **Date:** {brew.date}")
    parts.append("\n")

    if recipe is not None:
        if recipe.style:
            parts.append(f"**Style:** {recipe.style}")
        if recipe.abv > 0:
            parts.append(f"  **ABV:** {recipe.abv:.1f}%")
        if recipe.og > 0:
            parts.append(f"  **OG:** {recipe.og:.3f}  **FG:** {recipe.fg:.3f}")
        if recipe.style or recipe.abv > 0:
            parts.append("\n")

    parts.append(STATS_RULE + "\n")

    if not ratings:
        parts.append("**Rating:** no ratings yet — use `/rate` after the session!\n")
    else:
        avg = average_rating(ratings)
        parts.append(f"**Rating: {avg:.1f} / 5** ({len(ratings)} votes)\n")
        parts.extend(_rating_lines(ratings, bold_name=True))

    return "".join(parts)


def _blackboard_entry(entry: BlackboardEntry) -> str:
    brew = entry.brew
    parts = [f"🍺 **{brew.name or 'Unnamed Brew'}**\n", f"Brewer: <@{brew.brewer_id}>"]
    if brew.date:
        parts.append(f" · {brew.date}")
    parts.append("\n")

    recipe = entry.recipe
    if recipe is not None and (recipe.style or recipe.abv > 0):
        details = []
        if recipe.style:
            details.append(f"Style: {recipe.style}")
        if recipe.abv > 0:
            details.append(f"ABV: {recipe.abv:.1f}%")
        parts.append(" · ".join(details) + "\n")

    if entry.avg_rating > 0:
        full = int(entry.avg_rating + 0.5)
        parts.append(
            f"{star_bar(full)} {entry.avg_rating:.1f} / 5 ({len(entry.ratings)} votes)\n"
        )
    else:
        parts.append("_no votes yet_\n")

    if brew.channel_id:
        parts.append(f"<#{brew.channel_id}>\n")
    return "".join(parts)


def build_blackboard(entries: Sequence[BlackboardEntry]) -> str:
    """The live blackboard listing every completed brew."""
    header = "**📋 Brews**\n\n"
    if not entries:
        return header + "_No completed brews yet._"
    body = "\n".join(_blackboard_entry(e) for e in entries)
    return header + body + "\n_Updates automatically when ratings or recipes change._"