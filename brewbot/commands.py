"""Slash-command definitions and autocomplete choices."""

from __future__ import annotations

import copy
from enum import IntEnum
from typing import Any

CHAT_INPUT = 1


class OptionType(IntEnum):
    SUB_COMMAND = 1
    STRING = 3
    INTEGER = 4
    USER = 6
    NUMBER = 10


def _opt(
    kind: OptionType,
    name: str,
    description: str,
    *,
    required: bool = False,
    autocomplete: bool = False,
    options: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    option: dict[str, Any] = {"type": int(kind), "name": name, "description": description}
    if required:
        option["required"] = True
    if autocomplete:
        option["autocomplete"] = True
    if options:
        option["options"] = options
    return option


def _command(name: str, description: str, *options: dict[str, Any]) -> dict[str, Any]:
    command: dict[str, Any] = {"name": name, "description": description, "type": CHAT_INPUT}
    if options:
        command["options"] = list(options)
    return command


def _sub(name: str, description: str, *options: dict[str, Any]) -> dict[str, Any]:
    return _opt(OptionType.SUB_COMMAND, name, description, options=list(options))


_COMMANDS = [
    _command(
        "propose",
        "Propose dates for the next brew day",
        _opt(
            OptionType.STRING,
            "dates",
            'Comma-separated dates, e.g. "March 15, March 22"',
            required=True,
        ),
    ),
    _command("startpoll", "Start a vote from all proposed dates"),
    _command(
        "closepoll",
        "Close the current poll and pick the winner (use if no majority reached)",
    ),
    _command(
        "rotation",
        "Manage the brewer rotation",
        _sub("list", "Show the current rotation order"),
        _sub(
            "add",
            "Add a brewer to the rotation",
            _opt(OptionType.USER, "user", "The user to add", required=True),
        ),
        _sub(
            "skip",
            "Skip a brewer this round — moves them to end of queue",
            _opt(OptionType.USER, "user", "The user to skip", required=True),
            _opt(OptionType.STRING, "reason", "Reason for skipping"),
        ),
        _sub("next", "Show who is brewing next"),
    ),
    _command(
        "recipe",
        "Submit or view the recipe for this brew channel",
        _sub(
            "submit",
            "Submit your brew day recipe (OG, ingredients, notes — FG comes later)",
            _opt(OptionType.STRING, "name", "Brew name — will rename this channel", required=True),
            _opt(OptionType.STRING, "style", "Beer style, e.g. IPA, Stout, Hefeweizen"),
            _opt(OptionType.NUMBER, "og", "Original gravity, e.g. 1.065"),
            _opt(OptionType.NUMBER, "fg", "Final gravity, e.g. 1.012"),
            _opt(OptionType.STRING, "ingredients", "Ingredient list (hops, malts, yeast, etc.)"),
            _opt(OptionType.STRING, "notes", "Brewing notes or process details"),
        ),
        _sub(
            "fg",
            "Set final gravity at kegging — calculates and locks in ABV",
            _opt(OptionType.NUMBER, "fg", "Final gravity reading, e.g. 1.012", required=True),
        ),
        _sub("view", "View the recipe for this brew channel"),
    ),
    _command(
        "rate",
        "Rate the current brew",
        _opt(
            OptionType.INTEGER,
            "rating",
            "Rating from 1 to 5",
            required=True,
            autocomplete=True,
        ),
        _opt(OptionType.STRING, "notes", "Tasting notes"),
    ),
    _command("complete", "Mark this brew as complete and add it to the blackboard"),
    _command(
        "abv",
        "Calculate ABV from original and final gravity",
        _opt(OptionType.NUMBER, "og", "Original gravity, e.g. 1.065", required=True),
        _opt(OptionType.NUMBER, "fg", "Final gravity, e.g. 1.012", required=True),
    ),
]

_RATING_CHOICES = [
    {"name": "5 ⭐⭐⭐⭐⭐ — Best brew ever", "value": 5},
    {"name": "4 ⭐⭐⭐⭐  — Great, would brew again", "value": 4},
    {"name": "3 ⭐⭐⭐   — Solid, drinkable", "value": 3},
    {"name": "2 ⭐⭐     — Meh, needs work", "value": 2},
    {"name": "1 ⭐       — Drain pour", "value": 1},
]


def command_payloads() -> list[dict[str, Any]]:
    """Application command definitions ready to register with the API."""
    return copy.deepcopy(_COMMANDS)


def rating_choices() -> list[dict[str, Any]]:
    """Choices offered while typing a rating."""
    return copy.deepcopy(_RATING_CHOICES)


def autocomplete_choices(command_name: str) -> list[dict[str, Any]] | None:
    """Autocomplete choices for a command, or None if it offers none."""
    if command_name == "rate":
        return rating_choices()
    return None