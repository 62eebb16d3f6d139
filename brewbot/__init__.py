"""Discord bot for homebrew clubs: polls, rotation, recipes, ratings and a blackboard."""

__version__ = "0.1.0"