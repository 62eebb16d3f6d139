"""The bot: wiring gateway events to command handlers, and the entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sqlite3
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from dotenv import find_dotenv, load_dotenv

from brewbot.board import update_blackboard
from brewbot.client import DEFAULT_INTENTS, DiscordClient
from brewbot.commands import autocomplete_choices, command_payloads
from brewbot.config import Config, load
from brewbot.db import Database
from brewbot.interactions import (
    RESPONSE_AUTOCOMPLETE_RESULT,
    Interaction,
    InteractionType,
    Reaction,
    ephemeral_response,
    parse_interaction,
    parse_reaction,
)
from brewbot.members import (
    handle_abv,
    handle_complete,
    handle_propose,
    handle_rate,
    handle_rotation,
)
from brewbot.poll import check_poll_reaction, close_poll, start_poll
from brewbot.recipe import handle_recipe

log = logging.getLogger(__name__)

Handler = Callable[[Any, Database, Interaction], Awaitable[None]]


def _package_version() -> str:
    try:
        return version("brewbot")
    except PackageNotFoundError:
        return "dev"


class Bot:
    """Routes interactions, reactions and ready events to the command handlers."""

    def __init__(self, config: Config, database: Database, session: Any = None):
        self.config = config
        self.db = database
        self.session = session if session is not None else DiscordClient(config.token)
        self._tasks: set[asyncio.Task] = set()
        self._handlers: dict[str, Handler] = {
            "propose": handle_propose,
            "startpoll": start_poll,
            "closepoll": close_poll,
            "rotation": handle_rotation,
            "recipe": handle_recipe,
            "rate": handle_rate,
            "complete": handle_complete,
            "abv": lambda session, _db, interaction: handle_abv(session, interaction),
        }

    async def start(self) -> None:
        """Register the slash commands, then serve gateway events until closed."""
        try:
            await self.register_commands()
        except Exception as exc:
            raise RuntimeError(f"register commands: {exc}") from exc
        log.info("bot started, commands registered")
        log.info("brewbot running — Ctrl+C to stop")
        try:
            await self.session.run_gateway(DEFAULT_INTENTS, self._dispatch)
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Close the connection to the chat service."""
        await self.session.close()

    async def register_commands(self) -> None:
        """Create every slash command for the application."""
        for command in command_payloads():
            await self.session.create_command(self.config.app_id, command)
            log.info("registered /%s", command["name"])

    def _event(self, name: str, data: dict) -> Coroutine[Any, Any, None] | None:
        if name == "INTERACTION_CREATE":
            return self.on_interaction(parse_interaction(data))
        if name == "MESSAGE_REACTION_ADD":
            return self.on_reaction_add(parse_reaction(data))
        if name == "READY":
            guilds = data.get("guilds") or []
            return self.on_ready([str(g["id"]) for g in guilds if "id" in g])
        return None

    def _dispatch(self, name: str, data: dict) -> None:
        try:
            work = self._event(name, data)
        except (KeyError, TypeError) as exc:
            log.warning("malformed %s event: %s", name, exc)
            return
        if work is None:
            return
        task = asyncio.get_running_loop().create_task(work)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _reply(self, interaction: Interaction, response: dict) -> None:
        try:
            await self.session.respond(interaction, response)
        except Exception as exc:
            log.warning("responding to /%s failed: %s", interaction.command_name, exc)

    async def on_interaction(self, interaction: Interaction) -> None:
        """Answer autocomplete requests and run slash commands."""
        if interaction.type == InteractionType.AUTOCOMPLETE:
            choices = autocomplete_choices(interaction.command_name)
            if choices is not None:
                await self._reply(
                    interaction,
                    {"type": RESPONSE_AUTOCOMPLETE_RESULT, "data": {"choices": choices}},
                )
            return
        if interaction.type != InteractionType.APPLICATION_COMMAND:
            return

        handler = self._handlers.get(interaction.command_name)
        if handler is None:
            return
        try:
            await handler(self.session, self.db, interaction)
        except Exception as exc:
            log.error("/%s error: %s", interaction.command_name, exc)
            await self._reply(interaction, ephemeral_response(f"❌ {exc}"))

    async def on_ready(self, guild_ids: Iterable[str]) -> None:
        """Refresh the blackboard of every guild the bot is in."""
        guild_ids = list(guild_ids)
        log.info("connected, refreshing blackboard for %d guild(s)", len(guild_ids))
        results = await asyncio.gather(
            *(update_blackboard(self.session, self.db, g) for g in guild_ids),
            return_exceptions=True,
        )
        for guild_id, result in zip(guild_ids, results):
            if isinstance(result, BaseException):
                log.error("blackboard for guild %s failed: %s", guild_id, result)

    async def on_reaction_add(self, reaction: Reaction) -> None:
        """Check open polls for a majority, ignoring the bot's own reactions."""
        if reaction.user_id == getattr(self.session, "user_id", ""):
            return
        try:
            await check_poll_reaction(self.session, self.db, reaction)
        except Exception as exc:
            log.error("poll reaction check error: %s", exc)


async def _serve(bot: Bot) -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass

    runner = asyncio.create_task(bot.start())
    waiter = asyncio.create_task(stop.wait())
    done, _ = await asyncio.wait({runner, waiter}, return_when=asyncio.FIRST_COMPLETED)

    if runner in done:
        waiter.cancel()
        try:
            runner.result()
        finally:
            await bot.stop()
        return

    log.info("shutting down...")
    await bot.stop()
    try:
        await asyncio.wait_for(runner, timeout=10)
    except Exception as exc:
        log.info("gateway stopped: %s", exc)


def main(argv: list[str] | None = None) -> int:
    """Run the bot until interrupted; returns the process exit status."""
    parser = argparse.ArgumentParser(prog="brewbot", description="Brew club chat bot.")
    parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    log.info("brewbot %s starting", _package_version())
    if not load_dotenv(find_dotenv(usecwd=True)):
        log.info("no .env file, reading from environment")

    config = load()
    if not config.token:
        log.error("DISCORD_TOKEN not set")
        return 1

    try:
        database = Database(config.db_path)
    except (sqlite3.Error, OSError) as exc:
        log.error("db: %s", exc)
        return 1

    with database:
        bot = Bot(config, database)
        try:
            asyncio.run(_serve(bot))
        except KeyboardInterrupt:
            log.info("shutting down...")
        except Exception as exc:
            log.error("start: %s", exc)
            return 1
    return 0