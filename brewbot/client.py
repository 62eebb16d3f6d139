"""Minimal asynchronous client for the Discord REST API and gateway."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from enum import IntEnum
from typing import Any
from urllib.parse import quote

import httpx
import websockets

from brewbot.interactions import Interaction

API_BASE = "https://discord.com/api/v10"
GATEWAY_QUERY = "?v=10&encoding=json"
TEXT_CHANNEL = 0

INTENT_GUILDS = 1 << 0
INTENT_GUILD_MESSAGES = 1 << 9
INTENT_GUILD_MESSAGE_REACTIONS = 1 << 10
DEFAULT_INTENTS = INTENT_GUILDS | INTENT_GUILD_MESSAGES | INTENT_GUILD_MESSAGE_REACTIONS

# Close codes after which reconnecting cannot help.
_FATAL_CLOSE_CODES = {4004, 4010, 4011, 4012, 4013, 4014}

log = logging.getLogger(__name__)

Dispatch = Callable[[str, dict], "Awaitable[None] | None"]


class GatewayOp(IntEnum):
    DISPATCH = 0
    HEARTBEAT = 1
    IDENTIFY = 2
    RECONNECT = 7
    INVALID_SESSION = 9
    HELLO = 10
    HEARTBEAT_ACK = 11


class DiscordClient:
    """REST calls and a gateway connection authenticated with a bot token."""

    def __init__(self, token: str):
        self._token = token
        self._http = httpx.AsyncClient(
            base_url=API_BASE,
            headers={"Authorization": f"Bot {token}"},
            timeout=30.0,
        )
        self._ws = None
        self._closing = False
        self.user_id = ""

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        kwargs = {} if body is None else {"json": body}
        resp = await self._http.request(method, path, **kwargs)
        resp.raise_for_status()
        return resp.json() if resp.content else None

    # --- messages ---

    async def send_message(self, channel_id: str, content: str) -> dict:
        return await self._request(
            "POST", f"/channels/{channel_id}/messages", {"content": content}
        )

    async def edit_message(self, channel_id: str, message_id: str, content: str) -> dict:
        return await self._request(
            "PATCH", f"/channels/{channel_id}/messages/{message_id}", {"content": content}
        )

    async def pin_message(self, channel_id: str, message_id: str) -> None:
        await self._request("PUT", f"/channels/{channel_id}/pins/{message_id}")

    async def get_message(self, channel_id: str, message_id: str) -> dict:
        return await self._request("GET", f"/channels/{channel_id}/messages/{message_id}")

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        encoded = quote(emoji, safe="")
        await self._request(
            "PUT", f"/channels/{channel_id}/messages/{message_id}/reactions/{encoded}/@me"
        )

    # --- channels ---

    async def get_channel(self, channel_id: str) -> dict:
        return await self._request("GET", f"/channels/{channel_id}")

    async def create_channel(
        self, guild_id: str, name: str, parent_id: str = "", topic: str = ""
    ) -> dict:
        body: dict[str, Any] = {"name": name, "type": TEXT_CHANNEL}
        if parent_id:
            body["parent_id"] = parent_id
        if topic:
            body["topic"] = topic
        return await self._request("POST", f"/guilds/{guild_id}/channels", body)

    async def edit_channel_name(self, channel_id: str, name: str) -> dict:
        return await self._request("PATCH", f"/channels/{channel_id}", {"name": name})

    # --- interactions, commands, users ---

    async def respond(self, interaction: Interaction, response: dict) -> None:
        await self._request(
            "POST",
            f"/interactions/{interaction.id}/{interaction.token}/callback",
            response,
        )

    async def create_command(self, app_id: str, command: dict) -> dict:
        return await self._request("POST", f"/applications/{app_id}/commands", command)

    async def get_user(self, user_id: str) -> dict:
        return await self._request("GET", f"/users/{user_id}")

    # --- gateway ---

    async def run_gateway(self, intents: int, dispatch: Dispatch) -> None:
        """Receive gateway events and pass each to ``dispatch(name, data)`` until closed."""
        self._closing = False
        while not self._closing:
            info = await self._request("GET", "/gateway/bot")
            url = f"{info['url']}/{GATEWAY_QUERY}"
            async with websockets.connect(url, max_size=None) as ws:
                self._ws = ws
                try:
                    await self._session(ws, intents, dispatch)
                finally:
                    self._ws = None
                code = ws.close_code
            if code in _FATAL_CLOSE_CODES:
                raise ConnectionError(f"gateway closed with code {code}")
            if not self._closing:
                await asyncio.sleep(1)

    async def _session(self, ws, intents: int, dispatch: Dispatch) -> None:
        hello = json.loads(await ws.recv())
        if hello.get("op") != GatewayOp.HELLO:
            raise ConnectionError("gateway did not say hello")
        interval = hello["d"]["heartbeat_interval"] / 1000
        state: dict[str, Any] = {"seq": None}

        async def heartbeat() -> None:
            while True:
                await asyncio.sleep(interval)
                await ws.send(json.dumps({"op": GatewayOp.HEARTBEAT, "d": state["seq"]}))

        beat = asyncio.create_task(heartbeat())
        try:
            await ws.send(json.dumps({
                "op": GatewayOp.IDENTIFY,
                "d": {
                    "token": self._token,
                    "intents": intents,
                    "properties": {"os": sys.platform, "browser": "brewbot", "device": "brewbot"},
                },
            }))
            async for raw in ws:
                msg = json.loads(raw)
                if msg.get("s") is not None:
                    state["seq"] = msg["s"]
                op = msg.get("op")
                if op == GatewayOp.DISPATCH:
                    name, data = msg.get("t", ""), msg.get("d") or {}
                    if name == "READY":
                        self.user_id = str((data.get("user") or {}).get("id", ""))
                    result = dispatch(name, data)
                    if inspect.isawaitable(result):
                        await result
                elif op == GatewayOp.HEARTBEAT:
                    await ws.send(json.dumps({"op": GatewayOp.HEARTBEAT, "d": state["seq"]}))
                elif op in (GatewayOp.RECONNECT, GatewayOp.INVALID_SESSION):
                    log.info("gateway asked for a new session (op %s)", op)
                    return
        except websockets.ConnectionClosed as exc:
            log.info("gateway connection closed: %s", exc)
        finally:
            beat.cancel()

    async def close(self) -> None:
        """Stop the gateway loop and release the HTTP client."""
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
        await self._http.aclose()