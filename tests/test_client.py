import json
from urllib.parse import quote

import httpx
import pytest
import respx

from brewbot.client import API_BASE, DiscordClient
from brewbot.interactions import Interaction, public_response


def _body(route):
    return json.loads(route.calls.last.request.content)


@pytest.mark.asyncio
async def test_send_message_posts_content_with_bot_auth():
    with respx.mock(base_url=API_BASE) as router:
        route = router.post("/channels/c1/messages").mock(
            return_value=httpx.Response(200, json={"id": "m1"})
        )
        client = DiscordClient("token")
        msg = await client.send_message("c1", "hello")
        await client.close()
    assert msg == {"id": "m1"}
    assert _body(route) == {"content": "hello"}
    assert route.calls.last.request.headers["Authorization"] == "Bot token"


@pytest.mark.asyncio
async def test_edit_message_patches_content():
    with respx.mock(base_url=API_BASE) as router:
        route = router.patch("/channels/c1/messages/m1").mock(
            return_value=httpx.Response(200, json={"id": "m1", "content": "new"})
        )
        client = DiscordClient("token")
        msg = await client.edit_message("c1", "m1", "new")
        await client.close()
    assert msg["content"] == "new"
    assert _body(route) == {"content": "new"}


@pytest.mark.asyncio
async def test_pin_message_with_empty_reply_returns_none():
    with respx.mock(base_url=API_BASE) as router:
        route = router.put("/channels/c1/pins/m1").mock(return_value=httpx.Response(204))
        client = DiscordClient("token")
        result = await client.pin_message("c1", "m1")
        await client.close()
    assert result is None
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_add_reaction_percent_encodes_emoji():
    emoji = "1️⃣"
    with respx.mock(base_url=API_BASE) as router:
        route = router.put(url__startswith=f"{API_BASE}/channels/c1/messages/m1/reactions/").mock(
            return_value=httpx.Response(204)
        )
        client = DiscordClient("token")
        result = await client.add_reaction("c1", "m1", emoji)
        await client.close()
    assert result is None
    assert route.call_count == 1
    raw_path = route.calls.last.request.url.raw_path
    assert raw_path.endswith(b"/@me")
    assert quote(emoji, safe="").encode() in raw_path


@pytest.mark.asyncio
async def test_create_channel_includes_parent_and_topic_only_when_given():
    with respx.mock(base_url=API_BASE) as router:
        route = router.post("/guilds/g1/channels").mock(
            return_value=httpx.Response(200, json={"id": "ch9"})
        )
        client = DiscordClient("token")
        plain = await client.create_channel("g1", "blackboard")
        plain_body = _body(route)
        await client.create_channel("g1", "brew-x", parent_id="cat", topic="about")
        full_body = _body(route)
        await client.close()
    assert plain["id"] == "ch9"
    assert plain_body == {"name": "blackboard", "type": 0}
    assert full_body == {"name": "brew-x", "type": 0, "parent_id": "cat", "topic": "about"}


@pytest.mark.asyncio
async def test_edit_channel_name():
    with respx.mock(base_url=API_BASE) as router:
        route = router.patch("/channels/c1").mock(
            return_value=httpx.Response(200, json={"id": "c1", "name": "brew-stout"})
        )
        client = DiscordClient("token")
        ch = await client.edit_channel_name("c1", "brew-stout")
        await client.close()
    assert ch["name"] == "brew-stout"
    assert _body(route) == {"name": "brew-stout"}


@pytest.mark.asyncio
async def test_respond_posts_to_interaction_callback():
    interaction = Interaction(id="i1", token="token", type=2)
    response = public_response("done")
    with respx.mock(base_url=API_BASE) as router:
        route = router.post("/interactions/i1/token/callback").mock(
            return_value=httpx.Response(204)
        )
        client = DiscordClient("token")
        await client.respond(interaction, response)
        await client.close()
    assert _body(route) == response


@pytest.mark.asyncio
async def test_create_command_and_getters():
    command = {"name": "abv", "description": "d", "type": 1}
    with respx.mock(base_url=API_BASE) as router:
        cmd_route = router.post("/applications/app1/commands").mock(
            return_value=httpx.Response(201, json={"id": "k1", **command})
        )
        router.get("/users/u1").mock(return_value=httpx.Response(200, json={"id": "u1", "username": "alice"}))
        router.get("/channels/c1").mock(return_value=httpx.Response(200, json={"id": "c1", "parent_id": "cat"}))
        router.get("/channels/c1/messages/m1").mock(
            return_value=httpx.Response(200, json={"id": "m1", "reactions": []})
        )
        client = DiscordClient("token")
        created = await client.create_command("app1", command)
        user = await client.get_user("u1")
        channel = await client.get_channel("c1")
        message = await client.get_message("c1", "m1")
        await client.close()
    assert _body(cmd_route) == command
    assert created["name"] == "abv"
    assert user["username"] == "alice"
    assert channel["parent_id"] == "cat"
    assert message["reactions"] == []


@pytest.mark.asyncio
async def test_http_error_is_raised():
    with respx.mock(base_url=API_BASE) as router:
        router.get("/channels/missing").mock(return_value=httpx.Response(404, json={"message": "Unknown"}))
        client = DiscordClient("token")
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_channel("missing")
        await client.close()