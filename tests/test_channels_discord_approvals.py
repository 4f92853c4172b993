"""Tests for Discord approval embeds, buttons and in-place edits."""

import json

import httpx
import pytest

from execrelay.approvals.types import ExecApprovalRequest
from execrelay.channels.discord_approvals import (
    COLOR_ALLOW_ALWAYS,
    COLOR_ALLOW_ONCE,
    COLOR_DENY,
    COLOR_EXPIRED,
    COLOR_PENDING,
    build_discord_channel_data,
    build_exec_approval_custom_id,
    edit_discord_embed,
    format_exec_approval_embed,
    format_expired_embed,
    format_resolved_embed,
    parse_exec_approval_custom_id,
)
from execrelay.config.schema import Config
from execrelay.utils.exceptions import ChannelError


def _request(command: str = "rm -rf build") -> ExecApprovalRequest:
    return ExecApprovalRequest.from_payload({
        "id": "req-9",
        "request": {"command": command, "cwd": "/repo", "agentId": "main"},
        "createdAtMs": 0,
        "expiresAtMs": 60_000,
    })


def _config() -> Config:
    return Config.model_validate({
        "channels": {"discord": {"token": "t0k", "accounts": {"ops": "ops-t0k"}, "api_base": "https://discord.test/api"}}
    })


def test_pending_embed():
    embed = format_exec_approval_embed(_request())
    assert embed["title"] == "Exec Approval Required"
    assert embed["color"] == COLOR_PENDING
    assert embed["description"] == "```\nrm -rf build\n```"
    assert {"name": "Working Directory", "value": "/repo", "inline": True} in embed["fields"]
    assert embed["footer"]["text"].startswith("ID: req-9")
    assert embed["timestamp"].startswith("1970-01-01T00:01:00")


def test_command_with_fence_cannot_break_out():
    embed = format_exec_approval_embed(_request("echo ```; rm -rf /"))
    inner = embed["description"][len("```\n"):-len("\n```")]
    assert "```" not in inner


@pytest.mark.parametrize(
    "decision, color, footer",
    [
        ("allow-once", COLOR_ALLOW_ONCE, "Approved allow-once by alice"),
        ("allow-always", COLOR_ALLOW_ALWAYS, "Approved allow-always by alice"),
        ("deny", COLOR_DENY, "Denied by alice"),
    ],
)
def test_resolved_embed(decision, color, footer):
    embed = format_resolved_embed(_request(), decision, "alice")
    assert embed["color"] == color
    assert embed["footer"]["text"] == footer


def test_resolved_embed_without_resolver():
    assert format_resolved_embed(_request(), "deny")["footer"]["text"] == "Denied"


def test_expired_embed():
    embed = format_expired_embed(_request())
    assert embed["color"] == COLOR_EXPIRED
    assert embed["footer"]["text"] == "Expired"


def test_custom_id_round_trip_and_foreign_ids():
    custom_id = build_exec_approval_custom_id("req-9", "deny")
    assert parse_exec_approval_custom_id(custom_id) == ("req-9", "deny")
    assert parse_exec_approval_custom_id("other:id=x;action=y") is None
    assert parse_exec_approval_custom_id("execapproval:id=x") is None


def test_channel_data_has_embed_and_three_buttons():
    data = build_discord_channel_data(_request())["discord"]
    assert len(data["embeds"]) == 1
    buttons = data["components"][0]["components"]
    assert [b["label"] for b in buttons] == ["Allow once", "Always allow", "Deny"]
    assert [parse_exec_approval_custom_id(b["custom_id"])[1] for b in buttons] == ["allow-once", "allow-always", "deny"]


@pytest.mark.asyncio
async def test_edit_discord_embed_patches_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "m1"})

    embed = format_expired_embed(_request())
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await edit_discord_embed(
            config=_config(),
            channel_id="c1",
            message_id="m1",
            account_id="ops",
            embed=embed,
            client=client,
        )
    assert seen["method"] == "PATCH"
    assert seen["url"] == "https://discord.test/api/channels/c1/messages/m1"
    assert seen["auth"] == "Bot ops-t0k"
    assert seen["body"] == {"content": "", "embeds": [embed], "components": []}


@pytest.mark.asyncio
async def test_edit_discord_embed_raises_on_rate_limit():
    transport = httpx.MockTransport(lambda request: httpx.Response(429, json={"retry_after": 1}))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(ChannelError) as exc_info:
            await edit_discord_embed(
                config=_config(),
                channel_id="c1",
                message_id="m1",
                embed={},
                client=client,
            )
    assert exc_info.value.details["is_retryable"] is True


@pytest.mark.asyncio
async def test_edit_discord_embed_raises_on_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"message": "Unknown Message"}))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await edit_discord_embed(config=_config(), channel_id="c1", message_id="m1", embed={}, client=client)
