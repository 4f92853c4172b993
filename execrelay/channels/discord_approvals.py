"""Discord embeds/buttons for exec approvals, and in-place editing of sent embeds."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from execrelay.channels.accounts import resolve_api_base, resolve_channel_token
from execrelay.config.schema import Config
from execrelay.utils.exceptions import ChannelError

if TYPE_CHECKING:
    from execrelay.approvals.types import ExecApprovalRequest

COLOR_PENDING = 0xFEE75C  # yellow
COLOR_ALLOW_ONCE = 0x57F287  # green
COLOR_ALLOW_ALWAYS = 0x5865F2  # blurple
COLOR_DENY = 0xED4245  # red
COLOR_EXPIRED = 0x99AAB5  # gray

CUSTOM_ID_PREFIX = "execapproval"

MAX_COMMAND_CHARS = 1000
MAX_FIELD_CHARS = 1024

# Discord component constants
_ACTION_ROW = 1
_BUTTON = 2
_STYLE_PRIMARY = 1
_STYLE_SUCCESS = 3
_STYLE_DANGER = 4


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _iso_from_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def _command_block(command: str) -> str:
    # Discord code blocks cannot be escaped; a ``` inside would close the block early.
    body = _truncate((command or "").strip() or "(none)", MAX_COMMAND_CHARS).replace("```", "`\u200b``")
    return f"```\n{body}\n```"


def _context_fields(request: ExecApprovalRequest) -> list[dict[str, Any]]:
    req = request.request
    fields: list[dict[str, Any]] = []
    for name, value in (
        ("Working Directory", req.cwd),
        ("Host", req.host),
        ("Agent", req.agent_id),
        ("Security", req.security),
        ("Ask", req.ask),
    ):
        if value:
            fields.append({"name": name, "value": _truncate(value, MAX_FIELD_CHARS), "inline": True})
    return fields


def format_exec_approval_embed(request: ExecApprovalRequest) -> dict[str, Any]:
    """Embed shown while the approval is pending."""
    return {
        "title": "Exec Approval Required",
        "description": _command_block(request.request.command),
        "color": COLOR_PENDING,
        "fields": _context_fields(request),
        "footer": {"text": f"ID: {request.id} · expires"},
        "timestamp": _iso_from_ms(request.expires_at_ms),
    }


def build_exec_approval_custom_id(approval_id: str, action: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:id={approval_id};action={action}"


def parse_exec_approval_custom_id(custom_id: str) -> tuple[str, str] | None:
    """(approval_id, action) from a button custom id, or None if it is not ours."""
    prefix = f"{CUSTOM_ID_PREFIX}:"
    if not custom_id or not custom_id.startswith(prefix):
        return None
    parts: dict[str, str] = {}
    for chunk in custom_id[len(prefix):].split(";"):
        key, sep, value = chunk.partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    approval_id = parts.get("id", "")
    action = parts.get("action", "")
    if not approval_id or not action:
        return None
    return approval_id, action


def build_exec_approval_components(approval_id: str) -> list[dict[str, Any]]:
    """One action row with allow-once / allow-always / deny buttons."""
    return [
        {
            "type": _ACTION_ROW,
            "components": [
                {
                    "type": _BUTTON,
                    "style": _STYLE_SUCCESS,
                    "label": "Allow once",
                    "custom_id": build_exec_approval_custom_id(approval_id, "allow-once"),
                },
                {
                    "type": _BUTTON,
                    "style": _STYLE_PRIMARY,
                    "label": "Always allow",
                    "custom_id": build_exec_approval_custom_id(approval_id, "allow-always"),
                },
                {
                    "type": _BUTTON,
                    "style": _STYLE_DANGER,
                    "label": "Deny",
                    "custom_id": build_exec_approval_custom_id(approval_id, "deny"),
                },
            ],
        }
    ]


def _resolved_title_and_color(decision: str) -> tuple[str, int, str]:
    if decision == "allow-once":
        return "Exec Approval: Allowed (once)", COLOR_ALLOW_ONCE, "Approved allow-once"
    if decision == "allow-always":
        return "Exec Approval: Allowed (always)", COLOR_ALLOW_ALWAYS, "Approved allow-always"
    return "Exec Approval: Denied", COLOR_DENY, "Denied"


def format_resolved_embed(
    request: ExecApprovalRequest,
    decision: str,
    resolved_by: str | None = None,
) -> dict[str, Any]:
    """Embed replacing the pending one once a decision is known."""
    title, color, footer = _resolved_title_and_color(decision)
    if resolved_by:
        footer = f"{footer} by {resolved_by}"
    return {
        "title": title,
        "description": _command_block(request.request.command),
        "color": color,
        "fields": _context_fields(request),
        "footer": {"text": footer},
    }


def format_expired_embed(request: ExecApprovalRequest) -> dict[str, Any]:
    """Embed replacing the pending one when nobody answered in time."""
    return {
        "title": "Exec Approval: Expired",
        "description": _command_block(request.request.command),
        "color": COLOR_EXPIRED,
        "fields": _context_fields(request),
        "footer": {"text": "Expired"},
        "timestamp": _iso_from_ms(request.expires_at_ms),
    }


def build_discord_channel_data(request: ExecApprovalRequest) -> dict[str, Any]:
    """Rich payload for the initial send, keyed by channel for the delivery sink."""
    return {
        "discord": {
            "embeds": [format_exec_approval_embed(request)],
            "components": build_exec_approval_components(request.id),
        }
    }


async def edit_discord_embed(
    *,
    config: Config,
    channel_id: str,
    message_id: str,
    account_id: str | None = None,
    embed: dict[str, Any],
    client: httpx.AsyncClient | None = None,
) -> None:
    """PATCH a sent message: swap the embed, clear content and buttons. Raises on failure."""
    token = resolve_channel_token(config, "discord", account_id)
    url = f"{resolve_api_base(config, 'discord')}/channels/{channel_id}/messages/{message_id}"
    body = {"content": "", "embeds": [embed], "components": []}
    headers = {"Authorization": f"Bot {token}"}
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=config.channels.timeout_seconds)
    try:
        response = await http.patch(url, headers=headers, json=body)
        if response.status_code == 429:
            raise ChannelError("discord", "rate limited while editing approval message", is_retryable=True)
        response.raise_for_status()
        logger.debug(f"Edited Discord approval message {channel_id}/{message_id}")
    finally:
        if owns_client:
            await http.aclose()
