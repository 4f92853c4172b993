"""Session store lookup: where did a session last talk to its user?

Stores are JSON objects keyed by session key, one file per agent. Each entry may
carry a ``deliveryContext`` ({channel, to, accountId, threadId}) or the flat
``lastChannel`` / ``lastTo`` / ``lastAccountId`` / ``lastThreadId`` fields.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from execrelay.channels.message_channel import is_deliverable_message_channel, normalize_message_channel
from execrelay.config.schema import ApprovalsExecTargetConfig, Config
from execrelay.routing.session_key import (
    normalize_agent_id,
    parse_agent_session_key,
    parse_channel_session_key,
)

if TYPE_CHECKING:
    from execrelay.approvals.types import ExecApprovalRequest


def get_agents_dir() -> Path:
    return Path.home() / ".execrelay" / "agents"


def resolve_store_path(store: str | None, *, agent_id: str | None = None) -> Path:
    """Session store file for an agent. `store` may contain ``{agentId}`` and ``~``."""
    aid = normalize_agent_id(agent_id)
    if store and store.strip():
        return Path(store.strip().replace("{agentId}", aid)).expanduser()
    return get_agents_dir() / aid / "sessions" / "sessions.json"


def load_session_store(path: Path) -> dict[str, dict[str, Any]]:
    """Read a session store; missing or unreadable files yield an empty store."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read session store {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring session store {path}: root is not an object")
        return {}
    return {str(k): v for k, v in data.items() if isinstance(v, dict)}


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def resolve_session_delivery_target(entry: dict[str, Any]) -> ApprovalsExecTargetConfig | None:
    """Last-known (channel, to, account, thread) of a session entry, if complete."""
    ctx = entry.get("deliveryContext") if isinstance(entry.get("deliveryContext"), dict) else {}
    channel = _clean(ctx.get("channel")) or _clean(entry.get("lastChannel"))
    to = _clean(ctx.get("to")) or _clean(entry.get("lastTo"))
    if not channel or not to:
        return None
    account_id = _clean(ctx.get("accountId")) or _clean(entry.get("lastAccountId"))
    thread_id = ctx.get("threadId")
    if thread_id is None:
        thread_id = entry.get("lastThreadId")
    return ApprovalsExecTargetConfig(
        channel=normalize_message_channel(channel) or channel,
        to=to,
        account_id=account_id,
        thread_id=thread_id if thread_id not in ("", None) else None,
    )


def _target_from_channel_key(session_key: str) -> ApprovalsExecTargetConfig | None:
    parsed = parse_channel_session_key(session_key)
    if not parsed:
        return None
    channel, chat_id = parsed
    return ApprovalsExecTargetConfig(channel=normalize_message_channel(channel) or channel, to=chat_id)


def resolve_session_target_from_store(
    *,
    config: Config,
    request: "ExecApprovalRequest",
) -> ApprovalsExecTargetConfig | None:
    """Default session lookup used by the forwarder in `session`/`both` mode."""
    session_key = (request.request.session_key or "").strip()
    if not session_key:
        return None
    parsed = parse_agent_session_key(session_key)
    agent_id = parsed.agent_id if parsed else (request.request.agent_id or "main")
    store_path = resolve_store_path(config.session.store, agent_id=agent_id)
    entry = load_session_store(store_path).get(session_key)
    if entry is not None:
        target = resolve_session_delivery_target(entry)
    else:
        # channel:chat_id keys (bare or after the agent prefix) carry their own address
        target = _target_from_channel_key(parsed.rest if parsed else session_key)
    if target is None:
        return None
    if not is_deliverable_message_channel(target.channel):
        logger.debug(f"Session {session_key} last channel {target.channel} is not deliverable")
        return None
    return target
