"""Parse session keys.

Two shapes are in use:
- agent-scoped: ``agent:<agentId>:<rest>`` (e.g. ``agent:main:main``,
  ``agent:ops:telegram:123``)
- channel-scoped: ``<channel>:<chat_id>`` (e.g. ``telegram:123``)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_AGENT_ID = "main"

_AGENT_ID_INVALID = re.compile(r"[^a-z0-9_-]+")


@dataclass(frozen=True)
class ParsedAgentSessionKey:
    agent_id: str
    rest: str


def normalize_agent_id(value: str | None) -> str:
    """Lowercase, strip, replace anything outside [a-z0-9_-] with '-'; empty -> 'main'."""
    raw = (value or "").strip().lower()
    if not raw:
        return DEFAULT_AGENT_ID
    cleaned = _AGENT_ID_INVALID.sub("-", raw).strip("-")
    return cleaned[:64] or DEFAULT_AGENT_ID


def parse_agent_session_key(session_key: str | None) -> ParsedAgentSessionKey | None:
    """Parse ``agent:<agentId>:<rest>``; None for any other shape."""
    raw = (session_key or "").strip()
    if not raw:
        return None
    parts = raw.split(":", 2)
    if len(parts) < 3 or parts[0].strip().lower() != "agent":
        return None
    agent_id = parts[1].strip()
    rest = parts[2].strip()
    if not agent_id or not rest:
        return None
    return ParsedAgentSessionKey(agent_id=agent_id.lower(), rest=rest)


def parse_channel_session_key(session_key: str | None) -> tuple[str, str] | None:
    """Parse session_key (channel:chat_id) into (channel, chat_id). Returns None if invalid."""
    sk = (session_key or "").strip()
    if ":" not in sk:
        return None
    idx = sk.index(":")
    channel = sk[:idx].strip()
    chat_id = sk[idx + 1 :].strip()
    if not channel or not chat_id:
        return None
    return (channel, chat_id)
