"""Session-key routing helpers."""

from execrelay.routing.session_key import (
    DEFAULT_AGENT_ID,
    ParsedAgentSessionKey,
    normalize_agent_id,
    parse_agent_session_key,
    parse_channel_session_key,
)

__all__ = [
    "DEFAULT_AGENT_ID",
    "ParsedAgentSessionKey",
    "normalize_agent_id",
    "parse_agent_session_key",
    "parse_channel_session_key",
]
