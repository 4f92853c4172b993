"""Per-channel credentials lookup (default token or a named account)."""

from __future__ import annotations

from execrelay.config.schema import Config
from execrelay.utils.exceptions import ChannelError


def resolve_channel_token(config: Config, channel: str, account_id: str | None = None) -> str:
    """Bot token for `channel`; `account_id` selects an entry from `accounts`. Raises ChannelError."""
    section = getattr(config.channels, channel, None)
    if section is None:
        raise ChannelError(channel, "no credentials section for channel")
    if account_id:
        token = (section.accounts or {}).get(account_id, "")
        if not token:
            raise ChannelError(channel, f"unknown account: {account_id}")
        return token
    token = getattr(section, "token", None) or getattr(section, "bot_token", None) or ""
    if not token:
        raise ChannelError(channel, "bot token not configured")
    return token


def resolve_api_base(config: Config, channel: str) -> str:
    section = getattr(config.channels, channel, None)
    return str(getattr(section, "api_base", "") or "").rstrip("/")
