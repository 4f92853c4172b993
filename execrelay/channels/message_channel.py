"""Message channel names: normalization, aliases and deliverability."""

from __future__ import annotations

# Channels execrelay (or an injected delivery sink) can push a notification to.
DELIVERABLE_MESSAGE_CHANNELS: frozenset[str] = frozenset({
    "telegram",
    "whatsapp",
    "discord",
    "slack",
    "signal",
    "imessage",
    "feishu",
    "dingtalk",
    "email",
    "qq",
    "mochat",
    "googlechat",
    "msteams",
})

# Known channels that only exist inside the gateway (no outbound address).
INTERNAL_MESSAGE_CHANNELS: frozenset[str] = frozenset({"webchat", "cli", "internal"})

CHANNEL_ALIASES: dict[str, str] = {
    "tg": "telegram",
    "wa": "whatsapp",
    "imsg": "imessage",
    "lark": "feishu",
    "teams": "msteams",
    "gchat": "googlechat",
    "google-chat": "googlechat",
}

# The only channel kind whose sent messages are edited in place on resolve/expire.
EDITABLE_MESSAGE_CHANNEL = "discord"


def normalize_message_channel(raw: str | None) -> str | None:
    """Canonical channel name for `raw`; unknown names come back trimmed and lowercased."""
    name = (raw or "").strip().lower()
    if not name:
        return None
    return CHANNEL_ALIASES.get(name, name)


def is_deliverable_message_channel(raw: str | None) -> bool:
    channel = normalize_message_channel(raw)
    return channel in DELIVERABLE_MESSAGE_CHANNELS


def is_editable_message_channel(raw: str | None) -> bool:
    return normalize_message_channel(raw) == EDITABLE_MESSAGE_CHANNEL


def is_internal_message_channel(raw: str | None) -> bool:
    return normalize_message_channel(raw) in INTERNAL_MESSAGE_CHANNELS
