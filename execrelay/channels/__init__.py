"""Chat channel helpers: channel names, credentials and Discord approval payloads."""

from execrelay.channels.message_channel import (
    EDITABLE_MESSAGE_CHANNEL,
    is_deliverable_message_channel,
    is_editable_message_channel,
    normalize_message_channel,
)

__all__ = [
    "EDITABLE_MESSAGE_CHANNEL",
    "is_deliverable_message_channel",
    "is_editable_message_channel",
    "normalize_message_channel",
]
