"""Utility functions for execrelay."""

from execrelay.utils.exceptions import (
    ExecRelayError,
    ValidationError,
    ConfigError,
    ChannelError,
    ErrorCategory,
    classify_exception,
    describe_exception,
    sanitize_error_message,
)

__all__ = [
    "ExecRelayError",
    "ValidationError",
    "ConfigError",
    "ChannelError",
    "ErrorCategory",
    "classify_exception",
    "describe_exception",
    "sanitize_error_message",
]
