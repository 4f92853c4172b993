"""execrelay - forward exec approval requests to chat channels."""

__version__ = "0.1.0"
__logo__ = "🔒"
