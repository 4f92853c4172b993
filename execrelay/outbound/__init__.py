"""Outbound delivery to chat platforms."""

from execrelay.outbound.deliver import SENDERS, deliver_outbound_payloads

__all__ = ["SENDERS", "deliver_outbound_payloads"]
