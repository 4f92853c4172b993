"""Approvals forwarding (exec approval to chat)."""

from execrelay.approvals.forwarder import (
    ExecApprovalForwarder,
    attach_exec_approval_forwarder,
    create_exec_approval_forwarder,
)
from execrelay.approvals.messages import (
    build_expired_message,
    build_request_message,
    build_resolved_message,
    format_command,
)
from execrelay.approvals.targets import resolve_forward_targets, should_forward_exec_approval
from execrelay.approvals.types import (
    ExecApprovalRequest,
    ExecApprovalRequestPayload,
    ExecApprovalResolved,
    ForwardTarget,
)

__all__ = [
    "ExecApprovalForwarder",
    "ExecApprovalRequest",
    "ExecApprovalRequestPayload",
    "ExecApprovalResolved",
    "ForwardTarget",
    "attach_exec_approval_forwarder",
    "build_expired_message",
    "build_request_message",
    "build_resolved_message",
    "create_exec_approval_forwarder",
    "format_command",
    "resolve_forward_targets",
    "should_forward_exec_approval",
]
