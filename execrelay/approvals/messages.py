"""Plain-text renderings of the approval lifecycle (requested, resolved, expired)."""

from __future__ import annotations

import math
import re

from execrelay.approvals.types import ExecApprovalRequest, ExecApprovalResolved

_BACKTICK_RUN = re.compile(r"`+")

DECISION_LABELS = {
    "allow-once": "allowed once",
    "allow-always": "allowed always",
}


def longest_backtick_run(text: str) -> int:
    return max((len(m) for m in _BACKTICK_RUN.findall(text)), default=0)


def format_command(command: str) -> str:
    """
    Render a command as markdown code.

    Multi-line commands, or ones containing ``` themselves, go in a fenced block
    whose fence is longer than any backtick run inside. Everything else is inline
    code, delimited by a run one longer than any backtick run inside.
    """
    command = (command or "").strip()
    if not command:
        return "(none)"
    longest = longest_backtick_run(command)
    if "\n" in command or longest >= 3:
        fence = "`" * max(3, longest + 1)
        return f"{fence}\n{command}\n{fence}"
    delim = "`" * (longest + 1)
    if command.startswith("`") or command.endswith("`"):
        return f"{delim} {command} {delim}"
    return f"{delim}{command}{delim}"


def expires_in_seconds(expires_at_ms: int, now_ms: int) -> int:
    """Whole seconds left, rounded half up, never negative."""
    return max(0, math.floor((expires_at_ms - now_ms) / 1000 + 0.5))


def build_request_message(request: ExecApprovalRequest, now_ms: int) -> str:
    """Build the approval request text."""
    req = request.request
    command = format_command(req.command)
    lines = [
        "Exec approval required",
        f"ID: {request.id}",
        f"Command:\n{command}" if "\n" in command else f"Command: {command}",
    ]
    if req.cwd:
        lines.append(f"CWD: {req.cwd}")
    if req.host:
        lines.append(f"Host: {req.host}")
    if req.agent_id:
        lines.append(f"Agent: {req.agent_id}")
    if req.security:
        lines.append(f"Security: {req.security}")
    if req.ask:
        lines.append(f"Ask: {req.ask}")
    lines.append(f"Expires in: {expires_in_seconds(request.expires_at_ms, now_ms)}s")
    lines.append("Reply with: /approve <id> allow-once|allow-always|deny")
    return "\n".join(lines)


def decision_label(decision: str) -> str:
    return DECISION_LABELS.get(decision, "denied")


def build_resolved_message(resolved: ExecApprovalResolved) -> str:
    """Build the approval resolved notification text."""
    base = f"Exec approval {decision_label(resolved.decision)}."
    if resolved.resolved_by:
        base += f" Resolved by {resolved.resolved_by}."
    return f"{base} ID: {resolved.id}"


def build_expired_message(request: ExecApprovalRequest) -> str:
    """Build the approval expired notification text."""
    return f"Expired: exec approval request timed out. ID: {request.id}"
