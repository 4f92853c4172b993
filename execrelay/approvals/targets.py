"""Decide whether an approval is forwarded, and to which destinations."""

from __future__ import annotations

import re
from typing import Any

from loguru import logger

from execrelay.approvals.types import ExecApprovalRequest, ForwardSource, ForwardTarget, ResolveSessionTargetFn
from execrelay.channels.message_channel import (
    is_deliverable_message_channel,
    is_internal_message_channel,
    normalize_message_channel,
)
from execrelay.config.schema import ApprovalsExecConfig, Config
from execrelay.routing.session_key import parse_agent_session_key

DEFAULT_MODE = "session"
_MODES = ("session", "targets", "both")


def normalize_mode(mode: str | None) -> str:
    value = (mode or DEFAULT_MODE).strip().lower()
    return value if value in _MODES else DEFAULT_MODE


def match_session_filter(session_key: str, patterns: list[str]) -> bool:
    """True if any pattern is a substring of, or a regex matching, the session key."""
    for pattern in patterns:
        if pattern in session_key:
            return True
        try:
            if re.search(pattern, session_key):
                return True
        except re.error:
            # Malformed regex: the substring check above is all it gets.
            continue
    return False


def _request_agent_id(request: ExecApprovalRequest) -> str | None:
    if request.request.agent_id:
        return request.request.agent_id
    parsed = parse_agent_session_key(request.request.session_key)
    return parsed.agent_id if parsed else None


def should_forward_exec_approval(
    *,
    config: ApprovalsExecConfig | None,
    request: ExecApprovalRequest,
) -> bool:
    """True if we should forward this approval request to chat."""
    if config is None or not getattr(config, "enabled", False):
        return False
    agent_filter = getattr(config, "agent_filter", None)
    if agent_filter:
        agent_id = _request_agent_id(request)
        if not agent_id or agent_id not in agent_filter:
            return False
    session_filter = getattr(config, "session_filter", None)
    if session_filter:
        session_key = (request.request.session_key or "").strip()
        if not session_key:
            return False
        if not match_session_filter(session_key, list(session_filter)):
            return False
    return True


def _field(target: Any, name: str) -> Any:
    if isinstance(target, dict):
        camel = "".join(p if i == 0 else p.title() for i, p in enumerate(name.split("_")))
        return target.get(name, target.get(camel))
    return getattr(target, name, None)


def to_forward_target(target: Any, source: ForwardSource) -> ForwardTarget | None:
    """ForwardTarget from a config model, dataclass or dict; None if channel/to is missing."""
    channel = str(_field(target, "channel") or "").strip()
    to = str(_field(target, "to") or "").strip()
    if not channel or not to:
        return None
    account_id = _field(target, "account_id")
    account_id = str(account_id).strip() if account_id is not None else ""
    thread_id = _field(target, "thread_id")
    return ForwardTarget(
        channel=channel,
        to=to,
        account_id=account_id or None,
        thread_id=thread_id if thread_id not in ("", None) else None,
        source=source,
    )


def build_target_key(target: ForwardTarget) -> str:
    """Dedup key: (normalized channel, to, account, thread). `source` is not part of it."""
    channel = normalize_message_channel(target.channel) or target.channel
    account_id = target.account_id or ""
    thread_id = "" if target.thread_id is None else str(target.thread_id)
    return ":".join([channel, target.to, account_id, thread_id])


def resolve_forward_targets(
    *,
    config: Config,
    exec_config: ApprovalsExecConfig,
    request: ExecApprovalRequest,
    resolve_session_target: ResolveSessionTargetFn,
) -> list[ForwardTarget]:
    """Session target first (mode session/both), then explicit targets (targets/both), deduplicated."""
    mode = normalize_mode(getattr(exec_config, "mode", None))
    targets: list[ForwardTarget] = []
    seen: set[str] = set()

    def _add(target: ForwardTarget) -> None:
        key = build_target_key(target)
        if key in seen:
            return
        seen.add(key)
        targets.append(target)

    if mode in ("session", "both"):
        raw = resolve_session_target(config=config, request=request)
        session_target = to_forward_target(raw, "session") if raw is not None else None
        if session_target is not None:
            if is_deliverable_message_channel(session_target.channel):
                _add(session_target)
            elif is_internal_message_channel(session_target.channel):
                logger.debug(
                    f"exec approvals: session {request.request.session_key} is on internal channel "
                    f"{session_target.channel}; nothing to forward to"
                )
            else:
                logger.debug(
                    f"exec approvals: session target channel {session_target.channel} is not deliverable"
                )

    if mode in ("targets", "both"):
        for raw in getattr(exec_config, "targets", None) or []:
            target = to_forward_target(raw, "target")
            if target is not None:
                _add(target)

    return targets
