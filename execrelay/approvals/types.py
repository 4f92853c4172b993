"""Data model for exec approval forwarding.

Inbound events arrive as camelCase wire dicts from the gateway RPC layer
(``exec.approval.requested`` / ``exec.approval.resolved``); ``from_payload``
turns them into the frozen dataclasses the forwarder works with.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Protocol

from execrelay.utils.exceptions import ValidationError

if TYPE_CHECKING:
    from execrelay.config.schema import Config

EXEC_APPROVAL_DECISIONS: frozenset[str] = frozenset({"allow-once", "allow-always", "deny"})

ForwardSource = Literal["session", "target"]


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _pick(data: dict[str, Any], camel: str, snake: str) -> Any:
    value = data.get(camel)
    return data.get(snake) if value is None else value


@dataclass(frozen=True)
class ExecApprovalRequestPayload:
    """The command awaiting a decision plus optional context."""

    command: str
    cwd: str | None = None
    host: str | None = None
    security: str | None = None
    ask: str | None = None
    agent_id: str | None = None
    resolved_path: str | None = None
    session_key: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> "ExecApprovalRequestPayload":
        data = data if isinstance(data, dict) else {}
        return cls(
            command=str(data.get("command") or ""),
            cwd=_opt_str(data.get("cwd")),
            host=_opt_str(data.get("host")),
            security=_opt_str(data.get("security")),
            ask=_opt_str(data.get("ask")),
            agent_id=_opt_str(_pick(data, "agentId", "agent_id")),
            resolved_path=_opt_str(_pick(data, "resolvedPath", "resolved_path")),
            session_key=_opt_str(_pick(data, "sessionKey", "session_key")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "cwd": self.cwd,
            "host": self.host,
            "security": self.security,
            "ask": self.ask,
            "agentId": self.agent_id,
            "resolvedPath": self.resolved_path,
            "sessionKey": self.session_key,
        }


@dataclass(frozen=True)
class ExecApprovalRequest:
    """An approval request; immutable once created."""

    id: str
    request: ExecApprovalRequestPayload
    created_at_ms: int
    expires_at_ms: int

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ExecApprovalRequest":
        """Build from the ``exec.approval.requested`` payload. Raises ValidationError."""
        if not isinstance(data, dict):
            raise ValidationError("approval request payload must be an object")
        req_id = str(data.get("id") or "").strip()
        if not req_id:
            raise ValidationError("approval request id is required", field="id")
        try:
            created = int(_pick(data, "createdAtMs", "created_at_ms") or 0)
            expires = int(_pick(data, "expiresAtMs", "expires_at_ms") or 0)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"invalid approval timestamps: {e}", field="expiresAtMs") from e
        if expires <= created:
            raise ValidationError("expiresAtMs must be after createdAtMs", field="expiresAtMs")
        return cls(
            id=req_id,
            request=ExecApprovalRequestPayload.from_payload(data.get("request")),
            created_at_ms=created,
            expires_at_ms=expires,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request": self.request.to_payload(),
            "createdAtMs": self.created_at_ms,
            "expiresAtMs": self.expires_at_ms,
        }


@dataclass(frozen=True)
class ExecApprovalResolved:
    """Terminal decision for a request, decided elsewhere.

    `decision` is kept as received; anything outside EXEC_APPROVAL_DECISIONS is
    rendered as a denial.
    """

    id: str
    decision: str
    resolved_by: str | None = None
    ts: int = 0

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ExecApprovalResolved":
        """Build from the ``exec.approval.resolved`` payload. Raises ValidationError without an id."""
        if not isinstance(data, dict):
            raise ValidationError("approval resolved payload must be an object")
        req_id = str(data.get("id") or "").strip()
        if not req_id:
            raise ValidationError("resolved approval id is required", field="id")
        try:
            ts = int(data.get("ts") or 0)
        except (TypeError, ValueError):
            ts = 0
        return cls(
            id=req_id,
            decision=str(data.get("decision") or "").strip().lower(),
            resolved_by=_opt_str(_pick(data, "resolvedBy", "resolved_by")),
            ts=ts,
        )


@dataclass(frozen=True)
class ForwardTarget:
    """One destination, tagged with how it was discovered."""

    channel: str
    to: str
    account_id: str | None = None
    thread_id: str | int | None = None
    source: ForwardSource = "target"


@dataclass(frozen=True)
class DiscordMessageRef:
    """A sent Discord message that can be edited when the approval closes."""

    channel_id: str
    message_id: str
    account_id: str | None = None


@dataclass
class ReplyPayload:
    text: str
    channel_data: dict[str, Any] | None = None


@dataclass
class OutboundDeliveryResult:
    channel: str
    message_id: str | None = None
    channel_id: str | None = None
    chat_id: str | int | None = None


@dataclass
class PendingApproval:
    """Live state for one request between 'requested' and its terminal outcome."""

    request: ExecApprovalRequest
    targets: list[ForwardTarget]
    timer: asyncio.TimerHandle | None = None
    discord_messages: list[DiscordMessageRef] = field(default_factory=list)
    # Embed the approval was closed out with; set once resolved or expired.
    closed_embed: dict[str, Any] | None = None


class DeliverFn(Protocol):
    """Delivery sink. May raise; the forwarder catches per target."""

    def __call__(
        self,
        *,
        config: "Config",
        channel: str,
        to: str,
        account_id: str | None,
        thread_id: str | int | None,
        payloads: list[ReplyPayload],
    ) -> Awaitable[list[OutboundDeliveryResult | dict[str, Any]]]: ...


class EditDiscordEmbedFn(Protocol):
    """Replace a sent Discord message's embed and clear its buttons. May raise."""

    def __call__(
        self,
        *,
        config: "Config",
        channel_id: str,
        message_id: str,
        account_id: str | None,
        embed: dict[str, Any],
    ) -> Awaitable[None]: ...


class ResolveSessionTargetFn(Protocol):
    """Last-known delivery target of the request's session, or None."""

    def __call__(self, *, config: "Config", request: ExecApprovalRequest) -> Any: ...


ConfigProvider = Callable[[], "Config"]
NowMs = Callable[[], int]
