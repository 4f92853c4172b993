"""Forward exec approval requests to chat and close them out when resolved or expired.

Flow: ``handle_requested`` resolves targets, arms the expiry timer and sends the
request (Discord gets an embed with buttons, everyone else plain text). Later,
``handle_resolved`` or the timer takes the entry out of the registry exactly once
and updates every destination: Discord messages are edited in place, other
channels get a fresh text notice.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

from loguru import logger

from execrelay.approvals.messages import (
    build_expired_message,
    build_request_message,
    build_resolved_message,
)
from execrelay.approvals.registry import PendingApprovalRegistry
from execrelay.approvals.targets import resolve_forward_targets, should_forward_exec_approval
from execrelay.approvals.types import (
    ConfigProvider,
    DeliverFn,
    DiscordMessageRef,
    EditDiscordEmbedFn,
    ExecApprovalRequest,
    ExecApprovalResolved,
    ForwardTarget,
    NowMs,
    PendingApproval,
    ReplyPayload,
    ResolveSessionTargetFn,
)
from execrelay.channels.discord_approvals import (
    build_discord_channel_data,
    format_expired_embed,
    format_resolved_embed,
)
from execrelay.channels.message_channel import (
    EDITABLE_MESSAGE_CHANNEL,
    is_deliverable_message_channel,
    normalize_message_channel,
)
from execrelay.config.schema import ApprovalsExecConfig, Config
from execrelay.utils.exceptions import ValidationError, classify_exception, describe_exception


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _exec_config(config: Any) -> ApprovalsExecConfig | None:
    approvals = getattr(config, "approvals", None) if config else None
    return getattr(approvals, "exec", None) if approvals else None


def _channel_of(target: ForwardTarget) -> str:
    return normalize_message_channel(target.channel) or target.channel


def _result_field(result: Any, name: str, camel: str) -> Any:
    if isinstance(result, dict):
        value = result.get(camel)
        return result.get(name) if value is None else value
    return getattr(result, name, None)


def _discord_refs(results: list[Any], target: ForwardTarget) -> list[DiscordMessageRef]:
    refs: list[DiscordMessageRef] = []
    for r in results or []:
        message_id = _result_field(r, "message_id", "messageId")
        if not message_id or message_id == "unknown":
            continue
        channel_id = _result_field(r, "channel_id", "channelId")
        if not channel_id:
            chat_id = _result_field(r, "chat_id", "chatId")
            channel_id = "" if chat_id is None else str(chat_id)
        refs.append(
            DiscordMessageRef(
                channel_id=str(channel_id),
                message_id=str(message_id),
                account_id=target.account_id,
            )
        )
    return refs


async def deliver_to_targets(
    *,
    config: Config,
    targets: list[ForwardTarget],
    text: str,
    channel_data: dict[str, Any] | None = None,
    deliver: DeliverFn,
    should_send: Callable[[], bool] | None = None,
) -> list[DiscordMessageRef]:
    """Deliver to all targets concurrently; return Discord message refs for later editing."""
    discord_messages: list[DiscordMessageRef] = []

    async def _deliver_one(target: ForwardTarget) -> None:
        if should_send is not None and not should_send():
            return
        channel = _channel_of(target)
        if not is_deliverable_message_channel(channel):
            return
        try:
            results = await deliver(
                config=config,
                channel=channel,
                to=target.to,
                account_id=target.account_id,
                thread_id=target.thread_id,
                payloads=[ReplyPayload(text=text, channel_data=channel_data)],
            )
        except Exception as e:
            code, _, _ = classify_exception(e)
            logger.error(
                f"exec approvals: failed to deliver to {channel}:{target.to} [{code}]: {describe_exception(e)}"
            )
            return
        if channel == EDITABLE_MESSAGE_CHANNEL:
            discord_messages.extend(_discord_refs(results, target))

    await asyncio.gather(*(_deliver_one(t) for t in targets))
    return discord_messages


async def edit_discord_messages(
    *,
    config: Config,
    messages: list[DiscordMessageRef],
    embed: dict[str, Any],
    edit_discord_embed: EditDiscordEmbedFn,
) -> None:
    """Edit every message concurrently; a failed edit is logged and does not stop the rest."""

    async def _edit_one(msg: DiscordMessageRef) -> None:
        try:
            await edit_discord_embed(
                config=config,
                channel_id=msg.channel_id,
                message_id=msg.message_id,
                account_id=msg.account_id,
                embed=embed,
            )
        except Exception as e:
            logger.error(
                f"exec approvals: failed to edit discord message "
                f"{msg.channel_id}/{msg.message_id}: {describe_exception(e)}"
            )

    await asyncio.gather(*(_edit_one(msg) for msg in messages))


async def update_targets(
    *,
    config: Config,
    entry: PendingApproval,
    embed: dict[str, Any],
    text: str,
    deliver: DeliverFn,
    edit_discord_embed: EditDiscordEmbedFn,
) -> None:
    """Edit tracked Discord embeds in place; send text to every non-Discord target."""
    entry.closed_embed = embed
    non_discord_targets = [t for t in entry.targets if _channel_of(t) != EDITABLE_MESSAGE_CHANNEL]
    await asyncio.gather(
        edit_discord_messages(
            config=config,
            messages=list(entry.discord_messages),
            embed=embed,
            edit_discord_embed=edit_discord_embed,
        ),
        deliver_to_targets(config=config, targets=non_discord_targets, text=text, deliver=deliver),
    )


class ExecApprovalForwarder:
    """
    Routes approval requests to chat destinations and closes them out.

    Every collaborator is optional:
        get_config: config snapshot per event (default: cached ~/.execrelay/config.json)
        deliver: delivery sink (default: direct Discord/Telegram/Slack HTTP)
        now_ms: clock in epoch milliseconds (default: wall clock)
        resolve_session_target: session's last delivery target (default: session store lookup)
        edit_discord_embed: in-place Discord edit (default: REST PATCH)
    """

    def __init__(
        self,
        *,
        get_config: ConfigProvider | None = None,
        deliver: DeliverFn | None = None,
        now_ms: NowMs | None = None,
        resolve_session_target: ResolveSessionTargetFn | None = None,
        edit_discord_embed: EditDiscordEmbedFn | None = None,
    ):
        if get_config is None:
            from execrelay.config.access import get_config as _cached_config

            get_config = _cached_config
        if deliver is None:
            from execrelay.outbound.deliver import deliver_outbound_payloads

            deliver = deliver_outbound_payloads
        if resolve_session_target is None:
            from execrelay.session.store import resolve_session_target_from_store

            resolve_session_target = resolve_session_target_from_store
        if edit_discord_embed is None:
            from execrelay.channels.discord_approvals import edit_discord_embed as _edit

            edit_discord_embed = _edit
        self._get_config = get_config
        self._deliver = deliver
        self._now_ms = now_ms or _wall_clock_ms
        self._resolve_session_target = resolve_session_target
        self._edit_discord_embed = edit_discord_embed
        self._registry = PendingApprovalRegistry()

    @property
    def pending_count(self) -> int:
        return len(self._registry)

    def is_pending(self, approval_id: str) -> bool:
        return approval_id in self._registry

    async def handle_requested(self, request: ExecApprovalRequest | dict[str, Any]) -> bool:
        """Forward a new approval request.

        Returns True if it was armed and sent here; False if malformed, filtered out,
        without targets, or already pending.
        """
        if isinstance(request, dict):
            try:
                request = ExecApprovalRequest.from_payload(request)
            except ValidationError as e:
                logger.warning(f"exec approvals: ignoring malformed request: {e}")
                return False
        config = self._get_config()
        exec_config = _exec_config(config)
        if not should_forward_exec_approval(config=exec_config, request=request):
            return False
        # Session lookup reads the store from disk; keep it off the event loop.
        targets = await asyncio.to_thread(
            resolve_forward_targets,
            config=config,
            exec_config=exec_config,
            request=request,
            resolve_session_target=self._resolve_session_target,
        )
        if not targets:
            logger.debug(f"exec approvals: no forward targets for {request.id}")
            return False

        expires_in_ms = max(0, request.expires_at_ms - self._now_ms())
        entry = self._registry.arm(
            request,
            targets,
            expires_in_ms=expires_in_ms,
            on_expire=self._handle_expired,
        )
        if entry is None:
            return False
        logger.info(f"exec approvals: forwarding {request.id} to {len(targets)} target(s)")

        text = build_request_message(request, self._now_ms())
        refs = await deliver_to_targets(
            config=config,
            targets=targets,
            text=text,
            channel_data=build_discord_channel_data(request),
            deliver=self._deliver,
            should_send=lambda: self._registry.is_current(request.id, entry),
        )
        entry.discord_messages = refs
        if refs and entry.closed_embed is not None:
            # Closed out while the initial send was still in flight.
            await edit_discord_messages(
                config=config,
                messages=refs,
                embed=entry.closed_embed,
                edit_discord_embed=self._edit_discord_embed,
            )
        return True

    async def handle_resolved(self, resolved: ExecApprovalResolved | dict[str, Any]) -> None:
        """Close out a pending approval with its decision; no-op for unknown ids."""
        if isinstance(resolved, dict):
            try:
                resolved = ExecApprovalResolved.from_payload(resolved)
            except ValidationError as e:
                logger.warning(f"exec approvals: ignoring malformed resolution: {e}")
                return
        entry = self._registry.resolve(resolved.id)
        if entry is None:
            return
        logger.info(f"exec approvals: {resolved.id} resolved ({resolved.decision})")
        await update_targets(
            config=self._get_config(),
            entry=entry,
            embed=format_resolved_embed(entry.request, resolved.decision, resolved.resolved_by),
            text=build_resolved_message(resolved),
            deliver=self._deliver,
            edit_discord_embed=self._edit_discord_embed,
        )

    async def _handle_expired(self, entry: PendingApproval) -> None:
        request = entry.request
        logger.info(f"exec approvals: {request.id} expired")
        await update_targets(
            config=self._get_config(),
            entry=entry,
            embed=format_expired_embed(request),
            text=build_expired_message(request),
            deliver=self._deliver,
            edit_discord_embed=self._edit_discord_embed,
        )

    async def wait_idle(self) -> None:
        """Wait until expiry updates already in progress have finished."""
        await self._registry.wait_idle()

    def stop(self) -> None:
        """Cancel all expiry timers and drop pending approvals (shutdown)."""
        self._registry.stop()


def create_exec_approval_forwarder(**deps: Any) -> ExecApprovalForwarder:
    """Factory mirroring the constructor; every dependency is optional."""
    return ExecApprovalForwarder(**deps)


def attach_exec_approval_forwarder(app_state: dict[str, Any], forwarder: ExecApprovalForwarder) -> None:
    """Install gateway hooks so exec.approval.requested/resolved events reach the forwarder."""
    app_state["exec_approval_forwarder"] = forwarder
    app_state["on_exec_approval_requested"] = forwarder.handle_requested
    app_state["on_exec_approval_resolved"] = forwarder.handle_resolved
