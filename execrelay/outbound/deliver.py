"""Default outbound delivery: post reply payloads straight to chat platform HTTP APIs.

Only Discord, Telegram and Slack are wired up here; any other channel raises
ChannelError so an injected delivery sink (e.g. a gateway bus) can take over.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from execrelay.approvals.types import OutboundDeliveryResult, ReplyPayload
from execrelay.channels.accounts import resolve_api_base, resolve_channel_token
from execrelay.channels.message_channel import normalize_message_channel
from execrelay.config.schema import Config
from execrelay.utils.exceptions import ChannelError

DISCORD_MAX_CONTENT = 2000
TELEGRAM_MAX_TEXT = 4096

Sender = Callable[..., Awaitable[OutboundDeliveryResult]]


def _raise_for_rate_limit(channel: str, response: httpx.Response) -> None:
    if response.status_code == 429:
        raise ChannelError(channel, "rate limited", is_retryable=True)


async def _discord_channel_for(http: httpx.AsyncClient, base: str, headers: dict[str, str], to: str) -> str:
    """Resolve `channel:<id>`, `user:<id>` (opens a DM) or a bare id to a channel id."""
    kind, sep, ident = to.partition(":")
    if not sep:
        return to
    kind = kind.strip().lower()
    ident = ident.strip()
    if kind == "channel":
        return ident
    if kind == "user":
        response = await http.post(f"{base}/users/@me/channels", headers=headers, json={"recipient_id": ident})
        _raise_for_rate_limit("discord", response)
        response.raise_for_status()
        return str(response.json().get("id") or "")
    raise ChannelError("discord", f"unsupported target: {to}")


async def send_discord(
    http: httpx.AsyncClient,
    *,
    config: Config,
    to: str,
    account_id: str | None,
    thread_id: str | int | None,
    payload: ReplyPayload,
) -> OutboundDeliveryResult:
    token = resolve_channel_token(config, "discord", account_id)
    base = resolve_api_base(config, "discord")
    headers = {"Authorization": f"Bot {token}"}
    channel_id = str(thread_id) if thread_id else await _discord_channel_for(http, base, headers, to)
    if not channel_id:
        raise ChannelError("discord", f"could not resolve channel for {to}")
    rich = (payload.channel_data or {}).get("discord") or {}
    body: dict[str, Any] = {}
    if rich.get("embeds"):
        body["embeds"] = rich["embeds"]
        if rich.get("components"):
            body["components"] = rich["components"]
    else:
        body["content"] = payload.text[:DISCORD_MAX_CONTENT]
    response = await http.post(f"{base}/channels/{channel_id}/messages", headers=headers, json=body)
    _raise_for_rate_limit("discord", response)
    response.raise_for_status()
    data = response.json()
    return OutboundDeliveryResult(
        channel="discord",
        message_id=str(data.get("id") or "") or None,
        channel_id=str(data.get("channel_id") or channel_id),
    )


async def send_telegram(
    http: httpx.AsyncClient,
    *,
    config: Config,
    to: str,
    account_id: str | None,
    thread_id: str | int | None,
    payload: ReplyPayload,
) -> OutboundDeliveryResult:
    token = resolve_channel_token(config, "telegram", account_id)
    body: dict[str, Any] = {"chat_id": to, "text": payload.text[:TELEGRAM_MAX_TEXT]}
    if thread_id not in (None, ""):
        body["message_thread_id"] = int(thread_id)
    response = await http.post(f"{resolve_api_base(config, 'telegram')}/bot{token}/sendMessage", json=body)
    _raise_for_rate_limit("telegram", response)
    data = response.json()
    if not data.get("ok"):
        raise ChannelError("telegram", str(data.get("description") or f"HTTP {response.status_code}"))
    result = data.get("result") or {}
    return OutboundDeliveryResult(
        channel="telegram",
        message_id=str(result.get("message_id") or "") or None,
        chat_id=(result.get("chat") or {}).get("id", to),
    )


async def send_slack(
    http: httpx.AsyncClient,
    *,
    config: Config,
    to: str,
    account_id: str | None,
    thread_id: str | int | None,
    payload: ReplyPayload,
) -> OutboundDeliveryResult:
    token = resolve_channel_token(config, "slack", account_id)
    body: dict[str, Any] = {"channel": to, "text": payload.text}
    if thread_id not in (None, ""):
        body["thread_ts"] = str(thread_id)
    response = await http.post(
        f"{resolve_api_base(config, 'slack')}/chat.postMessage",
        headers={"Authorization": f"Bearer {token}"},
        json=body,
    )
    _raise_for_rate_limit("slack", response)
    data = response.json()
    if not data.get("ok"):
        raise ChannelError("slack", str(data.get("error") or f"HTTP {response.status_code}"))
    return OutboundDeliveryResult(
        channel="slack",
        message_id=str(data.get("ts") or "") or None,
        channel_id=str(data.get("channel") or to),
    )


SENDERS: dict[str, Sender] = {
    "discord": send_discord,
    "telegram": send_telegram,
    "slack": send_slack,
}


def _make_client(config: Config, channel: str) -> httpx.AsyncClient:
    proxy = config.channels.telegram.proxy if channel == "telegram" else None
    if proxy:
        return httpx.AsyncClient(timeout=config.channels.timeout_seconds, proxy=proxy)
    return httpx.AsyncClient(timeout=config.channels.timeout_seconds)


async def deliver_outbound_payloads(
    *,
    config: Config,
    channel: str,
    to: str,
    account_id: str | None = None,
    thread_id: str | int | None = None,
    payloads: list[ReplyPayload],
    client: httpx.AsyncClient | None = None,
) -> list[OutboundDeliveryResult]:
    """Send each payload to one destination, in order. Raises on the first failure."""
    normalized = normalize_message_channel(channel) or channel
    sender = SENDERS.get(normalized)
    if sender is None:
        raise ChannelError(normalized, "no direct sender for channel")
    owns_client = client is None
    http = client or _make_client(config, normalized)
    results: list[OutboundDeliveryResult] = []
    try:
        for payload in payloads:
            result = await sender(
                http,
                config=config,
                to=to,
                account_id=account_id,
                thread_id=thread_id,
                payload=payload,
            )
            logger.debug(f"Delivered to {normalized}:{to} (message {result.message_id})")
            results.append(result)
    finally:
        if owns_client:
            await http.aclose()
    return results
