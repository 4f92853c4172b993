"""In-flight approval registry with one expiry timer per request.

`take()` (lookup + delete, no await in between) is the only way an entry leaves
the registry, so whichever of resolution or expiry calls it first wins and the
other becomes a no-op. Cancelling the timer on resolution is best effort only.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from execrelay.approvals.types import ExecApprovalRequest, ForwardTarget, PendingApproval

ExpireCallback = Callable[[PendingApproval], Awaitable[None]]


class PendingApprovalRegistry:
    """Pending approvals keyed by request id. Owned by a single forwarder."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingApproval] = {}
        self._expiry_tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, approval_id: object) -> bool:
        return approval_id in self._pending

    def get(self, approval_id: str) -> PendingApproval | None:
        return self._pending.get(approval_id)

    def is_current(self, approval_id: str, entry: PendingApproval) -> bool:
        """True while `entry` is still the live entry for `approval_id`."""
        return self._pending.get(approval_id) is entry

    def arm(
        self,
        request: ExecApprovalRequest,
        targets: list[ForwardTarget],
        *,
        expires_in_ms: int,
        on_expire: ExpireCallback,
    ) -> PendingApproval | None:
        """Register a request and schedule its expiry. None if the id is already pending."""
        if request.id in self._pending:
            logger.debug(f"exec approvals: {request.id} already pending, ignoring duplicate request")
            return None
        loop = asyncio.get_running_loop()
        entry = PendingApproval(request=request, targets=list(targets))
        entry.timer = loop.call_later(
            max(0, expires_in_ms) / 1000.0,
            self._fire,
            request.id,
            on_expire,
        )
        self._pending[request.id] = entry
        return entry

    def take(self, approval_id: str) -> PendingApproval | None:
        """Remove and return the entry; None if it was already resolved, expired or never armed."""
        return self._pending.pop(approval_id, None)

    def resolve(self, approval_id: str) -> PendingApproval | None:
        """Take the entry for a resolution and disarm its timer."""
        entry = self.take(approval_id)
        if entry is None:
            return None
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        return entry

    def _fire(self, approval_id: str, on_expire: ExpireCallback) -> None:
        entry = self.take(approval_id)
        if entry is None:
            return
        entry.timer = None
        task = asyncio.ensure_future(on_expire(entry))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_done)

    def _expiry_done(self, task: asyncio.Task) -> None:
        self._expiry_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"exec approvals: expiry update failed: {exc}")

    async def wait_idle(self) -> None:
        """Wait for expiry updates that already started (timers that have fired)."""
        while self._expiry_tasks:
            await asyncio.gather(*list(self._expiry_tasks), return_exceptions=True)

    def stop(self) -> None:
        """Cancel every timer and forget every entry; no callbacks fire."""
        for entry in self._pending.values():
            if entry.timer is not None:
                entry.timer.cancel()
                entry.timer = None
        self._pending.clear()
