"""Session store access for approval routing."""

from execrelay.session.store import (
    load_session_store,
    resolve_session_delivery_target,
    resolve_session_target_from_store,
    resolve_store_path,
)

__all__ = [
    "load_session_store",
    "resolve_session_delivery_target",
    "resolve_session_target_from_store",
    "resolve_store_path",
]
