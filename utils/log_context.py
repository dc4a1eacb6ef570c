"""
Utilities for building structured logging context for listing operations.

Holds the per-request correlation id (set by the web middleware) and a helper
that composes ``extra`` dicts with consistent key names across services.
"""

from contextvars import ContextVar
from typing import Any

# Context variable to store request ID for the current request
request_id_context: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_context.get("")


def get_context_extra(
    user_id: int | str | None = None,
    target_id: int | str | None = None,
    target_type: str | None = None,
    action: str | None = None,
    **additional: Any,
) -> dict[str, Any]:
    """
    Build a structured logging extra dict for a listing operation.

    Args:
        user_id: Acting user (caller) ID
        target_id: Bot, server or pack ID being acted upon
        target_type: "bot", "server" or "pack"
        action: Short action name ("add_bot", "appeal", ...)
        **additional: Any additional key-value pairs to include

    Examples:
        logger.info("Bot added", extra=get_context_extra(user_id=uid, target_id=bid, action="add_bot"))
    """
    extra: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        extra["request_id"] = request_id
    if user_id is not None:
        extra["user_id"] = str(user_id)
    if target_id is not None:
        extra["target_id"] = str(target_id)
    if target_type:
        extra["target_type"] = target_type
    if action:
        extra["action"] = action

    extra.update(additional)
    return extra
