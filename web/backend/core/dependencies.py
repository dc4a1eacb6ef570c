"""
Dependency injection for FastAPI routes.

The application context lives on ``app.state.context``; handlers reach it
through ``get_context``. Mutating routes declare ``require_user`` which
checks the ``Authorization`` header against the path's ``user_id``.
"""

from __future__ import annotations

import os
from pathlib import Path

from fastapi import Depends, Header, Request

from services.context import AppContext
from services.errors import GenericCode, GenericError
from utils.logging import get_logger

logger = get_logger(__name__)


def project_root() -> Path:
    """
    Return the project root directory.

    ``PROJECT_ROOT`` is honoured in dev/test environments only; otherwise the
    root is derived from this file's location.
    """
    # parents[0] = core/, [1] = backend/, [2] = web/, [3] = project root
    derived = Path(__file__).resolve().parents[3]

    env = os.environ.get("ENV", "").lower()
    env_root = os.environ.get("PROJECT_ROOT")
    if env_root and env in {"dev", "test"}:
        env_path = Path(env_root).resolve()
        if env_path.is_dir():
            return env_path
        logger.warning(
            "PROJECT_ROOT env points to non-existent directory; falling back to derived path",
            extra={"invalid_path": str(env_path)},
        )
    return derived


def get_context(request: Request) -> AppContext:
    """Get the application context created at startup."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Application context not initialized")
    return context


async def require_user(
    user_id: int,
    authorization: str = Header(default=""),
    context: AppContext = Depends(get_context),
) -> int:
    """
    Authorize the caller as ``user_id``.

    Raises:
        GenericError: Forbidden when the header is missing or does not match.
    """
    if not await context.store.authorize_user(user_id, authorization):
        logger.info(
            "Authorization failed",
            extra={"user_id": str(user_id), "error_code": GenericCode.FORBIDDEN.value},
        )
        raise GenericError(GenericCode.FORBIDDEN)
    return user_id
