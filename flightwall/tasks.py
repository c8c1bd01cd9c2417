"""Fire-and-forget work that runs after the response has been sent."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from starlette.background import BackgroundTasks

logger = logging.getLogger("flightwall.tasks")


async def _guarded(func: Callable[..., Awaitable[Any]], /, *args: Any, **kwargs: Any) -> None:
    try:
        await func(*args, **kwargs)
    except Exception:  # pragma: no cover - fail soft
        logger.warning("Background job %s failed", getattr(func, "__qualname__", func), exc_info=True)


def defer(
    background: BackgroundTasks | None,
    func: Callable[..., Awaitable[Any]],
    /,
    *args: Any,
    **kwargs: Any,
) -> bool:
    """Queue ``func`` on ``background``; returns False when nothing could queue it.

    Jobs are wrapped so that one failure never cancels the jobs queued after
    it or surfaces to the client.
    """

    if background is None:
        logger.debug("No background queue; dropping %s", getattr(func, "__qualname__", func))
        return False
    background.add_task(_guarded, func, *args, **kwargs)
    return True


__all__ = ["BackgroundTasks", "defer"]
