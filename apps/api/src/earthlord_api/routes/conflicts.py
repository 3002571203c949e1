"""Retry policy for optimistic-lock conflicts."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from earthlord_api.errors import ConcurrentModification

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_conflict(operation: Callable[[], Awaitable[T]]) -> T:
    """Run ``operation``, retrying it once if it loses an optimistic-lock race.

    The operation must re-read whatever it validates against, so the retry
    sees the state left by the winning writer. A second conflict propagates.
    """
    try:
        return await operation()
    except ConcurrentModification as e:
        logger.info("Retrying after conflict: %s", e.detail)
        return await operation()
