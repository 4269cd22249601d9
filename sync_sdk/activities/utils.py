import asyncio
from datetime import timedelta
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar, cast

from temporalio import activity

from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def auto_heartbeater(fn: F) -> F:
    """Auto-heartbeater for activities.

    Extraction activities can sleep for a whole rate window while draining
    dependent records. Heartbeats let Temporal tell such an activity apart
    from a crashed worker and retry the latter before the start-to-close
    timeout expires.

    Heartbeats are sent three times per heartbeat timeout, which defaults to
    120 seconds outside an activity context.

    Example:
        >>> @activity.defn
        >>> @auto_heartbeater
        >>> async def my_activity():
        ...     pass
    """

    @wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any):
        heartbeat_timeout: Optional[timedelta] = None

        default_heartbeat_timeout = timedelta(seconds=120)
        try:
            activity_heartbeat_timeout = activity.info().heartbeat_timeout
            heartbeat_timeout = (
                activity_heartbeat_timeout
                if activity_heartbeat_timeout
                else default_heartbeat_timeout
            )
        except RuntimeError:
            heartbeat_timeout = default_heartbeat_timeout

        heartbeat_task = asyncio.create_task(
            send_periodic_heartbeat(heartbeat_timeout.total_seconds() / 3)
        )
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in activity {fn.__name__}: {e}", exc_info=e)
            raise
        finally:
            heartbeat_task.cancel()
            await asyncio.wait([heartbeat_task])

    return cast(F, wrapper)


async def send_periodic_heartbeat(delay: float, *details: Any) -> None:
    """Sends heartbeat signals every ``delay`` seconds until cancelled.

    Args:
        delay (float): The delay between heartbeats in seconds.
        *details (Any): Details to include in the heartbeat.
    """
    while True:
        await asyncio.sleep(delay)
        activity.heartbeat(*details)
