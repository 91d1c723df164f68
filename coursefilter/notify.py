"""
Completion notification to the page context.

When the catalog has been processed, the page gets a fixed message so that
dependent UI (period badges, filter lists) can initialise. The page might not
be listening yet, so delivery is retried on a fixed interval with a capped
number of attempts. Giving up is logged and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from coursefilter.errors import NotificationDeliveryFailure

logger = logging.getLogger(__name__)

LOAD_COMPLETE_MESSAGE = "loadComplete"

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval retry, no backoff."""

    max_attempts: int = 50
    interval: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...] = (NotificationDeliveryFailure,),
) -> T:
    """
    Call `fn` until it succeeds or the policy is exhausted.

    Only exceptions listed in `retry_on` are retried; the last one is
    re-raised after the final attempt.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            if attempt == policy.max_attempts:
                raise
            logger.debug("Attempt %d/%d failed: %s", attempt, policy.max_attempts, e)
            await asyncio.sleep(policy.interval)
    raise AssertionError("unreachable")


class MessageChannel(Protocol):
    async def send(self, message: str) -> None:
        """Deliver `message`; raise NotificationDeliveryFailure if nobody listens."""


class QueueChannel:
    """
    In-process page context: messages land in an asyncio queue once the
    page has called mark_ready().
    """

    def __init__(self, ready: bool = False) -> None:
        self.ready = ready
        self.queue: asyncio.Queue[str] = asyncio.Queue()

    def mark_ready(self) -> None:
        self.ready = True

    async def send(self, message: str) -> None:
        if not self.ready:
            raise NotificationDeliveryFailure("page is not listening yet")
        self.queue.put_nowait(message)


class CompletionNotifier:
    def __init__(
        self,
        channel: MessageChannel,
        policy: Optional[RetryPolicy] = None,
        message: str = LOAD_COMPLETE_MESSAGE,
    ) -> None:
        self.channel = channel
        self.policy = policy or RetryPolicy()
        self.message = message
        # the loop only keeps weak references to tasks
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def notify(self) -> bool:
        """
        Returns True if the page received the message. Never raises: a page
        that cannot be reached must not break response handling.
        """
        try:
            await retry_async(lambda: self.channel.send(self.message), self.policy)
        except NotificationDeliveryFailure as e:
            logger.warning("Gave up notifying page after %d attempts: %s", self.policy.max_attempts, e)
            return False
        except Exception:
            logger.exception("Unexpected error while notifying page")
            return False
        return True

    def schedule(self) -> "asyncio.Task[bool]":
        """Run notify() in the background; the caller does not wait for it."""
        task = asyncio.get_running_loop().create_task(self.notify())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
