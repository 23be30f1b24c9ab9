"""
Bulk private-message delivery with adaptive pacing.

Recipients are processed in batches of five. Between messages we wait a base
delay that adapts to how the platform is treating us: a falling success ratio
(rate limits, transient errors) slows delivery down, a clean run speeds it
back up toward the floor.

Per recipient:
- RateLimited: wait the advised interval (or a doubling default) and retry.
  These retries don't use up delivery attempts.
- RecipientUnreachable / MissingPermission: give up immediately.
- Anything else: retry with exponential backoff, up to MAX_ATTEMPTS.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from .errors import TERMINAL_ERRORS, RateLimited

logger = logging.getLogger(__name__)


BATCH_SIZE = 5
BATCH_DELAY = 2.0
BASE_DELAY_FLOOR = 0.2
BASE_DELAY_CAP = 2.0
MAX_ATTEMPTS = 3
MAX_RATE_LIMIT_RETRIES = 5
RATE_LIMIT_DEFAULT_WAIT = 1.0
RATE_LIMIT_MAX_WAIT = 30.0

SUCCESS_WINDOW = 10
SLOW_DOWN_BELOW = 0.80
SPEED_UP_ABOVE = 0.95
SLOW_DOWN_FACTOR = 1.5
SPEED_UP_FACTOR = 0.75


SendFn = Callable[[str, str], Awaitable[None]]
MessageFactory = Callable[[str], str]


def get_retry_delay(attempt: int, include_jitter: bool = True) -> float:
    """
    Exponential backoff for transient delivery errors.

    Args:
        attempt: Zero-based retry number (0 = first retry)
        include_jitter: Add up to 10% random jitter

    Returns:
        Delay in seconds (1, 2, 4, 8, ... capped at 30)
    """
    base_delay = min(2**attempt, RATE_LIMIT_MAX_WAIT)
    if include_jitter:
        return base_delay + random.uniform(0, base_delay * 0.1)
    return float(base_delay)


@dataclass
class FanoutResult:
    succeeded: int = 0
    failed: int = 0
    failed_recipients: list[str] = field(default_factory=list)
    suppressed: bool = False
    peak_delay: float = BASE_DELAY_FLOOR
    final_delay: float = BASE_DELAY_FLOOR

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class _Pacer:
    """Rolling success ratio and the inter-message delay it drives."""

    def __init__(self):
        self.delay = BASE_DELAY_FLOOR
        self.peak = BASE_DELAY_FLOOR
        self._outcomes: deque[bool] = deque(maxlen=SUCCESS_WINDOW)

    def record(self, success: bool) -> None:
        self._outcomes.append(success)

    @property
    def success_ratio(self) -> float:
        if not self._outcomes:
            return 1.0
        return sum(self._outcomes) / len(self._outcomes)

    def adjust(self) -> None:
        ratio = self.success_ratio
        if ratio < SLOW_DOWN_BELOW:
            self.delay = min(self.delay * SLOW_DOWN_FACTOR, BASE_DELAY_CAP)
        elif ratio > SPEED_UP_ABOVE and self.delay > BASE_DELAY_FLOOR:
            self.delay = max(self.delay * SPEED_UP_FACTOR, BASE_DELAY_FLOOR)
        self.peak = max(self.peak, self.delay)


class NotificationFanout:
    """
    Delivers personalized private messages to many recipients.

    Args:
        send: Coroutine ``send(recipient_id, message)`` that raises a
            DeliveryError subclass on failure.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(self, send: SendFn, sleep: Callable[[float], Awaitable] = asyncio.sleep):
        self.send = send
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}

    def is_running(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    async def deliver(
        self,
        recipients: Iterable[str],
        message_factory: MessageFactory,
        key: str | None = None,
        queue: bool = False,
    ) -> FanoutResult:
        """
        Send ``message_factory(recipient)`` to each recipient.

        Args:
            recipients: Recipient ids; duplicates are sent once.
            message_factory: Builds the message for one recipient.
            key: Concurrency key (usually the operation id). Only one
                fan-out per key runs at a time.
            queue: If another fan-out with this key is running, wait for it
                to finish instead of returning a suppressed result.
        """
        recipients = list(dict.fromkeys(recipients))
        if key is None:
            return await self._deliver_all(recipients, message_factory)

        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked() and not queue:
            logger.warning(f"Fan-out for {key} already in progress, suppressing")
            return FanoutResult(suppressed=True)

        async with lock:
            return await self._deliver_all(recipients, message_factory)

    async def _deliver_all(self, recipients: list[str], message_factory: MessageFactory) -> FanoutResult:
        result = FanoutResult()
        pacer = _Pacer()
        batches = [
            recipients[i : i + BATCH_SIZE] for i in range(0, len(recipients), BATCH_SIZE)
        ]

        for batch_number, batch in enumerate(batches):
            if batch_number > 0:
                await self._sleep(BATCH_DELAY)

            for index, recipient in enumerate(batch):
                if index > 0:
                    await self._sleep(pacer.delay)

                try:
                    message = message_factory(recipient)
                except Exception as e:
                    logger.error(f"Could not build message for {recipient}: {e}")
                    delivered = False
                else:
                    delivered = await self._deliver_one(recipient, message, pacer)

                if delivered:
                    result.succeeded += 1
                else:
                    result.failed += 1
                    result.failed_recipients.append(recipient)
                pacer.adjust()

        result.peak_delay = pacer.peak
        result.final_delay = pacer.delay
        logger.info(
            f"Fan-out complete: {result.succeeded} sent, {result.failed} failed "
            f"(delay peaked at {pacer.peak:.2f}s)"
        )
        return result

    async def _deliver_one(self, recipient: str, message: str, pacer: _Pacer) -> bool:
        attempts = 0
        rate_limit_hits = 0
        rate_limit_wait = RATE_LIMIT_DEFAULT_WAIT

        while attempts < MAX_ATTEMPTS:
            try:
                await self.send(recipient, message)
                pacer.record(True)
                return True

            except RateLimited as e:
                pacer.record(False)
                rate_limit_hits += 1
                if rate_limit_hits > MAX_RATE_LIMIT_RETRIES:
                    logger.warning(f"Giving up on {recipient}: still rate limited")
                    return False
                wait = e.retry_after if e.retry_after is not None else rate_limit_wait
                rate_limit_wait = min(rate_limit_wait * 2, RATE_LIMIT_MAX_WAIT)
                logger.info(f"Rate limited sending to {recipient}, waiting {wait:.1f}s")
                await self._sleep(wait)

            except TERMINAL_ERRORS as e:
                logger.info(f"Cannot message {recipient}: {e}")
                return False

            except Exception as e:
                pacer.record(False)
                attempts += 1
                logger.warning(
                    f"Failed to message {recipient} (attempt {attempts}/{MAX_ATTEMPTS}): {e}"
                )
                if attempts < MAX_ATTEMPTS:
                    await self._sleep(get_retry_delay(attempts - 1))

        return False
