"""Poll loop: signature stream -> classifier -> notification queue.

One cycle: fetch the page of signatures newer than the cursor, walk the
unseen ones oldest first, fetch + classify + alert each, then commit the
cursor. Cycles never overlap. The delay to the next cycle is computed
explicitly by BackoffPolicy so the schedule can be tested on its own.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from burnwatch.alerts import AlertBuilder
from burnwatch.classifier import TransactionClassifier
from burnwatch.clients.base import RateLimitedError
from burnwatch.clients.solana_rpc import SolanaRPCClient
from burnwatch.dedup import DedupCursor
from burnwatch.models import TransactionRecord
from burnwatch.notifier import NotificationQueue
from burnwatch.utils.retry import with_retry

log = logging.getLogger("burnwatch.poll")


class PollState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"


@dataclass
class BackoffPolicy:
    """Exponential backoff that only ever adds to the base cadence."""

    base_interval: float = 30.0
    initial: float = 1.0
    maximum: float = 60.0
    multiplier: float = 2.0
    current: float = field(init=False)

    def __post_init__(self) -> None:
        self.current = self.initial

    def on_success(self) -> None:
        self.current = self.initial

    def on_rate_limited(self) -> float:
        self.current = min(self.current * self.multiplier, self.maximum)
        return self.current

    @property
    def extra(self) -> float:
        return self.current if self.current > self.initial else 0.0

    def next_delay(self, elapsed: float) -> float:
        return max(0.0, self.base_interval - elapsed) + self.extra


@dataclass
class CycleResult:
    fetched: int = 0
    processed: int = 0
    events: int = 0
    queued: int = 0
    failed: int = 0
    rate_limited: bool = False
    error: str = ""


class PollLoop:
    def __init__(
        self,
        rpc: SolanaRPCClient,
        mint: str,
        cursor: DedupCursor,
        classifier: TransactionClassifier,
        alerts: AlertBuilder,
        queue: NotificationQueue,
        backoff: BackoffPolicy | None = None,
        page_limit: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rpc = rpc
        self.mint = mint
        self.cursor = cursor
        self.classifier = classifier
        self.alerts = alerts
        self.queue = queue
        self.backoff = backoff or BackoffPolicy()
        self.page_limit = page_limit
        self.clock = clock
        self.state = PollState.IDLE

    async def start(self) -> None:
        """Seed the cursor at the newest signature for the mint."""
        newest = await self._newest_signature()
        if newest:
            self.cursor.seed(newest)
            log.info("Signature start: %s...", newest[:16])
        else:
            log.info("No signatures yet for %s, starting from the beginning", self.mint)

    @with_retry(attempts=5)
    async def _newest_signature(self) -> str | None:
        page = await self.rpc.get_signatures_for_address(self.mint, limit=1)
        return page[0].signature if page else None

    async def run_cycle(self) -> CycleResult:
        if self.state is PollState.POLLING:
            raise RuntimeError("poll cycle already in progress")
        self.state = PollState.POLLING
        try:
            return await self._cycle()
        finally:
            self.state = PollState.IDLE

    async def _cycle(self) -> CycleResult:
        result = CycleResult()
        page = await self.rpc.get_signatures_for_address(
            self.mint, limit=self.page_limit, until=self.cursor.cursor
        )
        result.fetched = len(page)
        if not page:
            return result

        for info in self.cursor.unseen(page):
            try:
                if info.failed:
                    continue
                queued = await self.process(info.signature, result)
                result.queued += int(queued)
            except Exception as e:
                result.failed += 1
                log.warning("Error processing tx %s: %s", info.signature, e)
            finally:
                # marked only after the attempt, success or not; never retried
                self.cursor.mark_seen(info.signature)
                result.processed += 1

        self.cursor.commit(page)
        return result

    async def process(self, signature: str, result: CycleResult | None = None) -> bool:
        """Fetch, classify and enqueue one transaction. True if queued."""
        raw = await self.rpc.get_transaction(signature)
        record = TransactionRecord.from_rpc(signature, raw)
        if record is None:
            log.debug("%s: transaction unavailable, skipping", signature)
            return False

        event = self.classifier.classify(record)
        if event is None:
            return False
        if result is not None:
            result.events += 1

        notification = await self.alerts.build(event)
        if notification is None:
            return False
        self.queue.enqueue(notification)
        return True

    async def tick(self) -> float:
        """Run one guarded cycle and return the delay before the next."""
        start = self.clock()
        try:
            result = await self.run_cycle()
            self.backoff.on_success()
            if result.fetched:
                log.debug(
                    "Cycle: %d fetched, %d processed, %d events, %d queued",
                    result.fetched, result.processed, result.events, result.queued,
                )
        except RateLimitedError as e:
            wait = self.backoff.on_rate_limited()
            log.warning("Rate limited (%s). Backing off %.0fs...", e, wait)
        except Exception as e:
            log.exception("Polling error: %s", e)

        return self.backoff.next_delay(self.clock() - start)

    async def run_forever(self, stop: asyncio.Event | None = None) -> None:
        stop = stop or asyncio.Event()
        while not stop.is_set():
            delay = await self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
