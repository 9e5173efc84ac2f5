"""
Extraction Scheduler
Fetches and parses bill pages for every catalog order not yet in the
checkpoint, with bounded concurrency, a fixed inter-batch delay and
periodic checkpoint flushes.
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from checkpoint_store import CheckpointStore
from models import OrderDetail
from parsers.order_detail_parser import parse_order_detail


FetchPage = Callable[[int], Awaitable[str]]


@dataclass
class ScrapeConfig:
    """Scrape run settings."""
    batch_size: int = 10  # ids per batch
    concurrency: int = 10  # in-flight fetches within a batch
    delay_seconds: float = 0.2  # pause between batches
    checkpoint_every: int = 100  # flush after every N processed ids
    request_timeout: Optional[float] = 30.0  # per-id limit, None disables
    retries: int = 0  # extra attempts per id, exponential backoff

    @classmethod
    def from_env(cls) -> 'ScrapeConfig':
        """Build a config from SCRAPE_* environment variables."""
        timeout = float(os.environ.get('SCRAPE_TIMEOUT', '30'))
        return cls(
            batch_size=int(os.environ.get('SCRAPE_BATCH_SIZE', '10')),
            concurrency=int(os.environ.get('SCRAPE_CONCURRENCY', '10')),
            delay_seconds=int(os.environ.get('SCRAPE_DELAY_MS', '200')) / 1000.0,
            checkpoint_every=int(os.environ.get('SCRAPE_CHECKPOINT_EVERY', '100')),
            request_timeout=timeout if timeout > 0 else None,
            retries=int(os.environ.get('SCRAPE_RETRIES', '0')),
        )

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.checkpoint_every < 1:
            raise ValueError("checkpoint_every must be at least 1")
        if self.retries < 0:
            raise ValueError("retries cannot be negative")


@dataclass
class ScrapeRunState:
    """Counters for one scrape run."""
    total: int = 0
    already_done: int = 0
    remaining: int = 0
    processed: int = 0
    errors: int = 0
    total_items: int = 0
    batches: int = 0
    flushes: int = 0
    delays: int = 0
    fetched: int = 0

    @property
    def nothing_to_do(self) -> bool:
        return self.remaining == 0


class ExtractionScheduler:
    """
    Drives fetch + parse over a work list.

    The checkpoint is only touched between batches, after every fetch in
    the batch has settled, so no locking is needed and a flushed snapshot
    never contains half a batch.
    """

    def __init__(self, store: CheckpointStore, fetch_page: FetchPage,
                 config: ScrapeConfig = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.store = store
        self.fetch_page = fetch_page
        self.config = config or ScrapeConfig()
        self.sleep = sleep

    def plan(self, catalog_ids: Iterable[int]) -> Tuple[List[int], ScrapeRunState]:
        """Work out which ids still need scraping, in catalog order."""
        ids = [i for i in catalog_ids if isinstance(i, int) and i > 0]
        done = self.store.done_ids()
        remaining = [i for i in ids if i not in done]

        state = ScrapeRunState(
            total=len(ids),
            already_done=len(done),
            remaining=len(remaining),
            total_items=self.store.total_items(),
        )
        return remaining, state

    async def run(self, catalog_ids: Iterable[int]) -> ScrapeRunState:
        """
        Scrape every catalog id missing from the checkpoint.

        Args:
            catalog_ids: Order ids in catalog order

        Returns:
            The run's counters
        """
        remaining, state = self.plan(catalog_ids)

        if state.already_done:
            print(f"[Scrape] Resuming - {state.already_done} orders already scraped.")
        print(f"[Scrape] Total: {state.total}, Already done: {state.already_done}, "
              f"Remaining: {state.remaining}")

        if state.nothing_to_do:
            print("[Scrape] All orders already scraped!")
            return state

        semaphore = asyncio.Semaphore(self.config.concurrency)
        batch_size = self.config.batch_size

        for start in range(0, len(remaining), batch_size):
            batch = remaining[start:start + batch_size]
            results = await asyncio.gather(
                *(self._scrape_one(foreign_id, semaphore) for foreign_id in batch),
                return_exceptions=True,
            )
            state.batches += 1
            self._apply_results(batch, results, state)

            previous = state.processed
            state.processed += len(batch)

            every = self.config.checkpoint_every
            if state.processed // every > previous // every:
                self.store.save()
                state.flushes += 1
                print(f"[Scrape] Progress: {state.processed}/{state.remaining} "
                      f"({state.total_items} items, {state.errors} errors) - saved to disk")

            if start + batch_size < len(remaining):
                await self.sleep(self.config.delay_seconds)
                state.delays += 1

        self.store.save()
        state.flushes += 1

        print(f"\n[Scrape] Done! Scraped {len(self.store)} orders, "
              f"{state.total_items} total items, {state.errors} errors.")
        print(f"[Scrape] Saved to: {self.store.location}")
        return state

    def _apply_results(self, batch: List[int], results: list, state: ScrapeRunState):
        for foreign_id, result in zip(batch, results):
            if isinstance(result, BaseException):
                state.errors += 1
                print(f"[Scrape]   Error on order {foreign_id}: {_describe_error(result)}")
                continue
            state.fetched += 1
            previous = self.store.get(foreign_id)
            if previous is not None:
                state.total_items -= len(previous.items)
            self.store.put(result)
            state.total_items += len(result.items)

    async def _scrape_one(self, foreign_id: int, semaphore: asyncio.Semaphore) -> OrderDetail:
        async with semaphore:
            html = await self._fetch_with_retries(foreign_id)
        return parse_order_detail(html, foreign_id)

    async def _fetch_with_retries(self, foreign_id: int) -> str:
        if self.config.retries == 0:
            return await self._fetch_with_timeout(foreign_id)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.retries + 1),
            wait=wait_exponential(multiplier=0.5, max=10),
            retry=retry_if_exception(_is_transient),
            sleep=self.sleep,
            reraise=True,
        ):
            with attempt:
                return await self._fetch_with_timeout(foreign_id)

    async def _fetch_with_timeout(self, foreign_id: int) -> str:
        if self.config.request_timeout is None:
            return await self.fetch_page(foreign_id)
        return await asyncio.wait_for(self.fetch_page(foreign_id), self.config.request_timeout)


RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _is_transient(error: BaseException) -> bool:
    """Timeouts, connection failures and 429/5xx responses.

    A redirect to the login page or a 404 will not change on retry.
    """
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS
    return False


def _describe_error(error: BaseException) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "timed out"
    return str(error) or type(error).__name__
