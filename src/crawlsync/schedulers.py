"""Run orchestration: one-shot scheduled runs and the long-running periodic loop.

A run is parameterized by a period:

  hourly  feed ingestion
  daily   web crawl and retention cleanup
  all     everything

Payload indexes are ensured before any pipeline starts. The selected
pipelines run concurrently and the run waits for all of them; if any
failed, a single RunFailedError naming each failure is raised afterwards so
an external scheduler sees a failed invocation.
"""

from __future__ import annotations

import asyncio
import random
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from crawlsync.cleanup import RetentionCleaner
from crawlsync.crawler import WebCrawler
from crawlsync.errors import RunFailedError
from crawlsync.feed import FeedPipeline
from crawlsync.sync import DocumentSyncer

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from crawlsync.state import AppState

log = structlog.get_logger()


class Period(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"
    ALL = "all"

    @classmethod
    def parse(cls, raw: str | None) -> Period:
        """Case-insensitive parse. Blank means ``all``; unknown values fall back to ``all``."""
        if raw is None or not raw.strip():
            return cls.ALL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            log.warning("unknown_period", period=raw, fallback=cls.ALL.value)
            return cls.ALL

    @property
    def runs_feed(self) -> bool:
        return self in (Period.HOURLY, Period.ALL)

    @property
    def runs_crawl(self) -> bool:
        return self in (Period.DAILY, Period.ALL)

    @property
    def runs_cleanup(self) -> bool:
        return self in (Period.DAILY, Period.ALL)


def _jittered_delay(base_seconds: int) -> float:
    return base_seconds * random.uniform(0.8, 1.2)


async def prepare_store(state: AppState) -> None:
    """Create the collection (when configured) and ensure the payload indexes."""
    if state.settings.qdrant.create_collection:
        await state.store.ensure_collection(state.settings.embedding.dimensions)
    await state.store.ensure_payload_indexes()


async def run_scheduled(state: AppState, period: str | None) -> None:
    """Execute one scheduled run for ``period``.

    Raises RunFailedError after every dispatched pipeline has finished if
    store preparation or any pipeline failed.
    """
    resolved = Period.parse(period)
    log.info("scheduled_run_started", period=resolved.value)

    try:
        await prepare_store(state)
    except Exception as exc:
        log.error("store_prepare_failed", period=resolved.value, exc_info=True)
        raise RunFailedError(resolved.value, {"prepare_store": exc}) from exc

    syncer = DocumentSyncer(state.store, state.chunker)
    jobs: dict[str, Coroutine[Any, Any, object]] = {}
    if resolved.runs_feed:
        jobs["feed"] = FeedPipeline(state.settings.feed, state.feed_client, syncer).ingest_all()
    if resolved.runs_crawl:
        jobs["crawl"] = WebCrawler(state.settings.crawler, state.fetcher, syncer).crawl_all()
    if resolved.runs_cleanup:
        jobs["cleanup"] = RetentionCleaner(state.store, state.settings.retention).cleanup()

    results = await asyncio.gather(*jobs.values(), return_exceptions=True)

    failures: dict[str, BaseException] = {}
    for name, result in zip(jobs, results, strict=True):
        if isinstance(result, BaseException):
            failures[name] = result
            log.error("scheduled_task_failed", task=name, period=resolved.value, exc_info=result)

    if failures:
        raise RunFailedError(resolved.value, failures)

    log.info("scheduled_run_complete", period=resolved.value, tasks=list(jobs))


async def run_periodic_scheduler(state: AppState) -> None:
    """Long-running mode: an hourly run on every tick, promoted to ``all`` once a day.

    The first tick is always a full run. Failed runs are logged and the loop
    carries on; a failed full run still counts as the day's full run.
    """
    tick_seconds = state.settings.schedule.hourly_interval_minutes * 60
    full_run_seconds = state.settings.schedule.daily_interval_hours * 3600
    last_full_run: float | None = None

    while True:
        started = time.monotonic()
        if last_full_run is None or started - last_full_run >= full_run_seconds:
            period = Period.ALL
            last_full_run = started
        else:
            period = Period.HOURLY

        try:
            await run_scheduled(state, period)
        except RunFailedError as exc:
            log.warning("periodic_run_failed", period=period.value, failures=sorted(exc.failures))
        except Exception:
            log.error("periodic_run_error", period=period.value, exc_info=True)

        await asyncio.sleep(_jittered_delay(tick_seconds))
