"""Command-line entrypoint.

Responsibilities (and nothing more):
- Load settings and configure structlog
- Create AppState via the ``lifespan`` context manager
- Dispatch ``run [period]`` (one scheduled run) or ``serve`` (periodic loop)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from crawlsync import __version__
from crawlsync.chunker import TokenChunker
from crawlsync.config import Settings, load_settings
from crawlsync.embeddings import OpenAIEmbedder, build_embedding_client
from crawlsync.errors import RunFailedError
from crawlsync.feed import FeedClient, build_feed_client
from crawlsync.fetcher import Fetcher, build_http_client
from crawlsync.schedulers import run_periodic_scheduler, run_scheduled
from crawlsync.state import AppState
from crawlsync.vector_store import QdrantStore, build_qdrant_client

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create and tear down the shared HTTP clients for one process."""
    crawl_client = build_http_client(settings.crawler)
    feed_client = build_feed_client(settings.feed)
    embedding_client = build_embedding_client(settings.embedding)
    qdrant_client = build_qdrant_client(settings.qdrant)

    embedder = OpenAIEmbedder(embedding_client, settings.embedding)
    state = AppState(
        settings=settings,
        store=QdrantStore(qdrant_client, settings.qdrant.collection, embedder),
        fetcher=Fetcher(crawl_client, settings.crawler),
        feed_client=FeedClient(feed_client),
        chunker=TokenChunker(settings.chunking),
    )

    log.info(
        "crawlsync_starting",
        version=__version__,
        collection=settings.qdrant.collection,
        sites=len(settings.crawler.sites),
        feed_pages=len(settings.feed.pages),
    )

    try:
        yield state
    finally:
        await crawl_client.aclose()
        await feed_client.aclose()
        await embedding_client.close()
        await qdrant_client.close()
        log.info("crawlsync_stopping")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crawlsync",
        description="Keep a Qdrant collection in sync with crawled sites and social feeds.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        help="Path to a crawlsync.yaml file (default: ./crawlsync.yaml, then the user config dir)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Execute one scheduled run and exit")
    run.add_argument(
        "period",
        nargs="?",
        default=None,
        help="hourly (feeds), daily (crawl + cleanup) or all (default)",
    )
    commands.add_parser("serve", help="Run hourly and daily jobs until interrupted")
    return parser


async def _run_command(settings: Settings, command: str, period: str | None) -> None:
    async with lifespan(settings) as state:
        if command == "serve":
            await run_periodic_scheduler(state)
        else:
            await run_scheduled(state, period)


def main(argv: Sequence[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValidationError) as exc:
        parser.error(f"invalid configuration: {exc}")

    _setup_logging(settings)

    try:
        asyncio.run(_run_command(settings, args.command, getattr(args, "period", None)))
    except RunFailedError as exc:
        log.error("run_failed", **exc.to_dict()["error"])
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("interrupted")


if __name__ == "__main__":
    main()
