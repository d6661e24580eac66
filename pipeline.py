"""Main pipeline orchestration for the EdTech digest.

This module coordinates one digest run end to end:

Pipeline Flow:
    1. SEARCH: Query the search provider for recent candidate pages
    2. DEDUP: Drop repeated URLs and sources seen in earlier runs
    3. SCRAPE: Render and extract candidates in paced, bounded batches
    4. GENERATE: Ask the primary provider (then the secondary) for the digest
    5. VALIDATE: Keep only points attributed to documents actually sent
    6. STORE: Upsert the rendered message, then mark sent sources as seen
    7. DELIVER: Project onto the template fields and POST to the transport

Failure Policy:
    Failures of a single URL or a single provider attempt are absorbed by
    the stage that owns them. A run that ends up with no candidates, no
    extracted content, or no generated digest raises PipelineError.
"""

import asyncio
import functools
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import date as Date
from typing import Any, Awaitable, Callable

from agents.summarizer import AgentProvider, DigestGenerator, GenerationError
from config import Config
from database import Database
from digest import project, render_message, validate_digest
from models.digest import TemplateRecord
from models.source import CandidateSource
from notifications import send_template_message
from observability.logging import clear_context, set_run_context
from observability.tracing import setup_tracing, trace_operation
from tools.fetch import ContentExtractor
from tools.render import PlaywrightRenderer
from tools.scraper import Extractor, scrape_all
from tools.search import search_sources
from tools.utils import RetryPolicy

logger = logging.getLogger(__name__)

SearchFn = Callable[[], Awaitable[list[CandidateSource]]]
TransportFn = Callable[[TemplateRecord], Awaitable[bool]]


class PipelineError(Exception):
    """Raised when a run cannot produce a digest.

    Examples:
    - Search returned nothing new
    - No candidate yielded any text
    - Every provider attempt failed
    """
    pass


@dataclass
class PipelineStats:
    """Statistics from a single pipeline run.

    Attributes:
        candidates: Results returned by the search provider
        skipped_seen: Candidates dropped as duplicates or seen in earlier runs
        scraped: Documents extracted with content
        sent_to_generation: Documents included in the prompt
        accepted_points: Digest points taken from the model output
        backfilled_points: Placeholder points added to fill the digest
        delivered: Whether the transport accepted the message
        duration: Total run time in seconds
    """

    candidates: int = 0
    skipped_seen: int = 0
    scraped: int = 0
    sent_to_generation: int = 0
    accepted_points: int = 0
    backfilled_points: int = 0
    delivered: bool = False
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


def _unique_by_url(candidates: list[CandidateSource]) -> list[CandidateSource]:
    seen: set[str] = set()
    unique = []
    for candidate in candidates:
        if candidate.url in seen:
            continue
        seen.add(candidate.url)
        unique.append(candidate)
    return unique


class Pipeline:
    """One-shot digest pipeline with injected collaborators.

    Components:
        - search: Zero-argument coroutine returning candidate sources
        - extractor: Content extractor used by the scrape coordinator
        - generator: Digest generator (providers already constructed)
        - db: Seen-source registry and message store
        - transport: Optional coroutine delivering the template record

    Example:
        >>> pipeline = Pipeline(db, search, extractor, generator, transport)
        >>> stats = await pipeline.run_once()
    """

    def __init__(
        self,
        db: Database,
        search: SearchFn,
        extractor: Extractor,
        generator: DigestGenerator,
        transport: TransportFn | None = None,
        *,
        message_type: str = "edtech_daily_summary",
        search_query: str = "",
        concurrency: int = 3,
        batch_pause: float = 2.0,
        today: Callable[[], Date] = Date.today,
    ):
        self.db = db
        self.search = search
        self.extractor = extractor
        self.generator = generator
        self.transport = transport
        self.message_type = message_type
        self.search_query = search_query
        self.concurrency = concurrency
        self.batch_pause = batch_pause
        self.today = today

    async def run_once(self) -> PipelineStats:
        """Execute one complete pipeline run.

        Returns:
            PipelineStats with counts from each stage

        Raises:
            PipelineError: No candidates, no extracted content, or no digest
        """
        set_run_context(uuid.uuid4().hex[:8])
        start = time.time()
        stats = PipelineStats()
        logger.info("Pipeline started | message_type=%s", self.message_type)

        try:
            await self._run(stats)
        except asyncio.CancelledError:
            logger.info("Pipeline run cancelled")
            raise
        finally:
            stats.duration = time.time() - start
            logger.info(
                "Pipeline done | duration=%.1fs candidates=%d scraped=%d points=%d backfilled=%d delivered=%s",
                stats.duration, stats.candidates, stats.scraped,
                stats.accepted_points + stats.backfilled_points,
                stats.backfilled_points, stats.delivered,
            )
            clear_context()
        return stats

    async def _run(self, stats: PipelineStats) -> None:
        with trace_operation("search") as attrs:
            candidates = await self.search()
            attrs["candidates"] = len(candidates)
        stats.candidates = len(candidates)

        unique = _unique_by_url(candidates)
        seen = self.db.seen_urls({c.url for c in unique})
        fresh = [c for c in unique if c.url not in seen]
        stats.skipped_seen = stats.candidates - len(fresh)
        logger.info(
            "Search complete | candidates=%d new=%d skipped=%d",
            stats.candidates, len(fresh), stats.skipped_seen,
        )
        if not fresh:
            raise PipelineError("No new candidate sources to process")

        with trace_operation("scrape", {"sources": len(fresh)}) as attrs:
            documents = await scrape_all(
                fresh,
                self.extractor,
                concurrency=self.concurrency,
                batch_pause=self.batch_pause,
            )
            attrs["documents"] = len(documents)
        stats.scraped = len(documents)
        if not documents:
            raise PipelineError("No content could be extracted from any candidate")

        sent = self.generator.select(documents)
        stats.sent_to_generation = len(sent)
        with trace_operation("generate", {"documents": len(sent)}):
            try:
                raw = await self.generator.generate(sent)
            except GenerationError as e:
                raise PipelineError(str(e)) from e

        known_urls = [doc.url for doc in sent]
        points = validate_digest(raw, known_urls)
        stats.backfilled_points = sum(1 for p in points if p.backfilled)
        stats.accepted_points = len(points) - stats.backfilled_points

        edition = self.today()
        record = project(points, edition)
        metadata = {
            "article_count": len(sent),
            "search_query": self.search_query,
            "sources": known_urls,
            "date": edition.isoformat(),
            "accepted_points": stats.accepted_points,
            "backfilled_points": stats.backfilled_points,
        }
        self.db.save_message(self.message_type, render_message(points), metadata)

        for url in known_urls:
            self.db.mark_seen(url, commit=False)
        self.db.commit()
        logger.debug("Sources marked seen | count=%d", len(known_urls))

        if self.transport is None:
            logger.info("No transport configured, message left pending | type=%s", self.message_type)
            return
        stats.delivered = await self._deliver(record)
        self.db.set_message_status(self.message_type, "sent" if stats.delivered else "failed")

    async def _deliver(self, record: TemplateRecord) -> bool:
        with trace_operation("deliver"):
            try:
                return await self.transport(record)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Delivery error: %s (%s)", e, type(e).__name__, exc_info=True)
                return False


def build_generator(config: Config) -> DigestGenerator:
    """Construct the digest generator and its providers from configuration."""
    secondary = AgentProvider(config.secondary_model) if config.secondary_model else None
    return DigestGenerator(
        primary=AgentProvider(config.primary_model),
        secondary=secondary,
        retry=RetryPolicy(
            max_attempts=config.generation_attempts,
            delay=config.generation_retry_delay,
        ),
        max_documents=config.max_documents,
        content_cap=config.content_char_cap,
    )


async def run_once(config: Config) -> dict[str, Any]:
    """Run the pipeline once with production collaborators and return stats dict.

    Raises:
        PipelineError: If the run produced no digest
    """
    if config.enable_logfire:
        setup_tracing(enabled=True, service_name="edbrief", token=config.logfire_token)

    search = functools.partial(
        search_sources,
        config.search_query,
        config.search_count,
        config.search_days,
        api_key=config.google_api_key,
        engine_id=config.google_cse_id,
    )
    transport = None
    if config.template_webhook_url:
        transport = functools.partial(
            send_template_message,
            webhook_url=config.template_webhook_url,
            template_name=config.template_name,
        )

    with Database(config.db_path, seen_capacity=config.seen_capacity) as db:
        async with PlaywrightRenderer() as renderer:
            extractor = ContentExtractor(
                renderer,
                nav_timeout=config.nav_timeout_seconds,
                retry=RetryPolicy(
                    max_attempts=config.nav_attempts,
                    delay=config.nav_retry_delay,
                ),
            )
            pipeline = Pipeline(
                db,
                search,
                extractor,
                build_generator(config),
                transport,
                message_type=config.message_type,
                search_query=config.search_query,
                concurrency=config.scrape_concurrency,
                batch_pause=config.batch_pause_seconds,
            )
            stats = await pipeline.run_once()
    return stats.to_dict()
