"""Batch scrape coordinator.

Runs the content extractor over many candidates in fixed-size batches.
Sources within a batch are extracted concurrently; each batch is awaited in
full before the next starts, with a fixed pause in between. A failure in
one source never affects its siblings.
"""

import asyncio
import logging
from typing import Protocol

from models.source import CandidateSource, ExtractedDocument

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    async def extract(self, source: CandidateSource) -> ExtractedDocument: ...


async def scrape_all(
    sources: list[CandidateSource],
    extractor: Extractor,
    concurrency: int = 3,
    batch_pause: float = 2.0,
) -> list[ExtractedDocument]:
    """Extract all sources, returning only documents with content.

    Args:
        sources: Candidates to extract
        extractor: Content extractor
        concurrency: Extractions in flight per batch
        batch_pause: Pause between batches in seconds (none after the last)

    Returns:
        Non-empty documents, in source order
    """
    if concurrency <= 0:
        raise ValueError("concurrency must be positive")

    documents: list[ExtractedDocument] = []
    failed = 0
    batches = [sources[i:i + concurrency] for i in range(0, len(sources), concurrency)]

    for index, batch in enumerate(batches, start=1):
        logger.debug("Scrape batch started | batch=%d/%d size=%d", index, len(batches), len(batch))
        results = await asyncio.gather(
            *[extractor.extract(source) for source in batch],
            return_exceptions=True,
        )

        for source, result in zip(batch, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failed += 1
                logger.error(
                    "Scrape failed | url=%s error=%s (%s)",
                    source.url, result, type(result).__name__,
                )
                continue
            if result.ok:
                documents.append(result)
            else:
                failed += 1

        if index < len(batches) and batch_pause > 0:
            await asyncio.sleep(batch_pause)

    logger.info(
        "Scrape complete | sources=%d documents=%d empty=%d",
        len(sources), len(documents), failed,
    )
    return documents
