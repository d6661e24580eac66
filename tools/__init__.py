"""Tools for the EdBrief digest pipeline.

This package provides the I/O stages that feed the digest generator:

search_sources:
    Find recent candidate pages via Google Custom Search.

ContentExtractor:
    Render a page in an isolated headless browser and extract its text.
    Skips homepages and site pages, blocks media, retries navigation.

scrape_all:
    Run the extractor over many candidates in paced, bounded batches.

Example:
    >>> from tools import ContentExtractor, PlaywrightRenderer, scrape_all
    >>> async with PlaywrightRenderer() as renderer:
    ...     docs = await scrape_all(sources, ContentExtractor(renderer))
"""

from tools.utils import create_ssl_context, RetryPolicy, USER_AGENT
from tools.render import PlaywrightRenderer, ResourcePolicy
from tools.fetch import ContentExtractor, extract_page_text, is_non_article_url
from tools.scraper import scrape_all
from tools.search import search_sources, SearchError

__all__ = [
    "search_sources",
    "SearchError",
    "ContentExtractor",
    "extract_page_text",
    "is_non_article_url",
    "PlaywrightRenderer",
    "ResourcePolicy",
    "scrape_all",
    "RetryPolicy",
    "create_ssl_context",
    "USER_AGENT",
]
