"""Content extraction from rendered article pages.

This module turns one CandidateSource into an ExtractedDocument by
rendering the page in an isolated headless browser and reducing the DOM
to plain text.

Features:
    - Non-article URLs (homepages, /about, /login, ...) skipped before render
    - One isolated browser per URL, torn down on every exit path
    - Images, stylesheets, fonts and media blocked at the network layer
    - Bounded navigation retries with a fixed pause
    - HTML-to-text conversion (drops script, style, nav, footer, iframe, noscript)
    - Publication date from page metadata when present

Error Handling:
    extract() never raises for page-level problems. Every failure is logged
    and degrades to an empty document so the batch can continue.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from html.parser import HTMLParser
from io import StringIO
from urllib.parse import urlparse

from models.source import CandidateSource, ExtractedDocument
from tools.render import Renderer, RenderSession, ResourcePolicy
from tools.utils import RetryPolicy

logger = logging.getLogger(__name__)

# Paths that are homepages or site furniture rather than articles
_NON_ARTICLE_PATTERNS = [
    re.compile(r"^/$"),
    re.compile(r"^/(index|home|default|welcome)\.(html|php|asp|jsp)$", re.IGNORECASE),
    re.compile(r"^/(home|main)/?$", re.IGNORECASE),
    re.compile(
        r"^/(about|contact|faq|help|support|terms|privacy|login|signup|register|account)/?$",
        re.IGNORECASE,
    ),
]

# Meta keys checked for a publication date, in priority order
_DATE_META_KEYS = (
    "article:published_time",
    "publish_date",
    "date",
    "pubdate",
    "publication_date",
)


def is_non_article_url(url: str) -> bool:
    """Return True for URLs unlikely to hold article text.

    Matches bare domains, index/home pages and common site pages such as
    /about or /login. A URL that cannot be parsed is not skipped.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    if path == "":
        return True
    return any(pattern.match(path) for pattern in _NON_ARTICLE_PATTERNS)


class _PageTextExtractor(HTMLParser):
    """Extract body text and date metadata from HTML.

    Ignores content within non-content tags and, when the document has a
    <body>, everything outside it. Block-level tags emit a separator so
    adjacent paragraphs don't run together.

    Usage:
        >>> parser = _PageTextExtractor()
        >>> parser.feed("<body><p>Hello</p><nav>menu</nav><p>world</p></body>")
        >>> parser.get_text()
        ' Hello  world '
    """

    SKIP_TAGS = frozenset({"script", "style", "nav", "footer", "iframe", "noscript", "head"})
    BLOCK_TAGS = frozenset({
        "p", "div", "br", "li", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6",
        "section", "article", "header", "main", "aside", "blockquote", "tr", "td",
        "th", "table", "pre", "figure", "figcaption", "hr",
    })

    def __init__(self):
        super().__init__()
        self._body = StringIO()
        self._loose = StringIO()  # Text seen outside any <body> element
        self._skip_depth = 0
        self._in_body = False
        self._saw_body = False
        self._dates: dict[str, str] = {}

    def handle_starttag(self, tag, attrs):
        if tag == "body":
            self._in_body = True
            self._saw_body = True
        elif tag in self.SKIP_TAGS:
            self._skip_depth += 1
        elif tag == "meta":
            self._record_meta(dict(attrs))
        elif tag == "time":
            value = dict(attrs).get("datetime")
            if value:
                self._dates.setdefault("time", value.strip())
        if tag in self.BLOCK_TAGS:
            self._write(" ")

    def handle_endtag(self, tag):
        if tag == "body":
            self._in_body = False
        elif tag in self.SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1
        if tag in self.BLOCK_TAGS:
            self._write(" ")

    def handle_data(self, data):
        if self._skip_depth == 0:
            self._write(data)

    def _write(self, text: str) -> None:
        if self._in_body:
            self._body.write(text)
        else:
            self._loose.write(text)

    def _record_meta(self, attrs: dict[str, str | None]) -> None:
        key = (attrs.get("property") or attrs.get("name") or "").strip().lower()
        content = (attrs.get("content") or "").strip()
        if key in _DATE_META_KEYS and content:
            self._dates.setdefault(key, content)

    def get_text(self) -> str:
        """Return accumulated body text (or loose text when there is no <body>)."""
        return self._body.getvalue() if self._saw_body else self._loose.getvalue()

    def published_date(self) -> str | None:
        """Return the highest-priority publication date found, if any."""
        for key in (*_DATE_META_KEYS, "time"):
            if key in self._dates:
                return self._dates[key]
        return None


@dataclass
class PageText:
    """Plain text and metadata reduced from a rendered page."""

    text: str
    published_date: str | None = None


def extract_page_text(html: str) -> PageText:
    """Reduce rendered HTML to whitespace-collapsed body text."""
    parser = _PageTextExtractor()
    published = None
    try:
        parser.feed(html)
        parser.close()
        text = parser.get_text()
        published = parser.published_date()
    except Exception:
        # Fallback: strip tags with regex
        text = re.sub(r"<[^>]+>", " ", html)

    text = re.sub(r"\s+", " ", text)
    return PageText(text=text.strip(), published_date=published)


class ContentExtractor:
    """Renders candidate pages and extracts their article text.

    Example:
        >>> async with PlaywrightRenderer() as renderer:
        ...     extractor = ContentExtractor(renderer)
        ...     doc = await extractor.extract(source)
        ...     if doc.ok:
        ...         print(doc.content[:200])
    """

    def __init__(
        self,
        renderer: Renderer,
        policy: ResourcePolicy | None = None,
        nav_timeout: float = 30.0,
        retry: RetryPolicy | None = None,
    ):
        """Initialize the extractor.

        Args:
            renderer: Provider of isolated render sessions
            policy: Resource policy applied to every page (blocks media by default)
            nav_timeout: Timeout per navigation attempt in seconds
            retry: Navigation retry policy (default: 3 attempts, 2s apart)
        """
        self.renderer = renderer
        self.policy = policy or ResourcePolicy()
        self.nav_timeout = nav_timeout
        self.retry = retry or RetryPolicy(max_attempts=3, delay=2.0)

    async def extract(self, source: CandidateSource) -> ExtractedDocument:
        """Render a source and return its text, or an empty document on failure."""
        url = source.url
        if is_non_article_url(url):
            logger.info("Skipping non-article page | url=%s", url)
            return ExtractedDocument.empty(source)

        logger.debug("Extracting content | url=%s", url)
        try:
            async with self.renderer.open(self.policy) as session:
                await self._navigate(session, url)
                html = await session.content()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Extraction failed | url=%s error=%s (%s)", url, e, type(e).__name__)
            return ExtractedDocument.empty(source)

        page = extract_page_text(html)
        if not page.text:
            logger.info("No content extracted | url=%s", url)

        return ExtractedDocument(
            url=url,
            title=source.title,
            content=page.text,
            published_date=page.published_date or source.published_hint,
        )

    async def _navigate(self, session: RenderSession, url: str) -> None:
        """Navigate with bounded retries, re-raising the last failure."""
        attempts = self.retry.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                await session.goto(url, timeout=self.nav_timeout)
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "Navigation attempt %d/%d failed | url=%s error=%s",
                    attempt, attempts, url, e,
                )
                if attempt == attempts:
                    raise
                await asyncio.sleep(self.retry.delay_after(attempt))
