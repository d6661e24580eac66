"""Source data models for the scrape stage of the pipeline.

A CandidateSource is produced by the search provider and is never modified
afterwards. The content extractor turns it into an ExtractedDocument, whose
empty ``content`` marks a failed extraction.

Lifecycle:
    CandidateSource -> (seen filter) -> ExtractedDocument -> digest generator
"""

from pydantic import BaseModel, ConfigDict, Field


class CandidateSource(BaseModel):
    """A URL proposed for scraping, with search metadata.

    Attributes:
        url: Page URL (unique key throughout a run)
        title: Search result title
        snippet: Search result snippet
        published_hint: Publication time reported by the search provider, if any

    Example:
        >>> source = CandidateSource(
        ...     url="https://example.edu/news/ai-tutors",
        ...     title="District rolls out AI tutors",
        ... )
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Page URL")
    title: str = Field(default="", description="Search result title")
    snippet: str = Field(default="", description="Search result snippet")
    published_hint: str | None = Field(default=None, description="Provider publication hint")

    def __str__(self) -> str:
        return f"CandidateSource({self.url[:60]})"


class ExtractedDocument(BaseModel):
    """Plain-text content extracted from a rendered page.

    Attributes:
        url: Page URL (same as the originating CandidateSource)
        title: Title carried over from the candidate
        content: Whitespace-collapsed body text, "" when extraction failed
        published_date: Date from page metadata or the candidate hint
    """

    url: str = Field(description="Page URL")
    title: str = Field(default="", description="Page title")
    content: str = Field(default="", description="Extracted plain text")
    published_date: str | None = Field(default=None, description="Publication date")

    @property
    def ok(self) -> bool:
        """True when the extraction produced text."""
        return bool(self.content)

    @classmethod
    def empty(cls, source: CandidateSource) -> "ExtractedDocument":
        """Create the empty result for a failed or skipped extraction."""
        return cls(
            url=source.url,
            title=source.title,
            content="",
            published_date=source.published_hint,
        )

    def __str__(self) -> str:
        return f"ExtractedDocument({self.url[:60]}, chars={len(self.content)})"
