"""Pydantic models for the EdBrief digest pipeline.

CandidateSource:
    Search result proposed for scraping (url, title, snippet, published_hint).

ExtractedDocument:
    Plain text extracted from a rendered page. Empty content = failed extraction.

DigestPoint:
    One bullet of the digest with its attributed source URL.

Accepted / Rejected:
    Tagged results of pairing a bullet line with its "Source:" line.

TemplateRecord:
    Positional fields (date, point1..8, link1..8) for the messaging template.

Example:
    >>> from models import CandidateSource, DigestPoint
    >>> point = DigestPoint(text="...", source_url="https://example.edu/a")
"""

from models.source import CandidateSource, ExtractedDocument
from models.digest import (
    DIGEST_SIZE,
    Accepted,
    DigestPoint,
    LinePairResult,
    Rejected,
    RejectReason,
    TemplateRecord,
)

__all__ = [
    "CandidateSource",
    "ExtractedDocument",
    "DIGEST_SIZE",
    "Accepted",
    "DigestPoint",
    "LinePairResult",
    "Rejected",
    "RejectReason",
    "TemplateRecord",
]
