"""Digest models: validated points, parse results, and the template record.

The digest is an ordered list of at most eight DigestPoint values with
distinct source URLs. The TemplateRecord is its positional projection onto
the fixed fields of the outbound messaging template.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

# Number of (point, link) slots in the messaging template
DIGEST_SIZE = 8


class DigestPoint(BaseModel):
    """A single bullet of the digest with its attributed source."""

    text: str = Field(description="Bullet text without the bullet marker")
    source_url: str = Field(description="URL of the document the bullet came from")
    backfilled: bool = Field(default=False, description="True for placeholder points")


class RejectReason(str, Enum):
    """Why a candidate bullet line was not accepted."""

    MISSING_SOURCE = "missing_source"      # No "Source:" line right after the bullet
    MALFORMED_SOURCE = "malformed_source"  # Source line without an http(s) URL
    UNKNOWN_SOURCE = "unknown_source"      # URL not among the documents sent
    DUPLICATE_SOURCE = "duplicate_source"  # URL already used by an earlier point
    EMPTY_POINT = "empty_point"            # Bullet marker with no text


@dataclass(frozen=True)
class Accepted:
    """A bullet line paired with a valid, unused source URL."""

    point: str
    source_url: str
    line_no: int


@dataclass(frozen=True)
class Rejected:
    """A bullet line that could not be paired with a usable source."""

    reason: RejectReason
    line_no: int
    detail: str = ""


LinePairResult = Accepted | Rejected


class TemplateRecord(BaseModel):
    """Positional fields consumed by the messaging template.

    Field order for the transport is date, point1..point8, link1..link8.
    """

    date: str
    point1: str
    point2: str
    point3: str
    point4: str
    point5: str
    point6: str
    point7: str
    point8: str
    link1: str
    link2: str
    link3: str
    link4: str
    link5: str
    link6: str
    link7: str
    link8: str

    @property
    def points(self) -> list[str]:
        return [getattr(self, f"point{i}") for i in range(1, DIGEST_SIZE + 1)]

    @property
    def links(self) -> list[str]:
        return [getattr(self, f"link{i}") for i in range(1, DIGEST_SIZE + 1)]

    def positional_fields(self) -> list[str]:
        """Return template parameters in transport order."""
        return [self.date, *self.points, *self.links]
