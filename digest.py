"""Digest validation, normalization and template projection.

Generated text is untrusted. This module turns it into at most eight
source-verified points and then into the fixed positional record the
messaging template consumes. Everything here is pure and deterministic.

Expected raw format (one pair per point):
    * District pilots AI tutoring for 4,000 middle-school students ...
      Source: https://example.edu/news/ai-tutors

Validation Rules:
    - A line whose trimmed text starts with "*" is a candidate point
    - The very next line must be "Source: <url>" (label case-insensitive)
    - The URL must be http(s), one of the URLs sent to generation, and not
      already used by an earlier point
    - Accumulation stops at eight accepted points
    - Missing slots are backfilled from unused known URLs, in their given
      order, with a placeholder text (the result may still be short)
"""

import logging
import re
from collections.abc import Iterator, Sequence
from datetime import date as Date

from models.digest import (
    DIGEST_SIZE,
    Accepted,
    DigestPoint,
    LinePairResult,
    Rejected,
    RejectReason,
    TemplateRecord,
)

logger = logging.getLogger(__name__)

BULLET_MARKER = "*"

PLACEHOLDER_POINT = "Important EdTech development (see source for details)"

# Filler for template slots the digest could not supply
PAD_POINT = "No further EdTech updates in this edition."
PAD_LINK = "N/A"

# Maximum characters per template field
FIELD_CHAR_CAP = 1000

MESSAGE_HEADER = "📊 *EdTech Innovations Report* 📊"

_SOURCE_LABEL = re.compile(r"^source:\s*", re.IGNORECASE)
_URL = re.compile(r"https?://\S+")
_BRACKETS = (("[", "]"), ("<", ">"), ("(", ")"))


def _parse_source_url(line: str) -> str | None:
    """Return the URL of a 'Source:' line, or None if it holds no usable URL."""
    rest = _SOURCE_LABEL.sub("", line, count=1).strip()
    if not rest:
        return None
    token = rest.split()[0]
    for opening, closing in _BRACKETS:
        if len(token) > 2 and token.startswith(opening) and token.endswith(closing):
            token = token[1:-1]
            break
    if not _URL.fullmatch(token):
        return None
    return token


def parse_line_pairs(raw: str, known_urls: Sequence[str]) -> Iterator[LinePairResult]:
    """Scan raw text and classify every candidate point.

    Yields one Accepted or Rejected per bullet line, in text order. A source
    counts as used once an Accepted for it has been yielded, so later
    bullets citing it are rejected as duplicates.

    Args:
        raw: Provider output
        known_urls: URLs of the documents sent to generation

    Yields:
        Accepted or Rejected, with 1-based line numbers of the bullet
    """
    known = set(known_urls)
    used: set[str] = set()
    lines = raw.splitlines()

    i = 0
    while i < len(lines):
        line = lines[i].strip()
        line_no = i + 1
        if not line.startswith(BULLET_MARKER):
            i += 1
            continue

        point = line.lstrip(BULLET_MARKER).strip()
        following = lines[i + 1].strip() if i + 1 < len(lines) else ""
        if not _SOURCE_LABEL.match(following):
            yield Rejected(RejectReason.MISSING_SOURCE, line_no)
            i += 1
            continue

        # The source line belongs to this bullet whatever its verdict
        i += 2
        url = _parse_source_url(following)
        if not point:
            yield Rejected(RejectReason.EMPTY_POINT, line_no, following)
        elif url is None:
            yield Rejected(RejectReason.MALFORMED_SOURCE, line_no, following)
        elif url not in known:
            yield Rejected(RejectReason.UNKNOWN_SOURCE, line_no, url)
        elif url in used:
            yield Rejected(RejectReason.DUPLICATE_SOURCE, line_no, url)
        else:
            used.add(url)
            yield Accepted(point=point, source_url=url, line_no=line_no)


def validate_digest(raw: str, known_urls: Sequence[str]) -> list[DigestPoint]:
    """Normalize raw provider output into at most eight verified points.

    Args:
        raw: Provider output
        known_urls: URLs of the documents sent to generation, in send order

    Returns:
        Accepted points in model order, followed by backfilled points
    """
    points: list[DigestPoint] = []
    rejected = 0
    for result in parse_line_pairs(raw, known_urls):
        if isinstance(result, Rejected):
            rejected += 1
            logger.debug(
                "Digest line rejected | line=%d reason=%s detail=%s",
                result.line_no, result.reason.value, result.detail[:80],
            )
            continue
        points.append(DigestPoint(text=result.point, source_url=result.source_url))
        if len(points) == DIGEST_SIZE:
            break

    accepted = len(points)
    used = {p.source_url for p in points}
    for url in known_urls:
        if len(points) == DIGEST_SIZE:
            break
        if url in used:
            continue
        used.add(url)
        points.append(DigestPoint(text=PLACEHOLDER_POINT, source_url=url, backfilled=True))

    backfilled = len(points) - accepted
    level = logging.WARNING if backfilled or len(points) < DIGEST_SIZE else logging.INFO
    logger.log(
        level,
        "Digest validated | accepted=%d rejected=%d backfilled=%d total=%d",
        accepted, rejected, backfilled, len(points),
    )
    return points


def _cap(text: str) -> str:
    return text[:FIELD_CHAR_CAP]


def project(points: Sequence[DigestPoint], date: Date | str | None = None) -> TemplateRecord:
    """Map a digest onto the fixed template fields.

    Always yields exactly eight point/link pairs: missing slots get a fixed
    filler pair and every field is truncated to FIELD_CHAR_CAP characters.

    Args:
        points: Validated digest (extra points beyond eight are ignored)
        date: Edition date (defaults to today)
    """
    if date is None:
        date = Date.today()
    if isinstance(date, Date):
        date = date.isoformat()

    fields: dict[str, str] = {"date": date}
    for slot in range(1, DIGEST_SIZE + 1):
        if slot <= len(points):
            point = points[slot - 1]
            fields[f"point{slot}"] = _cap(point.text)
            fields[f"link{slot}"] = _cap(point.source_url)
        else:
            fields[f"point{slot}"] = PAD_POINT
            fields[f"link{slot}"] = PAD_LINK
    return TemplateRecord(**fields)


def render_message(points: Sequence[DigestPoint]) -> str:
    """Render the stored message body: header followed by bullet/source pairs."""
    lines = [MESSAGE_HEADER, ""]
    for point in points:
        lines.append(f"{BULLET_MARKER} {point.text}")
        lines.append(f"  Source: {point.source_url}")
    return "\n".join(lines)
