import unittest
from datetime import date

from digest import (
    FIELD_CHAR_CAP,
    MESSAGE_HEADER,
    PAD_LINK,
    PAD_POINT,
    PLACEHOLDER_POINT,
    parse_line_pairs,
    project,
    render_message,
    validate_digest,
)
from models.digest import Accepted, DigestPoint, Rejected, RejectReason

URLS = [f"https://example.edu/news/{i}" for i in range(10)]


def _pairs(urls, prefix="Point"):
    lines = []
    for i, url in enumerate(urls):
        lines.append(f"* {prefix} {i} about a district LMS rollout")
        lines.append(f"  Source: {url}")
    return "\n".join(lines)


class TestValidateDigest(unittest.TestCase):
    def test_eight_valid_pairs_kept_verbatim(self):
        raw = "Here is the briefing:\n\n" + _pairs(URLS[:8])
        points = validate_digest(raw, URLS[:8])
        self.assertEqual(len(points), 8)
        self.assertEqual([p.source_url for p in points], URLS[:8])
        self.assertEqual(points[0].text, "Point 0 about a district LMS rollout")
        self.assertFalse(any(p.backfilled for p in points))

    def test_five_valid_pairs_backfilled_in_known_order(self):
        used = [URLS[7], URLS[2], URLS[4], URLS[0], URLS[9]]
        points = validate_digest(_pairs(used), URLS)
        self.assertEqual([p.source_url for p in points[:5]], used)
        self.assertEqual([p.source_url for p in points[5:]], [URLS[1], URLS[3], URLS[5]])
        self.assertTrue(all(p.backfilled for p in points[5:]))
        self.assertTrue(all(p.text == PLACEHOLDER_POINT for p in points[5:]))

    def test_stops_at_eight_points(self):
        points = validate_digest(_pairs(URLS), URLS)
        self.assertEqual(len(points), 8)
        self.assertEqual([p.source_url for p in points], URLS[:8])

    def test_sources_are_unique(self):
        raw = _pairs([URLS[0], URLS[0], URLS[1], URLS[1], URLS[0]])
        points = validate_digest(raw, URLS[:3])
        urls = [p.source_url for p in points]
        self.assertEqual(len(urls), len(set(urls)))
        self.assertEqual(urls, [URLS[0], URLS[1], URLS[2]])

    def test_short_digest_when_known_urls_exhausted(self):
        points = validate_digest(_pairs(URLS[:2]), URLS[:3])
        self.assertEqual(len(points), 3)

    def test_garbage_output_is_fully_backfilled(self):
        points = validate_digest("I cannot help with that.", URLS[:4])
        self.assertEqual([p.source_url for p in points], URLS[:4])
        self.assertTrue(all(p.backfilled for p in points))

    def test_bracketed_url_and_label_case(self):
        raw = f"* Bracketed\n  source: [{URLS[0]}]\n* Angled\nSOURCE: <{URLS[1]}>"
        points = validate_digest(raw, URLS[:2])
        self.assertEqual([p.text for p in points], ["Bracketed", "Angled"])


class TestParseLinePairs(unittest.TestCase):
    def test_rejection_reasons(self):
        raw = "\n".join([
            "* No source follows",
            "",
            "* Malformed",
            "  Source: see the district website",
            "* Unknown",
            "  Source: https://elsewhere.com/story",
            "* First",
            f"  Source: {URLS[0]}",
            "* Duplicate",
            f"  Source: {URLS[0]}",
        ])
        results = list(parse_line_pairs(raw, URLS[:1]))
        self.assertEqual(
            [r.reason if isinstance(r, Rejected) else "accepted" for r in results],
            [
                RejectReason.MISSING_SOURCE,
                RejectReason.MALFORMED_SOURCE,
                RejectReason.UNKNOWN_SOURCE,
                "accepted",
                RejectReason.DUPLICATE_SOURCE,
            ],
        )
        self.assertEqual([r.line_no for r in results], [1, 3, 5, 7, 9])

    def test_source_must_immediately_follow(self):
        raw = f"* Point\n\n  Source: {URLS[0]}"
        results = list(parse_line_pairs(raw, URLS[:1]))
        self.assertEqual(len(results), 1)
        self.assertIsInstance(results[0], Rejected)

    def test_accepted_carries_point_text(self):
        results = list(parse_line_pairs(f"  *   Spaced point  \n  Source: {URLS[3]}", URLS))
        self.assertEqual(results, [Accepted(point="Spaced point", source_url=URLS[3], line_no=1)])

    def test_bare_bullet_rejected(self):
        results = list(parse_line_pairs(f"*\n  Source: {URLS[0]}", URLS[:1]))
        self.assertEqual(len(results), 1)
        self.assertIsInstance(results[0], Rejected)
        self.assertEqual(results[0].reason, RejectReason.EMPTY_POINT)

    def test_bare_bullet_source_is_backfilled(self):
        points = validate_digest(f"*\n  Source: {URLS[0]}", URLS[:1])
        self.assertEqual(len(points), 1)
        self.assertEqual(points[0].source_url, URLS[0])
        self.assertEqual(points[0].text, PLACEHOLDER_POINT)
        self.assertTrue(points[0].backfilled)


class TestProject(unittest.TestCase):
    def test_full_digest(self):
        points = [DigestPoint(text=f"Point {i}", source_url=URLS[i]) for i in range(8)]
        record = project(points, date(2026, 10, 18))
        self.assertEqual(record.date, "2026-10-18")
        self.assertEqual(record.points, [f"Point {i}" for i in range(8)])
        self.assertEqual(record.links, URLS[:8])

    def test_pads_short_digest(self):
        points = [DigestPoint(text="Only point", source_url=URLS[0])]
        record = project(points, "2026-10-18")
        self.assertEqual(len(record.points), 8)
        self.assertEqual(record.point1, "Only point")
        self.assertEqual(record.points[1:], [PAD_POINT] * 7)
        self.assertEqual(record.links[1:], [PAD_LINK] * 7)

    def test_empty_digest_still_has_eight_pairs(self):
        record = project([], "2026-10-18")
        self.assertEqual(len(record.positional_fields()), 17)

    def test_fields_truncated(self):
        points = [DigestPoint(text="x" * 5000, source_url=URLS[0])]
        record = project(points, "2026-10-18")
        self.assertEqual(len(record.point1), FIELD_CHAR_CAP)
        self.assertTrue(all(len(p) <= FIELD_CHAR_CAP for p in record.points))

    def test_positional_order(self):
        points = [DigestPoint(text=f"P{i}", source_url=URLS[i]) for i in range(8)]
        fields = project(points, "2026-10-18").positional_fields()
        self.assertEqual(fields[0], "2026-10-18")
        self.assertEqual(fields[1:9], [f"P{i}" for i in range(8)])
        self.assertEqual(fields[9:], URLS[:8])


class TestRenderMessage(unittest.TestCase):
    def test_header_and_pairs(self):
        points = [DigestPoint(text="Point A", source_url=URLS[0])]
        message = render_message(points)
        self.assertEqual(message, f"{MESSAGE_HEADER}\n\n* Point A\n  Source: {URLS[0]}")


if __name__ == "__main__":
    unittest.main()
