import unittest
from datetime import date

from application.retrieval.quality import RULE_ORDER, apply_quality_filters, is_placeholder
from application.retrieval.settings import QualitySettings
from domain.entities import Chunk, ChunkMetadata, DateRange, FilterCriteria, RetrievalRequest

BODY = (
    "Hardening a WordPress installation starts with strong passwords, two factor authentication, "
    "regular plugin updates, least privilege roles, reliable offsite backups and a web application firewall"
)


def _chunk(chunk_id, score, **meta):
    meta.setdefault("word_count", 25)
    text = meta.pop("text", BODY)
    return Chunk(id=chunk_id, text=text, score=score, metadata=ChunkMetadata(**meta))


def _request(k=10, min_score=0.5, **filters):
    return RetrievalRequest(
        section_id="section-intro",
        query="WordPress security best practices",
        k=k,
        min_score=min_score,
        filters=FilterCriteria(**filters),
    )


class TestApplyQualityFilters(unittest.TestCase):
    def test_min_score_is_inclusive(self):
        chunks = [_chunk("a", 0.5), _chunk("b", 0.4999)]
        report = apply_quality_filters(chunks, _request())
        self.assertEqual([chunk.id for chunk in report.chunks], ["a"])
        self.assertEqual(report.rejections, {"min_score": 1})
        self.assertEqual(report.candidates, 2)

    def test_license_filter_keeps_only_allowed_licenses(self):
        chunks = [
            _chunk("d1", 0.92, license="CC-BY"),
            _chunk("d2", 0.90, license="CC-BY-SA"),
            _chunk("d3", 0.70, license="CC-BY"),
            _chunk("d4", 0.80, license="unknown"),
        ]
        report = apply_quality_filters(chunks, _request(licenses=("CC-BY",)))
        self.assertEqual([chunk.id for chunk in report.chunks], ["d1", "d3"])
        self.assertEqual(report.rejections, {"license": 2})

    def test_unknown_license_passes_when_commercial_is_allowed(self):
        chunks = [_chunk("u", 0.9, license="unknown"), _chunk("c", 0.9, license="CC-BY")]
        report = apply_quality_filters(chunks, _request(licenses=("commercial",)))
        self.assertEqual([chunk.id for chunk in report.chunks], ["u"])

    def test_language_and_word_count(self):
        chunks = [
            _chunk("en", 0.9, language="en"),
            _chunk("de", 0.9, language="de"),
            _chunk("thin", 0.9, language="en", word_count=5),
        ]
        report = apply_quality_filters(chunks, _request(language="en"))
        self.assertEqual([chunk.id for chunk in report.chunks], ["en"])
        self.assertEqual(report.rejections, {"language": 1, "word_count": 1})

    def test_request_min_word_count_overrides_default(self):
        chunks = [_chunk("a", 0.9, word_count=25), _chunk("b", 0.9, word_count=40)]
        report = apply_quality_filters(chunks, _request(min_word_count=30))
        self.assertEqual([chunk.id for chunk in report.chunks], ["b"])

    def test_first_failing_rule_is_the_only_reason(self):
        chunk = _chunk("bad", 0.1, license="CC-BY-NC", word_count=2, text="lorem ipsum")
        report = apply_quality_filters([chunk], _request(licenses=("CC-BY",)))
        self.assertEqual(report.rejections, {"min_score": 1})

    def test_excluded_ids_and_date_range(self):
        chunks = [
            _chunk("old", 0.9, content_id=1, date="2023-12-31T23:00:00"),
            _chunk("excluded", 0.9, content_id=2, date="2024-02-01"),
            _chunk("kept", 0.9, content_id=3, date="2024-02-01T09:30:00"),
            _chunk("undated", 0.9, content_id=4),
        ]
        report = apply_quality_filters(
            chunks,
            _request(exclude_ids=(2,), date_range=DateRange(date(2024, 1, 1), None)),
        )
        self.assertEqual([chunk.id for chunk in report.chunks], ["kept", "undated"])
        self.assertEqual(report.rejections, {"excluded_id": 1, "date_range": 1})

    def test_keeps_provider_order_and_truncates_to_k(self):
        chunks = [_chunk(str(i), score) for i, score in enumerate([0.6, 0.95, 0.7, 0.99])]
        report = apply_quality_filters(chunks, _request(k=3))
        self.assertEqual([chunk.id for chunk in report.chunks], ["0", "1", "2"])

    def test_tighter_min_score_never_adds_chunks(self):
        chunks = [_chunk(str(i), score) for i, score in enumerate([0.55, 0.65, 0.75, 0.85, 0.95])]
        previous = None
        for threshold in (0.5, 0.6, 0.7, 0.8, 0.9):
            kept = {chunk.id for chunk in apply_quality_filters(chunks, _request(min_score=threshold)).chunks}
            if previous is not None:
                self.assertTrue(kept <= previous)
            previous = kept

    def test_rejection_keys_follow_rule_order(self):
        self.assertEqual(RULE_ORDER[0], "min_score")
        chunks = [_chunk("p", 0.9, text="coming soon " * 10), _chunk("s", 0.1)]
        report = apply_quality_filters(chunks, _request())
        self.assertEqual(list(report.rejections), ["min_score", "placeholder"])


class TestIsPlaceholder(unittest.TestCase):
    def setUp(self):
        self.settings = QualitySettings()

    def test_real_text_passes(self):
        self.assertFalse(is_placeholder(BODY, self.settings))

    def test_short_text_is_placeholder(self):
        self.assertTrue(is_placeholder("Too short to be useful.", self.settings))

    def test_placeholder_phrases(self):
        self.assertTrue(is_placeholder(BODY + " Lorem Ipsum dolor sit amet", self.settings))
        self.assertTrue(is_placeholder("This page is Under Construction, please come back later on.", self.settings))

    def test_repeated_characters(self):
        self.assertTrue(is_placeholder(BODY + " aaaaaaaaaaaa", self.settings))

    def test_word_repetition(self):
        text = "security " * 8 + "is the only topic we ever discuss here"
        self.assertTrue(is_placeholder(text, self.settings))


if __name__ == "__main__":
    unittest.main()
