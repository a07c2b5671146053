import unittest
from datetime import date

from domain.entities import DateRange, FieldBoost, FilterCriteria, Namespace, RetrievalRequest
from infrastructure.search.query_builder import (
    BOOST_TABLE,
    SIMILARITY_QUERY,
    build_filter_expression,
    build_similarity_query,
    graphql_payload,
    resolve_boosts,
)


class TestResolveBoosts(unittest.TestCase):
    def test_content_profile(self):
        self.assertEqual(
            resolve_boosts((Namespace.CONTENT,)),
            (
                FieldBoost("post_content", 1.0),
                FieldBoost("post_excerpt", 0.8),
                FieldBoost("post_title", 1.2),
            ),
        )

    def test_multiple_namespaces_keep_highest_boost_per_field(self):
        boosts = dict((item.name, item.boost) for item in resolve_boosts((Namespace.CONTENT, Namespace.PRODUCTS)))
        self.assertEqual(boosts, {"post_content": 1.0, "post_excerpt": 1.2, "post_title": 1.5})

    def test_empty_namespaces_use_default_profile(self):
        self.assertEqual(resolve_boosts(()), resolve_boosts((Namespace.CONTENT,)))

    def test_every_namespace_has_a_profile(self):
        self.assertEqual(set(BOOST_TABLE), set(Namespace))


class TestBuildFilterExpression(unittest.TestCase):
    def test_empty_filters(self):
        self.assertIsNone(build_filter_expression(FilterCriteria()))

    def test_single_dimension(self):
        self.assertEqual(
            build_filter_expression(FilterCriteria(licenses=("CC-BY", "CC-BY-SA"))),
            "(license:CC-BY OR license:CC-BY-SA)",
        )

    def test_all_dimensions_in_fixed_order(self):
        filters = FilterCriteria(
            post_types=("page", "post"),
            post_statuses=("publish",),
            licenses=("CC-BY",),
            language="en",
            date_range=DateRange(date(2024, 1, 1), date(2024, 6, 30)),
            authors=(7,),
            exclude_ids=(123, 456),
            min_word_count=50,
        )
        self.assertEqual(
            build_filter_expression(filters),
            "(post_type:page OR post_type:post) AND (post_status:publish) AND (license:CC-BY) "
            "AND language:en AND (post_author:7) "
            "AND (post_date:>=2024-01-01 AND post_date:<=2024-06-30) AND NOT ID:(123 OR 456)",
        )

    def test_half_open_date_range(self):
        expression = build_filter_expression(FilterCriteria(date_range=DateRange(None, date(2024, 6, 30))))
        self.assertEqual(expression, "post_date:<=2024-06-30")


class TestSimilarityQuery(unittest.TestCase):
    def test_query_mirrors_request(self):
        request = RetrievalRequest(
            section_id="section-intro",
            query="WordPress security best practices",
            namespaces=(Namespace.CONTENT, Namespace.DOCS),
            k=5,
            min_score=0.7,
            filters=FilterCriteria(language="en"),
        )
        query = build_similarity_query(request)
        self.assertEqual(query.text, request.query)
        self.assertEqual(query.limit, 5)
        self.assertEqual(query.offset, 0)
        self.assertEqual(query.min_score, 0.7)
        self.assertEqual(query.namespaces, ("content", "docs"))
        self.assertEqual(query.filter_expression, "language:en")

        payload = graphql_payload(query)
        self.assertEqual(payload["query"], SIMILARITY_QUERY)
        variables = payload["variables"]
        self.assertEqual(variables["limit"], 5)
        self.assertEqual(variables["minScore"], 0.7)
        self.assertEqual(variables["filter"], "language:en")
        self.assertEqual(variables["namespaces"], ["content", "docs"])
        self.assertIn({"name": "post_title", "boost": 1.5}, variables["fields"])


if __name__ == "__main__":
    unittest.main()
