"""Tests for the Octane query builder."""

from octane_bridge.shared.query import Query, escape_query_value


class TestEscape:
    def test_parentheses_and_backslashes(self):
        assert escape_query_value("a\\b (c)") == "a\\\\b \\(c\\)"

    def test_plain_value_untouched(self):
        assert escape_query_value("owner/repo/ci.yml") == "owner/repo/ci.yml"

    def test_empty(self):
        assert escape_query_value("") == ""


class TestQuery:
    def test_equal_string(self):
        assert Query.field("name").equal("CI").build() == '"name EQ ^CI^"'

    def test_equal_number(self):
        assert Query.field("id").equal(1001).build() == '"id EQ 1001"'

    def test_nested_reference(self):
        query = Query.field("ci_server").equal(Query.field("id").equal("2001"))

        assert query.build() == '"ci_server EQ {id EQ ^2001^}"'

    def test_and(self):
        query = Query.field("name").equal("CI").and_(Query.field("multi_branch_type").equal("parent"))

        assert query.build() == '"name EQ ^CI^;multi_branch_type EQ ^parent^"'

    def test_in(self):
        assert Query.field("id").in_(["1", "2"]).build() == '"id IN ^1^,^2^"'
