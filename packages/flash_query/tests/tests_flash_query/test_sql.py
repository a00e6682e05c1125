import pytest
from flash_query import ComposedQuery, QueryCompositionError
from flash_query.sql import (
    assemble,
    compute_offset,
    merge_values,
    wrap_as_json,
    wrap_count,
)


class TestAssemble:
    """Tests for the pure clause-ordering function."""

    def test_clauses_are_appended_in_fixed_order(self):
        """Should emit GROUP BY, HAVING, ORDER BY, LIMIT, OFFSET in that order."""
        query, _ = assemble(
            "SELECT c.id, COUNT(*) FROM t c",
            group_by="c.id",
            having="COUNT(*) > 1",
            order_by="c.id DESC",
            limit=10,
            page=3,
        )
        assert query == (
            "SELECT c.id, COUNT(*) FROM t c GROUP BY c.id HAVING COUNT(*) > 1 "
            "ORDER BY c.id DESC LIMIT 10 OFFSET 20"
        )

    def test_count_query_only_receives_group_by_and_having(self):
        """Should never put ORDER BY, LIMIT or OFFSET into the count SQL."""
        query, count = assemble(
            "SELECT * FROM t",
            "SELECT 1 FROM t",
            group_by="a",
            having="SUM(b) > 0",
            order_by="a",
            limit=5,
            page=2,
        )
        assert "ORDER BY" in query and "LIMIT" in query and "OFFSET" in query
        assert count == "SELECT 1 FROM t GROUP BY a HAVING SUM(b) > 0"
        assert "ORDER BY" not in count
        assert "LIMIT" not in count
        assert "OFFSET" not in count

    def test_count_falls_back_to_data_sql_before_clauses(self):
        """Should reuse the plain data SQL when no count SQL was declared."""
        _, count = assemble("SELECT * FROM t", order_by="id", limit=3, page=1)
        assert count == "SELECT * FROM t"

    def test_non_positive_limit_emits_no_limit(self):
        """Should leave the query unbounded for a zero or negative limit."""
        for limit in (0, -5):
            query, _ = assemble("SELECT * FROM t", limit=limit, page=2)
            assert query == "SELECT * FROM t"

    def test_page_as_set_is_used_without_normalization(self):
        """Should skip OFFSET for page 0 and emit OFFSET 0 for page 1."""
        assert assemble("SELECT * FROM t", limit=5, page=0)[0] == (
            "SELECT * FROM t LIMIT 5"
        )
        assert assemble("SELECT * FROM t", limit=5, page=1)[0] == (
            "SELECT * FROM t LIMIT 5 OFFSET 0"
        )

    def test_json_wrap_is_applied_last(self):
        """Should wrap the fully limited query in the JSON projection."""
        query, count = assemble("SELECT * FROM t", limit=2, page=1, wrap_json=True)
        assert query == wrap_as_json("SELECT * FROM t LIMIT 2 OFFSET 0")
        assert query.startswith("WITH alias AS (")
        assert "SELECT to_jsonb(row_to_json(alias)) AS alias" in query
        assert count == "SELECT * FROM t"

    def test_json_alias_is_configurable(self):
        """Should use the requested alias for the CTE and the column."""
        query = wrap_as_json("SELECT 1", alias="rec")
        assert "WITH rec AS (" in query
        assert "row_to_json(rec)) AS rec" in query
        assert query.endswith("FROM rec")

    def test_wrap_count_counts_rows_of_any_projection(self):
        """Should wrap the count SQL in a COUNT(1) subquery."""
        assert wrap_count("SELECT 1 FROM t") == "SELECT COUNT(1)\nFROM (\nSELECT 1 FROM t\n) t"


class TestOffset:
    """Tests for the page to offset arithmetic."""

    @pytest.mark.parametrize(
        ("page", "limit", "expected"),
        [(1, 10, 0), (2, 10, 10), (3, 7, 14), (0, 10, 0), (-4, 10, 0)],
    )
    def test_offset_is_zero_based(self, page, limit, expected):
        """Should compute (page - 1) * limit and clamp pages below 2 to 0."""
        assert compute_offset(page, limit) == expected


class TestMergeValues:
    """Tests for bound value ordering."""

    def test_named_mapping_is_single_trailing_value(self):
        """Should place positional values first and the mapping last."""
        assert merge_values([1, "a", None], {"x": 1, "y": 2}) == (
            1,
            "a",
            None,
            {"x": 1, "y": 2},
        )

    def test_empty_mapping_is_omitted(self):
        """Should not append an empty mapping."""
        assert merge_values([1, 2], {}) == (1, 2)


class TestComposedQuery:
    """Tests for placeholder rewriting and parameter binding."""

    def test_question_marks_become_generated_bind_names(self):
        """Should rewrite every '?' to a numbered bind name in order."""
        query = ComposedQuery("SELECT * FROM t WHERE a = ? AND b > ?", (1, 2))
        assert query.bound_text() == "SELECT * FROM t WHERE a = :_p1 AND b > :_p2"
        assert query.params() == {"_p1": 1, "_p2": 2}

    def test_question_marks_inside_literals_are_kept(self):
        """Should leave '?' inside single-quoted literals untouched."""
        query = ComposedQuery("SELECT '?', 'it''s ?' FROM t WHERE a = ?", (5,))
        assert query.bound_text() == "SELECT '?', 'it''s ?' FROM t WHERE a = :_p1"

    def test_question_marks_in_identifiers_and_comments_are_kept(self):
        """Should leave '?' inside quoted identifiers and comments untouched."""
        query = ComposedQuery(
            'SELECT "why?" FROM t -- any?\nWHERE a = ? /* or? */', (5,)
        )
        assert query.bound_text() == (
            'SELECT "why?" FROM t -- any?\nWHERE a = :_p1 /* or? */'
        )

    def test_jsonb_any_and_all_operators_are_kept(self):
        """Should not treat ?| and ?& as placeholders."""
        query = ComposedQuery(
            "SELECT * FROM t WHERE tags ?| array['a'] AND tags ?& array['b'] AND id = ?",
            (3,),
        )
        assert query.bound_text().endswith("tags ?& array['b'] AND id = :_p1")
        assert query.bound_text().count(":_p") == 1

    def test_placeholder_followed_by_concat_is_rewritten(self):
        """Should rewrite a '?' directly followed by the || operator."""
        query = ComposedQuery("SELECT * FROM t WHERE name LIKE ?||'%'", ("ab",))
        assert query.bound_text() == "SELECT * FROM t WHERE name LIKE :_p1||'%'"

    def test_trailing_mapping_is_split_from_positional_values(self):
        """Should expose positional and named values separately."""
        query = ComposedQuery("SELECT * FROM t WHERE a = ? AND b = :b", (1, {"b": 2}))
        assert query.positional == (1,)
        assert query.named == {"b": 2}
        assert query.params() == {"_p1": 1, "b": 2}

    def test_placeholder_count_mismatch_raises(self):
        """Should refuse to bind when '?' count and values disagree."""
        query = ComposedQuery("SELECT * FROM t WHERE a = ? AND b = ?", (1,))
        with pytest.raises(QueryCompositionError, match="2 positional placeholder"):
            query.statement()

    def test_statement_binds_only_referenced_names(self):
        """Should ignore named values the SQL does not reference."""
        query = ComposedQuery("SELECT * FROM t WHERE a = :a", ({"a": 1, "zz": 2},))
        stmt = query.statement()
        compiled = stmt.compile()
        assert compiled.params == {"a": 1}
