"""Tests for the read-only guard and INFORMATION_SCHEMA qualification."""

import pytest

from error_handling import QueryPolicyError, UsageError
from tools.sql_guard import (
    FORBIDDEN_KEYWORDS,
    ensure_read_only,
    find_forbidden_keyword,
    qualify_table_path,
    references_information_schema,
)


class TestReadOnlyGuard:
    """Keyword matching is whole-word and case-insensitive."""

    @pytest.mark.parametrize("keyword", FORBIDDEN_KEYWORDS)
    def test_rejects_each_keyword(self, keyword):
        with pytest.raises(QueryPolicyError, match="Only READ operations are allowed"):
            ensure_read_only(f"{keyword} something")

    @pytest.mark.parametrize("sql", [
        "drop table sales.orders",
        "Delete FROM sales.orders WHERE 1=1",
        "SELECT 1; commit",
    ])
    def test_rejects_any_case(self, sql):
        with pytest.raises(QueryPolicyError):
            ensure_read_only(sql)

    def test_keyword_inside_string_literal_is_still_rejected(self):
        assert find_forbidden_keyword("SELECT * FROM t WHERE note = 'please delete me'") == "DELETE"

    def test_keyword_inside_comment_is_still_rejected(self):
        with pytest.raises(QueryPolicyError):
            ensure_read_only("SELECT 1 -- remember to drop this later")

    @pytest.mark.parametrize("sql", [
        "SELECT created_at, updated_by FROM sales.orders",
        "SELECT * FROM sales.deleted_rows",
        "SELECT insert_id FROM logs.events",
        "SELECT beginning FROM t",
    ])
    def test_allows_keywords_embedded_in_identifiers(self, sql):
        ensure_read_only(sql)
        assert find_forbidden_keyword(sql) is None

    def test_plain_select_passes(self):
        ensure_read_only("SELECT status, COUNT(*) FROM sales.orders GROUP BY status")


class TestQualifyTablePath:

    def test_qualifies_dataset_reference(self):
        sql = "SELECT table_name FROM sales.INFORMATION_SCHEMA.TABLES"
        assert qualify_table_path(sql, "my-proj") == (
            "SELECT table_name FROM `my-proj.sales.INFORMATION_SCHEMA.TABLES`"
        )

    def test_case_insensitive_match(self):
        sql = "select * from sales.information_schema.tables"
        assert qualify_table_path(sql, "p") == "select * FROM `p.sales.INFORMATION_SCHEMA.TABLES`"

    def test_missing_dataset_is_a_usage_error(self):
        with pytest.raises(UsageError, match="Dataset must be specified"):
            qualify_table_path("SELECT * FROM INFORMATION_SCHEMA.TABLES", "p")

    def test_every_occurrence_is_rewritten(self):
        sql = (
            "SELECT * FROM a.INFORMATION_SCHEMA.TABLES "
            "UNION ALL SELECT * FROM b.INFORMATION_SCHEMA.TABLES"
        )
        rewritten = qualify_table_path(sql, "p")
        assert "`p.a.INFORMATION_SCHEMA.TABLES`" in rewritten
        assert "`p.b.INFORMATION_SCHEMA.TABLES`" in rewritten

    def test_rewrite_is_idempotent(self):
        once = qualify_table_path("SELECT * FROM ds.INFORMATION_SCHEMA.TABLES", "p")
        assert qualify_table_path(once, "p") == once

    def test_other_information_schema_views_are_untouched(self):
        sql = "SELECT * FROM ds.INFORMATION_SCHEMA.COLUMNS"
        assert qualify_table_path(sql, "p") == sql

    def test_detects_information_schema_reference(self):
        assert references_information_schema("select * from x.information_schema.tables")
        assert not references_information_schema("SELECT 1")
