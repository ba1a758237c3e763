"""
SQL safety checks
SQL安全检查

Keyword-level read-only guard and INFORMATION_SCHEMA path qualification.
Both are plain regular expressions over the raw statement text, not a SQL
parser: a forbidden keyword inside a string literal or a comment is still
rejected.
"""

import re

from error_handling import QueryPolicyError, UsageError

FORBIDDEN_KEYWORDS = (
    "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "MERGE",
    "TRUNCATE", "GRANT", "REVOKE", "EXECUTE", "BEGIN", "COMMIT", "ROLLBACK",
)

FORBIDDEN_PATTERN = re.compile(r"\b(" + "|".join(FORBIDDEN_KEYWORDS) + r")\b", re.IGNORECASE)

# FROM INFORMATION_SCHEMA.TABLES or FROM dataset.INFORMATION_SCHEMA.TABLES
INFORMATION_SCHEMA_TABLES_PATTERN = re.compile(
    r"FROM\s+(?:(\w+)\.)?INFORMATION_SCHEMA\.TABLES", re.IGNORECASE
)

MISSING_DATASET_MESSAGE = (
    "Dataset must be specified when querying INFORMATION_SCHEMA "
    "(e.g. dataset.INFORMATION_SCHEMA.TABLES)"
)


def find_forbidden_keyword(sql: str):
    """Return the first forbidden keyword found as a whole word, or None"""
    match = FORBIDDEN_PATTERN.search(sql)
    return match.group(1).upper() if match else None


def ensure_read_only(sql: str) -> None:
    """Raise QueryPolicyError if the statement contains a write/DDL/transaction keyword"""
    keyword = find_forbidden_keyword(sql)
    if keyword:
        raise QueryPolicyError(
            context={"keyword": keyword},
            recovery_suggestions=["Rewrite the statement as a SELECT query"],
        )


def references_information_schema(sql: str) -> bool:
    return "INFORMATION_SCHEMA" in sql.upper()


def qualify_table_path(sql: str, project_id: str) -> str:
    """Prefix dataset.INFORMATION_SCHEMA.TABLES references with the project id.

    Rewritten paths are backtick-quoted and no longer match the pattern, so
    running this twice is a no-op after the first pass.
    """

    def _qualify(match: re.Match) -> str:
        dataset = match.group(1)
        if not dataset:
            raise UsageError(MISSING_DATASET_MESSAGE)
        return f"FROM `{project_id}.{dataset}.INFORMATION_SCHEMA.TABLES`"

    return INFORMATION_SCHEMA_TABLES_PATTERN.sub(_qualify, sql)
