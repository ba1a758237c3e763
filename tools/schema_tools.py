"""
Schema Tools
数据结构工具

Walks datasets and tables through the warehouse client to build schema
context for SQL suggestions, the schema insights report and the MCP
resource listing.
"""

import json
from typing import Dict, Any, List, Optional
from urllib.parse import urlparse

import structlog

from error_handling import UsageError, ErrorCategory, log_tool_error
from tools.tool_result import ToolResult

logger = structlog.get_logger()

SCHEMA_PATH = "schema"
NUMERIC_FIELD_TYPES = ("INTEGER", "FLOAT", "NUMERIC")
PLACEHOLDER_TABLE = "dataset.table"


class SchemaExplorer:
    """Metadata-driven tools: generate_sql, get_schema_insights and resources"""

    def __init__(self, client, project_id: str, dataset_limit: int = 5):
        self.client = client
        self.project_id = project_id
        self.dataset_limit = dataset_limit

    @property
    def resource_base_url(self) -> str:
        return f"bigquery://{self.project_id}"

    def collect_tables(self, dataset_ids: List[str]) -> List[Any]:
        """Metadata for every table and view, in enumeration order"""
        tables = []
        for dataset_id in dataset_ids:
            table_ids = self.client.list_tables(dataset_id)
            for table_id in table_ids:
                tables.append(self.client.get_table_metadata(dataset_id, table_id))
        return tables

    # Resources

    def list_resources(self) -> List[Dict[str, str]]:
        """One schema resource per table or view"""
        datasets = self.client.list_datasets()
        logger.info("Listing schema resources", dataset_count=len(datasets))

        resources = []
        for table in self.collect_tables(datasets):
            resources.append({
                "uri": self.schema_uri(table.dataset_id, table.table_id),
                "mime_type": "application/json",
                "name": f'"{table.full_name}" {table.kind} schema',
            })

        logger.info("Total resources found", count=len(resources))
        return resources

    def schema_uri(self, dataset_id: str, table_id: str) -> str:
        return f"{self.resource_base_url}/{dataset_id}/{table_id}/{SCHEMA_PATH}"

    def read_resource(self, uri: str) -> str:
        """Field list of the table addressed by a schema URI, as JSON"""
        path_components = urlparse(str(uri)).path.split("/")
        schema = path_components.pop() if path_components else None
        table_id = path_components.pop() if path_components else None
        dataset_id = path_components.pop() if path_components else None

        if schema != SCHEMA_PATH or not table_id or not dataset_id:
            raise UsageError("Invalid resource URI", ErrorCategory.INVALID_RESOURCE, context={"uri": str(uri)})

        metadata = self.client.get_table_metadata(dataset_id, table_id)
        return json.dumps([f.to_dict() for f in metadata.fields], indent=2)

    # generate_sql

    def schema_context(self) -> List[Dict[str, Any]]:
        datasets = self.client.list_datasets()[:self.dataset_limit]
        return [
            {
                "name": table.full_name,
                "type": table.kind,
                "fields": [{"name": f.name, "type": f.type} for f in table.fields],
            }
            for table in self.collect_tables(datasets)
        ]

    def generate_sql(self, question: Optional[str], context: Optional[str] = None) -> ToolResult:
        """Templated SQL starting point plus the schema it was based on"""
        if not isinstance(question, str) or not question.strip():
            return ToolResult.error("Error generating SQL: question is required")

        try:
            schema_info = self.schema_context()
        except Exception as e:
            log_tool_error("generate_sql", e, {"question": question})
            return ToolResult.error(f"Error generating SQL: {e}")

        generated_sql = suggest_sql(question, schema_info)
        context_line = f"\nAdditional context: {context}\n" if context else ""

        response = f"""
Based on your question: "{question}"
{context_line}
Here's a suggested SQL query:
```sql
{generated_sql}
```

Available schema information:
```json
{json.dumps(schema_info, indent=2)}
```

This is a starting point. You may need to:
1. Select the appropriate table(s) based on your data
2. Adjust the columns in the SELECT clause
3. Add appropriate WHERE conditions
4. Modify ORDER BY, GROUP BY, or other clauses as needed
"""
        return ToolResult.ok(response)

    # get_schema_insights

    def schema_insights(self, dataset: Optional[str] = None) -> ToolResult:
        try:
            datasets = self.client.list_datasets()
            if dataset:
                datasets = [d for d in datasets if d == dataset]

            if not datasets:
                message = f'Dataset "{dataset}" not found.' if dataset else "No datasets found in this project."
                return ToolResult.error(message)

            tables = self.collect_tables(datasets)
        except Exception as e:
            log_tool_error("get_schema_insights", e, {"dataset": dataset})
            return ToolResult.error(f"Error analyzing schema: {e}")

        relationships = find_possible_relationships(tables)
        return ToolResult.ok(render_schema_insights(datasets, tables, relationships))


def suggest_sql(question: str, schema_info: List[Dict[str, Any]]) -> str:
    """Pick a SQL template from keywords in the question"""
    question_lower = question.lower()
    first_table = schema_info[0] if schema_info else None
    target_table = first_table["name"] if first_table else PLACEHOLDER_TABLE

    if "count" in question_lower or "how many" in question_lower:
        sql = f"SELECT COUNT(*) as count FROM `{target_table}`"
        if "where" in question_lower or "condition" in question_lower:
            sql += "\nWHERE -- Add conditions based on the question"
        return sql

    if "average" in question_lower or "mean" in question_lower:
        if first_table:
            numeric_fields = [f["name"] for f in first_table["fields"] if f["type"].upper() in NUMERIC_FIELD_TYPES]
        else:
            numeric_fields = ["value_column"]
        target_field = numeric_fields[0] if numeric_fields else "value_column"
        return f"SELECT AVG({target_field}) as average FROM `{target_table}`"

    if any(keyword in question_lower for keyword in ("top", "highest", "most")):
        if first_table:
            fields = [f["name"] for f in first_table["fields"]][:3]
        else:
            fields = ["column1", "column2"]
        return f"SELECT {', '.join(fields)} FROM `{target_table}`\nORDER BY -- relevant column DESC\nLIMIT 10"

    if first_table:
        fields = ", ".join(f["name"] for f in first_table["fields"][:5])
    else:
        fields = "*"
    return f"SELECT {fields} FROM `{target_table}`\nLIMIT 100"


def find_possible_relationships(tables: List[Any]) -> List[Dict[str, str]]:
    """Fields named like `<table>_id` hint at a foreign key"""
    relationships = []
    for table in tables:
        for f in table.fields:
            if f.name.endswith("_id") and f.name != "id":
                relationships.append({
                    "source_table": table.full_name,
                    "source_field": f.name,
                    "possible_target_table": f.name.replace("_id", "", 1),
                    "relationship_type": "possible foreign key",
                })
    return relationships


def render_schema_insights(datasets: List[str], tables: List[Any], relationships: List[Dict[str, str]]) -> str:
    table_count = sum(1 for t in tables if t.kind == "table")
    view_count = sum(1 for t in tables if t.kind == "view")

    lines = [
        "## Schema Insights",
        "",
        "**Overview:**",
        f"- Total datasets: {len(datasets)}",
        f"- Total tables/views: {len(tables)}",
        f"- Tables: {table_count}",
        f"- Views: {view_count}",
        "",
        "**Tables and Fields:**",
    ]

    for table in tables:
        row_count = table.num_rows if table.num_rows is not None else "unknown"
        lines.extend([
            "",
            f"### {table.full_name} ({table.kind})",
            f"- Row count: {row_count}",
            f"- Fields ({len(table.fields)}):",
        ])
        for f in table.fields:
            required = ", required" if f.mode == "REQUIRED" else ""
            lines.append(f"  - {f.name} ({f.type}{required})")

    if relationships:
        lines.extend(["", "**Potential Relationships:**"])
        lines.extend(
            f"- {rel['source_table']}.{rel['source_field']} → possible reference to {rel['possible_target_table']} table"
            for rel in relationships
        )

    if len(tables) > 10:
        organization = "Consider organizing related tables into separate datasets for better management"
    else:
        organization = "Current organization looks good with a manageable number of tables"

    if relationships:
        joins = "Verify the identified potential relationships and consider using them in JOIN operations"
    else:
        joins = "No obvious relationships detected, consider manual review of schema"

    if any(len(t.fields) > 20 for t in tables):
        normalization = "Some tables have a large number of columns, consider reviewing for normalization opportunities"
    else:
        normalization = "Table structures appear reasonably normalized"

    lines.extend([
        "",
        "**Recommendations:**",
        f"- {organization}",
        f"- {joins}",
        f"- {normalization}",
    ])
    return "\n".join(lines) + "\n"
