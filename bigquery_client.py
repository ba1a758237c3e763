"""
BigQuery client wrapper for the MCP server

Implements the warehouse collaborator contract used by the tools:
dataset enumeration, table enumeration per dataset, per-table metadata
and query execution with a location and a byte-billing cap.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigquery
from google.oauth2 import service_account
import structlog

from error_handling import BigQueryError, ConfigurationError, ErrorCategory, ErrorDetector

logger = structlog.get_logger()
_detector = ErrorDetector()


@dataclass
class FieldInfo:
    """One column of a table schema"""
    name: str
    type: str
    mode: str = "NULLABLE"
    description: str = ""
    fields: List["FieldInfo"] = field(default_factory=list)

    @classmethod
    def from_schema_field(cls, schema_field: bigquery.SchemaField) -> "FieldInfo":
        return cls(
            name=schema_field.name,
            type=schema_field.field_type,
            mode=schema_field.mode or "NULLABLE",
            description=schema_field.description or "",
            fields=[cls.from_schema_field(sub) for sub in (schema_field.fields or ())],
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "type": self.type,
            "mode": self.mode,
            "description": self.description,
        }
        if self.fields:
            data["fields"] = [sub.to_dict() for sub in self.fields]
        return data


@dataclass
class TableMetadata:
    """Metadata for a table or view"""
    dataset_id: str
    table_id: str
    table_type: str
    fields: List[FieldInfo]
    num_rows: Optional[int] = None

    @property
    def kind(self) -> str:
        return "view" if self.table_type == "VIEW" else "table"

    @property
    def full_name(self) -> str:
        return f"{self.dataset_id}.{self.table_id}"


class BigQueryClient:
    """Simple BigQuery client wrapper"""

    def __init__(self, project_id: str, key_filename: Optional[str] = None, client: Optional[bigquery.Client] = None):
        self.project_id = project_id

        if client is not None:
            self.client = client
            return

        try:
            if key_filename:
                logger.info("Using service account key file", key_file=key_filename)
                credentials = service_account.Credentials.from_service_account_file(key_filename)
                self.client = bigquery.Client(project=self.project_id, credentials=credentials)
            else:
                self.client = bigquery.Client(project=self.project_id)
            logger.info("BigQuery client initialized", project_id=self.project_id)
        except Exception as e:
            logger.error("Failed to initialize BigQuery client", error=str(e))
            raise ConfigurationError(f"Failed to initialize BigQuery client: {e}",
                                     ErrorCategory.CREDENTIALS) from e

    def list_datasets(self) -> List[str]:
        """List dataset ids in the project"""
        logger.debug("Fetching datasets", project_id=self.project_id)
        datasets = [dataset.dataset_id for dataset in self.client.list_datasets(project=self.project_id)]
        logger.debug("Found datasets", count=len(datasets))
        return datasets

    def list_tables(self, dataset_id: str) -> List[str]:
        """List tables and views in a dataset"""
        tables = list(self.client.list_tables(f"{self.project_id}.{dataset_id}"))
        logger.debug("Found tables and views", dataset_id=dataset_id, count=len(tables))
        return [table.table_id for table in tables]

    def get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        """Get table schema, type and row count"""
        table = self.client.get_table(f"{self.project_id}.{dataset_id}.{table_id}")
        return TableMetadata(
            dataset_id=dataset_id,
            table_id=table_id,
            table_type=table.table_type or "TABLE",
            fields=[FieldInfo.from_schema_field(f) for f in (table.schema or [])],
            num_rows=table.num_rows,
        )

    def execute_query(self, query: str, location: str, maximum_bytes_billed: int) -> List[Dict[str, Any]]:
        """Execute a BigQuery query and return results as list of dictionaries"""
        logger.info("Executing BigQuery query",
                    query_preview=query[:200] + "..." if len(query) > 200 else query,
                    location=location,
                    maximum_bytes_billed=maximum_bytes_billed)

        job_config = bigquery.QueryJobConfig(maximum_bytes_billed=maximum_bytes_billed)

        try:
            job = self.client.query(query, job_config=job_config, location=location)
            rows = [dict(row.items()) for row in job.result()]
        except GoogleAPIError as e:
            message = getattr(e, "message", None) or str(e)
            category, _ = _detector.detect_error_category(message)
            logger.error("Query execution failed", error=message, category=category.value)
            raise BigQueryError(message, category, context={"location": location}) from e

        logger.info("Query executed successfully", row_count=len(rows))
        return rows
