"""Pytest configuration and fixtures."""

import pytest

from bigquery_client import FieldInfo, TableMetadata
from config import Settings
from tools.context import ServerContext
from tools.dispatcher import ToolDispatcher


class FakeWarehouseClient:
    """In-memory stand-in for BigQueryClient."""

    def __init__(self, tables=None, rows=None, error=None):
        # {dataset_id: [TableMetadata, ...]}
        self.tables = tables or {}
        self.rows = rows if rows is not None else []
        self.error = error
        self.executed = []

    def list_datasets(self):
        return list(self.tables.keys())

    def list_tables(self, dataset_id):
        return [t.table_id for t in self.tables.get(dataset_id, [])]

    def get_table_metadata(self, dataset_id, table_id):
        for table in self.tables.get(dataset_id, []):
            if table.table_id == table_id:
                return table
        raise LookupError(f"Not found: Table {dataset_id}.{table_id}")

    def execute_query(self, query, location, maximum_bytes_billed):
        self.executed.append(
            {"query": query, "location": location, "maximum_bytes_billed": maximum_bytes_billed}
        )
        if self.error:
            raise self.error
        return self.rows


def make_table(dataset_id, table_id, fields, table_type="TABLE", num_rows=100):
    return TableMetadata(
        dataset_id=dataset_id,
        table_id=table_id,
        table_type=table_type,
        fields=[FieldInfo(*f) if isinstance(f, tuple) else f for f in fields],
        num_rows=num_rows,
    )


@pytest.fixture
def sales_tables():
    return {
        "sales": [
            make_table("sales", "orders", [
                ("order_id", "INTEGER", "REQUIRED"),
                ("customer_id", "INTEGER"),
                ("amount", "FLOAT"),
                ("status", "STRING"),
            ], num_rows=1200),
            make_table("sales", "order_summary", [
                ("status", "STRING"),
                ("total", "NUMERIC"),
            ], table_type="VIEW", num_rows=None),
        ],
        "crm": [
            make_table("crm", "customers", [
                ("id", "INTEGER", "REQUIRED"),
                ("name", "STRING"),
            ], num_rows=50),
        ],
    }


@pytest.fixture
def fake_client(sales_tables):
    return FakeWarehouseClient(tables=sales_tables, rows=[{"status": "shipped", "n": 3}])


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.delenv("BIGQUERY_LOCATION", raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    monkeypatch.delenv("MAXIMUM_BYTES_BILLED", raising=False)
    return Settings(project_id="test-project", location="EU")


@pytest.fixture
def context(settings, fake_client):
    return ServerContext.from_settings(settings, client=fake_client)


@pytest.fixture
def dispatcher(context):
    return ToolDispatcher(context)
