"""Tests for the query gateway."""

import json
from datetime import date
from decimal import Decimal

import pytest

from tests.conftest import FakeWarehouseClient
from tools.query_gateway import QueryGateway, parse_maximum_bytes_billed, serialize_rows
from error_handling import UsageError


@pytest.fixture
def client():
    return FakeWarehouseClient(rows=[{"status": "shipped", "n": 3}, {"status": "open", "n": 1}])


@pytest.fixture
def gateway(client):
    return QueryGateway(client, project_id="test-project", location="EU")


class TestQueryGatewayValidation:

    @pytest.mark.parametrize("sql", [
        "INSERT INTO sales.orders VALUES (1)",
        "update sales.orders set amount = 0",
        "SELECT * FROM sales.orders; DROP TABLE sales.orders",
        "SELECT 'truncate' AS word",
    ])
    def test_rejects_before_contacting_warehouse(self, gateway, client, sql):
        result = gateway.run_query(sql)
        assert result.is_error
        assert result.text == "Error executing query: Only READ operations are allowed"
        assert client.executed == []

    def test_unqualified_information_schema_is_an_error_result(self, gateway, client):
        result = gateway.run_query("SELECT * FROM INFORMATION_SCHEMA.TABLES")
        assert result.is_error
        assert "Dataset must be specified" in result.text
        assert client.executed == []

    def test_empty_sql_is_an_error_result(self, gateway, client):
        result = gateway.run_query("   ")
        assert result.is_error
        assert client.executed == []

    def test_invalid_byte_cap_is_an_error_result(self, gateway, client):
        result = gateway.run_query("SELECT 1", maximum_bytes_billed="lots")
        assert result.is_error
        assert "maximumBytesBilled" in result.text
        assert client.executed == []


class TestQueryGatewayExecution:

    def test_forwards_sql_location_and_default_cap(self, gateway, client):
        result = gateway.run_query("SELECT status, n FROM sales.orders")
        assert not result.is_error
        assert client.executed == [{
            "query": "SELECT status, n FROM sales.orders",
            "location": "EU",
            "maximum_bytes_billed": 1000000000,
        }]

    def test_custom_byte_cap(self, gateway, client):
        gateway.run_query("SELECT 1", maximum_bytes_billed="5000")
        assert client.executed[0]["maximum_bytes_billed"] == 5000

    def test_rewrites_information_schema_before_execution(self, gateway, client):
        gateway.run_query("SELECT table_name FROM sales.INFORMATION_SCHEMA.TABLES")
        assert client.executed[0]["query"] == (
            "SELECT table_name FROM `test-project.sales.INFORMATION_SCHEMA.TABLES`"
        )

    def test_rows_are_pretty_printed_json(self, gateway):
        result = gateway.run_query("SELECT status, n FROM sales.orders")
        assert json.loads(result.text) == [{"status": "shipped", "n": 3}, {"status": "open", "n": 1}]
        assert '\n  {\n    "status": "shipped"' in result.text

    def test_warehouse_failure_becomes_error_result(self):
        client = FakeWarehouseClient(error=RuntimeError("Query exceeded limit for bytes billed: 1000."))
        gateway = QueryGateway(client, project_id="p")
        result = gateway.run_query("SELECT * FROM big.table")
        assert result.is_error
        assert result.text == "Error executing query: Query exceeded limit for bytes billed: 1000."


class TestHelpers:

    def test_serialize_rows_handles_bigquery_scalars(self):
        text = serialize_rows([{"d": date(2024, 1, 31), "n": Decimal("1.50"), "b": b"hi"}])
        assert json.loads(text) == [{"d": "2024-01-31", "n": "1.50", "b": "aGk="}]

    def test_parse_maximum_bytes_billed_defaults(self):
        assert parse_maximum_bytes_billed(None) == 1000000000
        assert parse_maximum_bytes_billed("") == 1000000000
        assert parse_maximum_bytes_billed(2048) == 2048

    def test_parse_maximum_bytes_billed_rejects_non_positive(self):
        with pytest.raises(UsageError):
            parse_maximum_bytes_billed("0")
