"""Per-process state handed to every tool handler."""

from dataclasses import dataclass, field
from typing import Optional

from config import Settings
from tools.query_gateway import QueryGateway
from tools.result_processor import ResultProcessor
from tools.schema_tools import SchemaExplorer
from tools.visualization_tools import ChartGenerator


@dataclass
class ServerContext:
    """Resolved settings plus the warehouse client and the components built on it"""
    settings: Settings
    client: object
    gateway: QueryGateway = field(init=False)
    schema: SchemaExplorer = field(init=False)
    results: ResultProcessor = field(init=False)
    charts: ChartGenerator = field(init=False)

    def __post_init__(self):
        self.gateway = QueryGateway(
            self.client,
            project_id=self.settings.project_id,
            location=self.settings.location,
            default_maximum_bytes_billed=self.settings.query.default_maximum_bytes_billed,
        )
        self.schema = SchemaExplorer(
            self.client,
            project_id=self.settings.project_id,
            dataset_limit=self.settings.query.schema_context_dataset_limit,
        )
        self.results = ResultProcessor()
        self.charts = ChartGenerator()

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[object] = None) -> "ServerContext":
        """Validate settings and connect to BigQuery unless a client is supplied"""
        settings.validate()
        if client is None:
            from bigquery_client import BigQueryClient
            client = BigQueryClient(settings.project_id, key_filename=settings.key_filename)
        return cls(settings=settings, client=client)
