"""
Configuration module for the BigQuery MCP server

Settings are resolved from command line arguments first, then environment
variables (a local .env file is loaded by the server entrypoint).
"""
import argparse
import json
import os
import re
from typing import List, Optional

from error_handling import ConfigurationError, ErrorCategory

PROJECT_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")
USAGE = "Usage: bigquery-mcp-server --project-id <project-id> [--location <location>] [--key-file <path-to-key-file>]"


class GoogleCloudConfig:
    """Google Cloud configuration"""
    def __init__(self,
                 project_id: Optional[str] = None,
                 location: Optional[str] = None,
                 key_filename: Optional[str] = None):
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT", "")
        self.location = location or os.getenv("BIGQUERY_LOCATION", "US")
        self.key_filename = key_filename or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")


class QueryConfig:
    """Query gateway defaults"""
    def __init__(self):
        # One gigabyte equivalent, passed to BigQuery as text like the tool argument
        self.default_maximum_bytes_billed = os.getenv("MAXIMUM_BYTES_BILLED", "1000000000")
        self.schema_context_dataset_limit = int(os.getenv("SCHEMA_CONTEXT_DATASET_LIMIT", "5"))


class Settings:
    """Application settings"""

    def __init__(self,
                 project_id: Optional[str] = None,
                 location: Optional[str] = None,
                 key_filename: Optional[str] = None):
        # Nested configurations
        self.google_cloud = GoogleCloudConfig(project_id, location, key_filename)
        self.query = QueryConfig()

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_format = os.getenv("LOG_FORMAT", "console").lower()

    @property
    def project_id(self) -> str:
        return self.google_cloud.project_id

    @property
    def location(self) -> str:
        return self.google_cloud.location

    @property
    def key_filename(self) -> Optional[str]:
        return self.google_cloud.key_filename

    def validate(self) -> "Settings":
        """Fail fast on bad credentials or a malformed project id"""
        if not self.project_id:
            raise ConfigurationError(f"Missing required argument: --project-id\n{USAGE}")

        if self.key_filename:
            self.google_cloud.key_filename = validate_key_file(self.key_filename)

        if not PROJECT_ID_PATTERN.match(self.project_id):
            raise ConfigurationError("Invalid project ID format", context={"project_id": self.project_id})

        return self


def validate_key_file(key_filename: str) -> str:
    """Check the service account key file and return its absolute path"""
    resolved_path = os.path.abspath(key_filename)

    if not os.path.exists(resolved_path):
        raise ConfigurationError(f"Key file not found: {resolved_path}. Please verify the file path.",
                                 ErrorCategory.CREDENTIALS)
    if not os.access(resolved_path, os.R_OK):
        raise ConfigurationError(f"Permission denied accessing key file: {resolved_path}. Please check file permissions.",
                                 ErrorCategory.CREDENTIALS)

    try:
        with open(resolved_path, "r", encoding="utf-8") as f:
            key_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError("Service account key file is not valid JSON",
                                 ErrorCategory.CREDENTIALS) from e
    except OSError as e:
        raise ConfigurationError(f"Unable to access key file: {resolved_path}. Error: {e}",
                                 ErrorCategory.CREDENTIALS) from e

    if not isinstance(key_data, dict) or key_data.get("type") != "service_account" or not key_data.get("project_id"):
        raise ConfigurationError("Invalid service account key file format", ErrorCategory.CREDENTIALS)

    return resolved_path


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bigquery-mcp-server",
        description="Read-only BigQuery MCP server",
    )
    parser.add_argument("--project-id", dest="project_id", help="Google Cloud project id")
    parser.add_argument("--location", dest="location", help="BigQuery query location (default: US)")
    parser.add_argument("--key-file", dest="key_filename", help="Path to a service account key file")
    return parser


def get_settings(argv: Optional[List[str]] = None) -> Settings:
    """Get application settings"""
    args = build_arg_parser().parse_args(argv if argv is not None else [])
    return Settings(
        project_id=args.project_id,
        location=args.location,
        key_filename=args.key_filename,
    )
