"""
Tools package for the BigQuery MCP server

Contains the handlers behind each MCP tool:
- Read-only query gateway and SQL guard
- Schema exploration, SQL suggestions and MCP schema resources
- Result summaries
- Chart.js visualization documents
"""
