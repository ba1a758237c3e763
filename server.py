"""
BigQuery MCP server entrypoint

Registers the read-only BigQuery tools and table schema resources on an MCP
server and serves them over stdio.
"""

import sys
from typing import Any, Dict, List, Optional

import anyio
from anyio import to_thread
import mcp.types as types
import structlog
from dotenv import load_dotenv
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from config import get_settings
from error_handling import DatabaseAnalystError
from monitoring import setup_logging
from tools.context import ServerContext
from tools.dispatcher import ToolDispatcher

logger = structlog.get_logger()

SERVER_NAME = "mcp-server/bigquery"
SERVER_VERSION = "0.1.0"


class ToolExecutionError(Exception):
    """Raised inside the MCP call_tool handler so the SDK returns the text with isError set"""


def build_tool_list(dispatcher: ToolDispatcher) -> List[types.Tool]:
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in dispatcher.list_tools()
    ]


def build_resource_list(context: ServerContext) -> List[types.Resource]:
    return [
        types.Resource(uri=resource["uri"], name=resource["name"], mimeType=resource["mime_type"])
        for resource in context.schema.list_resources()
    ]


def call_tool_content(dispatcher: ToolDispatcher, name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
    """Run one tool; error results are raised as ToolExecutionError"""
    result = dispatcher.dispatch(name, arguments)
    if result.is_error:
        raise ToolExecutionError(result.text)
    return [types.TextContent(type="text", text=result.text)]


def create_server(context: ServerContext) -> Server:
    server = Server(SERVER_NAME, version=SERVER_VERSION)
    dispatcher = ToolDispatcher(context)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return build_tool_list(dispatcher)

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        return await to_thread.run_sync(call_tool_content, dispatcher, name, arguments)

    # Unknown names are a JSON-RPC error, not an isError tool result
    handle_call_tool = server.request_handlers[types.CallToolRequest]

    async def guarded_call_tool(request: types.CallToolRequest):
        name = request.params.name
        if name not in dispatcher.tools:
            logger.warning("Unknown tool requested", tool_name=name)
            raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))
        return await handle_call_tool(request)

    server.request_handlers[types.CallToolRequest] = guarded_call_tool

    @server.list_resources()
    async def list_resources() -> List[types.Resource]:
        return await to_thread.run_sync(build_resource_list, context)

    @server.read_resource()
    async def read_resource(uri) -> List[ReadResourceContents]:
        text = await to_thread.run_sync(context.schema.read_resource, str(uri))
        return [ReadResourceContents(content=text, mime_type="application/json")]

    return server


async def run_server(context: ServerContext) -> None:
    server = create_server(context)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("BigQuery MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    settings = get_settings(sys.argv[1:] if argv is None else argv)
    setup_logging(settings.log_level, settings.log_format)

    try:
        logger.info("Initializing BigQuery", project_id=settings.project_id, location=settings.location)
        context = ServerContext.from_settings(settings)
    except DatabaseAnalystError as e:
        logger.critical("Initialization error", error=e.message, category=e.category.value)
        sys.exit(1)

    anyio.run(run_server, context)


if __name__ == "__main__":
    main()
