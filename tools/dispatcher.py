"""
Tool registry and dispatcher

Each tool has a pydantic input model (its JSON schema is what MCP clients
see) and a handler on the ServerContext components. Handlers return a
ToolResult; only an unknown tool name raises.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from error_handling import UnknownToolError, log_tool_error
from monitoring.traceable_decorators import trace_tool_call
from tools.context import ServerContext
from tools.tool_result import ToolResult


class QueryInput(BaseModel):
    """Input for the query tool"""

    sql: str = Field(description="Read-only BigQuery SQL to run")
    maximumBytesBilled: Optional[Union[str, int]] = Field(
        default=None, description="Maximum bytes billed (default: 1GB)"
    )


class GenerateSqlInput(BaseModel):
    """Input for the generate_sql tool"""

    question: str = Field(description="Natural language question about the data")
    context: Optional[str] = Field(
        default=None, description="Additional context about the data or specific requirements"
    )


class AnalyzeResultsInput(BaseModel):
    """Input for the analyze_results tool"""

    data: str = Field(description="JSON string of query results to analyze")
    focus: Optional[str] = Field(
        default=None,
        description="Specific aspect to focus analysis on (e.g., 'trends', 'outliers', 'distribution')",
    )


class GenerateVisualizationInput(BaseModel):
    """Input for the generate_visualization tool"""

    data: str = Field(description="JSON string of data to visualize")
    type: Optional[str] = Field(
        default=None, description="Type of visualization (e.g., 'bar', 'line', 'scatter', 'pie')"
    )
    title: Optional[str] = Field(default=None, description="Title for the visualization")


class SchemaInsightsInput(BaseModel):
    """Input for the get_schema_insights tool"""

    dataset: Optional[str] = Field(default=None, description="Dataset to analyze")


@dataclass
class ToolDefinition:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[ServerContext, Any], ToolResult]

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()


TOOLS: Dict[str, ToolDefinition] = {
    tool.name: tool
    for tool in [
        ToolDefinition(
            name="query",
            description="Run a read-only BigQuery SQL query",
            input_model=QueryInput,
            handler=lambda ctx, args: ctx.gateway.run_query(args.sql, args.maximumBytesBilled),
        ),
        ToolDefinition(
            name="generate_sql",
            description="Generate SQL from natural language query",
            input_model=GenerateSqlInput,
            handler=lambda ctx, args: ctx.schema.generate_sql(args.question, args.context),
        ),
        ToolDefinition(
            name="analyze_results",
            description="Analyze and summarize query results",
            input_model=AnalyzeResultsInput,
            handler=lambda ctx, args: ctx.results.analyze(args.data, args.focus),
        ),
        ToolDefinition(
            name="generate_visualization",
            description="Generate code for data visualization",
            input_model=GenerateVisualizationInput,
            handler=lambda ctx, args: ctx.charts.visualize(args.data, args.type, args.title),
        ),
        ToolDefinition(
            name="get_schema_insights",
            description="Get insights about database schema and relationships",
            input_model=SchemaInsightsInput,
            handler=lambda ctx, args: ctx.schema.schema_insights(args.dataset),
        ),
    ]
}


class ToolDispatcher:
    """Routes one named tool call to exactly one handler"""

    def __init__(self, context: ServerContext, tools: Optional[Dict[str, ToolDefinition]] = None):
        self.context = context
        self.tools = tools if tools is not None else TOOLS

    def list_tools(self) -> List[ToolDefinition]:
        return list(self.tools.values())

    @trace_tool_call
    def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self.tools.get(name)
        if tool is None:
            raise UnknownToolError(name)

        try:
            args = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            log_tool_error(name, e, {"arguments": arguments})
            return ToolResult.error(f"Invalid arguments for {name}: {e}")

        return tool.handler(self.context, args)
