"""
Tool Server

The two-tool surface an LLM agent sees: list_actions and execute_action.

Design decisions:
- Transport-agnostic: returns MCP-style responses that the stdio adapter
  and the HTTP routes both pass through
- Works against any DispatcherProtocol, local or remote
- Failures become isError responses; nothing raises to the agent
"""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from actionhub.core.exceptions import ActionHubError
from actionhub.core.interfaces import DispatcherProtocol
from actionhub.core.types import LogSource
from actionhub.observability.logging import get_logger

logger = get_logger("actionhub.frontend")


class TextContent(BaseModel):
    type: str = "text"
    text: str


class ToolResponse(BaseModel):
    """MCP-style tool call response."""

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def ok(cls, text: str) -> "ToolResponse":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, text: str) -> "ToolResponse":
        return cls(content=[TextContent(text=text)], is_error=True)

    @property
    def text(self) -> str:
        return "".join(item.text for item in self.content)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class ToolSpec:
    """Definition of one tool exposed to the agent."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic_format(self) -> dict[str, Any]:
        """Convert to Anthropic tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


LIST_ACTIONS = ToolSpec(
    name="list_actions",
    description=(
        "List all available actions with descriptions and parameter schemas. "
        "Call this first to discover what you can do."
    ),
    parameters={"type": "object", "properties": {}, "required": []},
)

EXECUTE_ACTION = ToolSpec(
    name="execute_action",
    description=(
        "Execute a named action with parameters. Use list_actions first to see "
        "available actions and their required parameters."
    ),
    parameters={
        "type": "object",
        "properties": {
            "action": {"type": "string", "description": "Action name from list_actions"},
            "params": {
                "type": "string",
                "description": 'JSON string of parameters, e.g. \'{"city": "Tokyo"}\'',
            },
        },
        "required": ["action", "params"],
    },
)

TOOLS = [LIST_ACTIONS, EXECUTE_ACTION]


def parse_params(params: str | dict[str, Any] | None) -> dict[str, Any] | None:
    """Decode the params argument; None means it was not a JSON object."""
    if params is None:
        return {}
    if isinstance(params, dict):
        return params
    try:
        parsed = json.loads(params)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class ActionToolServer:
    """
    Serves list_actions and execute_action over a dispatcher.

    Usage:
        server = ActionToolServer(dispatcher)
        response = await server.execute_action("get_weather", '{"city": "Tokyo"}')
    """

    def __init__(
        self,
        dispatcher: DispatcherProtocol,
        source: LogSource = LogSource.MCP,
    ):
        self._dispatcher = dispatcher
        self._source = source

    @property
    def dispatcher(self) -> DispatcherProtocol:
        return self._dispatcher

    def get_tool_definitions(self, format: str = "openai") -> list[dict[str, Any]]:
        """Both tools in an LLM provider's format."""
        if format == "openai":
            return [t.to_openai_format() for t in TOOLS]
        elif format == "anthropic":
            return [t.to_anthropic_format() for t in TOOLS]
        else:
            raise ValueError(f"Unknown format: {format}")

    async def list_actions(self) -> ToolResponse:
        """Enabled actions with their parameter schemas, as JSON text."""
        try:
            actions = await self._dispatcher.list_actions()
        except Exception as e:
            logger.error("Failed to list actions", error=e)
            message = e.message if isinstance(e, ActionHubError) else str(e)
            return ToolResponse.error(f"Error fetching actions: {message}")

        return ToolResponse.ok(json.dumps(actions, indent=2))

    async def execute_action(
        self,
        action: str,
        params: str | dict[str, Any] | None = None,
    ) -> ToolResponse:
        """
        Run an action by name.

        Args:
            action: Action name from list_actions
            params: JSON object text (or an already-decoded dict)
        """
        parsed = parse_params(params)
        if parsed is None:
            return ToolResponse.error(f"Invalid JSON in params: {params}")

        try:
            result = await self._dispatcher.execute(action, parsed, self._source)
        except ActionHubError as e:
            logger.info("Action request rejected", action=action, error_code=e.code)
            return ToolResponse.error(f"Error executing action: {e.message}")
        except Exception as e:
            logger.error("Action execution raised", action=action, error=e)
            return ToolResponse.error(f"Error executing action: {e}")

        return ToolResponse.ok(json.dumps(result.to_dict(), indent=2))

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResponse:
        """Dispatch a tool call by tool name."""
        arguments = arguments or {}
        if name == LIST_ACTIONS.name:
            return await self.list_actions()
        if name == EXECUTE_ACTION.name:
            return await self.execute_action(arguments.get("action", ""), arguments.get("params"))
        return ToolResponse.error(f"Unknown tool: {name}")
