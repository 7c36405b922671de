"""
Tool Protocol Routes

list_actions / execute_action over HTTP, with the same MCP-style
responses the stdio server produces.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from actionhub.api.dependencies import get_tool_server
from actionhub.core.exceptions import BadRequestError
from actionhub.frontend.server import ActionToolServer

router = APIRouter()


class ExecuteActionCall(BaseModel):
    """Arguments of the execute_action tool."""

    action: str
    params: str | dict[str, Any] | None = None


@router.get("/tools")
async def get_tool_definitions(
    format: str = "anthropic",
    tool_server: ActionToolServer = Depends(get_tool_server),
) -> list[dict[str, Any]]:
    """Tool definitions in OpenAI or Anthropic format."""
    try:
        return tool_server.get_tool_definitions(format=format)
    except ValueError as e:
        raise BadRequestError(str(e), context={"format": format}) from e


@router.post("/tools/list_actions")
async def list_actions(
    tool_server: ActionToolServer = Depends(get_tool_server),
) -> dict[str, Any]:
    """Call the list_actions tool."""
    response = await tool_server.list_actions()
    return response.to_dict()


@router.post("/tools/execute_action")
async def execute_action(
    call: ExecuteActionCall,
    tool_server: ActionToolServer = Depends(get_tool_server),
) -> dict[str, Any]:
    """Call the execute_action tool."""
    response = await tool_server.execute_action(call.action, call.params)
    return response.to_dict()
