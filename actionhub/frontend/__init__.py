"""
Tool-Protocol Front End

list_actions / execute_action for LLM agents, in-process or against a
remote action service. The MCP stdio entry point lives in
actionhub.frontend.stdio.
"""

from actionhub.frontend.client import ActionServiceClient
from actionhub.frontend.remote import RemoteAuditStorage, RemoteDispatcher
from actionhub.frontend.server import (
    EXECUTE_ACTION,
    LIST_ACTIONS,
    ActionToolServer,
    ToolResponse,
    ToolSpec,
)

__all__ = [
    # Remote
    "ActionServiceClient",
    # Tools
    "ActionToolServer",
    "EXECUTE_ACTION",
    "LIST_ACTIONS",
    "RemoteAuditStorage",
    "RemoteDispatcher",
    "ToolResponse",
    "ToolSpec",
]
