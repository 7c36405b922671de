"""
MCP stdio Server

Serves the two action tools over the Model Context Protocol on stdio.

Uses the remote action service when ACTIONHUB_REMOTE_URL is set, and an
in-process dispatcher over the configured store otherwise. Logs go to
stderr; stdout carries the protocol.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from actionhub.config.settings import Settings, get_settings
from actionhub.core.types import LogSource
from actionhub.factory import close_components, create_components
from actionhub.frontend.client import ActionServiceClient
from actionhub.frontend.remote import RemoteDispatcher
from actionhub.frontend.server import EXECUTE_ACTION, LIST_ACTIONS, ActionToolServer
from actionhub.observability.logging import configure_logging, get_logger

logger = get_logger("actionhub.frontend.stdio")


def build_mcp_server(
    tool_server: ActionToolServer,
    name: str = "actionhub-actions",
    lifespan=None,
) -> FastMCP:
    """Register list_actions and execute_action on a FastMCP server."""
    mcp = FastMCP(name, lifespan=lifespan)

    @mcp.tool(name=LIST_ACTIONS.name, description=LIST_ACTIONS.description)
    async def list_actions() -> str:
        response = await tool_server.list_actions()
        if response.is_error:
            raise ToolError(response.text)
        return response.text

    @mcp.tool(name=EXECUTE_ACTION.name, description=EXECUTE_ACTION.description)
    async def execute_action(action: str, params: str) -> str:
        response = await tool_server.execute_action(action, params)
        if response.is_error:
            raise ToolError(response.text)
        return response.text

    return mcp


def create_tool_server(settings: Settings) -> tuple[ActionToolServer, Callable[[], Awaitable[None]]]:
    """
    Build the tool server and its shutdown coroutine function.

    Returns:
        (tool server, close)
    """
    if settings.remote.url:
        token = settings.remote.token.get_secret_value() if settings.remote.token else None
        client = ActionServiceClient(
            settings.remote.url,
            token=token,
            timeout=settings.remote.timeout,
            prefix=settings.api.prefix,
        )
        dispatcher = RemoteDispatcher(
            client,
            max_output_bytes=settings.execution.max_output_bytes,
            max_composite_depth=settings.execution.max_composite_depth,
        )
        logger.info("Using remote action service", url=settings.remote.url)
        return ActionToolServer(dispatcher, source=LogSource.MCP), dispatcher.close

    components = create_components(settings, source=LogSource.MCP)
    logger.info("Using in-process dispatcher", backend=settings.store.backend)

    return components["tool_server"], partial(close_components, components)


def main() -> None:
    """Entry point for the actionhub-mcp script."""
    settings = get_settings()
    configure_logging(
        level=settings.observability.log_level,
        json_output=settings.observability.log_format == "json",
        log_file=settings.observability.log_file,
    )

    tool_server, close = create_tool_server(settings)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await close()

    mcp = build_mcp_server(tool_server, lifespan=lifespan)
    logger.info("ActionHub MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
