"""
FastAPI Dependencies

Dependency injection for API routes.

All components are built once in the app lifespan and read from
app.state.components here.
"""

from typing import Any

from fastapi import Depends, HTTPException, Request

from actionhub.actions.dispatcher import Dispatcher
from actionhub.config.settings import Settings
from actionhub.frontend.server import ActionToolServer
from actionhub.safety.audit import AuditStorage


async def get_components(request: Request) -> dict[str, Any]:
    """Get application components from state."""
    return getattr(request.app.state, "components", {})


def _require(components: dict[str, Any], key: str) -> Any:
    if key not in components:
        raise HTTPException(status_code=503, detail=f"{key} not available")
    return components[key]


async def get_app_settings(
    components: dict[str, Any] = Depends(get_components),
) -> Settings:
    """Get the settings the app was built with."""
    value = _require(components, "settings")
    assert isinstance(value, Settings)
    return value


async def get_dispatcher(
    components: dict[str, Any] = Depends(get_components),
) -> Dispatcher:
    """Get the action dispatcher."""
    value = _require(components, "dispatcher")
    assert isinstance(value, Dispatcher)
    return value


async def get_audit_storage(
    components: dict[str, Any] = Depends(get_components),
) -> AuditStorage:
    """Get audit log storage."""
    value = _require(components, "audit_storage")
    assert isinstance(value, AuditStorage)
    return value


async def get_tool_server(
    components: dict[str, Any] = Depends(get_components),
) -> ActionToolServer:
    """Get the list_actions / execute_action tool server."""
    value = _require(components, "tool_server")
    assert isinstance(value, ActionToolServer)
    return value
