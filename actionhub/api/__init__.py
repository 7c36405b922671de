"""
Interface & Serving Layer

FastAPI action service: actions, action logs and the tool protocol.
"""

from actionhub.api.app import create_app
from actionhub.api.dependencies import get_dispatcher, get_tool_server
from actionhub.api.middleware import AuthMiddleware, ErrorHandlingMiddleware, TracingMiddleware
from actionhub.api.routes import actions, health, logs, tools

__all__ = [
    # Middleware
    "AuthMiddleware",
    "ErrorHandlingMiddleware",
    "TracingMiddleware",
    # Routes
    "actions",
    # App
    "create_app",
    # Dependencies
    "get_dispatcher",
    "get_tool_server",
    "health",
    "logs",
    "tools",
]
