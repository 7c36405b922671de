"""
API Routes
"""

from actionhub.api.routes import actions, health, logs, tools

__all__ = ["actions", "health", "logs", "tools"]
