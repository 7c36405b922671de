"""
Core Interfaces and Protocols

Defines the contracts between modules to prevent circular dependencies.

Design decisions:
- Protocol-based for structural subtyping
- Minimal interface surface: the engine only needs to look actions up;
  audit storage is the AuditStorage base class in safety.audit
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from actionhub.core.results import ActionResult
from actionhub.core.types import ActionDefinition, LogSource


# =============================================================================
# ACTION STORE PROTOCOL
# =============================================================================

@runtime_checkable
class ActionStoreProtocol(Protocol):
    """
    Read side of the action store.

    Implemented by: InMemoryActionStore, RedisActionStore
    Used by: Dispatcher, API routes
    """

    async def find_action_by_name(
        self,
        name: str,
        enabled_only: bool = True,
    ) -> ActionDefinition | None:
        """Exact-name lookup. First match wins if names collide."""
        ...

    async def list_actions(self, enabled_only: bool = True) -> list[ActionDefinition]:
        """All actions, sorted by name."""
        ...


# =============================================================================
# EXECUTION PROTOCOLS
# =============================================================================

# Re-entrant callback handed to the composite executor
ExecuteFn = Callable[[str, dict[str, Any]], Awaitable[ActionResult]]


@runtime_checkable
class DispatcherProtocol(Protocol):
    """
    Anything that can run an action by name.

    Implemented by: Dispatcher (in-process), RemoteDispatcher (over HTTP)
    Used by: ActionToolServer
    """

    async def execute(
        self,
        name: str,
        params: dict[str, Any],
        source: LogSource = LogSource.UNKNOWN,
    ) -> ActionResult:
        """Run an action and return its result."""
        ...

    async def list_actions(self) -> list[dict[str, Any]]:
        """Summaries of enabled actions."""
        ...
