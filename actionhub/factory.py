"""
Component Factory

Assembles the store, audit pipeline, dispatcher and tool server from
settings. Shared by the HTTP app and the in-process MCP server.
"""

from pathlib import Path
from typing import Any

from actionhub.actions.api_executor import ApiExecutor
from actionhub.actions.dispatcher import Dispatcher
from actionhub.actions.store import InMemoryActionStore, RedisActionStore
from actionhub.config.settings import Settings
from actionhub.core.interfaces import ActionStoreProtocol
from actionhub.core.types import LogSource
from actionhub.frontend.server import ActionToolServer
from actionhub.observability.logging import get_logger
from actionhub.safety.audit import (
    AuditLogWriter,
    AuditStorage,
    InMemoryAuditStorage,
    RedisAuditStorage,
)

logger = get_logger("actionhub.factory")


def create_store(settings: Settings, redis_client: Any = None) -> ActionStoreProtocol:
    """Build the configured action store."""
    if settings.store.backend == "redis":
        return RedisActionStore(
            redis_url=settings.redis.url,
            key_prefix=settings.redis.key_prefix,
            client=redis_client,
        )

    path = settings.store.actions_path
    if path and Path(path).exists():
        return InMemoryActionStore.from_path(path)

    if path:
        logger.warning("Actions path not found; starting with an empty store", path=path)
    return InMemoryActionStore()


def create_audit_storage(settings: Settings, redis_client: Any = None) -> AuditStorage:
    """Build the configured audit storage."""
    if settings.store.backend == "redis":
        return RedisAuditStorage(
            redis_client,
            prefix=f"{settings.redis.key_prefix}audit:",
            max_entries=settings.store.audit_max_entries,
        )
    return InMemoryAuditStorage(max_entries=settings.store.audit_max_entries)


def create_components(
    settings: Settings,
    store: ActionStoreProtocol | None = None,
    audit_storage: AuditStorage | None = None,
    api_executor: ApiExecutor | None = None,
    source: LogSource = LogSource.MCP,
    run_bash: bool = True,
) -> dict[str, Any]:
    """
    Wire every component from settings, accepting overrides for tests.

    run_bash is false on the action service unless
    execution.run_bash_on_server allows it; the trusted host passes true.

    Returns:
        Component mapping stored on app.state.components
    """
    components: dict[str, Any] = {"settings": settings}

    redis_client = None
    if settings.store.backend == "redis" and (store is None or audit_storage is None):
        import redis.asyncio as redis

        redis_client = redis.from_url(
            settings.redis.url,
            encoding="utf-8",
            decode_responses=True,
        )
        components["redis"] = redis_client

    store = store or create_store(settings, redis_client)
    audit_storage = audit_storage or create_audit_storage(settings, redis_client)
    audit_writer = AuditLogWriter(
        audit_storage,
        enabled=settings.observability.enable_audit_logging,
    )

    dispatcher = Dispatcher(
        store,
        audit_writer=audit_writer,
        settings=settings.execution,
        api_executor=api_executor or ApiExecutor(settings.execution),
        run_bash=run_bash,
    )

    components.update(
        store=store,
        audit_storage=audit_storage,
        audit_writer=audit_writer,
        dispatcher=dispatcher,
        tool_server=ActionToolServer(dispatcher, source=source),
    )
    return components


async def close_components(components: dict[str, Any]) -> None:
    """Flush pending audit writes and release connections."""
    audit_writer = components.get("audit_writer")
    if audit_writer is not None:
        await audit_writer.drain()

    dispatcher = components.get("dispatcher")
    if dispatcher is not None:
        await dispatcher.close()

    redis_client = components.get("redis")
    if redis_client is not None:
        await redis_client.aclose()
