"""
Remote Dispatcher

Runs actions whose definitions live on the action service, executing the
privileged halves on this (trusted) host.

Flow per invocation:
1. POST /actions/resolve on the service
2. api actions come back already executed and audited; return as-is
3. bash plans run through run_bash() here
4. composite plans run through execute_composite(), each step recursing
   through this dispatcher
5. Locally executed plans are audited back to the service, best-effort
"""

import time
from datetime import datetime
from typing import Any

from actionhub.actions.bash_executor import MAX_OUTPUT_BYTES, run_bash
from actionhub.actions.composite_executor import execute_composite
from actionhub.core.exceptions import CompositeCycleError, RecursionLimitError
from actionhub.core.results import (
    ActionResult,
    BashPlan,
    CompositePlan,
    parse_plan,
    parse_result,
)
from actionhub.core.types import ActionLog, LogSource
from actionhub.frontend.client import ActionServiceClient
from actionhub.observability.logging import get_logger
from actionhub.safety.audit import AuditLogWriter, AuditStorage, build_action_log

logger = get_logger("actionhub.frontend.remote")


class RemoteAuditStorage(AuditStorage):
    """Audit storage that appends to the action service's log."""

    def __init__(self, client: ActionServiceClient):
        self._client = client

    async def store(self, entry: ActionLog) -> None:
        await self._client.post_log(entry)

    async def query(
        self,
        action_name: str | None = None,
        success: bool | None = None,
        source: LogSource | None = None,
        start_time: datetime | None = None,
        limit: int = 50,
    ) -> list[ActionLog]:
        return await self._client.query_logs(action_name, success, source, start_time, limit)

    async def cleanup(self, retention_days: int) -> int:
        # Retention is the service's concern
        return 0


class RemoteDispatcher:
    """
    DispatcherProtocol implementation backed by the action service.

    Usage:
        async with ActionServiceClient(url, token) as client:
            dispatcher = RemoteDispatcher(client)
            result = await dispatcher.execute("disk_usage", {})
    """

    def __init__(
        self,
        client: ActionServiceClient,
        audit_writer: AuditLogWriter | None = None,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        max_composite_depth: int = 8,
    ):
        self._client = client
        self._audit = audit_writer or AuditLogWriter(RemoteAuditStorage(client))
        self._max_output_bytes = max_output_bytes
        self._max_depth = max_composite_depth

    @property
    def audit_writer(self) -> AuditLogWriter:
        return self._audit

    async def close(self) -> None:
        await self._audit.drain()
        await self._client.close()

    async def list_actions(self) -> list[dict[str, Any]]:
        return await self._client.list_actions()

    async def execute(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        source: LogSource = LogSource.MCP,
    ) -> ActionResult:
        """
        Raises:
            ActionServiceError: The service rejected the call or was unreachable
        """
        return await self._execute(name, params or {}, source, ())

    async def _execute(
        self,
        name: str,
        params: dict[str, Any],
        source: LogSource,
        chain: tuple[str, ...],
    ) -> ActionResult:
        payload = await self._client.resolve(name, params, source)

        if "resolved" not in payload:
            return parse_result(payload)

        action_type, plan = parse_plan(payload)

        with logger.context(action=name):
            start = time.perf_counter()
            if isinstance(plan, BashPlan):
                result: ActionResult = await run_bash(plan, self._max_output_bytes)
            else:
                result = await self._run_composite(name, plan, source, chain)
            duration_ms = (time.perf_counter() - start) * 1000

            logger.info(
                "Plan executed locally",
                action_type=action_type.value,
                success=result.success,
                duration_ms=round(duration_ms, 3),
            )

        self._audit.write(
            build_action_log(
                action_name=name,
                action_type=action_type,
                params=params,
                result=result,
                duration_ms=duration_ms,
                source=source,
            )
        )
        return result

    async def _run_composite(
        self,
        name: str,
        plan: CompositePlan,
        source: LogSource,
        chain: tuple[str, ...],
    ) -> ActionResult:
        if name in chain:
            raise CompositeCycleError(list(chain), name)
        if len(chain) >= self._max_depth:
            raise RecursionLimitError(list(chain), self._max_depth)

        nested = (*chain, name)

        async def execute_step(step_name: str, step_params: dict[str, Any]) -> ActionResult:
            return await self._execute(step_name, step_params, source, nested)

        return await execute_composite(plan, execute_step)
