"""
Execution Dispatcher

Lookup -> Validate -> Dispatch -> Record, once per invocation.

Design decisions:
- Lookup and validation failures raise (NotFound / BadRequest) and are not
  audited; anything that reaches an executor is audited exactly once
- Composite steps re-enter the dispatcher, carrying the chain of composite
  names so cycles and runaway nesting fail the offending step
- plan() is the resolution half used across the trusted-host boundary
"""

import time
from typing import Any

from actionhub.actions.api_executor import ApiExecutor
from actionhub.actions.bash_executor import resolve_bash, run_bash
from actionhub.actions.composite_executor import execute_composite, resolve_composite
from actionhub.actions.validation import ParameterValidator
from actionhub.config.settings import ExecutionSettings
from actionhub.core.exceptions import (
    ActionNotFoundError,
    CompositeCycleError,
    ExecutionDisabledError,
    RecursionLimitError,
    UnknownActionTypeError,
)
from actionhub.core.interfaces import ActionStoreProtocol
from actionhub.core.results import ActionPlan, ActionResult
from actionhub.core.types import ActionDefinition, ActionType, LogSource
from actionhub.observability.logging import get_logger
from actionhub.safety.audit import AuditLogWriter, build_action_log

logger = get_logger("actionhub.actions.dispatcher")


class Dispatcher:
    """
    Runs actions by name against an action store.

    Usage:
        dispatcher = Dispatcher(store, audit_writer, settings.execution)
        result = await dispatcher.execute("get_weather", {"city": "Tokyo"})
    """

    def __init__(
        self,
        store: ActionStoreProtocol,
        audit_writer: AuditLogWriter | None = None,
        settings: ExecutionSettings | None = None,
        api_executor: ApiExecutor | None = None,
        validator: ParameterValidator | None = None,
        run_bash: bool = True,
    ):
        self._store = store
        self._audit = audit_writer
        self._settings = settings or ExecutionSettings()
        self._api = api_executor or ApiExecutor(self._settings)
        self._validator = validator or ParameterValidator()
        self._run_bash = run_bash

    @property
    def store(self) -> ActionStoreProtocol:
        return self._store

    async def close(self) -> None:
        await self._api.close()

    async def list_actions(self) -> list[dict[str, Any]]:
        """Summaries of every enabled action."""
        actions = await self._store.list_actions(enabled_only=True)
        return [action.summary() for action in actions]

    async def get_action(self, name: str) -> ActionDefinition:
        """
        Look up an enabled action.

        Raises:
            ActionNotFoundError: No enabled action has this name
        """
        definition = await self._store.find_action_by_name(name, enabled_only=True)
        if definition is None:
            raise ActionNotFoundError(name)
        return definition

    async def execute(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        source: LogSource = LogSource.UNKNOWN,
    ) -> ActionResult:
        """
        Run an action to completion on this host.

        Raises:
            ActionNotFoundError: Unknown or disabled action
            MissingParametersError: Required parameters absent
            UnknownActionTypeError: Unrecognised action type
            ExecutionDisabledError: bash action on a host that runs no processes
        """
        return await self._execute(name, params or {}, source, ())

    async def _execute(
        self,
        name: str,
        params: dict[str, Any],
        source: LogSource,
        chain: tuple[str, ...],
    ) -> ActionResult:
        definition = await self.get_action(name)
        resolved = self._validator.validate(definition.parameters, params)

        with logger.context(action=name):
            start = time.perf_counter()
            result = await self._dispatch(definition, resolved, source, chain)
            duration_ms = (time.perf_counter() - start) * 1000

            logger.info(
                "Action executed",
                action_type=definition.action_type.value,
                success=result.success,
                duration_ms=round(duration_ms, 3),
                depth=len(chain),
            )

        self._record(definition, resolved, result, duration_ms, source)
        return result

    async def _dispatch(
        self,
        definition: ActionDefinition,
        params: dict[str, Any],
        source: LogSource,
        chain: tuple[str, ...],
    ) -> ActionResult:
        action_type = definition.action_type

        if action_type == ActionType.API:
            return await self._api.execute(definition, params)

        if action_type == ActionType.BASH:
            if not self._run_bash:
                raise ExecutionDisabledError(definition.name)
            plan = resolve_bash(definition, params)
            return await run_bash(plan, max_output_bytes=self._settings.max_output_bytes)

        if action_type == ActionType.COMPOSITE:
            self._check_nesting(chain, definition.name)
            nested = (*chain, definition.name)

            async def execute_step(step_name: str, step_params: dict[str, Any]) -> ActionResult:
                return await self._execute(step_name, step_params, source, nested)

            plan = resolve_composite(definition, params)
            return await execute_composite(plan, execute_step)

        raise UnknownActionTypeError(action_type)

    def _check_nesting(self, chain: tuple[str, ...], composite_name: str) -> None:
        """
        Raises:
            CompositeCycleError: composite_name is already running
            RecursionLimitError: Entering it would exceed max_composite_depth
        """
        if composite_name in chain:
            raise CompositeCycleError(list(chain), composite_name)
        if len(chain) >= self._settings.max_composite_depth:
            raise RecursionLimitError(list(chain), self._settings.max_composite_depth)

    def _record(
        self,
        definition: ActionDefinition,
        params: dict[str, Any],
        result: ActionResult,
        duration_ms: float,
        source: LogSource,
    ) -> None:
        if self._audit is None:
            return
        self._audit.write(
            build_action_log(
                action_name=definition.name,
                action_type=definition.action_type,
                params=params,
                result=result,
                duration_ms=duration_ms,
                source=source,
            )
        )

    async def plan(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        source: LogSource = LogSource.UNKNOWN,
    ) -> tuple[ActionType, ActionResult | ActionPlan]:
        """
        Resolve an action for execution elsewhere.

        api actions are executed (and audited) here, since the service
        holds their credentials. bash and composite actions come back as
        plans for the trusted host, which records their audit entry.

        Returns:
            (action type, result for api or plan otherwise)
        """
        definition = await self.get_action(name)
        resolved = self._validator.validate(definition.parameters, params or {})
        action_type = definition.action_type

        if action_type == ActionType.API:
            start = time.perf_counter()
            result = await self._api.execute(definition, resolved)
            duration_ms = (time.perf_counter() - start) * 1000
            self._record(definition, resolved, result, duration_ms, source)
            return action_type, result

        if action_type == ActionType.BASH:
            return action_type, resolve_bash(definition, resolved)

        if action_type == ActionType.COMPOSITE:
            return action_type, resolve_composite(definition, resolved)

        raise UnknownActionTypeError(action_type)
