"""
Action Routes

Listing, execution and resolution of actions for the dashboard and for
remote front ends.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from actionhub.actions.dispatcher import Dispatcher
from actionhub.api.dependencies import get_app_settings, get_dispatcher
from actionhub.config.settings import Settings
from actionhub.core.exceptions import BadRequestError, InvalidParamsError
from actionhub.core.results import ActionResult, plan_to_dict
from actionhub.core.types import LogSource

router = APIRouter()


class ActionRequest(BaseModel):
    """Body of execute and resolve calls."""

    action: str | None = None
    params: Any = None
    source: LogSource = LogSource.DASHBOARD

    def checked(self) -> tuple[str, dict[str, Any]]:
        """
        Raises:
            BadRequestError: No action name
            InvalidParamsError: params is not an object
        """
        if not self.action:
            raise BadRequestError("Missing required field: action")
        if self.params is None:
            return self.action, {}
        if not isinstance(self.params, dict):
            raise InvalidParamsError(
                "params must be a JSON object",
                context={"params": self.params},
            )
        return self.action, self.params


class ActionListResponse(BaseModel):
    """Enabled actions."""

    actions: list[dict[str, Any]]
    total: int


@router.get("/actions", response_model=ActionListResponse)
async def list_actions(
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """List enabled actions with their parameter schemas."""
    actions = await dispatcher.list_actions()
    return ActionListResponse(actions=actions, total=len(actions))


@router.get("/actions/{action_name}")
async def get_action(
    action_name: str,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    """Get one enabled action."""
    definition = await dispatcher.get_action(action_name)
    return definition.summary()


async def _resolve(dispatcher: Dispatcher, request: ActionRequest) -> dict[str, Any]:
    name, params = request.checked()
    action_type, outcome = await dispatcher.plan(name, params, request.source)
    if isinstance(outcome, ActionResult):
        return outcome.to_dict()
    return plan_to_dict(action_type, outcome)


@router.post("/actions/execute")
async def execute_action(
    request: ActionRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """
    Execute an action.

    api actions always run here. bash and composite actions run here only
    when execution.run_bash_on_server is set; otherwise their plan is
    returned for the trusted host.
    """
    if not settings.execution.run_bash_on_server:
        return await _resolve(dispatcher, request)

    name, params = request.checked()
    result = await dispatcher.execute(name, params, request.source)
    return result.to_dict()


@router.post("/actions/resolve")
async def resolve_action(
    request: ActionRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    """Executed result for api actions; plan form for bash and composite."""
    return await _resolve(dispatcher, request)
