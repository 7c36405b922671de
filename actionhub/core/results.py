"""
Execution Results and Plans

Result objects returned by the executors, and the plan objects that carry a
resolved-but-not-executed bash or composite action across the trusted-host
boundary.

Executor failures are values, not exceptions: every result has `success`
and, when false, a human-readable `error`.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator

from actionhub.core.types import ActionType, CompositeStep


class ActionResult(BaseModel):
    """Common shape of every executor result."""

    model_config = ConfigDict(extra="allow")

    action_type: ActionType | None = None
    success: bool
    data: Any = None
    error: Any = None

    @property
    def error_message(self) -> str | None:
        """The error as text, for logs and audit entries."""
        if self.error is None:
            return None
        if isinstance(self.error, str):
            return self.error
        return json.dumps(self.error, default=str)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and tool output."""
        return self.model_dump(mode="json", exclude_none=True)

    def render_data(self) -> str:
        """Data as a string: strings verbatim, anything else as compact JSON."""
        payload = self.to_dict().get("data")
        if isinstance(payload, str):
            return payload
        return json.dumps(payload, separators=(",", ":"))


class StepError(ActionResult):
    """Synthesized result for a composite step whose call raised."""

    success: bool = False


class ImagePayload(BaseModel):
    """Binary image body, base64 encoded."""

    mime_type: str
    data: str


class ResolvedRequest(BaseModel):
    """
    The concrete request an api action produced.

    Header values are already masked where sensitive.
    """

    method: str
    url: str | None
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None


class ApiResult(ActionResult):
    """Result of an api action."""

    action_type: ActionType | None = ActionType.API
    status: int | None = None
    image: ImagePayload | None = None
    resolved_request: ResolvedRequest | None = None


class BashOutput(BaseModel):
    """Captured process output."""

    stdout: str = ""
    stderr: str = ""
    code: int | str | None = None


class BashResult(ActionResult):
    """Result of a bash action."""

    action_type: ActionType | None = ActionType.BASH
    data: BashOutput | None = None


class CompositeData(BaseModel):
    """Per-step results, index-aligned with the composite's steps."""

    steps: list[SerializeAsAny[ActionResult]] = Field(default_factory=list)

    @field_validator("steps", mode="before")
    @classmethod
    def _parse_steps(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [parse_result(item) if isinstance(item, dict) else item for item in value]
        return value


class CompositeResult(ActionResult):
    """Result of a composite action."""

    action_type: ActionType | None = ActionType.COMPOSITE
    data: CompositeData | None = None


_RESULT_TYPES: dict[str, type[ActionResult]] = {
    ActionType.API.value: ApiResult,
    ActionType.BASH.value: BashResult,
    ActionType.COMPOSITE.value: CompositeResult,
}


def parse_result(payload: dict[str, Any]) -> ActionResult:
    """Rebuild the matching result model from its JSON form."""
    result_type = _RESULT_TYPES.get(payload.get("action_type"), ActionResult)
    return result_type.model_validate(payload)


# ============================================================
# Plans
# ============================================================

class BashPlan(BaseModel):
    """A bash action resolved for execution on the trusted host."""

    command: str | None
    timeout_ms: int = 30000
    working_directory: str | None = None
    allowed_commands: list[str] = Field(default_factory=list)

    @property
    def base_command(self) -> str:
        parts = (self.command or "").split()
        return parts[0] if parts else ""


class CompositePlan(BaseModel):
    """A composite action with caller parameters already substituted."""

    steps: list[CompositeStep] = Field(default_factory=list)
    stop_on_error: bool = True


ActionPlan = BashPlan | CompositePlan


def plan_to_dict(action_type: ActionType, plan: ActionPlan) -> dict[str, Any]:
    """Wire form of a plan: {action_type, resolved}."""
    return {"action_type": action_type.value, "resolved": plan.model_dump(mode="json")}


def parse_plan(payload: dict[str, Any]) -> tuple[ActionType, ActionPlan]:
    """Inverse of plan_to_dict."""
    action_type = ActionType(payload["action_type"])
    resolved = payload.get("resolved") or {}
    if action_type == ActionType.BASH:
        return action_type, BashPlan.model_validate(resolved)
    if action_type == ActionType.COMPOSITE:
        return action_type, CompositePlan.model_validate(resolved)
    raise ValueError(f"No plan form for {action_type.value} actions")
