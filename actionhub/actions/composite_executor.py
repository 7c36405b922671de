"""
Composite Executor

Runs a composite action's steps in order, each through the full
dispatcher, so a step may itself be an api, bash or composite action.

Steps may reference earlier output with `{{step_N_result}}`, where N is
the zero-based index of a step already run.
"""

import re
from typing import Any

from actionhub.actions.templates import resolve_mapping
from actionhub.core.exceptions import ActionConfigError, ActionHubError
from actionhub.core.interfaces import ExecuteFn
from actionhub.core.results import (
    ActionResult,
    CompositeData,
    CompositePlan,
    CompositeResult,
    StepError,
)
from actionhub.core.types import ActionDefinition, CompositeStep
from actionhub.observability.logging import get_logger

logger = get_logger("actionhub.actions.composite")

STEP_RESULT = re.compile(r"\{\{step_(\d+)_result\}\}")


def resolve_composite(definition: ActionDefinition, params: dict[str, Any]) -> CompositePlan:
    """
    Substitute caller parameters into every step's params.

    `{{step_N_result}}` tokens survive untouched unless the caller happens
    to supply a parameter of that name.

    Raises:
        ActionConfigError: If the definition has no composite_config
    """
    config = definition.composite_config
    if config is None:
        raise ActionConfigError(
            "Composite action missing composite_config",
            context={"action": definition.name},
        )

    return CompositePlan(
        steps=[
            CompositeStep(action=step.action, params=resolve_mapping(step.params, params))
            for step in config.steps
        ],
        stop_on_error=config.stop_on_error,
    )


def interpolate_step_params(
    params: dict[str, Any],
    results: list[ActionResult],
) -> dict[str, Any]:
    """Replace `{{step_N_result}}` with the data of succeeded earlier steps."""

    def _replace(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(results) and results[index].success:
            return results[index].render_data()
        return match.group(0)

    return {
        key: STEP_RESULT.sub(_replace, value) if isinstance(value, str) else value
        for key, value in params.items()
    }


async def execute_composite(plan: CompositePlan, execute_fn: ExecuteFn) -> CompositeResult:
    """
    Run the plan's steps sequentially.

    A step that raises is recorded as a StepError so the results list
    stays index-aligned with the steps. With stop_on_error, the first
    unsuccessful step ends the run and fails the composite; without it
    the composite reports success regardless of its steps.
    """
    results: list[ActionResult] = []

    for index, step in enumerate(plan.steps):
        step_params = interpolate_step_params(step.params, results)

        try:
            result = await execute_fn(step.action, step_params)
        except Exception as e:
            message = e.message if isinstance(e, ActionHubError) else str(e)
            logger.warning(
                "Composite step raised",
                step=index,
                action=step.action,
                error=e,
            )
            result = StepError(error=message or type(e).__name__)

        results.append(result)

        if not result.success and plan.stop_on_error:
            return CompositeResult(
                success=False,
                error=f"Step {index} ({step.action}) failed",
                data=CompositeData(steps=results),
            )

    return CompositeResult(success=True, data=CompositeData(steps=results))
