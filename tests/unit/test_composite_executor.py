"""
Unit Tests - Composite Executor

Tests for step sequencing, step-result interpolation and stop_on_error.
"""

import pytest

from actionhub.actions.composite_executor import (
    execute_composite,
    interpolate_step_params,
    resolve_composite,
)
from actionhub.core.exceptions import ActionConfigError, ActionNotFoundError
from actionhub.core.results import ActionResult, ApiResult, CompositePlan, StepError
from actionhub.core.types import ActionDefinition, ActionType, CompositeStep
from tests.fixtures import composite_action


class ScriptedSteps:
    """execute_fn double that answers from a script and records calls."""

    def __init__(self, outcomes: dict[str, ActionResult | Exception]):
        self.outcomes = outcomes
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, name: str, params: dict) -> ActionResult:
        self.calls.append((name, params))
        outcome = self.outcomes[name]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def plan(*steps: tuple[str, dict], stop_on_error: bool = True) -> CompositePlan:
    return CompositePlan(
        steps=[CompositeStep(action=name, params=params) for name, params in steps],
        stop_on_error=stop_on_error,
    )


class TestResolveComposite:
    """Tests for resolve_composite()."""

    def test_substitutes_caller_params(self):
        """Test caller params fill step params; step references survive."""
        definition = composite_action(
            "report",
            steps=[
                {"action": "get_weather", "params": {"city": "{{city}}"}},
                {"action": "notify", "params": {"text": "{{step_0_result}}", "n": 2}},
            ],
        )
        resolved = resolve_composite(definition, {"city": "Tokyo"})

        assert resolved.steps[0].params == {"city": "Tokyo"}
        assert resolved.steps[1].params == {"text": "{{step_0_result}}", "n": 2}
        assert resolved.stop_on_error is True

    def test_missing_composite_config(self):
        """Test a definition without composite_config is a config error."""
        definition = ActionDefinition.model_construct(
            name="broken", action_type=ActionType.COMPOSITE, composite_config=None
        )
        with pytest.raises(ActionConfigError):
            resolve_composite(definition, {})


class TestInterpolation:
    """Tests for interpolate_step_params()."""

    def test_string_and_json_data(self):
        """Test string data is inserted verbatim and other data as JSON."""
        results = [
            ApiResult(success=True, data="sunny"),
            ApiResult(success=True, data={"temp": 21}),
        ]
        params = interpolate_step_params(
            {"a": "{{step_0_result}}", "b": "t={{step_1_result}}", "c": 5},
            results,
        )
        assert params == {"a": "sunny", "b": 't={"temp":21}', "c": 5}

    def test_failed_and_future_steps_left_verbatim(self):
        """Test references to failed or not-yet-run steps are untouched."""
        results = [ApiResult(success=False, error="HTTP 500")]
        params = interpolate_step_params(
            {"a": "{{step_0_result}}", "b": "{{step_3_result}}"},
            results,
        )
        assert params == {"a": "{{step_0_result}}", "b": "{{step_3_result}}"}


class TestExecuteComposite:
    """Tests for execute_composite()."""

    @pytest.mark.asyncio
    async def test_passes_results_forward(self):
        """Test a later step sees an earlier step's data."""
        steps = ScriptedSteps(
            {
                "first": ApiResult(success=True, data="ok"),
                "second": ApiResult(success=True, data="done"),
            }
        )
        result = await execute_composite(
            plan(("first", {}), ("second", {"x": "{{step_0_result}}"})),
            steps,
        )

        assert result.success is True
        assert steps.calls == [("first", {}), ("second", {"x": "ok"})]
        assert [s.data for s in result.data.steps] == ["ok", "done"]

    @pytest.mark.asyncio
    async def test_stop_on_error(self):
        """Test the first failure ends the run and fails the composite."""
        steps = ScriptedSteps(
            {
                "first": ApiResult(success=False, status=500, error="boom"),
                "second": ApiResult(success=True),
            }
        )
        result = await execute_composite(plan(("first", {}), ("second", {})), steps)

        assert result.success is False
        assert result.error == "Step 0 (first) failed"
        assert len(result.data.steps) == 1
        assert [name for name, _ in steps.calls] == ["first"]

    @pytest.mark.asyncio
    async def test_continue_on_error(self):
        """Test without stop_on_error every step runs and the composite succeeds."""
        steps = ScriptedSteps(
            {
                "first": ApiResult(success=False, error="boom"),
                "second": ApiResult(success=True, data="fine"),
            }
        )
        result = await execute_composite(
            plan(("first", {}), ("second", {"x": "{{step_0_result}}"}), stop_on_error=False),
            steps,
        )

        assert result.success is True
        assert len(result.data.steps) == 2
        assert steps.calls[1] == ("second", {"x": "{{step_0_result}}"})

    @pytest.mark.asyncio
    async def test_raising_step_becomes_step_error(self):
        """Test a step that raises is recorded in place of a result."""
        steps = ScriptedSteps({"missing": ActionNotFoundError("missing")})
        result = await execute_composite(plan(("missing", {})), steps)

        assert result.success is False
        assert result.error == "Step 0 (missing) failed"
        step = result.data.steps[0]
        assert isinstance(step, StepError)
        assert step.success is False
        assert step.error == "Action not found or disabled"

    @pytest.mark.asyncio
    async def test_raising_step_keeps_alignment(self):
        """Test results stay index-aligned when a middle step raises."""
        steps = ScriptedSteps(
            {
                "a": ApiResult(success=True, data="1"),
                "b": RuntimeError("unexpected"),
                "c": ApiResult(success=True, data="3"),
            }
        )
        result = await execute_composite(
            plan(("a", {}), ("b", {}), ("c", {"x": "{{step_1_result}}"}), stop_on_error=False),
            steps,
        )

        assert [s.success for s in result.data.steps] == [True, False, True]
        assert result.data.steps[1].error == "unexpected"
        assert steps.calls[2] == ("c", {"x": "{{step_1_result}}"})

    @pytest.mark.asyncio
    async def test_empty_plan(self):
        """Test a composite with no steps succeeds with no results."""
        result = await execute_composite(plan(), ScriptedSteps({}))

        assert result.success is True
        assert result.data.steps == []
