"""
Actions Module

Template resolution, parameter validation, the three executors, the
dispatcher that ties them together, and the action stores it reads from.
"""

from actionhub.actions.api_executor import ApiExecutor
from actionhub.actions.bash_executor import resolve_bash, run_bash
from actionhub.actions.composite_executor import (
    execute_composite,
    interpolate_step_params,
    resolve_composite,
)
from actionhub.actions.dispatcher import Dispatcher
from actionhub.actions.store import InMemoryActionStore, RedisActionStore
from actionhub.actions.templates import TemplateMode, resolve
from actionhub.actions.validation import ParameterValidator

__all__ = [
    # Executors
    "ApiExecutor",
    # Dispatch
    "Dispatcher",
    # Stores
    "InMemoryActionStore",
    # Validation
    "ParameterValidator",
    "RedisActionStore",
    # Templates
    "TemplateMode",
    "execute_composite",
    "interpolate_step_params",
    "resolve",
    "resolve_bash",
    "resolve_composite",
    "run_bash",
]
