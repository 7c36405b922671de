"""
Core Module

Contains the action model, result types, exceptions and interfaces used
across all other modules.

The interfaces module defines protocols for cross-module communication,
preventing circular dependencies.
"""

from actionhub.core.types import (
    ActionDefinition,
    ActionLog,
    ActionType,
    ApiConfig,
    AuthCredential,
    AuthType,
    BashConfig,
    CompositeConfig,
    CompositeStep,
    HttpMethod,
    LogSource,
    ParameterSpec,
    ParameterType,
)
from actionhub.core.results import (
    ActionResult,
    ApiResult,
    BashOutput,
    BashPlan,
    BashResult,
    CompositePlan,
    CompositeResult,
    ImagePayload,
    ResolvedRequest,
    StepError,
    parse_result,
)
from actionhub.core.exceptions import (
    ActionConfigError,
    ActionHubError,
    ActionNotFoundError,
    ActionServiceError,
    BadRequestError,
    CommandNotAllowedError,
    CompositeCycleError,
    CompositeRecursionError,
    ConfigurationError,
    ExecutionDisabledError,
    InvalidParamsError,
    MissingParametersError,
    RecursionLimitError,
    UnknownActionTypeError,
)
from actionhub.core.interfaces import (
    ActionStoreProtocol,
    DispatcherProtocol,
    ExecuteFn,
)

__all__ = [
    # Types
    "ActionDefinition",
    "ActionLog",
    "ActionType",
    "ApiConfig",
    "AuthCredential",
    "AuthType",
    "BashConfig",
    "CompositeConfig",
    "CompositeStep",
    "HttpMethod",
    "LogSource",
    "ParameterSpec",
    "ParameterType",
    # Results
    "ActionResult",
    "ApiResult",
    "BashOutput",
    "BashPlan",
    "BashResult",
    "CompositePlan",
    "CompositeResult",
    "ImagePayload",
    "ResolvedRequest",
    "StepError",
    "parse_result",
    # Exceptions
    "ActionConfigError",
    "ActionHubError",
    "ActionNotFoundError",
    "ActionServiceError",
    "BadRequestError",
    "CommandNotAllowedError",
    "CompositeCycleError",
    "CompositeRecursionError",
    "ConfigurationError",
    "ExecutionDisabledError",
    "InvalidParamsError",
    "MissingParametersError",
    "RecursionLimitError",
    "UnknownActionTypeError",
    # Interfaces/Protocols
    "ActionStoreProtocol",
    "DispatcherProtocol",
    "ExecuteFn",
]
