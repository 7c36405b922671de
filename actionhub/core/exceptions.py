"""
Exception Hierarchy

Defines all exceptions used by ActionHub.

Design decisions:
- All exceptions inherit from ActionHubError for easy catching
- Exceptions carry structured context, not just messages
- Each exception maps to an HTTP status for the API layer
- Executor-level failures (upstream, process, step) are NOT exceptions;
  they are captured in result objects with success=False
"""

from typing import Any


class ActionHubError(Exception):
    """
    Base exception for all ActionHub errors.

    Provides structured error information including:
    - Human-readable message
    - Machine-readable error code
    - Additional context for debugging
    """

    error_code: str = "ACTIONHUB_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.error_code
        self.context = context or {}
        self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "context": self.context,
        }


# ============================================================
# Configuration Errors
# ============================================================

class ConfigurationError(ActionHubError):
    """Error in configuration, settings or action files."""

    error_code = "CONFIGURATION_ERROR"


# ============================================================
# Lookup / Request Errors
# ============================================================

class ActionNotFoundError(ActionHubError):
    """Action name does not resolve to an enabled definition."""

    error_code = "ACTION_NOT_FOUND"
    status_code = 404

    def __init__(self, action_name: str, **kwargs: Any):
        super().__init__(
            "Action not found or disabled",
            context={"action": action_name},
            **kwargs,
        )
        self.action_name = action_name


class BadRequestError(ActionHubError):
    """The caller supplied something unusable. Not retried."""

    error_code = "BAD_REQUEST"
    status_code = 400


class MissingParametersError(BadRequestError):
    """Required parameters were neither supplied nor defaulted."""

    error_code = "MISSING_PARAMETERS"

    def __init__(self, names: list[str], **kwargs: Any):
        super().__init__(
            f"Missing required parameters: {', '.join(names)}",
            context={"missing": list(names)},
            **kwargs,
        )
        self.names = list(names)


class UnknownActionTypeError(BadRequestError):
    """Action type is missing or not one of api/bash/composite."""

    error_code = "UNKNOWN_ACTION_TYPE"

    def __init__(self, action_type: Any, **kwargs: Any):
        super().__init__(
            f"Unknown action_type: {action_type}",
            context={"action_type": action_type},
            **kwargs,
        )
        self.action_type = action_type


class InvalidParamsError(BadRequestError):
    """Parameters payload could not be parsed."""

    error_code = "INVALID_PARAMS"


# ============================================================
# Definition Errors
# ============================================================

class ActionConfigError(ActionHubError):
    """
    Action definition is structurally broken.

    Raised for a definition missing the config block for its declared
    type, or a stored record that fails validation. A data error, not
    a caller error.
    """

    error_code = "ACTION_CONFIG_ERROR"
    status_code = 500


# ============================================================
# Execution Errors
# ============================================================

class CommandNotAllowedError(ActionHubError):
    """Base command is not in the action's allowed_commands whitelist."""

    error_code = "COMMAND_NOT_ALLOWED"
    status_code = 403

    def __init__(self, command: str, allowed: list[str], **kwargs: Any):
        super().__init__(
            f'Command "{command}" not in allowed_commands: [{", ".join(allowed)}]',
            context={"command": command, "allowed_commands": list(allowed)},
            **kwargs,
        )
        self.command = command
        self.allowed = list(allowed)


class ExecutionDisabledError(ActionHubError):
    """This host does not run processes; bash must run on the trusted host."""

    error_code = "EXECUTION_DISABLED"
    status_code = 403

    def __init__(self, action_name: str, **kwargs: Any):
        super().__init__(
            f"Action '{action_name}' runs a process and is not executed on this host",
            context={"action": action_name},
            **kwargs,
        )


class CompositeRecursionError(ActionHubError):
    """Base error for runaway composite nesting."""

    error_code = "COMPOSITE_RECURSION"
    status_code = 400


class CompositeCycleError(CompositeRecursionError):
    """A composite step re-enters a composite already being executed."""

    error_code = "COMPOSITE_CYCLE"

    def __init__(self, chain: list[str], action_name: str, **kwargs: Any):
        path = " -> ".join([*chain, action_name])
        super().__init__(
            f"Composite cycle detected: {path}",
            context={"chain": list(chain), "action": action_name},
            **kwargs,
        )


class RecursionLimitError(CompositeRecursionError):
    """Composite nesting exceeded the configured maximum depth."""

    error_code = "RECURSION_LIMIT"

    def __init__(self, chain: list[str], max_depth: int, **kwargs: Any):
        super().__init__(
            f"Composite nesting exceeds max depth {max_depth}",
            context={"chain": list(chain), "max_depth": max_depth},
            **kwargs,
        )


# ============================================================
# Remote Service Errors
# ============================================================

class ActionServiceError(ActionHubError):
    """The remote action service returned an error or was unreachable."""

    error_code = "ACTION_SERVICE_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status = status
