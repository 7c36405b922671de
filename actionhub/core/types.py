"""
Core Types and Data Structures

Defines the action model shared by the store, dispatcher and executors.

An ActionDefinition is a tagged union: `action_type` names the variant and
exactly one of `api_config` / `bash_config` / `composite_config` carries its
payload. The pairing is checked when the model is built, so every
definition that reaches an executor is already consistent.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from actionhub.core.exceptions import ActionConfigError, UnknownActionTypeError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionType(str, Enum):
    """The three action variants."""

    API = "api"
    BASH = "bash"
    COMPOSITE = "composite"


class HttpMethod(str, Enum):
    """HTTP methods accepted for api actions."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        return self in {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}


class ParameterType(str, Enum):
    """Declared type of an action parameter."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class AuthType(str, Enum):
    """How a credential is applied to a request."""

    BEARER = "bearer"
    CUSTOM_HEADERS = "custom_headers"


class LogSource(str, Enum):
    """Where an invocation came from."""

    DASHBOARD = "dashboard"
    MCP = "mcp"
    UNKNOWN = "unknown"


def _stringify_map(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {
            str(k): v if isinstance(v, (str, SecretStr)) else str(v)
            for k, v in value.items()
        }
    return value


class ParameterSpec(BaseModel):
    """A declared parameter of an action."""

    name: str = Field(min_length=1)
    type: ParameterType = ParameterType.STRING
    description: str = ""
    required: bool = True
    default_value: str | None = None

    @field_validator("default_value", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> Any:
        # YAML happily turns "400" into 400
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


class ApiConfig(BaseModel):
    """Configuration for api-type actions."""

    method: HttpMethod = HttpMethod.GET
    url_template: str = Field(min_length=1)
    headers: dict[str, str] = Field(default_factory=dict)
    body_template: str | None = None
    timeout_ms: int = Field(default=30000, gt=0)

    @field_validator("headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> Any:
        return _stringify_map(value)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class BashConfig(BaseModel):
    """Configuration for bash-type actions."""

    command_template: str = Field(min_length=1)
    timeout_ms: int = Field(default=30000, gt=0)
    working_directory: str | None = None
    allowed_commands: list[str] | None = None


class CompositeStep(BaseModel):
    """One sub-action invocation within a composite."""

    action: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def _none_params(cls, value: Any) -> Any:
        return {} if value is None else value


class CompositeConfig(BaseModel):
    """Configuration for composite-type actions."""

    steps: list[CompositeStep] = Field(default_factory=list)
    stop_on_error: bool = True

    @field_validator("stop_on_error", mode="before")
    @classmethod
    def _default_stop(cls, value: Any) -> Any:
        # Only an explicit false disables it
        return True if value is None else value


class AuthCredential(BaseModel):
    """
    A stored secret attachable to api actions.

    Secret values are SecretStr so they never leak through repr,
    logging or model_dump.
    """

    name: str = Field(min_length=1)
    display_name: str | None = None
    auth_type: AuthType
    bearer_token: SecretStr | None = None
    custom_headers: dict[str, SecretStr] = Field(default_factory=dict)
    description: str | None = None

    @field_validator("custom_headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> Any:
        return _stringify_map(value)

    def auth_headers(self) -> dict[str, str]:
        """Real (unmasked) headers this credential contributes."""
        if self.auth_type == AuthType.BEARER:
            if self.bearer_token is None:
                return {}
            return {"Authorization": f"Bearer {self.bearer_token.get_secret_value()}"}
        return {key: value.get_secret_value() for key, value in self.custom_headers.items()}

    def secret_header_names(self) -> set[str]:
        """Lower-cased names of every header carrying a secret."""
        return {name.lower() for name in self.auth_headers()}


class ActionDefinition(BaseModel):
    """
    Complete definition of an action.

    Contains everything needed for:
    - The LLM to discover and call it (name, description, parameters)
    - The dispatcher to validate and route it
    - The matching executor to run it
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    display_name: str | None = None
    description: str = ""
    action_type: ActionType
    tags: list[str] = Field(default_factory=list)
    enabled: bool = True
    parameters: list[ParameterSpec] = Field(default_factory=list)

    # Exactly one of these matches action_type
    api_config: ApiConfig | None = None
    bash_config: BashConfig | None = None
    composite_config: CompositeConfig | None = None

    auth_credential: AuthCredential | None = None

    @field_validator("tags", "parameters", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _check_variant(self) -> "ActionDefinition":
        configs = {
            ActionType.API: self.api_config,
            ActionType.BASH: self.bash_config,
            ActionType.COMPOSITE: self.composite_config,
        }
        if configs[self.action_type] is None:
            raise ValueError(
                f"{self.action_type.value} action requires {self.action_type.value}_config"
            )
        extra = [
            f"{kind.value}_config"
            for kind, config in configs.items()
            if kind != self.action_type and config is not None
        ]
        if extra:
            raise ValueError(
                f"{self.action_type.value} action must not carry {', '.join(extra)}"
            )
        if self.auth_credential is not None and self.action_type != ActionType.API:
            raise ValueError("auth_credential is only supported on api actions")

        seen: set[str] = set()
        for param in self.parameters:
            if param.name in seen:
                raise ValueError(f"Duplicate parameter name: {param.name}")
            seen.add(param.name)
        return self

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ActionDefinition":
        """
        Build a definition from a raw storage record.

        Raises:
            UnknownActionTypeError: action_type missing or unrecognised
            ActionConfigError: any other validation failure
        """
        action_type = record.get("action_type")
        if action_type not in {kind.value for kind in ActionType}:
            raise UnknownActionTypeError(action_type)

        try:
            return cls.model_validate(record)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in err['loc']) or 'action'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ActionConfigError(
                f"Invalid action definition '{record.get('name')}'",
                context={"errors": problems},
                cause=e,
            ) from e

    def summary(self) -> dict[str, Any]:
        """Shape exposed to the LLM by list_actions."""
        return {
            "name": self.name,
            "display_name": self.display_name or self.name,
            "description": self.description,
            "action_type": self.action_type.value,
            "tags": list(self.tags),
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type.value,
                    "description": p.description,
                    "required": p.required,
                    "default_value": p.default_value,
                }
                for p in self.parameters
            ],
        }


class ActionLog(BaseModel):
    """
    A single audit log entry.

    Append-only; one per invocation.
    """

    id: UUID = Field(default_factory=uuid4)

    action_name: str
    action_type: ActionType | None = None

    # Inputs and outputs
    params: dict[str, Any] = Field(default_factory=dict)
    response: dict[str, Any] | None = None
    resolved_request: dict[str, Any] | None = None

    # Outcome
    success: bool = False
    error_message: str | None = None
    status_code: int | None = None
    duration_ms: float | None = None

    source: LogSource = LogSource.UNKNOWN
    created_at: datetime = Field(default_factory=_utcnow)
