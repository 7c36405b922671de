"""
API Executor

Resolves and performs the HTTP call of an api action.

Design decisions:
- Upstream failures (non-2xx, DNS, refused, timeout) are results, not
  exceptions; only a definition without api_config raises
- The resolved request is always returned, redacted, so failed calls stay
  auditable
- One shared httpx.AsyncClient; tests inject an httpx.MockTransport
"""

import asyncio
import base64
import json
from typing import Any

import httpx

from actionhub.actions.templates import TemplateMode, resolve
from actionhub.config.settings import ExecutionSettings
from actionhub.core.exceptions import ActionConfigError
from actionhub.core.results import ApiResult, ImagePayload, ResolvedRequest
from actionhub.core.types import ActionDefinition, AuthCredential
from actionhub.observability.logging import get_logger
from actionhub.safety.redaction import redact_headers

logger = get_logger("actionhub.actions.api")


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing spelling of the same name."""
    for existing in [key for key in headers if key.lower() == name.lower()]:
        del headers[existing]
    headers[name] = value


def _has_header(headers: dict[str, str], name: str) -> bool:
    """Case-insensitive header presence check."""
    return any(key.lower() == name.lower() for key in headers)


def _describe_transport_error(error: Exception) -> str:
    """Render a transport failure with its underlying cause."""
    message = str(error) or type(error).__name__
    text = f"{type(error).__name__}: {message}"
    cause = error.__cause__ or error.__context__
    if cause is not None and str(cause) and str(cause) not in message:
        text += f" (cause: {cause})"
    return text


class ApiExecutor:
    """
    Executes api actions over httpx.

    Usage:
        async with ApiExecutor(settings.execution) as executor:
            result = await executor.execute(definition, {"city": "Tokyo"})
    """

    def __init__(
        self,
        settings: ExecutionSettings | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or ExecutionSettings()
        self._client = client
        self._owns_client = client is None
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                verify=self._settings.verify_ssl,
                follow_redirects=self._settings.follow_redirects,
                headers={"User-Agent": self._settings.user_agent},
            )
        return self._client

    async def close(self) -> None:
        """Close the client if this executor created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def build_request(
        self,
        definition: ActionDefinition,
        params: dict[str, Any],
    ) -> tuple[ResolvedRequest, dict[str, str], set[str]]:
        """
        Resolve the concrete request without sending it.

        Returns:
            (redacted resolved request, real outbound headers, secret header names)
        """
        config = definition.api_config
        if config is None:
            raise ActionConfigError(
                "API action missing api_config",
                context={"action": definition.name},
            )

        url = resolve(config.url_template, params, TemplateMode.URL_ENCODED)
        body = resolve(config.body_template, params)

        headers = {name: resolve(value, params) for name, value in config.headers.items()}

        secret_names: set[str] = set()
        credential: AuthCredential | None = definition.auth_credential
        if credential is not None:
            for name, value in credential.auth_headers().items():
                _set_header(headers, name, value)
            secret_names = credential.secret_header_names()

        if config.method.has_body and not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = "application/json"

        resolved = ResolvedRequest(
            method=config.method.value,
            url=url,
            headers=redact_headers(headers, secret_names),
            body=body,
        )
        return resolved, headers, secret_names

    async def execute(
        self,
        definition: ActionDefinition,
        params: dict[str, Any],
    ) -> ApiResult:
        """
        Perform the call and classify the response.

        Raises:
            ActionConfigError: If the definition has no api_config
        """
        resolved, headers, _ = self.build_request(definition, params)
        config = definition.api_config
        timeout_ms = config.timeout_ms or self._settings.default_timeout_ms

        content = None
        if config.method.has_body and resolved.body:
            content = resolved.body.encode("utf-8")

        logger.debug(
            "Calling upstream",
            action=definition.name,
            method=resolved.method,
            url=resolved.url,
        )

        # httpx timeouts apply per phase; wait_for bounds the whole exchange
        try:
            response = await asyncio.wait_for(
                self._get_client().request(
                    resolved.method,
                    resolved.url,
                    headers=headers,
                    content=content,
                    timeout=httpx.Timeout(timeout_ms / 1000),
                ),
                timeout=timeout_ms / 1000,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("Upstream timed out", action=definition.name, timeout_ms=timeout_ms)
            return ApiResult(
                success=False,
                error=f"Request timed out after {timeout_ms}ms",
                resolved_request=resolved,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Upstream request failed", action=definition.name, error=e)
            return ApiResult(
                success=False,
                error=_describe_transport_error(e),
                resolved_request=resolved,
            )
        except UnicodeEncodeError as e:
            logger.warning("Request not encodable", action=definition.name, error=e)
            return ApiResult(
                success=False,
                error=f"Request headers must be ASCII: {e.reason}",
                resolved_request=resolved,
            )

        return self._classify(response, resolved)

    def _classify(self, response: httpx.Response, resolved: ResolvedRequest) -> ApiResult:
        content_type = response.headers.get("content-type", "")

        if content_type.lower().startswith("image/"):
            image = ImagePayload(
                mime_type=content_type.split(";")[0].strip(),
                data=base64.b64encode(response.content).decode("ascii"),
            )
            if response.is_success:
                return ApiResult(
                    success=True,
                    status=response.status_code,
                    image=image,
                    resolved_request=resolved,
                )
            return ApiResult(
                success=False,
                status=response.status_code,
                error=f"HTTP {response.status_code}",
                resolved_request=resolved,
            )

        text = response.text
        try:
            data: Any = json.loads(text)
        except ValueError:
            data = text

        if response.is_success:
            return ApiResult(
                success=True,
                status=response.status_code,
                data=data,
                resolved_request=resolved,
            )

        return ApiResult(
            success=False,
            status=response.status_code,
            error=data if data not in (None, "") else f"HTTP {response.status_code}",
            resolved_request=resolved,
        )


