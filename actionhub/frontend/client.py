"""
Action Service Client

httpx client for the action service HTTP API, used by front ends that run
on a different host from the action definitions.
"""

from datetime import datetime
from typing import Any

import httpx

from actionhub.core.exceptions import ActionServiceError
from actionhub.core.types import ActionLog, LogSource


class ActionServiceClient:
    """
    Thin async client for /api/v1.

    Non-2xx responses raise ActionServiceError carrying the service's own
    message, so callers can surface "Action not found or disabled" and
    friends verbatim.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 120.0,
        prefix: str = "/api/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + prefix,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ActionServiceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ActionServiceError(
                f"Action service unreachable: {e}",
                context={"path": path},
                cause=e,
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            raise ActionServiceError(
                message or f"Action service {method} {path} failed ({response.status_code})",
                status=response.status_code,
                context={"path": path, "response": data},
            )

        return data

    async def list_actions(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/actions")
        return data["actions"]

    async def resolve(
        self,
        action: str,
        params: dict[str, Any],
        source: LogSource = LogSource.MCP,
    ) -> dict[str, Any]:
        """Executed result for api actions, plan form for bash/composite."""
        return await self._request(
            "POST",
            "/actions/resolve",
            json={"action": action, "params": params, "source": source.value},
        )

    async def post_log(self, entry: ActionLog) -> None:
        await self._request("POST", "/action-logs", content=entry.model_dump_json())

    async def query_logs(
        self,
        action_name: str | None = None,
        success: bool | None = None,
        source: LogSource | None = None,
        start_time: datetime | None = None,
        limit: int = 50,
    ) -> list[ActionLog]:
        params: dict[str, Any] = {"limit": limit}
        if action_name is not None:
            params["action_name"] = action_name
        if success is not None:
            params["success"] = "true" if success else "false"
        if source is not None:
            params["source"] = source.value
        if start_time is not None:
            params["start_time"] = start_time.isoformat()

        data = await self._request("GET", "/action-logs", params=params)
        return [ActionLog.model_validate(item) for item in data["logs"]]
