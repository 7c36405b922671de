"""
Test Fixtures

Builders for action definitions and an in-process stand-in for the
redis.asyncio client surface the stores use.
"""

import json
from typing import Any

import httpx

from actionhub.core.types import ActionDefinition, AuthCredential


def api_action(
    name: str = "get_weather",
    url: str = "https://wttr.in/{{city}}?format=j1",
    parameters: list[dict[str, Any]] | None = None,
    credential: AuthCredential | None = None,
    **config: Any,
) -> ActionDefinition:
    if parameters is None:
        parameters = [{"name": "city", "required": True}]
    return ActionDefinition.model_validate(
        {
            "name": name,
            "action_type": "api",
            "parameters": parameters,
            "api_config": {"url_template": url, **config},
            "auth_credential": credential,
        }
    )


def bash_action(
    name: str,
    command: str,
    allowed: list[str] | None = None,
    parameters: list[dict[str, Any]] | None = None,
    **config: Any,
) -> ActionDefinition:
    return ActionDefinition.model_validate(
        {
            "name": name,
            "action_type": "bash",
            "parameters": parameters or [],
            "bash_config": {
                "command_template": command,
                "allowed_commands": allowed,
                **config,
            },
        }
    )


def composite_action(
    name: str,
    steps: list[dict[str, Any]],
    stop_on_error: bool = True,
    parameters: list[dict[str, Any]] | None = None,
) -> ActionDefinition:
    return ActionDefinition.model_validate(
        {
            "name": name,
            "action_type": "composite",
            "parameters": parameters or [],
            "composite_config": {"steps": steps, "stop_on_error": stop_on_error},
        }
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it answered."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def weather_handler(request: httpx.Request) -> httpx.Response:
    """Fake wttr.in: echoes the requested city back as JSON."""
    city = request.url.path.strip("/")
    return httpx.Response(200, json={"city": city, "temp_C": "21"})


class FakeRedis:
    """Dict-backed subset of the redis.asyncio client (decode_responses=True)."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.closed = False

    async def set(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        return sum(self.values.pop(key, None) is not None for key in keys)

    async def hset(self, name: str, key: str, value: str) -> int:
        bucket = self.hashes.setdefault(name, {})
        created = key not in bucket
        bucket[key] = value
        return int(created)

    async def hget(self, name: str, key: str) -> str | None:
        return self.hashes.get(name, {}).get(key)

    async def hgetall(self, name: str) -> dict[str, str]:
        return dict(self.hashes.get(name, {}))

    async def zadd(self, name: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(name, {})
        added = sum(member not in zset for member in mapping)
        zset.update(mapping)
        return added

    async def zcard(self, name: str) -> int:
        return len(self.zsets.get(name, {}))

    async def zrem(self, name: str, *members: str) -> int:
        zset = self.zsets.get(name, {})
        return sum(zset.pop(member, None) is not None for member in members)

    def _ascending(self, name: str) -> list[tuple[str, float]]:
        return sorted(self.zsets.get(name, {}).items(), key=lambda item: item[1])

    async def zrange(self, name: str, start: int, end: int) -> list[str]:
        members = [member for member, _ in self._ascending(name)]
        return members[start:] if end == -1 else members[start : end + 1]

    async def zrangebyscore(self, name: str, min: Any, max: Any) -> list[str]:
        low, high = float(min), float(max)
        return [member for member, score in self._ascending(name) if low <= score <= high]

    async def zrevrangebyscore(self, name: str, max: Any, min: Any) -> list[str]:
        return list(reversed(await self.zrangebyscore(name, min, max)))

    async def aclose(self) -> None:
        self.closed = True


def record(definition: ActionDefinition) -> dict[str, Any]:
    """Raw storage record of a definition."""
    return json.loads(definition.model_dump_json(exclude_none=True))
