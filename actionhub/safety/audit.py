"""
Audit Logging

Records one ActionLog per action invocation.

Design decisions:
- Writes are fire-and-forget: the caller never waits on, or sees, a
  storage failure
- Multiple storage backends behind one small interface
- Query support (newest first) and retention cleanup
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

from actionhub.core.results import ActionResult
from actionhub.core.types import ActionLog, ActionType, LogSource
from actionhub.observability.logging import get_logger

logger = get_logger("actionhub.safety.audit")


class AuditStorage(ABC):
    """Abstract storage for audit logs."""

    @abstractmethod
    async def store(self, entry: ActionLog) -> None:
        """Append an entry."""
        pass

    @abstractmethod
    async def query(
        self,
        action_name: str | None = None,
        success: bool | None = None,
        source: LogSource | None = None,
        start_time: datetime | None = None,
        limit: int = 50,
    ) -> list[ActionLog]:
        """Entries matching all given filters, newest first."""
        pass

    @abstractmethod
    async def cleanup(self, retention_days: int) -> int:
        """Delete entries older than the retention period."""
        pass


def _matches(
    entry: ActionLog,
    action_name: str | None,
    success: bool | None,
    source: LogSource | None,
    start_time: datetime | None,
) -> bool:
    if action_name is not None and entry.action_name != action_name:
        return False
    if success is not None and entry.success != success:
        return False
    if source is not None and entry.source != source:
        return False
    if start_time is not None and entry.created_at < start_time:
        return False
    return True


class InMemoryAuditStorage(AuditStorage):
    """In-memory audit storage for development/testing."""

    def __init__(self, max_entries: int = 10000):
        self._entries: list[ActionLog] = []
        self._max_entries = max_entries

    @property
    def entries(self) -> list[ActionLog]:
        return list(self._entries)

    async def store(self, entry: ActionLog) -> None:
        self._entries.append(entry)

        # Trim if over limit
        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries :]

    async def query(
        self,
        action_name: str | None = None,
        success: bool | None = None,
        source: LogSource | None = None,
        start_time: datetime | None = None,
        limit: int = 50,
    ) -> list[ActionLog]:
        results = [
            e
            for e in reversed(self._entries)
            if _matches(e, action_name, success, source, start_time)
        ]
        return results[:limit]

    async def cleanup(self, retention_days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        original_count = len(self._entries)
        self._entries = [e for e in self._entries if e.created_at >= cutoff]
        return original_count - len(self._entries)


class RedisAuditStorage(AuditStorage):
    """
    Redis-based audit storage.

    Entries are JSON strings keyed by id, indexed by a timeline sorted set
    and one sorted set per action name.
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "actionhub:audit:",
        max_entries: int = 100000,
    ):
        self._redis = redis_client
        self._prefix = prefix
        self._max_entries = max_entries

    def _entry_key(self, entry_id: str) -> str:
        return f"{self._prefix}entry:{entry_id}"

    async def store(self, entry: ActionLog) -> None:
        entry_id = str(entry.id)
        score = entry.created_at.timestamp()

        await self._redis.set(self._entry_key(entry_id), entry.model_dump_json())
        await self._redis.zadd(f"{self._prefix}timeline", {entry_id: score})
        await self._redis.zadd(f"{self._prefix}action:{entry.action_name}", {entry_id: score})

        # Trim to max entries
        count = await self._redis.zcard(f"{self._prefix}timeline")
        if count > self._max_entries:
            old_ids = await self._redis.zrange(
                f"{self._prefix}timeline",
                0,
                count - self._max_entries - 1,
            )
            for old_id in old_ids:
                await self._delete_entry(old_id)

    async def _delete_entry(self, entry_id: Any) -> None:
        """Delete a single entry from all indexes."""
        if isinstance(entry_id, bytes):
            entry_id = entry_id.decode()

        data = await self._redis.get(self._entry_key(entry_id))
        if data:
            entry = ActionLog.model_validate_json(data)
            await self._redis.zrem(f"{self._prefix}action:{entry.action_name}", entry_id)

        await self._redis.zrem(f"{self._prefix}timeline", entry_id)
        await self._redis.delete(self._entry_key(entry_id))

    async def query(
        self,
        action_name: str | None = None,
        success: bool | None = None,
        source: LogSource | None = None,
        start_time: datetime | None = None,
        limit: int = 50,
    ) -> list[ActionLog]:
        if action_name:
            index_key = f"{self._prefix}action:{action_name}"
        else:
            index_key = f"{self._prefix}timeline"

        min_score = start_time.timestamp() if start_time else "-inf"
        entry_ids = await self._redis.zrevrangebyscore(index_key, "+inf", min_score)

        results: list[ActionLog] = []
        for entry_id in entry_ids:
            if isinstance(entry_id, bytes):
                entry_id = entry_id.decode()
            data = await self._redis.get(self._entry_key(entry_id))
            if not data:
                continue
            entry = ActionLog.model_validate_json(data)
            if _matches(entry, action_name, success, source, start_time):
                results.append(entry)
                if len(results) >= limit:
                    break

        return results

    async def cleanup(self, retention_days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)

        old_ids = await self._redis.zrangebyscore(
            f"{self._prefix}timeline",
            "-inf",
            cutoff.timestamp(),
        )
        for entry_id in old_ids:
            await self._delete_entry(entry_id)

        return len(old_ids)


def build_action_log(
    action_name: str,
    action_type: ActionType | None,
    params: dict[str, Any],
    result: ActionResult,
    duration_ms: float,
    source: LogSource = LogSource.UNKNOWN,
) -> ActionLog:
    """Assemble the audit entry for a finished invocation."""
    response = result.to_dict()
    resolved_request = response.pop("resolved_request", None)

    return ActionLog(
        action_name=action_name,
        action_type=action_type,
        params=dict(params),
        response=response,
        resolved_request=resolved_request,
        success=result.success,
        error_message=result.error_message,
        status_code=getattr(result, "status", None),
        duration_ms=round(duration_ms, 3),
        source=source,
    )


class AuditLogWriter:
    """
    Best-effort, non-blocking audit writer.

    write() schedules the store call and returns immediately. Failures are
    logged at warning level and otherwise dropped.
    """

    def __init__(self, storage: AuditStorage, enabled: bool = True):
        self._storage = storage
        self._enabled = enabled
        self._pending: set[asyncio.Task] = set()

    @property
    def storage(self) -> AuditStorage:
        return self._storage

    def write(self, entry: ActionLog) -> None:
        """Schedule an entry for storage without waiting."""
        if not self._enabled:
            return

        task = asyncio.get_running_loop().create_task(self._store(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _store(self, entry: ActionLog) -> None:
        try:
            await self._storage.store(entry)
        except Exception as e:
            logger.warning(
                "Failed to write audit log",
                error=e,
                action=entry.action_name,
            )

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
