"""
Action Log Routes
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from actionhub.api.dependencies import get_audit_storage
from actionhub.core.types import ActionLog, LogSource
from actionhub.safety.audit import AuditStorage

router = APIRouter()


@router.get("/action-logs")
async def list_action_logs(
    action_name: str | None = None,
    success: bool | None = None,
    source: LogSource | None = None,
    start_time: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    storage: AuditStorage = Depends(get_audit_storage),
) -> dict[str, Any]:
    """Audit entries matching the filters, newest first."""
    logs = await storage.query(
        action_name=action_name,
        success=success,
        source=source,
        start_time=start_time,
        limit=limit,
    )
    return {
        "logs": [entry.model_dump(mode="json") for entry in logs],
        "total": len(logs),
    }


@router.post("/action-logs", status_code=201)
async def create_action_log(
    entry: ActionLog,
    storage: AuditStorage = Depends(get_audit_storage),
) -> dict[str, Any]:
    """Append an entry recorded by a host that executed a plan."""
    await storage.store(entry)
    return {"id": str(entry.id)}
