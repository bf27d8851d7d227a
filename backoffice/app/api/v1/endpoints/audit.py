"""
Audit Trail API Endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.services.audit import get_audit_trail
from backoffice.app.schemas.audit import AuditLogResponse

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_events(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Most recent audit events, optionally filtered to one entity or action."""
    return await get_audit_trail(db, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit)
