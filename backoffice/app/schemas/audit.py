"""
Audit Trail Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    before_data: Optional[Dict[str, Any]]
    after_data: Optional[Dict[str, Any]]
    meta_data: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
