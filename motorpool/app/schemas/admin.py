"""
Admin operations schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, List, Optional

from motorpool.app.models.dlq import DLQStatus


class DeadLetterResponse(BaseModel):
    id: int
    event: str
    booking_code: Optional[str]
    error_message: str
    payload: Dict[str, Any]
    status: DLQStatus
    retry_count: int
    created_at: datetime
    last_retry_at: Optional[datetime]
    
    class Config:
        from_attributes = True


class DeadLetterRetryResponse(BaseModel):
    delivered: bool
    dead_letter: DeadLetterResponse


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    target_type: Optional[str]
    target_id: Optional[int]
    meta_data: Optional[Dict[str, Any]]
    timestamp: datetime
    
    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    entries: List[AuditLogResponse]


class ErrorLogResponse(BaseModel):
    id: int
    method: str
    path: str
    user_agent: Optional[str]
    error_type: str
    error_message: str
    stack_trace: Optional[str]
    created_at: datetime
    
    class Config:
        from_attributes = True


class ErrorLogListResponse(BaseModel):
    errors: List[ErrorLogResponse]
