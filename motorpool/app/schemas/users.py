"""
User administration schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from motorpool.app.models.enums import UserRole


class UserUpdate(BaseModel):
    """Fields a processor may change on another account. Absent fields are left alone."""
    role: Optional[UserRole] = None
    unit: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    
    def changes(self) -> dict:
        fields = self.model_dump(exclude_unset=True)
        # role and is_active are not nullable; unit may be cleared
        return {key: value for key, value in fields.items() if value is not None or key == "unit"}


class UserResponse(BaseModel):
    id: int
    username: str
    email: Optional[str]
    full_name: Optional[str]
    unit: Optional[str]
    phone: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
