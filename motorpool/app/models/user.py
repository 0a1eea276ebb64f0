"""
User database model.

Requesters and processors. Authentication happens upstream; this table
holds identity, organisational unit and privilege tier.
"""

from sqlalchemy import Column, Integer, String, Boolean, Enum
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime
from motorpool.app.models.enums import UserRole


class User(Base):
    """
    User model.
    
    The role is read from this table on every request, so a role change
    takes effect without reissuing tokens.
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    unit = Column(String(255), nullable=True)  # Organisational unit
    phone = Column(String(50), nullable=True)
    
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    
    @property
    def display_name(self) -> str:
        return self.full_name or self.username
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}')>"
