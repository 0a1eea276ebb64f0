"""
System Error Log Model.

Unhandled exceptions caught by the global handler, kept for the admin
ops router.
"""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime


class ErrorLogEntry(Base):
    """One row per request that ended in an unhandled exception."""
    __tablename__ = "error_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Request
    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False, index=True)
    user_agent = Column(String(500), nullable=True)
    
    # Exception
    error_type = Column(String(255), nullable=False, index=True)
    error_message = Column(Text, nullable=False)
    stack_trace = Column(Text, nullable=True)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<ErrorLogEntry(id={self.id}, type='{self.error_type}', path='{self.path}')>"
