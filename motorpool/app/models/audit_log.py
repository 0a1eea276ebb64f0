"""
Audit Log Database Model.

Tracks administrative actions on pool resources (drivers, vehicles) and
user accounts. Booking transitions have their own trail in booking_audit.py.
"""

from sqlalchemy import Column, Integer, String, JSON
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime


class AuditLog(Base):
    """
    Audit log model for administrative actions.
    
    Events logged:
    - DRIVER_CREATED / DRIVER_UPDATED / DRIVER_DEACTIVATED / DRIVER_REACTIVATED
    - VEHICLE_CREATED / VEHICLE_UPDATED / VEHICLE_DEACTIVATED / VEHICLE_REACTIVATED
    - USER_UPDATED
    - NOTIFICATION_RETRIED
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Who performed the action
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)
    
    # What action was performed
    action = Column(String(100), nullable=False, index=True)
    
    # What it was performed on
    target_type = Column(String(50), nullable=True, index=True)
    target_id = Column(Integer, index=True, nullable=True)
    
    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)
    
    timestamp = Column(UTCDateTime, server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', target={self.target_type}:{self.target_id})>"
