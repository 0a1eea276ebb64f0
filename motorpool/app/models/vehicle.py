"""
Vehicle database model.

Pool vehicles identified by plate number. Soft-deactivated, never deleted.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime


class Vehicle(Base):
    """
    Vehicle model.
    
    assignment_version plays the same role as on Driver.
    """
    __tablename__ = "vehicles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Vehicle identification
    model = Column(String(100), nullable=False)  # e.g. "Toyota Fortuner"
    plate_number = Column(String(50), unique=True, nullable=False, index=True)
    
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    assignment_version = Column(Integer, default=0, nullable=False)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    
    @property
    def display_name(self) -> str:
        return f"{self.model} ({self.plate_number})"
    
    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate_number}', active={self.is_active})>"
