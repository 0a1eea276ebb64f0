"""
Driver and vehicle Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class DriverCreate(BaseModel):
    """Schema for registering a pool driver."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class DriverResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    drivers: List[DriverResponse]
    total: int


class VehicleCreate(BaseModel):
    """Schema for registering a pool vehicle."""
    model: str = Field(..., min_length=1, max_length=100, description="Make and model, e.g. Toyota Hilux")
    plate_number: str = Field(..., min_length=1, max_length=50, description="Unique registration plate")


class VehicleUpdate(BaseModel):
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    plate_number: Optional[str] = Field(None, min_length=1, max_length=50)


class VehicleResponse(BaseModel):
    id: int
    model: str
    plate_number: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    vehicles: List[VehicleResponse]
    total: int
