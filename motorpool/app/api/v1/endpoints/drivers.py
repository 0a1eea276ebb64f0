"""
Driver API Endpoints.

Pool drivers are listed to any signed-in user and managed by ADMIN /
SUPERADMIN. There is no delete; deactivate instead.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.dependencies import get_current_user
from motorpool.app.core.guards import require_processor
from motorpool.app.db.session import get_db
from motorpool.app.models.driver import Driver
from motorpool.app.schemas.resources import DriverCreate, DriverUpdate, DriverResponse, DriverListResponse
from motorpool.app.services.resources import (
    create_resource, update_resource, set_resource_active, get_resource, list_resources,
)

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    active_only: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    drivers = await list_resources(db, Driver, active_only=active_only)
    return DriverListResponse(
        drivers=[DriverResponse.model_validate(d) for d in drivers],
        total=len(drivers),
    )


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    data: DriverCreate,
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await create_resource(db, Driver, data.model_dump(), current_user)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_resource(db, Driver, driver_id)


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    data: DriverUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await update_resource(db, Driver, driver_id, data.model_dump(exclude_unset=True), current_user)


@router.post("/{driver_id}/deactivate", response_model=DriverResponse)
async def deactivate_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """Soft-deactivate. Existing bookings keep their reference."""
    return await set_resource_active(db, Driver, driver_id, False, current_user)


@router.post("/{driver_id}/reactivate", response_model=DriverResponse)
async def reactivate_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await set_resource_active(db, Driver, driver_id, True, current_user)
