"""
Vehicle API Endpoints.

Pool vehicles are listed to any signed-in user and managed by ADMIN /
SUPERADMIN. There is no delete; deactivate instead.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.dependencies import get_current_user
from motorpool.app.core.guards import require_processor
from motorpool.app.db.session import get_db
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.schemas.resources import VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse
from motorpool.app.services.resources import (
    create_resource, update_resource, set_resource_active, get_resource, list_resources,
)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    active_only: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    vehicles = await list_resources(db, Vehicle, active_only=active_only)
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=len(vehicles),
    )


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    data: VehicleCreate,
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await create_resource(db, Vehicle, data.model_dump(), current_user)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_resource(db, Vehicle, vehicle_id)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await update_resource(db, Vehicle, vehicle_id, data.model_dump(exclude_unset=True), current_user)


@router.post("/{vehicle_id}/deactivate", response_model=VehicleResponse)
async def deactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """Soft-deactivate. The vehicle stops counting as available in stats."""
    return await set_resource_active(db, Vehicle, vehicle_id, False, current_user)


@router.post("/{vehicle_id}/reactivate", response_model=VehicleResponse)
async def reactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await set_resource_active(db, Vehicle, vehicle_id, True, current_user)
