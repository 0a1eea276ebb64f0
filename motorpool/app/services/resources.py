"""
Driver and vehicle management.

Resources are never deleted. Deactivation is a soft flag: historical
bookings keep valid references, and inactive resources are refused by
approve / modify.
"""

from typing import List, Optional, Type

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.exceptions import NotFoundError, ValidationError
from motorpool.app.models.driver import Driver
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.services.audit import AuditAction, log_event

RESOURCE_ACTIONS = {
    Driver: {
        "created": AuditAction.DRIVER_CREATED,
        "updated": AuditAction.DRIVER_UPDATED,
        "deactivated": AuditAction.DRIVER_DEACTIVATED,
        "reactivated": AuditAction.DRIVER_REACTIVATED,
    },
    Vehicle: {
        "created": AuditAction.VEHICLE_CREATED,
        "updated": AuditAction.VEHICLE_UPDATED,
        "deactivated": AuditAction.VEHICLE_DEACTIVATED,
        "reactivated": AuditAction.VEHICLE_REACTIVATED,
    },
}


def _target_type(model) -> str:
    return model.__name__.lower()


async def get_resource(db: AsyncSession, model: Type, resource_id: int):
    resource = await db.get(model, resource_id, populate_existing=True)
    if resource is None:
        raise NotFoundError(model.__name__, resource_id)
    return resource


async def list_resources(db: AsyncSession, model: Type, active_only: bool = False) -> List:
    query = select(model).order_by(model.id)
    if active_only:
        query = query.where(model.is_active == True)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _ensure_unique_plate(db: AsyncSession, plate_number: str, exclude_id: Optional[int] = None):
    query = select(func.count(Vehicle.id)).where(Vehicle.plate_number == plate_number)
    if exclude_id is not None:
        query = query.where(Vehicle.id != exclude_id)
    if (await db.execute(query)).scalar():
        raise ValidationError(
            f"Vehicle with plate number {plate_number} already exists",
            details={"plate_number": plate_number},
        )


async def _flush(db: AsyncSession, model: Type, changes: dict):
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ValidationError(f"{model.__name__} violates a uniqueness constraint", details=changes)


async def _commit_with_audit(db: AsyncSession, resource, action: str, actor: dict, changes: dict):
    await log_event(
        db,
        action=RESOURCE_ACTIONS[type(resource)][action],
        actor_id=actor.get("user_id"),
        actor_username=actor.get("sub"),
        target_type=_target_type(type(resource)),
        target_id=resource.id,
        metadata=changes,
    )
    await db.commit()
    await db.refresh(resource)
    return resource


async def create_resource(db: AsyncSession, model: Type, fields: dict, actor: dict):
    """Create a driver or vehicle and log it."""
    if model is Vehicle:
        await _ensure_unique_plate(db, fields["plate_number"])
    
    resource = model(**fields)
    db.add(resource)
    await _flush(db, model, fields)
    return await _commit_with_audit(db, resource, "created", actor, fields)


async def update_resource(db: AsyncSession, model: Type, resource_id: int, fields: dict, actor: dict):
    """Apply the given field changes. Absent fields are left alone."""
    resource = await get_resource(db, model, resource_id)
    if model is Vehicle and fields.get("plate_number"):
        await _ensure_unique_plate(db, fields["plate_number"], exclude_id=resource_id)
    
    for key, value in fields.items():
        setattr(resource, key, value)
    await _flush(db, model, fields)
    return await _commit_with_audit(db, resource, "updated", actor, fields)


async def set_resource_active(db: AsyncSession, model: Type, resource_id: int, active: bool, actor: dict):
    """
    Soft deactivate or reactivate. Setting the current state again is a no-op.
    
    Deactivation bumps assignment_version so an approval that read the
    resource while it was still active fails its claim and retries.
    """
    resource = await get_resource(db, model, resource_id)
    if resource.is_active == active:
        return resource
    
    resource.is_active = active
    if not active:
        resource.assignment_version += 1
    await _flush(db, model, {"is_active": active})
    return await _commit_with_audit(
        db, resource, "reactivated" if active else "deactivated", actor, {"is_active": active}
    )
