"""
Resource claims for approve / modify.

The conflict check and the assignment write are separate statements, so
two processors can both pass the check for the same driver. Each driver
and vehicle row carries assignment_version; committing an assignment
bumps it conditionally on the version read before the conflict check.
The loser's conditional update matches no row (PostgreSQL re-evaluates
the WHERE clause after the winner commits), and the workflow retries
from a fresh read, where the winner's booking is now an obstacle.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.models.driver import Driver
from motorpool.app.models.vehicle import Vehicle

logger = logging.getLogger("motorpool.claims")


class StaleAssignmentError(Exception):
    """A concurrent assignment committed on the resource after it was read."""

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} was assigned concurrently")


async def bump_assignment_version(db: AsyncSession, model, resource_id: int, seen_version: int) -> bool:
    """
    Conditionally increment a resource's assignment_version.
    
    Returns:
        False if the row's version no longer equals seen_version
    """
    result = await db.execute(
        update(model)
        .where(model.id == resource_id, model.assignment_version == seen_version)
        .values(assignment_version=model.assignment_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def claim_resources(
    db: AsyncSession,
    driver: Optional[Driver],
    vehicle: Optional[Vehicle],
) -> None:
    """
    Claim the driver and vehicle at the versions they were loaded with.
    
    Must run inside the transition's transaction, after the conflict check.
    
    Raises:
        StaleAssignmentError: either resource was assigned concurrently
    """
    # Fixed order (driver, then vehicle) keeps row locks acquired consistently
    for resource, model, row in (("driver", Driver, driver), ("vehicle", Vehicle, vehicle)):
        if row is None:
            continue
        if not await bump_assignment_version(db, model, row.id, row.assignment_version):
            logger.info("Stale %s claim on id=%s at version %s", resource, row.id, row.assignment_version)
            raise StaleAssignmentError(resource, row.id)
