"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from motorpool.app.api.v1.endpoints import (
    bookings, drivers, vehicles, stats, users, notifications, admin_ops,
)

router = APIRouter()

# Booking lifecycle and conflict checks
router.include_router(bookings.router)

# Pool resources
router.include_router(drivers.router)
router.include_router(vehicles.router)

# Dashboard
router.include_router(stats.router)

# Accounts and in-app inbox
router.include_router(users.router)
router.include_router(notifications.router)

# Ops: notification dead letters, cache, audit log, error log
router.include_router(admin_ops.router)
