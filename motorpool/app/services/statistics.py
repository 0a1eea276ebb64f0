"""
Statistics aggregator for the processing dashboard.

Read-only rollups: booking counts by status and vehicle availability.
Results are cached in Redis for a short TTL and invalidated after every
booking transition. The cache is optional; any Redis failure falls
back to a live query.
"""

import logging
from typing import Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.models.booking import Booking
from motorpool.app.models.enums import BookingStatus
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.schemas.stats import BookingStats

logger = logging.getLogger("motorpool.statistics")

STATS_CACHE_KEY = "motorpool:stats:bookings"


class StatsCache:
    """Redis-backed cache for BookingStats. Never raises."""

    def __init__(self, redis, ttl_seconds: int = 60):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get(self) -> Optional[BookingStats]:
        try:
            raw = await self.redis.get(STATS_CACHE_KEY)
        except Exception as exc:
            logger.warning("Stats cache read failed: %s", exc)
            return None
        if not raw:
            return None
        try:
            return BookingStats.model_validate_json(raw)
        except SchemaValidationError as exc:
            logger.warning("Discarding unreadable stats cache entry: %s", exc)
            await self.invalidate()
            return None

    async def set(self, stats: BookingStats) -> None:
        try:
            await self.redis.set(STATS_CACHE_KEY, stats.model_dump_json(), ex=self.ttl_seconds)
        except Exception as exc:
            logger.warning("Stats cache write failed: %s", exc)

    async def invalidate(self) -> None:
        try:
            await self.redis.delete(STATS_CACHE_KEY)
        except Exception as exc:
            logger.warning("Stats cache invalidation failed: %s", exc)


class StatisticsService:

    @staticmethod
    async def booking_stats(db: AsyncSession) -> BookingStats:
        """Counts by status (zeros when empty) and vehicle availability."""
        
        # 1. Bookings by status
        status_rows = await db.execute(
            select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
        )
        counts = {status: count for status, count in status_rows.all()}
        
        # 2. Vehicle availability
        total_vehicles = (await db.execute(select(func.count(Vehicle.id)))).scalar() or 0
        active_vehicles = (await db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.is_active == True)
        )).scalar() or 0
        
        return BookingStats(
            pending=counts.get(BookingStatus.PENDING, 0),
            approved=counts.get(BookingStatus.APPROVED, 0),
            rejected=counts.get(BookingStatus.REJECTED, 0),
            cancelled=counts.get(BookingStatus.CANCELLED, 0),
            active_vehicles=active_vehicles,
            total_vehicles=total_vehicles,
            vehicle_availability=(active_vehicles / total_vehicles) if total_vehicles else 0.0,
            available_vehicles=f"{active_vehicles}/{total_vehicles}",
        )

    @staticmethod
    async def cached_booking_stats(db: AsyncSession, cache: Optional[StatsCache]) -> BookingStats:
        if cache is not None:
            cached = await cache.get()
            if cached is not None:
                return cached
        
        stats = await StatisticsService.booking_stats(db)
        if cache is not None:
            await cache.set(stats)
        return stats
