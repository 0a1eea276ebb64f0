"""
Dashboard Statistics Endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.config import settings
from motorpool.app.core.dependencies import get_current_user
from motorpool.app.core.redis_client import get_redis
from motorpool.app.db.session import get_db
from motorpool.app.schemas.stats import BookingStats
from motorpool.app.services.statistics import StatisticsService, StatsCache

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("", response_model=BookingStats)
async def get_stats(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """
    Booking counts by status and vehicle availability.
    
    Served from a short-lived cache; booking transitions invalidate it.
    """
    cache = StatsCache(redis, settings.stats_cache_ttl_seconds)
    return await StatisticsService.cached_booking_stats(db, cache)
