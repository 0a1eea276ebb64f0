"""
Booking code allocation.

Reads the highest code issued for the year and derives the next one.
Two concurrent creations can read the same maximum; the unique
constraint on bookings.booking_code rejects the second insert and the
workflow retries with a fresh read.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.domain.booking.codes import next_booking_code, year_prefix
from motorpool.app.models.booking import Booking


async def fetch_latest_booking_code(db: AsyncSession, prefix: str) -> Optional[str]:
    """Highest booking code starting with `prefix`, or None for a new year."""
    # Codes are fixed-width digits, so string max is numeric max
    result = await db.execute(
        select(func.max(Booking.booking_code)).where(Booking.booking_code.like(f"{prefix}___"))
    )
    return result.scalar()


async def allocate_booking_code(db: AsyncSession, year: int) -> str:
    """
    Next booking code for `year`.
    
    Raises:
        SequenceExhausted: the year's sequence is at 999
    """
    latest = await fetch_latest_booking_code(db, year_prefix(year))
    return next_booking_code(year, [latest] if latest else [])


def is_booking_code_collision(exc: IntegrityError) -> bool:
    """True when an insert failed on the booking_code unique constraint."""
    return "booking_code" in str(exc.orig)
