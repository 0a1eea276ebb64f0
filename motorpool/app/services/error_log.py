"""
Persistent log of unhandled exceptions.

The global exception handler records each one through the module-level
recorder. Recording runs in its own session and never raises; a failure
to store is logged and the 500 response goes out regardless.
"""

import logging
import traceback
from typing import Callable, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.db.session import AsyncSessionLocal
from motorpool.app.models.error_log import ErrorLogEntry

logger = logging.getLogger("motorpool.errors")

MESSAGE_MAX_LENGTH = 2000


class ErrorRecorder:

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def record(self, method: str, path: str, exc: BaseException, user_agent: Optional[str] = None) -> bool:
        entry = ErrorLogEntry(
            method=method,
            path=path[:500],
            user_agent=user_agent[:500] if user_agent else None,
            error_type=type(exc).__name__,
            error_message=(str(exc) or type(exc).__name__)[:MESSAGE_MAX_LENGTH],
            stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
        try:
            async with self.session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception("Could not store error from %s %s", method, path)
            return False
        return True


error_recorder = ErrorRecorder(AsyncSessionLocal)


async def list_errors(db: AsyncSession, error_type: Optional[str] = None, limit: int = 100) -> List[ErrorLogEntry]:
    """Stored errors, most recent first."""
    query = select(ErrorLogEntry).order_by(desc(ErrorLogEntry.created_at), desc(ErrorLogEntry.id))
    if error_type:
        query = query.where(ErrorLogEntry.error_type == error_type)
    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
