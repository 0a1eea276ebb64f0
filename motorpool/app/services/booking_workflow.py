"""
Reservation state machine.

    pending  --approve-->  approved  --cancel-->  cancelled
    pending  --reject--->  rejected
    pending  --cancel--->  cancelled
    approved / rejected  --modify (SUPERADMIN)-->  pending / approved / rejected

Every transition writes the booking change and its audit entry in one
commit; any failure rolls the session back before the exception leaves
this module. Notification and statistics-cache invalidation run only
after the commit and cannot fail the transition.

Approve and modify re-validate their resource claim at write time (see
services.resource_claims) and retry from a fresh read when a concurrent
approval won the race.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.config import Settings, settings
from motorpool.app.core.exceptions import AuthorizationError, ConflictError, ValidationError
from motorpool.app.db.types import utcnow
from motorpool.app.domain.booking.overlap import ConflictCandidate, conflict_summary
from motorpool.app.domain.booking.trip_interval import trip_interval
from motorpool.app.domain.calendar.working_days import to_civil_date
from motorpool.app.models.booking import Booking
from motorpool.app.models.driver import Driver
from motorpool.app.models.enums import BookingAuditAction, BookingStatus, UserRole, PROCESSOR_ROLES
from motorpool.app.models.user import User
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.schemas.booking import BookingCreate
from motorpool.app.services.booking_audit import booking_snapshot, record_transition
from motorpool.app.services.booking_codes import allocate_booking_code, is_booking_code_collision
from motorpool.app.services.booking_queries import get_booking
from motorpool.app.services.conflicts import find_conflicts
from motorpool.app.services.notifications import (
    BookingNotice, NotificationDispatcher,
    EVENT_APPROVED, EVENT_CREATED, EVENT_MODIFIED, EVENT_REJECTED,
)
from motorpool.app.services.resource_claims import StaleAssignmentError, claim_resources
from motorpool.app.services.resources import get_resource
from motorpool.app.services.statistics import StatsCache

logger = logging.getLogger("motorpool.bookings")

MODIFY_SOURCE_STATUSES = {BookingStatus.APPROVED, BookingStatus.REJECTED}
MODIFY_TARGET_STATUSES = {BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.REJECTED}
CANCELLABLE_STATUSES = {BookingStatus.PENDING, BookingStatus.APPROVED}


@dataclass(frozen=True)
class Actor:
    """The user performing a transition."""
    user_id: int
    role: UserRole
    display_name: str
    unit: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_current_user(cls, current_user: dict) -> "Actor":
        return cls(
            user_id=current_user["user_id"],
            role=UserRole(current_user["role"]),
            display_name=current_user.get("full_name") or current_user.get("sub") or str(current_user["user_id"]),
            unit=current_user.get("unit"),
            email=current_user.get("email"),
        )

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            user_id=user.id,
            role=user.role,
            display_name=user.display_name,
            unit=user.unit,
            email=user.email,
        )

    @property
    def is_processor(self) -> bool:
        return self.role in PROCESSOR_ROLES


class BookingWorkflow:
    """
    Booking transitions bound to one session.
    
    Args:
        db: Session the transitions run on
        dispatcher: Post-commit notification dispatcher
        clock: Returns the current aware UTC instant
        stats_cache: Invalidated after each transition, if given
        config: Settings (reference timezone, limits, retry bounds)
    """

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utcnow,
        stats_cache: Optional[StatsCache] = None,
        config: Settings = settings,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.clock = clock
        self.stats_cache = stats_cache
        self.config = config
        self.tz = config.reference_tz

    # Create

    async def create(self, actor: Actor, data: BookingCreate) -> Booking:
        """
        Submit a booking in pending status with a freshly allocated code.
        
        Raises:
            ValidationError: departure not in the future, return not after
                departure, notes too long, or no applicant unit
            SequenceExhausted: the year's booking codes are used up
        """
        now = self.clock()
        departure_at, return_at = trip_interval(
            data.departure_date, data.departure_time, data.return_date, data.return_time, self.tz
        )
        self._validate_trip(departure_at, return_at, data.notes, now)
        
        applicant_unit = data.applicant_unit or actor.unit
        if not applicant_unit:
            raise ValidationError("Applicant unit is required", details={"field": "applicant_unit"})
        
        year = to_civil_date(now, self.tz).year
        max_attempts = self.config.booking_code_max_attempts
        
        try:
            for attempt in range(1, max_attempts + 1):
                code = await allocate_booking_code(self.db, year)
                booking = Booking(
                    booking_code=code,
                    requester_id=actor.user_id,
                    applicant_name=data.applicant_name or actor.display_name,
                    applicant_email=data.applicant_email or actor.email,
                    applicant_unit=applicant_unit,
                    departure_date=data.departure_date,
                    departure_time=data.departure_time,
                    return_date=data.return_date,
                    return_time=data.return_time,
                    departure_at=departure_at,
                    return_at=return_at,
                    destination=data.destination,
                    purpose=data.purpose,
                    notes=data.notes,
                    passenger_name=data.passenger_name,
                    passenger_count=data.passenger_count,
                    status=BookingStatus.PENDING,
                    submitted_at=now,
                )
                self.db.add(booking)
                try:
                    await self.db.flush()
                except IntegrityError as exc:
                    await self.db.rollback()
                    if not is_booking_code_collision(exc):
                        raise
                    logger.warning(
                        "Booking code %s already taken, retrying (attempt %d/%d)", code, attempt, max_attempts
                    )
                    continue
                
                await record_transition(self.db, booking, actor.user_id, BookingAuditAction.CREATED, None, now)
                await self.db.commit()
                break
            else:
                raise ConflictError([], message="Could not allocate a booking code, please retry")
        except Exception:
            await self.db.rollback()
            raise
        
        await self.db.refresh(booking)
        logger.info("Booking %s created by user %s", booking.booking_code, actor.user_id)
        await self._after_commit(BookingNotice.from_booking(EVENT_CREATED, booking))
        return booking

    def _validate_trip(self, departure_at: datetime, return_at: datetime, notes: Optional[str], now: datetime):
        if return_at <= departure_at:
            raise ValidationError(
                "Return must be after departure",
                details={"departure_at": departure_at.isoformat(), "return_at": return_at.isoformat()},
            )
        if departure_at <= now:
            raise ValidationError(
                "Departure must be in the future",
                details={"departure_at": departure_at.isoformat()},
            )
        if notes and len(notes) > self.config.notes_max_length:
            raise ValidationError(
                f"Notes must be at most {self.config.notes_max_length} characters",
                details={"field": "notes", "max_length": self.config.notes_max_length},
            )

    # Approve / reject

    async def approve(
        self,
        booking_id: int,
        actor: Actor,
        driver_id: Optional[int],
        vehicle_id: Optional[int],
        driver_must_wait: Optional[bool] = None,
        admin_notes: Optional[str] = None,
    ) -> Booking:
        """
        Approve a pending booking and assign a driver and a vehicle.
        
        Raises:
            AuthorizationError: actor is not ADMIN / SUPERADMIN
            NotFoundError: booking, driver or vehicle does not exist
            ValidationError: booking not pending, resource missing or inactive
            ConflictError: an approved booking overlaps on the driver or vehicle
        """
        if not actor.is_processor:
            raise AuthorizationError("Only administrators can approve bookings")
        
        async def apply() -> Tuple[Booking, Driver, Vehicle]:
            booking = await get_booking(self.db, booking_id)
            self._require_status(booking, {BookingStatus.PENDING}, "approved")
            driver, vehicle = await self._load_assignable(driver_id, vehicle_id)
            old_values = booking_snapshot(booking)
            
            await self._ensure_no_conflicts(booking, driver, vehicle)
            await claim_resources(self.db, driver, vehicle)
            
            now = self.clock()
            booking.status = BookingStatus.APPROVED
            booking.driver_id = driver.id
            booking.vehicle_id = vehicle.id
            booking.driver_must_wait = driver_must_wait
            booking.admin_notes = admin_notes
            booking.processed_at = now
            booking.processed_by_id = actor.user_id
            
            await record_transition(self.db, booking, actor.user_id, BookingAuditAction.APPROVED, old_values, now)
            await self.db.commit()
            return booking, driver, vehicle
        
        booking, driver, vehicle = await self._run_assignment(apply, booking_id)
        await self.db.refresh(booking)
        logger.info(
            "Booking %s approved by user %s (driver=%s, vehicle=%s)",
            booking.booking_code, actor.user_id, driver.id, vehicle.id,
        )
        await self._after_commit(
            BookingNotice.from_booking(EVENT_APPROVED, booking, driver, vehicle, actor.display_name)
        )
        return booking

    async def reject(self, booking_id: int, actor: Actor, reason: str) -> Booking:
        """
        Reject a pending booking.
        
        Raises:
            AuthorizationError: actor is not ADMIN / SUPERADMIN
            ValidationError: empty reason or booking not pending
        """
        if not actor.is_processor:
            raise AuthorizationError("Only administrators can reject bookings")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required", details={"field": "reason"})
        
        try:
            booking = await get_booking(self.db, booking_id)
            self._require_status(booking, {BookingStatus.PENDING}, "rejected")
            old_values = booking_snapshot(booking)
            
            now = self.clock()
            booking.status = BookingStatus.REJECTED
            booking.rejection_reason = reason
            booking.processed_at = now
            booking.processed_by_id = actor.user_id
            
            await record_transition(self.db, booking, actor.user_id, BookingAuditAction.REJECTED, old_values, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        
        await self.db.refresh(booking)
        logger.info("Booking %s rejected by user %s", booking.booking_code, actor.user_id)
        await self._after_commit(
            BookingNotice.from_booking(EVENT_REJECTED, booking, processed_by=actor.display_name)
        )
        return booking

    # Modify (privileged re-open)

    async def modify(
        self,
        booking_id: int,
        actor: Actor,
        status: BookingStatus,
        driver_id: Optional[int] = None,
        vehicle_id: Optional[int] = None,
        driver_must_wait: Optional[bool] = None,
        rejection_reason: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Booking:
        """
        Overwrite status and assignment of an already processed booking.
        
        An approved target needs a driver and a vehicle and passes the same
        conflict check as approve. Any other target clears the assignment.
        
        Raises:
            AuthorizationError: actor is not SUPERADMIN
            ValidationError: booking not approved / rejected, target status
                not allowed, resource missing or inactive
            NotFoundError: booking, driver or vehicle does not exist
            ConflictError: the new assignment overlaps an approved booking
        """
        if actor.role != UserRole.SUPERADMIN:
            raise AuthorizationError("Only super administrators can modify processed bookings")
        if status not in MODIFY_TARGET_STATUSES:
            raise ValidationError(
                f"Cannot modify a booking to status {status.value}",
                details={"allowed": sorted(s.value for s in MODIFY_TARGET_STATUSES)},
            )
        
        async def apply() -> Tuple[Booking, Optional[Driver], Optional[Vehicle]]:
            booking = await get_booking(self.db, booking_id)
            if booking.status not in MODIFY_SOURCE_STATUSES:
                raise ValidationError(
                    f"Only processed bookings can be modified; booking {booking.booking_code} is {booking.status.value}",
                    details={"status": booking.status.value},
                )
            old_values = booking_snapshot(booking)
            
            driver = vehicle = None
            if status == BookingStatus.APPROVED:
                driver, vehicle = await self._load_assignable(driver_id, vehicle_id)
                await self._ensure_no_conflicts(booking, driver, vehicle)
                await claim_resources(self.db, driver, vehicle)
            
            now = self.clock()
            booking.status = status
            booking.driver_id = driver.id if driver else None
            booking.vehicle_id = vehicle.id if vehicle else None
            booking.driver_must_wait = driver_must_wait if driver else None
            booking.rejection_reason = rejection_reason if status == BookingStatus.REJECTED else None
            if admin_notes is not None:
                booking.admin_notes = admin_notes
            booking.modified_at = now
            
            await record_transition(self.db, booking, actor.user_id, BookingAuditAction.MODIFIED, old_values, now)
            await self.db.commit()
            return booking, driver, vehicle
        
        booking, driver, vehicle = await self._run_assignment(apply, booking_id)
        await self.db.refresh(booking)
        logger.info(
            "Booking %s modified by user %s to %s", booking.booking_code, actor.user_id, booking.status.value
        )
        await self._after_commit(
            BookingNotice.from_booking(EVENT_MODIFIED, booking, driver, vehicle, actor.display_name)
        )
        return booking

    # Cancel

    async def cancel(self, booking_id: int, actor: Actor) -> Booking:
        """
        Withdraw a pending or approved booking before departure.
        
        Raises:
            AuthorizationError: actor is not the requester
            ValidationError: wrong status or departure already passed
        """
        try:
            booking = await get_booking(self.db, booking_id)
            if booking.requester_id != actor.user_id:
                raise AuthorizationError("Only the requester can cancel a booking")
            if booking.status not in CANCELLABLE_STATUSES:
                raise ValidationError(
                    f"Booking {booking.booking_code} is {booking.status.value} and cannot be cancelled",
                    details={"status": booking.status.value},
                )
            now = self.clock()
            if booking.departure_at <= now:
                raise ValidationError(
                    "Bookings can only be cancelled before departure",
                    details={"departure_at": booking.departure_at.isoformat()},
                )
            old_values = booking_snapshot(booking)
            
            booking.status = BookingStatus.CANCELLED
            booking.driver_id = None
            booking.vehicle_id = None
            booking.driver_must_wait = None
            booking.processed_at = now
            booking.processed_by_id = actor.user_id
            
            await record_transition(self.db, booking, actor.user_id, BookingAuditAction.CANCELLED, old_values, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        
        await self.db.refresh(booking)
        logger.info("Booking %s cancelled by user %s", booking.booking_code, actor.user_id)
        await self._after_commit(None)
        return booking

    # Conflict check

    async def check_conflicts(
        self,
        candidate: ConflictCandidate,
        exclude_booking_id: Optional[int] = None,
    ) -> List[dict]:
        """Summaries of every approved booking the candidate would collide with."""
        if candidate.end <= candidate.start:
            raise ValidationError(
                "Return must be after departure",
                details={"departure_at": candidate.start.isoformat(), "return_at": candidate.end.isoformat()},
            )
        conflicts = await find_conflicts(self.db, candidate, exclude_booking_id)
        return [conflict_summary(candidate, booking) for booking in conflicts]

    # Helpers

    def _require_status(self, booking: Booking, allowed: set, target: str):
        if booking.status not in allowed:
            raise ValidationError(
                f"Booking {booking.booking_code} is {booking.status.value} and cannot be {target}",
                details={"status": booking.status.value},
            )

    async def _load_assignable(
        self, driver_id: Optional[int], vehicle_id: Optional[int]
    ) -> Tuple[Driver, Vehicle]:
        if driver_id is None or vehicle_id is None:
            raise ValidationError(
                "Approval requires both a driver and a vehicle",
                details={"driver_id": driver_id, "vehicle_id": vehicle_id},
            )
        driver = await get_resource(self.db, Driver, driver_id)
        vehicle = await get_resource(self.db, Vehicle, vehicle_id)
        for resource in (driver, vehicle):
            if not resource.is_active:
                raise ValidationError(
                    f"{type(resource).__name__} {resource.display_name} is inactive",
                    details={"resource": type(resource).__name__, "id": resource.id},
                )
        return driver, vehicle

    async def _ensure_no_conflicts(self, booking: Booking, driver: Driver, vehicle: Vehicle):
        candidate = ConflictCandidate(
            start=booking.departure_at,
            end=booking.return_at,
            driver_id=driver.id,
            vehicle_id=vehicle.id,
        )
        conflicts = await find_conflicts(self.db, candidate, exclude_booking_id=booking.id)
        if not conflicts:
            return
        
        summaries = [conflict_summary(candidate, conflict) for conflict in conflicts]
        # Detach so the rows stay readable after the rollback
        for conflict in conflicts:
            self.db.expunge(conflict)
        logger.info(
            "Booking %s refused: conflicts with %s",
            booking.booking_code, ", ".join(s["booking_code"] for s in summaries),
        )
        raise ConflictError(conflicts, summaries)

    async def _run_assignment(self, apply: Callable[[], Awaitable[tuple]], booking_id: int) -> tuple:
        max_attempts = self.config.assignment_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                return await apply()
            except StaleAssignmentError as exc:
                await self.db.rollback()
                logger.warning(
                    "Concurrent assignment of %s %s while processing booking %s (attempt %d/%d)",
                    exc.resource, exc.resource_id, booking_id, attempt, max_attempts,
                )
            except Exception:
                await self.db.rollback()
                raise
        raise ConflictError([], message="Resource assignment is contended, please retry")

    async def _after_commit(self, notice: Optional[BookingNotice]):
        if notice is not None:
            await self.dispatcher.dispatch(notice)
        if self.stats_cache is not None:
            await self.stats_cache.invalidate()
