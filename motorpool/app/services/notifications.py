"""
Booking notification dispatch.

A Notifier strategy delivers notices about booking transitions to the
applicant. The strategy is chosen once from settings when the process
starts (build_notifier) and handed to a NotificationDispatcher, which:

- runs strictly after the transition has committed,
- swallows every notifier failure (a False return counts as one),
- logs the failure and parks the notice in notification_dead_letters
  on its own session, so the transition is never affected.

Dead letters can be re-sent from the admin ops endpoints.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.config import Settings, settings as app_settings
from motorpool.app.core.exceptions import NotificationError
from motorpool.app.core.reliability import CircuitBreaker
from motorpool.app.db.session import AsyncSessionLocal
from motorpool.app.db.types import utcnow
from motorpool.app.models.dlq import NotificationDeadLetter, DLQStatus
from motorpool.app.models.notification import Notification, NotificationType

logger = logging.getLogger("motorpool.notifications")

EVENT_CREATED = "created"
EVENT_APPROVED = "approved"
EVENT_REJECTED = "rejected"
EVENT_MODIFIED = "modified"


@dataclass
class BookingNotice:
    """Flat data bag handed to notifiers. Instants are ISO-8601 strings."""
    event: str
    booking_id: int
    booking_code: str
    requester_id: int
    applicant_name: str
    applicant_unit: str
    applicant_email: Optional[str]
    departure_at: str
    return_at: str
    destination: str
    purpose: str
    status: str
    passenger_name: Optional[str] = None
    passenger_count: int = 1
    notes: Optional[str] = None
    driver: Optional[str] = None
    vehicle: Optional[str] = None
    driver_must_wait: Optional[bool] = None
    rejection_reason: Optional[str] = None
    processed_by: Optional[str] = None

    @classmethod
    def from_booking(
        cls,
        event: str,
        booking,
        driver=None,
        vehicle=None,
        processed_by: Optional[str] = None,
    ) -> "BookingNotice":
        return cls(
            event=event,
            booking_id=booking.id,
            booking_code=booking.booking_code,
            requester_id=booking.requester_id,
            applicant_name=booking.applicant_name,
            applicant_unit=booking.applicant_unit,
            applicant_email=booking.applicant_email,
            departure_at=booking.departure_at.isoformat(),
            return_at=booking.return_at.isoformat(),
            destination=booking.destination,
            purpose=booking.purpose,
            status=booking.status.value,
            passenger_name=booking.passenger_name,
            passenger_count=booking.passenger_count,
            notes=booking.notes,
            driver=driver.display_name if driver is not None else None,
            vehicle=vehicle.display_name if vehicle is not None else None,
            driver_must_wait=booking.driver_must_wait,
            rejection_reason=booking.rejection_reason,
            processed_by=processed_by,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "BookingNotice":
        return cls(**payload)

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


SUBJECTS = {
    EVENT_CREATED: "Vehicle booking received - {code}",
    EVENT_APPROVED: "Vehicle booking approved - {code}",
    EVENT_REJECTED: "Vehicle booking not approved - {code}",
    EVENT_MODIFIED: "Vehicle booking updated - {code}",
}


def render_subject(notice: BookingNotice) -> str:
    return SUBJECTS[notice.event].format(code=notice.booking_code)


def render_message(notice: BookingNotice) -> str:
    lines = [
        f"Booking {notice.booking_code} for {notice.applicant_name} ({notice.applicant_unit})",
        f"Destination: {notice.destination}",
        f"Departure: {notice.departure_at}",
        f"Return: {notice.return_at}",
        f"Status: {notice.status}",
    ]
    if notice.driver:
        lines.append(f"Driver: {notice.driver}")
    if notice.vehicle:
        lines.append(f"Vehicle: {notice.vehicle}")
    if notice.driver_must_wait is not None:
        lines.append("Driver waits at destination: " + ("yes" if notice.driver_must_wait else "no"))
    if notice.rejection_reason:
        lines.append(f"Reason: {notice.rejection_reason}")
    if notice.processed_by:
        lines.append(f"Processed by: {notice.processed_by}")
    return "\n".join(lines)


class Notifier(ABC):
    """
    Notification strategy.
    
    Each method returns True when the notice was delivered. Raising is
    allowed; the dispatcher treats it the same as returning False.
    """

    @abstractmethod
    async def notify_created(self, notice: BookingNotice) -> bool:
        ...

    @abstractmethod
    async def notify_approved(self, notice: BookingNotice) -> bool:
        ...

    @abstractmethod
    async def notify_rejected(self, notice: BookingNotice) -> bool:
        ...

    @abstractmethod
    async def notify_modified(self, notice: BookingNotice) -> bool:
        ...

    async def send(self, notice: BookingNotice) -> bool:
        handlers = {
            EVENT_CREATED: self.notify_created,
            EVENT_APPROVED: self.notify_approved,
            EVENT_REJECTED: self.notify_rejected,
            EVENT_MODIFIED: self.notify_modified,
        }
        return await handlers[notice.event](notice)


class _SingleChannelNotifier(Notifier):
    """Routes every event through one deliver() call."""

    async def notify_created(self, notice: BookingNotice) -> bool:
        return await self.deliver(notice)

    async def notify_approved(self, notice: BookingNotice) -> bool:
        return await self.deliver(notice)

    async def notify_rejected(self, notice: BookingNotice) -> bool:
        return await self.deliver(notice)

    async def notify_modified(self, notice: BookingNotice) -> bool:
        return await self.deliver(notice)

    @abstractmethod
    async def deliver(self, notice: BookingNotice) -> bool:
        ...


class LogNotifier(_SingleChannelNotifier):
    """Writes notices to the log. Default for development."""

    async def deliver(self, notice: BookingNotice) -> bool:
        logger.info(
            "Notice %s for booking %s to %s",
            notice.event, notice.booking_code, notice.applicant_email or notice.applicant_name,
        )
        return True


class InAppNotifier(_SingleChannelNotifier):
    """Stores notices as in-app Notification rows for the requester."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def deliver(self, notice: BookingNotice) -> bool:
        notification_type = {
            EVENT_APPROVED: NotificationType.SUCCESS,
            EVENT_REJECTED: NotificationType.WARNING,
        }.get(notice.event, NotificationType.BOOKING_UPDATE)
        
        async with self.session_factory() as session:
            session.add(Notification(
                user_id=notice.requester_id,
                type=notification_type,
                title=render_subject(notice),
                message=render_message(notice),
                metadata_payload={"booking_id": notice.booking_id, "event": notice.event},
            ))
            await session.commit()
        return True


class SendGridNotifier(_SingleChannelNotifier):
    """E-mails the applicant through the SendGrid v3 mail API."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        mail_from: str,
        timeout: float = 10.0,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.mail_from = mail_from
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker("sendgrid", failure_threshold=5, reset_timeout=60)
        self.transport = transport

    def build_payload(self, notice: BookingNotice) -> Dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": notice.applicant_email}]}],
            "from": {"email": self.mail_from},
            "subject": render_subject(notice),
            "content": [{"type": "text/plain", "value": render_message(notice)}],
        }

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            return response

    async def deliver(self, notice: BookingNotice) -> bool:
        if not notice.applicant_email:
            logger.info("Booking %s has no applicant e-mail, skipping %s notice", notice.booking_code, notice.event)
            return True
        await self.breaker.call(self._post, self.build_payload(notice))
        return True


def build_notifier(settings: Settings, session_factory: Optional[Callable[[], AsyncSession]] = None) -> Notifier:
    """
    Select the notification strategy from settings.
    
    Called once at startup; the result is passed by reference into the
    dispatcher and never re-resolved.
    """
    provider = settings.notification_provider.lower()
    
    if provider == "sendgrid":
        if not settings.sendgrid_api_key:
            raise ValueError("notification_provider=sendgrid requires SENDGRID_API_KEY")
        return SendGridNotifier(
            api_key=settings.sendgrid_api_key,
            api_url=settings.sendgrid_api_url,
            mail_from=settings.mail_from,
            timeout=settings.notification_timeout_seconds,
        )
    if provider == "in_app":
        if session_factory is None:
            raise ValueError("notification_provider=in_app requires a session factory")
        return InAppNotifier(session_factory)
    if provider == "log":
        return LogNotifier()
    
    raise ValueError(f"Unknown notification provider: {settings.notification_provider}")


class NotificationDispatcher:
    """Best-effort delivery of booking notices with dead-letter capture."""

    def __init__(self, notifier: Notifier, session_factory: Callable[[], AsyncSession]):
        self.notifier = notifier
        self.session_factory = session_factory

    async def _attempt(self, notice: BookingNotice) -> None:
        """Raises NotificationError unless the notifier delivered."""
        try:
            delivered = await self.notifier.send(notice)
        except Exception as exc:
            raise NotificationError(notice.event, f"{type(exc).__name__}: {exc}") from exc
        if not delivered:
            raise NotificationError(notice.event, "notifier reported failure")

    async def dispatch(self, notice: BookingNotice) -> bool:
        """
        Deliver a notice. Never raises.
        
        Returns:
            True if delivered, False if it was dead-lettered
        """
        try:
            await self._attempt(notice)
        except NotificationError as exc:
            logger.warning(
                "Notification %s for booking %s failed: %s",
                notice.event, notice.booking_code, exc.message,
                exc_info=exc.__cause__,
            )
            await self._dead_letter(notice, exc.message)
            return False
        return True

    async def _dead_letter(self, notice: BookingNotice, error_message: str) -> None:
        try:
            async with self.session_factory() as session:
                session.add(NotificationDeadLetter(
                    event=notice.event,
                    booking_code=notice.booking_code,
                    error_message=error_message,
                    payload=notice.to_payload(),
                ))
                await session.commit()
        except Exception:
            logger.exception("Could not record dead letter for booking %s", notice.booking_code)

    async def retry(self, db: AsyncSession, dead_letter: NotificationDeadLetter) -> bool:
        """
        Re-send a dead-lettered notice and record the outcome on the row.
        
        Commits `db`. Returns True if the notice was delivered this time.
        """
        notice = BookingNotice.from_payload(dead_letter.payload)
        dead_letter.status = DLQStatus.RETRYING
        dead_letter.retry_count += 1
        dead_letter.last_retry_at = utcnow()
        
        try:
            await self._attempt(notice)
        except NotificationError as exc:
            logger.warning("Retry of dead letter %s failed: %s", dead_letter.id, exc.message)
            dead_letter.status = DLQStatus.FAILED
            dead_letter.error_message = exc.message
            delivered = False
        else:
            dead_letter.status = DLQStatus.DELIVERED
            delivered = True
        
        await db.commit()
        await db.refresh(dead_letter)
        return delivered


_dispatcher: Optional[NotificationDispatcher] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """
    FastAPI dependency returning the process-wide dispatcher.
    
    Built on first use from settings and reused afterwards.
    """
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(build_notifier(app_settings, AsyncSessionLocal), AsyncSessionLocal)
    return _dispatcher
