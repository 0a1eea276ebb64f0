"""
Concurrency Tests.

Races that the conflict check alone cannot close: two processors
approving overlapping bookings for the same driver, two requesters
reading the same latest booking code, and a driver deactivated while an
approval is in flight.
"""

import asyncio
from datetime import date, time

import pytest
from sqlalchemy import select

from motorpool.app.core.exceptions import ConflictError, SequenceExhausted, ValidationError
from motorpool.app.models.booking import Booking
from motorpool.app.models.driver import Driver
from motorpool.app.models.enums import BookingStatus
from motorpool.app.schemas.booking import BookingCreate
from motorpool.app.services.resources import set_resource_active
import motorpool.app.services.booking_codes as booking_codes_module
import motorpool.app.services.booking_workflow as workflow_module

TRIP_DAY = date(2025, 3, 10)


def trip(depart: time, back: time) -> BookingCreate:
    return BookingCreate(
        departure_date=TRIP_DAY,
        departure_time=depart,
        return_date=TRIP_DAY,
        return_time=back,
        destination="Seremban",
        purpose="Site inspection",
    )


@pytest.mark.asyncio
async def test_simultaneous_approvals_assign_driver_once(
    make_workflow, session_factory, requester, other_requester, admin_user, drivers, vehicles, actor_of, monkeypatch
):
    """
    Both approvals pass their conflict check before either commits.
    Exactly one may win; the other sees the winner as a conflict.
    """
    async with session_factory() as session:
        workflow = make_workflow(session)
        first = await workflow.create(actor_of(requester), trip(time(8, 0), time(12, 0)))
        second = await workflow.create(actor_of(other_requester), trip(time(10, 0), time(14, 0)))
        codes = {first.id: first.booking_code, second.id: second.booking_code}
    
    original_claim = workflow_module.claim_resources
    arrived = []
    both_checked = asyncio.Event()
    first_done = asyncio.Event()
    
    async def gated_claim(db, driver, vehicle):
        arrived.append(db)
        if len(arrived) == 2:
            both_checked.set()
        if len(arrived) <= 2:
            await both_checked.wait()
            if db is not arrived[0]:
                await first_done.wait()
        return await original_claim(db, driver, vehicle)
    
    monkeypatch.setattr(workflow_module, "claim_resources", gated_claim)
    admin = actor_of(admin_user)
    
    async def approve(booking_id):
        async with session_factory() as session:
            try:
                booking = await make_workflow(session).approve(booking_id, admin, drivers[0].id, vehicles[0].id)
                return booking.id
            finally:
                first_done.set()
    
    results = await asyncio.wait_for(
        asyncio.gather(approve(first.id), approve(second.id), return_exceptions=True),
        timeout=10,
    )
    
    winners = [r for r in results if isinstance(r, int)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1 and len(losers) == 1
    assert [c["booking_code"] for c in losers[0].details["conflicts"]] == [codes[winners[0]]]
    
    async with session_factory() as session:
        approved = (await session.execute(
            select(Booking).where(Booking.status == BookingStatus.APPROVED)
        )).scalars().all()
        driver = await session.get(Driver, drivers[0].id)
    
    assert [b.id for b in approved] == winners
    assert driver.assignment_version == 1


@pytest.mark.asyncio
async def test_stale_code_read_retries_with_next_code(
    db_session, make_workflow, requester, actor_of, seed_booking, monkeypatch
):
    """A creation that read an outdated latest code collides once, then takes the next free code."""
    await seed_booking("25001", requester.id, TRIP_DAY, TRIP_DAY)
    
    original_fetch = booking_codes_module.fetch_latest_booking_code
    calls = []
    
    async def stale_once(db, prefix):
        calls.append(prefix)
        if len(calls) == 1:
            return None
        return await original_fetch(db, prefix)
    
    monkeypatch.setattr(booking_codes_module, "fetch_latest_booking_code", stale_once)
    
    booking = await make_workflow(db_session).create(actor_of(requester), trip(time(8, 0), time(12, 0)))
    
    assert booking.booking_code == "25002"
    assert calls == ["25", "25"]


@pytest.mark.asyncio
async def test_persistent_code_collisions_give_up(
    db_session, make_workflow, requester, actor_of, seed_booking, session_factory, monkeypatch
):
    await seed_booking("25001", requester.id, TRIP_DAY, TRIP_DAY)
    
    async def always_stale(db, prefix):
        return None
    
    monkeypatch.setattr(booking_codes_module, "fetch_latest_booking_code", always_stale)
    
    with pytest.raises(ConflictError) as exc_info:
        await make_workflow(db_session).create(actor_of(requester), trip(time(8, 0), time(12, 0)))
    
    assert "booking code" in exc_info.value.message
    async with session_factory() as session:
        codes = (await session.execute(select(Booking.booking_code))).scalars().all()
    assert codes == ["25001"]


@pytest.mark.asyncio
async def test_sequence_exhausted_for_year(db_session, make_workflow, requester, actor_of, seed_booking):
    await seed_booking("25999", requester.id, TRIP_DAY, TRIP_DAY)
    
    with pytest.raises(SequenceExhausted) as exc_info:
        await make_workflow(db_session).create(actor_of(requester), trip(time(8, 0), time(12, 0)))
    
    assert exc_info.value.details == {"year_prefix": "25"}


@pytest.mark.asyncio
async def test_previous_year_codes_do_not_continue(db_session, make_workflow, requester, actor_of, seed_booking):
    await seed_booking("24999", requester.id, TRIP_DAY, TRIP_DAY)
    
    booking = await make_workflow(db_session).create(actor_of(requester), trip(time(8, 0), time(12, 0)))
    
    assert booking.booking_code == "25001"


@pytest.mark.asyncio
async def test_deactivation_during_approval_is_not_overridden(
    make_workflow, session_factory, requester, admin_user, drivers, vehicles, actor_of, monkeypatch
):
    """The driver is deactivated after the approval read it but before the claim."""
    async with session_factory() as session:
        booking = await make_workflow(session).create(actor_of(requester), trip(time(8, 0), time(12, 0)))
        booking_id = booking.id
    
    original_claim = workflow_module.claim_resources
    calls = []
    
    async def deactivate_first(db, driver, vehicle):
        calls.append(driver.id)
        if len(calls) == 1:
            async with session_factory() as other:
                await set_resource_active(
                    other, Driver, driver.id, False, {"user_id": admin_user.id, "sub": admin_user.username}
                )
        return await original_claim(db, driver, vehicle)
    
    monkeypatch.setattr(workflow_module, "claim_resources", deactivate_first)
    
    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await make_workflow(session).approve(booking_id, actor_of(admin_user), drivers[0].id, vehicles[0].id)
    
    assert "inactive" in exc_info.value.message.lower()
    assert calls == [drivers[0].id]
    async with session_factory() as session:
        stored = await session.get(Booking, booking_id)
        driver = await session.get(Driver, drivers[0].id)
    
    assert stored.status == BookingStatus.PENDING
    assert stored.driver_id is None
    assert driver.is_active is False
    assert driver.assignment_version == 1
