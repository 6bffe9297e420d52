"""Atomic slot booking and booking listings.

A slot may carry at most one booking. :func:`book_slot` checks that once
before opening a transaction, then re-reads the slot inside the
transaction before inserting. The unique constraint on ``bookings.slot_id``
catches whatever the re-read misses under weaker isolation levels.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from clinic_backend.errors import SlotExpiredError, SlotNotFoundError, SlotTakenError
from clinic_backend.models.booking import Booking
from clinic_backend.models.slot import Slot

logger = logging.getLogger(__name__)

# Slot ids are 32-bit INTEGER columns.
MAX_SLOT_ID = 2**31 - 1


def _slot_with_booking(slot_id: int, lock: bool = False):
    statement = select(Slot).options(joinedload(Slot.booking)).where(Slot.id == slot_id)
    if lock:
        statement = statement.with_for_update(of=Slot)
    return statement


def _lock_for_booking(db: Session) -> None:
    # SQLite has no row locks; take the database write lock before the re-read.
    if db.get_bind().dialect.name == 'sqlite':
        db.connection().exec_driver_sql('BEGIN IMMEDIATE')


def _bookings_query():
    return (
        select(Booking)
        .join(Booking.slot)
        .options(joinedload(Booking.slot), joinedload(Booking.user))
        .order_by(Slot.start_at.asc(), Booking.id.asc())
    )


def get_booking(db: Session, booking_id: int) -> Booking | None:
    statement = _bookings_query().where(Booking.id == booking_id)
    return db.execute(statement).unique().scalars().first()


def book_slot(db: Session, slot_id: int, user_id: int, now: datetime | None = None) -> Booking:
    now = now or datetime.now()

    if not 0 < slot_id <= MAX_SLOT_ID:
        raise SlotNotFoundError()

    slot = db.execute(_slot_with_booking(slot_id)).unique().scalars().first()
    if slot is None:
        raise SlotNotFoundError()
    if slot.start_at <= now:
        raise SlotExpiredError()
    if slot.booking is not None:
        raise SlotTakenError()

    # Close the read so the re-check and insert share one fresh transaction.
    db.rollback()

    try:
        with db.begin():
            _lock_for_booking(db)
            current = db.execute(_slot_with_booking(slot_id, lock=True)).unique().scalars().first()
            if current is None:
                raise SlotNotFoundError()
            if current.booking is not None:
                raise SlotTakenError()

            booking = Booking(slot_id=slot_id, user_id=user_id, created_at=datetime.now())
            db.add(booking)
            db.flush()
            booking_id = booking.id
    except IntegrityError as exc:
        logger.info('Lost booking race for slot %s (user %s)', slot_id, user_id)
        raise SlotTakenError() from exc
    except SlotTakenError:
        logger.info('Slot %s was booked before user %s could claim it', slot_id, user_id)
        raise
    except SQLAlchemyError:
        logger.exception('Booking transaction failed for slot %s', slot_id)
        raise

    logger.info('User %s booked slot %s (booking %s)', user_id, slot_id, booking_id)
    return get_booking(db, booking_id)


def list_user_bookings(db: Session, user_id: int) -> list[Booking]:
    statement = _bookings_query().where(Booking.user_id == user_id)
    return list(db.execute(statement).unique().scalars().all())


def list_all_bookings(db: Session) -> list[Booking]:
    return list(db.execute(_bookings_query()).unique().scalars().all())
