import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from clinic_backend.errors import ValidationFailedError
from clinic_backend.models.booking import Booking
from clinic_backend.models.slot import Slot
from clinic_backend.services.slot_generator import SLOT_WINDOW_DAYS, generate_slots

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {
    'sqlite': sqlite.insert,
    'postgresql': postgresql.insert,
}


def ensure_slots(db: Session, now: datetime | None = None) -> int:
    """Insert the generated grid, skipping windows that already exist.

    Safe to call concurrently: the ``(start_at, end_at)`` unique constraint
    turns a duplicate window into a no-op instead of a second row.
    """
    windows = generate_slots(now)
    if not windows:
        return 0

    rows = [{'start_at': window.start_at, 'end_at': window.end_at} for window in windows]
    dialect_insert = _CONFLICT_INSERTS.get(db.get_bind().dialect.name)

    try:
        if dialect_insert is not None:
            statement = dialect_insert(Slot).values(rows).on_conflict_do_nothing(
                index_elements=['start_at', 'end_at'],
            )
            created = db.execute(statement).rowcount
        else:
            created = 0
            for row in rows:
                exists = db.execute(
                    select(Slot.id).where(Slot.start_at == row['start_at'], Slot.end_at == row['end_at'])
                ).first()
                if exists is None:
                    db.add(Slot(**row))
                    created += 1
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info('Generated %s new slots (%s candidate windows)', created, len(windows))
    return created


def resolve_range(
    start: datetime | None,
    end: datetime | None,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    now = now or datetime.now()
    range_start = start or now
    range_end = end or now + timedelta(days=SLOT_WINDOW_DAYS)
    if start is not None and end is not None and range_start > range_end:
        raise ValidationFailedError('"from" must not be after "to".')
    return range_start, range_end


def query_slots(db: Session, range_start: datetime, range_end: datetime) -> list[Slot]:
    statement = (
        select(Slot)
        .options(joinedload(Slot.booking).joinedload(Booking.user))
        .where(Slot.start_at >= range_start, Slot.start_at <= range_end)
        .order_by(Slot.start_at.asc())
    )
    return list(db.execute(statement).unique().scalars().all())


def list_slots(
    db: Session,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> list[Slot]:
    range_start, range_end = resolve_range(start, end, now)

    slots = query_slots(db, range_start, range_end)
    if slots:
        return slots

    ensure_slots(db, now)
    return query_slots(db, range_start, range_end)
