from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_backend.database import get_db
from clinic_backend.errors import ValidationFailedError
from clinic_backend.models.slot import Slot
from clinic_backend.schemas import SlotBookingResponse, SlotResponse
from clinic_backend.services import slot_store

router = APIRouter(tags=['slots'])


def parse_range_bound(value: str | None, field: str, end_of_day: bool = False) -> datetime | None:
    """Parse an ISO date or datetime query value into a naive local datetime.

    A bare date means midnight, or the last instant of that day when
    ``end_of_day`` is set, so ``to=2026-01-09`` still includes that Friday.
    """
    if value is None or not value.strip():
        return None

    raw = value.strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            return datetime.combine(day, time.max if end_of_day else time.min)
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError as exc:
        raise ValidationFailedError(f'"{field}" must be an ISO date or datetime.') from exc

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def to_slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        start_at=slot.start_at,
        end_at=slot.end_at,
        is_booked=slot.is_booked,
        booking=SlotBookingResponse.model_validate(slot.booking) if slot.booking else None,
    )


@router.get('/slots', response_model=list[SlotResponse])
def list_slots(
    from_: str | None = Query(default=None, alias='from'),
    to: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    start = parse_range_bound(from_, 'from')
    end = parse_range_bound(to, 'to', end_of_day=True)

    slots = slot_store.list_slots(db, start, end)
    return [to_slot_response(slot) for slot in slots]
