from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user, require_role
from clinic_backend.database import get_db
from clinic_backend.models.user import ROLE_ADMIN, ROLE_PATIENT, User
from clinic_backend.schemas import BookingResponse
from clinic_backend.services import booking_engine

router = APIRouter(tags=['bookings'])


class BookSlotRequest(BaseModel):
    slot_id: int = Field(alias='slotId', gt=0)

    class Config:
        populate_by_name = True


@router.post('/book', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book(
    data: BookSlotRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = booking_engine.book_slot(db, data.slot_id, current_user.id)
    return BookingResponse.model_validate(booking)


@router.get('/my-bookings', response_model=list[BookingResponse])
def list_my_bookings(
    current_user: User = Depends(require_role(ROLE_PATIENT)),
    db: Session = Depends(get_db),
):
    bookings = booking_engine.list_user_bookings(db, current_user.id)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get(
    '/all-bookings',
    response_model=list[BookingResponse],
    dependencies=[Depends(require_role(ROLE_ADMIN))],
)
def list_all_bookings(db: Session = Depends(get_db)):
    bookings = booking_engine.list_all_bookings(db)
    return [BookingResponse.model_validate(booking) for booking in bookings]
