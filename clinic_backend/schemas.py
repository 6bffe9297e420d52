"""Response bodies shared by the API routes. JSON keys are camelCase."""

from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserSummaryResponse(ApiModel):
    id: int
    name: str
    email: str


class UserResponse(UserSummaryResponse):
    role: str


class AuthResponse(ApiModel):
    token: str
    user: UserResponse


class SlotWindowResponse(ApiModel):
    id: int
    start_at: datetime
    end_at: datetime


class BookingResponse(ApiModel):
    id: int
    slot_id: int
    user_id: int
    slot: SlotWindowResponse
    user: UserSummaryResponse
    created_at: datetime


class SlotBookingResponse(ApiModel):
    id: int
    user_id: int
    user: UserSummaryResponse


class SlotResponse(ApiModel):
    id: int
    start_at: datetime
    end_at: datetime
    is_booked: bool
    booking: SlotBookingResponse | None = None
