from datetime import datetime

from pydantic import BaseModel, Field


class ReservationRequest(BaseModel):
    event_id: int
    seat_ids: list[int] = Field(min_length=1)


class ReservationResponse(BaseModel):
    booking_id: int
    total_amount: int
    status: str
    expires_at: datetime


class ConfirmRequest(BaseModel):
    payment_method: str | None = Field(default=None, max_length=32)


class BookingResponse(BaseModel):
    booking_id: int
    status: str
    message: str


class EventSummaryResponse(BaseModel):
    id: int
    title: str
    starts_at: datetime


class BookingViewResponse(BaseModel):
    booking_id: int
    user_id: str
    event: EventSummaryResponse
    seats: list[str]
    status: str
    amount: int
    created_at: datetime


class ShowSeatResponse(BaseModel):
    show_seat_id: int
    label: str
    category: str
    price: int
    status: str


class ErrorDetail(BaseModel):
    kind: str
    message: str
    details: dict = Field(default_factory=dict)
