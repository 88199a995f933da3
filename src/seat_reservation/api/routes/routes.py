import logging
import os

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from seat_reservation.api.schemas.schemas import (
    BookingResponse,
    BookingViewResponse,
    ConfirmRequest,
    ErrorDetail,
    EventSummaryResponse,
    ReservationRequest,
    ReservationResponse,
    ShowSeatResponse,
)
from seat_reservation.application.reservation_manager import ReservationManager
from seat_reservation.application.views import BookingView
from seat_reservation.domain.exceptions import ErrorKind
from seat_reservation.domain.results import Result


router = APIRouter()
logger = logging.getLogger(__name__)

USER_ID_MAX_LENGTH = 64

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.SEAT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.SEAT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_REQUEST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_manager(request: Request) -> ReservationManager:
    return request.app.state.reservation_manager


def current_user_id(
    x_user_id: str | None = Header(default=None, max_length=USER_ID_MAX_LENGTH),
) -> str:
    # Identity is established upstream; the engine trusts this header.
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user identity supplied",
        )
    return x_user_id


def require_admin(user_id: str = Depends(current_user_id)) -> str:
    admins = {
        admin.strip()
        for admin in os.getenv("ADMIN_USER_IDS", "").split(",")
        if admin.strip()
    }
    if user_id not in admins:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user_id


def _unwrap(result: Result):
    if result.ok:
        return result.value

    error = result.error
    raise HTTPException(
        status_code=_STATUS_BY_KIND[error.kind],
        detail=ErrorDetail(
            kind=error.kind.value,
            message=error.message,
            details=error.details,
        ).model_dump(),
    )


def _booking_view_response(view: BookingView) -> BookingViewResponse:
    return BookingViewResponse(
        booking_id=view.booking_id,
        user_id=view.user_id,
        event=EventSummaryResponse(
            id=view.event.id,
            title=view.event.title,
            starts_at=view.event.starts_at,
        ),
        seats=view.seats,
        status=view.status.value,
        amount=view.amount,
        created_at=view.created_at,
    )


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post(
    "/bookings",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    request: ReservationRequest,
    user_id: str = Depends(current_user_id),
    manager: ReservationManager = Depends(get_manager),
):
    receipt = _unwrap(
        manager.create_reservation(
            event_id=request.event_id,
            seat_ids=request.seat_ids,
            user_id=user_id,
        )
    )
    return ReservationResponse(
        booking_id=receipt.booking_id,
        total_amount=receipt.total_amount,
        status=receipt.status.value,
        expires_at=receipt.expires_at,
    )


@router.post("/bookings/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: int,
    request: ConfirmRequest | None = None,
    user_id: str = Depends(current_user_id),
    manager: ReservationManager = Depends(get_manager),
):
    payment_method = request.payment_method if request else None
    summary = _unwrap(
        manager.confirm_reservation(
            booking_id=booking_id,
            user_id=user_id,
            payment_method=payment_method,
        )
    )
    return BookingResponse(
        booking_id=summary.booking_id,
        status=summary.status.value,
        message="Payment successful and booking confirmed",
    )


@router.put("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    user_id: str = Depends(current_user_id),
    manager: ReservationManager = Depends(get_manager),
):
    summary = _unwrap(manager.cancel_reservation(booking_id=booking_id, user_id=user_id))
    return BookingResponse(
        booking_id=summary.booking_id,
        status=summary.status.value,
        message="Booking cancelled successfully",
    )


@router.get("/bookings", response_model=list[BookingViewResponse])
def all_bookings(
    _admin: str = Depends(require_admin),
    manager: ReservationManager = Depends(get_manager),
):
    views = _unwrap(manager.list_bookings())
    return [_booking_view_response(view) for view in views]


@router.get("/bookings/my-bookings", response_model=list[BookingViewResponse])
def my_bookings(
    user_id: str = Depends(current_user_id),
    manager: ReservationManager = Depends(get_manager),
):
    views = _unwrap(manager.list_user_bookings(user_id))
    return [_booking_view_response(view) for view in views]


@router.get("/bookings/{booking_id}", response_model=BookingViewResponse)
def get_booking(
    booking_id: int,
    user_id: str = Depends(current_user_id),
    manager: ReservationManager = Depends(get_manager),
):
    view = _unwrap(manager.get_booking(booking_id, user_id=user_id))
    return _booking_view_response(view)


@router.get("/events/{event_id}/seats", response_model=list[ShowSeatResponse])
def event_seats(
    event_id: int,
    manager: ReservationManager = Depends(get_manager),
):
    seats = _unwrap(manager.list_event_seats(event_id))
    return [
        ShowSeatResponse(
            show_seat_id=seat.show_seat_id,
            label=seat.label,
            category=seat.category,
            price=seat.price,
            status=seat.status.value,
        )
        for seat in seats
    ]
