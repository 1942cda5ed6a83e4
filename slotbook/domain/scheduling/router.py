"""Booking router - public availability/booking endpoints and operator confirm/deny"""

import logging
from datetime import date
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ...config import BUSINESS_NAME
from ...database import get_db
from ...email_service import EmailClient
from ...services.google_calendar_service import GoogleCalendarClient
from ...shared.exceptions import BookingError, InvalidState, ValidationError
from ...shared.validators import validate_iso_date
from .availability_service import AvailabilityService
from .courses import Course
from .pricing_service import PricingService
from .schemas import (
    AvailabilityResponse,
    ConfirmResponse,
    DayAvailabilityOut,
    DayOverviewResponse,
    DenyResponse,
    QuoteRequest,
    QuoteResponse,
    ReservationCreate,
    ReservationCreated,
    ReservationOut,
    SideEffectOutcomeOut,
    TransitionRequest,
)
from .service import ReservationService
from .side_effects import SideEffectOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Booking"])


def get_email_client(request: Request) -> EmailClient:
    """Email client built once in the app lifespan"""
    return request.app.state.email_client


def get_calendar_client(request: Request) -> Optional[GoogleCalendarClient]:
    """Calendar client built once in the app lifespan; None when not configured"""
    return getattr(request.app.state, "calendar_client", None)


def get_orchestrator(
    email_client: EmailClient = Depends(get_email_client),
    calendar_client: Optional[GoogleCalendarClient] = Depends(get_calendar_client),
) -> SideEffectOrchestrator:
    return SideEffectOrchestrator.from_config(email_client, calendar_client)


def get_reservation_service(
    db: Session = Depends(get_db),
    orchestrator: SideEffectOrchestrator = Depends(get_orchestrator),
) -> ReservationService:
    """Dependency injection for ReservationService"""
    return ReservationService(db, orchestrator)


def _parse_course(value: str) -> Course:
    try:
        return Course.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _parse_date(value: str, field: str = "date") -> date:
    try:
        return validate_iso_date(value)
    except ValueError as e:
        raise ValidationError(f"{field}: {e}") from e


def _outcomes(outcomes) -> list[SideEffectOutcomeOut]:
    return [SideEffectOutcomeOut(name=o.name, ok=o.ok, skipped=o.skipped, detail=o.detail) for o in outcomes]


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    date: str = Query(..., description="YYYY-MM-DD"),
    course: str = Query(Course.MIN_60.value),
    db: Session = Depends(get_db),
):
    """Bookable start times for one day"""
    day = _parse_date(date)
    selected = _parse_course(course)
    result = AvailabilityService(db).get_available_slots(day, selected)
    return AvailabilityResponse(
        date=result.date,
        course=selected.value,
        durationMinutes=selected.duration_minutes,
        slots=result.slots,
        degraded=result.degraded,
    )


@router.get("/availability/days", response_model=DayOverviewResponse)
async def get_availability_days(
    start: str = Query(...),
    end: str = Query(...),
    course: str = Query(Course.MIN_60.value),
    db: Session = Depends(get_db),
):
    """Open slot counts per day, for calendar views"""
    start_day = _parse_date(start, "start")
    end_day = _parse_date(end, "end")
    selected = _parse_course(course)
    try:
        days, degraded = AvailabilityService(db).day_overview(start_day, end_day, selected)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return DayOverviewResponse(
        course=selected.value,
        days=[DayAvailabilityOut(date=d.date, openSlots=d.open_slots, available=d.available) for d in days],
        degraded=degraded,
    )


# ============================================================================
# RESERVATIONS
# ============================================================================


@router.post("/reservations/quote", response_model=QuoteResponse)
async def quote_reservation(data: QuoteRequest, db: Session = Depends(get_db)):
    """Price a course for this customer before booking"""
    # Blank identity would match no history and always quote the first-time price
    missing = [label for label, value in (("name", data.name), ("phone", data.phone)) if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    selected = _parse_course(data.course)
    quote = PricingService(db).quote(
        selected, name=data.name, phone=data.phone, email=data.email, coupon_code=data.couponCode
    )
    return QuoteResponse(
        course=selected.value,
        basePrice=quote.base_price,
        isFirstTime=quote.is_first_time,
        couponDiscount=quote.coupon_discount,
        couponCode=quote.coupon_code,
        finalPrice=quote.final_price,
    )


@router.post("/reservations", response_model=ReservationCreated, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
):
    """Public booking request; stored as pending until the operator decides"""
    result = await service.create(data)
    return ReservationCreated(
        reservationId=result.reservation.id,
        price=result.reservation.price,
        status=result.reservation.status,
    )


@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
async def get_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
):
    return service.get(reservation_id)


# ============================================================================
# OPERATOR DECISIONS
# ============================================================================
# The GET variants are what the links in the operator email open, so they
# answer with a small HTML page instead of JSON.


def _decision_page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    body = f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1">
<title>{escape(title)} - {escape(BUSINESS_NAME)}</title></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;background:#fffbeb;padding:48px 16px;">
<div style="max-width:480px;margin:0 auto;background:#fff;border-radius:12px;padding:32px;">
<h1 style="font-size:22px;color:#1f2937;margin:0 0 16px 0;">{escape(title)}</h1>
<p style="color:#374151;line-height:1.6;margin:0;">{escape(message)}</p>
</div>
</body>
</html>"""
    return HTMLResponse(content=body, status_code=status_code)


def _error_page(e: BookingError) -> HTMLResponse:
    if isinstance(e, InvalidState):
        status = f" ({e.current_status})" if e.current_status else ""
        return _decision_page("Already processed", f"This reservation was already processed{status}.", 409)
    return _decision_page("Something went wrong", e.message, e.status_code)


@router.get("/confirm", response_class=HTMLResponse)
async def confirm_from_link(
    id: str = Query(...),
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        result = await service.confirm(id.strip())
    except BookingError as e:
        logger.warning(f"⚠️ Confirm link for {id} rejected: {e.code} - {e.message}")
        return _error_page(e)

    note = ""
    if any(not o.ok for o in result.side_effects):
        note = " Some notifications could not be sent; please check the server log."
    return _decision_page("Reservation confirmed", f"Reservation {result.reservation_id} is confirmed.{note}")


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm_reservation(
    data: TransitionRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    result = await service.confirm(data.reservationId)
    return ConfirmResponse(
        reservationId=result.reservation_id,
        calendarEventId=result.calendar_event_id,
        sideEffects=_outcomes(result.side_effects),
    )


@router.get("/deny", response_class=HTMLResponse)
async def deny_from_link(
    id: str = Query(...),
    service: ReservationService = Depends(get_reservation_service),
):
    try:
        result = await service.deny(id.strip())
    except BookingError as e:
        logger.warning(f"⚠️ Deny link for {id} rejected: {e.code} - {e.message}")
        return _error_page(e)
    return _decision_page("Reservation denied", f"Reservation {result.reservation_id} was denied and the customer notified.")


@router.post("/deny", response_model=DenyResponse)
async def deny_reservation(
    data: TransitionRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    result = await service.deny(data.reservationId)
    return DenyResponse(reservationId=result.reservation_id, sideEffects=_outcomes(result.side_effects))
