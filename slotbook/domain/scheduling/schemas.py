"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_email, validate_phone


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class QuoteRequest(BaseModel):
    """Schema for pricing a course before booking"""

    course: str
    name: str
    phone: str
    email: Optional[str] = None
    couponCode: Optional[str] = None

    @field_validator("name", "course")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v.strip()) if v and v.strip() else ""

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        v = _blank_to_none(v)
        return validate_email(v) if v else None

    @field_validator("couponCode")
    @classmethod
    def strip_coupon(cls, v):
        return _blank_to_none(v)


class ReservationCreate(QuoteRequest):
    """Schema for a public booking request"""

    date: str  # YYYY-MM-DD
    startTime: str  # HH:MM
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v):
        return _blank_to_none(v)


class QuoteResponse(BaseModel):
    course: str
    basePrice: int
    isFirstTime: bool
    couponDiscount: int
    couponCode: Optional[str] = None
    finalPrice: int


class ReservationCreated(BaseModel):
    reservationId: str
    price: int
    status: str


class ReservationOut(BaseModel):
    """Detached view of a reservation row"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    date: date
    start_time: str
    end_time: str
    course: str
    name: str
    phone: str
    email: Optional[str] = None
    notes: Optional[str] = None
    price: int
    coupon_code: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransitionRequest(BaseModel):
    """Body for programmatic confirm/deny calls"""

    reservationId: str

    @field_validator("reservationId")
    @classmethod
    def strip_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("reservationId must not be empty")
        return v


class SideEffectOutcomeOut(BaseModel):
    name: str
    ok: bool
    skipped: bool = False
    detail: Optional[str] = None


class ConfirmResponse(BaseModel):
    ok: bool = True
    reservationId: str
    calendarEventId: Optional[str] = None
    sideEffects: list[SideEffectOutcomeOut] = []


class DenyResponse(BaseModel):
    ok: bool = True
    reservationId: str
    sideEffects: list[SideEffectOutcomeOut] = []


class AvailabilityResponse(BaseModel):
    date: date
    course: str
    durationMinutes: int
    slots: list[str]
    degraded: bool = False


class DayAvailabilityOut(BaseModel):
    date: date
    openSlots: int
    available: bool


class DayOverviewResponse(BaseModel):
    course: str
    days: list[DayAvailabilityOut]
    degraded: bool = False
