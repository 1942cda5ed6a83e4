"""Reservation lifecycle - create, confirm and deny with post-transition side effects"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import ReservationStatus, generate_reservation_id
from ...shared.exceptions import Conflict, InvalidState, NotFound, StoreFailure, ValidationError
from ...shared.time_grid import parse_clock, to_clock, to_minutes
from ...shared.validators import validate_iso_date
from .availability_service import BookingRules, overlaps_confirmed
from .courses import Course
from .pricing_service import PricingService
from .repository import CouponRepository, ReservationRepository
from .schemas import ReservationCreate, ReservationOut
from .side_effects import COUPON, SideEffectOrchestrator, SideEffectOutcome, SideEffectReport

logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    reservation: ReservationOut
    notifications: list[SideEffectOutcome] = field(default_factory=list)


@dataclass
class ConfirmResult:
    reservation_id: str
    calendar_event_id: Optional[str] = None
    side_effects: list[SideEffectOutcome] = field(default_factory=list)


@dataclass
class DenyResult:
    reservation_id: str
    side_effects: list[SideEffectOutcome] = field(default_factory=list)


class ReservationService:
    """Service layer for the reservation lifecycle"""

    def __init__(
        self,
        db: Session,
        orchestrator: SideEffectOrchestrator,
        pricing: Optional[PricingService] = None,
        rules: Optional[BookingRules] = None,
        notify_on_create: Optional[bool] = None,
        conflict_check: Optional[bool] = None,
    ):
        self.db = db
        self.repo = ReservationRepository()
        self.coupons = CouponRepository()
        self.orchestrator = orchestrator
        self.pricing = pricing or PricingService(db)
        self.rules = rules or BookingRules.from_config()
        self.notify_on_create = config.NOTIFY_ON_CREATE if notify_on_create is None else notify_on_create
        self.conflict_check = config.CONFIRM_CONFLICT_CHECK if conflict_check is None else conflict_check

    # ========================================
    # Create
    # ========================================

    def _resolve_times(self, start_time: str, course: Course) -> tuple[str, str]:
        try:
            start = parse_clock(start_time)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        start_min = to_minutes(start)
        open_min = to_minutes(self.rules.open_time)
        close_min = to_minutes(self.rules.close_time)
        end_min = start_min + course.duration_minutes

        if (start_min - open_min) % self.rules.step_minutes != 0:
            raise ValidationError(f"Start time {start} is not on the {self.rules.step_minutes}-minute booking grid")
        if start_min < open_min or end_min > close_min:
            raise ValidationError(
                f"A {course.value} booking at {start} does not fit business hours "
                f"{self.rules.open_time}-{self.rules.close_time}"
            )
        return start, to_clock(end_min)

    async def create(self, data: ReservationCreate) -> CreateResult:
        """
        Persist a new pending reservation at the resolved price.

        Raises:
            ValidationError: Missing fields, unknown course, bad date/time or outside hours
            StoreFailure: The pricing lookup or insert failed
        """
        missing = [
            label
            for label, value in (
                ("date", data.date),
                ("startTime", data.startTime),
                ("course", data.course),
                ("name", data.name),
                ("phone", data.phone),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        try:
            day = validate_iso_date(data.date)
            course = Course.parse(data.course)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        start_time, end_time = self._resolve_times(data.startTime, course)

        quote = self.pricing.quote(
            course, name=data.name, phone=data.phone, email=data.email, coupon_code=data.couponCode
        )

        reservation = self.repo.create_reservation(
            self.db,
            id=generate_reservation_id(),
            date=day,
            start_time=start_time,
            end_time=end_time,
            course=course.value,
            name=data.name,
            phone=data.phone,
            email=data.email,
            notes=data.notes,
            price=quote.final_price,
            coupon_code=quote.coupon_code,
            status=ReservationStatus.PENDING,
        )
        snapshot = ReservationOut.model_validate(reservation)
        logger.info(
            f"✅ Reservation {snapshot.id} created: {day} {start_time}-{end_time} {course.value} price={quote.final_price}"
        )

        notifications: list[SideEffectOutcome] = []
        if self.notify_on_create:
            report = await self.orchestrator.after_create(snapshot)
            notifications = report.outcomes
        return CreateResult(reservation=snapshot, notifications=notifications)

    # ========================================
    # Lookups
    # ========================================

    def get(self, reservation_id: str) -> ReservationOut:
        reservation = self.repo.get_reservation_by_id(self.db, reservation_id)
        if not reservation:
            raise NotFound(f"Reservation {reservation_id} not found", reservation_id=reservation_id)
        return ReservationOut.model_validate(reservation)

    def _get_pending(self, reservation_id: str) -> ReservationOut:
        reservation = self.get(reservation_id)
        if reservation.status != ReservationStatus.PENDING:
            raise InvalidState(
                f"Reservation {reservation_id} is already {reservation.status}",
                reservation_id=reservation_id,
                current_status=reservation.status,
            )
        return reservation

    def _transition(self, reservation: ReservationOut, to_status: str) -> None:
        applied = self.repo.transition_status(self.db, reservation.id, ReservationStatus.PENDING, to_status)
        if not applied:
            # Another request moved the row out of pending between our read and write
            current = self.repo.get_reservation_by_id(self.db, reservation.id)
            current_status = current.status if current else None
            logger.warning(f"⚠️ Lost transition race for reservation {reservation.id} (now {current_status})")
            raise InvalidState(
                f"Reservation {reservation.id} was already processed",
                reservation_id=reservation.id,
                current_status=current_status,
            )
        logger.info(f"✅ Reservation {reservation.id} {to_status}")

    # ========================================
    # Transitions
    # ========================================

    def _check_conflict(self, reservation: ReservationOut) -> None:
        confirmed = [
            r for r in self.repo.get_confirmed_for_date(self.db, reservation.date) if r.id != reservation.id
        ]
        if overlaps_confirmed(reservation, confirmed, self.rules):
            raise Conflict(
                f"{reservation.date} {reservation.start_time} overlaps an existing confirmed reservation",
                reservation_id=reservation.id,
            )

    def _mark_coupon_used(self, reservation: ReservationOut, report: SideEffectReport) -> None:
        if not reservation.coupon_code:
            return
        try:
            marked = self.coupons.mark_coupon_used(self.db, reservation.coupon_code)
        except StoreFailure as e:
            report.record(COUPON, ok=False, detail=str(e))
            return
        report.record(COUPON, ok=marked, detail=None if marked else "coupon missing or already used")

    async def confirm(self, reservation_id: str) -> ConfirmResult:
        """
        pending -> confirmed, then calendar and notification side effects.

        Raises:
            NotFound: No reservation with this id
            InvalidState: Reservation is not pending, or a concurrent call won
            Conflict: Overlaps a confirmed booking (only with conflict checking on)
            StoreFailure: The status update could not be written
        """
        reservation = self._get_pending(reservation_id)
        if self.conflict_check:
            self._check_conflict(reservation)

        self._transition(reservation, ReservationStatus.CONFIRMED)
        confirmed = reservation.model_copy(update={"status": ReservationStatus.CONFIRMED})

        report = await self.orchestrator.after_confirm(confirmed)
        self._mark_coupon_used(confirmed, report)

        return ConfirmResult(
            reservation_id=reservation_id,
            calendar_event_id=report.calendar_event_id,
            side_effects=report.outcomes,
        )

    async def deny(self, reservation_id: str) -> DenyResult:
        """pending -> denied, then a single denial notice to the customer"""
        reservation = self._get_pending(reservation_id)
        self._transition(reservation, ReservationStatus.DENIED)
        denied = reservation.model_copy(update={"status": ReservationStatus.DENIED})

        report = await self.orchestrator.after_deny(denied)
        return DenyResult(reservation_id=reservation_id, side_effects=report.outcomes)
