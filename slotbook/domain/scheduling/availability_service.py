"""
Slot availability engine

Computes the bookable start times for a day from the confirmed reservations
on that day. Pending reservations never block a slot; only confirmed rows
occupy the calendar.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ... import config
from ...shared.exceptions import StoreFailure
from ...shared.time_grid import snap_down, to_clock, to_minutes
from .courses import Course
from .repository import ReservationRepository

logger = logging.getLogger(__name__)

# Used when a stored row carries a course key that is no longer in the catalogue
FALLBACK_DURATION_MINUTES = 60
MAX_OVERVIEW_DAYS = 62


class BookedSlot(Protocol):
    start_time: str
    course: str


@dataclass(frozen=True)
class BookingRules:
    open_time: str = "10:00"
    close_time: str = "23:00"
    step_minutes: int = 15
    pre_buffer_minutes: int = 30
    post_buffer_minutes: int = 30
    min_lead_minutes: int = 60
    timezone: str = "Asia/Tokyo"

    @classmethod
    def from_config(cls) -> "BookingRules":
        return cls(
            open_time=config.OPEN_TIME,
            close_time=config.CLOSE_TIME,
            step_minutes=config.SLOT_STEP_MINUTES,
            pre_buffer_minutes=config.PRE_BUFFER_MINUTES,
            post_buffer_minutes=config.POST_BUFFER_MINUTES,
            min_lead_minutes=config.MIN_LEAD_MINUTES,
            timezone=config.BUSINESS_TIMEZONE,
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        """Wall-clock time in the business timezone, tz-naive for same-day comparisons"""
        now = now or datetime.now(self.tz)
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now.replace(tzinfo=None)


@dataclass
class AvailabilityResult:
    date: date
    course: Course
    slots: list[str] = field(default_factory=list)
    degraded: bool = False


@dataclass
class DayAvailability:
    date: date
    open_slots: int
    available: bool


def course_duration(course_key: str) -> int:
    try:
        return Course.parse(course_key).duration_minutes
    except ValueError:
        logger.warning(f"⚠️ Unknown course {course_key!r} on stored reservation, assuming {FALLBACK_DURATION_MINUTES} minutes")
        return FALLBACK_DURATION_MINUTES


def blocked_intervals(confirmed: Iterable[BookedSlot], rules: BookingRules) -> list[tuple[int, int]]:
    """Closed [start, end] minute intervals covered by each booking plus its buffers"""
    intervals = []
    for reservation in confirmed:
        start = to_minutes(str(reservation.start_time)[:5])
        duration = course_duration(reservation.course)
        block_start = snap_down(start - rules.pre_buffer_minutes, rules.step_minutes)
        block_end = snap_down(start + duration + rules.post_buffer_minutes, rules.step_minutes)
        intervals.append((block_start, block_end))
    return intervals


def is_blocked(candidate: int, intervals: list[tuple[int, int]]) -> bool:
    return any(block_start <= candidate <= block_end for block_start, block_end in intervals)


def candidate_starts(course: Course, rules: BookingRules) -> list[int]:
    """Grid points from opening time whose booking still ends by closing time"""
    open_min = to_minutes(rules.open_time)
    close_min = to_minutes(rules.close_time)
    duration = course.duration_minutes
    return [
        start
        for start in range(open_min, close_min + 1, rules.step_minutes)
        if start + duration <= close_min
    ]


def compute_available_slots(
    day: date,
    course: Course,
    confirmed: Iterable[BookedSlot],
    now: datetime,
    rules: BookingRules,
) -> list[str]:
    """Pure slot computation; `now` may be naive (business time) or tz-aware"""
    local_now = rules.local_now(now)
    today = local_now.date()
    if day < today:
        return []

    intervals = blocked_intervals(confirmed, rules)
    cutoff = local_now + timedelta(minutes=rules.min_lead_minutes) if day == today else None

    slots = []
    for start in candidate_starts(course, rules):
        if is_blocked(start, intervals):
            continue
        if cutoff is not None:
            slot_at = datetime.combine(day, time(start // 60, start % 60))
            if slot_at < cutoff:
                continue
        slots.append(to_clock(start))
    return slots


def overlaps_confirmed(booking: BookedSlot, confirmed: Iterable[BookedSlot], rules: BookingRules) -> bool:
    """
    Whether a booking's appointment [start, start + duration) reaches into the
    buffered window of any confirmed booking.

    The booking's own buffers are not added: the confirmed window already
    carries the gap, and a start that the slot engine offers must not conflict.
    """
    start = to_minutes(str(booking.start_time)[:5])
    end = start + course_duration(booking.course)
    return any(
        start <= block_end and end > block_start
        for block_start, block_end in blocked_intervals(confirmed, rules)
    )


class AvailabilityService:
    """Service layer for slot availability queries"""

    def __init__(self, db: Session, rules: Optional[BookingRules] = None):
        self.db = db
        self.repo = ReservationRepository()
        self.rules = rules or BookingRules.from_config()

    def get_available_slots(self, day: date, course: Course, now: Optional[datetime] = None) -> AvailabilityResult:
        """Open start times for a day; a failed fetch reports no slots, never an open day"""
        now = now or datetime.now(self.rules.tz)
        try:
            confirmed = self.repo.get_confirmed_for_date(self.db, day)
        except StoreFailure as e:
            logger.error(f"❌ Availability for {day} unavailable, reporting no slots: {e}")
            return AvailabilityResult(date=day, course=course, slots=[], degraded=True)

        slots = compute_available_slots(day, course, confirmed, now, self.rules)
        return AvailabilityResult(date=day, course=course, slots=slots)

    def day_overview(
        self, start: date, end: date, course: Course, now: Optional[datetime] = None
    ) -> tuple[list[DayAvailability], bool]:
        """Open slot counts per day for a date range, from a single store read"""
        if end < start:
            raise ValueError("End date must not be before start date")
        if (end - start).days + 1 > MAX_OVERVIEW_DAYS:
            raise ValueError(f"Date range may span at most {MAX_OVERVIEW_DAYS} days")

        now = now or datetime.now(self.rules.tz)
        days = [start + timedelta(days=offset) for offset in range((end - start).days + 1)]

        try:
            confirmed = self.repo.get_confirmed_between(self.db, start, end)
        except StoreFailure as e:
            logger.error(f"❌ Day overview {start}..{end} unavailable: {e}")
            return [DayAvailability(date=d, open_slots=0, available=False) for d in days], True

        by_day: dict[date, list] = {}
        for reservation in confirmed:
            by_day.setdefault(reservation.date, []).append(reservation)

        overview = []
        for d in days:
            slots = compute_available_slots(d, course, by_day.get(d, []), now, self.rules)
            overview.append(DayAvailability(date=d, open_slots=len(slots), available=bool(slots)))
        return overview, False
