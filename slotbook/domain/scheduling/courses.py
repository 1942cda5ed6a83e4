"""Course tiers - the closed set of bookable durations and their prices"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class CourseTier:
    duration_minutes: int
    normal_price: int
    first_time_price: int


class Course(str, Enum):
    MIN_30 = "30min"
    MIN_60 = "60min"
    MIN_90 = "90min"

    @property
    def tier(self) -> CourseTier:
        return COURSE_CATALOGUE[self]

    @property
    def duration_minutes(self) -> int:
        return self.tier.duration_minutes

    @classmethod
    def parse(cls, value: str) -> "Course":
        """Look up a course by key; raises ValueError for unknown keys"""
        try:
            return cls((value or "").strip())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown course {value!r}. Expected one of: {allowed}") from None


COURSE_CATALOGUE: dict[Course, CourseTier] = {
    Course.MIN_30: CourseTier(duration_minutes=30, normal_price=5000, first_time_price=3000),
    Course.MIN_60: CourseTier(duration_minutes=60, normal_price=9000, first_time_price=4000),
    Course.MIN_90: CourseTier(duration_minutes=90, normal_price=12000, first_time_price=7000),
}
