"""Pricing & eligibility - first-time detection and coupon discounts"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ... import config
from .courses import Course
from .repository import CouponRepository, ReservationRepository

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    course: Course
    base_price: int
    is_first_time: bool
    coupon_discount: int = 0
    coupon_code: Optional[str] = None
    final_price: int = 0


def business_today() -> date:
    return datetime.now(ZoneInfo(config.BUSINESS_TIMEZONE)).date()


class PricingService:
    """
    Resolves the price a customer pays for a course.

    Store failures propagate as StoreFailure: falling back to normal pricing
    would silently overcharge a first-time customer.
    """

    def __init__(self, db: Session, match_name: Optional[bool] = None):
        self.db = db
        self.reservations = ReservationRepository()
        self.coupons = CouponRepository()
        self.match_name = config.FIRST_TIME_MATCH_NAME if match_name is None else match_name

    def is_first_time(self, name: str, phone: str, email: Optional[str]) -> bool:
        previous = self.reservations.find_confirmed_by_identity(
            self.db, phone=phone, email=email, name=name, match_name=self.match_name
        )
        return previous is None

    def coupon_discount(self, code: Optional[str], today: Optional[date] = None) -> int:
        """Discount for a usable coupon; unknown, used or expired codes give 0"""
        if not code:
            return 0
        today = today or business_today()
        coupon = self.coupons.get_coupon_by_code(self.db, code)
        if coupon is None:
            logger.info(f"ℹ️ Coupon {code!r} not found")
            return 0
        if coupon.used:
            logger.info(f"ℹ️ Coupon {code!r} already used")
            return 0
        if not (coupon.valid_from <= today <= coupon.valid_until):
            logger.info(f"ℹ️ Coupon {code!r} outside validity window {coupon.valid_from}..{coupon.valid_until}")
            return 0
        return max(coupon.amount, 0)

    def quote(
        self,
        course: Course,
        name: str,
        phone: str,
        email: Optional[str] = None,
        coupon_code: Optional[str] = None,
        today: Optional[date] = None,
    ) -> PriceQuote:
        first_time = self.is_first_time(name, phone, email)
        tier = course.tier
        base_price = tier.first_time_price if first_time else tier.normal_price

        coupon_code = (coupon_code or "").strip() or None
        discount = self.coupon_discount(coupon_code, today)

        return PriceQuote(
            course=course,
            base_price=base_price,
            is_first_time=first_time,
            coupon_discount=discount,
            coupon_code=coupon_code if discount else None,
            final_price=max(base_price - discount, 0),
        )
