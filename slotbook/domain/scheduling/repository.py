"""Reservation and coupon repository - Database operations for the booking domain"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Coupon, Reservation, ReservationStatus
from ...shared.exceptions import StoreFailure

logger = logging.getLogger(__name__)


@contextmanager
def store_guard(db: Session, action: str) -> Iterator[None]:
    """Translate driver/ORM errors into StoreFailure after rolling back"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Store error during {action}: {e}")
        raise StoreFailure(f"{action} failed") from e


class ReservationRepository:
    """Repository for reservation database operations"""

    @staticmethod
    def get_reservation_by_id(db: Session, reservation_id: str) -> Optional[Reservation]:
        """Get a reservation by ID"""
        with store_guard(db, "reservation lookup"):
            return db.query(Reservation).filter(Reservation.id == reservation_id).first()

    @staticmethod
    def get_confirmed_for_date(db: Session, day: date) -> list[Reservation]:
        """Confirmed reservations occupying the calendar on a given day"""
        with store_guard(db, "confirmed reservations fetch"):
            return (
                db.query(Reservation)
                .filter(Reservation.date == day, Reservation.status == ReservationStatus.CONFIRMED)
                .order_by(Reservation.start_time)
                .all()
            )

    @staticmethod
    def get_confirmed_between(db: Session, start: date, end: date) -> list[Reservation]:
        """Confirmed reservations for an inclusive date range"""
        with store_guard(db, "confirmed reservations range fetch"):
            return (
                db.query(Reservation)
                .filter(
                    Reservation.date >= start,
                    Reservation.date <= end,
                    Reservation.status == ReservationStatus.CONFIRMED,
                )
                .order_by(Reservation.date, Reservation.start_time)
                .all()
            )

    @staticmethod
    def find_confirmed_by_identity(
        db: Session,
        phone: Optional[str],
        email: Optional[str],
        name: Optional[str],
        match_name: bool = True,
    ) -> Optional[Reservation]:
        """Any confirmed reservation matching phone OR email OR (optionally) name"""
        conditions = []
        if phone:
            conditions.append(Reservation.phone == phone)
        if email:
            conditions.append(Reservation.email == email)
        if match_name and name:
            conditions.append(Reservation.name == name)
        if not conditions:
            return None

        with store_guard(db, "returning customer lookup"):
            return (
                db.query(Reservation)
                .filter(Reservation.status == ReservationStatus.CONFIRMED, or_(*conditions))
                .first()
            )

    @staticmethod
    def create_reservation(db: Session, **reservation_data) -> Reservation:
        """Insert a new reservation row"""
        reservation = Reservation(**reservation_data)
        with store_guard(db, "reservation insert"):
            db.add(reservation)
            db.commit()
            db.refresh(reservation)
        return reservation

    @staticmethod
    def transition_status(db: Session, reservation_id: str, from_status: str, to_status: str) -> bool:
        """
        Conditional single-row update: only applies while the row still holds
        from_status. Returns False when another writer got there first.
        """
        with store_guard(db, f"status update to {to_status}"):
            updated = (
                db.query(Reservation)
                .filter(Reservation.id == reservation_id, Reservation.status == from_status)
                .update({Reservation.status: to_status}, synchronize_session=False)
            )
            db.commit()
        return updated == 1


class CouponRepository:
    """Repository for coupon database operations"""

    @staticmethod
    def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
        with store_guard(db, "coupon lookup"):
            return db.query(Coupon).filter(Coupon.code == code).first()

    @staticmethod
    def mark_coupon_used(db: Session, code: str) -> bool:
        """Flag an unused coupon as used; False if it was already used or is missing"""
        with store_guard(db, "coupon update"):
            updated = (
                db.query(Coupon)
                .filter(Coupon.code == code, Coupon.used.is_(False))
                .update({Coupon.used: True}, synchronize_session=False)
            )
            db.commit()
        return updated == 1
