import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class ReservationStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DENIED = "denied"


def generate_reservation_id() -> str:
    return str(uuid.uuid4())


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=generate_reservation_id)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM, same day
    course = Column(String(20), nullable=False)  # 30min, 60min, 90min

    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    price = Column(Integer, nullable=False)
    coupon_code = Column(String(100), nullable=True)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Coupon(Base):
    """Discount token, provisioned outside this service"""

    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(100), nullable=False, unique=True, index=True)
    amount = Column(Integer, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
