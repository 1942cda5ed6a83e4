"""
Side-effect orchestration for reservation transitions

Runs after the status change has been committed. Every attempt is recorded
as an outcome and none of them can fail the transition that triggered it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Optional
from urllib.parse import quote, urlencode
from zoneinfo import ZoneInfo

from ... import config
from ...email_service import EmailClient, EmailResult
from ...email_templates import (
    EmailContent,
    booking_received_customer_template,
    booking_request_admin_template,
    reservation_confirmed_admin_template,
    reservation_confirmed_customer_template,
    reservation_denied_customer_template,
)
from ...services.google_calendar_service import GoogleCalendarClient
from ...shared.time_grid import to_minutes

logger = logging.getLogger(__name__)

CALENDAR = "calendar"
ADMIN_EMAIL = "admin_email"
CUSTOMER_EMAIL = "customer_email"
COUPON = "coupon"


@dataclass
class SideEffectOutcome:
    name: str
    ok: bool
    skipped: bool = False
    detail: Optional[str] = None


@dataclass
class SideEffectReport:
    reservation_id: str
    outcomes: list[SideEffectOutcome] = field(default_factory=list)
    calendar_event_id: Optional[str] = None

    def record(self, name: str, ok: bool, detail: Optional[str] = None, skipped: bool = False) -> None:
        self.outcomes.append(SideEffectOutcome(name=name, ok=ok, skipped=skipped, detail=detail))
        if not ok:
            logger.error(f"❌ Side effect '{name}' failed for reservation {self.reservation_id}: {detail}")
        elif skipped:
            logger.info(f"ℹ️ Side effect '{name}' skipped for reservation {self.reservation_id}: {detail}")


class SideEffectOrchestrator:
    """Calendar writes and notifications around the reservation lifecycle"""

    def __init__(
        self,
        email_client: EmailClient,
        calendar_client: Optional[GoogleCalendarClient],
        admin_email: Optional[str] = None,
        public_base_url: str = "",
        timezone: str = "Asia/Tokyo",
        shop_address: str = "",
    ):
        self.email_client = email_client
        self.calendar_client = calendar_client
        self.admin_email = admin_email
        self.public_base_url = public_base_url.rstrip("/")
        self.timezone = timezone
        self.shop_address = shop_address

    @classmethod
    def from_config(
        cls, email_client: EmailClient, calendar_client: Optional[GoogleCalendarClient]
    ) -> "SideEffectOrchestrator":
        return cls(
            email_client=email_client,
            calendar_client=calendar_client,
            admin_email=config.ADMIN_EMAIL,
            public_base_url=config.PUBLIC_BASE_URL,
            timezone=config.BUSINESS_TIMEZONE,
            shop_address=config.SHOP_ADDRESS,
        )

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def action_url(self, action: str, reservation_id: str) -> str:
        return f"{self.public_base_url}/api/{action}?{urlencode({'id': reservation_id})}"

    def map_url(self) -> Optional[str]:
        if not self.shop_address:
            return None
        return f"https://maps.google.com/?q={quote(self.shop_address)}"

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _local_datetime(self, day, hhmm: str) -> datetime:
        minutes = to_minutes(hhmm)
        return datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=ZoneInfo(self.timezone))

    async def try_write_calendar_event(self, reservation) -> Optional[str]:
        """Best-effort calendar write; never raises, None on any failure or when unconfigured"""
        if self.calendar_client is None:
            return None

        description = "\n".join(
            line
            for line in [
                f"Name: {reservation.name}",
                f"Phone: {reservation.phone}" if reservation.phone else "",
                f"Email: {reservation.email}" if reservation.email else "",
                f"Course: {reservation.course}",
                f"Date: {reservation.date}",
                f"Time: {reservation.start_time} - {reservation.end_time}",
                f"Notes: {reservation.notes}" if reservation.notes else "",
                f"Reservation ID: {reservation.id}",
            ]
            if line
        )
        try:
            return await self.calendar_client.create_event(
                summary=f"{reservation.name} / {reservation.course}",
                description=description,
                start=self._local_datetime(reservation.date, reservation.start_time),
                end=self._local_datetime(reservation.date, reservation.end_time),
                timezone=self.timezone,
            )
        except Exception as e:
            logger.error(f"❌ Calendar write failed for reservation {reservation.id}: {e}")
            return None

    async def send_email(self, to: str, content: EmailContent, headers: Optional[dict] = None) -> EmailResult:
        return await self.email_client.send(
            to=to,
            subject=content.subject,
            text=content.text,
            mjml_content=content.mjml,
            headers=headers,
        )

    async def _notify(self, report: SideEffectReport, name: str, to: Optional[str], content: EmailContent) -> None:
        if not to:
            report.record(name, ok=True, skipped=True, detail="no recipient address")
            return
        result = await self.send_email(to, content, headers={"X-Reservation-ID": report.reservation_id})
        report.record(name, ok=result.success, detail=result.message_id if result.success else result.error)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    async def after_create(self, reservation) -> SideEffectReport:
        """Operator gets approve/deny links; the customer gets an auto-reply"""
        report = SideEffectReport(reservation_id=reservation.id)
        map_url = self.map_url()
        await self._notify(
            report,
            ADMIN_EMAIL,
            self.admin_email,
            booking_request_admin_template(
                reservation,
                confirm_url=self.action_url("confirm", reservation.id),
                deny_url=self.action_url("deny", reservation.id),
                map_url=map_url,
            ),
        )
        await self._notify(report, CUSTOMER_EMAIL, reservation.email, booking_received_customer_template(reservation, map_url))
        return report

    async def after_confirm(self, reservation) -> SideEffectReport:
        """Calendar first, then operator email, then customer email"""
        report = SideEffectReport(reservation_id=reservation.id)

        if self.calendar_client is None:
            report.record(CALENDAR, ok=True, skipped=True, detail="calendar not configured")
        else:
            event_id = await self.try_write_calendar_event(reservation)
            report.calendar_event_id = event_id
            report.record(CALENDAR, ok=event_id is not None, detail=event_id or "calendar write failed")

        await self._notify(report, ADMIN_EMAIL, self.admin_email, reservation_confirmed_admin_template(reservation))
        await self._notify(report, CUSTOMER_EMAIL, reservation.email, reservation_confirmed_customer_template(reservation))
        return report

    async def after_deny(self, reservation) -> SideEffectReport:
        report = SideEffectReport(reservation_id=reservation.id)
        await self._notify(report, CUSTOMER_EMAIL, reservation.email, reservation_denied_customer_template(reservation))
        return report
