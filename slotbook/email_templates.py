"""
Booking email templates
Every message carries a plain-text body plus an MJML body compiled to HTML
"""

from dataclasses import dataclass
from html import escape
from typing import Optional

from .config import BUSINESS_NAME

# Warm amber palette used across the booking pages
THEME = {
    "primary": "#d97706",
    "primary_dark": "#b45309",
    "danger": "#dc2626",
    "background": "#fffbeb",
    "card_bg": "#ffffff",
    "text_primary": "#1f2937",
    "text_secondary": "#374151",
    "text_muted": "#6b7280",
    "border": "#fde68a",
}

AUTO_SENT_NOTICE = "This email was sent automatically. Please do not reply."


@dataclass
class EmailContent:
    subject: str
    text: str
    mjml: str


def _lines(*parts: Optional[str]) -> str:
    """Join non-empty lines, keeping intentional blank separators ('')"""
    return "\n".join(p for p in parts if p is not None)


def _detail_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    cells = "".join(
        f"<tr><td style=\"color:{THEME['text_muted']};padding:4px 12px 4px 0;\">{escape(label)}</td>"
        f"<td style=\"padding:4px 0;\">{escape(str(value))}</td></tr>"
        for label, value in rows
        if value
    )
    return f"""
    <mj-table font-size="15px" color="{THEME['text_secondary']}" padding="8px 0 16px 0">
      {cells}
    </mj-table>
    """


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    actions: Optional[list[tuple[str, str, str]]] = None,
) -> str:
    """Base MJML template wrapper; actions are (url, label, color) buttons"""

    action_section = ""
    if actions:
        buttons = "".join(
            f"""
            <mj-column>
              <mj-button href="{url}" background-color="{color}" color="#ffffff"
                font-weight="600" border-radius="8px" padding="12px 8px" font-size="16px">
                {escape(label)}
              </mj-button>
            </mj-column>
            """
            for url, label, color in actions
        )
        action_section = f'<mj-section background-color="#ffffff" padding="0 40px 32px 40px">{buttons}</mj-section>'

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{escape(title)}</mj-title>
        <mj-preview>{escape(preview_text)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Hiragino Sans', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 8px 40px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{THEME['primary_dark']}" padding="0">
              {escape(BUSINESS_NAME)}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0 0 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="16px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {escape(title)}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {action_section}

        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#9ca3af" padding="0">
              {AUTO_SENT_NOTICE}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _reservation_rows(reservation, include_contact: bool = True) -> list[tuple[str, Optional[str]]]:
    rows = [
        ("Reservation ID", reservation.id),
        ("Date", str(reservation.date)),
        ("Time", f"{reservation.start_time} - {reservation.end_time}"),
        ("Course", reservation.course),
        ("Name", reservation.name),
    ]
    if include_contact:
        rows += [("Phone", reservation.phone), ("Email", reservation.email)]
    rows.append(("Price", f"{reservation.price:,}"))
    return rows


def _rows_as_text(rows: list[tuple[str, Optional[str]]]) -> list[str]:
    return [f"{label}: {value}" for label, value in rows if value]


def booking_request_admin_template(reservation, confirm_url: str, deny_url: str, map_url: Optional[str]) -> EmailContent:
    """New pending request; the operator approves or denies from the links"""
    rows = _reservation_rows(reservation)
    if reservation.coupon_code:
        rows.append(("Coupon", reservation.coupon_code))
    if reservation.notes:
        rows.append(("Notes", reservation.notes))

    text = _lines(
        "[New booking request]",
        "",
        *_rows_as_text(rows),
        "",
        f"Approve: {confirm_url}",
        f"Deny: {deny_url}",
        *(["", f"Map: {map_url}"] if map_url else []),
    )
    mjml = get_base_template(
        title="New booking request",
        preview_text=f"{reservation.date} {reservation.start_time} - {reservation.name}",
        content_sections=_detail_rows(rows),
        actions=[(confirm_url, "Approve", THEME["primary"]), (deny_url, "Deny", THEME["danger"])],
    )
    return EmailContent(
        subject=f"New booking: {reservation.date} {reservation.start_time}",
        text=text,
        mjml=mjml,
    )


def booking_received_customer_template(reservation, map_url: Optional[str]) -> EmailContent:
    """Auto-reply telling the customer the request is awaiting approval"""
    rows = _reservation_rows(reservation)
    text = _lines(
        f"Thank you for booking with {BUSINESS_NAME}.",
        "We have received your request and will email you once it is confirmed.",
        "",
        *_rows_as_text(rows),
        *(["", f"Map: {map_url}"] if map_url else []),
        "",
        AUTO_SENT_NOTICE,
    )
    content = f"""
    <mj-text>Hi {escape(reservation.name)},</mj-text>
    <mj-text>We have received your request and will email you once it is confirmed.</mj-text>
    {_detail_rows(rows)}
    """
    if map_url:
        content += f'<mj-text><a href="{map_url}" style="color:{THEME["primary_dark"]};">Open in Google Maps</a></mj-text>'
    mjml = get_base_template(
        title="Booking request received",
        preview_text=f"{reservation.date} {reservation.start_time}",
        content_sections=content,
    )
    return EmailContent(
        subject=f"[{BUSINESS_NAME}] We received your booking request",
        text=text,
        mjml=mjml,
    )


def reservation_confirmed_admin_template(reservation) -> EmailContent:
    rows = _reservation_rows(reservation)
    text = _lines("[Reservation confirmed]", "", *_rows_as_text(rows))
    mjml = get_base_template(
        title="Reservation confirmed",
        preview_text=f"{reservation.date} {reservation.start_time} - {reservation.name}",
        content_sections=_detail_rows(rows),
    )
    return EmailContent(
        subject=f"Reservation confirmed: {reservation.date} {reservation.start_time}",
        text=text,
        mjml=mjml,
    )


def reservation_confirmed_customer_template(reservation) -> EmailContent:
    rows = _reservation_rows(reservation)
    text = _lines(
        f"Thank you for booking with {BUSINESS_NAME}.",
        "Your reservation is confirmed.",
        "",
        *_rows_as_text(rows),
        "",
        AUTO_SENT_NOTICE,
    )
    content = f"""
    <mj-text>Hi {escape(reservation.name)},</mj-text>
    <mj-text>Your reservation is confirmed. We look forward to seeing you.</mj-text>
    {_detail_rows(rows)}
    """
    mjml = get_base_template(
        title="Your reservation is confirmed",
        preview_text=f"{reservation.date} {reservation.start_time}",
        content_sections=content,
    )
    return EmailContent(
        subject=f"[{BUSINESS_NAME}] Your reservation is confirmed",
        text=text,
        mjml=mjml,
    )


def reservation_denied_customer_template(reservation) -> EmailContent:
    """Fixed wording: the requested slot is no longer available"""
    unavailable = (
        f"Unfortunately, the requested time {reservation.date} {reservation.start_time} "
        "is already fully booked."
    )
    text = _lines(
        f"Dear {reservation.name},",
        "",
        "Thank you for your reservation request.",
        unavailable,
        "We would be glad to welcome you at another date or time.",
        "",
        AUTO_SENT_NOTICE,
    )
    content = f"""
    <mj-text>Dear {escape(reservation.name)},</mj-text>
    <mj-text>Thank you for your reservation request.</mj-text>
    <mj-text>{escape(unavailable)}</mj-text>
    <mj-text>We would be glad to welcome you at another date or time.</mj-text>
    """
    mjml = get_base_template(
        title="We could not accept your reservation",
        preview_text=unavailable,
        content_sections=content,
    )
    return EmailContent(
        subject=f"[{BUSINESS_NAME}] Your reservation could not be accepted",
        text=text,
        mjml=mjml,
    )
