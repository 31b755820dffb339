"""
MJML Email Templates
Booking notification emails built on one responsive base layout
"""

from typing import Optional
from urllib.parse import urlencode

from .config import FRONTEND_URL

# Brand colors - Emerald/Slate color scheme
THEME = {
    "primary": "#10b981",
    "primary_dark": "#059669",
    "primary_light": "#dcfce7",
    "background": "#f9fafb",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#166534",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

BRAND_NAME = "HOH108"

# Customer-facing wording for each booking status
STATUS_MESSAGES = {
    "pending": "Booking received",
    "confirmed": "Booking confirmed",
    "provider_on_way": "Your service provider is on the way",
    "in_progress": "Work in progress",
    "work_completed": "Work completed, awaiting your confirmation",
    "completed": "Service completed",
    "cancelled_by_customer": "Cancelled by you",
    "cancelled_by_provider": "Cancelled by the service provider",
    "cancelled_by_admin": "Cancelled by HOH108",
    "no_show_customer": "Marked as customer not available",
    "no_show_provider": "Service provider did not arrive",
    "rescheduled": "Booking rescheduled",
}


def track_booking_url(booking_code: str, phone: str) -> str:
    return f"{FRONTEND_URL}/track-booking?{urlencode({'bookingId': booking_code, 'phone': phone})}"


def _detail_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    """Render label/value pairs as an mj-table, skipping empty values"""
    rendered = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']};">{label}</td>
          <td style="padding: 6px 0; text-align: right; font-weight: 600; color: {THEME['text_primary']};">{value}</td>
        </tr>"""
        for label, value in rows
        if value not in (None, "")
    )
    return f"""
    <mj-table padding="0 0 24px 0" font-size="15px">
      {rendered}
    </mj-table>
    """


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="6px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="26px" font-weight="700" color="#ffffff" padding="0">
              {BRAND_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="40px 40px 32px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="#94a3b8" padding="0">
              Thank you for choosing {BRAND_NAME}!
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              © {BRAND_NAME}. All rights reserved.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def booking_confirmation_template(ctx: dict) -> str:
    """Sent to the customer right after a booking is created"""
    content = f"""
    <mj-text>
      Dear {ctx['customer_name']},
    </mj-text>

    <mj-text padding="0 0 24px 0">
      Thank you for booking with us. We have received your request and will
      assign a verified service provider shortly.
    </mj-text>

    {_detail_rows([
        ("Booking ID", ctx['booking_code']),
        ("Service", ctx.get('service_title')),
        ("Date", ctx.get('scheduled_date')),
        ("Time", ctx.get('time_slot')),
        ("Address", ctx.get('address')),
        ("Total", f"₹{ctx.get('total', 0):.2f}"),
    ])}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Keep your Booking ID and phone number handy to track this booking.
    </mj-text>
    """
    return get_base_template(
        title="Booking Confirmed",
        preview_text=f"Your booking {ctx['booking_code']} has been received",
        content_sections=content,
        cta_url=track_booking_url(ctx["booking_code"], ctx["customer_phone"]),
        cta_label="Track Booking",
    )


def provider_assigned_template(ctx: dict) -> str:
    provider_rows = [
        ("Name", ctx.get("provider_name")),
        ("Phone", ctx.get("provider_phone")),
    ]
    if ctx.get("provider_rating"):
        provider_rows.append(("Rating", f"⭐ {ctx['provider_rating']:.1f}/5.0"))

    content = f"""
    <mj-text>
      Dear {ctx['customer_name']},
    </mj-text>

    <mj-text padding="0 0 24px 0">
      A service provider has been assigned to your booking <strong>{ctx['booking_code']}</strong>.
    </mj-text>

    {_detail_rows(provider_rows)}

    {_detail_rows([
        ("Service", ctx.get('service_title')),
        ("Date", ctx.get('scheduled_date')),
        ("Time", ctx.get('time_slot')),
    ])}
    """
    return get_base_template(
        title="Service Provider Assigned",
        preview_text=f"{ctx.get('provider_name')} will handle your booking",
        content_sections=content,
        cta_url=track_booking_url(ctx["booking_code"], ctx["customer_phone"]),
        cta_label="View Booking",
    )


def status_update_template(ctx: dict) -> str:
    status_message = STATUS_MESSAGES.get(ctx["status"], ctx["status"])
    content = f"""
    <mj-text>
      Dear {ctx['customer_name']},
    </mj-text>

    <mj-text>
      Your booking <strong>{ctx['booking_code']}</strong> has been updated.
    </mj-text>

    <mj-text align="center" padding="16px 0 24px 0">
      <span style="display: inline-block; padding: 8px 16px; border-radius: 20px; font-weight: 700; background: {THEME['primary_light']}; color: {THEME['success']};">
        {status_message}
      </span>
    </mj-text>

    {_detail_rows([
        ("Service", ctx.get('service_title')),
        ("Scheduled", f"{ctx.get('scheduled_date')} at {ctx.get('time_slot_start')}"),
    ])}
    """
    return get_base_template(
        title="Booking Status Update",
        preview_text=status_message,
        content_sections=content,
        cta_url=track_booking_url(ctx["booking_code"], ctx["customer_phone"]),
        cta_label="View Details",
    )


def completion_otp_template(ctx: dict) -> str:
    content = f"""
    <mj-text>
      Dear {ctx['customer_name']},
    </mj-text>

    <mj-text>
      Your service provider <strong>{ctx.get('provider_name')}</strong> has completed the
      service: <strong>{ctx.get('service_title')}</strong>.
    </mj-text>

    <mj-text>
      Please share the following OTP with your service provider to confirm completion:
    </mj-text>

    <mj-text align="center" font-size="32px" font-weight="700" letter-spacing="6px"
      color="{THEME['text_primary']}" container-background-color="{THEME['background']}" padding="20px 0">
      {ctx['otp']}
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="16px 0 0 0">
      This OTP is valid for {ctx.get('ttl_minutes', 10)} minutes. Booking ID: {ctx['booking_code']}
    </mj-text>
    """
    return get_base_template(
        title="Service Completion Verification",
        preview_text="Share this OTP with your service provider",
        content_sections=content,
    )


def booking_completed_template(ctx: dict) -> str:
    content = f"""
    <mj-text>
      Dear {ctx['customer_name']},
    </mj-text>

    <mj-text>
      Your service for booking <strong>{ctx['booking_code']}</strong> has been completed successfully!
    </mj-text>

    <mj-text padding="0 0 24px 0">
      We hope you're satisfied with the service. Your feedback helps us improve.
    </mj-text>

    {_detail_rows([
        ("Service", ctx.get('service_title')),
        ("Provider", ctx.get('provider_name') or "N/A"),
        ("Total Paid", f"₹{ctx.get('total', 0):.2f}"),
    ])}
    """
    return get_base_template(
        title="Service Completed!",
        preview_text=f"Booking {ctx['booking_code']} is complete",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/profile/projects",
        cta_label="Rate Your Experience",
    )
