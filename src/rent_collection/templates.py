"""Texts for landlord notifications, reminder e-mails and tenant messages."""

import calendar
from decimal import Decimal

from rent_collection.models import (
    Email,
    Lease,
    Notification,
    NotificationType,
    PropertyAddress,
    RentPaymentTracking,
)

FINANCES_LINK = "/dashboard/finances"
CONVERSATIONS_LINK = "/conversations"


def month_name(month: int) -> str:
    return calendar.month_name[month]


def format_amount(cents: int) -> str:
    return f"{Decimal(cents) / 100:.2f} €"


def format_address(postal: PropertyAddress) -> str:
    """Readable one-line address, falling back to the free-form field."""
    parts: list[str] = []
    if postal.address_line1:
        parts.append(postal.address_line1)
    if postal.apartment:
        parts.append(f"Apt {postal.apartment}")
    if postal.building:
        parts.append(f"Bldg {postal.building}")
    if postal.zip_code and postal.city:
        parts.append(f"{postal.zip_code} {postal.city}")
    return ", ".join(parts) or postal.address or "Address not provided"


def late_notification(tracking: RentPaymentTracking, lease: Lease) -> Notification:
    return Notification(
        user_id=lease.landlord_id,
        type=NotificationType.RENT_LATE,
        title="Rent not detected",
        message=(
            f"Rent for {month_name(tracking.period_month)} has not been detected for "
            f"{format_address(lease.property_address)}. Please check your bank statements."
        ),
        link=FINANCES_LINK,
    )


def overdue_notification(tracking: RentPaymentTracking, lease: Lease) -> Notification:
    return Notification(
        user_id=lease.landlord_id,
        type=NotificationType.RENT_OVERDUE,
        title="Rent unpaid",
        message=(
            f"Rent for {month_name(tracking.period_month)} is still unpaid for "
            f"{format_address(lease.property_address)}."
        ),
        link=FINANCES_LINK,
    )


def critical_notification(tracking: RentPaymentTracking, lease: Lease) -> Notification:
    return Notification(
        user_id=lease.landlord_id,
        type=NotificationType.RENT_CRITICAL,
        title="Critical alert - Unpaid rent",
        message=(
            f"Rent for {month_name(tracking.period_month)} has still not been settled for "
            f"{format_address(lease.property_address)}. We recommend getting in touch with "
            "your tenant."
        ),
        link=FINANCES_LINK,
    )


def tenant_reminder_notification(tracking: RentPaymentTracking, lease: Lease) -> Notification:
    return Notification(
        user_id=lease.tenant_id,
        type=NotificationType.RENT_REMINDER,
        title="Rent reminder",
        message=(
            f"A reminder about your rent for {month_name(tracking.period_month)} "
            "has been sent to you."
        ),
        link=CONVERSATIONS_LINK,
    )


def landlord_reminder_email(
    tracking: RentPaymentTracking, lease: Lease, recipient: str, app_url: str
) -> Email:
    period = f"{month_name(tracking.period_month)} {tracking.period_year}"
    address = format_address(lease.property_address)
    html = f"""
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Rent follow-up - {period}</h2>
  <p>Hello,</p>
  <p>We have not yet detected the rent payment for <strong>{period}</strong>
     for your property at <strong>{address}</strong>.</p>
  <p>Expected amount: <strong>{format_amount(tracking.expected_amount_cents)}</strong></p>
  <p>If you have already received the payment, you can confirm it manually from your account.</p>
  <p>
    <a href="{app_url.rstrip("/")}{FINANCES_LINK}"
       style="display: inline-block; padding: 12px 24px; background: #2563eb; color: white; border-radius: 8px; text-decoration: none;">
      View my finances
    </a>
  </p>
</div>
""".strip()
    return Email(
        recipient=recipient,
        subject=f"Rent follow-up - Reminder {period}",
        html=html,
    )


def friendly_reminder_message(tracking: RentPaymentTracking, lease: Lease) -> str:
    first_name = lease.tenant_first_name or "Tenant"
    return (
        f"Hello {first_name}, we have not yet recorded your rent for "
        f"{month_name(tracking.period_month)} (expected amount: "
        f"{format_amount(tracking.expected_amount_cents)}). If you have already paid, "
        "please disregard this message. If you are having difficulties, do not "
        "hesitate to discuss it with your landlord."
    )
