import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings
from app.models.appointment import AppointmentRequest, AppointmentResult

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html_body: str) -> bool:
    """Send email via SMTP (blocking). Use from background task. Failures are logged, not raised."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send to %s", to_email)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)
        return False


def _html_escape(s: str | None) -> str:
    return (
        (s or "")
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _row(label: str, value: str) -> str:
    return (
        f'<p style="margin:12px 0 0 0;font-size:12px;text-transform:uppercase;letter-spacing:0.5px;color:#6b7280;">{label}</p>'
        f'<p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{value}</p>'
    )


def _layout(title: str, heading: str, body: str) -> str:
    """Shared shell for all outgoing mail: card, heading, branded footer."""
    contact = _html_escape(settings.contact_email)
    if settings.contact_phone:
        contact += f" &nbsp;·&nbsp; {_html_escape(settings.contact_phone)}"
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Oxygen,Ubuntu,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;overflow:hidden;">
          <tr>
            <td style="padding:32px 32px 24px 32px;">
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">{heading}</h1>
              {body}
            </td>
          </tr>
          <tr>
            <td style="padding:24px 32px 32px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
              <p style="margin:0 0 4px 0;font-size:13px;font-weight:600;color:#111827;">{_html_escape(settings.site_name)}</p>
              <p style="margin:0;font-size:13px;color:#6b7280;">{contact}<br><a href="{settings.site_url}">{_html_escape(settings.site_url)}</a></p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def _details_box(rows: str) -> str:
    return (
        '<table role="presentation" width="100%" cellspacing="0" cellpadding="0" '
        'style="background:#f9fafb;border-radius:8px;margin:16px 0 24px 0;">'
        f'<tr><td style="padding:8px 24px 20px 24px;">{rows}</td></tr></table>'
    )


# ---- Appointments ----


def _appointment_rows(request: AppointmentRequest, result: AppointmentResult) -> str:
    rows = _row("Date", result.formatted_date)
    rows += _row("Time", f"{result.formatted_time} ({settings.calendar_timezone})")
    rows += _row("Duration", f"{settings.slot_duration_minutes} minutes")
    rows += _row("Meeting type", result.meeting_type.label)
    rows += _row("Project type", _html_escape(request.project_type))
    if result.meeting_link:
        link = _html_escape(result.meeting_link)
        rows += _row("Video call link", f'<a href="{link}">{link}</a>')
    return rows


def build_appointment_confirmation_html(request: AppointmentRequest, result: AppointmentResult) -> str:
    if result.meeting_link:
        where = "Use the video call link above to join at your scheduled time."
    else:
        where = "We'll send you the meeting location separately, or contact us if you need directions."
    body = (
        f'<p style="margin:0 0 8px 0;font-size:15px;color:#6b7280;">Hi {_html_escape(request.name)}, '
        f"your consultation with {_html_escape(settings.site_name)} is booked.</p>"
        + _details_box(_appointment_rows(request, result))
        + f'<p style="margin:0 0 16px 0;font-size:14px;color:#374151;">{where}</p>'
        + '<p style="margin:0 0 8px 0;font-size:14px;color:#374151;">If you need to reschedule or cancel, please contact us.</p>'
    )
    return _layout("Appointment Confirmation", "Appointment Confirmed", body)


def build_operator_appointment_notification_html(request: AppointmentRequest, result: AppointmentResult) -> str:
    client = _row("Name", _html_escape(request.name))
    client += _row("Email", _html_escape(str(request.email)))
    client += _row("Phone", _html_escape(request.phone))
    description = _html_escape(request.description) or "(none provided)"
    body = (
        '<p style="margin:0 0 8px 0;font-size:15px;color:#6b7280;">A new consultation has been scheduled.</p>'
        + _details_box(client)
        + _details_box(_appointment_rows(request, result))
        + '<p style="margin:0 0 8px 0;color:#374151;"><strong>Project description:</strong></p>'
        + f'<p style="margin:0 0 24px 0;color:#6b7280;font-size:14px;">{description}</p>'
        + f'<p style="margin:0;font-size:12px;color:#9ca3af;">Calendar event: {_html_escape(result.calendar_event_id)}</p>'
    )
    return _layout("New Appointment", "New Appointment Booked", body)


def send_booking_notifications(request: AppointmentRequest, result: AppointmentResult) -> None:
    """Confirmation to the requester and a heads-up to the operator mailbox (call from background task)."""
    send_email(
        str(request.email),
        f"Appointment Confirmed - {settings.site_name} Consultation on {result.formatted_date}",
        build_appointment_confirmation_html(request, result),
    )
    if settings.operator_mailbox:
        send_email(
            settings.operator_mailbox,
            f"New Appointment: {request.name} - {result.formatted_date} at {result.formatted_time}",
            build_operator_appointment_notification_html(request, result),
        )


# ---- Contact form ----


def build_contact_confirmation_html(full_name: str, service_label: str | None) -> str:
    topic = f" about <strong>{_html_escape(service_label)}</strong>" if service_label else ""
    body = (
        f'<p style="margin:0 0 16px 0;font-size:15px;color:#6b7280;">Hi {_html_escape(full_name)},</p>'
        f'<p style="margin:0 0 16px 0;font-size:14px;color:#374151;">Thank you for reaching out{topic}. '
        "We've received your inquiry and will get back to you within one business day.</p>"
    )
    return _layout("We received your message", "Thanks for contacting us", body)


def build_contact_notification_html(fields: dict[str, str], message: str) -> str:
    rows = "".join(_row(label, _html_escape(value)) for label, value in fields.items() if value)
    body = (
        '<p style="margin:0 0 8px 0;font-size:15px;color:#6b7280;">A new inquiry came in through the website.</p>'
        + _details_box(rows)
        + '<p style="margin:0 0 8px 0;color:#374151;"><strong>Message:</strong></p>'
        + f'<p style="margin:0;color:#6b7280;font-size:14px;">{_html_escape(message)}</p>'
    )
    return _layout("New contact form submission", "New Contact Form Submission", body)


def send_contact_emails(
    email: str, full_name: str, service_label: str | None, fields: dict[str, str], message: str
) -> None:
    send_email(
        email,
        f"Thank you for contacting {settings.site_name}",
        build_contact_confirmation_html(full_name, service_label),
    )
    if settings.operator_mailbox:
        send_email(
            settings.operator_mailbox,
            f"New Contact Form: {full_name}" + (f" - {service_label}" if service_label else ""),
            build_contact_notification_html(fields, message),
        )


# ---- Newsletter ----


def build_newsletter_welcome_html() -> str:
    body = (
        '<p style="margin:0 0 16px 0;font-size:15px;color:#6b7280;">Thanks for subscribing!</p>'
        '<p style="margin:0 0 16px 0;font-size:14px;color:#374151;">You\'ll receive our latest insights, '
        "project highlights and industry news. You can unsubscribe at any time by replying to this email.</p>"
    )
    return _layout(f"Welcome to the {settings.site_name} newsletter", "Welcome aboard", body)


def build_newsletter_notification_html(email: str, subscribed_at: datetime) -> str:
    rows = _row("Email", _html_escape(email)) + _row("Subscribed at", subscribed_at.isoformat())
    return _layout("New newsletter subscription", "New Newsletter Subscription", _details_box(rows))


def send_newsletter_emails(email: str, subscribed_at: datetime) -> None:
    send_email(email, f"Welcome to the {settings.site_name} newsletter", build_newsletter_welcome_html())
    if settings.operator_mailbox:
        send_email(
            settings.operator_mailbox,
            f"New Newsletter Subscription: {email}",
            build_newsletter_notification_html(email, subscribed_at),
        )
