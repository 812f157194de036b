"""
Notification sink for booking e-mails.

Every message gets an EmailLog row. With EMAIL_DELIVERY_ENABLED off (the
default) nothing leaves the process: the message is logged and the row marked
``logged``. Otherwise delivery is attempted once inline; failures are left as
``failed`` for the worker (tasks.jobs.process_email_queue) to retry.
"""
from datetime import datetime, timezone
import logging
import smtplib
from email.message import EmailMessage
from sqlalchemy.orm import Session
import uuid
import requests

from felka.core.config import settings
from felka.models.email_log import EmailLog

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def _deliver(log: EmailLog) -> bool:
    try:
        send_email(log.to_email, log.subject, log.body or "")
    except Exception:
        # marked failed, the rest of the batch still goes out
        logger.warning("email %s to %r failed", log.id, log.to_email, exc_info=True)
        log.status = "failed"
        return False
    log.status = "sent"
    log.sent_at = datetime.now(timezone.utc)
    return True


def queue_email(db: Session, to_email: str, subject: str, body: str, related_booking_id: str = "") -> str:
    eid = str(uuid.uuid4())
    log = EmailLog(
        id=eid,
        to_email=to_email,
        subject=subject,
        body=body,
        status="queued",
        related_booking_id=related_booking_id,
    )
    db.add(log)
    db.commit()

    if not settings.EMAIL_DELIVERY_ENABLED:
        logger.info("email to %s (delivery disabled): %s", to_email, subject)
        log.status = "logged"
    elif _deliver(log):
        logger.info("email sent to %s: %s", to_email, subject)
    db.commit()
    return eid


def send_email(to_email: str, subject: str, body: str):
    """Send via SendGrid when an API key is configured, otherwise SMTP."""
    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(to_email, subject, body)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(to_email: str, subject: str, body: str):
    r = requests.post(
        SENDGRID_URL,
        json={
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        },
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Retry up to `limit` queued or failed e-mails, oldest first. Returns counts."""
    if not settings.EMAIL_DELIVERY_ENABLED:
        return {"processed": 0, "sent": 0, "failed": 0, "skipped": True}
    pending = (
        db.query(EmailLog)
        .filter(EmailLog.status.in_(["queued", "failed"]), EmailLog.body.isnot(None), EmailLog.body != "")
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent = sum(1 for log in pending if _deliver(log))
    if pending:
        db.commit()
    return {"processed": len(pending), "sent": sent, "failed": len(pending) - sent}
