from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready
from felka.core.config import settings


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "felka",
    broker=_redis_url,
    backend=_redis_url,
    include=["felka.tasks.jobs"],
)

celery.conf.timezone = settings.TIMEZONE


# Make sure next week's slots exist as soon as a worker comes up
@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    from felka.tasks.jobs import ensure_next_week_slots
    ensure_next_week_slots.delay()


celery.conf.beat_schedule = {
    "ensure-next-week-slots-daily": {
        "task": "felka.tasks.jobs.ensure_next_week_slots",
        "schedule": 86400.0,
    },
    "process-email-queue-every-2-minutes": {
        "task": "felka.tasks.jobs.process_email_queue",
        "schedule": 120.0,
        "kwargs": {"limit": 50},
    },
}
