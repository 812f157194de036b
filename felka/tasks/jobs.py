from felka.tasks.celery_app import celery
from felka.tasks import worker_jobs


@celery.task(name="felka.tasks.jobs.ensure_next_week_slots")
def ensure_next_week_slots():
    return worker_jobs.ensure_next_week_slots()


@celery.task(name="felka.tasks.jobs.process_email_queue")
def process_email_queue(limit: int = 50):
    return worker_jobs.process_email_queue(limit=limit)
