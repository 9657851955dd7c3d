import logging

from app.core.config import get_settings
from app.services.mailer import send_email
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.workers.tasks.send_email_job")
def send_email_job(to: str, subject: str, html: str) -> bool:
    return send_email(to, subject, html)


def queue_email(to: str, subject: str, html: str) -> None:
    settings = get_settings()
    if settings.celery_task_always_eager:
        send_email_job(to, subject, html)
        return
    task = send_email_job.delay(to, subject, html)
    logger.info("email_queued", extra={"to": to, "task_id": task.id})
