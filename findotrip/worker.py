"""
ARQ Background Worker
Runs the daily booking status automation and review request expiry
"""

import logging
import os
from arq.connections import RedisSettings
from arq.cron import cron

# Register every model before any database work so relationships resolve
from . import models  # noqa: F401
from . import models_booking  # noqa: F401
from . import models_chat  # noqa: F401
from . import models_listing  # noqa: F401
from . import models_review  # noqa: F401
from . import models_support  # noqa: F401
from .database import SessionLocal
from .email_service import send_review_invite_email
from .services.status_automation import complete_finished_bookings, expire_review_requests

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    settings = RedisSettings.from_dsn(os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    settings.conn_timeout = 15
    return settings


async def booking_status_automation_task(ctx):
    """
    Daily cron job:
    - Bookings: CONFIRMED → COMPLETED once their end has passed
    - Review invitations emailed for every newly completed booking
    """
    logger.info("Starting daily booking status automation")

    db = SessionLocal()
    try:
        summary = complete_finished_bookings(db)
    except Exception as e:
        logger.error(f"❌ Booking status automation failed: {str(e)}")
        raise
    finally:
        db.close()

    invites = summary.pop("review_invites")
    sent = 0
    for invite in invites:
        result = await send_review_invite_email(**invite)
        if not result.get("error"):
            sent += 1
    summary["review_invites_sent"] = sent
    logger.info(f"Booking status automation complete: {summary}")
    return summary


async def expire_review_requests_task(ctx):
    """Daily cron job: PENDING review requests past their deadline become EXPIRED"""
    db = SessionLocal()
    try:
        summary = expire_review_requests(db)
        logger.info(f"Review request expiry complete: {summary}")
        return summary
    except Exception as e:
        logger.error(f"❌ Review request expiry failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [booking_status_automation_task, expire_review_requests_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))
    health_check_interval = 60
    max_tries = 3

    cron_jobs = [
        cron(booking_status_automation_task, hour=0, minute=5),  # 12:05 AM UTC
        cron(expire_review_requests_task, hour=0, minute=15),
    ]
