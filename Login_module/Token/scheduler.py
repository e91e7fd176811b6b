"""
Scheduler setup for background tasks.
Uses APScheduler to periodically clear expired password reset tokens.
Expiry is always enforced at validation time; this job only keeps the users table tidy.
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session, sessionmaker

from .Reset_token_crud import clear_expired_reset_tokens

logger = logging.getLogger(__name__)


def cleanup_reset_tokens_job(session_factory: sessionmaker) -> None:
    db: Session = session_factory()
    try:
        cleared = clear_expired_reset_tokens(db)
        logger.info(f"Reset token cleanup completed. Cleared {cleared} expired token(s).")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during reset token cleanup: {str(e)}")
    finally:
        db.close()


def start_scheduler(session_factory: sessionmaker, interval_minutes: int = 60) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        cleanup_reset_tokens_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[session_factory],
        id="reset_token_cleanup",
        name="Cleanup expired password reset tokens",
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Background scheduler started. Reset token cleanup scheduled every {interval_minutes} minutes.")
    return scheduler


def shutdown_scheduler(scheduler: BackgroundScheduler) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
