from celery import Celery
from celery.schedules import crontab

from app.config import settings
from app.database import get_sessionmaker
from app.services.reconcile import all_profile_ids, reconcile_user
from app.utils.logging import configure_logging, logger

REDIS_URL = settings.REDIS_URL

celery = Celery("rankpoints", broker=REDIS_URL, backend=REDIS_URL)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    broker_connection_retry_on_startup=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "reconcile-rank-points-nightly": {
            "task": "reconcile_all_rank_points",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)

configure_logging()

@celery.task(name="reconcile_rank_points", autoretry_for=(Exception,), retry_backoff=True, max_retries=5)
def reconcile_rank_points(user_id: str):
    SessionLocal = get_sessionmaker()
    with SessionLocal() as db:
        result = reconcile_user(db, user_id)
    if result is None:
        logger.warning("Reconcile skipped: no profile for %s", user_id)
        return {"ok": False, "user_id": user_id}
    return {
        "ok": True,
        "user_id": user_id,
        "rank_points": result.new_points,
        "rank": result.new_rank,
        "repaired": result.repaired,
        "ledger_behind": result.ledger_behind,
    }

@celery.task(name="reconcile_all_rank_points")
def reconcile_all_rank_points():
    SessionLocal = get_sessionmaker()
    with SessionLocal() as db:
        user_ids = all_profile_ids(db)
    for user_id in user_ids:
        reconcile_rank_points.delay(user_id)
    logger.info("Queued reconciliation for %s profiles", len(user_ids))
    return {"ok": True, "queued": len(user_ids)}
