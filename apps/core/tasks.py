from asgiref.sync import async_to_sync
from celery import shared_task
import logging

from .store import StoreError
from .students import reset_meals_today

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def reset_meals_today_cache(self):
    """Clear every student's mealsToday flags at day rollover"""
    try:
        count = async_to_sync(reset_meals_today)()
    except StoreError as exc:
        logger.error(f"Failed to reset mealsToday cache: {exc}")

        if self.request.retries < self.max_retries:
            raise self.retry(countdown=60 * (2 ** self.request.retries))
        raise

    logger.info(f"Reset mealsToday for {count} students")
    return count
