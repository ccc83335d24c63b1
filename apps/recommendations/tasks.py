import logging
from contextlib import contextmanager

from celery import shared_task
from django.core.cache import cache

from .conf import get_setting

logger = logging.getLogger(__name__)


@contextmanager
def job_lock(name):
    """
    Holds a cache-backed lock for the duration of a job. Yields False when
    another worker already holds it.
    """
    key = f"recommendations:job-lock:{name}"
    acquired = cache.add(key, "locked", timeout=get_setting("JOB_LOCK_TIMEOUT"))
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)


def _run_job(name, method_name, *args):
    # Import service here to avoid circular dependency at module level
    from .services import MaintenanceService

    with job_lock(name) as acquired:
        if not acquired:
            logger.info(f"Skipping {name}: a previous run is still in progress")
            return None
        logger.info(f"Celery task started: {name}")
        try:
            result = getattr(MaintenanceService(), method_name)(*args)
        except Exception as e:
            logger.error(f"Celery task {name} failed: {e}", exc_info=True)
            return None
        logger.info(f"Celery task finished: {name} ({result})")
        return result


@shared_task(name="recommendations.refresh_stale_profiles")
def refresh_stale_profiles_task():
    """Re-derive learning profiles not refreshed within PROFILE_STALE_HOURS."""
    return _run_job("refresh_stale_profiles", "refresh_stale_profiles")


@shared_task(name="recommendations.recompute_content_similarities")
def recompute_content_similarities_task():
    return _run_job("recompute_content_similarities", "recompute_content_similarities")


@shared_task(name="recommendations.train_models")
def train_models_task():
    return _run_job("train_models", "train_models")


@shared_task(name="recommendations.expire_recommendations")
def expire_recommendations_task():
    """Flip active recommendations past their expiry to expired."""
    return _run_job("expire_recommendations", "expire_recommendations")


@shared_task(name="recommendations.recompute_user_similarities")
def recompute_user_similarities_task(tenant_id):
    from .services import ContentAnalysisService

    with job_lock(f"recompute_user_similarities:{tenant_id}") as acquired:
        if not acquired:
            logger.info(f"Skipping user similarity recompute for tenant {tenant_id}: already running")
            return None
        try:
            return ContentAnalysisService().recompute_user_similarities(tenant_id)
        except Exception as e:
            logger.error(
                f"User similarity recompute failed for tenant {tenant_id}: {e}", exc_info=True
            )
            return None
