from django.conf import settings

DEFAULTS = {
    "EXPIRY_DAYS": 7,
    "DEFAULT_LIMIT": 10,
    "DIVERSITY_CAP": 20,
    "PROFILE_STALE_HOURS": 24,
    "PROFILE_BATCH_SIZE": 100,
    "SIMILARITY_BATCH_SIZE": 500,
    "SIMILARITY_NEIGHBORS": 20,
    "STRATEGY_WORKERS": 1,
    "JOB_LOCK_TIMEOUT": 60 * 60,
}


def get_setting(name):
    """Read a key of ``settings.AI_RECOMMENDATIONS``, falling back to DEFAULTS."""
    overrides = getattr(settings, "AI_RECOMMENDATIONS", {}) or {}
    return overrides.get(name, DEFAULTS[name])
