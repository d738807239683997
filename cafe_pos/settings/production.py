from .base import *
from .base import _split_csv
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

# Live café deployment. Everything money-related must be configured explicitly.
DEBUG = False

ALLOWED_HOSTS = _split_csv("DJANGO_ALLOWED_HOSTS")
if not ALLOWED_HOSTS:
    raise ValueError("DJANGO_ALLOWED_HOSTS must be set in production")

# --- HTTPS only ---
SECURE_SSL_REDIRECT = True
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_HSTS_SECONDS = 60 * 60 * 24 * 365
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

# --- database: row locks for table settlement need a real server ---
if not os.getenv("DATABASE_URL") and not os.getenv("PG_NAME"):
    raise ValueError("Database configuration is required in production")

DATABASES["default"]["CONN_MAX_AGE"] = 600
DATABASES["default"]["OPTIONS"] = {
    "sslmode": "require",
    "options": "-c default_transaction_isolation=read_committed",
}

# --- point of sale ---
if not os.getenv("POS_TAX_RATE"):
    raise ValueError("POS_TAX_RATE must be set in production (use 0.00 for no tax)")

SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"
SESSION_CACHE_ALIAS = "default"

WHITENOISE_USE_FINDERS = True
WHITENOISE_AUTOREFRESH = False

# --- logging: optional JSON file for log shipping ---
if os.getenv("USE_JSON_LOGGING", "0") == "1":
    LOGGING["handlers"]["json_file"] = {
        "level": "INFO",
        "class": "logging.handlers.RotatingFileHandler",
        "filename": LOG_DIR / "cafe_pos.json",
        "maxBytes": 15 * 1024 * 1024,
        "backupCount": 10,
        "formatter": "json",
        "filters": ["request_id"],
    }
    for logger_name in ("django",) + POS_LOGGERS:
        LOGGING["loggers"][logger_name]["handlers"].append("json_file")

if os.getenv("LOG_DB_QUERIES", "0") == "1":
    LOGGING["loggers"]["django.db.backends"] = {
        "handlers": ["file"],
        "level": "DEBUG",
        "propagate": False,
    }

SENTRY_DSN = os.getenv("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration(transaction_style="url")],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
        environment=os.getenv("ENVIRONMENT", "production"),
        release=os.getenv("APP_VERSION", "unknown"),
    )

# --- API ---
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    "anon": os.getenv("DRF_ANON_THROTTLE_RATE", "100/hour"),
    "user": os.getenv("DRF_USER_THROTTLE_RATE", "5000/hour"),
    "login": "5/min",
}
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [
    "rest_framework.renderers.JSONRenderer",
]

# Tills and the back office live on known origins
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = _split_csv("CORS_ALLOWED_ORIGINS")
if not CORS_ALLOWED_ORIGINS:
    raise ValueError("CORS_ALLOWED_ORIGINS must be set in production")

CORS_ALLOW_HEADERS = [
    "accept",
    "accept-encoding",
    "authorization",
    "content-type",
    "origin",
    "user-agent",
    "x-csrftoken",
    "x-requested-with",
    "x-request-id",
]

for setting in ("SECRET_KEY", "ALLOWED_HOSTS", "CORS_ALLOWED_ORIGINS"):
    if not globals().get(setting):
        raise ValueError(f"{setting} must be set in production")
