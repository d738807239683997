from .base import *
from .base import _split_csv
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

# Rehearsal deployment for a new till release; production shape, looser checks.
DEBUG = os.getenv("DEBUG", "0") == "1"

ALLOWED_HOSTS = _split_csv("DJANGO_ALLOWED_HOSTS") or ["*"]

# --- security settings ---
SECURE_SSL_REDIRECT = os.getenv("FORCE_HTTPS", "0") == "1"
SESSION_COOKIE_SECURE = SECURE_SSL_REDIRECT
CSRF_COOKIE_SECURE = SECURE_SSL_REDIRECT

SECURE_HSTS_SECONDS = 3600  # 1 hour
SECURE_HSTS_INCLUDE_SUBDOMAINS = False
SECURE_HSTS_PRELOAD = False

# --- database configuration ---
if not os.getenv("DATABASE_URL") and not os.getenv("PG_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db_staging.sqlite3",
            "OPTIONS": {
                "timeout": 20,
            },
        }
    }
    import warnings
    warnings.warn("Using SQLite in staging - row locks are not enforced")

# --- logging configuration ---
LOGGING["root"]["level"] = "INFO"
for _name in ("orders", "billing", "customers", "accounts"):
    LOGGING["loggers"][_name]["level"] = "DEBUG"

if os.getenv("LOG_SQL", "0") == "1":
    LOGGING["loggers"]["django.db.backends"] = {
        "handlers": ["console", "file"],
        "level": "DEBUG",
        "propagate": False,
    }

# --- api configuration ---
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]

SPECTACULAR_SETTINGS["SERVE_INCLUDE_SCHEMA"] = True

CORS_ALLOWED_ORIGINS = _split_csv("CORS_ALLOWED_ORIGINS", "http://localhost:3000")

# --- error monitoring (sentry) ---
SENTRY_DSN = os.getenv("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration(transaction_style="url")],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "1.0")),
        send_default_pii=False,
        environment="staging",
        release=os.getenv("APP_VERSION", "unknown"),
    )
