from .base import *
from .base import _split_csv

# Local till / back-office work and the test suite run on these settings.
DEBUG = True

ALLOWED_HOSTS = ["*"]

# The POS front end is served from a separate dev server
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOWED_ORIGINS = []
CSRF_TRUSTED_ORIGINS = _split_csv(
    "POS_DEV_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000,http://127.0.0.1:8000",
)

# --- plain HTTP on localhost ---
SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
SECURE_HSTS_SECONDS = 0
SECURE_HSTS_INCLUDE_SUBDOMAINS = False
X_FRAME_OPTIONS = "SAMEORIGIN"

# --- logging: console only, POS apps at DEBUG ---
LOGGING["root"]["level"] = "INFO"
LOGGING["loggers"]["django"]["handlers"] = ["console"]
LOGGING["loggers"]["django.request"]["handlers"] = ["console"]
for _name in POS_LOGGERS:
    LOGGING["loggers"][_name]["handlers"] = ["console"]
    LOGGING["loggers"][_name]["level"] = "DEBUG"

LOGGING["loggers"]["django.db.backends"] = {
    "handlers": ["console"],
    "level": "DEBUG" if os.getenv("DEBUG_SQL", "0") == "1" else "INFO",
    "propagate": False,
}

# Nothing is cached; throttle counters are never stored
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.dummy.DummyCache",
    }
}

STORAGES["staticfiles"] = {
    "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
}

# --- API ---
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    "anon": "1000/hour",
    "user": "10000/hour",
    "login": "100/min",
}
SPECTACULAR_SETTINGS["SERVE_INCLUDE_SCHEMA"] = True

# A till stays logged in for a whole shift
SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"] = timedelta(hours=8)
SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"] = timedelta(days=30)
