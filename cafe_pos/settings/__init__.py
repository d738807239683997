# cafe_pos/settings/__init__.py
"""
Django settings package for the Café POS backend.

This package provides environment-specific settings:
- development: Local development with debug enabled (also used by the test suite)
- staging: Production-like environment for testing
- production: Production environment with security hardening

The module is chosen from the ENVIRONMENT variable and defaults to development.
"""

import os
import sys

# Determine which settings to load
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

VALID_ENVIRONMENTS = ["development", "staging", "production"]
if ENVIRONMENT not in VALID_ENVIRONMENTS:
    raise ValueError(
        f"Invalid ENVIRONMENT '{ENVIRONMENT}'. "
        f"Must be one of: {', '.join(VALID_ENVIRONMENTS)}"
    )

if ENVIRONMENT == "production":
    from .production import *
elif ENVIRONMENT == "staging":
    from .staging import *
else:
    from .development import *

ENVIRONMENT_INFO = {
    "name": ENVIRONMENT,
    "debug": DEBUG,
    "allowed_hosts": ALLOWED_HOSTS,
    "database_engine": DATABASES["default"]["ENGINE"],
    "cache_backend": CACHES["default"]["BACKEND"],
}


def validate_settings():
    """Validate critical settings are properly configured."""
    errors = []

    if not SECRET_KEY or (SECRET_KEY == INSECURE_DEV_SECRET_KEY and ENVIRONMENT != "development"):
        errors.append("DJANGO_SECRET_KEY must be set to a secure random value")

    if not DATABASES.get("default"):
        errors.append("Database configuration is missing")

    if ENVIRONMENT == "production" and not ALLOWED_HOSTS:
        errors.append("ALLOWED_HOSTS must be configured for production")

    if ENVIRONMENT == "production" and globals().get("CORS_ALLOW_ALL_ORIGINS", False):
        errors.append("CORS_ALLOW_ALL_ORIGINS should not be True in production")

    if ENVIRONMENT == "production" and DEBUG:
        errors.append("DEBUG should be False in production")

    if errors:
        error_msg = "\n".join([f"  - {error}" for error in errors])
        raise ValueError(f"Settings validation failed:\n{error_msg}")


if "migrate" not in sys.argv and "collectstatic" not in sys.argv:
    try:
        validate_settings()
    except ValueError as e:
        if ENVIRONMENT == "production":
            raise
        print(f"Settings validation warning: {e}")

__all__ = ["ENVIRONMENT_INFO", "validate_settings"]
