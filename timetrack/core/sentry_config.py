# timetrack/core/sentry_config.py
"""
Sentry error tracking, production only.

Recalculations that keep failing after every retry are reported here so a
day that fell back to auto-generated totals does not go unnoticed.
"""

import logging
import os

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from timetrack import __version__

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = ("cookie", "authorization", "x-api-key")


def init_sentry() -> bool:
    """
    Initialize Sentry if PRODUCTION=true and SENTRY_DSN is set.

    Returns:
        True if Sentry was initialized, False otherwise.
    """
    is_production = os.getenv("PRODUCTION", "false").lower() == "true"
    sentry_dsn = os.getenv("SENTRY_DSN", "").strip()

    if not is_production:
        logger.info("Sentry disabled in development mode")
        return False

    if not sentry_dsn:
        logger.warning("SENTRY_DSN not set. Error tracking disabled.")
        return False

    environment = os.getenv("SENTRY_ENVIRONMENT", "production")
    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FastApiIntegration(),
                StarletteIntegration(),
                # Breadcrumbs from INFO, events from ERROR
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
            release=os.getenv("RELEASE_VERSION", f"timetrack@{__version__}"),
            environment=environment,
            send_default_pii=False,
            attach_stacktrace=True,
            before_send=before_send_hook,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
        return False

    logger.info(f"Sentry initialized (environment: {environment})")
    return True


def before_send_hook(event, hint):
    """Mask credentials in request headers and token query strings."""
    request = event.get("request") or {}

    headers = request.get("headers") or {}
    for header in SENSITIVE_HEADERS:
        if header in headers:
            headers[header] = "[Filtered]"

    query = request.get("query_string")
    if query and "token" in str(query).lower():
        request["query_string"] = "[Filtered]"

    return event


def capture_exception(error: Exception, context: dict | None = None) -> None:
    """
    Report an exception with extra context blocks, e.g. {"interval": {...}}.

    A no-op while Sentry is not initialized.
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_context(key, value)
        sentry_sdk.capture_exception(error)


def set_actor_context(actor_id: int, username: str | None = None) -> None:
    """Attach the acting employee to Sentry events of the current request."""
    sentry_sdk.set_user({"id": actor_id, "username": username})
