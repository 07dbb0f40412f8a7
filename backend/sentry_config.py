"""
Sentry Error Monitoring Configuration
Error tracking for Watchtower bots
"""
import os
import logging
import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger("Sentry")


def filter_sensitive_data(event, hint):
    """Remove RPC credentials and secrets from Sentry events."""
    sensitive_keys = ['rpc_url', 'api_key', 'secret', 'private_key', 'webhook']

    # Filter extra context
    extra = event.get('extra')
    if isinstance(extra, dict):
        for key in list(extra):
            if any(s in key.lower() for s in sensitive_keys):
                extra[key] = '[FILTERED]'

    # Filter exception values that might contain keys
    if 'exception' in event and 'values' in event['exception']:
        for exc in event['exception']['values']:
            if 'value' in exc and exc['value']:
                for key in sensitive_keys:
                    if key in exc['value'].lower():
                        exc['value'] = '[FILTERED - sensitive data]'

    return event


def init_sentry() -> bool:
    """Initialize Sentry when SENTRY_DSN is set."""
    dsn = os.getenv("SENTRY_DSN")

    if not dsn:
        logger.info("No SENTRY_DSN found - error tracking disabled")
        return False

    environment = os.getenv("WATCHTOWER_ENV", "development")
    release = os.getenv("COMMIT_SHA", "local")

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.0,
        integrations=[
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR
            ),
        ],
        before_send=filter_sensitive_data,
        send_default_pii=False,
        release=f"watchtower-bots@{release}",
    )

    logger.info(f"✓ Sentry initialized for {environment} (release: {release[:8]})")
    return True


def capture_blockchain_breadcrumb(action: str, chain: str = "ethereum", details: dict = None):
    """Add breadcrumb for a block or transaction being handled."""
    sentry_sdk.add_breadcrumb(
        category="blockchain",
        message=action,
        level="info",
        data={"chain": chain, **(details or {})}
    )


def capture_unit_failure(error: Exception, unit: str):
    """Report a failed unit of work with its identifier attached."""
    sentry_sdk.capture_exception(error, tags={"unit": unit})
