"""Shared-secret verification for database change webhooks."""

import os
import hmac
import logging
from taskdesk.utils.errors import WebhookVerificationError

logger = logging.getLogger(__name__)


def should_bypass_verification() -> bool:
    """Check if secret verification should be bypassed (dev mode)."""
    env = os.environ.get("ENVIRONMENT", "").lower()
    if env in ("development", "local"):
        return True
    return os.environ.get("WEBHOOK_BYPASS_VERIFY", "").lower() == "true"


def get_webhook_secret() -> str:
    secret = os.environ.get("WEBHOOK_SECRET", "").strip()
    if not secret:
        raise WebhookVerificationError("WEBHOOK_SECRET not set")
    return secret


def verify_webhook_secret(secret: str, provided: str) -> bool:
    """Constant-time comparison of the configured and provided secrets."""
    if not secret or not provided:
        return False
    return hmac.compare_digest(secret.encode("utf-8"), provided.encode("utf-8"))


def verify_webhook_request(provided: str) -> bool:
    """
    Verify a webhook request's secret header.

    Returns True if verification passes or is bypassed, False otherwise.
    """
    if should_bypass_verification():
        logger.debug("Webhook verification bypassed (dev mode)")
        return True

    try:
        result = verify_webhook_secret(get_webhook_secret(), provided)
    except WebhookVerificationError as e:
        logger.error(f"Webhook verification error: {e}")
        return False
    if not result:
        logger.warning(f"Webhook secret mismatch - has_secret_header={bool(provided)}")
    return result
