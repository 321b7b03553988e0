"""
Authentication of inbound Telegram webhook requests.

Telegram sends ``X-Telegram-Bot-Api-Secret-Token`` with every webhook call
once ``secret_token`` was passed to ``setWebhook``. The dependency compares
it with the configured secret before the request body is read.

Usage:
    @router.post("/webhook")
    async def telegram_webhook(
        ...,
        _: None = Depends(verify_webhook_secret),
    ):
        ...
"""
import hmac

from fastapi import Depends, Header

from channel_feed.api.dependencies.channel_config import get_channel_config
from channel_feed.core.config import ChannelConfig
from channel_feed.core.exceptions import WebhookAuthError
from channel_feed.core.logging import get_logger

logger = get_logger(__name__)


async def verify_webhook_secret(
    x_telegram_bot_api_secret_token: str | None = Header(None),
    config: ChannelConfig = Depends(get_channel_config),
) -> None:
    """
    Reject the request with 401 unless the header equals the configured secret.

    An unset secret rejects every request instead of disabling the check.
    """
    expected = config.webhook_secret
    if not expected:
        logger.error("Webhook secret is not configured; rejecting request")
        raise WebhookAuthError()

    if not x_telegram_bot_api_secret_token:
        logger.warning("Webhook request without X-Telegram-Bot-Api-Secret-Token")
        raise WebhookAuthError()

    # constant-time comparison
    if not hmac.compare_digest(
        x_telegram_bot_api_secret_token.encode("utf-8"),
        expected.encode("utf-8"),
    ):
        logger.warning("Webhook request with invalid secret token")
        raise WebhookAuthError()
