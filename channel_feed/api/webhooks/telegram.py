"""
Telegram Webhook Handler - channel post ingestion
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from channel_feed.api.dependencies.channel_config import get_channel_config
from channel_feed.api.dependencies.webhook_auth import verify_webhook_secret
from channel_feed.core.config import ChannelConfig
from channel_feed.core.logging import get_logger
from channel_feed.db.channel_post_store import ChannelPostStore
from channel_feed.db.database import get_db
from channel_feed.domain.services.ingest_service import ChannelPostIngestService

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/webhook",
    summary="Webhook - Telegram (channel posts)",
    description=(
        "Receives updates from the Telegram Bot API. Channel posts of the configured "
        "channel are stored once per message_id; every other update is acknowledged "
        "and ignored. Responds 401 on a bad secret token and 500 only when storage "
        "fails, which makes Telegram redeliver the update."
    ),
    responses={
        200: {
            "description": "Update processed or intentionally ignored",
            "content": {
                "application/json": {
                    "example": {"ok": True, "status": "stored", "message_id": 42}
                }
            },
        },
        401: {"description": "Missing or invalid X-Telegram-Bot-Api-Secret-Token"},
        500: {"description": "Storage failure; Telegram will redeliver"},
    },
)
async def telegram_webhook(
    request: Request,
    _: None = Depends(verify_webhook_secret),
    config: ChannelConfig = Depends(get_channel_config),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Handle an incoming Telegram update.

    The body is read only after authentication. An unparseable body is
    acknowledged like any other update this service does not model.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.info("Webhook body is not valid JSON; ignoring")
        payload = None

    service = ChannelPostIngestService(ChannelPostStore(db), config)
    result = await service.ingest(payload)

    response: dict = {"ok": True, "status": result.outcome.value}
    if result.message_id is not None:
        response["message_id"] = result.message_id
    if result.reason:
        response["reason"] = result.reason
    return response
