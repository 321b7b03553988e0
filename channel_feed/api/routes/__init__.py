"""
API Routes
"""
from fastapi import APIRouter

from channel_feed.api.routes.feed import router as feed_router
from channel_feed.api.webhooks.telegram import router as telegram_router

router = APIRouter()

router.include_router(feed_router, tags=["feed"])
router.include_router(telegram_router, prefix="/telegram", tags=["webhooks"])
