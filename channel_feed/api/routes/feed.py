"""
Feed API - cursor-paginated list of channel posts for the embed widget
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from channel_feed.api.dependencies.channel_config import get_channel_config
from channel_feed.core.config import ChannelConfig
from channel_feed.db.channel_post_store import ChannelPostStore
from channel_feed.db.database import get_db
from channel_feed.domain.services.cache_tag import compute_etag, etag_matches
from channel_feed.domain.services.feed_service import FeedService
from channel_feed.schemas import FeedResponse

router = APIRouter()


@router.get(
    "/feed",
    response_model=FeedResponse,
    summary="Channel feed page",
    description=(
        "Posts of the configured channel, newest first. `before` and `after` are "
        "exclusive message_id bounds and may be combined. `limit` is clamped to "
        "the configured maximum. Supports `If-None-Match`: a matching ETag yields "
        "304 with an empty body."
    ),
    responses={
        200: {
            "description": "Feed page",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {"message_id": 5, "key": "mychannel/5"},
                            {"message_id": 3, "key": "mychannel/3"},
                        ]
                    }
                }
            },
        },
        304: {"description": "Page unchanged since the supplied ETag"},
        500: {"description": "Feed could not be loaded"},
    },
)
async def get_feed(
    limit: Optional[int] = Query(None, description="Page size"),
    before: Optional[int] = Query(None, description="Only posts with message_id < before"),
    after: Optional[int] = Query(None, description="Only posts with message_id > after"),
    if_none_match: Optional[str] = Header(None),
    config: ChannelConfig = Depends(get_channel_config),
    db: AsyncSession = Depends(get_db),
) -> Response:
    service = FeedService(ChannelPostStore(db), config)
    page = await service.get_page(limit=limit, before=before, after=after)

    items = [item.model_dump() for item in page]
    etag = compute_etag(items)
    headers = {
        "ETag": etag,
        "Cache-Control": f"public, max-age={config.cache_max_age}",
    }

    if etag_matches(if_none_match, etag):
        return Response(status_code=304, headers=headers)

    return JSONResponse(content={"items": items}, headers=headers)
