"""
Domain Services
"""
from channel_feed.domain.services.feed_service import FeedService
from channel_feed.domain.services.ingest_service import ChannelPostIngestService

__all__ = [
    "FeedService",
    "ChannelPostIngestService",
]
