"""
Database Models
"""
from channel_feed.db.models.channel_post import ChannelPost

__all__ = [
    "ChannelPost",
]
