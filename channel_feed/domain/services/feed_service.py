"""
Feed Service - cursor pagination over stored channel posts.

Pages are ordered by message_id descending. Callers derive the next
``before`` cursor from the smallest id of a page and poll for new posts
with ``after`` set to the largest id they have seen.
"""
from typing import List, Optional

from channel_feed.core.config import ChannelConfig
from channel_feed.db.channel_post_store import ChannelPostStore
from channel_feed.schemas import MESSAGE_ID_MAX, FeedItem


def clamp_limit(limit: Optional[int], config: ChannelConfig) -> int:
    """Page size within ``[1, max_limit]``; ``None`` means the configured default."""
    if limit is None:
        return config.default_limit
    return max(1, min(limit, config.max_limit))


def post_key(channel: str, message_id: int) -> str:
    return f"{channel}/{message_id}"


def bound_cursors(
    before: Optional[int], after: Optional[int]
) -> Optional[tuple[Optional[int], Optional[int]]]:
    """Fit cursors to the stored id range [1, MESSAGE_ID_MAX].

    A cursor that excludes no stored id becomes ``None``. Returns ``None``
    when the cursors exclude every stored id.
    """
    if before is not None and before > MESSAGE_ID_MAX:
        before = None
    if after is not None and after < 1:
        after = None
    if (before is not None and before <= 1) or (
        after is not None and after >= MESSAGE_ID_MAX
    ):
        return None
    return before, after


class FeedService:
    """Builds public feed pages for the configured channel"""

    def __init__(self, store: ChannelPostStore, config: ChannelConfig):
        self.store = store
        self.config = config

    async def get_page(
        self,
        limit: Optional[int] = None,
        before: Optional[int] = None,
        after: Optional[int] = None,
    ) -> List[FeedItem]:
        """
        Raises:
            QueryError: the store could not be read.
        """
        channel = self.config.channel_username
        cursors = bound_cursors(before, after)
        if cursors is None:
            return []
        before, after = cursors

        posts = await self.store.query(
            channel,
            before=before,
            after=after,
            limit=clamp_limit(limit, self.config),
        )
        return [
            FeedItem(message_id=post.message_id, key=post_key(channel, post.message_id))
            for post in posts
        ]
