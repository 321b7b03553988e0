"""
Channel Post Store: keyed storage over ``channel_posts``.

Writes are a single ``INSERT ... ON CONFLICT DO UPDATE`` statement, so
concurrent deliveries of the same post serialize on the primary key inside
the database and never race in application code.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from channel_feed.core.exceptions import PersistenceError, QueryError
from channel_feed.core.logging import get_logger
from channel_feed.db.compat import upsert_insert
from channel_feed.db.models.channel_post import ChannelPost

logger = get_logger(__name__)


class ChannelPostStore:
    """Atomic upsert and descending range queries over channel posts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert(self, channel: str, message_id: int, posted_at: datetime) -> None:
        """Insert the post, or refresh ``posted_at`` if the key already exists.

        Raises:
            PersistenceError: the statement or the commit failed.
        """
        stmt = upsert_insert(self.db, ChannelPost).values(
            channel_username=channel,
            message_id=message_id,
            posted_at=posted_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChannelPost.channel_username, ChannelPost.message_id],
            set_={"posted_at": stmt.excluded.posted_at},
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except (SQLAlchemyError, OSError, OverflowError) as e:
            await self.db.rollback()
            logger.error(
                "Channel post upsert failed",
                extra_data={"channel": channel, "message_id": message_id, "error": str(e)},
                exc_info=True,
            )
            raise PersistenceError() from e

        logger.debug(
            "Channel post stored",
            extra_data={"channel": channel, "message_id": message_id},
        )

    async def query(
        self,
        channel: str,
        before: Optional[int] = None,
        after: Optional[int] = None,
        limit: int = 30,
    ) -> List[ChannelPost]:
        """Posts of ``channel`` ordered by ``message_id`` descending.

        ``before`` and ``after`` are exclusive bounds and may be combined.
        Returns an empty list when nothing matches.

        Raises:
            QueryError: the database could not be read.
        """
        stmt = select(ChannelPost).where(ChannelPost.channel_username == channel)
        if before is not None:
            stmt = stmt.where(ChannelPost.message_id < before)
        if after is not None:
            stmt = stmt.where(ChannelPost.message_id > after)
        stmt = stmt.order_by(ChannelPost.message_id.desc()).limit(limit)

        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except (SQLAlchemyError, OSError, OverflowError) as e:
            logger.error(
                "Channel post query failed",
                extra_data={
                    "channel": channel,
                    "before": before,
                    "after": after,
                    "limit": limit,
                    "error": str(e),
                },
                exc_info=True,
            )
            raise QueryError() from e
