"""
Channel Post Model - one row per Telegram channel post.

The composite primary key (channel_username, message_id) is the uniqueness
constraint the webhook upsert relies on: redelivered updates land on the same
row instead of creating a new one.
"""
from sqlalchemy import BigInteger, Column, DateTime, String

from channel_feed.db.database import Base


class ChannelPost(Base):
    """Minimal ordered record of a channel post"""

    __tablename__ = "channel_posts"

    channel_username = Column(String(64), primary_key=True)
    message_id = Column(BigInteger, primary_key=True, autoincrement=False)
    posted_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ChannelPost {self.channel_username}/{self.message_id}>"
