"""
Pydantic schemas: inbound Telegram updates and the public feed payload.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# signed 64-bit range of the BIGINT message_id column
MESSAGE_ID_MAX = 2**63 - 1


class TelegramChat(BaseModel):
    id: int
    type: str
    username: Optional[str] = None
    title: Optional[str] = None


class TelegramChannelPost(BaseModel):
    """Subset of a Telegram ``Message`` that identifies a channel post"""
    model_config = ConfigDict(extra="ignore")

    # strict: Bot API ids are JSON integers, so true or "5" is not a post
    message_id: int = Field(strict=True, ge=1, le=MESSAGE_ID_MAX)
    chat: TelegramChat
    date: Optional[int] = Field(None, strict=True)


class TelegramUpdate(BaseModel):
    """Update envelope. Only channel posts are modelled; other fields are ignored."""
    model_config = ConfigDict(extra="ignore")

    update_id: Optional[int] = None
    channel_post: Optional[TelegramChannelPost] = None
    edited_channel_post: Optional[TelegramChannelPost] = None

    @property
    def post(self) -> Optional[TelegramChannelPost]:
        return self.channel_post or self.edited_channel_post


class FeedItem(BaseModel):
    message_id: int
    # "<channel>/<message_id>", the address the Telegram embed script expects
    key: str


class FeedResponse(BaseModel):
    items: List[FeedItem]
