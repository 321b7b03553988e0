"""
Channel Post Ingest Service - turns an authenticated webhook update into a
stored channel post.

Telegram redelivers on any non-2xx response, so every update this service
does not model (other update types, malformed posts, posts from another
channel) is reported as ignored and acknowledged by the caller. Only a store
failure propagates.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from channel_feed.core.config import ChannelConfig, normalize_channel_username
from channel_feed.core.exceptions import MalformedEventError
from channel_feed.core.logging import get_logger
from channel_feed.db.channel_post_store import ChannelPostStore
from channel_feed.schemas import TelegramChannelPost, TelegramUpdate

logger = get_logger(__name__)


class IngestOutcome(str, enum.Enum):
    STORED = "stored"
    IGNORED = "ignored"


@dataclass(frozen=True)
class IngestResult:
    outcome: IngestOutcome
    message_id: Optional[int] = None
    reason: Optional[str] = None


def parse_channel_post(payload: Any) -> TelegramChannelPost:
    """Extract the channel post from a raw update body.

    Raises:
        MalformedEventError: the body is not an object, fails validation, or
            carries no ``channel_post`` / ``edited_channel_post``.
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("body is not a JSON object")

    try:
        update = TelegramUpdate.model_validate(payload)
    except ValidationError as e:
        raise MalformedEventError(
            "invalid channel post",
            details={"errors": e.error_count()},
        ) from e

    post = update.post
    if post is None:
        raise MalformedEventError(
            "not a channel post",
            details={"update_keys": sorted(k for k in payload if k != "update_id")},
        )
    return post


def resolve_posted_at(date: Optional[int], received_at: datetime) -> datetime:
    """Post timestamp: the update's unix ``date`` when present and valid, else ``received_at``."""
    if date is None:
        return received_at
    try:
        return datetime.fromtimestamp(date, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.warning(
            "Channel post date out of range, using receive time",
            extra_data={"date": date},
        )
        return received_at


class ChannelPostIngestService:
    """Validates channel posts and upserts them into the store"""

    def __init__(self, store: ChannelPostStore, config: ChannelConfig):
        self.store = store
        self.config = config

    async def ingest(
        self,
        payload: Any,
        received_at: Optional[datetime] = None,
    ) -> IngestResult:
        """Store the post carried by ``payload`` if it belongs to the configured channel.

        Raises:
            PersistenceError: the store rejected the write.
        """
        received_at = received_at or datetime.now(timezone.utc)

        try:
            post = parse_channel_post(payload)
        except MalformedEventError as e:
            logger.info(
                "Ignoring webhook update",
                extra_data={"reason": e.reason, **e.details},
            )
            return IngestResult(outcome=IngestOutcome.IGNORED, reason=e.reason)

        channel = normalize_channel_username(post.chat.username)
        if not channel or channel != self.config.channel_username:
            logger.info(
                "Ignoring post from another channel",
                extra_data={"chat_id": post.chat.id, "channel": channel or None},
            )
            return IngestResult(
                outcome=IngestOutcome.IGNORED,
                message_id=post.message_id,
                reason="foreign channel",
            )

        posted_at = resolve_posted_at(post.date, received_at)
        await self.store.upsert(self.config.channel_username, post.message_id, posted_at)

        logger.info(
            "Channel post ingested",
            extra_data={"channel": channel, "message_id": post.message_id},
        )
        return IngestResult(outcome=IngestOutcome.STORED, message_id=post.message_id)
