"""
Tests for the Telegram webhook: ingestion of channel posts over HTTP.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from channel_feed.db.models.channel_post import ChannelPost
from tests.conftest import SECRET_HEADER, TEST_CHANNEL, TEST_WEBHOOK_SECRET, channel_post_update, naive_utc

WEBHOOK_URL = "/api/telegram/webhook"
AUTH = {SECRET_HEADER: TEST_WEBHOOK_SECRET}


async def _stored(db_session) -> list[ChannelPost]:
    db_session.expire_all()
    result = await db_session.execute(select(ChannelPost).order_by(ChannelPost.message_id))
    return list(result.scalars().all())


async def _count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(ChannelPost))
    return result.scalar_one()


class TestChannelPostIngestion:

    @pytest.mark.asyncio
    async def test_stores_channel_post(self, test_client, db_session) -> None:
        resp = await test_client.post(WEBHOOK_URL, json=channel_post_update(42), headers=AUTH)

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "status": "stored", "message_id": 42}

        posts = await _stored(db_session)
        assert len(posts) == 1
        assert posts[0].channel_username == TEST_CHANNEL
        assert posts[0].message_id == 42
        assert naive_utc(posts[0].posted_at) == datetime(2023, 11, 14, 22, 13, 20)

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, test_client, db_session) -> None:
        update = channel_post_update(42)
        for _ in range(5):
            resp = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)
            assert resp.status_code == 200

        assert await _count(db_session) == 1

    @pytest.mark.asyncio
    async def test_redelivery_keeps_latest_timestamp(self, test_client, db_session) -> None:
        await test_client.post(WEBHOOK_URL, json=channel_post_update(42, date=1700000000), headers=AUTH)
        await test_client.post(WEBHOOK_URL, json=channel_post_update(42, date=1700003600), headers=AUTH)

        posts = await _stored(db_session)
        assert len(posts) == 1
        assert naive_utc(posts[0].posted_at) == datetime(2023, 11, 14, 23, 13, 20)

    @pytest.mark.asyncio
    async def test_edited_channel_post_refreshes_same_record(self, test_client, db_session) -> None:
        await test_client.post(WEBHOOK_URL, json=channel_post_update(42), headers=AUTH)
        resp = await test_client.post(
            WEBHOOK_URL,
            json=channel_post_update(42, update_id=2, kind="edited_channel_post"),
            headers=AUTH,
        )

        assert resp.json()["status"] == "stored"
        assert await _count(db_session) == 1

    @pytest.mark.asyncio
    async def test_missing_date_defaults_to_receive_time(self, test_client, db_session) -> None:
        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        resp = await test_client.post(WEBHOOK_URL, json=channel_post_update(7, date=None), headers=AUTH)
        after = datetime.now(timezone.utc) + timedelta(seconds=1)

        assert resp.status_code == 200
        posts = await _stored(db_session)
        assert naive_utc(before) <= naive_utc(posts[0].posted_at) <= naive_utc(after)

    @pytest.mark.asyncio
    async def test_channel_username_match_ignores_case_and_at_sign(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL,
            json=channel_post_update(3, username=f"@{TEST_CHANNEL.upper()}"),
            headers=AUTH,
        )

        assert resp.json()["status"] == "stored"
        posts = await _stored(db_session)
        assert posts[0].channel_username == TEST_CHANNEL

    @pytest.mark.asyncio
    async def test_legacy_webhook_path_is_served(self, test_client, db_session) -> None:
        resp = await test_client.post("/telegram/webhook", json=channel_post_update(9), headers=AUTH)

        assert resp.status_code == 200
        assert await _count(db_session) == 1


class TestIgnoredUpdates:
    """Updates this service does not model are acknowledged, never stored"""

    @pytest.mark.asyncio
    async def test_other_channel_is_acknowledged_but_not_stored(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL, json=channel_post_update(42, username="someoneelse"), headers=AUTH
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"
        assert resp.json()["reason"] == "foreign channel"
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_private_channel_without_username_is_ignored(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL, json=channel_post_update(42, username=None), headers=AUTH
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_non_post_update_is_ignored(self, test_client, db_session) -> None:
        update = {
            "update_id": 5,
            "message": {
                "message_id": 1,
                "chat": {"id": 12345, "type": "private"},
                "text": "hello",
                "date": 1700000000,
            },
        }
        resp = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "status": "ignored", "reason": "not a channel post"}
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_malformed_post_is_ignored(self, test_client, db_session) -> None:
        update = channel_post_update(1)
        update["channel_post"]["message_id"] = "not-a-number"

        resp = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message_id", [2**70, 2**63, 0, -5, True, "5", 5.0])
    async def test_message_id_outside_integer_range_is_ignored(
        self, test_client, db_session, message_id
    ) -> None:
        update = channel_post_update(1)
        update["channel_post"]["message_id"] = message_id

        resp = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "status": "ignored", "reason": "invalid channel post"}
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_largest_bigint_message_id_is_stored(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL, json=channel_post_update(2**63 - 1), headers=AUTH
        )

        assert resp.json()["status"] == "stored"
        assert [post.message_id for post in await _stored(db_session)] == [2**63 - 1]

    @pytest.mark.asyncio
    async def test_string_date_is_ignored(self, test_client, db_session) -> None:
        update = channel_post_update(1)
        update["channel_post"]["date"] = "1700000000"

        resp = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)

        assert resp.json()["status"] == "ignored"
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_invalid_json_is_ignored(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL,
            content=b"{not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"

    @pytest.mark.asyncio
    async def test_json_array_body_is_ignored(self, test_client, db_session) -> None:
        resp = await test_client.post(WEBHOOK_URL, json=[1, 2, 3], headers=AUTH)

        assert resp.status_code == 200
        assert resp.json()["status"] == "ignored"


class TestWebhookAuthentication:

    @pytest.mark.asyncio
    async def test_missing_secret_is_rejected_without_storing(self, test_client, db_session) -> None:
        resp = await test_client.post(WEBHOOK_URL, json=channel_post_update(42))

        assert resp.status_code == 401
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_wrong_secret_is_rejected_without_storing(self, test_client, db_session) -> None:
        resp = await test_client.post(
            WEBHOOK_URL, json=channel_post_update(42), headers={SECRET_HEADER: "wrong-value"}
        )

        assert resp.status_code == 401
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_rejection_does_not_leak_expected_secret(self, test_client) -> None:
        resp = await test_client.post(
            WEBHOOK_URL, json=channel_post_update(42), headers={SECRET_HEADER: "wrong-value"}
        )

        assert TEST_WEBHOOK_SECRET not in resp.text
        assert resp.json()["error"]["details"] == {}

    @pytest.mark.asyncio
    async def test_secret_is_checked_before_body(self, test_client) -> None:
        resp = await test_client.post(
            WEBHOOK_URL,
            content=b"{not json",
            headers={SECRET_HEADER: "wrong-value", "Content-Type": "application/json"},
        )

        assert resp.status_code == 401


class TestStorageFailure:

    @pytest.mark.asyncio
    async def test_storage_failure_returns_500(self, test_client, db_session) -> None:
        failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))

        with patch.object(db_session, "execute", failing):
            resp = await test_client.post(WEBHOOK_URL, json=channel_post_update(42), headers=AUTH)

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "ERR_7001"
        assert "X-Correlation-ID" in resp.headers
        assert await _count(db_session) == 0

    @pytest.mark.asyncio
    async def test_redelivery_after_failure_stores_post(self, test_client, db_session) -> None:
        failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))
        update = channel_post_update(42)

        with patch.object(db_session, "execute", failing):
            first = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)
        second = await test_client.post(WEBHOOK_URL, json=update, headers=AUTH)

        assert first.status_code == 500
        assert second.status_code == 200
        assert await _count(db_session) == 1
