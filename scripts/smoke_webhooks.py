"""
Smoke tests against a running instance.

Runs lightweight HTTP checks:
- GET /health
- POST /api/telegram/webhook without a secret (expects 401)
- POST /api/telegram/webhook with the secret and a non-post update (expects 200)
- GET /api/feed, then again with If-None-Match (expects 304)

Nothing is written to the store: the authenticated webhook call carries an
update type the service ignores.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import httpx

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from channel_feed.core.logging import get_logger, setup_logging  # noqa: E402


logger = get_logger(__name__)


def _base_url() -> str:
    port = os.environ.get("PORT", "8000")
    return os.environ.get("BASE_URL", f"http://127.0.0.1:{port}").rstrip("/")


def _timeout_seconds() -> float:
    return float(os.environ.get("SMOKE_TIMEOUT_SECONDS", "10"))


def _ignored_update() -> dict:
    return {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "chat": {"id": 12345, "type": "private"},
            "text": "smoke",
            "date": 1700000000,
        },
    }


def _check_status(resp: httpx.Response, expected: int) -> None:
    if resp.status_code != expected:
        raise RuntimeError(
            f"Unexpected status {resp.status_code} (wanted {expected}) for "
            f"{resp.request.method} {resp.request.url}. Body: {(resp.text or '')[:500]}"
        )


def main() -> None:
    setup_logging(level="INFO", json_format=False, app_name="channel-feed-smoke")

    base_url = _base_url()
    timeout = _timeout_seconds()
    secret = os.environ.get("TELEGRAM_WEBHOOK_SECRET_TOKEN", "")

    logger.info("Starting smoke tests", extra_data={"base_url": base_url, "timeout_seconds": timeout})

    with httpx.Client(timeout=timeout) as client:
        resp = client.get(f"{base_url}/health")
        _check_status(resp, 200)

        webhook_url = f"{base_url}/api/telegram/webhook"
        resp = client.post(webhook_url, json=_ignored_update())
        _check_status(resp, 401)

        if secret:
            resp = client.post(
                webhook_url,
                json=_ignored_update(),
                headers={"X-Telegram-Bot-Api-Secret-Token": secret},
            )
            _check_status(resp, 200)
        else:
            logger.warning("TELEGRAM_WEBHOOK_SECRET_TOKEN not set; skipping authenticated webhook check")

        feed_url = f"{base_url}/api/feed"
        resp = client.get(feed_url)
        _check_status(resp, 200)
        etag = resp.headers.get("ETag")
        if not etag:
            raise RuntimeError("Feed response has no ETag header")

        resp = client.get(feed_url, headers={"If-None-Match": etag})
        _check_status(resp, 304)

    logger.info("Smoke tests completed successfully")


if __name__ == "__main__":
    main()
