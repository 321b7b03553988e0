"""
Register (or remove) the Telegram webhook for this deployment.

Usage:
    python scripts/set_webhook.py            # setWebhook with the secret token
    python scripts/set_webhook.py --info     # getWebhookInfo
    python scripts/set_webhook.py --delete   # deleteWebhook

Reads TELEGRAM_BOT_TOKEN, TELEGRAM_WEBHOOK_SECRET_TOKEN and PUBLIC_BASE_URL
from the environment / .env, like the application itself.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import httpx

# allow running from any directory, e.g. `python scripts/set_webhook.py`
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from channel_feed.core.config import Settings, settings  # noqa: E402
from channel_feed.core.logging import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)

WEBHOOK_PATH = "/api/telegram/webhook"
ALLOWED_UPDATES = ["channel_post", "edited_channel_post"]


def _api_url(config: Settings, method: str) -> str:
    if not config.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")
    return f"https://api.telegram.org/bot{config.TELEGRAM_BOT_TOKEN}/{method}"


def build_set_webhook_payload(config: Settings) -> dict:
    """Arguments for ``setWebhook``. Only channel post updates are requested."""
    if not config.PUBLIC_BASE_URL:
        raise RuntimeError("PUBLIC_BASE_URL is not set")
    if not config.TELEGRAM_WEBHOOK_SECRET_TOKEN:
        raise RuntimeError("TELEGRAM_WEBHOOK_SECRET_TOKEN is not set")
    return {
        "url": f"{config.PUBLIC_BASE_URL}{WEBHOOK_PATH}",
        "secret_token": config.TELEGRAM_WEBHOOK_SECRET_TOKEN,
        "allowed_updates": ALLOWED_UPDATES,
    }


def _call(client: httpx.Client, config: Settings, method: str, payload: dict | None = None) -> dict:
    resp = client.post(_api_url(config, method), json=payload or {})
    try:
        data = resp.json()
    except ValueError:
        raise RuntimeError(
            f"{method} failed with status {resp.status_code}: non-JSON response"
        ) from None
    if resp.status_code != 200 or not data.get("ok"):
        raise RuntimeError(
            f"{method} failed with status {resp.status_code}: {data.get('description')}"
        )
    return data


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Manage the Telegram webhook")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--info", action="store_true", help="show current webhook info")
    group.add_argument("--delete", action="store_true", help="remove the webhook")
    parser.add_argument(
        "--drop-pending",
        action="store_true",
        help="drop updates queued on Telegram's side",
    )
    args = parser.parse_args(argv)

    setup_logging(level="INFO", json_format=False, app_name="channel-feed-webhook")

    with httpx.Client(timeout=30.0) as client:
        if args.info:
            data = _call(client, settings, "getWebhookInfo")
            logger.info("Webhook info", extra_data=data.get("result", {}))
            return

        if args.delete:
            _call(client, settings, "deleteWebhook", {"drop_pending_updates": args.drop_pending})
            logger.info("Webhook deleted")
            return

        payload = build_set_webhook_payload(settings)
        payload["drop_pending_updates"] = args.drop_pending
        _call(client, settings, "setWebhook", payload)
        # never log the secret
        logger.info("Webhook registered", extra_data={"url": payload["url"]})


if __name__ == "__main__":
    main()
