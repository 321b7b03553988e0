"""
Cache tags for feed pages.

The tag is a SHA-256 over the canonical JSON of exactly the items sent to
the client, so it changes whenever membership or order of the page changes.
"""
import hashlib
import json
from typing import Any, Mapping, Optional, Sequence


def compute_etag(items: Sequence[Mapping[str, Any]]) -> str:
    """Strong entity tag (quoted hex digest) for an ordered list of items."""
    serialized = json.dumps(
        list(items),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f'"{digest}"'


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """True when an ``If-None-Match`` header value names ``etag``.

    Accepts a comma-separated list, weak tags (``W/"..."``) and ``*``.
    """
    if not if_none_match:
        return False

    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == etag:
            return True
    return False
