"""Collector RSS - flux de deals camelcamelcamel (prix dans la description)."""
from typing import Any, Dict, List

import feedparser
import httpx

from dealfinder.collectors.http_json import fetch
from dealfinder.core.config import Settings
from dealfinder.core.exceptions import DataExtractionError
from dealfinder.core.logging import get_logger

logger = get_logger(__name__)


def parse_feed(content: bytes) -> Dict[str, List[Dict[str, Any]]]:
    """Parse un flux RSS/Atom en `{"items": [...]}` pour le Payload Locator."""
    feed = feedparser.parse(content)
    items = []
    for entry in feed.entries:
        link = entry.get("link") or ""
        items.append({
            "id": entry.get("id") or link,
            "title": entry.get("title"),
            "link": link,
            "description": entry.get("description") or entry.get("summary") or "",
        })
    return {"items": items, "bozo": bool(feed.get("bozo"))}


async def fetch_feed(settings: Settings, client: httpx.AsyncClient) -> Dict[str, Any]:
    policy = settings.policy
    source = policy.kind.value
    resp = await fetch(client, policy.url, source, headers=policy.headers)

    payload = parse_feed(resp.content)
    if not payload["items"] and payload["bozo"]:
        raise DataExtractionError("Response is not a readable feed", source=source, url=policy.url)

    logger.info(f"Got {len(payload['items'])} items from RSS feed", source=source)
    return payload
