"""Collector HTML - cartes de deals d'une page retailer.

La page est récupérée via httpx, ou via Playwright si elle est rendue en JS
(`SCRAPE_RENDER_JS=true`). Les cartes sont extraites avec BeautifulSoup et
restent en texte brut: le parsing des prix est fait par le normalizer.
"""
import re
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from dealfinder.collectors.browser import browser_fetch
from dealfinder.collectors.http_json import fetch
from dealfinder.core.config import Settings
from dealfinder.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CARD_SELECTOR = "[data-asin]"

TITLE_SELECTORS = ["[data-title]", "h2", "h3", ".a-text-normal", "[class*='title']"]
PRICE_SELECTORS = [".a-price:not(.a-text-price) .a-offscreen", "[data-price]", "[class*='price']"]
WAS_SELECTORS = [".a-text-price .a-offscreen", "[data-a-strike] .a-offscreen", "s", "del", "[class*='was']"]

_DISCOUNT_RE = re.compile(r"\d{1,3}\s*%")
_ASIN_IN_HREF = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})")


def _first_text(card, selectors: List[str]) -> Optional[str]:
    for selector in selectors:
        node = card.select_one(selector)
        if node is None:
            continue
        text = node.get("data-title") or node.get("data-price") or node.get_text(" ", strip=True)
        if text:
            return text
    return None


def _card_to_record(card) -> Dict[str, Any]:
    link = card.select_one("a[href]")
    img = card.select_one("img[alt]")
    title = _first_text(card, TITLE_SELECTORS) or (img.get("alt") if img else None)

    discount_match = _DISCOUNT_RE.search(card.get_text(" ", strip=True))

    return {
        "id": card.get("data-asin") or card.get("data-id") or None,
        "title": title,
        "price_text": _first_text(card, PRICE_SELECTORS),
        "was_text": _first_text(card, WAS_SELECTORS),
        "discount_text": discount_match.group(0) if discount_match else None,
        "href": link.get("href") if link else None,
    }


def parse_deal_cards(html: str, card_selector: str = DEFAULT_CARD_SELECTOR) -> Dict[str, List[Dict[str, Any]]]:
    """Extrait les cartes en `{"items": [...]}` pour le Payload Locator."""
    soup = BeautifulSoup(html, "html.parser")
    items = []
    for card in soup.select(card_selector):
        record = _card_to_record(card)
        if not record["id"]:
            match = _ASIN_IN_HREF.search(record["href"] or "")
            record["id"] = match.group(1) if match else None
        # Cartes sans identifiant stable (placeholders de carrousel, pubs)
        if not record["id"]:
            continue
        items.append(record)
    return {"items": items}


async def fetch_deals_page(settings: Settings, client: httpx.AsyncClient) -> Dict[str, Any]:
    policy = settings.policy
    source = policy.kind.value
    selector = policy.card_selector or DEFAULT_CARD_SELECTOR

    if policy.render_js:
        html = await browser_fetch(policy.url, source, timeout=settings.http_timeout, wait_for_selector=selector)
    else:
        resp = await fetch(client, policy.url, source, headers=policy.headers)
        html = resp.text

    payload = parse_deal_cards(html, selector)
    logger.info(f"Parsed {len(payload['items'])} deal cards", source=source, url=policy.url)
    return payload
