from typing import Any, Awaitable, Callable, Dict

import httpx

from dealfinder.collectors.html_page import fetch_deals_page
from dealfinder.collectors.keepa import fetch_keepa_deals, fetch_keepa_products
from dealfinder.collectors.rss_feed import fetch_feed
from dealfinder.core.config import Settings
from dealfinder.core.source_policy import SourceKind

Fetcher = Callable[[Settings, httpx.AsyncClient], Awaitable[Any]]

# Mapping source -> fonction de collecte
COLLECTORS: Dict[SourceKind, Fetcher] = {
    SourceKind.API_STATS: fetch_keepa_products,
    SourceKind.API_DELTA: fetch_keepa_deals,
    SourceKind.FEED_TEXT: fetch_feed,
    SourceKind.SCRAPED_DOM: fetch_deals_page,
}


def get_collector(kind: SourceKind) -> Fetcher:
    return COLLECTORS[kind]
