"""Collector Keepa - endpoints /query (produits) et /deal (deals).

Les deux renvoient un JSON dont la forme varie selon les paramètres; on ne
valide que l'objet `error`, le reste est laissé au Payload Locator.
"""
import json
from typing import Any

import httpx

from dealfinder.collectors.http_json import fetch_json
from dealfinder.core.config import Settings
from dealfinder.core.exceptions import UpstreamAPIError
from dealfinder.core.logging import get_logger

logger = get_logger(__name__)

KEEPA_PRODUCT_URL = "https://api.keepa.com/product"
PRODUCT_BATCH_SIZE = 50

# Filtre produit: populaires, bien notés, entre 1 et 500 (unités mineures)
PRODUCT_SELECTION = {
    "sort": [["current_SALES", "asc"]],
    "current_RATING_gte": 30,
    "current_COUNT_REVIEWS_gte": 5,
    "current_AMAZON_gte": 100,
    "current_AMAZON_lte": 50000,
    "productType": [0],
    "perPage": 50,
    "page": 0,
}


def _check_keepa_error(data: Any, source: str, url: str) -> Any:
    if isinstance(data, dict):
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamAPIError(f"Keepa API error: {message}", source=source, url=url)
        if "tokensLeft" in data:
            logger.info("Keepa tokens", source=source, tokens_left=data.get("tokensLeft"))
    return data


async def fetch_keepa_products(settings: Settings, client: httpx.AsyncClient) -> Any:
    """
    Keepa /query (API_STATS).

    Le product finder peut ne renvoyer que `asinList`: dans ce cas on charge
    les objets produit (avec stats 90 jours) via /product.
    """
    policy = settings.policy
    source = policy.kind.value
    params = {
        "key": settings.keepa_api_key,
        "domain": settings.keepa_domain,
        "selection": json.dumps(PRODUCT_SELECTION),
        "stats": 90,
    }
    data = await fetch_json(client, policy.url, source, params=params, headers=policy.headers)
    data = _check_keepa_error(data, source, policy.url)

    if isinstance(data, dict) and not data.get("products") and data.get("asinList"):
        asins = [a for a in data["asinList"] if isinstance(a, str)][:PRODUCT_BATCH_SIZE]
        if asins:
            product_params = {
                "key": settings.keepa_api_key,
                "domain": settings.keepa_domain,
                "asin": ",".join(asins),
                "stats": 90,
            }
            data = await fetch_json(client, KEEPA_PRODUCT_URL, source, params=product_params, headers=policy.headers)
            data = _check_keepa_error(data, source, KEEPA_PRODUCT_URL)
    return data


async def fetch_keepa_deals(settings: Settings, client: httpx.AsyncClient) -> Any:
    """Keepa /deal (API_DELTA), filtré côté serveur sur la remise minimale."""
    policy = settings.policy
    selection = {
        "page": 0,
        "domainId": settings.keepa_domain,
        "priceTypes": [policy.price_index],
        "dateRange": policy.date_range,
        "deltaPercentRange": [settings.min_discount, settings.max_discount],
        "isRangeEnabled": True,
    }
    params = {
        "key": settings.keepa_api_key,
        "selection": json.dumps(selection),
    }
    data = await fetch_json(client, policy.url, policy.kind.value, params=params, headers=policy.headers)
    return _check_keepa_error(data, policy.kind.value, policy.url)
