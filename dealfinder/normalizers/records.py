"""
Record Normalizer - convertit un candidat upstream en Deal canonique.

Chaque SourceKind a ses règles d'extraction, toutes convergent vers Deal.

Politique de remise:
1. ref > cur > 0 connus -> remise recalculée localement
2. pas de ref locale -> remise upstream bornée [0, 100], ref reconstituée,
   deal marqué low_confidence
3. ref connue mais <= cur -> remise 0 (inéligible quel que soit l'upstream)

Un candidat illisible renvoie None, jamais d'exception.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from dealfinder.core.logging import get_logger
from dealfinder.core.source_policy import SourceKind, SourcePolicy, get_policy
from dealfinder.normalizers.item import Deal
from dealfinder.normalizers.prices import (
    clamp_percent,
    compute_discount,
    from_minor_units,
    parse_price_text,
    reference_from_discount,
)

logger = get_logger(__name__)

DEFAULT_TITLE = "Product"

_ASIN_IN_PRODUCT_LINK = re.compile(r"/product/([A-Z0-9]+)")
_ASIN_IN_DP_LINK = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})")
_FEED_CURRENT = re.compile(r"Current Price:[^\d]*([\d,]+\.?\d*)", re.IGNORECASE)
_FEED_AVG = re.compile(r"Avg\.?\s*Price:[^\d]*([\d,]+\.?\d*)", re.IGNORECASE)
_FEED_LIST = re.compile(r"List Price:[^\d]*([\d,]+\.?\d*)", re.IGNORECASE)


@dataclass
class _Extracted:
    """Champs bruts extraits d'un candidat, avant calcul de la remise."""
    id: Optional[str]
    title: Optional[str]
    current_price: Optional[float]
    reference_price: Optional[float] = None
    upstream_discount: Any = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    category: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def _pick(values: Any, index: int) -> Any:
    """values[index] si values est une liste assez longue, sinon None."""
    if isinstance(values, list) and 0 <= index < len(values):
        return values[index]
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    return text or None


def _keepa_rating(value: Any) -> Optional[float]:
    # Keepa stocke la note x10 (45 = 4.5 étoiles)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return round(value / 10, 1) if value > 5 else float(value)


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return None
    return int(value)


# =============================================================================
# EXTRACTEURS PAR SOURCE
# =============================================================================

def _extract_api_stats(record: dict, policy: SourcePolicy) -> _Extracted:
    """Objet produit Keepa /query: tableaux `current` / `historyPrice` ou `stats`."""
    stats = record.get("stats") if isinstance(record.get("stats"), dict) else {}
    idx = policy.price_index

    current_raw = _pick(record.get("current"), idx)
    if current_raw is None:
        current_raw = _pick(stats.get("current"), idx)

    reference_raw = None
    for candidate in (record.get("historyPrice"), stats.get("avg90"), stats.get("avg")):
        value = _pick(candidate, idx)
        if from_minor_units(value, policy.price_scale) is not None:
            reference_raw = value
            break

    return _Extracted(
        id=_text(record.get("asin")),
        title=_text(record.get("title")),
        current_price=from_minor_units(current_raw, policy.price_scale),
        reference_price=from_minor_units(reference_raw, policy.price_scale),
        rating=_keepa_rating(record.get("rating")),
        reviews=_positive_int(record.get("reviews")),
        category=_text(record.get("categoryName")),
    )


def _extract_api_delta(record: dict, policy: SourcePolicy) -> _Extracted:
    """Objet deal Keepa /deal: `current`, `avg[range]`, `delta[range]`, `deltaPercent[range]`."""
    idx = policy.price_index
    rng = policy.date_range

    current_raw = _pick(record.get("current"), idx)
    current = from_minor_units(current_raw, policy.price_scale)

    reference = from_minor_units(_pick(_pick(record.get("avg"), rng), idx), policy.price_scale)
    if reference is None and current is not None:
        delta = _pick(_pick(record.get("delta"), rng), idx)
        # delta négatif = baisse de prix par rapport à la fenêtre
        if isinstance(delta, (int, float)) and not isinstance(delta, bool) and delta < 0:
            reference = from_minor_units(current_raw - delta, policy.price_scale)

    upstream = _pick(_pick(record.get("deltaPercent"), rng), idx)
    if upstream is None:
        upstream = record.get("percent")

    category = record.get("categoryName") or record.get("category")
    return _Extracted(
        id=_text(record.get("asin")),
        title=_text(record.get("title")),
        current_price=current,
        reference_price=reference,
        upstream_discount=upstream,
        category=_text(category) if isinstance(category, str) else None,
    )


def _extract_feed_text(record: dict, policy: SourcePolicy) -> _Extracted:
    """
    Item RSS camelcamelcamel.

    Description: "Current Price: $X | List Price: $Y | Avg. Price: $Z".
    La base de remise est le prix moyen, sinon le prix de liste.
    """
    link = str(record.get("link") or "")
    match = _ASIN_IN_PRODUCT_LINK.search(link) or _ASIN_IN_DP_LINK.search(link)
    item_id = match.group(1) if match else None
    if not item_id:
        raw_id = _text(record.get("id"))
        item_id = raw_id if raw_id and re.fullmatch(r"[A-Z0-9]{10}", raw_id) else None

    description = str(record.get("description") or record.get("summary") or "")
    current = _feed_price(_FEED_CURRENT, description)
    reference = _feed_price(_FEED_AVG, description) or _feed_price(_FEED_LIST, description)

    return _Extracted(
        id=item_id,
        title=_text(record.get("title")),
        current_price=current,
        reference_price=reference,
    )


def _feed_price(pattern: re.Pattern, description: str) -> Optional[float]:
    match = pattern.search(description)
    return parse_price_text(match.group(1)) if match else None


def _extract_scraped_dom(record: dict, policy: SourcePolicy) -> _Extracted:
    """Carte produit extraite par le collector HTML (textes bruts)."""
    item_id = _text(record.get("id"))
    if not item_id:
        match = _ASIN_IN_DP_LINK.search(str(record.get("href") or ""))
        item_id = match.group(1) if match else None

    return _Extracted(
        id=item_id,
        title=_text(record.get("title")),
        current_price=parse_price_text(record.get("price_text")),
        reference_price=parse_price_text(record.get("was_text")),
        upstream_discount=_discount_from_text(record.get("discount_text")),
    )


def _discount_from_text(text: Any) -> Optional[float]:
    if not text:
        return None
    match = re.search(r"(\d{1,3})\s*%", str(text))
    return float(match.group(1)) if match else None


EXTRACTORS: Dict[SourceKind, Callable[[dict, SourcePolicy], _Extracted]] = {
    SourceKind.API_STATS: _extract_api_stats,
    SourceKind.API_DELTA: _extract_api_delta,
    SourceKind.FEED_TEXT: _extract_feed_text,
    SourceKind.SCRAPED_DOM: _extract_scraped_dom,
}


# =============================================================================
# API
# =============================================================================

def normalize(record: Any, source: SourceKind, policy: Optional[SourcePolicy] = None) -> Optional[Deal]:
    """
    Convertit un candidat en Deal.

    Returns:
        Deal, ou None si l'identifiant ou le prix courant sont introuvables.
    """
    policy = policy or get_policy(source)
    if not isinstance(record, dict):
        return None

    try:
        extracted = EXTRACTORS[source](record, policy)
    except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
        logger.debug("Candidate dropped: extraction failed", source=source.value, error_type=type(e).__name__)
        return None

    if not extracted.id or extracted.current_price is None:
        logger.debug("Candidate dropped: missing id or price", source=source.value, id=extracted.id)
        return None

    current = extracted.current_price
    reference = extracted.reference_price
    low_confidence = False

    discount = compute_discount(current, reference)
    if discount is None:
        if reference is None:
            upstream = clamp_percent(extracted.upstream_discount)
            reference = reference_from_discount(current, upstream) if upstream is not None else None
            discount = upstream or 0
            low_confidence = upstream is not None
        else:
            discount = 0

    return Deal(
        id=extracted.id,
        title=extracted.title or DEFAULT_TITLE,
        current_price=current,
        reference_price=reference,
        discount_percent=discount,
        link=f"{policy.link_base_url}{extracted.id}",
        source=source,
        low_confidence=low_confidence,
        rating=extracted.rating,
        reviews=extracted.reviews,
        category=extracted.category,
    )
