"""
Source Policy - Paramétrage du pipeline par source upstream.

Sources (une seule active par process):
- API_STATS: Keepa /query, objets produit avec tableaux de prix (centimes)
- API_DELTA: Keepa /deal, objets deal avec champs avg/delta/deltaPercent
- FEED_TEXT: flux RSS dont la description contient les prix en texte
- SCRAPED_DOM: page HTML de deals, cartes extraites avec BeautifulSoup
  (httpx, ou Playwright si la page est rendue en JS)
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional


class SourceKind(str, Enum):
    API_STATS = "api_stats"
    API_DELTA = "api_delta"
    FEED_TEXT = "feed_text"
    SCRAPED_DOM = "scraped_dom"


# Index des types de prix Keepa (csv types)
KEEPA_PRICE_AMAZON = 0
KEEPA_PRICE_NEW = 1

# Domaines Keepa: 1=.com, 2=.co.uk, 3=.de
KEEPA_DOMAIN_UK = 2


@dataclass(frozen=True)
class SourcePolicy:
    """Configuration d'extraction et de livraison pour une source."""
    kind: SourceKind
    url: str
    link_base_url: str = "https://amazon.co.uk/dp/"
    currency_symbol: str = "£"
    store_label: str = "Amazon UK"

    # Seuils par défaut (surchargés par l'environnement)
    min_discount: int = 20
    schedule_cron: str = "0 */6 * * *"

    # Prix entiers en unités mineures -> diviser par price_scale
    price_scale: int = 100
    price_index: int = KEEPA_PRICE_AMAZON
    # Index de fenêtre Keepa pour avg/delta (0=jour, 1=semaine, 2=mois, 3=90j)
    date_range: int = 0

    # Scraping HTML
    card_selector: Optional[str] = None
    render_js: bool = False

    # Headers HTTP additionnels
    headers: Dict[str, str] = field(default_factory=dict)

    def with_overrides(self, **changes) -> "SourcePolicy":
        """Retourne une copie avec les champs non-None remplacés."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes) if changes else self


BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept-Language": "en-GB,en;q=0.9",
}


SOURCE_POLICIES: Dict[SourceKind, SourcePolicy] = {
    SourceKind.API_STATS: SourcePolicy(
        kind=SourceKind.API_STATS,
        url="https://api.keepa.com/query",
        min_discount=20,
        schedule_cron="0 */6 * * *",
        headers={"Accept": "application/json", "User-Agent": "Deal-Finder-Bot/1.0"},
    ),
    SourceKind.API_DELTA: SourcePolicy(
        kind=SourceKind.API_DELTA,
        url="https://api.keepa.com/deal",
        min_discount=70,
        schedule_cron="0 */6 * * *",
        headers={"Accept": "application/json", "User-Agent": "Deal-Finder-Bot/1.0"},
    ),
    SourceKind.FEED_TEXT: SourcePolicy(
        kind=SourceKind.FEED_TEXT,
        url="https://camelcamelcamel.com/popular?deal=1",
        link_base_url="https://amazon.com/dp/",
        currency_symbol="$",
        store_label="Amazon US",
        min_discount=50,
        schedule_cron="0 * * * *",
        headers={
            **BROWSER_HEADERS,
            "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/html;q=0.8",
            "Referer": "https://camelcamelcamel.com/",
        },
    ),
    SourceKind.SCRAPED_DOM: SourcePolicy(
        kind=SourceKind.SCRAPED_DOM,
        url="https://www.amazon.co.uk/deals",
        min_discount=50,
        schedule_cron="0 * * * *",
        card_selector="[data-asin]",
        headers={
            **BROWSER_HEADERS,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
    ),
}


def get_policy(kind: SourceKind) -> SourcePolicy:
    """Retourne la policy par défaut d'une source."""
    return SOURCE_POLICIES[kind]
