"""
Notification Formatter - construit le payload webhook Discord.

Un message = une ligne de résumé + un embed par deal (max 10, limite Discord).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import BaseModel

from dealfinder.core.source_policy import SourcePolicy
from dealfinder.normalizers.item import Deal

TITLE_MAX_LENGTH = 100
MAX_EMBEDS = 10

BOT_USERNAME = "Deal Finder Bot"
BOT_AVATAR_URL = "https://cdn-icons-png.flaticon.com/512/2721/2721215.png"
HOT_DEAL_COLOR = 16711680  # Rouge
LOW_CONFIDENCE_COLOR = 0xFF6B35  # Orange


class NotificationPayload(BaseModel):
    content: str
    embeds: List[Dict[str, Any]]
    username: str = BOT_USERNAME
    avatar_url: Optional[str] = BOT_AVATAR_URL

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def truncate(text: str, limit: int = TITLE_MAX_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def affiliate_link(link: str, affiliate_tag: str) -> str:
    """Ajoute `tag=<affiliate>` à la query string (remplace un tag existant)."""
    if not affiliate_tag:
        return link
    parts = urlparse(link)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "tag"]
    query.append(("tag", affiliate_tag))
    return urlunparse(parts._replace(query=urlencode(query)))


def _money(symbol: str, amount: Optional[float]) -> str:
    if amount is None:
        return "N/A"
    return f"{symbol}{amount:.2f}"


def _deal_embed(deal: Deal, affiliate_tag: str, policy: SourcePolicy, timestamp: str) -> Dict[str, Any]:
    symbol = policy.currency_symbol
    fields = [
        {"name": "💰 Current Price", "value": _money(symbol, deal.current_price), "inline": True},
        {"name": "Was", "value": _money(symbol, deal.reference_price), "inline": True},
        {"name": "📊 Discount", "value": f"{deal.discount_percent}%", "inline": True},
    ]
    if deal.rating is not None:
        reviews = f" ({deal.reviews} reviews)" if deal.reviews is not None else ""
        fields.append({"name": "⭐ Rating", "value": f"{deal.rating}/5{reviews}", "inline": True})
    if deal.category:
        fields.append({"name": "Category", "value": deal.category, "inline": True})
    fields.append({
        "name": "🔗 Buy Now",
        "value": f"[View on {policy.store_label}]({affiliate_link(deal.link, affiliate_tag)})",
        "inline": False,
    })

    footer = f"Deal Finder Bot | {policy.store_label}"
    if deal.low_confidence:
        footer += " | discount reported by source"

    return {
        "title": f"🔥 {truncate(deal.title)}",
        "description": f"**{deal.discount_percent}% OFF**",
        "fields": fields,
        "color": LOW_CONFIDENCE_COLOR if deal.low_confidence else HOT_DEAL_COLOR,
        "footer": {"text": footer},
        "timestamp": timestamp,
    }


def format_notification(
    deals: Sequence[Deal],
    affiliate_tag: str,
    policy: SourcePolicy,
    now: Optional[datetime] = None,
) -> Optional[NotificationPayload]:
    """
    Construit le message Discord pour une liste classée de deals.

    Returns:
        None si la liste est vide: il n'y a rien à envoyer.
    """
    if not deals:
        return None

    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    shown = list(deals)[:MAX_EMBEDS]
    noun = "Deal" if len(deals) == 1 else "Deals"

    return NotificationPayload(
        content=f"🎉 **Found {len(deals)} Hot {noun}!** 🔥\n_Top discounted products on {policy.store_label}_",
        embeds=[_deal_embed(d, affiliate_tag, policy, timestamp) for d in shown],
    )
