"""
Run Orchestrator - un run complet du pipeline.

Flow:
1. FETCHING     récupère le payload upstream (collector de la source)
2. LOCATING     trouve la liste de candidats dans le payload
3. NORMALIZING  convertit chaque candidat en Deal (invalides écartés)
4. RANKING      filtre, dédoublonne, trie, tronque
5. FORMATTING   construit le message Discord
6. DELIVERING   POST au webhook

Une erreur de fetch ou un résultat intermédiaire vide ramène à IDLE:
"rien à signaler ce run", pas une erreur. Aucun état n'est conservé entre runs.
"""
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import httpx

from dealfinder.collectors import Fetcher, get_collector
from dealfinder.core.config import Settings
from dealfinder.core.exceptions import FetchError
from dealfinder.core.logging import get_logger, set_trace_id
from dealfinder.normalizers.item import Deal
from dealfinder.normalizers.locator import locate
from dealfinder.normalizers.records import normalize
from dealfinder.services.discord_service import send_webhook
from dealfinder.services.notification import NotificationPayload, format_notification
from dealfinder.services.ranking import select

logger = get_logger(__name__)

Deliver = Callable[[str, NotificationPayload], Awaitable[bool]]


class RunState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    LOCATING = "locating"
    NORMALIZING = "normalizing"
    RANKING = "ranking"
    FORMATTING = "formatting"
    DELIVERING = "delivering"


@dataclass
class RunReport:
    """Bilan d'un run (logs et tests)."""
    trace_id: str
    source: str
    last_state: RunState = RunState.IDLE
    candidates: int = 0
    normalized: int = 0
    selected: int = 0
    delivered: bool = False
    error: Optional[str] = None
    duration_ms: float = 0.0
    deals: Optional[List[Deal]] = None


async def run_once(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    fetcher: Optional[Fetcher] = None,
    deliver: Optional[Deliver] = None,
    now: Optional[datetime] = None,
) -> RunReport:
    """
    Exécute un run. Ne lève pas pour les erreurs upstream ou de livraison.

    Args:
        settings: configuration immuable du process
        client: client httpx partagé (créé pour le run si absent)
        fetcher: collector à utiliser (par défaut celui de settings.source)
        deliver: fonction de livraison (par défaut send_webhook)
    """
    trace_id = set_trace_id()
    source = settings.source.value
    report = RunReport(trace_id=trace_id, source=source)
    start = time.perf_counter()

    logger.info("Running deal search...", source=source)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True) as own_client:
                await _run(settings, report, own_client, fetcher, deliver, now)
        else:
            await _run(settings, report, client, fetcher, deliver, now)
    finally:
        report.duration_ms = (time.perf_counter() - start) * 1000
        logger.run_summary(report)
    return report


async def _run(
    settings: Settings,
    report: RunReport,
    client: httpx.AsyncClient,
    fetcher: Optional[Fetcher],
    deliver: Optional[Deliver],
    now: Optional[datetime],
) -> None:
    source = settings.source
    policy = settings.policy

    report.last_state = RunState.FETCHING
    fetch_start = time.perf_counter()
    try:
        payload = await (fetcher or get_collector(source))(settings, client)
    except FetchError as e:
        report.error = str(e)
        logger.fetch_error(source.value, e, duration_ms=(time.perf_counter() - fetch_start) * 1000)
        return

    report.last_state = RunState.LOCATING
    candidates = locate(payload, source=source.value)
    report.candidates = len(candidates)
    if not candidates:
        return

    report.last_state = RunState.NORMALIZING
    deals = [d for d in (normalize(c, source, policy) for c in candidates) if d is not None]
    report.normalized = len(deals)
    logger.info(
        f"Normalized {len(deals)}/{len(candidates)} candidates",
        source=source.value,
        dropped=len(candidates) - len(deals),
    )
    if not deals:
        return

    report.last_state = RunState.RANKING
    ranked = select(
        deals,
        min_discount=settings.min_discount,
        max_discount=settings.max_discount,
        top_n=settings.top_n,
        min_price=settings.min_price,
    )
    report.selected = len(ranked)
    report.deals = ranked
    logger.info(
        f"Found {len(ranked)} deals with {settings.min_discount}%+ off",
        source=source.value,
        top=[f"{d.id}:{d.discount_percent}%" for d in ranked],
    )

    report.last_state = RunState.FORMATTING
    message = format_notification(ranked, settings.affiliate_tag, policy, now=now)
    if message is None:
        logger.info("No deals to post", source=source.value)
        return

    report.last_state = RunState.DELIVERING
    if deliver is None:
        report.delivered = await send_webhook(settings.webhook_url, message, client=client)
    else:
        report.delivered = await deliver(settings.webhook_url, message)
