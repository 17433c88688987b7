import asyncio
from typing import Optional, Set

from dealfinder.core.config import Settings
from dealfinder.core.logging import get_logger
from dealfinder.services.pipeline import RunReport, run_once

logger = get_logger(__name__)

# Références des runs en arrière-plan (sinon le GC peut annuler la task)
_background_runs: Set[asyncio.Task] = set()


async def run_deal_search(settings: Settings, reason: str = "scheduled") -> Optional[RunReport]:
    """
    Point d'entrée des runs (démarrage, cron, /trigger).

    Aucune exception ne remonte: le scheduler et le serveur HTTP continuent.
    """
    logger.info(f"Deal search triggered ({reason})", source=settings.source.value)
    try:
        return await run_once(settings)
    except Exception as e:
        logger.error(f"Run crashed: {e}", source=settings.source.value, error_type=type(e).__name__)
        return None


def start_background_run(settings: Settings, reason: str) -> asyncio.Task:
    """Lance un run sans l'attendre. Les runs concurrents ne sont pas coordonnés."""
    task = asyncio.get_running_loop().create_task(run_deal_search(settings, reason))
    _background_runs.add(task)
    task.add_done_callback(_background_runs.discard)
    return task
