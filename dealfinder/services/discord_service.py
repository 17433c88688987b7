"""
Discord Service - envoi du message de deals au webhook.

Fire-and-forget: un status non-2xx ou une erreur réseau est loggé, jamais
relancé ni retenté. Le prochain run repart de zéro.
"""
from typing import Optional

import httpx
from loguru import logger

from dealfinder.services.notification import NotificationPayload

WEBHOOK_TIMEOUT = 10


async def send_webhook(
    webhook_url: str,
    payload: NotificationPayload,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    POST le payload au webhook Discord.

    Returns:
        True si Discord a accepté le message (2xx), False sinon.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as own_client:
                response = await own_client.post(webhook_url, json=payload.to_json())
        else:
            response = await client.post(webhook_url, json=payload.to_json(), timeout=WEBHOOK_TIMEOUT)
    except httpx.HTTPError as e:
        logger.error(f"Discord webhook error: {type(e).__name__}: {e}")
        return False

    if response.is_success:
        logger.info(f"Posted {len(payload.embeds)} deals to Discord")
        return True

    logger.error(f"Discord webhook error: {response.status_code} - {response.text[:300]}")
    return False
