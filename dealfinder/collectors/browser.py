"""
Browser fetch - Playwright pour les pages de deals rendues en JS.
Nouvelle instance de navigateur à chaque run (pas de pool).
"""
import time
from typing import Optional

from dealfinder.core.exceptions import FetchTimeoutError, HTTPError, NetworkError
from dealfinder.core.logging import get_logger
from dealfinder.core.source_policy import BROWSER_HEADERS

logger = get_logger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
window.chrome = { runtime: {} };
"""


async def browser_fetch(
    url: str,
    source: str,
    timeout: float = 30,
    wait_for_selector: Optional[str] = None,
) -> str:
    """
    Charge une URL dans Chromium headless et renvoie le HTML rendu.

    Raises:
        FetchTimeoutError, NetworkError: navigation impossible
        HTTPError: status non-2xx
    """
    from playwright.async_api import Error as PlaywrightError
    from playwright.async_api import TimeoutError as PlaywrightTimeoutError
    from playwright.async_api import async_playwright

    logger.fetch_start(source, url)
    start = time.perf_counter()

    try:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            try:
                context = await browser.new_context(
                    viewport={"width": 1920, "height": 1080},
                    user_agent=BROWSER_HEADERS["User-Agent"],
                    locale="en-GB",
                    extra_http_headers={"Accept-Language": BROWSER_HEADERS["Accept-Language"]},
                )
                await context.add_init_script(STEALTH_SCRIPT)
                page = await context.new_page()
                response = await page.goto(url, timeout=timeout * 1000, wait_until="domcontentloaded")

                if response is None:
                    raise NetworkError("No response from page", source=source, url=url)
                if response.status >= 400:
                    raise HTTPError("Browser navigation error", status_code=response.status, source=source, url=url)

                if wait_for_selector:
                    try:
                        await page.wait_for_selector(wait_for_selector, timeout=10000)
                    except PlaywrightTimeoutError:
                        logger.debug(f"Selector {wait_for_selector} not found, continuing...", source=source)

                content = await page.content()
            finally:
                await browser.close()
    except PlaywrightTimeoutError as e:
        raise FetchTimeoutError(f"Navigation timeout: {e}", source=source, url=url) from e
    except PlaywrightError as e:
        # Chromium absent, crash au lancement, navigation impossible
        raise NetworkError(f"Browser fetch failed: {e}", source=source, url=url) from e

    duration_ms = (time.perf_counter() - start) * 1000
    logger.fetch_success(source, url, duration_ms, size=len(content))
    return content
