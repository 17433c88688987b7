"""
Configuration du process, lue une seule fois au démarrage.

Settings est immuable: il est construit par `Settings.from_env()` puis passé
explicitement à l'orchestrateur, au scheduler et au routeur HTTP.
"""
import os
from importlib.util import find_spec
from dataclasses import dataclass
from typing import Mapping, Optional

from dealfinder.core.exceptions import ConfigurationError
from dealfinder.core.source_policy import (
    KEEPA_DOMAIN_UK,
    SourceKind,
    SourcePolicy,
    get_policy,
)

DEFAULT_AFFILIATE_TAG = "pricedropuk0c-21"

KEEPA_SOURCES = (SourceKind.API_STATS, SourceKind.API_DELTA)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    webhook_url: str
    policy: SourcePolicy
    keepa_api_key: Optional[str] = None
    affiliate_tag: str = DEFAULT_AFFILIATE_TAG
    keepa_domain: int = KEEPA_DOMAIN_UK

    min_discount: int = 20
    max_discount: int = 100
    min_price: float = 0.0
    top_n: int = 5

    schedule_cron: str = "0 */6 * * *"
    run_on_startup: bool = True
    port: int = 3000
    log_level: str = "INFO"
    http_timeout: float = 20.0

    @property
    def source(self) -> SourceKind:
        return self.policy.kind

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Construit la configuration depuis l'environnement.

        Raises:
            ConfigurationError: credential requis absent ou valeur invalide.
        """
        env = os.environ if environ is None else environ

        webhook_url = _get(env, "DISCORD_WEBHOOK_URL")
        if not webhook_url:
            raise ConfigurationError("DISCORD_WEBHOOK_URL not set", variable="DISCORD_WEBHOOK_URL")

        raw_kind = _get(env, "SOURCE_KIND") or SourceKind.API_STATS.value
        try:
            kind = SourceKind(raw_kind.lower())
        except ValueError:
            allowed = ", ".join(k.value for k in SourceKind)
            raise ConfigurationError(
                f"SOURCE_KIND must be one of {allowed}, got {raw_kind!r}",
                variable="SOURCE_KIND",
            )

        keepa_api_key = _get(env, "KEEPA_API_KEY")
        if kind in KEEPA_SOURCES and not keepa_api_key:
            raise ConfigurationError(
                f"KEEPA_API_KEY not set (required for {kind.value})",
                variable="KEEPA_API_KEY",
            )

        url = None
        if kind == SourceKind.FEED_TEXT:
            url = _get(env, "FEED_URL")
        elif kind == SourceKind.SCRAPED_DOM:
            url = _get(env, "SCRAPE_URL")

        policy = get_policy(kind).with_overrides(
            url=url,
            link_base_url=_get(env, "LINK_BASE_URL"),
            currency_symbol=_get(env, "CURRENCY_SYMBOL"),
            price_scale=_get_int(env, "KEEPA_PRICE_SCALE"),
            price_index=_get_int(env, "KEEPA_PRICE_INDEX"),
            date_range=_get_int(env, "KEEPA_DATE_RANGE"),
            card_selector=_get(env, "SCRAPE_CARD_SELECTOR"),
            render_js=_get_bool(env, "SCRAPE_RENDER_JS"),
        )
        if policy.price_scale <= 0:
            raise ConfigurationError("KEEPA_PRICE_SCALE must be > 0", variable="KEEPA_PRICE_SCALE")
        if policy.render_js and not playwright_available():
            raise ConfigurationError(
                "SCRAPE_RENDER_JS requires playwright (pip install 'deal-finder-bot[browser]')",
                variable="SCRAPE_RENDER_JS",
            )

        min_discount = _get_int(env, "MIN_DISCOUNT", policy.min_discount)
        max_discount = _get_int(env, "MAX_DISCOUNT", 100)
        if not 0 <= min_discount <= max_discount <= 100:
            raise ConfigurationError(
                f"Discount bounds must satisfy 0 <= MIN_DISCOUNT <= MAX_DISCOUNT <= 100 "
                f"(got {min_discount}, {max_discount})",
                variable="MIN_DISCOUNT",
            )

        top_n = _get_int(env, "TOP_N", 5)
        if top_n < 1:
            raise ConfigurationError("TOP_N must be >= 1", variable="TOP_N")

        run_on_startup = _get_bool(env, "RUN_ON_STARTUP")

        return cls(
            webhook_url=webhook_url,
            policy=policy,
            keepa_api_key=keepa_api_key,
            affiliate_tag=_get(env, "AMAZON_ASSOCIATES_ID") or DEFAULT_AFFILIATE_TAG,
            keepa_domain=_get_int(env, "KEEPA_DOMAIN", KEEPA_DOMAIN_UK),
            min_discount=min_discount,
            max_discount=max_discount,
            min_price=_get_float(env, "MIN_PRICE", 0.0),
            top_n=top_n,
            schedule_cron=_get(env, "SCHEDULE_CRON") or policy.schedule_cron,
            run_on_startup=True if run_on_startup is None else run_on_startup,
            port=_get_int(env, "PORT", 3000),
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
            http_timeout=_get_float(env, "HTTP_TIMEOUT", 20.0),
        )

    def describe(self) -> dict:
        """Résumé loggable au démarrage (sans secrets)."""
        return {
            "source": self.source.value,
            "url": self.policy.url,
            "keepa_api_key": "set" if self.keepa_api_key else "missing",
            "discord_webhook": "set" if self.webhook_url else "missing",
            "affiliate_id": self.affiliate_tag,
            "min_discount": self.min_discount,
            "max_discount": self.max_discount,
            "top_n": self.top_n,
            "schedule": self.schedule_cron,
        }


def playwright_available() -> bool:
    """Le rendu JS dépend de l'extra optionnel `browser`."""
    return find_spec("playwright") is not None


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_int(env: Mapping[str, str], name: str, default: Optional[int] = None) -> Optional[int]:
    value = _get(env, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", variable=name)


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = _get(env, name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}", variable=name)


def _get_bool(env: Mapping[str, str], name: str) -> Optional[bool]:
    value = _get(env, name)
    if value is None:
        return None
    if value.lower() in _TRUE_VALUES:
        return True
    if value.lower() in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}", variable=name)
