"""
Configuration du logging structuré JSON.

Chaque log contient:
- timestamp: ISO8601
- level: DEBUG/INFO/WARNING/ERROR/CRITICAL
- message: message principal
- source: SourceKind du run (optionnel)
- url: URL traitée, clé API masquée (optionnel)
- trace_id: ID du run pour corrélation (optionnel)
- duration_ms: durée en ms (optionnel)
- extra: données additionnelles
"""
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from dealfinder.core.exceptions import redact_url

# Context variable pour le trace_id (propagé à travers les await)
_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def get_trace_id() -> Optional[str]:
    """Récupère le trace_id courant."""
    return _trace_id.get()


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Définit un trace_id. Génère un nouveau si non fourni."""
    if trace_id is None:
        trace_id = str(uuid.uuid4())[:8]
    _trace_id.set(trace_id)
    return trace_id


# Champs de contexte promus au premier niveau du JSON, le reste va dans "extra"
CONTEXT_FIELDS = ("source", "url", "duration_ms", "status_code", "error_type")


class JSONFormatter(logging.Formatter):
    """Une ligne JSON par record, champs vides omis."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": get_trace_id(),
        }
        for key in CONTEXT_FIELDS:
            entry[key] = getattr(record, key, None)
        entry["extra"] = getattr(record, "extra_data", None) or None
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(
            {key: value for key, value in entry.items() if value is not None},
            ensure_ascii=False,
            default=str,
        )


class StructuredLogger:
    """
    Logger du pipeline: les kwargs connus (CONTEXT_FIELDS) deviennent des
    champs JSON, les autres sont regroupés sous "extra". Les valeurs None
    sont ignorées.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **fields):
        if not self._logger.isEnabledFor(level):
            return

        context = {}
        extra_data = {}
        for key, value in fields.items():
            if value is None:
                continue
            if key in CONTEXT_FIELDS:
                context[key] = value
            else:
                extra_data[key] = value

        if "url" in context:
            context["url"] = redact_url(str(context["url"]))[:200]
        if "duration_ms" in context:
            context["duration_ms"] = round(context["duration_ms"], 2)
        if extra_data:
            context["extra_data"] = extra_data

        self._logger.log(level, message, exc_info=exc_info, extra=context)

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = True, **fields):
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)

    def critical(self, message: str, exc_info: bool = True, **fields):
        self._log(logging.CRITICAL, message, exc_info=exc_info, **fields)

    # Méthodes spécialisées pour le pipeline

    def fetch_start(self, source: str, url: str):
        """Log le début d'une récupération upstream."""
        self.info("Fetch started", source=source, url=url)

    def fetch_success(self, source: str, url: str, duration_ms: float, size: Optional[int] = None):
        """Log une récupération réussie."""
        self.info(
            "Fetch successful",
            source=source,
            url=url,
            duration_ms=duration_ms,
            response_size=size,
        )

    def fetch_error(self, source: str, error: Exception, duration_ms: Optional[float] = None):
        """Log une erreur de récupération (le run est abandonné)."""
        self.error(
            f"Fetch failed: {error}",
            source=source,
            url=getattr(error, "url", None),
            duration_ms=duration_ms,
            error_type=type(error).__name__,
            status_code=getattr(error, "status_code", None),
            exc_info=False,  # L'erreur est déjà dans le message
        )

    def run_summary(self, report):
        """Log le bilan d'un run (RunReport)."""
        self.info(
            "Run finished",
            source=report.source,
            duration_ms=report.duration_ms,
            last_state=report.last_state.value,
            candidates=report.candidates,
            normalized=report.normalized,
            selected=report.selected,
            delivered=report.delivered,
            error=report.error,
        )


def setup_logging(level: str = "INFO"):
    """
    Configure le logging pour l'application.

    Args:
        level: Niveau de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Supprimer les handlers existants
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    # Réduire le bruit des libs externes
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Obtient un logger structuré."""
    return StructuredLogger(name)
