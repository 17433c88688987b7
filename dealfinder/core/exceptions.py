"""
Hiérarchie d'exceptions du bot.

Permet de distinguer:
- Erreurs de configuration (fatales au démarrage)
- Erreurs de récupération upstream (le run s'arrête, "zéro deal")
- Erreurs de livraison (loggées par le service webhook, jamais levées)
"""
from typing import Optional


class DealFinderError(Exception):
    """Exception de base du bot."""

    def __init__(self, message: str, source: Optional[str] = None, url: Optional[str] = None):
        self.source = source
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.source:
            parts.append(f"source={self.source}")
        if self.url:
            parts.append(f"url={redact_url(self.url)[:80]}")
        return " | ".join(parts)


def redact_url(url: str) -> str:
    """Masque la clé API Keepa dans les URLs loggées."""
    if "key=" not in url:
        return url
    head, _, tail = url.partition("key=")
    _, amp, rest = tail.partition("&")
    return f"{head}key=***{amp}{rest}"


class ConfigurationError(DealFinderError):
    """Variable d'environnement absente ou invalide."""

    def __init__(self, message: str, variable: Optional[str] = None):
        self.variable = variable
        super().__init__(message)


# =============================================================================
# ERREURS DE RÉCUPÉRATION
# =============================================================================

class FetchError(DealFinderError):
    """Échec de récupération du payload upstream."""
    pass


class NetworkError(FetchError):
    """Erreur réseau générique (DNS, connexion refusée, reset)."""
    pass


class FetchTimeoutError(NetworkError):
    """Timeout lors de la requête upstream."""
    pass


class HTTPError(FetchError):
    """Réponse upstream avec un status non-2xx."""

    def __init__(self, message: str, status_code: int, **kwargs):
        self.status_code = status_code
        super().__init__(message, **kwargs)

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {super().__str__()}"


class UpstreamAPIError(FetchError):
    """L'API a répondu 2xx mais avec un objet d'erreur (ex: Keepa `error`)."""
    pass


class DataExtractionError(FetchError):
    """Corps de réponse illisible (JSON invalide, page vide)."""
    pass
