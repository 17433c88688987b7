"""
Helpers de prix: unités mineures, prix en texte, calcul de remise.
"""
import math
import re
from typing import Any, Optional

# "1,299.99", "12,50", "1.234,56", "45"
_PRICE_RE = re.compile(r"\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?")


def from_minor_units(value: Any, scale: int = 100) -> Optional[float]:
    """
    Convertit un prix entier en unités mineures vers les unités majeures.

    Keepa utilise -1 (pas de donnée) et 0 (hors stock): ces valeurs sont
    traitées comme inconnues.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return round(value / scale, 2)


def parse_price_text(text: Any) -> Optional[float]:
    """
    Extrait le premier montant d'un texte libre ("$1,299.99", "£12", "12,50 €").

    Retourne None si aucun token numérique n'est trouvé.
    """
    if text is None:
        return None
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return float(text) if text > 0 else None
    match = _PRICE_RE.search(str(text))
    if not match:
        return None
    return _to_float(match.group(0))


def _to_float(token: str) -> Optional[float]:
    # Le dernier séparateur suivi de 1-2 chiffres est le séparateur décimal
    decimal_match = re.search(r"[.,](\d{1,2})$", token)
    if decimal_match:
        integer_part = re.sub(r"[.,]", "", token[: decimal_match.start()])
        token = f"{integer_part}.{decimal_match.group(1)}"
    else:
        token = re.sub(r"[.,]", "", token)
    try:
        value = float(token)
    except ValueError:
        return None
    return value if value > 0 else None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_discount(current: Optional[float], reference: Optional[float]) -> Optional[int]:
    """Remise en % (arrondi au plus proche), None si ref > cur > 0 n'est pas vérifié."""
    if current is None or reference is None:
        return None
    if not reference > current > 0:
        return None
    return round_half_up((reference - current) / reference * 100)


def clamp_percent(value: Any) -> Optional[int]:
    """Borne une remise upstream dans [0, 100]. Accepte -35 (delta Keepa) comme 35."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = abs(float(value))
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return max(0, min(100, round_half_up(number)))


def reference_from_discount(current: float, discount: int) -> Optional[float]:
    """Reconstitue un prix de référence à partir d'une remise upstream."""
    if not 0 < discount < 100 or current <= 0:
        return None
    return round(current / (1 - discount / 100), 2)
