from typing import Iterable, List

from dealfinder.normalizers.item import Deal

DEFAULT_TOP_N = 5


def select(
    deals: Iterable[Deal],
    min_discount: int,
    max_discount: int = 100,
    top_n: int = DEFAULT_TOP_N,
    min_price: float = 0.0,
) -> List[Deal]:
    """
    Filtre et classe les deals. Fonction pure: l'entrée n'est pas modifiée.

    1. écarte les deals inéligibles (prix, référence, bornes de remise)
    2. dédoublonne par id, premier vu conservé
    3. tri stable par remise décroissante (égalités: ordre d'entrée)
    4. tronque à top_n
    """
    seen = set()
    kept = []
    for deal in deals:
        if not deal.is_eligible(min_discount, max_discount, min_price):
            continue
        if deal.id in seen:
            continue
        seen.add(deal.id)
        kept.append(deal)

    ranked = sorted(kept, key=lambda d: d.discount_percent, reverse=True)
    return ranked[:max(top_n, 0)]
