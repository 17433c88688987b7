"""
Payload Locator - trouve la liste de produits dans un payload upstream.

Le schéma upstream n'est pas garanti (Keepa renvoie `products`, `deals.dr`,
nos collectors renvoient `items`...). Plutôt qu'un chemin fixe, on cherche en
largeur la première liste dont le premier élément ressemble à un produit.
"""
from collections import deque
from typing import Any, List, Optional, Sequence

from dealfinder.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 4
ID_KEYS = ("asin", "id", "productId", "product_id", "sku", "guid")
# Clés sous lesquelles les sources rangent leurs listes de produits
LIST_KEYS = ("products", "items", "deals", "dr", "asinList", "results", "entries")


def looks_like_product(value: Any, id_keys: Sequence[str] = ID_KEYS) -> bool:
    if not isinstance(value, dict):
        return False
    return any(value.get(key) not in (None, "") for key in id_keys)


def find_candidate_array(
    payload: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    id_keys: Sequence[str] = ID_KEYS,
) -> Optional[list]:
    """
    Recherche en largeur bornée par `max_depth`.

    Retourne la première liste dont le premier élément porte un identifiant,
    ou None si aucune n'est trouvée.
    """
    queue = deque([(payload, 0)])
    while queue:
        node, depth = queue.popleft()

        if isinstance(node, list):
            if node and looks_like_product(node[0], id_keys):
                return node
            children = node
        elif isinstance(node, dict):
            children = node.values()
        else:
            continue

        if depth >= max_depth:
            continue
        for child in children:
            if isinstance(child, (dict, list)):
                queue.append((child, depth + 1))

    return None


def _has_empty_list(payload: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> bool:
    """True si une clé de liste connue (`products`, `items`...) est présente mais vide."""
    queue = deque([(payload, 0)])
    while queue:
        node, depth = queue.popleft()
        if not isinstance(node, dict):
            continue
        if any(node.get(key) == [] for key in LIST_KEYS):
            return True
        if depth < max_depth:
            queue.extend((child, depth + 1) for child in node.values() if isinstance(child, dict))
    return False


def locate(payload: Any, max_depth: int = DEFAULT_MAX_DEPTH, source: Optional[str] = None) -> List[Any]:
    """Retourne les candidats du payload, [] si aucune liste n'est localisable."""
    found = find_candidate_array(payload, max_depth=max_depth)
    if found is not None:
        return list(found)

    if _has_empty_list(payload, max_depth=max_depth):
        logger.info("Upstream returned an empty product list", source=source)
        return []

    # Schéma inattendu: ce n'est pas une erreur, juste "rien ce run"
    logger.warning(
        "Payload has no candidate array",
        source=source,
        payload_type=type(payload).__name__,
        top_keys=list(payload)[:10] if isinstance(payload, dict) else None,
    )
    return []
