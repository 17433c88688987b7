from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from dealfinder.core.source_policy import SourceKind


class Deal(BaseModel):
    """Deal canonique, sortie du normalizer. Jamais modifié après construction."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Product"

    current_price: float
    # Prix "avant" (liste, moyenne, historique) servant de base au calcul
    reference_price: Optional[float] = None
    discount_percent: int = Field(default=0, ge=0, le=100)

    link: str
    source: SourceKind

    # True si la remise vient d'un champ upstream et non d'un recalcul local
    low_confidence: bool = False

    rating: Optional[float] = None
    reviews: Optional[int] = None
    category: Optional[str] = None

    def is_eligible(self, min_discount: int, max_discount: int = 100, min_price: float = 0.0) -> bool:
        if self.current_price <= 0 or self.current_price < min_price:
            return False
        if self.reference_price is None or self.reference_price <= self.current_price:
            return False
        return min_discount <= self.discount_percent <= max_discount
