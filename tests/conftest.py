import pytest

from dealfinder.core.config import Settings
from dealfinder.core.source_policy import SourceKind, get_policy
from dealfinder.normalizers.item import Deal

WEBHOOK_URL = "https://discord.test/api/webhooks/1/token"


@pytest.fixture
def make_settings():
    def _make(kind=SourceKind.API_STATS, **overrides):
        values = {
            "webhook_url": WEBHOOK_URL,
            "policy": get_policy(kind),
            "keepa_api_key": "test-key",
            "min_discount": 50,
            "run_on_startup": False,
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def make_deal():
    def _make(deal_id, discount, current=10.0, reference=100.0, **fields):
        return Deal(
            id=deal_id,
            title=fields.pop("title", f"Product {deal_id}"),
            current_price=current,
            reference_price=reference,
            discount_percent=discount,
            link=f"https://amazon.co.uk/dp/{deal_id}",
            source=fields.pop("source", SourceKind.API_STATS),
            **fields,
        )
    return _make
