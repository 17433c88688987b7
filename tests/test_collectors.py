import asyncio
import json

import httpx
import pytest

from dealfinder.collectors import COLLECTORS, get_collector
from dealfinder.collectors.html_page import fetch_deals_page, parse_deal_cards
from dealfinder.collectors.http_json import fetch_json
from dealfinder.collectors.keepa import KEEPA_PRODUCT_URL, fetch_keepa_deals, fetch_keepa_products
from dealfinder.collectors.rss_feed import fetch_feed, parse_feed
from dealfinder.core.exceptions import (
    DataExtractionError,
    FetchTimeoutError,
    HTTPError,
    NetworkError,
    UpstreamAPIError,
)
from dealfinder.core.source_policy import SourceKind

URL = "https://api.keepa.com/query"

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Popular deals</title>
<item>
  <title>Noise Cancelling Headphones</title>
  <link>https://camelcamelcamel.com/product/B0FEED0001</link>
  <guid>https://camelcamelcamel.com/product/B0FEED0001</guid>
  <description>Current Price: $25.00 | Avg. Price: $100.00</description>
</item>
<item>
  <title>Blender</title>
  <link>https://camelcamelcamel.com/product/B0FEED0002</link>
  <description>Current Price: $40.00 | List Price: $80.00</description>
</item>
</channel></rss>"""

HTML = """
<html><body>
<div data-asin="B0HTML0001">
  <a href="/dp/B0HTML0001"><h2>Desk Lamp</h2></a>
  <span class="a-price"><span class="a-offscreen">£19.99</span></span>
  <span class="a-price a-text-price"><span class="a-offscreen">£39.99</span></span>
  <span class="badge">50% off</span>
</div>
<div data-asin="">
  <a href="/gp/product/B0HTML0002/ref=deal"><h3>Office Chair</h3></a>
  <span class="a-price"><span class="a-offscreen">£10.00</span></span>
</div>
<div data-asin=""><span>Sponsored</span></div>
</body></html>
"""


def _run(coro_factory, handler):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)
    return asyncio.run(scenario())


class TestFetchJson:
    def test_decodes_body(self):
        data = _run(lambda c: fetch_json(c, URL, "api_stats"), lambda r: httpx.Response(200, json={"products": []}))
        assert data == {"products": []}

    def test_http_status_error(self):
        with pytest.raises(HTTPError) as excinfo:
            _run(lambda c: fetch_json(c, URL, "api_stats"), lambda r: httpx.Response(503, text="busy"))
        assert excinfo.value.status_code == 503
        assert str(excinfo.value).startswith("HTTP 503")

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FetchTimeoutError):
            _run(lambda c: fetch_json(c, URL, "api_stats"), handler)

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            _run(lambda c: fetch_json(c, URL, "api_stats"), handler)

    def test_invalid_json(self):
        with pytest.raises(DataExtractionError):
            _run(lambda c: fetch_json(c, URL, "api_stats"), lambda r: httpx.Response(200, text="<html>"))


class TestKeepa:
    def test_query_params(self, make_settings):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"products": [{"asin": "B000000001"}], "tokensLeft": 50})

        data = _run(lambda c: fetch_keepa_products(make_settings(), c), handler)

        assert data["products"] == [{"asin": "B000000001"}]
        assert len(seen) == 1
        assert seen[0].params["key"] == "test-key"
        assert seen[0].params["domain"] == "2"
        assert json.loads(seen[0].params["selection"])["perPage"] == 50

    def test_asin_list_is_expanded(self, make_settings):
        seen = []

        def handler(request):
            seen.append(request.url)
            if str(request.url).startswith(KEEPA_PRODUCT_URL):
                return httpx.Response(200, json={"products": [{"asin": "B000000001"}, {"asin": "B000000002"}]})
            return httpx.Response(200, json={"asinList": ["B000000001", "B000000002"], "totalResults": 2})

        data = _run(lambda c: fetch_keepa_products(make_settings(), c), handler)

        assert len(data["products"]) == 2
        assert seen[1].params["asin"] == "B000000001,B000000002"

    def test_error_object_raises(self, make_settings):
        def handler(request):
            return httpx.Response(200, json={"error": {"type": "invalidKey", "message": "Invalid API key"}})

        with pytest.raises(UpstreamAPIError, match="Invalid API key"):
            _run(lambda c: fetch_keepa_products(make_settings(), c), handler)

    def test_deal_selection(self, make_settings):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"deals": {"dr": []}})

        settings = make_settings(SourceKind.API_DELTA, min_discount=70, keepa_domain=3)
        _run(lambda c: fetch_keepa_deals(settings, c), handler)

        selection = json.loads(seen[0].params["selection"])
        assert selection["deltaPercentRange"] == [70, 100]
        assert selection["domainId"] == 3
        assert selection["priceTypes"] == [0]


class TestRssFeed:
    def test_parse_feed(self):
        payload = parse_feed(RSS)
        items = payload["items"]

        assert [i["title"] for i in items] == ["Noise Cancelling Headphones", "Blender"]
        assert items[0]["link"] == "https://camelcamelcamel.com/product/B0FEED0001"
        assert "Current Price: $25.00" in items[0]["description"]
        assert items[1]["id"] == "https://camelcamelcamel.com/product/B0FEED0002"

    def test_fetch_feed(self, make_settings):
        settings = make_settings(SourceKind.FEED_TEXT)
        payload = _run(lambda c: fetch_feed(settings, c), lambda r: httpx.Response(200, content=RSS))
        assert len(payload["items"]) == 2

    def test_unreadable_feed(self, make_settings):
        settings = make_settings(SourceKind.FEED_TEXT)
        with pytest.raises(DataExtractionError):
            _run(lambda c: fetch_feed(settings, c), lambda r: httpx.Response(200, text="not a feed at all"))


class TestHtmlPage:
    def test_parse_cards(self):
        items = parse_deal_cards(HTML)["items"]

        assert [i["id"] for i in items] == ["B0HTML0001", "B0HTML0002"]
        lamp, chair = items
        assert lamp["title"] == "Desk Lamp"
        assert lamp["price_text"] == "£19.99"
        assert lamp["was_text"] == "£39.99"
        assert lamp["discount_text"] == "50%"
        assert chair["title"] == "Office Chair"
        assert chair["was_text"] is None

    def test_fetch_page(self, make_settings):
        settings = make_settings(SourceKind.SCRAPED_DOM)
        payload = _run(lambda c: fetch_deals_page(settings, c), lambda r: httpx.Response(200, text=HTML))
        assert len(payload["items"]) == 2

    def test_blocked_page(self, make_settings):
        settings = make_settings(SourceKind.SCRAPED_DOM)
        with pytest.raises(HTTPError):
            _run(lambda c: fetch_deals_page(settings, c), lambda r: httpx.Response(503, text="robot check"))


def test_every_source_has_a_collector():
    assert set(COLLECTORS) == set(SourceKind)
    assert get_collector(SourceKind.FEED_TEXT) is fetch_feed
