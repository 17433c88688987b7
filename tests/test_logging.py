import io
import json
import logging

import pytest

from dealfinder.core.exceptions import HTTPError, redact_url
from dealfinder.core.logging import JSONFormatter, get_logger, set_trace_id


@pytest.fixture
def captured():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    target = logging.getLogger("dealfinder.tests")
    target.addHandler(handler)
    target.setLevel(logging.DEBUG)
    yield lambda: [json.loads(line) for line in stream.getvalue().splitlines()]
    target.removeHandler(handler)


def test_fetch_start_is_structured(captured):
    set_trace_id("abc12345")
    get_logger("dealfinder.tests").fetch_start("api_stats", "https://api.keepa.com/query?key=SECRET&domain=2")

    record = captured()[-1]
    assert record["message"] == "Fetch started"
    assert record["trace_id"] == "abc12345"
    assert record["source"] == "api_stats"
    assert record["url"] == "https://api.keepa.com/query?key=***&domain=2"


def test_fetch_error_carries_status(captured):
    error = HTTPError("Upstream error", status_code=429, source="api_delta")
    get_logger("dealfinder.tests").fetch_error("api_delta", error, duration_ms=12.5)

    record = captured()[-1]
    assert record["level"] == "ERROR"
    assert record["status_code"] == 429
    assert record["error_type"] == "HTTPError"
    assert record["duration_ms"] == 12.5
    assert "exception" not in record


def test_extra_fields(captured):
    get_logger("dealfinder.tests").info("Normalized", dropped=2, ignored=None)
    assert captured()[-1]["extra"] == {"dropped": 2}


def test_redact_url_without_key():
    assert redact_url("https://example.com/feed") == "https://example.com/feed"
