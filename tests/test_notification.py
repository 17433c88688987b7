from datetime import datetime, timezone

from dealfinder.core.source_policy import SourceKind, get_policy
from dealfinder.services.notification import (
    HOT_DEAL_COLOR,
    LOW_CONFIDENCE_COLOR,
    MAX_EMBEDS,
    NotificationPayload,
    affiliate_link,
    format_notification,
    truncate,
)

POLICY = get_policy(SourceKind.API_STATS)
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_empty_list_gives_nothing_to_send():
    assert format_notification([], "tag-21", POLICY) is None


def test_single_deal_message(make_deal):
    deal = make_deal("B000000001", 60, current=40.0, reference=100.0, title="Kettle", rating=4.5, reviews=120)
    message = format_notification([deal], "tag-21", POLICY, now=NOW)

    assert message.content.startswith("🎉 **Found 1 Hot Deal!** 🔥")
    assert "Amazon UK" in message.content
    assert len(message.embeds) == 1

    embed = message.embeds[0]
    assert embed["title"] == "🔥 Kettle"
    assert embed["description"] == "**60% OFF**"
    assert embed["color"] == HOT_DEAL_COLOR
    assert embed["timestamp"] == NOW.isoformat()

    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert fields["💰 Current Price"] == "£40.00"
    assert fields["Was"] == "£100.00"
    assert fields["📊 Discount"] == "60%"
    assert fields["⭐ Rating"] == "4.5/5 (120 reviews)"
    assert fields["🔗 Buy Now"] == "[View on Amazon UK](https://amazon.co.uk/dp/B000000001?tag=tag-21)"


def test_title_is_truncated(make_deal):
    deal = make_deal("B000000001", 60, title="x" * 150)
    embed = format_notification([deal], "tag-21", POLICY).embeds[0]
    assert embed["title"] == "🔥 " + "x" * 100 + "..."


def test_embeds_capped(make_deal):
    deals = [make_deal(f"B00000000{i}", 90 - i) for i in range(12)]
    message = format_notification(deals, "tag-21", POLICY)
    assert len(message.embeds) == MAX_EMBEDS
    assert "Found 12 Hot Deals!" in message.content


def test_low_confidence_deal_is_flagged(make_deal):
    deal = make_deal("B000000001", 75, low_confidence=True)
    embed = format_notification([deal], "tag-21", POLICY).embeds[0]
    assert embed["color"] == LOW_CONFIDENCE_COLOR
    assert "reported by source" in embed["footer"]["text"]


def test_feed_currency(make_deal):
    deal = make_deal("B000000001", 50, current=25.0, reference=50.0)
    message = format_notification([deal], "tag-21", get_policy(SourceKind.FEED_TEXT))
    fields = {f["name"]: f["value"] for f in message.embeds[0]["fields"]}
    assert fields["💰 Current Price"] == "$25.00"
    assert "Amazon US" in message.content


def test_affiliate_link_replaces_existing_tag():
    link = affiliate_link("https://amazon.co.uk/dp/B01?tag=old&th=1", "new-21")
    assert link == "https://amazon.co.uk/dp/B01?th=1&tag=new-21"
    assert affiliate_link("https://amazon.co.uk/dp/B01", "") == "https://amazon.co.uk/dp/B01"


def test_truncate_short_text_unchanged():
    assert truncate("short") == "short"


def test_payload_json_drops_empty_fields():
    payload = NotificationPayload(content="hi", embeds=[], avatar_url=None)
    assert payload.to_json() == {"content": "hi", "embeds": [], "username": "Deal Finder Bot"}
