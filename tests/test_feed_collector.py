from __future__ import annotations

import datetime as dt
import threading
import time

import requests

import daily_wrap.services.feed_collector as fc
from daily_wrap.config.feeds import FeedSource
from daily_wrap.services.feed_collector import (
    UNTITLED,
    fetch_all_feeds,
    fetch_single_feed,
    filter_recent_news,
    parse_feed,
    parse_published,
    strip_html,
)

from conftest import NOW, make_item

SOURCE = FeedSource("https://rss.example.com/politics.xml", "예시일보")

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>예시일보 정치</title>
    <item>
      <title><![CDATA[<b>여야</b>, 예산안 합의]]></title>
      <link>https://example.com/news/1</link>
      <pubDate>Sun, 18 Jan 2026 21:00:00 +0900</pubDate>
      <description><![CDATA[<p>여야가 &quot;예산안&quot;에 합의했다.</p>]]></description>
    </item>
    <item>
      <link>https://example.com/news/2</link>
      <pubDate>not a date</pubDate>
    </item>
  </channel>
</rss>
"""


class _Resp:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_strip_html():
    assert strip_html("<p>hello <b>world</b></p>\n &amp; more") == "hello world & more"
    assert strip_html(None) == ""


def test_parse_feed_normalizes_entries():
    items = parse_feed(RSS.encode("utf-8"), SOURCE, "politics", fetched_at=NOW)

    assert len(items) == 2
    first, second = items
    assert first.title == "여야, 예산안 합의"
    assert first.link == "https://example.com/news/1"
    assert first.description == '여야가 "예산안"에 합의했다.'
    assert first.published_at == dt.datetime(2026, 1, 18, 12, 0, tzinfo=dt.timezone.utc)
    assert first.source_name == "예시일보"
    assert first.category == "politics"

    # missing title and unparseable date
    assert second.title == UNTITLED
    assert second.published_at == NOW


def test_unparseable_dates_survive_recency_filter():
    items = parse_feed(RSS.encode("utf-8"), SOURCE, "politics", fetched_at=NOW)
    assert len(filter_recent_news(items, 24, now=NOW)) == 2


def test_korean_zone_abbreviation_is_honoured():
    entry = {"published": "Mon, 19 Jan 2026 09:00:00 KST"}
    assert parse_published(entry, NOW - dt.timedelta(days=1)) == NOW


def test_stale_kst_article_is_filtered_out():
    rss = RSS.replace("Sun, 18 Jan 2026 21:00:00 +0900", "Sat, 17 Jan 2026 21:00:00 KST")
    items = parse_feed(rss.encode("utf-8"), SOURCE, "politics", fetched_at=NOW)

    assert items[0].published_at == dt.datetime(2026, 1, 17, 12, 0, tzinfo=dt.timezone.utc)
    assert [it.link for it in filter_recent_news(items, 24, now=NOW)] == ["https://example.com/news/2"]


def test_filter_recent_news_window():
    old = make_item("30시간 전 기사", "https://a.com/old", hours_ago=30)
    fresh = make_item("23시간 전 기사", "https://a.com/fresh", hours_ago=23)

    assert filter_recent_news([old, fresh], 24, now=NOW) == [fresh]


def test_fetch_single_feed_degrades_on_network_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fc.requests, "get", boom)
    assert fetch_single_feed(SOURCE, "politics") == []


def test_fetch_single_feed_degrades_on_http_error(monkeypatch):
    monkeypatch.setattr(fc.requests, "get", lambda *a, **k: _Resp(b"", status=503))
    assert fetch_single_feed(SOURCE, "politics") == []


def test_fetch_single_feed_degrades_on_malformed_feed(monkeypatch):
    monkeypatch.setattr(fc.requests, "get", lambda *a, **k: _Resp(b"<html><body>oops"))
    assert fetch_single_feed(SOURCE, "politics") == []


def test_fetch_single_feed_passes_timeout(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen["timeout"] = timeout
        seen["ua"] = headers["User-Agent"]
        return _Resp(RSS.encode("utf-8"))

    monkeypatch.setattr(fc.requests, "get", fake_get)
    items = fetch_single_feed(SOURCE, "economy")

    assert len(items) == 2
    assert all(it.category == "economy" for it in items)
    assert seen["timeout"] == 10.0
    assert seen["ua"] == "daily-wrap-bot/1.0"


def test_fetch_all_feeds_collects_every_category_despite_failures(monkeypatch):
    feeds = {
        "politics": [FeedSource("https://p1", "P1"), FeedSource("https://p2", "P2")],
        "economy": [FeedSource("https://e1", "E1")],
        "society": [FeedSource("https://s1", "S1")],
    }

    def fake_fetch(source, category, timeout=None):
        if source.url == "https://p2":
            raise RuntimeError("unexpected")
        if source.url == "https://e1":
            time.sleep(0.05)
        return [make_item(f"{source.source_name} 기사", f"{source.url}/1", category, source_name=source.source_name)]

    monkeypatch.setattr(fc, "fetch_single_feed", fake_fetch)
    items = fetch_all_feeds(feeds)

    assert [it.source_name for it in items] == ["P1", "E1", "S1"]
    assert [it.category for it in items] == ["politics", "economy", "society"]


def test_fetch_all_feeds_fetches_concurrently(monkeypatch):
    feeds = {c: [FeedSource(f"https://{c}", c.upper())] for c in ("politics", "economy", "society")}
    # each fetch blocks until all three are in flight
    barrier = threading.Barrier(3, timeout=1)

    def fake_fetch(source, category, timeout=None):
        barrier.wait()
        return [make_item(f"{source.source_name} 기사", f"{source.url}/1", category, source_name=source.source_name)]

    monkeypatch.setattr(fc, "fetch_single_feed", fake_fetch)
    items = fetch_all_feeds(feeds)

    assert [it.source_name for it in items] == ["POLITICS", "ECONOMY", "SOCIETY"]
