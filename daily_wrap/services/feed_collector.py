from __future__ import annotations

import asyncio
import html
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable

import feedparser
import requests
from dateutil import parser as date_parser

from daily_wrap.config.feeds import CATEGORIES, RSS_FEEDS, FeedSource
from daily_wrap.config.settings import get_settings
from daily_wrap.models.schemas import RawItem

log = logging.getLogger(__name__)

UNTITLED = "제목 없음"

# zone abbreviations seen in Korean feeds that dateutil does not know
TZINFOS = {"KST": 9 * 3600, "JST": 9 * 3600}

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def strip_html(value: str | None) -> str:
    if not value:
        return ""
    text = html.unescape(_TAG_RE.sub("", value))
    return _WS_RE.sub(" ", text).strip()


def parse_published(entry: dict, fallback: datetime) -> datetime:
    """
    Best-effort publication time for a feed entry.
    Anything we cannot read becomes `fallback` (the fetch time) so the item
    survives the recency filter instead of being dropped.
    """
    for key in ("published", "updated", "pubDate"):
        raw = entry.get(key)
        if not raw:
            continue
        try:
            parsed = date_parser.parse(raw, tzinfos=TZINFOS)
        except (ValueError, OverflowError, TypeError):
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    for key in ("published_parsed", "updated_parsed"):
        struct = entry.get(key)
        if struct:
            try:
                return datetime(*struct[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue

    return fallback


def _entry_description(entry: dict) -> str:
    text = entry.get("summary") or entry.get("description")
    if not text:
        content = entry.get("content") or []
        if content:
            text = content[0].get("value")
    return strip_html(text)


def parse_feed(content: bytes | str, source: FeedSource, category: str, fetched_at: datetime | None = None) -> list[RawItem]:
    fetched_at = fetched_at or datetime.now(timezone.utc)
    parsed = feedparser.parse(content)

    if parsed.bozo and not parsed.entries:
        raise ValueError(f"malformed feed: {parsed.get('bozo_exception')}")

    items: list[RawItem] = []
    for entry in parsed.entries:
        items.append(
            RawItem(
                title=strip_html(entry.get("title")) or UNTITLED,
                link=(entry.get("link") or "").strip(),
                published_at=parse_published(entry, fetched_at),
                description=_entry_description(entry),
                category=category,
                source_name=source.source_name,
            )
        )
    return items


def fetch_single_feed(
    source: FeedSource,
    category: str,
    timeout: float | None = None,
    user_agent: str | None = None,
) -> list[RawItem]:
    """
    Fetch one feed. Network, HTTP and parse failures degrade to an empty list;
    anything else propagates and is absorbed per feed by `_gather_feeds`.
    """
    s = get_settings()
    timeout = timeout if timeout is not None else s.feed_timeout_seconds
    headers = {"User-Agent": user_agent or s.feed_user_agent}

    try:
        log.info("[RSS] Fetching: %s", source.url)
        r = requests.get(source.url, headers=headers, timeout=timeout)
        r.raise_for_status()
        items = parse_feed(r.content, source, category)
    except (requests.RequestException, ValueError) as e:
        log.warning("[RSS] Error fetching %s: %s", source.url, e)
        return []

    log.info("[RSS] Fetched %d items from %s", len(items), source.source_name)
    return items


async def _gather_feeds(jobs: list[tuple[FeedSource, str]], timeout: float | None) -> list[list[RawItem]]:
    results = await asyncio.gather(
        *(asyncio.to_thread(fetch_single_feed, source, category, timeout) for source, category in jobs),
        return_exceptions=True,
    )

    out: list[list[RawItem]] = []
    for (source, _), res in zip(jobs, results):
        if isinstance(res, BaseException):
            log.warning("[RSS] Unexpected failure for %s: %s", source.url, res)
            out.append([])
        else:
            out.append(res)
    return out


def _collect(jobs: list[tuple[FeedSource, str]], timeout: float | None) -> list[list[RawItem]]:
    if not jobs:
        return []
    return asyncio.run(_gather_feeds(jobs, timeout))


def fetch_by_category(
    category: str,
    feeds: dict[str, list[FeedSource]] | None = None,
    timeout: float | None = None,
) -> list[RawItem]:
    feeds = RSS_FEEDS if feeds is None else feeds
    jobs = [(source, category) for source in feeds.get(category, [])]

    items: list[RawItem] = []
    for batch in _collect(jobs, timeout):
        items.extend(batch)
    return items


def fetch_all_feeds(
    feeds: dict[str, list[FeedSource]] | None = None,
    timeout: float | None = None,
) -> list[RawItem]:
    """
    Fetch every configured feed concurrently and return the union,
    grouped in category order.
    """
    feeds = RSS_FEEDS if feeds is None else feeds
    log.info("[RSS] Starting to fetch all feeds...")

    jobs = [(source, category) for category in CATEGORIES for source in feeds.get(category, [])]
    results = _collect(jobs, timeout)

    by_category: dict[str, list[RawItem]] = {c: [] for c in CATEGORIES}
    for (_, category), batch in zip(jobs, results):
        by_category[category].extend(batch)

    all_items: list[RawItem] = []
    for category in CATEGORIES:
        log.info("[RSS] Category %s: %d items", category, len(by_category[category]))
        all_items.extend(by_category[category])

    log.info("[RSS] Total items fetched: %d", len(all_items))
    return all_items


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_recent_news(
    items: Iterable[RawItem],
    hours_ago: float = 24,
    now: datetime | None = None,
) -> list[RawItem]:
    now = _as_utc(now or datetime.now(timezone.utc))
    cutoff = now - timedelta(hours=hours_ago)

    filtered = [it for it in items if _as_utc(it.published_at) >= cutoff]
    log.info("[RSS] Filtered to %d items from last %s hours", len(filtered), hours_ago)
    return filtered
