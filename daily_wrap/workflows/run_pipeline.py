from __future__ import annotations

import datetime as dt
import logging
from typing import Callable

from sqlalchemy.engine import Engine

from daily_wrap.config.settings import get_settings
from daily_wrap.models.schemas import PipelineResult, PipelineStats, RankedItem, RawItem
from daily_wrap.services.dedup import DedupOptions, deduplicate_news
from daily_wrap.services.feed_collector import fetch_all_feeds, filter_recent_news
from daily_wrap.services.generation_client import GenerationClient, build_generation_client
from daily_wrap.services.persistence import SaveResult, save_briefing
from daily_wrap.services.ranker import rank_all_news
from daily_wrap.services.revalidate import trigger_revalidation
from daily_wrap.services.summarizer import summarize_news_batch

log = logging.getLogger(__name__)

NO_ITEMS_ERROR = "No news items fetched from RSS feeds"


def today_in_offset(offset_hours: int, now: dt.datetime | None = None) -> dt.date:
    """Calendar day at a fixed UTC offset (KST by default)."""
    now = now or dt.datetime.now(dt.timezone.utc)
    return now.astimezone(dt.timezone(dt.timedelta(hours=offset_hours))).date()


def run_pipeline(
    briefing_date: dt.date | None = None,
    *,
    fetch: Callable[[], list[RawItem]] = fetch_all_feeds,
    client: GenerationClient | None = None,
    save: Callable[..., SaveResult] = save_briefing,
    notify: Callable[[], object] = trigger_revalidation,
    engine: Engine | None = None,
    now: dt.datetime | None = None,
) -> PipelineResult:
    """
    Collect -> Deduplicate -> Summarize -> Rank -> Persist, then notify.

    Never raises: any stage failure is recorded in the result's `errors`
    and the run is reported as failed. Only the persist stage writes.
    """
    s = get_settings()
    now = now or dt.datetime.now(dt.timezone.utc)
    briefing_date = briefing_date or today_in_offset(s.timezone_offset_hours, now)
    stats = PipelineStats()
    errors: list[str] = []

    log.info("========================================")
    log.info("[Pipeline] Starting for date: %s", briefing_date)
    log.info("[Pipeline] Dry run: %s", s.offline if client is None else client.offline)
    log.info("========================================")

    try:
        client = client or build_generation_client(s)

        # 1) Collect
        log.info("[Step 1/5] Fetching RSS feeds...")
        recent = filter_recent_news(fetch(), s.time_window_hours, now=now)
        stats.fetched = len(recent)
        log.info("[Step 1/5] Complete: %d items", stats.fetched)

        if stats.fetched == 0:
            log.error("[Pipeline] No news items fetched, aborting")
            return PipelineResult(
                success=False,
                date=briefing_date,
                stats=stats,
                errors=[NO_ITEMS_ERROR],
            )

        # 2) Deduplicate
        log.info("[Step 2/5] Deduplicating...")
        unique = deduplicate_news(recent, DedupOptions.from_settings())
        stats.after_dedup = len(unique)
        log.info("[Step 2/5] Complete: %d items", stats.after_dedup)

        # 3) Summarize
        log.info("[Step 3/5] Summarizing...")
        summarized = summarize_news_batch(unique, client, batch_size=s.summarize_batch_size)
        stats.summarized = len(summarized)
        log.info("[Step 3/5] Complete: %d items", stats.summarized)

        # 4) Rank
        log.info("[Step 4/5] Ranking by importance...")
        ranked: dict[str, list[RankedItem]] = rank_all_news(summarized, client, top_n=s.rank_top_n)
        total_ranked = sum(len(v) for v in ranked.values())
        log.info("[Step 4/5] Complete: %d items ranked", total_ranked)

        # 5) Persist
        log.info("[Step 5/5] Saving to database...")
        saved = save(ranked, briefing_date, engine=engine)
        stats.saved = saved.saved_count
        log.info("[Step 5/5] Complete: %d items saved", stats.saved)
    except Exception as e:
        errors.append(f"{type(e).__name__}: {e}")
        log.exception("[Pipeline] FAILED")
        return PipelineResult(success=False, date=briefing_date, stats=stats, errors=errors)

    # best effort, never changes the outcome
    try:
        notify()
    except Exception as e:
        log.warning("[Pipeline] Post-publish notification failed: %s", e)

    log.info("[Pipeline] SUCCESS! Briefing ID: %s Stats: %s", saved.briefing_id, stats.model_dump())
    return PipelineResult(
        success=True,
        briefing_id=saved.briefing_id,
        date=briefing_date,
        stats=stats,
        errors=errors,
    )
