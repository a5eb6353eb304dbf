from __future__ import annotations

import datetime as dt

from daily_wrap.services.generation_client import GenerationClient, OfflineGenerationClient
from daily_wrap.services.persistence import get_briefing_by_date
from daily_wrap.workflows.run_pipeline import NO_ITEMS_ERROR, run_pipeline, today_in_offset

from conftest import NOW, make_item

DAY = dt.date(2026, 1, 19)


def _feed():
    return [
        make_item("대통령, 신년 기자회견에서 발표", "https://a-press.co.kr/p/1", "politics", hours_ago=2),
        make_item("대통령 신년 기자회견서 발표", "https://other-daily.com/p/2?utm_source=rss", "politics", hours_ago=1),
        make_item("국회 본회의 예산안 통과", "https://third-news.net/p/3", "politics", hours_ago=3),
        make_item("코스피 3000 돌파, 사상 최고치 경신", "https://money-times.com/e/1", "economy", hours_ago=4),
        make_item("전국 한파 특보 발령", "https://weather-news.org/s/1", "society", hours_ago=5),
        make_item("이틀 전 기사", "https://old-news.com/s/2", "society", hours_ago=48),
    ]


class _Spy:
    def __init__(self, fn=None):
        self.calls = []
        self.fn = fn

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.fn:
            return self.fn(*args, **kwargs)


def test_today_uses_fixed_offset():
    late_utc = dt.datetime(2026, 1, 18, 16, 30, tzinfo=dt.timezone.utc)
    assert today_in_offset(9, late_utc) == dt.date(2026, 1, 19)
    assert today_in_offset(0, late_utc) == dt.date(2026, 1, 18)


def test_zero_collection_aborts_before_persisting():
    save = _Spy()
    notify = _Spy()

    result = run_pipeline(
        DAY,
        fetch=lambda: [],
        client=OfflineGenerationClient(),
        save=save,
        notify=notify,
        now=NOW,
    )

    assert result.success is False
    assert result.stats.fetched == 0
    assert result.errors == [NO_ITEMS_ERROR]
    assert save.calls == []
    assert notify.calls == []


def test_only_stale_items_counts_as_zero_collection():
    save = _Spy()
    result = run_pipeline(
        DAY,
        fetch=lambda: [make_item("오래된 기사", "https://a.com/1", hours_ago=30)],
        client=OfflineGenerationClient(),
        save=save,
        notify=_Spy(),
        now=NOW,
    )
    assert result.success is False
    assert save.calls == []


def test_offline_run_end_to_end(engine):
    notify = _Spy()
    result = run_pipeline(
        DAY,
        fetch=_feed,
        client=OfflineGenerationClient(),
        notify=notify,
        engine=engine,
        now=NOW,
    )

    assert result.success is True, result.errors
    assert result.errors == []
    assert result.date == DAY
    assert result.stats.model_dump() == {"fetched": 5, "after_dedup": 4, "summarized": 4, "saved": 4}
    assert len(notify.calls) == 1

    stored = get_briefing_by_date(DAY, engine=engine)
    assert stored.id == result.briefing_id
    assert [n.importance_rank for n in stored.sections["politics"]] == [1, 2]
    # newest representative of the duplicate pair survives
    assert stored.sections["politics"][0].source_url == "https://other-daily.com/p/2?utm_source=rss"


def test_rerun_is_idempotent(engine):
    kwargs = dict(fetch=_feed, client=OfflineGenerationClient(), notify=_Spy(), engine=engine, now=NOW)
    first = run_pipeline(DAY, **kwargs)
    second = run_pipeline(DAY, **kwargs)

    assert first.briefing_id == second.briefing_id
    assert get_briefing_by_date(DAY, engine=engine).total == 4


def test_stage_exception_fails_run_without_persisting():
    class Broken(GenerationClient):
        def generate(self, request):
            return "this is not json"

    save = _Spy()
    notify = _Spy()
    result = run_pipeline(DAY, fetch=_feed, client=Broken(), save=save, notify=notify, now=NOW)

    assert result.success is False
    assert result.stats.fetched == 5
    assert result.stats.after_dedup == 4
    assert len(result.errors) == 1
    assert "GenerationFormatError" in result.errors[0]
    assert save.calls == []
    assert notify.calls == []


def test_persistence_failure_fails_run():
    def save(*args, **kwargs):
        raise RuntimeError("database is locked")

    notify = _Spy()
    result = run_pipeline(DAY, fetch=_feed, client=OfflineGenerationClient(), save=save, notify=notify, now=NOW)

    assert result.success is False
    assert result.briefing_id is None
    assert "database is locked" in result.errors[0]
    assert notify.calls == []


def test_notification_failure_does_not_fail_run(engine):
    def notify():
        raise ConnectionError("cdn down")

    result = run_pipeline(DAY, fetch=_feed, client=OfflineGenerationClient(), notify=notify, engine=engine, now=NOW)

    assert result.success is True
    assert result.stats.saved == 4
