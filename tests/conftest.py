from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy import create_engine

import daily_wrap.config.settings as settings_mod
from daily_wrap.config.settings import Settings
from daily_wrap.db.database import init_db
from daily_wrap.models.schemas import RawItem

NOW = dt.datetime(2026, 1, 19, 0, 0, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def settings(monkeypatch, tmp_path):
    # no api key -> offline generation, nothing leaks in from a developer .env
    s = Settings(
        openai_api_key="",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        log_file=str(tmp_path / "run.log"),
    )
    monkeypatch.setattr(settings_mod, "_settings", s)
    return s


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'briefings.db'}", future=True)
    init_db(eng)
    yield eng
    eng.dispose()


def make_item(
    title: str,
    link: str,
    category: str = "politics",
    hours_ago: float = 1,
    source_name: str = "테스트뉴스",
    description: str = "",
) -> RawItem:
    return RawItem(
        title=title,
        link=link,
        published_at=NOW - dt.timedelta(hours=hours_ago),
        description=description,
        category=category,
        source_name=source_name,
    )
