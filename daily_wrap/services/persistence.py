from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from daily_wrap.config.feeds import CATEGORIES
from daily_wrap.db.database import get_engine
from daily_wrap.db.models import Briefing, NewsItem
from daily_wrap.errors import BriefingNotFound, PersistenceError
from daily_wrap.models.schemas import RankedItem

log = logging.getLogger(__name__)


@dataclass
class SaveResult:
    briefing_id: int
    saved_count: int


@dataclass
class StoredNews:
    id: int
    category: str
    title: str
    summary: str
    source_name: str
    source_url: str
    importance_rank: int
    created_at: dt.datetime


@dataclass
class StoredBriefing:
    id: int
    date: dt.date
    created_at: dt.datetime
    published_at: dt.datetime | None
    sections: dict[str, list[StoredNews]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.sections.values())


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def save_briefing(
    ranked_by_category: dict[str, list[RankedItem]],
    briefing_date: dt.date,
    engine: Engine | None = None,
) -> SaveResult:
    """
    Replace the briefing for `briefing_date` with the given ranked items.

    Lookup, delete of the old item set and insert of the new one run in one
    transaction, so a failure half way leaves the previous items in place.
    """
    engine = engine or get_engine()

    try:
        with Session(engine) as session, session.begin():
            briefing = session.scalars(
                select(Briefing).where(Briefing.date == briefing_date)
            ).first()

            if briefing is not None:
                log.info("[DB] Found existing briefing for %s, updating...", briefing_date)
                session.execute(delete(NewsItem).where(NewsItem.briefing_id == briefing.id))
                if briefing.published_at is None:
                    briefing.published_at = _now()
            else:
                briefing = Briefing(date=briefing_date, published_at=_now())
                session.add(briefing)
                session.flush()
                log.info("[DB] Created new briefing: %s", briefing.id)

            rows = [
                NewsItem(
                    briefing_id=briefing.id,
                    category=category,
                    title=item.headline,
                    summary=item.summary,
                    source_name=item.source_name,
                    source_url=item.link,
                    importance_rank=item.importance_rank,
                )
                for category in CATEGORIES
                for item in ranked_by_category.get(category, [])
            ]
            session.add_all(rows)
            briefing_id = briefing.id
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to save briefing for {briefing_date}: {e}") from e

    log.info("[DB] Saved %d news items", len(rows))
    return SaveResult(briefing_id=briefing_id, saved_count=len(rows))


def _to_stored(briefing: Briefing, items: list[NewsItem]) -> StoredBriefing:
    sections: dict[str, list[StoredNews]] = {c: [] for c in CATEGORIES}
    for it in items:
        sections.setdefault(it.category, []).append(
            StoredNews(
                id=it.id,
                category=it.category,
                title=it.title,
                summary=it.summary,
                source_name=it.source_name,
                source_url=it.source_url,
                importance_rank=it.importance_rank,
                created_at=it.created_at,
            )
        )
    return StoredBriefing(
        id=briefing.id,
        date=briefing.date,
        created_at=briefing.created_at,
        published_at=briefing.published_at,
        sections=sections,
    )


def get_briefing_by_date(briefing_date: dt.date, engine: Engine | None = None) -> StoredBriefing:
    engine = engine or get_engine()
    with Session(engine) as session:
        briefing = session.scalars(
            select(Briefing).where(Briefing.date == briefing_date)
        ).first()
        if briefing is None:
            raise BriefingNotFound(briefing_date)

        items = session.scalars(
            select(NewsItem)
            .where(NewsItem.briefing_id == briefing.id)
            .order_by(NewsItem.importance_rank, NewsItem.id)
        ).all()
        return _to_stored(briefing, list(items))


def list_briefing_dates(limit: int = 30, engine: Engine | None = None) -> list[dt.date]:
    engine = engine or get_engine()
    with Session(engine) as session:
        rows = session.scalars(
            select(Briefing.date)
            .where(Briefing.published_at.is_not(None))
            .order_by(Briefing.date.desc())
            .limit(limit)
        ).all()
    return list(rows)
