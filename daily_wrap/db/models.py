from __future__ import annotations

import datetime as dt
from sqlalchemy import (
    String, Integer, Date, DateTime, Text, ForeignKey
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship



def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Briefing(Base):
    __tablename__ = "briefings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # one briefing per calendar day
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True, index=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )
    published_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)

    news_items: Mapped[list["NewsItem"]] = relationship(
        back_populates="briefing",
        cascade="all, delete-orphan",
        order_by="NewsItem.importance_rank",
    )


class NewsItem(Base):
    __tablename__ = "news_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    briefing_id: Mapped[int] = mapped_column(
        ForeignKey("briefings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category: Mapped[str] = mapped_column(String(20), nullable=False)  # politics/economy/society
    title: Mapped[str] = mapped_column(Text, nullable=False)  # generated headline
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    source_name: Mapped[str] = mapped_column(String(100), nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    importance_rank: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    briefing: Mapped["Briefing"] = relationship(back_populates="news_items")
