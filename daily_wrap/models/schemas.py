from __future__ import annotations

import hashlib
import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field

Category = Literal["politics", "economy", "society"]


class RawItem(BaseModel):
    title: str
    link: str
    published_at: dt.datetime
    description: str = ""
    category: Category
    source_name: str

    @property
    def item_id(self) -> str:
        # correlation id sent to the generation service
        key = f"{self.category}|{self.link or self.title}"
        return hashlib.sha1(key.encode("utf-8")).hexdigest()[:10]


class SummarizedItem(RawItem):
    original_title: str
    headline: str
    summary: str


class RankedItem(SummarizedItem):
    importance_rank: int = Field(ge=1)


class PipelineStats(BaseModel):
    fetched: int = 0
    after_dedup: int = 0
    summarized: int = 0
    saved: int = 0


class PipelineResult(BaseModel):
    success: bool
    briefing_id: int | None = None
    date: dt.date
    stats: PipelineStats
    errors: list[str] = Field(default_factory=list)
