from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ValidationError

from daily_wrap.config.feeds import CATEGORIES
from daily_wrap.errors import GenerationFormatError, GenerationServiceError
from daily_wrap.models.schemas import RankedItem, SummarizedItem
from daily_wrap.services.generation_client import GenerationClient, GenerationRequest

log = logging.getLogger(__name__)

TOP_N = 5


class RankRow(BaseModel):
    id: str | None = None
    index: int | None = None
    rank: int | None = None
    reason: str = ""


SYSTEM_PROMPT = """당신은 뉴스 편집장으로서 기사의 중요도를 평가합니다.
바쁜 직장인 독자가 가장 먼저 알아야 할 뉴스를 선별하세요.

### 중요도 판단 기준
1. **사회적 영향력**: 많은 사람에게 영향을 미치는 뉴스
2. **시의성**: 지금 당장 알아야 하는 급보
3. **독자 관심도**: 직장인이 관심을 가질 만한 주제
4. **신뢰도**: 주요 언론사의 확인된 보도

### 랭킹 규칙
- 카테고리 내에서 1-5 순위 부여 (1이 가장 중요)
- 비슷한 중요도라도 순위를 명확히 구분
- 같은 순위는 허용하지 않음 (동점 없음)

JSON 형식으로 응답하세요."""


def create_rank_prompt(keyed: list[tuple[str, SummarizedItem]], category: str) -> str:
    news = "\n".join(
        f"[id: {item_id}] {item.headline}\n- 요약: {item.summary}\n- 출처: {item.source_name}\n"
        for item_id, item in keyed
    )
    n = len(keyed)
    return f"""다음 {category} 카테고리의 {n}개 뉴스에 중요도 순위를 부여해주세요.
가장 중요한 뉴스에 1위, 가장 덜 중요한 뉴스에 {n}위를 부여하세요.

{news}
### 출력 형식
```json
[
  {{"id": "<입력 id>", "rank": 1, "reason": "중요도 판단 이유 (한 문장)"}},
  ...
]
```"""


def mock_rank_response(keyed: list[tuple[str, SummarizedItem]]) -> list[dict]:
    return [
        {"id": item_id, "rank": i + 1, "reason": f"[Mock] 순서대로 {i + 1}위 부여"}
        for i, (item_id, _) in enumerate(keyed)
    ]


def _parse_rows(payload) -> list[RankRow]:
    if isinstance(payload, dict):
        payload = payload.get("items", [])
    if not isinstance(payload, list):
        raise GenerationFormatError(f"Expected a JSON array of ranks, got {type(payload).__name__}")
    try:
        return [RankRow.model_validate(row) for row in payload]
    except ValidationError as e:
        raise GenerationFormatError(f"Rank rows do not match the expected shape: {e}") from e


def reconcile_ranks(ids: list[str], rows: list[RankRow]) -> dict[str, int]:
    """
    Turn whatever the model answered into a total order 1..N.

    Items with a valid, unclaimed rank keep their relative order; items with a
    missing, out-of-range or already-taken rank (first answer wins) go after
    them in input order.
    Ranks are then reassigned densely so every id gets a distinct value.
    """
    n = len(ids)
    known = set(ids)
    answered: set[str] = set()
    claimed: dict[int, str] = {}
    for row in rows:
        item_id = row.id
        if item_id is None and row.index is not None and 0 <= row.index < n:
            item_id = ids[row.index]
        if item_id not in known or item_id in answered:
            continue
        answered.add(item_id)
        if row.rank is not None and 1 <= row.rank <= n and row.rank not in claimed:
            claimed[row.rank] = item_id

    placed = [claimed[r] for r in sorted(claimed)]
    placed_set = set(placed)
    leftovers = [i for i in ids if i not in placed_set]
    if leftovers:
        log.warning("[Rank] %d item(s) without a usable rank, appended in input order", len(leftovers))

    return {item_id: pos + 1 for pos, item_id in enumerate(placed + leftovers)}


def rank_news_by_category(
    items: list[SummarizedItem],
    category: str,
    client: GenerationClient,
    top_n: int = TOP_N,
) -> list[RankedItem]:
    if not items:
        return []

    top = items[:top_n]
    log.info("[Rank] Ranking %d %s news items", len(top), category)

    keyed = [(f"{item.item_id}-{i}", item) for i, item in enumerate(top)]
    ids = [item_id for item_id, _ in keyed]
    request = GenerationRequest(
        system=SYSTEM_PROMPT,
        message=create_rank_prompt(keyed, category),
        max_tokens=1024,
        temperature=0.2,
        offline_response=json.dumps(mock_rank_response(keyed), ensure_ascii=False),
    )

    try:
        rows = _parse_rows(client.generate_json(request))
    except GenerationServiceError as e:
        log.warning("[Rank] %s ranking unavailable, keeping input order: %s", category, e)
        rows = []

    ranks = reconcile_ranks(ids, rows)
    ranked = [
        RankedItem(**item.model_dump(), importance_rank=ranks[item_id])
        for item_id, item in keyed
    ]
    ranked.sort(key=lambda r: r.importance_rank)

    log.info(
        "[Rank] %s ranking completed: %s",
        category,
        [f"{r.importance_rank}. {r.headline[:20]}" for r in ranked],
    )
    return ranked


def rank_all_news(
    items: list[SummarizedItem],
    client: GenerationClient,
    top_n: int = TOP_N,
) -> dict[str, list[RankedItem]]:
    result: dict[str, list[RankedItem]] = {}
    for category in CATEGORIES:
        category_items = [it for it in items if it.category == category]
        result[category] = rank_news_by_category(category_items, category, client, top_n)
    return result
