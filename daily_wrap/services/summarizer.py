from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ValidationError

from daily_wrap.errors import GenerationFormatError, GenerationServiceError
from daily_wrap.models.schemas import RawItem, SummarizedItem
from daily_wrap.services.generation_client import GenerationClient, GenerationRequest

log = logging.getLogger(__name__)

BATCH_SIZE = 10


class SummaryRow(BaseModel):
    id: str | None = None
    index: int | None = None
    headline: str
    summary: str


SYSTEM_PROMPT = """당신은 한국 뉴스를 요약하는 전문 에디터입니다.
독자는 바쁜 직장인으로, 짧은 시간에 핵심 뉴스를 파악하고 싶어합니다.

### 핵심 규칙
1. **원문 문장 절대 복사 금지**: 저작권 문제로 원문의 문장을 그대로 사용하면 안됩니다.
2. **객관적 톤 유지**: 논평이나 의견 없이 팩트만 전달하세요.
3. **한국어로 작성**: 모든 응답은 자연스러운 한국어로 작성하세요.

### 출력 형식
각 뉴스에 대해 다음을 생성하세요:
- headline: 핵심을 담은 한줄 헤드라인 (15-25자)
- summary: 누가/무엇을/언제/왜를 담은 4-5문장 요약 (100-180자)

JSON 형식으로 응답하세요."""


def _news_block(item: RawItem) -> str:
    return f"""- 제목: {item.title}
- 설명: {item.description or "(설명 없음)"}
- 출처: {item.source_name}
- 카테고리: {item.category}"""


def create_summarize_prompt(item: RawItem) -> str:
    return f"""다음 뉴스를 요약해주세요.

### 원본 정보
{_news_block(item)}

### 출력 형식
```json
{{"headline": "핵심을 담은 한줄 헤드라인", "summary": "4-5문장으로 요약된 내용"}}
```"""


def create_batch_summarize_prompt(batch: list[tuple[str, RawItem]]) -> str:
    news = "\n\n".join(f"[id: {item_id}]\n{_news_block(item)}" for item_id, item in batch)
    return f"""다음 {len(batch)}개 뉴스를 각각 요약해주세요.
각 결과에는 입력의 id 값을 그대로 포함하세요.

{news}

### 출력 형식
```json
[
  {{"id": "<입력 id>", "headline": "...", "summary": "..."}},
  ...
]
```"""


def mock_summary(item: RawItem) -> dict[str, str]:
    return {
        "headline": f"[Mock] {item.title[:20]}...",
        "summary": (
            f"이 뉴스는 {item.category} 분야의 소식입니다. {item.source_name}에서 보도했습니다. "
            "해당 사안은 최근 주목받고 있는 이슈로, 관련 당사자들의 반응이 주목됩니다. "
            "향후 추가적인 전개가 예상됩니다. 자세한 내용은 원문을 참고하세요."
        ),
    }


def _to_summarized(item: RawItem, row: SummaryRow) -> SummarizedItem:
    return SummarizedItem(
        **item.model_dump(),
        original_title=item.title,
        headline=row.headline.strip(),
        summary=row.summary.strip(),
    )


def _parse_rows(payload) -> list[SummaryRow]:
    if isinstance(payload, dict):
        payload = payload.get("items", [payload])
    if not isinstance(payload, list):
        raise GenerationFormatError(f"Expected a JSON array of summaries, got {type(payload).__name__}")
    try:
        return [SummaryRow.model_validate(row) for row in payload]
    except ValidationError as e:
        raise GenerationFormatError(f"Summary rows do not match the expected shape: {e}") from e


def _batch_ids(batch: list[RawItem]) -> list[tuple[str, RawItem]]:
    out: list[tuple[str, RawItem]] = []
    used: set[str] = set()
    for item in batch:
        item_id = item.item_id
        n = 2
        while item_id in used:
            item_id = f"{item.item_id}-{n}"
            n += 1
        used.add(item_id)
        out.append((item_id, item))
    return out


def summarize_news(item: RawItem, client: GenerationClient) -> SummarizedItem:
    request = GenerationRequest(
        system=SYSTEM_PROMPT,
        message=create_summarize_prompt(item),
        max_tokens=512,
        temperature=0.3,
        offline_response=json.dumps(mock_summary(item), ensure_ascii=False),
    )
    rows = _parse_rows(client.generate_json(request))
    if not rows:
        raise GenerationFormatError("Empty summary response")
    return _to_summarized(item, rows[0])


def summarize_batch(batch: list[RawItem], client: GenerationClient) -> list[SummarizedItem]:
    """
    Summarize one batch in a single request. Rows are matched back by id
    (falling back to the positional `index`); inputs with no matching row
    are dropped and logged.
    """
    keyed = _batch_ids(batch)
    offline = [{"id": item_id, **mock_summary(item)} for item_id, item in keyed]
    request = GenerationRequest(
        system=SYSTEM_PROMPT,
        message=create_batch_summarize_prompt(keyed),
        max_tokens=2048,
        temperature=0.3,
        offline_response=json.dumps(offline, ensure_ascii=False),
    )
    rows = _parse_rows(client.generate_json(request))

    by_id = {row.id: row for row in rows if row.id}
    # positional answers only count for rows that carry no id
    by_index = {row.index: row for row in rows if not row.id and row.index is not None}

    results: list[SummarizedItem] = []
    for pos, (item_id, item) in enumerate(keyed):
        row = by_id.get(item_id) or by_index.get(pos)
        if row is None:
            log.warning("[Summarize] No summary returned for %s (%s), dropping", item_id, item.title[:40])
            continue
        results.append(_to_summarized(item, row))
    return results


def summarize_news_batch(
    items: list[RawItem],
    client: GenerationClient,
    batch_size: int = BATCH_SIZE,
) -> list[SummarizedItem]:
    if not items:
        return []

    total = (len(items) + batch_size - 1) // batch_size
    results: list[SummarizedItem] = []

    for start in range(0, len(items), batch_size):
        batch = items[start : start + batch_size]
        log.info("[Summarize] Processing batch %d/%d", start // batch_size + 1, total)
        try:
            results.extend(summarize_batch(batch, client))
        except GenerationServiceError as e:
            log.warning("[Summarize] Batch %d skipped: %s", start // batch_size + 1, e)

    log.info("[Summarize] Completed %d summaries", len(results))
    return results
