from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

from sqlalchemy.engine import Engine

from daily_wrap.config.feeds import CATEGORIES
from daily_wrap.services.persistence import StoredBriefing, get_briefing_by_date

SECTION_ICONS = {"politics": "📌", "economy": "📊", "society": "🏛"}
SECTION_LABELS = {
    "politics": ("정치", "POLITICS"),
    "economy": ("경제", "ECONOMY"),
    "society": ("사회", "SOCIETY"),
}
DAY_OF_WEEK_KO = ["월요일", "화요일", "수요일", "목요일", "금요일", "토요일", "일요일"]


def format_korean_date(d: dt.date) -> str:
    return f"{d.year}년 {d.month}월 {d.day}일 {DAY_OF_WEEK_KO[d.weekday()]}"


def format_briefing_text(briefing: StoredBriefing, max_items: int = 5) -> str:
    lines: list[str] = []
    lines.append("============================")
    lines.append(f"DAILY WRAP | {format_korean_date(briefing.date)}")
    lines.append("============================")
    lines.append("")

    for category in CATEGORIES:
        ko, en = SECTION_LABELS[category]
        lines.append("━━━━━━━━━━━━━━━━━━")
        lines.append(f"{SECTION_ICONS[category]} {ko} {en}")
        lines.append("━━━━━━━━━━━━━━━━━━")
        lines.append("")
        for it in briefing.sections.get(category, [])[:max_items]:
            lines.append(f"▶ {it.title}")
            lines.append(it.summary)
            lines.append(f"🔗 {it.source_name}")
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def format_briefing_compact(briefing: StoredBriefing, max_items: int = 3) -> str:
    lines = [f"📰 Daily Wrap | {format_korean_date(briefing.date)}", ""]
    for category in CATEGORIES:
        lines.append(f"{SECTION_ICONS[category]} {SECTION_LABELS[category][0]}")
        for it in briefing.sections.get(category, [])[:max_items]:
            lines.append(f"• {it.title}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def briefing_to_dict(briefing: StoredBriefing) -> dict:
    return {
        "id": briefing.id,
        "date": briefing.date.isoformat(),
        "created_at": briefing.created_at.isoformat(timespec="seconds"),
        "published_at": briefing.published_at.isoformat(timespec="seconds") if briefing.published_at else None,
        "count": briefing.total,
        **{
            category: [
                {
                    "title": it.title,
                    "summary": it.summary,
                    "source_name": it.source_name,
                    "source_url": it.source_url,
                    "importance_rank": it.importance_rank,
                }
                for it in briefing.sections.get(category, [])
            ]
            for category in CATEGORIES
        },
    }


def export_briefing(
    briefing_date: dt.date,
    out_dir: str = "out",
    compact: bool = False,
    engine: Engine | None = None,
) -> dict:
    """
    Write the stored briefing for a date as JSON + plain text.
    Returns summary stats. Raises BriefingNotFound if nothing is stored.
    """
    briefing = get_briefing_by_date(briefing_date, engine=engine)
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    date_s = briefing.date.isoformat()

    json_path = out / f"briefing_{date_s}.json"
    json_path.write_text(
        json.dumps(briefing_to_dict(briefing), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )

    text = format_briefing_compact(briefing) if compact else format_briefing_text(briefing)
    txt_path = out / f"briefing_{date_s}{'_compact' if compact else ''}.txt"
    txt_path.write_text(text, encoding="utf-8")

    return {
        "date": date_s,
        "count": briefing.total,
        "by_category": {c: len(briefing.sections.get(c, [])) for c in CATEGORIES},
        "json_path": str(json_path),
        "text_path": str(txt_path),
        "text": text,
    }
