from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from daily_wrap.config.feeds import CATEGORIES
from daily_wrap.config.settings import get_settings
from daily_wrap.models.schemas import RawItem

log = logging.getLogger(__name__)

TRACKING_PARAMS = {"ref", "source"}

_TITLE_PUNCT_RE = re.compile(r"[\s\-_.,!?'\"]")
# ascii alnum + hangul syllables + hangul jamo
_TITLE_KEEP_RE = re.compile(r"[^0-9a-z\uac00-\ud7af\u1100-\u11ff]")

GLOBAL_SCOPE = "all"


@dataclass(frozen=True)
class DedupOptions:
    url_threshold: float = 0.95
    title_threshold: float = 0.70
    ngram_size: int = 2
    within_category_only: bool = True

    @classmethod
    def from_settings(cls) -> "DedupOptions":
        s = get_settings()
        return cls(
            url_threshold=s.dedup_url_threshold,
            title_threshold=s.dedup_title_threshold,
            ngram_size=s.dedup_ngram_size,
            within_category_only=s.dedup_within_category,
        )


def _is_tracking_param(key: str) -> bool:
    k = key.lower()
    return k.startswith("utm_") or k in TRACKING_PARAMS


def normalize_url(url: str) -> str:
    """Drop tracking params and fragment, lower-case the rest."""
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return url.strip().lower()

    query = urlencode(
        [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if not _is_tracking_param(k)]
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, "")).lower()


def normalize_title(title: str) -> str:
    t = _TITLE_PUNCT_RE.sub("", title.lower())
    return _TITLE_KEEP_RE.sub("", t)


def jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def char_similarity(a: str, b: str) -> float:
    return jaccard(set(a), set(b))


def ngrams(text: str, n: int = 2) -> set[str]:
    return {text[i : i + n] for i in range(len(text) - n + 1)}


def ngram_similarity(a: str, b: str, n: int = 2) -> float:
    return jaccard(ngrams(a, n), ngrams(b, n))


@dataclass(frozen=True)
class _Normalized:
    item: RawItem
    url: str
    title: str


def _normalize(item: RawItem) -> _Normalized:
    return _Normalized(item=item, url=normalize_url(item.link), title=normalize_title(item.title))


def _is_duplicate(a: _Normalized, b: _Normalized, options: DedupOptions) -> bool:
    # link-less entries are compared on title only
    if a.url and b.url:
        if a.url == b.url:
            return True
        if char_similarity(a.url, b.url) >= options.url_threshold:
            return True
    if a.title == b.title:
        return True
    return ngram_similarity(a.title, b.title, options.ngram_size) >= options.title_threshold


def is_duplicate(a: RawItem, b: RawItem, options: DedupOptions | None = None) -> bool:
    return _is_duplicate(_normalize(a), _normalize(b), options or DedupOptions())


def _scan(
    ordered: list[_Normalized],
    accepted: dict[str, list[_Normalized]],
    options: DedupOptions,
) -> list[RawItem]:
    unique: list[RawItem] = []
    for cand in ordered:
        scope = cand.item.category if options.within_category_only else GLOBAL_SCOPE
        seen = accepted.setdefault(scope, [])
        if any(_is_duplicate(cand, prev, options) for prev in seen):
            continue
        seen.append(cand)
        unique.append(cand.item)
    return unique


def deduplicate_news(items: Iterable[RawItem], options: DedupOptions | None = None) -> list[RawItem]:
    """
    Newest-first scan that keeps one representative per cluster of near-duplicate
    stories. Output is in scan order (publish time desc, ties in input order).
    """
    options = options or DedupOptions.from_settings()
    items = list(items)
    log.info("[Dedup] Starting deduplication of %d items...", len(items))

    ordered = sorted(items, key=lambda it: it.published_at.timestamp(), reverse=True)
    unique = _scan([_normalize(it) for it in ordered], {}, options)

    log.info("[Dedup] Removed %d duplicates, %d items remaining", len(items) - len(unique), len(unique))
    return unique


def group_by_category(items: Iterable[RawItem]) -> dict[str, list[RawItem]]:
    grouped: dict[str, list[RawItem]] = {c: [] for c in CATEGORIES}
    for it in items:
        if it.category in grouped:
            grouped[it.category].append(it)
    return grouped
