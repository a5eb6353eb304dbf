from __future__ import annotations

from dataclasses import dataclass


CATEGORIES: tuple[str, ...] = ("politics", "economy", "society")


@dataclass(frozen=True)
class FeedSource:
    url: str
    source_name: str


RSS_FEEDS: dict[str, list[FeedSource]] = {
    "politics": [
        FeedSource("http://imnews.imbc.com/rss/news/news_01.xml", "MBC"),
        FeedSource("http://rss.donga.com/politics.xml", "동아일보"),
        FeedSource("http://rss.nocutnews.co.kr/NocutPolitics.xml", "노컷뉴스"),
    ],
    "economy": [
        FeedSource("http://imnews.imbc.com/rss/news/news_04.xml", "MBC"),
        FeedSource("http://rss.donga.com/economy.xml", "동아일보"),
        FeedSource("http://rss.hankyung.com/economy.xml", "한국경제"),
    ],
    "society": [
        FeedSource("http://imnews.imbc.com/rss/news/news_05.xml", "MBC"),
        FeedSource("http://rss.donga.com/national.xml", "동아일보"),
        FeedSource("http://rss.nocutnews.co.kr/NocutSocial.xml", "노컷뉴스"),
    ],
}
