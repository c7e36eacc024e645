"""Selector strategies that turn a portal's HTML into NewsRecords.

Site strategies are kept in an ordered registry keyed by a hostname
predicate. For a given page every matching site strategy is tried in
registry order and the first one that yields records wins; when none
does, the generic anchor heuristic runs.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse, urlsplit

import structlog
from bs4 import BeautifulSoup, Tag

from src.config import Settings, get_settings
from src.exceptions import ParseError
from src.pipeline.cleaner import deduplicate_by_title
from src.scrapers.base import NewsRecord, crawl_timestamp

logger = structlog.get_logger()

SKIPPED_HREF = re.compile(r"^(javascript|mailto|tel):", re.IGNORECASE)

ExtractFn = Callable[[BeautifulSoup, str, Settings], list[NewsRecord]]


@dataclass(frozen=True)
class Strategy:
    name: str
    matches: Callable[[str], bool]
    extract: ExtractFn


def host_contains(fragment: str) -> Callable[[str], bool]:
    def _matches(host: str) -> bool:
        return fragment in host

    return _matches


def resolve_link(href: str, base_url: str) -> str:
    href = href.strip()
    absolute = href if href.startswith("http") else urljoin(base_url, href)
    try:
        parts = urlsplit(absolute)
        _ = parts.port
    except ValueError as exc:
        raise ParseError(f"malformed link {href!r}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ParseError(f"link {href!r} does not resolve to an absolute URL")
    return absolute


def _text(element: Tag | None) -> str:
    if element is None:
        return ""
    return element.get_text().strip()


def _href(element: Tag) -> str:
    anchor = element.find("a")
    if anchor is None:
        return ""
    href = anchor.get("href", "")
    if isinstance(href, list):
        href = href[0] if href else ""
    return str(href)


def _select_records(
    soup: BeautifulSoup,
    source_url: str,
    *,
    selector: str,
    title_of: Callable[[Tag], str],
    summary: str,
    source: str,
) -> list[NewsRecord]:
    records: list[NewsRecord] = []
    for element in soup.select(selector):
        try:
            title = title_of(element)
            href = _href(element)
            if not title or not href:
                continue
            records.append(
                NewsRecord(
                    title=title,
                    link=resolve_link(href, source_url),
                    summary=summary,
                    crawl_time=crawl_timestamp(),
                    source=source,
                )
            )
        except Exception as exc:
            logger.warning("element_parse_error", source=source, error=str(exc))
    return records


def _sina_card_title(card: Tag) -> str:
    heading = "".join(el.get_text() for el in card.select("h2, .ty-card-tt, .news-title"))
    return heading.strip() or _text(card.find("a"))


def _sina_hot_title(item: Tag) -> str:
    return _text(item.select_one("a, span"))


def _netease_title(item: Tag) -> str:
    return _text(item.select_one("h3, .title, a"))


def extract_sina(soup: BeautifulSoup, source_url: str, settings: Settings) -> list[NewsRecord]:
    featured = _select_records(
        soup,
        source_url,
        selector=".news-item, .ty-card-type1, .ty-card-type2",
        title_of=_sina_card_title,
        summary="热门新闻",
        source="新浪新闻",
    )
    hot_list = _select_records(
        soup,
        source_url,
        selector=".list_a li, .data-list li",
        title_of=_sina_hot_title,
        summary="热榜新闻，无摘要",
        source="新浪微博热搜",
    )
    return featured + hot_list


def extract_netease(
    soup: BeautifulSoup, source_url: str, settings: Settings
) -> list[NewsRecord]:
    return _select_records(
        soup,
        source_url,
        selector=".news_title, .data_row, .news_item",
        title_of=_netease_title,
        summary="网易新闻，无摘要",
        source="网易新闻",
    )


def extract_generic(
    soup: BeautifulSoup, source_url: str, settings: Settings
) -> list[NewsRecord]:
    source = urlparse(source_url).hostname or ""
    low, high = settings.generic_min_title_length, settings.generic_max_title_length
    records: list[NewsRecord] = []
    for anchor in soup.find_all("a"):
        href = anchor.get("href")
        text = anchor.get_text().strip()
        if not text or not href or isinstance(href, list):
            continue
        if not low < len(text) < high or SKIPPED_HREF.match(href):
            continue
        try:
            link = resolve_link(href, source_url)
        except ParseError:
            continue
        records.append(
            NewsRecord(
                title=text,
                link=link,
                summary="通用爬取，无摘要",
                crawl_time=crawl_timestamp(),
                source=source,
            )
        )
    return records


STRATEGIES: list[Strategy] = [
    Strategy(name="sina", matches=host_contains("sina.com.cn"), extract=extract_sina),
    Strategy(name="netease", matches=host_contains("163.com"), extract=extract_netease),
]

GENERIC_STRATEGY = Strategy(name="generic", matches=lambda host: True, extract=extract_generic)


def register_strategy(strategy: Strategy) -> None:
    STRATEGIES.append(strategy)


def resolve_strategies(source_url: str) -> list[Strategy]:
    host = urlparse(source_url).hostname or ""
    return [s for s in STRATEGIES if s.matches(host)]


def extract(
    html: str, source_url: str, settings: Settings | None = None
) -> list[NewsRecord]:
    settings = settings or get_settings()
    logger.info("parse_start", url=source_url)
    try:
        soup = BeautifulSoup(html, "lxml")
        records: list[NewsRecord] = []
        used = GENERIC_STRATEGY
        for strategy in resolve_strategies(source_url):
            records = strategy.extract(soup, source_url, settings)
            if records:
                used = strategy
                break
        if not records:
            records = GENERIC_STRATEGY.extract(soup, source_url, settings)
    except Exception:
        logger.exception("parse_failed", url=source_url)
        return []

    unique = deduplicate_by_title(records)
    logger.info("parse_complete", url=source_url, strategy=used.name, count=len(unique))
    return unique
