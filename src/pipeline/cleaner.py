import re
from collections.abc import Iterable, Iterator

import structlog

from src.scrapers.base import NewsRecord

logger = structlog.get_logger()


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class TitleIndex:
    """Ordered title -> record mapping.

    A repeated title replaces the stored record but keeps the slot of its
    first occurrence, so iteration follows first-seen order while the
    values come from the last-seen records.
    """

    def __init__(self, records: Iterable[NewsRecord] = ()) -> None:
        self._by_title: dict[str, NewsRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: NewsRecord) -> None:
        self._by_title[record.title] = record

    def records(self) -> list[NewsRecord]:
        return list(self._by_title.values())

    def __contains__(self, title: object) -> bool:
        return title in self._by_title

    def __iter__(self) -> Iterator[NewsRecord]:
        return iter(self._by_title.values())

    def __len__(self) -> int:
        return len(self._by_title)


def deduplicate_by_title(records: list[NewsRecord]) -> list[NewsRecord]:
    index = TitleIndex(records)
    unique = index.records()
    logger.info(
        "records_deduplicated",
        total_input=len(records),
        unique=len(unique),
        removed=len(records) - len(unique),
    )
    return unique
