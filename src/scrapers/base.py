from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import urlparse


def crawl_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = now or datetime.now(tz=UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class NewsRecord:
    title: str
    link: str
    summary: str
    crawl_time: str
    source: str


@dataclass(frozen=True)
class CrawlTarget:
    url: str

    @property
    def host(self) -> str:
        return urlparse(self.url).hostname or ""
