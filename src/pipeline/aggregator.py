import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from src.config import Settings, get_settings
from src.delivery.git_publisher import GitPublisher
from src.exceptions import NetworkError
from src.pipeline.storage import csv_filename, digest_filename, save_csv, save_markdown
from src.scrapers.base import CrawlTarget, NewsRecord
from src.scrapers.fetcher import build_client, fetch_page
from src.scrapers.strategies import extract

logger = structlog.get_logger()


@dataclass
class PipelineResult:
    records: list[NewsRecord]
    digest_path: Path | None = None
    saved: bool = False
    committed: bool = False

    @property
    def count(self) -> int:
        return len(self.records)


def build_targets(settings: Settings) -> list[CrawlTarget]:
    return [CrawlTarget(url=url) for url in settings.news_sites]


async def crawl_target(
    client: httpx.AsyncClient, target: CrawlTarget, settings: Settings
) -> list[NewsRecord]:
    html = await fetch_page(client, target.url, settings)
    return extract(html, target.url, settings)


async def crawl_all(
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[NewsRecord]:
    """Crawl every target in order, one at a time.

    A failing target is logged and contributes nothing. A random pause
    separates consecutive requests.
    """
    settings = settings or get_settings()
    targets = build_targets(settings)
    records: list[NewsRecord] = []

    owns_client = client is None
    client = client or build_client(settings)
    try:
        for i, target in enumerate(targets):
            try:
                logger.info("target_crawl_start", url=target.url)
                target_records = await crawl_target(client, target, settings)
                records.extend(target_records)
                if target_records:
                    logger.info("target_crawled", url=target.url, count=len(target_records))
                else:
                    logger.warning("target_empty", url=target.url)
            except NetworkError as exc:
                logger.error("target_fetch_failed", url=target.url, reason=exc.reason)
            except Exception:
                logger.exception("target_crawl_error", url=target.url)
            if i < len(targets) - 1:
                delay = random.uniform(*settings.delay_range)  # noqa: S311
                logger.info("inter_request_delay", seconds=round(delay, 1))
                await sleep(delay)
    finally:
        if owns_client:
            await client.aclose()

    logger.info("crawl_complete", targets=len(targets), records=len(records))
    return records


def publish_digest(
    records: list[NewsRecord],
    settings: Settings | None = None,
    publisher: GitPublisher | None = None,
) -> PipelineResult:
    settings = settings or get_settings()
    result = PipelineResult(records=records)
    if not records:
        logger.warning("no_records_collected")
        return result

    # A relative output_dir lives inside the repository git runs in.
    output_dir = Path(settings.repo_dir) / settings.output_dir
    result.digest_path = output_dir / digest_filename()
    result.saved = save_markdown(records, result.digest_path)
    if settings.export_csv:
        save_csv(records, output_dir / csv_filename())
    if not result.saved:
        return result

    publisher = publisher or GitPublisher(settings)
    result.committed = publisher.commit(result.digest_path)
    return result


async def run_pipeline(
    settings: Settings | None = None,
    publisher: GitPublisher | None = None,
    client: httpx.AsyncClient | None = None,
) -> PipelineResult:
    settings = settings or get_settings()
    logger.info("pipeline_start", targets=len(settings.news_sites))
    records = await crawl_all(settings, client=client)
    result = publish_digest(records, settings, publisher)
    logger.info(
        "pipeline_complete",
        records=result.count,
        saved=result.saved,
        committed=result.committed,
    )
    return result
