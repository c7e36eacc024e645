from datetime import UTC, datetime
from pathlib import Path

import structlog

from src.exceptions import PublishError
from src.pipeline.renderer import to_csv, to_markdown
from src.scrapers.base import NewsRecord

logger = structlog.get_logger()


def digest_filename(now: datetime | None = None) -> str:
    """Dated digest name, ``YYYYMMDD.md`` in local time."""
    now = now or datetime.now()
    return f"{now:%Y%m%d}.md"


def csv_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(tz=UTC)
    return f"news_{now.astimezone(UTC):%Y%m%d}.csv"


def write_text(text: str, path: str | Path) -> Path:
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise PublishError(f"cannot write {target}: {exc}") from exc
    return target


def save(text: str, path: str | Path) -> bool:
    """Overwrite ``path`` with ``text``. Same-day re-runs replace the file."""
    try:
        target = write_text(text, path)
    except PublishError:
        logger.exception("file_save_failed", path=str(path))
        return False
    logger.info("file_saved", path=str(target), chars=len(text))
    return True


def save_markdown(records: list[NewsRecord], path: str | Path | None = None) -> bool:
    document = to_markdown(records)
    if document is None:
        logger.warning("no_records_to_save", format="markdown")
        return False
    path = path or digest_filename()
    saved = save(document, path)
    if saved:
        logger.info("markdown_saved", path=str(path), count=len(records))
    return saved


def save_csv(records: list[NewsRecord], path: str | Path | None = None) -> bool:
    document = to_csv(records)
    if document is None:
        logger.warning("no_records_to_save", format="csv")
        return False
    path = path or csv_filename()
    saved = save(document, path)
    if saved:
        logger.info("csv_saved", path=str(path), count=len(records))
    return saved


def save_debug_html(html: str, path: str | Path) -> None:
    # Overwritten on every fetch; only meaningful for single-instance runs.
    try:
        write_text(html, path)
        logger.debug("debug_html_saved", path=str(path))
    except PublishError:
        logger.exception("debug_html_save_failed", path=str(path))
