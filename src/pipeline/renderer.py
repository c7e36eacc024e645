import csv
import io
from datetime import datetime

from src.pipeline.cleaner import normalize_whitespace
from src.scrapers.base import NewsRecord

CSV_BOM = "\ufeff"
CSV_HEADER = ["标题", "链接", "摘要", "爬取时间", "来源"]


def _zh_date(now: datetime) -> str:
    return f"{now.year}/{now.month}/{now.day}"


def _zh_datetime(now: datetime) -> str:
    return f"{_zh_date(now)} {now:%H:%M:%S}"


def group_by_source(records: list[NewsRecord]) -> dict[str, list[NewsRecord]]:
    groups: dict[str, list[NewsRecord]] = {}
    for record in records:
        groups.setdefault(record.source, []).append(record)
    return groups


def escape_table_cell(text: str) -> str:
    # Line breaks inside a cell would split the table row.
    return normalize_whitespace(text).replace("|", "\\|")


def to_markdown(records: list[NewsRecord], now: datetime | None = None) -> str | None:
    """Render records as one Markdown table per source.

    Returns None for an empty list so callers can skip writing.
    """
    if not records:
        return None
    now = now or datetime.now()

    lines = [f"# 每日新闻摘要 {_zh_date(now)}", ""]
    for source, items in group_by_source(records).items():
        lines.append(f"## {source}")
        lines.append("")
        lines.append("| 标题 | 链接 |")
        lines.append("| ---- | ---- |")
        for item in items:
            lines.append(f"| {escape_table_cell(item.title)} | [链接]({item.link}) |")
        lines.append("")

    lines.append("")
    lines.append(f"> 爬取时间: {_zh_datetime(now)}")
    return "\n".join(lines) + "\n"


def _csv_text(value: str) -> str:
    # Quote doubling is left to the csv writer; commas become full-width.
    return value.replace(",", "，")


def to_csv(records: list[NewsRecord]) -> str | None:
    if not records:
        return None
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow(
            [
                _csv_text(record.title),
                record.link,
                _csv_text(record.summary or ""),
                record.crawl_time,
                record.source,
            ]
        )
    return CSV_BOM + ",".join(CSV_HEADER) + "\n" + buffer.getvalue()
