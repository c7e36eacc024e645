import datetime as dt
import subprocess
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx
import schedule
import structlog

from src import main as entry
from src.config import Settings
from src.delivery.git_publisher import GitPublisher
from src.pipeline.aggregator import crawl_all, publish_digest, run_pipeline
from src.scrapers.base import NewsRecord
from src.triggers import run_once, schedule_job

FAILING_URL = "https://a.example.com/"
EMPTY_URL = "https://b.example.com/"
NETEASE_URL = "https://news.163.com/"

NETEASE_HTML = """\
<html><body>
  <div class="news_item"><h3>First netease headline</h3><a href="/a/1.html">go</a></div>
  <div class="news_item"><h3>Second netease headline</h3><a href="/a/2.html">go</a></div>
</body></html>
"""


def _test_settings(tmp_path: Path, **overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "news_sites": [FAILING_URL, EMPTY_URL, NETEASE_URL],
        "inter_request_delay_min": 0.0,
        "inter_request_delay_max": 0.0,
        "output_dir": str(tmp_path),
        "repo_dir": str(tmp_path),
        "log_file": str(tmp_path / "news_crawler.log"),
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


def _mock_sites() -> None:
    respx.get(FAILING_URL).mock(return_value=httpx.Response(500, text="error"))
    respx.get(EMPTY_URL).mock(return_value=httpx.Response(200, text="<html><body></body></html>"))
    respx.get(NETEASE_URL).mock(return_value=httpx.Response(200, text=NETEASE_HTML))


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


# ── Orchestrator ──


@respx.mock
@pytest.mark.asyncio
async def test_crawl_all_continues_after_failures_and_pauses_between_targets(tmp_path) -> None:
    _mock_sites()
    sleep = AsyncMock()
    records = await crawl_all(_test_settings(tmp_path), sleep=sleep)

    assert [r.title for r in records] == ["First netease headline", "Second netease headline"]
    assert sleep.await_count == 2


def test_default_pause_is_three_to_eight_seconds() -> None:
    assert Settings().delay_range == (3.0, 8.0)


@respx.mock
@pytest.mark.asyncio
async def test_crawl_all_pauses_within_configured_range(tmp_path) -> None:
    _mock_sites()
    sleep = AsyncMock()
    settings = _test_settings(tmp_path, inter_request_delay_min=3.0, inter_request_delay_max=8.0)
    await crawl_all(settings, sleep=sleep)

    delays = [call.args[0] for call in sleep.await_args_list]
    assert len(delays) == 2
    assert all(3.0 <= delay <= 8.0 for delay in delays)


@respx.mock
@pytest.mark.asyncio
async def test_crawl_all_no_pause_after_failing_last_target(tmp_path) -> None:
    _mock_sites()
    sleep = AsyncMock()
    settings = _test_settings(tmp_path, news_sites=[NETEASE_URL, FAILING_URL])
    records = await crawl_all(settings, sleep=sleep)

    assert len(records) == 2
    assert sleep.await_count == 1


@respx.mock
@pytest.mark.asyncio
async def test_pipeline_writes_one_source_digest_and_commits(tmp_path) -> None:
    _mock_sites()
    publisher = MagicMock(spec=GitPublisher)
    publisher.commit.return_value = True

    result = await run_pipeline(_test_settings(tmp_path), publisher=publisher)

    assert result.count == 2
    assert result.saved is True
    assert result.committed is True
    assert result.digest_path is not None
    assert result.digest_path.parent == tmp_path
    lines = result.digest_path.read_text(encoding="utf-8").splitlines()
    assert [line for line in lines if line.startswith("## ")] == ["## 网易新闻"]
    rows = [line for line in lines if "[链接](" in line]
    assert rows == [
        "| First netease headline | [链接](https://news.163.com/a/1.html) |",
        "| Second netease headline | [链接](https://news.163.com/a/2.html) |",
    ]
    publisher.commit.assert_called_once_with(result.digest_path)


@respx.mock
@pytest.mark.asyncio
async def test_pipeline_unchanged_digest_is_not_pushed(tmp_path) -> None:
    _mock_sites()
    settings = _test_settings(tmp_path)
    status = subprocess.CompletedProcess([], 0, stdout="", stderr="")
    with patch("src.delivery.git_publisher.subprocess.run", return_value=status) as run:
        result = await run_pipeline(settings, publisher=GitPublisher(settings))

    assert result.saved is True
    assert result.committed is False
    assert [call.args[0][5] for call in run.call_args_list] == ["status"]


@respx.mock
@pytest.mark.asyncio
async def test_pipeline_without_records_skips_save_and_commit(tmp_path) -> None:
    respx.get(FAILING_URL).mock(return_value=httpx.Response(404))
    respx.get(EMPTY_URL).mock(side_effect=httpx.ConnectError)
    publisher = MagicMock(spec=GitPublisher)
    settings = _test_settings(tmp_path, news_sites=[FAILING_URL, EMPTY_URL])

    result = await run_pipeline(settings, publisher=publisher)

    assert result.count == 0
    assert result.saved is False
    assert result.digest_path is None
    assert list(tmp_path.glob("*.md")) == []
    publisher.commit.assert_not_called()


def test_publish_digest_exports_csv_when_enabled(tmp_path) -> None:
    record = NewsRecord(
        title="Headline",
        link="https://a.com/1",
        summary="热门新闻",
        crawl_time="2026-10-17T00:00:00.000Z",
        source="新浪新闻",
    )
    publisher = MagicMock(spec=GitPublisher)
    publisher.commit.return_value = False

    result = publish_digest([record], _test_settings(tmp_path, export_csv=True), publisher)

    assert result.saved is True
    assert len(list(tmp_path.glob("news_*.csv"))) == 1


# ── Triggers ──


def test_run_once_returns_job_result() -> None:
    assert run_once(lambda: 42) == 42


def test_schedule_job_every_24_hours(tmp_path) -> None:
    scheduler = schedule.Scheduler()
    entry_job = schedule_job(lambda: None, _test_settings(tmp_path), scheduler)
    assert entry_job.interval == 24
    assert entry_job.unit == "hours"


def test_schedule_job_daily_at_time(tmp_path) -> None:
    scheduler = schedule.Scheduler()
    entry_job = schedule_job(lambda: None, _test_settings(tmp_path, schedule_at="08:00"), scheduler)
    assert entry_job.unit == "days"
    assert entry_job.at_time == dt.time(8, 0)


def test_scheduled_cycle_failure_does_not_stop_scheduler(tmp_path) -> None:
    calls: list[int] = []

    def _job() -> None:
        calls.append(1)
        raise RuntimeError("cycle failed")

    scheduler = schedule.Scheduler()
    schedule_job(_job, _test_settings(tmp_path), scheduler)
    scheduler.run_all()
    scheduler.run_all()
    assert len(calls) == 2


# ── Entry point ──


def test_render_line_format() -> None:
    line = entry.render_line(
        None,
        "info",
        {
            "timestamp": "2026-10-17T00:00:00Z",
            "level": "info",
            "event": "page_fetched",
            "url": "https://news.163.com/",
        },
    )
    assert line == "2026-10-17T00:00:00Z info: page_fetched url=https://news.163.com/"


def test_main_returns_nonzero_on_failure(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "run.log"))
    with patch.object(entry, "crawl_and_publish", side_effect=RuntimeError("boom")):
        assert entry.main([]) == 1
    assert "run_failed" in (tmp_path / "run.log").read_text(encoding="utf-8")


def test_main_single_run_succeeds(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "run.log"))
    with patch.object(entry, "crawl_and_publish", return_value=None) as crawl:
        assert entry.main([]) == 0
    crawl.assert_called_once()


def test_main_daemon_flag_enters_scheduler(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "run.log"))
    with patch.object(entry, "run_scheduled") as scheduled:
        assert entry.main(["--daemon"]) == 0
    scheduled.assert_called_once()
