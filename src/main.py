import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler

import structlog
from structlog.types import EventDict

from src.config import Settings, get_settings
from src.pipeline.aggregator import PipelineResult, run_pipeline
from src.triggers import run_once, run_scheduled

logger = structlog.get_logger()


def render_line(_: object, __: str, event_dict: EventDict) -> str:
    """``<ISO timestamp> <level>: <event> key=value ...``"""
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "info")
    event = event_dict.pop("event", "")
    exception = event_dict.pop("exception", None)
    context = " ".join(f"{key}={value}" for key, value in event_dict.items())
    line = f"{timestamp} {level}: {event}"
    if context:
        line = f"{line} {context}"
    if exception:
        line = f"{line}\n{exception}"
    return line


def configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    file_handler = RotatingFileHandler(
        settings.log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout), file_handler],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            render_line,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def crawl_and_publish(settings: Settings) -> PipelineResult:
    return asyncio.run(run_pipeline(settings))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl news portals into a daily digest")
    parser.add_argument(
        "-d",
        "--daemon",
        action="store_true",
        help="stay running and repeat the crawl on the configured schedule",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    def job() -> PipelineResult:
        return crawl_and_publish(settings)

    if args.daemon:
        run_scheduled(job, settings)
        return 0

    try:
        run_once(job)
    except Exception:
        logger.exception("run_failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
