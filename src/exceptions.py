class CrawlerError(Exception):
    """Base class for errors raised by the crawl pipeline."""


class NetworkError(CrawlerError):
    """A GET did not complete: timeout, transport failure or non-2xx status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class ParseError(CrawlerError):
    pass


class PublishError(CrawlerError):
    pass
