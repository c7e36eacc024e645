import httpx
import structlog

from src.config import Settings, get_settings
from src.exceptions import NetworkError
from src.pipeline.storage import save_debug_html

logger = structlog.get_logger()

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


def build_headers() -> dict[str, str]:
    return dict(BROWSER_HEADERS)


def build_client(settings: Settings | None = None) -> httpx.AsyncClient:
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=settings.request_timeout,
        headers=build_headers(),
        follow_redirects=True,
    )


async def fetch_page(
    client: httpx.AsyncClient, url: str, settings: Settings | None = None
) -> str:
    """GET ``url`` once and return the body text.

    Timeouts, transport failures and non-2xx responses all surface as
    NetworkError. Nothing is retried.
    """
    settings = settings or get_settings()
    logger.info("page_fetch_start", url=url)
    try:
        response = await client.get(url, timeout=settings.request_timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("page_fetch_failed", url=url, status=exc.response.status_code)
        raise NetworkError(
            url, f"HTTP {exc.response.status_code}", status_code=exc.response.status_code
        ) from exc
    except httpx.TimeoutException as exc:
        logger.error("page_fetch_failed", url=url, reason="timeout")
        raise NetworkError(url, "timeout") from exc
    except httpx.HTTPError as exc:
        logger.error("page_fetch_failed", url=url, reason=str(exc))
        raise NetworkError(url, str(exc) or type(exc).__name__) from exc

    logger.info("page_fetched", url=url, status=response.status_code)
    html = response.text
    if settings.debug:
        save_debug_html(html, settings.debug_html_path)
    return html
