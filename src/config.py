from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Crawl targets, processed in this order
    news_sites: list[str] = [
        "https://news.sina.com.cn/",
        "https://news.163.com/",
        "https://news.qq.com/",
        "https://www.sohu.com/c/8/",
        "https://www.thepaper.cn/",
    ]

    # HTTP
    request_timeout: float = 10.0
    inter_request_delay_min: float = 3.0
    inter_request_delay_max: float = 8.0

    # Generic anchor heuristic (exclusive bounds on trimmed text length)
    generic_min_title_length: int = 10
    generic_max_title_length: int = 100

    # Output
    output_dir: str = "."
    export_csv: bool = False
    debug: bool = False
    debug_html_path: str = "debug_html.html"

    # Git publishing
    repo_dir: str = "."
    git_remote: str = "origin"
    git_branch: str = "main"
    commit_message_template: str = "更新每日新闻 {date}"
    git_author_name: str = "GitHub Action"
    git_author_email: str = "action@github.com"

    # Logging
    log_file: str = "news_crawler.log"
    log_level: str = "INFO"

    # Scheduler mode
    schedule_interval_hours: int = 24
    schedule_at: str = ""

    @property
    def delay_range(self) -> tuple[float, float]:
        return (self.inter_request_delay_min, self.inter_request_delay_max)


def get_settings() -> Settings:
    return Settings()
