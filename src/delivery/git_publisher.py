"""Commit the daily digest to the repository and push it.

Uses the git binary on PATH with the invoking process's credentials.
The author identity comes from Settings so CI runners without a
configured user can still commit.
"""

import subprocess
from datetime import UTC, datetime
from pathlib import Path

import structlog

from src.config import Settings, get_settings
from src.exceptions import PublishError

logger = structlog.get_logger()

# Porcelain v1 status codes that make a path worth committing.
UNTRACKED = "??"
MODIFIED = "M"


class GitPublisher:
    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.repo_dir = Path(settings.repo_dir)
        self.remote = settings.git_remote
        self.branch = settings.git_branch
        self.message_template = settings.commit_message_template
        self.author_name = settings.git_author_name
        self.author_email = settings.git_author_email

    def _git(self, *args: str) -> str:
        command = [
            "git",
            "-c",
            f"user.name={self.author_name}",
            "-c",
            f"user.email={self.author_email}",
            *args,
        ]
        try:
            result = subprocess.run(  # noqa: S603
                command,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            raise PublishError(f"git {args[0]} failed: {detail}") from exc
        except OSError as exc:
            raise PublishError(f"git {args[0]} could not run: {exc}") from exc
        return result.stdout

    def format_message(self, now: datetime | None = None) -> str:
        now = now or datetime.now(tz=UTC)
        return self.message_template.format(date=now.astimezone(UTC).date().isoformat())

    def has_changes(self, path: str) -> bool:
        status = self._git("status", "--porcelain", "--untracked-files=all", "--", path)
        for line in status.splitlines():
            code = line[:2]
            if code == UNTRACKED or MODIFIED in code:
                return True
        return False

    def commit(self, path: str | Path) -> bool:
        """Stage, commit and push ``path``.

        Returns False when the file is unchanged or any git step fails.
        """
        path = str(Path(path).resolve())
        logger.info("git_publish_start", path=path)
        try:
            if not self.has_changes(path):
                logger.warning("nothing_to_commit", path=path)
                return False
            self._git("add", "--", path)
            self._git("commit", "-m", self.format_message(), "--", path)
            self._git("push", self.remote, self.branch)
        except PublishError:
            logger.exception("git_publish_failed", path=path)
            return False

        logger.info("git_published", path=path, remote=self.remote, branch=self.branch)
        return True
