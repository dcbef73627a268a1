"""使用 gh cli 获取 GitHub Star 项目数据"""

import json
import logging
import os
import subprocess
import time
from functools import wraps
from typing import Any, Callable, Optional

from ..errors import RateLimitError, RemoteSourceError, UserNotFoundError, ValidationError
from ..models.repo import StarredRepo

logger = logging.getLogger(__name__)

STAR_ACCEPT_HEADER = "Accept: application/vnd.github.v3.star+json"


def _username_of(path: str) -> str:
    """从 "users/<name>/..." 形式的路径中取出用户名"""
    parts = path.split("?")[0].split("/")
    return parts[1] if len(parts) > 1 and parts[0] == "users" else path


def retry_on_failure(max_retries: int = 2, delay: float = 1.0, backoff: float = 2.0):
    """
    失败重试，延迟按 backoff 指数增长

    只重试 RemoteSourceError；用户不存在、限额耗尽不重试。
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            current_delay = delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except (UserNotFoundError, RateLimitError):
                    raise
                except RemoteSourceError as e:
                    if attempt == max_retries:
                        logger.error("重试 %d 次后仍然失败: %s", max_retries + 1, e)
                        raise
                    logger.warning("第 %d 次请求失败: %s，%.1f 秒后重试", attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator


class GitHubStarFetcher:
    """从 GitHub 获取 Star 项目"""

    def __init__(self, token: Optional[str] = None, per_page: int = 100, page_delay: float = 1.0):
        self.token = token
        self.per_page = per_page
        self.page_delay = page_delay

    def _env(self) -> Optional[dict[str, str]]:
        if not self.token:
            return None
        return {**os.environ, "GH_TOKEN": self.token}

    def _gh(self, *args: str) -> str:
        """执行 gh 命令，把失败归类为对应的异常"""
        try:
            result = subprocess.run(
                ["gh", *args],
                capture_output=True,
                text=True,
                check=True,
                env=self._env(),
            )
        except FileNotFoundError as e:
            raise RemoteSourceError("未找到 gh 命令，请先安装 GitHub CLI") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            if "HTTP 404" in stderr or "Not Found" in stderr:
                raise UserNotFoundError(_username_of(args[1] if len(args) > 1 else "")) from e
            if "rate limit" in stderr.lower():
                raise RateLimitError(f"GitHub API 限额已用完: {stderr}") from e
            raise RemoteSourceError(f"获取 starred 仓库失败: {stderr or e}") from e
        return result.stdout

    def check_gh_auth(self) -> bool:
        """检查 gh cli 是否已登录"""
        try:
            subprocess.run(
                ["gh", "auth", "status"],
                check=True,
                capture_output=True,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def validate_user(self, username: str) -> bool:
        """检查 GitHub 用户名是否存在"""
        try:
            self._gh("api", f"users/{username}", "--silent")
        except UserNotFoundError:
            return False
        return True

    @retry_on_failure()
    def fetch_starred_page(self, username: str, page: int, per_page: Optional[int] = None) -> list[StarredRepo]:
        """获取一页 Star 项目，按收藏时间倒序"""
        per_page = per_page or self.per_page
        stdout = self._gh(
            "api",
            f"users/{username}/starred?per_page={per_page}&page={page}&sort=created&direction=desc",
            "-H",
            STAR_ACCEPT_HEADER,
        )
        try:
            return [StarredRepo.from_api(item) for item in json.loads(stdout or "[]")]
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteSourceError(f"无法解析第 {page} 页数据") from e

    def fetch_all_stars(self, username: str) -> list[StarredRepo]:
        """
        获取用户的全部 Star 项目

        逐页获取直到某页不满，页与页之间等待 page_delay 秒。
        任何一页失败都会抛出异常，已获取的数据全部丢弃。
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("请先设置 GitHub 用户名")
        if not self.token and not self.check_gh_auth():
            raise RemoteSourceError("请先运行 'gh auth login' 登录 GitHub，或配置 GITHUB_TOKEN")
        if not self.validate_user(username):
            raise UserNotFoundError(username)

        repos: list[StarredRepo] = []
        page = 1
        while True:
            batch = self.fetch_starred_page(username, page)
            repos.extend(batch)
            logger.info("第 %d 页: %d 个项目", page, len(batch))
            if len(batch) < self.per_page:
                break
            page += 1
            time.sleep(self.page_delay)

        return repos

    def get_rate_limit(self) -> Optional[dict[str, int]]:
        """获取 API 限额信息"""
        try:
            stdout = self._gh("api", "rate_limit", "--jq", ".rate")
            return json.loads(stdout)
        except (RemoteSourceError, ValueError) as e:
            logger.warning("获取 API 限额信息失败: %s", e)
            return None
