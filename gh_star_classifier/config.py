"""运行配置：从环境变量 / .env 文件读取"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# 默认数据库路径
DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "stars.duckdb"


@dataclass
class Settings:
    """应用配置"""

    db_path: str
    github_token: Optional[str]
    username: Optional[str]
    page_size: int
    per_page: int
    fetch_delay: float
    log_level: str
    log_file: Optional[str]


def get_settings(load_env: bool = True) -> Settings:
    if load_env:
        load_dotenv()
    return Settings(
        db_path=os.getenv("GHSC_DB_PATH", str(DEFAULT_DB_PATH)),
        github_token=os.getenv("GITHUB_TOKEN") or None,
        username=os.getenv("GHSC_USERNAME") or None,
        page_size=int(os.getenv("GHSC_PAGE_SIZE", "8")),
        per_page=int(os.getenv("GHSC_PER_PAGE", "100")),
        fetch_delay=float(os.getenv("GHSC_FETCH_DELAY", "1.0")),
        log_level=os.getenv("GHSC_LOG_LEVEL", "WARNING"),
        log_file=os.getenv("GHSC_LOG_FILE") or None,
    )
