"""DuckDB 存储：配置、仓库、标签、分类、关键词规则都以 JSON 存在同一张表里"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import duckdb

from ..errors import PersistenceError
from ..models.repo import StarredRepo
from ..models.tag import Category, KeywordRule, Tag, UserConfig
from .classifier import default_keyword_rules, default_tags

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_CONFIG = "user_config"
REPOS = "repos"
TAGS = "tags"
CATEGORIES = "categories"
KEYWORD_RULES = "keyword_rules"
LAST_SYNC = "last_sync"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StarDatabase:
    """
    键值存储

    写入失败只记录日志，不抛出：内存中的状态仍然有效。
    读取失败时返回默认值。
    """

    def __init__(self, db_path: str = "data/stars.duckdb"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: duckdb.DuckDBPyConnection | None = None
        # 同一个连接会被 Web 的线程池和事件循环同时使用，所有访问串行化
        self._lock = threading.RLock()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            if self._conn is None:
                self._conn = duckdb.connect(str(self.db_path))
                self._setup()
            return self._conn

    def _setup(self):
        """初始化数据库表"""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                key VARCHAR PRIMARY KEY,
                value VARCHAR NOT NULL,
                updated_at TIMESTAMP DEFAULT current_timestamp
            );
        """)

    # ---- 底层读写 ----

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            row = self.conn.execute(
                "SELECT value FROM app_state WHERE key = ?", [key]
            ).fetchone()
        return row[0] if row else None

    def _write(self, key: str, value: Any) -> None:
        try:
            with self._lock:
                self.conn.execute(
                    """
                    INSERT OR REPLACE INTO app_state (key, value, updated_at)
                    VALUES (?, ?, current_timestamp)
                    """,
                    [key, json.dumps(value, ensure_ascii=False)],
                )
        except (duckdb.Error, TypeError, ValueError) as e:
            raise PersistenceError(f"写入 {key} 失败: {e}") from e

    def _load(self, key: str, parse: Callable[[Any], T], default: Callable[[], T]) -> T:
        try:
            raw = self._read(key)
            if raw is None:
                return default()
            return parse(json.loads(raw))
        except (duckdb.Error, ValueError, KeyError, TypeError) as e:
            logger.warning("读取 %s 失败: %s", key, e)
            return default()

    def _save(self, key: str, value: Any) -> bool:
        try:
            self._write(key, value)
            return True
        except PersistenceError as e:
            logger.error("%s", e)
            return False

    # ---- 各类数据 ----

    def get_user_config(self) -> UserConfig:
        return self._load(USER_CONFIG, UserConfig.from_dict, UserConfig)

    def save_user_config(self, config: UserConfig) -> bool:
        return self._save(USER_CONFIG, config.to_dict())

    def get_repos(self) -> list[StarredRepo]:
        return self._load(REPOS, lambda data: [StarredRepo.from_dict(r) for r in data], list)

    def save_repos(self, repos: list[StarredRepo]) -> bool:
        """保存仓库并更新最后同步时间"""
        saved = self._save(REPOS, [r.to_dict() for r in repos])
        if saved:
            self._save(LAST_SYNC, _now_iso())
        return saved

    def get_tags(self) -> list[Tag]:
        return self._load(TAGS, lambda data: [Tag.from_dict(t) for t in data], default_tags)

    def save_tags(self, tags: list[Tag]) -> bool:
        return self._save(TAGS, [t.to_dict() for t in tags])

    def get_categories(self) -> list[Category]:
        return self._load(CATEGORIES, lambda data: [Category.from_dict(c) for c in data], list)

    def save_categories(self, categories: list[Category]) -> bool:
        return self._save(CATEGORIES, [c.to_dict() for c in categories])

    def get_keyword_rules(self) -> list[KeywordRule]:
        return self._load(
            KEYWORD_RULES,
            lambda data: [KeywordRule.from_dict(r) for r in data],
            default_keyword_rules,
        )

    def save_keyword_rules(self, rules: list[KeywordRule]) -> bool:
        return self._save(KEYWORD_RULES, [r.to_dict() for r in rules])

    def get_last_sync(self) -> Optional[str]:
        return self._load(LAST_SYNC, str, lambda: None)

    def clear_all(self) -> None:
        try:
            with self._lock:
                self.conn.execute("DELETE FROM app_state")
        except duckdb.Error as e:
            logger.error("清除数据失败: %s", e)

    # ---- 导入导出 ----

    def export_data(self) -> str:
        """导出全部数据为 JSON 字符串"""
        data = {
            "userConfig": self.get_user_config().to_dict(),
            "repos": [r.to_dict() for r in self.get_repos()],
            "tags": [t.to_dict() for t in self.get_tags()],
            "categories": [c.to_dict() for c in self.get_categories()],
            "keywordRules": [r.to_dict() for r in self.get_keyword_rules()],
            "lastSync": self.get_last_sync(),
            "exportTime": _now_iso(),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_data(self, json_data: str) -> bool:
        """
        导入 JSON 数据

        所有字段都是可选的，只覆盖出现的字段。
        先完整解析校验，再在一个事务里写入；任何一步失败都不改动已有数据。
        """
        try:
            data = json.loads(json_data)
            if not isinstance(data, dict):
                raise ValueError("导入数据必须是 JSON 对象")

            entries: list[tuple[str, Any]] = []
            if data.get("userConfig") is not None:
                entries.append((USER_CONFIG, UserConfig.from_dict(data["userConfig"]).to_dict()))
            if data.get("repos") is not None:
                repos = [StarredRepo.from_dict(r) for r in data["repos"]]
                entries.append((REPOS, [r.to_dict() for r in repos]))
                entries.append((LAST_SYNC, _now_iso()))
            if data.get("tags") is not None:
                entries.append((TAGS, [Tag.from_dict(t).to_dict() for t in data["tags"]]))
            if data.get("categories") is not None:
                entries.append(
                    (CATEGORIES, [Category.from_dict(c).to_dict() for c in data["categories"]])
                )
            if data.get("keywordRules") is not None:
                entries.append(
                    (KEYWORD_RULES, [KeywordRule.from_dict(r).to_dict() for r in data["keywordRules"]])
                )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("导入数据格式错误: %s", e)
            return False

        with self._lock:
            try:
                self.conn.begin()
                for key, value in entries:
                    self._write(key, value)
                self.conn.commit()
            except (PersistenceError, duckdb.Error) as e:
                logger.error("导入数据失败: %s", e)
                self.conn.rollback()
                return False

        logger.info("导入完成: %s", ", ".join(key for key, _ in entries) or "无字段")
        return True

    # ---- 状态 ----

    def get_sync_status(self) -> dict[str, Any]:
        """获取同步状态"""
        return {
            "total_repos": len(self.get_repos()),
            "total_tags": len(self.get_tags()),
            "total_rules": len(self.get_keyword_rules()),
            "last_sync": self.get_last_sync(),
        }

    def storage_usage(self) -> dict[str, int]:
        """各条目占用的字节数"""
        with self._lock:
            rows = self.conn.execute("SELECT key, value FROM app_state ORDER BY key").fetchall()
        return {key: len(value.encode("utf-8")) for key, value in rows}

    def close(self):
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
