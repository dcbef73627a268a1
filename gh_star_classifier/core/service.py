"""应用服务：加载、同步、重新分类以及标签和规则的管理"""

import dataclasses
import logging
import random
import string
import time
from datetime import datetime
from typing import Any, Optional

from ..errors import SnapshotImportError, ValidationError
from ..models.repo import StarredRepo
from ..models.tag import Category, KeywordRule, Tag, UserConfig
from .classifier import KeywordClassifier, filter_by_language, get_languages, search_repos
from .database import StarDatabase
from .fetcher import GitHubStarFetcher
from .pipeline import DEFAULT_PAGE_SIZE, PageResult, ViewState, sort_repos
from .stats import collection_stats
from .views import BUCKET_VIEWS, TAG_VIEW_KEY, VIEW_KEYS, CategoryLevel, group_categories, tag_levels

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _field_names(obj: Any) -> set[str]:
    return {f.name for f in dataclasses.fields(obj)}


def new_tag_id() -> str:
    """生成形如 tag_<毫秒时间戳>_<9 位随机串> 的标签 id"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"tag_{int(time.time() * 1000)}_{suffix}"


class StarClassifierService:
    """
    持有当前会话的仓库、标签、规则和分类

    内存状态是权威数据，存储失败只会记录日志。
    任何标签或规则变化都触发全量重新分类。
    """

    def __init__(
        self,
        db: StarDatabase,
        fetcher: Optional[GitHubStarFetcher] = None,
        classifier: Optional[KeywordClassifier] = None,
        default_username: Optional[str] = None,
    ):
        self.db = db
        self.fetcher = fetcher or GitHubStarFetcher()
        self.classifier = classifier or KeywordClassifier()
        self.default_username = default_username

        self.config = UserConfig()
        self.repos: list[StarredRepo] = []
        self.tags: list[Tag] = []
        self.rules: list[KeywordRule] = []
        self.categories: list[Category] = []
        self.load()

    def load(self) -> None:
        """从存储加载状态；开启自动分类时重新计算分类"""
        self.config = self.db.get_user_config()
        if not self.config.username and self.default_username:
            self.config.username = self.default_username
        if self.config.github_token and not self.fetcher.token:
            self.fetcher.token = self.config.github_token

        self.tags = self.db.get_tags()
        self.rules = self.db.get_keyword_rules()
        self.repos = self.db.get_repos()

        if self.repos and self.config.auto_classify:
            self._classify()
        else:
            self.categories = self.db.get_categories()

    def _classify(self) -> list[Category]:
        self.categories = self.classifier.create_categories(self.repos, self.tags, self.rules)
        self.db.save_categories(self.categories)
        return self.categories

    def _after_change(self) -> None:
        if self.config.auto_classify:
            self._classify()

    # ---- 同步与分类 ----

    def sync(self) -> list[StarredRepo]:
        """从 GitHub 拉取全部 Star 项目；失败时保持原有数据不变"""
        repos = self.fetcher.fetch_all_stars(self.config.username)
        self.repos = repos
        self.db.save_repos(repos)
        if self.config.auto_classify:
            self._classify()
        logger.info("成功获取 %d 个 starred 仓库", len(repos))
        return repos

    def reclassify(self) -> list[Category]:
        if not self.repos:
            raise ValidationError("没有仓库数据需要分类")
        return self._classify()

    # ---- 配置 ----

    def update_config(self, **changes: Any) -> UserConfig:
        for key, value in changes.items():
            if key not in _field_names(self.config):
                raise ValidationError(f"未知的配置项: {key}")
            setattr(self.config, key, value)
        if "github_token" in changes:
            self.fetcher.token = self.config.github_token
        self.db.save_user_config(self.config)
        return self.config

    # ---- 标签 ----

    def _tag_index(self, tag_id: str) -> int:
        for index, tag in enumerate(self.tags):
            if tag.id == tag_id:
                return index
        raise ValidationError(f"标签不存在: {tag_id}")

    def add_tag(self, name: str, color: str, description: Optional[str] = None) -> Tag:
        if not name.strip():
            raise ValidationError("标签名称不能为空")
        tag = Tag(id=new_tag_id(), name=name.strip(), color=color, description=description)
        self.tags.append(tag)
        self.db.save_tags(self.tags)
        return tag

    def update_tag(self, tag_id: str, **updates: Any) -> Tag:
        tag = self.tags[self._tag_index(tag_id)]
        for key, value in updates.items():
            if key == "id" or key not in _field_names(tag):
                raise ValidationError(f"不能修改标签字段: {key}")
            setattr(tag, key, value)
        self.db.save_tags(self.tags)
        self._after_change()
        return tag

    def delete_tag(self, tag_id: str) -> None:
        """删除标签以及指向它的关键词规则"""
        del self.tags[self._tag_index(tag_id)]
        self.rules = [rule for rule in self.rules if rule.tag_id != tag_id]
        self.db.save_tags(self.tags)
        self.db.save_keyword_rules(self.rules)
        self._after_change()

    # ---- 关键词规则 ----

    def _check_rule_index(self, index: int) -> None:
        if not 0 <= index < len(self.rules):
            raise ValidationError(f"规则不存在: #{index}")

    def add_rule(self, keywords: list[str], tag_id: str, priority: int = 10) -> KeywordRule:
        keywords = [k.strip() for k in keywords if k.strip()]
        if not keywords:
            raise ValidationError("关键词不能为空")
        rule = KeywordRule(keywords=keywords, tag_id=tag_id, priority=priority)
        self.rules.append(rule)
        self.db.save_keyword_rules(self.rules)
        self._after_change()
        return rule

    def update_rule(self, index: int, **updates: Any) -> KeywordRule:
        self._check_rule_index(index)
        rule = self.rules[index]
        for key, value in updates.items():
            if key not in _field_names(rule):
                raise ValidationError(f"不能修改规则字段: {key}")
            setattr(rule, key, value)
        self.db.save_keyword_rules(self.rules)
        self._after_change()
        return rule

    def delete_rule(self, index: int) -> None:
        self._check_rule_index(index)
        del self.rules[index]
        self.db.save_keyword_rules(self.rules)
        self._after_change()

    # ---- 数据管理 ----

    def clear_all(self) -> None:
        self.db.clear_all()
        self.load()

    def export_data(self) -> str:
        return self.db.export_data()

    def import_data(self, json_data: str) -> None:
        if not self.db.import_data(json_data):
            raise SnapshotImportError("导入失败，数据格式不正确")
        self.load()

    # ---- 视图 ----

    def levels(self, view_key: str) -> list[CategoryLevel]:
        if view_key == TAG_VIEW_KEY:
            return tag_levels(self.categories)
        return self._bucket_view(view_key).levels

    def categorize(self, view_key: str, now: Optional[datetime] = None) -> dict[str, list[StarredRepo]]:
        if view_key == TAG_VIEW_KEY:
            return group_categories(self.categories)
        return self._bucket_view(view_key).categorize(self.repos, now)

    def default_state(self, view_key: str) -> ViewState:
        """视图的初始浏览状态"""
        if view_key == TAG_VIEW_KEY:
            first = self.categories[0].id if self.categories else None
            return ViewState(sort_key="stars", sort_order="desc", active_category=first)
        view = self._bucket_view(view_key)
        return ViewState(
            sort_key=view.default_sort,
            sort_order=view.default_order,
            active_category=view.default_category,
        )

    def render_view(
        self,
        view_key: str,
        state: Optional[ViewState] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        now: Optional[datetime] = None,
    ) -> PageResult:
        state = state or self.default_state(view_key)
        return state.render(self.categorize(view_key, now), page_size)

    def browse(
        self,
        view_key: str,
        category: Optional[str] = None,
        query: str = "",
        sort_key: Optional[str] = None,
        order: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        language: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[list[CategoryLevel], dict[str, list[StarredRepo]], ViewState, PageResult]:
        """
        从视图的默认状态出发，依次应用分类、搜索、语言、排序和页码

        未知的视图抛出 ValidationError，非法的排序或页大小抛出 ValueError。
        """
        state = self.default_state(view_key)
        grouped = self.categorize(view_key, now)
        if category:
            state.switch_category(category)
        state.set_query(query)
        state.set_language(language)
        if sort_key or order:
            state.set_sort(sort_key or state.sort_key, order)
        if state.active_category is not None:
            state.set_page(state.active_category, page)
        return self.levels(view_key), grouped, state, state.render(grouped, page_size)

    def languages(self) -> list[str]:
        return get_languages(self.repos)

    def search(
        self,
        query: str,
        language: Optional[str] = None,
        sort_key: str = "stars",
        order: str = "desc",
    ) -> list[StarredRepo]:
        """跨所有仓库搜索，全名也参与匹配"""
        return sort_repos(filter_by_language(search_repos(self.repos, query), language), sort_key, order)

    def status(self, include_rate_limit: bool = False) -> dict[str, Any]:
        """同步状态、各条目的存储占用，以及可选的 API 限额"""
        usage = self.db.storage_usage()
        return {
            **self.db.get_sync_status(),
            "username": self.config.username,
            "storage": usage,
            "storage_total": sum(usage.values()),
            "rate_limit": self.fetcher.get_rate_limit() if include_rate_limit else None,
        }

    def stats(self) -> dict[str, Any]:
        return collection_stats(self.repos, self.categories)

    @staticmethod
    def _bucket_view(view_key: str):
        try:
            return BUCKET_VIEWS[view_key]
        except KeyError:
            raise ValidationError(
                f"未知的视图: {view_key}，可选: {', '.join(VIEW_KEYS)}"
            ) from None
