"""过滤 → 排序 → 分页

纯函数，不持有数据；查询、排序、页码等状态由调用方的 ViewState 提供。
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from ..models.repo import StarredRepo, parse_timestamp
from .classifier import filter_by_language

SORT_ORDERS = ("asc", "desc")
DEFAULT_PAGE_SIZE = 8

# 缺失的时间排在最早
_MISSING_TIME = float("-inf")


def _timestamp(value: Optional[str]) -> float:
    moment = parse_timestamp(value)
    return moment.timestamp() if moment else _MISSING_TIME


SORT_KEYS: dict[str, Callable[[StarredRepo], Any]] = {
    "name": lambda repo: repo.name.casefold(),
    "stars": lambda repo: repo.stargazers_count,
    "updated": lambda repo: _timestamp(repo.last_activity_at),
    "created": lambda repo: _timestamp(repo.created_at),
    "starred": lambda repo: _timestamp(repo.starred_at),
}


@dataclass
class PageResult:
    """一页结果；total 是过滤后、分页前的数量"""

    items: list[StarredRepo]
    total: int
    page: int
    page_size: int

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size)


def filter_repos(repos: Sequence[StarredRepo], query: str) -> list[StarredRepo]:
    """名称、描述、主题、语言任一包含查询词即保留，不区分大小写"""
    if not query.strip():
        return list(repos)
    term = query.lower()

    def hit(repo: StarredRepo) -> bool:
        return (
            term in repo.name.lower()
            or term in (repo.description or "").lower()
            or any(term in topic.lower() for topic in repo.topics)
            or term in (repo.language or "").lower()
        )

    return [repo for repo in repos if hit(repo)]


def sort_repos(
    repos: Sequence[StarredRepo], sort_key: str = "stars", order: str = "desc"
) -> list[StarredRepo]:
    """
    稳定排序

    降序用 reverse=True 实现，相同键的元素在升序、降序下都保持输入顺序。
    """
    if sort_key not in SORT_KEYS:
        raise ValueError(f"未知的排序字段: {sort_key}")
    if order not in SORT_ORDERS:
        raise ValueError(f"未知的排序方向: {order}")
    return sorted(repos, key=SORT_KEYS[sort_key], reverse=order == "desc")


def paginate(repos: Sequence[StarredRepo], page: int, page_size: int) -> list[StarredRepo]:
    """页码从 1 开始；越界返回空列表"""
    if page_size < 1:
        raise ValueError("page_size 必须大于 0")
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(repos[start:start + page_size])


def view(
    repos: Sequence[StarredRepo],
    query: str = "",
    sort_key: str = "stars",
    order: str = "desc",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    language: Optional[str] = None,
) -> PageResult:
    filtered = sort_repos(filter_repos(filter_by_language(repos, language), query), sort_key, order)
    return PageResult(
        items=paginate(filtered, page, page_size),
        total=len(filtered),
        page=page,
        page_size=page_size,
    )


def sum_memberships(
    grouped: Mapping[str, Sequence[StarredRepo]], query: str = "", language: Optional[str] = None
) -> int:
    """
    各分类过滤后数量之和

    标签视图里一个仓库可能属于多个分类，这里统计的是成员关系数，不是仓库数。
    """
    return sum(
        len(filter_repos(filter_by_language(repos, language), query)) for repos in grouped.values()
    )


@dataclass
class ViewState:
    """单个视图的浏览状态，每个分类各自记录页码"""

    query: str = ""
    sort_key: str = "stars"
    sort_order: str = "desc"
    active_category: Optional[str] = None
    language: Optional[str] = None
    pages: dict[str, int] = field(default_factory=dict)

    @property
    def is_filtered(self) -> bool:
        return bool(self.query.strip()) or bool(self.language and self.language != "all")

    def page_for(self, category_key: str) -> int:
        return self.pages.get(category_key, 1)

    def set_page(self, category_key: str, page: int) -> None:
        self.pages[category_key] = page

    def switch_category(self, category_key: str) -> None:
        """切换分类时回到第一页"""
        self.active_category = category_key
        self.pages[category_key] = 1

    def set_query(self, query: str) -> None:
        self.query = query
        self.pages.clear()

    def set_language(self, language: Optional[str]) -> None:
        self.language = language
        self.pages.clear()

    def set_sort(self, sort_key: str, order: Optional[str] = None) -> None:
        if sort_key not in SORT_KEYS:
            raise ValueError(f"未知的排序字段: {sort_key}")
        if order is not None and order not in SORT_ORDERS:
            raise ValueError(f"未知的排序方向: {order}")
        self.sort_key = sort_key
        if order is not None:
            self.sort_order = order
        self.pages.clear()

    def render(
        self,
        grouped: Mapping[str, Sequence[StarredRepo]],
        page_size: int = DEFAULT_PAGE_SIZE,
        category_key: Optional[str] = None,
    ) -> PageResult:
        """对指定分类（默认当前分类）执行过滤、排序、分页"""
        key = category_key or self.active_category
        repos = grouped.get(key, []) if key is not None else []
        return view(
            repos,
            query=self.query,
            sort_key=self.sort_key,
            order=self.sort_order,
            page=self.page_for(key) if key is not None else 1,
            page_size=page_size,
            language=self.language,
        )

    def filtered_total(self, grouped: Mapping[str, Sequence[StarredRepo]]) -> int:
        """当前搜索和语言条件下所有分类的数量之和"""
        return sum_memberships(grouped, self.query, self.language)
