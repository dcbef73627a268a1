"""分类视图：时间、热度、成熟度、活跃度、标签"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from ..models.repo import StarredRepo
from ..models.tag import Category
from .bucketer import BucketDefinition, MaturityRule, bucketize, days_since, fallback_key

ALL_SORT_KEYS = ("name", "stars", "updated", "created", "starred")
DEFAULT_SORT_OPTIONS = ("stars", "created", "updated", "name")


@dataclass(frozen=True)
class CategoryLevel:
    """视图中的一个分类标签页"""

    key: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class BucketView:
    """基于阈值分桶的视图定义"""

    key: str
    title: str
    buckets: Sequence[Any]
    scalar_of: Callable[[StarredRepo, datetime], Any]
    default_sort: str = "stars"
    default_order: str = "desc"
    default_category: Optional[str] = None
    sort_options: Sequence[str] = field(default=DEFAULT_SORT_OPTIONS)

    def __post_init__(self):
        # 定义时就校验兜底桶
        fallback_key(self.buckets)

    @property
    def levels(self) -> list[CategoryLevel]:
        return [
            CategoryLevel(b.key, b.name, b.icon, b.color, b.description)
            for b in self.buckets
        ]

    def categorize(
        self, repos: Sequence[StarredRepo], now: Optional[datetime] = None
    ) -> dict[str, list[StarredRepo]]:
        now = now or datetime.now(timezone.utc)
        return bucketize(repos, self.buckets, lambda repo: self.scalar_of(repo, now))


def _starred_days(repo: StarredRepo, now: datetime) -> Optional[int]:
    return days_since(repo.starred_at, now)


def _stars(repo: StarredRepo, now: datetime) -> int:
    return repo.stargazers_count


def _activity_days(repo: StarredRepo, now: datetime) -> Optional[int]:
    return days_since(repo.last_activity_at, now)


def _age_and_stars(repo: StarredRepo, now: datetime) -> Optional[tuple[int, int]]:
    age = days_since(repo.created_at, now)
    if age is None:
        return None
    return age, repo.stargazers_count


TIME_VIEW = BucketView(
    key="time",
    title="Starred time",
    buckets=[
        BucketDefinition("thisWeek", "This week", offset=0, high=7),
        BucketDefinition("thisMonth", "This month", offset=0, high=30),
        BucketDefinition("last3Months", "Last 3 months", offset=0, high=90),
        BucketDefinition("last6Months", "Last 6 months", offset=0, high=180),
        BucketDefinition("thisYear", "This year", offset=0, high=365),
        BucketDefinition("lastYear", "Last year", offset=365, high=730),
        BucketDefinition("older", "Older", fallback=True),
    ],
    scalar_of=_starred_days,
    default_sort="starred",
    default_category="thisWeek",
    sort_options=("starred", "created", "updated", "stars", "name"),
)

POPULARITY_VIEW = BucketView(
    key="popularity",
    title="Popularity",
    buckets=[
        BucketDefinition("superPopular", "Super popular", "🔥", "#ff4d4f", "10000+ stars", low=10000),
        BucketDefinition("veryPopular", "Very popular", "⭐", "#fa8c16", "5000-9999 stars", low=5000, high=9999),
        BucketDefinition("popular", "Popular", "🌟", "#faad14", "1000-4999 stars", low=1000, high=4999),
        BucketDefinition("rising", "Rising", "📈", "#52c41a", "500-999 stars", low=500, high=999),
        BucketDefinition("promising", "Promising", "💎", "#1890ff", "100-499 stars", low=100, high=499),
        BucketDefinition("emerging", "Emerging", "🌱", "#722ed1", "50-99 stars", low=50, high=99),
        BucketDefinition("starter", "Starter", "🚀", "#eb2f96", "0-49 stars", fallback=True),
    ],
    scalar_of=_stars,
    default_sort="stars",
    default_category="superPopular",
)

MATURITY_VIEW = BucketView(
    key="maturity",
    title="Maturity",
    buckets=[
        MaturityRule("legendary", "Legendary", "👑", "#722ed1", "5+ years and 10000+ stars", 5, 10000),
        MaturityRule("veteran", "Veteran", "🏆", "#1890ff", "3+ years and 5000+ stars", 3, 5000),
        MaturityRule("mature", "Mature", "🎖️", "#52c41a", "2+ years and 1000+ stars", 2, 1000),
        MaturityRule("established", "Established", "🥉", "#faad14", "1+ year and 500+ stars", 1, 500),
        MaturityRule("growing", "Growing", "🌱", "#fa8c16", "6+ months and 100+ stars", 0.5, 100),
        MaturityRule("emerging", "Emerging", "🚀", "#ff4d4f", "3+ months and some attention", 0.25, 10),
        MaturityRule("fresh", "Fresh", "🌟", "#eb2f96", "Just getting started", fallback=True),
    ],
    scalar_of=_age_and_stars,
    default_sort="created",
    default_order="asc",
    default_category="mature",
)

ACTIVITY_VIEW = BucketView(
    key="activity",
    title="Activity",
    buckets=[
        BucketDefinition("veryActive", "Very active", "🔥", "#ff4d4f", "Updated within a week", high=7),
        BucketDefinition("active", "Active", "⚡", "#fa8c16", "Updated within a month", high=30),
        BucketDefinition("moderate", "Moderate", "📈", "#faad14", "Updated within 3 months", high=90),
        BucketDefinition("slow", "Slow", "🐌", "#52c41a", "Updated within 6 months", high=180),
        BucketDefinition("occasional", "Occasional", "🌙", "#1890ff", "Updated within a year", high=365),
        BucketDefinition("dormant", "Dormant", "😴", "#722ed1", "Updated within 2 years", high=730),
        BucketDefinition("inactive", "Inactive", "💤", "#8c8c8c", "No updates for 2+ years", fallback=True),
    ],
    scalar_of=_activity_days,
    default_sort="updated",
    default_category="veryActive",
    sort_options=("updated", "stars", "created", "name"),
)

BUCKET_VIEWS = {
    view.key: view for view in (TIME_VIEW, POPULARITY_VIEW, MATURITY_VIEW, ACTIVITY_VIEW)
}
TAG_VIEW_KEY = "tags"
VIEW_KEYS = (*BUCKET_VIEWS, TAG_VIEW_KEY)


def tag_levels(categories: Sequence[Category]) -> list[CategoryLevel]:
    """标签视图的分类页，顺序与分类一致"""
    return [CategoryLevel(c.id, c.name, color=c.color, description=c.description) for c in categories]


def group_categories(categories: Sequence[Category]) -> dict[str, list[StarredRepo]]:
    return {c.id: list(c.repos) for c in categories}
