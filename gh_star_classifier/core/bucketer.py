"""阈值分桶：按数值或日期把仓库划分到互斥的桶里"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from ..models.repo import StarredRepo, parse_timestamp

ONE_DAY = timedelta(days=1)


def days_since(timestamp: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """距今天数，向下取整；时间缺失或无法解析时返回 None"""
    moment = parse_timestamp(timestamp)
    if moment is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - moment) // ONE_DAY


@dataclass(frozen=True)
class BucketDefinition:
    """
    单一维度上的桶

    判定方式:
      - 设置了 offset: 半开区间 offset <= value < offset + high
      - 否则: low <= value <= high，未设置的边界不做限制
      - fallback=True: 不做判定，只接收其它桶都未命中的仓库
    """

    key: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    low: Optional[float] = None
    high: Optional[float] = None
    offset: Optional[float] = None
    fallback: bool = False

    def matches(self, value: Optional[float]) -> bool:
        if self.fallback or value is None:
            return False
        if self.offset is not None:
            return self.offset <= value < self.offset + (self.high or 0)
        if self.low is not None and value < self.low:
            return False
        if self.high is not None and value > self.high:
            return False
        return True


@dataclass(frozen=True)
class MaturityRule:
    """成熟度规则：项目年龄和星标数同时达标才命中"""

    key: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    min_years: float = 0
    min_stars: int = 0
    fallback: bool = False

    def matches(self, value: Optional[tuple[int, int]]) -> bool:
        if self.fallback or value is None:
            return False
        age_days, stars = value
        return age_days / 365 >= self.min_years and stars >= self.min_stars


def fallback_key(buckets: Sequence[Any]) -> str:
    """返回唯一的兜底桶；没有或多于一个时报错"""
    fallbacks = [b.key for b in buckets if b.fallback]
    if len(fallbacks) != 1:
        raise ValueError(f"必须且只能声明一个兜底桶，当前: {fallbacks}")
    return fallbacks[0]


def bucketize(
    repos: Sequence[StarredRepo],
    buckets: Sequence[Any],
    scalar_of: Callable[[StarredRepo], Any],
) -> dict[str, list[StarredRepo]]:
    """
    按顺序逐个判定，仓库落入第一个命中的桶；都没命中则落入兜底桶

    返回值按 buckets 的声明顺序包含所有桶（包括空桶）。
    """
    default = fallback_key(buckets)
    result: dict[str, list[StarredRepo]] = {b.key: [] for b in buckets}
    tests = [b for b in buckets if not b.fallback]

    for repo in repos:
        value = scalar_of(repo)
        key = next((b.key for b in tests if b.matches(value)), default)
        result[key].append(repo)

    return result
