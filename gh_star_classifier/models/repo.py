"""GitHub Star 项目数据模型"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    解析 GitHub 返回的 ISO-8601 时间，例如 "2024-01-01T00:00:00Z"

    无法解析时返回 None；没有时区的时间按 UTC 处理。
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class StarredRepo:
    """Star 项目数据，分类过程中只读"""

    id: int
    full_name: str
    name: str
    owner: str
    html_url: str
    description: Optional[str] = None
    homepage: Optional[str] = None
    language: Optional[str] = None
    topics: tuple[str, ...] = ()
    stargazers_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    pushed_at: Optional[str] = None
    starred_at: Optional[str] = None
    owner_avatar_url: Optional[str] = None

    def __post_init__(self):
        # 保证记录整体不可变、可哈希
        object.__setattr__(self, "topics", tuple(self.topics))

    def to_search_text(self) -> str:
        """
        生成关键词分类用的文本
        格式: "名称 描述 主题... 语言"，统一小写
        """
        parts = [self.name, self.description or "", *self.topics, self.language or ""]
        return " ".join(parts).lower()

    @property
    def last_activity_at(self) -> Optional[str]:
        """最后活跃时间：优先 pushed_at，其次 updated_at"""
        return self.pushed_at or self.updated_at

    @classmethod
    def from_dict(cls, data: dict) -> "StarredRepo":
        """从字典创建实例，owner 既可以是登录名也可以是 {login, avatar_url}"""
        owner = data.get("owner") or ""
        avatar_url = data.get("owner_avatar_url")
        if isinstance(owner, dict):
            avatar_url = owner.get("avatar_url", avatar_url)
            owner = owner.get("login", "")
        return cls(
            id=data["id"],
            full_name=data["full_name"],
            name=data["name"],
            owner=owner,
            html_url=data["html_url"],
            description=data.get("description"),
            homepage=data.get("homepage"),
            language=data.get("language"),
            topics=tuple(data.get("topics") or ()),
            stargazers_count=data.get("stargazers_count") or 0,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            pushed_at=data.get("pushed_at"),
            starred_at=data.get("starred_at"),
            owner_avatar_url=avatar_url,
        )

    @classmethod
    def from_api(cls, item: dict) -> "StarredRepo":
        """
        从 star+json 格式的接口数据创建实例

        接口返回 {"starred_at": ..., "repo": {...}}；
        没有收藏时间时回退到项目创建时间。
        """
        repo = item.get("repo") or item
        data = dict(repo)
        data["starred_at"] = item.get("starred_at") or repo.get("created_at")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """导出为与 GitHub 接口一致的字典"""
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "html_url": self.html_url,
            "homepage": self.homepage,
            "stargazers_count": self.stargazers_count,
            "language": self.language,
            "topics": list(self.topics),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "pushed_at": self.pushed_at,
            "starred_at": self.starred_at,
            "owner": {"login": self.owner, "avatar_url": self.owner_avatar_url},
        }
