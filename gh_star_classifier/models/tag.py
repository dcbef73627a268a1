"""标签、关键词规则、分类与用户配置"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .repo import StarredRepo


@dataclass
class Tag:
    """用户标签，id 全局唯一"""

    id: str
    name: str
    color: str
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Tag":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            color=data.get("color", "#d9d9d9"),
            description=data.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "color": self.color}
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass
class KeywordRule:
    """关键词规则：任一关键词命中即给仓库打上 tag_id，priority 越大越优先"""

    keywords: list[str]
    tag_id: str
    priority: int = 10

    @classmethod
    def from_dict(cls, data: dict) -> "KeywordRule":
        keywords = data["keywords"]
        if not isinstance(keywords, list):
            raise ValueError("keywords 必须是列表")
        return cls(
            keywords=[str(k) for k in keywords],
            tag_id=str(data["tagId"]),
            priority=int(data.get("priority", 10)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"keywords": list(self.keywords), "tagId": self.tag_id, "priority": self.priority}


@dataclass
class Category:
    """
    某一分类维度下的一组仓库

    由分类结果派生，每次重新计算，不做增量修改。
    """

    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    tags: list[Tag] = field(default_factory=list)
    repos: list[StarredRepo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            description=data.get("description"),
            color=data.get("color"),
            tags=[Tag.from_dict(t) for t in data.get("tags", [])],
            repos=[StarredRepo.from_dict(r) for r in data.get("repos", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "tags": [t.to_dict() for t in self.tags],
            "repos": [r.to_dict() for r in self.repos],
        }


@dataclass
class UserConfig:
    """用户配置"""

    username: str = ""
    github_token: Optional[str] = None
    auto_classify: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "UserConfig":
        if not isinstance(data, dict):
            raise ValueError("userConfig 必须是对象")
        return cls(
            username=data.get("username") or "",
            github_token=data.get("githubToken"),
            auto_classify=bool(data.get("autoClassify", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"username": self.username, "autoClassify": self.auto_classify}
        if self.github_token:
            data["githubToken"] = self.github_token
        return data
