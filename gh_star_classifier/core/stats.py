"""收藏概览统计"""

from collections import Counter
from typing import Any, Sequence

from ..models.repo import StarredRepo
from ..models.tag import Category
from .pipeline import sort_repos

RECENT_REPOS = 5


def collection_stats(
    repos: Sequence[StarredRepo], categories: Sequence[Category], top_n: int = 10
) -> dict[str, Any]:
    """
    概览数据

    categories 中的 percentage 是分类项目数占全部仓库的百分比；
    一个仓库可以属于多个分类，所以各分类占比之和可能超过 100。
    recent_repos 按最后活跃时间倒序取前 5 个。
    """
    languages = Counter(repo.language for repo in repos if repo.language)
    top_languages = sorted(languages.items(), key=lambda item: (-item[1], item[0]))[:top_n]
    most_starred = max(repos, key=lambda repo: repo.stargazers_count, default=None)
    total = len(repos)

    return {
        "total_repos": total,
        "total_stars": sum(repo.stargazers_count for repo in repos),
        "total_languages": len(languages),
        "total_categories": len(categories),
        "top_languages": top_languages,
        "most_starred": most_starred,
        "recent_repos": sort_repos(repos, "updated", "desc")[:RECENT_REPOS],
        "categories": [
            {
                "id": c.id,
                "name": c.name,
                "count": len(c.repos),
                "total_stars": sum(repo.stargazers_count for repo in c.repos),
                "percentage": round(len(c.repos) / total * 100, 1) if total else 0.0,
            }
            for c in categories
        ],
    }
