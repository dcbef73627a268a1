from datetime import datetime, timedelta, timezone

from gh_star_classifier.models.repo import StarredRepo

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> str:
    return (NOW - timedelta(days=days)).isoformat().replace("+00:00", "Z")


def make_repo(repo_id: int = 1, name: str = "repo", **overrides) -> StarredRepo:
    data = {
        "id": repo_id,
        "name": name,
        "full_name": f"owner/{name}",
        "owner": "owner",
        "html_url": f"https://github.com/owner/{name}",
        "stargazers_count": 0,
        "created_at": days_ago(30),
        "updated_at": days_ago(1),
        "pushed_at": days_ago(1),
        "starred_at": days_ago(1),
    }
    data.update(overrides)
    return StarredRepo(**data)
