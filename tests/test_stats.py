from gh_star_classifier.core.stats import collection_stats
from gh_star_classifier.models.tag import Category

from .factories import days_ago, make_repo


def test_collection_stats():
    repos = [
        make_repo(1, language="Python", stargazers_count=10),
        make_repo(2, language="Go", stargazers_count=300),
        make_repo(3, language="Python", stargazers_count=5),
        make_repo(4, language=None, stargazers_count=1),
        make_repo(5, language="C", stargazers_count=0),
    ]
    categories = [Category(id="backend", name="Backend", repos=repos[:2])]

    stats = collection_stats(repos, categories, top_n=2)

    assert stats["total_repos"] == 5
    assert stats["total_stars"] == 316
    assert stats["total_languages"] == 3
    assert stats["total_categories"] == 1
    assert stats["top_languages"] == [("Python", 2), ("C", 1)]
    assert stats["most_starred"].id == 2
    assert stats["categories"] == [
        {"id": "backend", "name": "Backend", "count": 2, "total_stars": 310, "percentage": 40.0}
    ]


def test_recent_repos_by_last_push():
    repos = [
        make_repo(i, pushed_at=days_ago(days))
        for i, days in enumerate([30, 2, 400, 5, 1, 90, 10], start=1)
    ]
    stats = collection_stats(repos, [])
    assert [r.id for r in stats["recent_repos"]] == [5, 2, 4, 7, 1]


def test_shared_repo_counts_in_each_category_percentage():
    shared = make_repo(1)
    repos = [shared, make_repo(2), make_repo(3)]
    categories = [
        Category(id="a", name="A", repos=[shared, repos[1]]),
        Category(id="b", name="B", repos=[shared]),
    ]
    percentages = [c["percentage"] for c in collection_stats(repos, categories)["categories"]]
    assert percentages == [66.7, 33.3]


def test_empty_collection():
    stats = collection_stats([], [])
    assert stats["total_repos"] == 0
    assert stats["total_categories"] == 0
    assert stats["most_starred"] is None
    assert stats["top_languages"] == []
    assert stats["recent_repos"] == []
