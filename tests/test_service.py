"""应用服务测试"""

import json
import re
from unittest.mock import MagicMock

import pytest

from gh_star_classifier.core.service import StarClassifierService, new_tag_id
from gh_star_classifier.core.pipeline import ViewState
from gh_star_classifier.errors import (
    RemoteSourceError,
    SnapshotImportError,
    ValidationError,
)
from gh_star_classifier.models.tag import UserConfig

from .factories import days_ago, make_repo

REPOS = [
    make_repo(1, name="react-dashboard", stargazers_count=12000),
    make_repo(2, name="docker-compose-files", stargazers_count=600),
    make_repo(3, name="zzz", stargazers_count=3),
]


@pytest.fixture
def fetcher():
    mock = MagicMock()
    mock.token = None
    mock.fetch_all_stars.return_value = list(REPOS)
    return mock


@pytest.fixture
def service(db, fetcher):
    db.save_user_config(UserConfig(username="octocat"))
    return StarClassifierService(db, fetcher)


def test_new_tag_id_format():
    assert re.fullmatch(r"tag_\d+_[a-z0-9]{9}", new_tag_id())


def test_sync_saves_and_classifies(service, db, fetcher):
    repos = service.sync()

    fetcher.fetch_all_stars.assert_called_once_with("octocat")
    assert len(repos) == 3
    assert [r.id for r in db.get_repos()] == [1, 2, 3]
    ids = {c.id for c in service.categories}
    assert {"frontend", "devops", "other"} <= ids
    assert db.get_categories()


def test_failed_sync_keeps_previous_data(service, db, fetcher):
    service.sync()
    fetcher.fetch_all_stars.side_effect = RemoteSourceError("network down")

    with pytest.raises(RemoteSourceError):
        service.sync()

    assert len(service.repos) == 3
    assert len(db.get_repos()) == 3


def test_load_reclassifies_stored_repos(db, fetcher):
    db.save_repos(REPOS)
    service = StarClassifierService(db, fetcher)
    assert service.categories


def test_load_uses_stored_categories_when_auto_classify_off(db, fetcher):
    db.save_user_config(UserConfig(username="x", auto_classify=False))
    db.save_repos(REPOS)
    service = StarClassifierService(db, fetcher)
    assert service.categories == []


def test_default_username_and_token(db, fetcher):
    db.save_user_config(UserConfig(github_token="secret"))
    service = StarClassifierService(db, fetcher, default_username="fromenv")
    assert service.config.username == "fromenv"
    assert fetcher.token == "secret"


def test_reclassify_without_repos(db, fetcher):
    with pytest.raises(ValidationError):
        StarClassifierService(db, fetcher).reclassify()


def test_add_rule_for_new_tag_creates_category(service):
    service.sync()
    tag = service.add_tag("Sleepy", "#123456", "zzz projects")
    assert tag.id.startswith("tag_")
    assert tag.id not in {c.id for c in service.categories}

    service.add_rule(["zzz", " "], tag.id, priority=20)

    assert service.rules[-1].keywords == ["zzz"]
    sleepy = next(c for c in service.categories if c.id == tag.id)
    assert [r.id for r in sleepy.repos] == [3]
    assert "other" not in {c.id for c in service.categories}


def test_add_rule_requires_keywords(service):
    with pytest.raises(ValidationError):
        service.add_rule([" ", ""], "frontend")


def test_delete_tag_removes_rules(service, db):
    service.sync()
    service.delete_tag("frontend")

    assert "frontend" not in {t.id for t in service.tags}
    assert all(rule.tag_id != "frontend" for rule in service.rules)
    assert all(rule.tag_id != "frontend" for rule in db.get_keyword_rules())
    assert "frontend" not in {c.id for c in service.categories}


def test_update_tag(service):
    service.sync()
    service.update_tag("frontend", name="Web")
    assert next(c for c in service.categories if c.id == "frontend").name == "Web"

    with pytest.raises(ValidationError):
        service.update_tag("frontend", id="other")
    with pytest.raises(ValidationError):
        service.update_tag("missing", name="x")


def test_update_and_delete_rule_by_index(service):
    service.sync()
    service.update_rule(0, keywords=["nothing-matches"])
    assert "frontend" not in {c.id for c in service.categories}

    count = len(service.rules)
    service.delete_rule(count - 1)
    assert len(service.rules) == count - 1

    with pytest.raises(ValidationError):
        service.delete_rule(99)


def test_update_config(service, db, fetcher):
    service.update_config(username="someone", github_token="tok")
    assert db.get_user_config().username == "someone"
    assert fetcher.token == "tok"
    with pytest.raises(ValidationError):
        service.update_config(colour="red")


def test_clear_all_resets_to_defaults(service, db):
    service.sync()
    service.clear_all()
    assert service.repos == []
    assert service.categories == []
    assert service.config.username == ""
    assert len(service.tags) == 14


def test_import_only_tags(service, db):
    service.sync()
    service.import_data(json.dumps({"tags": [{"id": "solo", "name": "Solo", "color": "#000"}]}))

    assert [t.id for t in service.tags] == ["solo"]
    assert len(service.repos) == 3
    assert service.config.username == "octocat"


def test_import_failure_raises(service):
    with pytest.raises(SnapshotImportError):
        service.import_data("nope")


def test_categorize_views(service, now):
    service.sync()
    popularity = service.categorize("popularity", now)
    assert [r.id for r in popularity["superPopular"]] == [1]
    assert [r.id for r in popularity["rising"]] == [2]
    assert [r.id for r in popularity["starter"]] == [3]

    tags = service.categorize("tags")
    assert list(tags) == [c.id for c in service.categories]

    with pytest.raises(ValidationError):
        service.categorize("nope")


def test_default_states(service):
    service.sync()
    state = service.default_state("maturity")
    assert (state.sort_key, state.sort_order, state.active_category) == ("created", "asc", "mature")
    assert service.default_state("tags").active_category == service.categories[0].id


def test_render_view(service, now):
    service.sync()
    state = ViewState(active_category="thisWeek", sort_key="stars")
    result = service.render_view("time", state, page_size=2, now=now)
    assert result.total == 3
    assert [r.id for r in result.items] == [1, 2]


def test_levels(service):
    service.sync()
    assert [lvl.key for lvl in service.levels("activity")][-1] == "inactive"
    assert [lvl.key for lvl in service.levels("tags")] == [c.id for c in service.categories]


def test_stats(service):
    service.sync()
    stats = service.stats()
    assert stats["total_repos"] == 3
    assert stats["total_stars"] == 12603
    assert stats["most_starred"].id == 1


def test_updates_reject_method_names(service):
    with pytest.raises(ValidationError):
        service.update_config(to_dict="x")
    with pytest.raises(ValidationError):
        service.update_tag("frontend", from_dict="x")
    with pytest.raises(ValidationError):
        service.update_rule(0, to_dict="x")

    assert service.rules[0].to_dict()["tagId"] == "frontend"
    assert service.config.to_dict()["username"] == "octocat"


def test_browse_applies_filters(service, now):
    service.sync()
    levels, grouped, state, result = service.browse(
        "popularity", category="starter", query="zz", sort_key="name", order="asc", now=now
    )
    assert levels[-1].key == "starter"
    assert state.active_category == "starter"
    assert [r.id for r in result.items] == [3]
    assert state.filtered_total(grouped) == 1

    with pytest.raises(ValueError):
        service.browse("popularity", sort_key="forks")


def test_search_and_languages(db, fetcher):
    fetcher.fetch_all_stars.return_value = [
        make_repo(1, name="a", language="Go", stargazers_count=1),
        make_repo(2, name="b", language="Rust", stargazers_count=5),
        make_repo(3, name="c", language="Go", stargazers_count=9),
    ]
    db.save_user_config(UserConfig(username="octocat"))
    service = StarClassifierService(db, fetcher)
    service.sync()

    assert service.languages() == ["Go", "Rust"]
    assert [r.id for r in service.search("owner/")] == [3, 2, 1]
    assert [r.id for r in service.search("owner/", language="Go")] == [3, 1]


def test_status(service, fetcher):
    service.sync()
    fetcher.get_rate_limit.return_value = {"limit": 5000, "remaining": 10, "reset": 0}

    status = service.status()
    assert status["total_repos"] == 3
    assert status["username"] == "octocat"
    assert status["storage_total"] == sum(status["storage"].values())
    assert status["rate_limit"] is None
    fetcher.get_rate_limit.assert_not_called()

    assert service.status(include_rate_limit=True)["rate_limit"]["remaining"] == 10
