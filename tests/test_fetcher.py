"""gh cli 获取 Star 项目测试"""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from gh_star_classifier.core.fetcher import GitHubStarFetcher, retry_on_failure
from gh_star_classifier.errors import (
    RateLimitError,
    RemoteSourceError,
    UserNotFoundError,
    ValidationError,
)


def _item(repo_id: int) -> dict:
    return {
        "starred_at": "2024-03-01T10:00:00Z",
        "repo": {
            "id": repo_id,
            "name": f"r{repo_id}",
            "full_name": f"o/r{repo_id}",
            "html_url": f"https://github.com/o/r{repo_id}",
            "owner": {"login": "o", "avatar_url": None},
        },
    }


def _ok(stdout: str = "") -> MagicMock:
    return MagicMock(stdout=stdout, returncode=0)


def _error(stderr: str) -> subprocess.CalledProcessError:
    return subprocess.CalledProcessError(1, ["gh"], output="", stderr=stderr)


@pytest.fixture
def mock_run():
    with patch("gh_star_classifier.core.fetcher.subprocess.run") as mock:
        yield mock


@pytest.fixture
def mock_sleep():
    with patch("gh_star_classifier.core.fetcher.time.sleep") as mock:
        yield mock


def _page(ids) -> MagicMock:
    return _ok(json.dumps([_item(i) for i in ids]))


def test_empty_username_rejected_before_io(mock_run):
    fetcher = GitHubStarFetcher(token="t")
    with pytest.raises(ValidationError):
        fetcher.fetch_all_stars("  ")
    mock_run.assert_not_called()


def test_fetch_all_pages_until_short_page(mock_run, mock_sleep):
    mock_run.side_effect = [_ok("{}"), _page([1, 2]), _page([3, 4]), _page([5])]
    fetcher = GitHubStarFetcher(token="t", per_page=2, page_delay=0.5)

    repos = fetcher.fetch_all_stars("octocat")

    assert [r.id for r in repos] == [1, 2, 3, 4, 5]
    assert repos[0].starred_at == "2024-03-01T10:00:00Z"
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.5)

    page_call = mock_run.call_args_list[2]
    cmd = page_call.args[0]
    assert cmd[:2] == ["gh", "api"]
    assert "users/octocat/starred?per_page=2&page=2" in cmd[2]
    assert "application/vnd.github.v3.star+json" in cmd[4]
    assert page_call.kwargs["env"]["GH_TOKEN"] == "t"


def test_zero_stars_is_not_an_error(mock_run, mock_sleep):
    mock_run.side_effect = [_ok("{}"), _ok("[]")]
    assert GitHubStarFetcher(token="t").fetch_all_stars("lonely") == []
    mock_sleep.assert_not_called()


def test_unknown_user(mock_run):
    mock_run.side_effect = _error("gh: Not Found (HTTP 404)")
    with pytest.raises(UserNotFoundError) as excinfo:
        GitHubStarFetcher(token="t").fetch_all_stars("ghost")
    assert excinfo.value.username == "ghost"


def test_requires_gh_login_without_token(mock_run):
    mock_run.side_effect = _error("You are not logged into any GitHub hosts")
    with pytest.raises(RemoteSourceError) as excinfo:
        GitHubStarFetcher().fetch_all_stars("octocat")
    assert "gh auth login" in str(excinfo.value)


def test_rate_limit_is_not_retried(mock_run, mock_sleep):
    mock_run.side_effect = [_ok("{}"), _error("HTTP 403: API rate limit exceeded for user")]
    with pytest.raises(RateLimitError):
        GitHubStarFetcher(token="t").fetch_all_stars("octocat")
    mock_sleep.assert_not_called()


def test_transient_page_failure_is_retried(mock_run, mock_sleep):
    mock_run.side_effect = [_error("HTTP 502: Bad Gateway"), _page([1])]
    repos = GitHubStarFetcher(token="t").fetch_starred_page("octocat", 1)
    assert [r.id for r in repos] == [1]
    assert mock_sleep.call_count == 1


def test_failure_mid_sync_discards_partial_pages(mock_run, mock_sleep):
    mock_run.side_effect = [_ok("{}"), _page([1, 2])] + [_error("HTTP 500")] * 3
    fetcher = GitHubStarFetcher(token="t", per_page=2)
    with pytest.raises(RemoteSourceError):
        fetcher.fetch_all_stars("octocat")


def test_malformed_page_raises(mock_run, mock_sleep):
    mock_run.return_value = _ok("not json")
    with pytest.raises(RemoteSourceError):
        GitHubStarFetcher(token="t").fetch_starred_page("octocat", 1)


def test_missing_gh_binary(mock_run):
    mock_run.side_effect = FileNotFoundError("gh")
    with pytest.raises(RemoteSourceError):
        GitHubStarFetcher(token="t").validate_user("octocat")


def test_get_rate_limit(mock_run):
    mock_run.return_value = _ok('{"limit": 5000, "remaining": 4999, "reset": 1700000000}')
    assert GitHubStarFetcher().get_rate_limit()["remaining"] == 4999

    mock_run.side_effect = _error("HTTP 500")
    assert GitHubStarFetcher().get_rate_limit() is None


def test_retry_decorator_gives_up(mock_sleep):
    calls = []

    @retry_on_failure(max_retries=2, delay=1.0, backoff=3.0)
    def always_fails():
        calls.append(1)
        raise RemoteSourceError("down")

    with pytest.raises(RemoteSourceError):
        always_fails()
    assert len(calls) == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 3.0]
