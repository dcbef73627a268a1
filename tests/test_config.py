from gh_star_classifier.config import DEFAULT_DB_PATH, get_settings

ENV_KEYS = [
    "GHSC_DB_PATH",
    "GITHUB_TOKEN",
    "GHSC_USERNAME",
    "GHSC_PAGE_SIZE",
    "GHSC_PER_PAGE",
    "GHSC_FETCH_DELAY",
    "GHSC_LOG_LEVEL",
    "GHSC_LOG_FILE",
]


def test_defaults(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    settings = get_settings(load_env=False)

    assert settings.db_path == str(DEFAULT_DB_PATH)
    assert settings.github_token is None
    assert settings.username is None
    assert settings.page_size == 8
    assert settings.per_page == 100
    assert settings.fetch_delay == 1.0
    assert settings.log_level == "WARNING"
    assert settings.log_file is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("GHSC_DB_PATH", str(tmp_path / "x.duckdb"))
    monkeypatch.setenv("GHSC_USERNAME", "octocat")
    monkeypatch.setenv("GHSC_PAGE_SIZE", "20")
    monkeypatch.setenv("GHSC_FETCH_DELAY", "0")
    monkeypatch.setenv("GITHUB_TOKEN", "")

    settings = get_settings(load_env=False)

    assert settings.db_path == str(tmp_path / "x.duckdb")
    assert settings.github_token is None
    assert settings.username == "octocat"
    assert settings.page_size == 20
    assert settings.fetch_delay == 0.0
