"""Tests for runtime settings loading and validation."""

import pytest

from commodity_ledger.config import AppSettings, SettingsLoadError, config_load_database_url, config_load_settings


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    for variable_name in ("DATABASE_URL", "DATABASE_ISOLATION_LEVEL", "LOG_LEVEL", "API_DEFAULT_LIMIT", "API_MAX_LIMIT"):
        monkeypatch.delenv(variable_name, raising=False)


def test_config_load_settings_normalizes_environment_values(monkeypatch: pytest.MonkeyPatch) -> None:
    """Normalize isolation level and log level spelling from the environment.

    Returns:
        None: Assertions validate normalized settings.

    Raises:
        AssertionError: Raised when values are not normalized.
    """

    monkeypatch.setenv("DATABASE_ISOLATION_LEVEL", "serializable")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    monkeypatch.setenv("TRADE_DEFAULT_WAREHOUSE", "  Houston Terminal ")

    settings = config_load_settings()

    assert settings.database_isolation_level == "SERIALIZABLE"
    assert settings.log_level == "DEBUG"
    assert settings.trade_default_warehouse == "Houston Terminal"
    assert settings.api_default_limit == 50


def test_config_load_settings_reads_dotenv_file(tmp_path) -> None:
    """Read settings from a `.env` file in the working directory.

    Returns:
        None: Assertions validate dotenv loading.

    Raises:
        AssertionError: Raised when the file is ignored.
    """

    (tmp_path / ".env").write_text("DATABASE_ISOLATION_LEVEL=read_committed\nLOG_JSON=true\n", encoding="utf-8")

    settings = config_load_settings()

    assert settings.database_isolation_level == "READ COMMITTED"
    assert settings.log_json is True


@pytest.mark.parametrize(
    ("variable_name", "value"),
    [
        ("DATABASE_ISOLATION_LEVEL", "READ UNCOMMITTED"),
        ("LOG_LEVEL", "verbose"),
        ("CONTRACT_DEFAULT_QUALITY", "   "),
        ("APPLICATION_PORT", "70000"),
    ],
)
def test_config_load_settings_raises_settings_load_error(
    monkeypatch: pytest.MonkeyPatch,
    variable_name: str,
    value: str,
) -> None:
    """Wrap invalid values in the startup configuration error.

    Returns:
        None: Assertions validate raised error.

    Raises:
        AssertionError: Raised when invalid settings load.
    """

    monkeypatch.setenv(variable_name, value)

    with pytest.raises(SettingsLoadError, match="Startup configuration validation failed"):
        config_load_settings()


def test_app_settings_rejects_max_limit_below_default() -> None:
    """Require the maximum page size to cover the default page size.

    Returns:
        None: Assertions validate limit bounds.

    Raises:
        AssertionError: Raised when inconsistent limits are accepted.
    """

    with pytest.raises(ValueError, match="api_max_limit"):
        AppSettings(api_default_limit=100, api_max_limit=10)


def test_config_load_database_url_rejects_blank_value(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reject a blank DATABASE_URL for migration tooling.

    Returns:
        None: Assertions validate blank URL handling.

    Raises:
        AssertionError: Raised when a blank URL is returned.
    """

    monkeypatch.setenv("DATABASE_URL", "   ")

    with pytest.raises(SettingsLoadError, match="DATABASE_URL must not be blank"):
        config_load_database_url()

    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://ledger@db/ledger")
    assert config_load_database_url() == "postgresql+psycopg://ledger@db/ledger"
