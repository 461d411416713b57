from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from ledgerlink.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_admin_config,
    get_database_config,
    get_linking_config,
    get_storage_config,
    require_env_vars,
)


def test_linking_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LEDGERLINK_JANITOR_PAGE_SIZE",
        "LEDGERLINK_JANITOR_MAX_DELETIONS",
        "LEDGERLINK_LEGACY_ALIAS_SCAN",
        "LEDGERLINK_INVITE_TTL_DAYS",
        "LEDGERLINK_LINK_REQUEST_TTL_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_linking_config()

    assert config.janitor_page_size == 100
    assert config.janitor_max_deletions == 5
    assert config.legacy_alias_scan is True
    assert config.invite_ttl == timedelta(days=30)
    assert config.link_request_ttl == timedelta(days=7)


def test_linking_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGERLINK_JANITOR_PAGE_SIZE", "25")
    monkeypatch.setenv("LEDGERLINK_LEGACY_ALIAS_SCAN", "off")
    monkeypatch.setenv("LEDGERLINK_INVITE_TTL_DAYS", "3")

    config = get_linking_config()

    assert config.janitor_page_size == 25
    assert config.legacy_alias_scan is False
    assert config.invite_ttl == timedelta(days=3)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LEDGERLINK_JANITOR_PAGE_SIZE", "0"),
        ("LEDGERLINK_JANITOR_MAX_DELETIONS", "many"),
        ("LEDGERLINK_LEGACY_ALIAS_SCAN", "maybe"),
    ],
)
def test_linking_config_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError) as excinfo:
        get_linking_config()

    assert excinfo.value.variable == name


def test_admin_config_merges_both_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADMIN_EMAILS", "Root@Example.com, ops@example.com ,")
    monkeypatch.setenv("ADMIN_EMAIL", "boss@example.com")

    admins = get_admin_config()

    assert admins.admin_emails == frozenset(
        {"root@example.com", "ops@example.com", "boss@example.com"}
    )
    assert admins.is_admin(" ROOT@example.com")
    assert not admins.is_admin(None)


def test_database_uri_prefers_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"

    monkeypatch.delenv("DATABASE_URI")
    monkeypatch.setenv("LEDGERLINK_DATA_DIR", str(tmp_path))
    storage = get_storage_config()

    assert get_database_config(storage=storage).uri.endswith("ledgerlink.db")
    assert storage.database_path().parent == tmp_path.resolve()
    assert get_database_config(storage=storage).echo is False


def test_require_env_vars_reports_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT", "yes")
    monkeypatch.delenv("ABSENT", raising=False)

    with pytest.raises(MissingConfigurationError, match="ABSENT") as excinfo:
        require_env_vars(["PRESENT", "ABSENT"])

    assert excinfo.value.variables == ("ABSENT",)
    assert require_env_vars(["PRESENT"]) == {"PRESENT": "yes"}
