from __future__ import annotations

from datetime import timedelta

import pytest

from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "KILOA_TOKEN",
        "KILOA_DB_URL",
        "KILOA_HOST",
        "KILOA_PORT",
        "KILOA_SERVER_URL",
        "KILOA_HISTORY_THROTTLE",
        "KILOA_RETENTION_DAYS",
        "KILOA_PRUNE_PROBABILITY",
        "KILOA_PRUNE_INTERVAL",
        "KILOA_PRUNE_BATCH_SIZE",
        "KILOA_ONLINE_WINDOW",
        "KILOA_REQUEST_TIMEOUT",
        "KILOA_NODE_ID",
        "KILOA_LOCATION",
        "KILOA_ISP",
        "KILOA_REPORT_INTERVAL",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = KiloaConfig.from_env()

    assert config.token == "secret"
    assert config.port == 8080
    assert config.throttle == timedelta(seconds=60)
    assert config.retention == timedelta(days=30)
    assert config.online_threshold == timedelta(seconds=120)
    assert config.prune_probability == 0.01
    assert config.prune_interval == 0.0


def test_env_values_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KILOA_TOKEN", "s3cr3t")
    monkeypatch.setenv("KILOA_DB_URL", "sqlite:///:memory:")
    monkeypatch.setenv("KILOA_PORT", " 9000 ")
    monkeypatch.setenv("KILOA_HISTORY_THROTTLE", "30")
    monkeypatch.setenv("KILOA_RETENTION_DAYS", "7.5")
    monkeypatch.setenv("KILOA_PRUNE_INTERVAL", "3600")

    config = KiloaConfig.from_env()

    assert config.token == "s3cr3t"
    assert config.database_url == "sqlite:///:memory:"
    assert config.port == 9000
    assert config.throttle == timedelta(seconds=30)
    assert config.retention == timedelta(days=7.5)
    assert config.prune_interval == 3600.0


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KILOA_PORT", "not-a-port")
    monkeypatch.setenv("KILOA_HOST", "10.0.0.1")

    config = KiloaConfig.from_env(port=7000, host="127.0.0.1")

    assert config.port == 7000
    assert config.host == "127.0.0.1"


def test_unparseable_number_is_a_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KILOA_RETENTION_DAYS", "thirty")

    with pytest.raises(KiloaConfigError, match="KILOA_RETENTION_DAYS"):
        KiloaConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"token": ""},
        {"prune_probability": 1.5},
        {"history_throttle": -1},
        {"retention_days": 0},
        {"prune_interval": -5},
        {"prune_batch_size": 0},
        {"online_window": 0},
        {"report_interval": 0},
    ],
)
def test_invalid_values_are_rejected(kwargs: dict) -> None:
    with pytest.raises(KiloaConfigError):
        KiloaConfig(**kwargs)


def test_agent_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KILOA_NODE_ID", "edge-1")
    monkeypatch.setenv("KILOA_LOCATION", "Tokyo")
    monkeypatch.setenv("KILOA_REPORT_INTERVAL", "10")

    config = KiloaConfig.from_env()

    assert config.node_id == "edge-1"
    assert config.location == "Tokyo"
    assert config.isp == "Unknown"
    assert config.report_interval == 10.0
