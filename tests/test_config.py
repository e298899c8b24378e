from __future__ import annotations

import pytest

from pyartchain.config import ArtchainConfig
from pyartchain.exceptions import ArtchainConfigError

_ENV_VARS = (
    "ARTCHAIN_API_URL",
    "ARTCHAIN_STORAGE_PATH",
    "ARTCHAIN_REQUEST_TIMEOUT",
    "ARTCHAIN_HYDRATION_TIMEOUT",
    "ARTCHAIN_QUERY_RETRY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = ArtchainConfig.from_env()

    assert config.base_url == "http://localhost:3000/api"
    assert config.storage_path is None
    assert config.hydration_timeout == 5.0
    assert config.me_stale_time == 300.0
    assert config.contests_stale_time == 120.0
    assert config.query_retry == 1


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARTCHAIN_API_URL", "https://api.artchain.test/api/")
    monkeypatch.setenv("ARTCHAIN_STORAGE_PATH", "/tmp/artchain")
    monkeypatch.setenv("ARTCHAIN_REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("ARTCHAIN_HYDRATION_TIMEOUT", "0")
    monkeypatch.setenv("ARTCHAIN_QUERY_RETRY", "3")

    config = ArtchainConfig.from_env()

    assert config.base_url == "https://api.artchain.test/api"
    assert config.storage_path == "/tmp/artchain"
    assert config.request_timeout == 12.5
    assert config.hydration_timeout == 0.0
    assert config.query_retry == 3


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARTCHAIN_QUERY_RETRY", "not-a-number")
    monkeypatch.setenv("ARTCHAIN_API_URL", "https://env.example/api")

    config = ArtchainConfig.from_env(query_retry=0, base_url="https://override.example/api")

    assert config.query_retry == 0
    assert config.base_url == "https://override.example/api"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("ARTCHAIN_REQUEST_TIMEOUT", "soon"),
        ("ARTCHAIN_HYDRATION_TIMEOUT", "later"),
        ("ARTCHAIN_QUERY_RETRY", "1.5"),
    ],
)
def test_malformed_environment_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ArtchainConfigError, match=name):
        ArtchainConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [{"request_timeout": 0}, {"hydration_timeout": -1}, {"query_retry": -1}],
)
def test_invalid_values_are_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(ArtchainConfigError):
        ArtchainConfig(**kwargs)
