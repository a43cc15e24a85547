"""Tests for configuration adapter."""

from datetime import timedelta
from pathlib import Path
from tempfile import NamedTemporaryFile

import pytest

from nearby_transit.adapters.config import AppConfig, SettingsLoader
from nearby_transit.domain.models import Coordinates, DisplaySettings


def _write_toml(content: str) -> str:
    with NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
        f.write(content)
        return f.name


def test_config_loads_defaults() -> None:
    """Given no environment variables, when loading config, then defaults are used."""
    config = AppConfig()

    assert config.agency_id == "2"
    assert config.tranzy_base_url == "https://api.tranzy.ai/v1"
    assert config.refresh_interval_seconds == 30
    assert config.max_stations == 2
    assert config.proximity_threshold == 200
    assert config.favorite_routes == []
    assert config.circuit_failure_threshold == 5


def test_config_loads_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Given environment variables, when loading config, then they are used."""
    monkeypatch.setenv("TRANZY_API_KEY", "secret")
    monkeypatch.setenv("LATITUDE", "46.77")
    monkeypatch.setenv("LONGITUDE", "23.62")
    monkeypatch.setenv("MAX_STATIONS", "1")
    monkeypatch.setenv("FAVORITE_ROUTES", '["24B", {"routeName": "35"}]')

    config = AppConfig()

    assert config.tranzy_api_key == "secret"
    assert config.latitude == 46.77
    assert config.max_stations == 1
    assert config.favorite_routes == ["24B", {"routeName": "35"}]


@pytest.mark.parametrize(
    ("variable", "value", "message"),
    [
        ("MAX_STATIONS", "0", "must be at least 1"),
        ("MAX_SEARCH_RADIUS", "0", "max_search_radius must be positive"),
        ("PROXIMITY_THRESHOLD", "-1", "proximity_threshold must not be negative"),
        ("LATITUDE", "91", "latitude must be within"),
        ("LONGITUDE", "-181", "longitude must be within"),
    ],
)
def test_config_validates_values(
    monkeypatch: pytest.MonkeyPatch, variable: str, value: str, message: str
) -> None:
    """Given an out-of-range value, when loading config, then validation error is raised."""
    monkeypatch.setenv(variable, value)

    with pytest.raises(ValueError, match=message):
        AppConfig()


def test_config_applies_toml_sections() -> None:
    """Given a TOML config file, when loading it, then its sections override defaults."""
    temp_path = _write_toml(
        """
[location]
latitude = 46.7712
longitude = 23.6236
agency_id = "4"

[display]
filter_by_favorites = true
max_vehicles_per_station = 3
refresh_interval_seconds = 15

[[favorites]]
routeName = "24B"

[[favorites]]
routeName = "35"

[filtering]
busy_route_threshold = 8

[resilience]
circuit_failure_threshold = 3
cache_ttl_seconds = 120
"""
    )

    try:
        config = AppConfig(config_file=temp_path).load_toml()
        assert config.latitude == 46.7712
        assert config.agency_id == "4"
        assert config.filter_by_favorites is True
        assert config.max_vehicles_per_station == 3
        assert config.refresh_interval_seconds == 15
        assert config.favorite_routes == [{"routeName": "24B"}, {"routeName": "35"}]
        assert config.filtering == {"busy_route_threshold": 8}
        assert config.circuit_failure_threshold == 3
        assert config.cache_ttl_seconds == 120
    finally:
        Path(temp_path).unlink()


def test_config_accepts_plain_favorite_list() -> None:
    """Given favorites as a list of names, when loading TOML, then they are kept."""
    temp_path = _write_toml('favorites = ["24B", "M22"]\n')

    try:
        config = AppConfig(config_file=temp_path).load_toml()
        assert SettingsLoader.favorite_routes(config) == ["24B", "M22"]
    finally:
        Path(temp_path).unlink()


def test_config_validates_toml_values() -> None:
    """Given an invalid value in TOML, when loading it, then validation error is raised."""
    temp_path = _write_toml("[display]\nmax_stations = 0\n")

    try:
        with pytest.raises(ValueError, match="must be at least 1"):
            AppConfig(config_file=temp_path).load_toml()
    finally:
        Path(temp_path).unlink()


def test_config_raises_error_when_file_not_found() -> None:
    """Given non-existent config file, when loading config, then FileNotFoundError is raised."""
    config = AppConfig(config_file="nonexistent.toml")

    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        config.load_toml()


def test_config_without_file_is_returned_unchanged() -> None:
    """Given config_file is None, when loading TOML, then the same config is returned."""
    config = AppConfig(config_file=None)

    assert config.load_toml() is config


def test_settings_loader_builds_domain_settings() -> None:
    """Given a config, when building settings, then display and degradation settings mirror it."""
    config = AppConfig(
        max_stations=1,
        proximity_threshold=500,
        circuit_failure_threshold=2,
        circuit_timeout_seconds=30,
        cache_ttl_seconds=90,
    )

    display = SettingsLoader.display_settings(config)
    degradation = SettingsLoader.degradation_settings(config)

    assert display == DisplaySettings(max_stations=1, proximity_threshold=500)
    assert degradation.cache_ttl == timedelta(seconds=90)
    assert degradation.breaker_defaults.failure_threshold == 2
    assert degradation.breaker_defaults.timeout == timedelta(seconds=30)


def test_settings_loader_origin() -> None:
    """Given a location, when reading the origin, then coordinates are returned; otherwise ValueError."""
    assert SettingsLoader.origin(AppConfig(latitude=46.77, longitude=23.62)) == Coordinates(
        46.77, 23.62
    )

    with pytest.raises(ValueError, match="Rider location is not configured"):
        SettingsLoader.origin(AppConfig(latitude=None, longitude=None))
