"""Unit tests for smoked Configuration System.

Tests layered YAML configuration loading with Pydantic validation:
defaults, YAML files, runtime overrides, environment overrides,
dotted-key lookup and feature gating.
"""

from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from smoked.core.config import (
    FeatureToggle,
    LoggingConfig,
    PingFeature,
    Settings,
    create_settings,
    get_settings,
    load_system_config,
    load_yaml_file,
    merge_configs,
    reset_settings,
)
from smoked.core.exceptions import ConfigurationError


def write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDefaults:
    """Defaults match the published service behaviour."""

    def test_rate_defaults(self, settings):
        assert settings.rate.limit == 30
        assert settings.rate.timeframe == timedelta(minutes=1)

    def test_feature_defaults(self, settings):
        assert settings.feature_enabled("mtr") is True
        assert settings.feature_enabled("traceroute") is True
        assert settings.feature_enabled("ping") is True
        assert settings.feature_enabled("bgp") is False
        assert settings.feature_enabled("files") is False
        assert settings.feature.files.path == "/data/files"

    def test_ping_count_default(self, settings):
        assert settings.lookup("feature.ping.count") == "5"

    def test_server_and_executor_defaults(self, settings):
        assert settings.server.port == 8080
        assert settings.cors.origin is None
        assert settings.executor.timeout is None
        assert settings.executor.max_output_bytes is None

    def test_settings_are_frozen(self, settings):
        with pytest.raises(Exception):
            settings.rate = None


class TestLookup:
    """Tests for Settings.lookup dotted-key resolution."""

    def test_missing_key_is_empty_string(self, settings):
        assert settings.lookup("feature.nope") == ""
        assert settings.lookup("does.not.exist") == ""
        assert settings.lookup("feature.ping.count.deeper") == ""
        assert settings.lookup("") == ""

    def test_feature_key_resolves_to_enabled_flag(self, settings):
        assert settings.lookup("feature.ping") == "true"
        assert settings.lookup("feature.bgp") == "false"

    def test_scalar_values(self, settings):
        assert settings.lookup("rate.limit") == "30"
        assert settings.lookup("rate.timeframe") == "60s"
        assert settings.lookup("feature.files.path") == "/data/files"

    def test_unset_and_section_values_are_empty(self, settings):
        assert settings.lookup("cors.origin") == ""
        assert settings.lookup("server") == ""

    def test_unknown_feature_is_disabled(self, settings):
        assert settings.feature_enabled("nmap") is False


class TestFeatureToggles:
    """Feature sections accept a bare boolean."""

    def test_bool_shorthand(self):
        settings = Settings(feature={"bgp": True, "mtr": False})
        assert settings.feature_enabled("bgp") is True
        assert settings.feature_enabled("mtr") is False

    def test_ping_shorthand_keeps_count_default(self):
        settings = Settings(feature={"ping": False})
        assert settings.feature_enabled("ping") is False
        assert settings.feature.ping.count == "5"

    def test_numeric_ping_count_is_stringified(self):
        settings = Settings(feature={"ping": {"count": 3}})
        assert settings.lookup("feature.ping.count") == "3"
        assert settings.feature_enabled("ping") is True

    def test_boolean_ping_count_rejected(self):
        with pytest.raises(Exception):
            PingFeature(count=True)

    def test_toggle_model(self):
        assert FeatureToggle.model_validate(True).enabled is True
        assert FeatureToggle.model_validate({"enabled": False}).enabled is False


class TestEnvironmentOverrides:
    """SMOKED_ environment variables override other layers."""

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("SMOKED_FEATURE__PING__COUNT", "3")
        monkeypatch.setenv("SMOKED_RATE__LIMIT", "10")
        settings = Settings()
        assert settings.lookup("feature.ping.count") == "3"
        assert settings.rate.limit == 10

    def test_env_enables_feature(self, monkeypatch):
        monkeypatch.setenv("SMOKED_FEATURE__BGP__ENABLED", "true")
        assert Settings().feature_enabled("bgp") is True

    def test_env_beats_yaml(self, monkeypatch, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {"rate": {"limit": 99}})
        monkeypatch.setenv("SMOKED_RATE__LIMIT", "7")
        settings = create_settings(system_config_path=path)
        assert settings.rate.limit == 7

    def test_unprefixed_names(self, monkeypatch):
        monkeypatch.setenv("FEATURE_BGP", "true")
        monkeypatch.setenv("FEATURE_PING_COUNT", "3")
        monkeypatch.setenv("RATE_LIMIT", "10")
        monkeypatch.setenv("RATE_TIMEFRAME", "30s")
        monkeypatch.setenv("CORS_ORIGIN", "https://lg.example.net")

        settings = Settings()

        assert settings.feature_enabled("bgp") is True
        assert settings.feature_enabled("ping") is True
        assert settings.lookup("feature.ping.count") == "3"
        assert settings.rate.limit == 10
        assert settings.rate.timeframe == timedelta(seconds=30)
        assert settings.cors.origin == "https://lg.example.net"

    def test_unprefixed_names_beat_yaml(self, monkeypatch, tmp_path):
        path = write_yaml(
            tmp_path / "config.yaml",
            {"feature": {"mtr": True, "files": {"path": "/srv/files"}}},
        )
        monkeypatch.setenv("FEATURE_MTR", "false")
        settings = create_settings(system_config_path=path)
        assert settings.feature_enabled("mtr") is False
        assert settings.feature.files.path == "/srv/files"

    def test_prefixed_names_beat_unprefixed(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT", "10")
        monkeypatch.setenv("SMOKED_RATE__LIMIT", "20")
        assert Settings().rate.limit == 20

    def test_dotenv_next_to_config_is_loaded(self, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {})
        (tmp_path / ".env").write_text("SMOKED_CORS__ORIGIN=https://lg.example.net\n")
        settings = create_settings(system_config_path=path)
        assert settings.cors.origin == "https://lg.example.net"


class TestYamlLoading:
    """Tests for file-based configuration."""

    def test_load_yaml_file(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"rate": {"limit": 5}})
        assert load_yaml_file(path) == {"rate": {"limit": 5}}

    def test_empty_yaml_is_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_yaml_file(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("rate: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml_file(path)

    def test_non_mapping_root_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_yaml_file(path)

    def test_explicit_missing_path_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_system_config(tmp_path / "nope.yaml")

    def test_create_settings_from_yaml(self, tmp_path):
        path = write_yaml(
            tmp_path / "config.yaml",
            {
                "feature": {"bgp": True, "ping": {"count": "2"}},
                "rate": {"limit": 5, "timeframe": 30},
                "executor": {"timeout": 15, "max_output_bytes": 65536},
            },
        )
        settings = create_settings(system_config_path=path)
        assert settings.feature_enabled("bgp") is True
        assert settings.lookup("feature.ping.count") == "2"
        assert settings.rate.timeframe == timedelta(seconds=30)
        assert settings.executor.timeout == 15
        assert settings.executor.max_output_bytes == 65536

    def test_runtime_overrides_merge_over_yaml(self, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {"server": {"host": "127.0.0.1", "port": 9000}})
        settings = create_settings(
            system_config_path=path, runtime_overrides={"server": {"port": 9001}}
        )
        assert settings.server.host == "127.0.0.1"
        assert settings.server.port == 9001

    def test_invalid_values_raise_configuration_error(self, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {"rate": {"limit": -1}})
        with pytest.raises(ConfigurationError, match="validation failed"):
            create_settings(system_config_path=path)

    @pytest.mark.parametrize(
        "value,expected",
        [("1m", 60), ("90s", 90), ("1h30m", 5400), ("500ms", 0.5), (45, 45)],
    )
    def test_timeframe_durations(self, value, expected):
        settings = Settings(rate={"timeframe": value})
        assert settings.rate.timeframe == timedelta(seconds=expected)

    def test_zero_timeframe_rejected(self, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {"rate": {"timeframe": 0}})
        with pytest.raises(ConfigurationError):
            create_settings(system_config_path=path)


class TestMergeConfigs:
    def test_deep_merge(self):
        merged = merge_configs({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 4}


class TestLoggingConfig:
    def test_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LoggingConfig(format="xml")


class TestSingleton:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload_and_reset(self, tmp_path):
        first = get_settings()
        path = write_yaml(tmp_path / "config.yaml", {"rate": {"limit": 3}})
        reloaded = get_settings(force_reload=True, system_config_path=path)
        assert reloaded is not first
        assert get_settings().rate.limit == 3

        reset_settings()
        assert get_settings() is not reloaded
