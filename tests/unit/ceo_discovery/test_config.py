"""Unit tests for configuration loading."""

from pathlib import Path

import pytest

from ceo_discovery.config import (
    DEFAULT_CONFIG,
    ConfigurationError,
    DiscoveryConfig,
    OptimizationConfig,
    TreasuryConfig,
    _deep_merge,
    get_data_dir,
    get_source_paths,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of config resolution."""
    for name in (
        "CEO_DISCOVERY_CONFIG_PATH",
        "CEO_DISCOVERY_DATA_DIR",
        "CEO_DISCOVERY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDeepMerge:
    """Tests for _deep_merge."""

    def test_nested_values_override(self):
        """Nested keys are merged, not replaced wholesale."""
        merged = _deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        assert merged == {"a": {"x": 1, "y": 3}}

    def test_non_dict_override_replaces(self):
        """A scalar override replaces a nested section."""
        assert _deep_merge({"a": {"x": 1}}, {"a": 5}) == {"a": 5}


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path):
        """No config file yields the defaults."""
        config = load_config(project_root=tmp_path)
        assert config["discovery"] == DEFAULT_CONFIG["discovery"]
        assert config["treasury"]["start_capital"] == 100000.0

    def test_default_paths_resolved(self, tmp_path):
        """Data dir defaults to .ceo and sources to .ceo/logs."""
        config = load_config(project_root=tmp_path)
        assert get_data_dir(config) == tmp_path / ".ceo"
        assert Path(config["sources"]["dir"]) == tmp_path / ".ceo" / "logs"

    def test_mutating_result_leaves_defaults_alone(self, tmp_path):
        """Each call returns an independent copy."""
        config = load_config(project_root=tmp_path)
        config["discovery"]["min_confidence"] = 0.1
        assert DEFAULT_CONFIG["discovery"]["min_confidence"] == 0.7

    def test_project_config_file_merged(self, tmp_path):
        """<project>/.ceo/config.yaml overrides defaults."""
        (tmp_path / ".ceo").mkdir()
        (tmp_path / ".ceo" / "config.yaml").write_text(
            "discovery:\n  budget_max: 900\ntreasury:\n  burn_rate: 0\n"
        )
        config = load_config(project_root=tmp_path)
        assert config["discovery"]["budget_max"] == 900
        assert config["discovery"]["budget_min"] == 100.0
        assert config["treasury"]["burn_rate"] == 0

    def test_invalid_project_config_ignored(self, tmp_path):
        """Broken YAML in the default location falls back to defaults."""
        (tmp_path / ".ceo").mkdir()
        (tmp_path / ".ceo" / "config.yaml").write_text("discovery: [unclosed\n")
        config = load_config(project_root=tmp_path)
        assert config["discovery"]["budget_max"] == 500.0

    def test_invalid_explicit_config_raises(self, tmp_path):
        """Broken YAML in an explicit file is an error."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("discovery: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=str(config_file), project_root=tmp_path)

    def test_non_mapping_explicit_config_raises(self, tmp_path):
        """A YAML list at the top level is rejected."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=str(config_file), project_root=tmp_path)

    def test_missing_explicit_config_uses_defaults(self, tmp_path):
        """A missing explicit file is logged, not raised."""
        config = load_config(config_path="missing.yaml", project_root=tmp_path)
        assert config["learning"]["auto_train_threshold"] == 10

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        """CEO_DISCOVERY_CONFIG_PATH selects the config file."""
        config_file = tmp_path / "env.yaml"
        config_file.write_text("learning:\n  auto_train_threshold: 3\n")
        monkeypatch.setenv("CEO_DISCOVERY_CONFIG_PATH", str(config_file))
        config = load_config(project_root=tmp_path)
        assert config["learning"]["auto_train_threshold"] == 3

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Data dir and log level can be overridden from the environment."""
        monkeypatch.setenv("CEO_DISCOVERY_DATA_DIR", "state")
        monkeypatch.setenv("CEO_DISCOVERY_LOG_LEVEL", "debug")
        config = load_config(project_root=tmp_path)
        assert get_data_dir(config) == (tmp_path / "state").resolve()
        assert config["logging"]["level"] == "DEBUG"


class TestSourcePaths:
    """Tests for get_source_paths."""

    def test_all_kinds_under_sources_dir(self, tmp_path):
        """Each source kind resolves inside the sources directory."""
        config = load_config(project_root=tmp_path)
        paths = get_source_paths(config)
        logs = tmp_path / ".ceo" / "logs"
        assert paths == {
            "commands": (logs / "command-history.log").resolve(),
            "file_operations": (logs / "file-operations.jsonl").resolve(),
            "coordination": (logs / "coordination.jsonl").resolve(),
            "interactions": (logs / "interactions.jsonl").resolve(),
        }

    def test_disabled_kind_left_out(self, tmp_path):
        """A null file name disables that source."""
        (tmp_path / ".ceo").mkdir()
        (tmp_path / ".ceo" / "config.yaml").write_text("sources:\n  coordination: null\n")
        paths = get_source_paths(load_config(project_root=tmp_path))
        assert "coordination" not in paths
        assert "commands" in paths


class TestTypedSections:
    """Tests for the section dataclasses."""

    def test_from_default_config(self, tmp_path):
        """Typed sections mirror the defaults."""
        config = load_config(project_root=tmp_path)
        assert DiscoveryConfig.from_config(config) == DiscoveryConfig()
        assert TreasuryConfig.from_config(config) == TreasuryConfig()
        assert OptimizationConfig.from_config(config) == OptimizationConfig()

    def test_from_partial_config(self):
        """Missing keys fall back to defaults."""
        section = DiscoveryConfig.from_config({"discovery": {"target_roi": 5}})
        assert section.target_roi == 5.0
        assert section.min_confidence == 0.7
