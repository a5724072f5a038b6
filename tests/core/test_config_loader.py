"""Tests for config_loader module.

- AAA pattern (Arrange-Act-Assert)
- Descriptive test names: test_unit_scenario_expectedBehavior
- Test isolation (tmp_path YAML files, monkeypatched env vars)
"""

import pytest
import yaml

from nl_data_analyst.core.config_loader import (
    AnalystConfigDefaults,
    _coerce_type,
    get_config_dir,
    get_project_root,
    load_analyst_config,
    load_logging_config,
    load_ui_config,
)

ANALYST_ENV_VARS = (
    "OLLAMA_BASE_URL",
    "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT_SECONDS",
    "LLM_TEMPERATURE",
    "EXECUTION_MAX_ROWS",
    "EXECUTION_TIMEOUT_SECONDS",
)
UI_ENV_VARS = ("LOG_LEVEL", "MAX_UPLOAD_SIZE_MB", "DISPLAY_ROW_LIMIT", "PREVIEW_ROWS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in (*ANALYST_ENV_VARS, *UI_ENV_VARS, "NL_DATA_ANALYST_CONFIG_DIR"):
        monkeypatch.delenv(name, raising=False)


def _write_yaml(tmp_path, name: str, data) -> object:
    config_file = tmp_path / name
    config_file.write_text(yaml.dump(data))
    return config_file


class TestCoerceType:
    """String coercion used for YAML and env values."""

    @pytest.mark.parametrize(
        ("value", "target", "expected"),
        [
            ("30.0", float, 30.0),
            ("30.0", int, 30),
            ("true", bool, True),
            ("off", bool, False),
            (5, float, 5.0),
            (7, str, "7"),
            (None, int, None),
        ],
    )
    def test_coerce_type_converts(self, value, target, expected):
        """Test that strings and numbers are coerced to the target type."""
        # Act & Assert
        assert _coerce_type(value, target) == expected

    def test_coerce_type_invalid_number_raises(self):
        """Test that a non-numeric string cannot become a float."""
        # Act & Assert
        with pytest.raises(ValueError):
            _coerce_type("abc", float)


class TestProjectRoot:
    """Project root and config directory detection."""

    def test_get_project_root_contains_config_dir(self):
        """Test that the detected project root holds config/analyst.yaml."""
        # Act
        root = get_project_root()

        # Assert
        assert (root / "config" / "analyst.yaml").exists()

    def test_get_config_dir_prefers_env_var(self, tmp_path, monkeypatch):
        """Test that NL_DATA_ANALYST_CONFIG_DIR overrides the config directory."""
        # Arrange
        monkeypatch.setenv("NL_DATA_ANALYST_CONFIG_DIR", str(tmp_path))

        # Act & Assert
        assert get_config_dir() == tmp_path


class TestLoadAnalystConfig:
    """Reasoning service and sandbox settings."""

    def test_load_analyst_config_missing_file_uses_defaults(self, tmp_path):
        """Test that a missing analyst.yaml falls back to defaults."""
        # Act
        config = load_analyst_config(config_path=tmp_path / "missing.yaml")

        # Assert
        assert config == AnalystConfigDefaults().to_dict()
        assert config["ollama_timeout_seconds"] == 120.0
        assert config["execution_max_rows"] == 250_000

    def test_load_analyst_config_repository_file_matches_defaults(self):
        """Test that the shipped analyst.yaml matches the defaults."""
        # Act
        config = load_analyst_config()

        # Assert
        assert config == AnalystConfigDefaults().to_dict()

    def test_load_analyst_config_reads_and_coerces_yaml(self, tmp_path):
        """Test that YAML values are read, coerced and unknown keys ignored."""
        # Arrange
        config_file = _write_yaml(
            tmp_path,
            "analyst.yaml",
            {"ollama_model": "qwen2.5:7b", "execution_max_rows": "1000", "execution_timeout_seconds": 3, "extra": 1},
        )

        # Act
        config = load_analyst_config(config_path=config_file)

        # Assert
        assert config["ollama_model"] == "qwen2.5:7b"
        assert config["execution_max_rows"] == 1000
        assert config["execution_timeout_seconds"] == 3.0
        assert isinstance(config["execution_timeout_seconds"], float)
        assert "extra" not in config

    def test_load_analyst_config_env_overrides_yaml(self, tmp_path, monkeypatch):
        """Test that environment variables win over YAML."""
        # Arrange
        config_file = _write_yaml(tmp_path, "analyst.yaml", {"ollama_model": "from-yaml"})
        monkeypatch.setenv("OLLAMA_MODEL", "from-env")
        monkeypatch.setenv("OLLAMA_TIMEOUT_SECONDS", "45")

        # Act
        config = load_analyst_config(config_path=config_file)

        # Assert
        assert config["ollama_model"] == "from-env"
        assert config["ollama_timeout_seconds"] == 45.0

    def test_load_analyst_config_critical_type_coercion_failure_raises_valueerror(self, tmp_path):
        """Test that a bad critical YAML value raises ValueError."""
        # Arrange
        config_file = _write_yaml(tmp_path, "analyst.yaml", {"execution_timeout_seconds": "soon"})

        # Act & Assert
        with pytest.raises(ValueError, match="Type coercion failed for critical config"):
            load_analyst_config(config_path=config_file)

    def test_load_analyst_config_critical_env_failure_raises_valueerror(self, tmp_path, monkeypatch):
        """Test that a bad critical env var raises ValueError."""
        # Arrange
        monkeypatch.setenv("EXECUTION_MAX_ROWS", "lots")

        # Act & Assert
        with pytest.raises(ValueError, match="critical env var"):
            load_analyst_config(config_path=tmp_path / "missing.yaml")

    def test_load_analyst_config_non_positive_budget_raises(self, tmp_path):
        """Test that a zero execution timeout is rejected."""
        # Arrange
        config_file = _write_yaml(tmp_path, "analyst.yaml", {"execution_timeout_seconds": 0})

        # Act & Assert
        with pytest.raises(ValueError, match="must be positive"):
            load_analyst_config(config_path=config_file)

    def test_load_analyst_config_invalid_yaml_raises(self, tmp_path):
        """Test that broken YAML raises ValueError."""
        # Arrange
        config_file = tmp_path / "analyst.yaml"
        config_file.write_text("ollama_model: [unclosed")

        # Act & Assert
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_analyst_config(config_path=config_file)

    def test_load_analyst_config_non_mapping_yaml_raises(self, tmp_path):
        """Test that YAML that is not a mapping raises ValueError."""
        # Arrange
        config_file = _write_yaml(tmp_path, "analyst.yaml", ["a", "b"])

        # Act & Assert
        with pytest.raises(ValueError, match="expected a mapping"):
            load_analyst_config(config_path=config_file)


class TestLoadUIConfig:
    """UI settings."""

    def test_load_ui_config_defaults(self, tmp_path):
        """Test that a missing ui.yaml falls back to defaults."""
        # Act
        config = load_ui_config(config_path=tmp_path / "missing.yaml")

        # Assert
        assert config == {
            "log_level": "INFO",
            "max_upload_size_mb": 100,
            "display_row_limit": 100,
            "preview_rows": 3,
        }

    def test_load_ui_config_yaml_and_env(self, tmp_path, monkeypatch):
        """Test that UI values come from YAML and env overrides."""
        # Arrange
        config_file = _write_yaml(tmp_path, "ui.yaml", {"display_row_limit": 25, "log_level": "DEBUG"})
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "10")

        # Act
        config = load_ui_config(config_path=config_file)

        # Assert
        assert config["display_row_limit"] == 25
        assert config["log_level"] == "DEBUG"
        assert config["max_upload_size_mb"] == 10

    def test_load_ui_config_non_critical_bad_value_keeps_default(self, tmp_path):
        """Test that a bad non-critical value keeps its default."""
        # Arrange
        config_file = _write_yaml(tmp_path, "ui.yaml", {"preview_rows": "several"})

        # Act
        config = load_ui_config(config_path=config_file)

        # Assert
        assert config["preview_rows"] == 3


class TestLoadLoggingConfig:
    """Logging settings."""

    def test_load_logging_config_merges_module_levels(self, tmp_path):
        """Test that module levels from YAML merge into the defaults."""
        # Arrange
        config_file = _write_yaml(
            tmp_path,
            "logging.yaml",
            {"root_level": "DEBUG", "module_levels": {"nl_data_analyst.core": "DEBUG"}},
        )

        # Act
        config = load_logging_config(config_path=config_file)

        # Assert
        assert config["root_level"] == "DEBUG"
        assert config["module_levels"] == {"nl_data_analyst": "INFO", "nl_data_analyst.core": "DEBUG"}
        assert config["reduce_noise"]["matplotlib"] == "WARNING"

    def test_load_logging_config_defaults_are_not_shared(self, tmp_path):
        """Test that returned dicts do not alias the defaults."""
        # Arrange
        first = load_logging_config(config_path=tmp_path / "missing.yaml")
        first["reduce_noise"]["streamlit"] = "DEBUG"

        # Act
        second = load_logging_config(config_path=tmp_path / "missing.yaml")

        # Assert
        assert second["reduce_noise"]["streamlit"] == "WARNING"
