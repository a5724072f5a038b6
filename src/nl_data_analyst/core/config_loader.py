"""Centralized configuration loader for YAML-based configuration.

This module provides functions to load configuration from YAML files with:
- Environment variable overrides (env var → YAML → defaults)
- Type coercion (string to float, bool, int)
- Schema validation using dataclasses
- Graceful degradation (missing files use defaults)
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "NL_DATA_ANALYST_CONFIG_DIR"


def get_project_root() -> Path:
    """
    Get project root directory.

    Uses pattern: config_loader.py → core/ → nl_data_analyst/ → src/ → project_root

    Validates that the config/ directory exists to ensure correct project root detection.

    Returns:
        Path to project root directory

    Raises:
        ValueError: If config/ directory is not found at the detected project root
    """
    current_file = Path(__file__)
    # Go up 4 levels: config_loader.py → core/ → nl_data_analyst/ → src/ → project_root
    project_root = current_file.parent.parent.parent.parent

    config_dir = project_root / "config"
    if not config_dir.is_dir():
        raise ValueError(
            f"Project root detection failed: config/ directory not found at {config_dir}. "
            f"Detected project root: {project_root}. "
            f"If project structure has changed, update get_project_root() in config_loader.py"
        )

    return project_root


def get_config_dir() -> Path | None:
    """
    Locate the config/ directory.

    NL_DATA_ANALYST_CONFIG_DIR wins when set; otherwise the project root's config/.

    Returns:
        Config directory, or None when it cannot be found (defaults are used)
    """
    env_dir = os.getenv(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    try:
        return get_project_root() / "config"
    except ValueError as e:
        logger.debug(f"No config directory available ({e}), using defaults")
        return None


def _default_config_path(filename: str) -> Path | None:
    config_dir = get_config_dir()
    return config_dir / filename if config_dir is not None else None


def _coerce_type(value: Any, target_type: type) -> Any:
    """
    Coerce value to target type.

    Handles:
    - String "30.0" → float 30.0
    - String "true"/"false" → bool True/False (case-insensitive)
    - String "123" → int 123

    Args:
        value: Value to coerce
        target_type: Target type (float, bool, int, str)

    Returns:
        Coerced value

    Raises:
        ValueError: If coercion fails
    """
    if value is None:
        return None

    if isinstance(value, target_type) and not (target_type is int and isinstance(value, bool)):
        return value

    if target_type is bool:
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value)

    if target_type is float:
        return float(value)

    if target_type is int:
        if isinstance(value, str):
            return int(float(value))  # Handle "30.0" → 30
        return int(value)

    if target_type is str:
        return str(value)

    return value


def _is_critical_config(key: str) -> bool:
    """
    Check if a config key is critical (should raise ValueError on type coercion failure).

    Critical configs bound the reasoning call and the sandbox:
    - Timeouts (ollama_timeout_seconds, execution_timeout_seconds)
    - Limits (execution_max_rows, display_row_limit, max_upload_size_mb)
    - Sampling temperature

    Args:
        key: Config key name

    Returns:
        True if config is critical, False otherwise
    """
    critical_patterns = [
        "timeout",
        "max_rows",
        "limit",
        "size_mb",
        "temperature",
    ]
    return any(pattern in key.lower() for pattern in critical_patterns)


def _apply_env_overrides(config: dict[str, Any], env_mapping: dict[str, str]) -> dict[str, Any]:
    """
    Apply environment variable overrides to config.

    Args:
        config: Configuration dictionary
        env_mapping: Mapping of env var names to config keys

    Returns:
        Config with env var overrides applied

    Raises:
        ValueError: If an override for a critical key cannot be coerced
    """
    result = config.copy()

    for env_key, config_key in env_mapping.items():
        env_value = os.getenv(env_key)
        if env_value is None or config_key not in result:
            continue

        target_type = type(result[config_key])
        try:
            result[config_key] = _coerce_type(env_value, target_type)
        except (ValueError, TypeError) as e:
            if _is_critical_config(config_key):
                raise ValueError(
                    f"Type coercion failed for critical env var {env_key}={env_value}: "
                    f"expected {target_type.__name__}. Error: {e}"
                ) from e
            logger.warning(f"Failed to coerce env var {env_key}={env_value} to {target_type.__name__}: {e}")

    return result


def _read_yaml(config_path: Path | None) -> dict[str, Any]:
    """
    Read a YAML mapping, returning {} when the file is absent.

    Raises:
        ValueError: If the file exists but is not valid YAML or not a mapping
    """
    if config_path is None or not config_path.exists():
        logger.debug(f"Config file not found at {config_path}, using defaults")
        return {}

    try:
        with open(config_path) as f:
            yaml_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        logger.warning(f"Failed to load config from {config_path}: {e}, using defaults")
        return {}

    if not isinstance(yaml_data, dict):
        raise ValueError(f"Invalid YAML in {config_path}: expected a mapping, got {type(yaml_data).__name__}")
    return yaml_data


def _merge_typed(defaults: dict[str, Any], yaml_data: dict[str, Any]) -> dict[str, Any]:
    """Merge YAML values into defaults, coercing each to its default's type."""
    config = defaults.copy()
    for key, value in yaml_data.items():
        if key not in defaults:
            logger.debug(f"Ignoring unknown config key {key}")
            continue

        target_type = type(defaults[key])
        try:
            config[key] = _coerce_type(value, target_type)
        except (ValueError, TypeError) as e:
            # For critical configs, raise ValueError instead of warning
            if _is_critical_config(key):
                raise ValueError(
                    f"Type coercion failed for critical config {key}={value}: "
                    f"expected {target_type.__name__}, got {type(value).__name__}. "
                    f"Error: {e}"
                ) from e
            logger.warning(
                f"Failed to coerce YAML value {key}={value} to {target_type.__name__}: {e}, using default"
            )
    return config


@dataclass
class AnalystConfigDefaults:
    """Default values for the reasoning service and the sandbox."""

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    ollama_timeout_seconds: float = 120.0
    llm_temperature: float = 0.1
    execution_max_rows: int = 250_000
    execution_timeout_seconds: float = 10.0

    def to_dict(self) -> dict[str, Any]:
        """Convert dataclass to dictionary."""
        return asdict(self)


def load_analyst_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load analyst config from YAML with env var overrides.

    Precedence: Environment variable → YAML value → Default value

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        dict with keys:
        - ollama_base_url: str
        - ollama_model: str
        - ollama_timeout_seconds: float
        - llm_temperature: float
        - execution_max_rows: int
        - execution_timeout_seconds: float

    Raises:
        ValueError: If YAML is invalid or a critical value has the wrong type
    """
    defaults = AnalystConfigDefaults().to_dict()

    if config_path is None:
        config_path = _default_config_path("analyst.yaml")

    config = _merge_typed(defaults, _read_yaml(config_path))

    env_mapping = {
        "OLLAMA_BASE_URL": "ollama_base_url",
        "OLLAMA_MODEL": "ollama_model",
        "OLLAMA_TIMEOUT_SECONDS": "ollama_timeout_seconds",
        "LLM_TEMPERATURE": "llm_temperature",
        "EXECUTION_MAX_ROWS": "execution_max_rows",
        "EXECUTION_TIMEOUT_SECONDS": "execution_timeout_seconds",
    }
    config = _apply_env_overrides(config, env_mapping)

    for key in ("ollama_timeout_seconds", "execution_timeout_seconds", "execution_max_rows"):
        if config[key] <= 0:
            raise ValueError(f"Config {key} must be positive, got {config[key]}")

    return config


@dataclass
class UIConfigDefaults:
    """Default values for UI configuration."""

    log_level: str = "INFO"
    max_upload_size_mb: int = 100
    display_row_limit: int = 100
    preview_rows: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert dataclass to dictionary."""
        return asdict(self)


def load_ui_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load UI config from YAML with env var overrides.

    Precedence: Environment variable → YAML value → Default value

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        dict with keys:
        - log_level: str
        - max_upload_size_mb: int
        - display_row_limit: int
        - preview_rows: int

    Raises:
        ValueError: If YAML is invalid
    """
    defaults = UIConfigDefaults().to_dict()

    if config_path is None:
        config_path = _default_config_path("ui.yaml")

    config = _merge_typed(defaults, _read_yaml(config_path))

    env_mapping = {
        "LOG_LEVEL": "log_level",
        "MAX_UPLOAD_SIZE_MB": "max_upload_size_mb",
        "DISPLAY_ROW_LIMIT": "display_row_limit",
        "PREVIEW_ROWS": "preview_rows",
    }
    return _apply_env_overrides(config, env_mapping)


@dataclass
class LoggingConfigDefaults:
    """Default values for logging configuration."""

    root_level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    module_levels: dict[str, str] = field(default_factory=lambda: {"nl_data_analyst": "INFO"})
    reduce_noise: dict[str, str] = field(
        default_factory=lambda: {
            "streamlit": "WARNING",
            "urllib3": "WARNING",
            "matplotlib": "WARNING",
        }
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert dataclass to dictionary."""
        return {
            "root_level": self.root_level,
            "format": self.format,
            "module_levels": self.module_levels.copy(),
            "reduce_noise": self.reduce_noise.copy(),
        }


def load_logging_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load logging config from YAML.

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        dict with keys:
        - root_level: str
        - format: str
        - module_levels: dict[str, str]
        - reduce_noise: dict[str, str]

    Raises:
        ValueError: If YAML is invalid
    """
    config = LoggingConfigDefaults().to_dict()

    if config_path is None:
        config_path = _default_config_path("logging.yaml")

    for key, value in _read_yaml(config_path).items():
        if key not in config:
            continue
        if key in ("module_levels", "reduce_noise"):
            # Merge dicts
            if isinstance(value, dict):
                config[key].update({str(k): str(v) for k, v in value.items()})
        else:
            config[key] = str(value)

    return config
