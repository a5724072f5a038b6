"""
UI Configuration Module.

Settings for the Streamlit UI, resolved once from config/ui.yaml with
environment variable overrides (see core.config_loader.load_ui_config).
"""

from nl_data_analyst.core.config_loader import load_ui_config

_ui_config = load_ui_config()

# Root log level passed to configure_logging() by app.py
LOG_LEVEL: str = _ui_config["log_level"]

# Upload settings
MAX_UPLOAD_SIZE_MB: int = _ui_config["max_upload_size_mb"]

# Rows shown per result table on screen (the HTML report keeps all rows)
DISPLAY_ROW_LIMIT: int = _ui_config["display_row_limit"]

# Rows shown in the dataset preview
PREVIEW_ROWS: int = _ui_config["preview_rows"]
