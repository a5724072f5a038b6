"""Tests for the Streamlit entry point module."""

import importlib
from unittest.mock import patch


class TestAppLogging:
    """Logging is configured from the UI settings at import."""

    def test_app_configures_logging_with_ui_log_level(self, monkeypatch):
        """Test that LOG_LEVEL from the UI config reaches configure_logging."""
        # Arrange: Override the UI log level and reload the config constants
        import nl_data_analyst.ui.config as config_module

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        importlib.reload(config_module)

        try:
            # Act: Import (or re-import) the app with configure_logging patched
            with patch("nl_data_analyst.ui.logging_config.configure_logging") as mock_configure:
                import nl_data_analyst.ui.app as app_module

                importlib.reload(app_module)

            # Assert
            mock_configure.assert_called_with(level="DEBUG")
        finally:
            monkeypatch.delenv("LOG_LEVEL")
            importlib.reload(config_module)
