"""
Centralized logging configuration for Streamlit UI.

Configure once in app.py entry point, not per rerun.
"""

import logging
import sys

from nl_data_analyst.core.config_loader import load_logging_config


def configure_logging(level: int | str | None = None) -> None:
    """
    Configure Python logging for the entire application.

    Truly idempotent: safe to call multiple times without side effects.
    Checks if root logger already has handlers before configuring.
    No force=True to avoid Streamlit handler issues.

    Args:
        level: Root level override; defaults to root_level from config/logging.yaml
    """
    root_logger = logging.getLogger()

    # Only configure if no handlers exist (truly idempotent)
    if root_logger.handlers:
        return

    config = load_logging_config()

    logging.basicConfig(
        level=level if level is not None else config["root_level"],
        format=config["format"],
        handlers=[logging.StreamHandler(sys.stdout)],
        # No force=True - rely on idempotency check above
    )

    # Set specific loggers
    for name, module_level in config["module_levels"].items():
        logging.getLogger(name).setLevel(module_level)

    # Reduce noise
    for name, noisy_level in config["reduce_noise"].items():
        logging.getLogger(name).setLevel(noisy_level)
