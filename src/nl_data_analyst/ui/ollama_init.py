"""
Reasoning service initialization for app startup.

Checks that the local Ollama server is reachable and the configured model is
pulled, and provides setup instructions if not. The app warns but keeps running
when the service is down.
"""

import structlog

from nl_data_analyst.core.llm_client import OllamaClient

logger = structlog.get_logger()


def initialize_reasoning_service(client: OllamaClient) -> dict[str, bool | str]:
    """
    Verify the reasoning service at app startup.

    Args:
        client: Configured Ollama client

    Returns:
        Dictionary with status information:
        - running: bool - Whether the Ollama service answers
        - model_ready: bool - Whether the configured model is pulled
        - ready: bool - Whether questions can be answered
        - message: str - Status message for display
    """
    running = client.is_available()
    model_ready = running and client.is_model_available()

    result: dict[str, bool | str] = {
        "running": running,
        "model_ready": model_ready,
        "ready": running and model_ready,
        "message": "",
    }

    if result["ready"]:
        result["message"] = f"✓ Reasoning service ready ({client.model})"
        logger.info("reasoning_service_initialized", model=client.model, base_url=client.base_url)
    elif not running:
        result["message"] = f"⚠ Ollama service not reachable at {client.base_url}. Start with: ollama serve"
        logger.info("reasoning_service_not_running", base_url=client.base_url)
    else:
        result["message"] = f"⚠ Ollama is running but model '{client.model}' is missing. Download it with: ollama pull {client.model}"
        logger.info("reasoning_service_model_missing", model=client.model)

    return result
