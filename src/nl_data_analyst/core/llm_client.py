"""
LLM Client for the reasoning service (local Ollama).

The client is constructed explicitly from configuration and injected into the
analysis session. Only the schema description and the question are sent;
dataset rows stay in the session.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import requests
import structlog

logger = structlog.get_logger()


@runtime_checkable
class ReasoningClient(Protocol):
    """Seam for anything that turns a prompt into generated text."""

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = True,
    ) -> str | None:
        """Return generated text, or None on error/timeout."""
        ...


class OllamaClient:
    """
    Client for local Ollama LLM service.

    Provides connection handling, model management, and JSON-mode generation.
    """

    def __init__(
        self,
        model: str = "llama3.1:8b",
        base_url: str = "http://localhost:11434",
        timeout: float = 120.0,
        temperature: float = 0.1,
    ):
        """
        Initialize Ollama client.

        Args:
            model: Model name (default: llama3.1:8b)
            base_url: Ollama service URL (default: http://localhost:11434)
            timeout: Request timeout in seconds; expiry is treated as a failed call
            temperature: Sampling temperature (low for deterministic code)
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self._connection_checked = False
        self._is_available = False

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> OllamaClient:
        """Build a client from the analyst config dict (see config_loader.load_analyst_config)."""
        return cls(
            model=config["ollama_model"],
            base_url=config["ollama_base_url"],
            timeout=config["ollama_timeout_seconds"],
            temperature=config["llm_temperature"],
        )

    def is_available(self) -> bool:
        """
        Check if Ollama service is running.

        Returns:
            True if Ollama is available, False otherwise
        """
        if self._connection_checked:
            return self._is_available

        self._is_available = self._check_connection()
        self._connection_checked = True
        return self._is_available

    def _check_connection(self) -> bool:
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=min(self.timeout, 5.0))
            return response.status_code == 200
        except requests.RequestException as e:
            logger.warning(
                "ollama_connection_failed",
                error=str(e),
                base_url=self.base_url,
            )
            return False

    def is_model_available(self, model: str | None = None) -> bool:
        """
        Check if model is downloaded and available.

        Args:
            model: Model name to check (defaults to the configured model)

        Returns:
            True if model is available, False otherwise
        """
        model = model or self.model
        if not self.is_available():
            return False

        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=min(self.timeout, 5.0))
            if response.status_code != 200:
                return False

            models_data = response.json()
            available_models = [m["name"] for m in models_data.get("models", [])]
            return model in available_models

        except (requests.RequestException, ValueError, KeyError) as e:
            logger.warning(
                "ollama_model_check_failed",
                error=str(e),
                model=model,
            )
            return False

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = True,
    ) -> str | None:
        """
        Generate a response.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            json_mode: Enable JSON mode (default: True)

        Returns:
            Generated text, or None on error/timeout
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if system_prompt:
            payload["system"] = system_prompt
        if json_mode:
            payload["format"] = "json"

        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout,
            )

            if response.status_code != 200:
                logger.warning(
                    "ollama_generate_failed",
                    status_code=response.status_code,
                    model=self.model,
                )
                return None

            result = response.json()
            return result.get("response")

        except requests.Timeout:
            logger.warning(
                "ollama_timeout",
                timeout_seconds=self.timeout,
                model=self.model,
            )
            return None
        except (requests.RequestException, ValueError) as e:
            logger.warning(
                "ollama_generate_error",
                error=str(e),
                model=self.model,
            )
            return None
