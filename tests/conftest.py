"""
Pytest configuration and fixtures for nl_data_analyst tests.
"""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nl_data_analyst.core.csv_ingest import ParsedDataset, parse_csv  # noqa: E402


@pytest.fixture(scope="session")
def project_root():
    """Return project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_csv_text() -> str:
    """Small CSV with numbers, strings and one missing value."""
    return "name,age,city,score\nAlice,30,Paris,88.5\nBob,25,Berlin,\nCarol,41,Paris,92\n"


@pytest.fixture
def sample_dataset(sample_csv_text) -> ParsedDataset:
    """ParsedDataset built from sample_csv_text."""
    return parse_csv(sample_csv_text)


@pytest.fixture
def people_dataset() -> ParsedDataset:
    """Two-row dataset used by the end-to-end scenarios."""
    return parse_csv("name,age\nA,30\nB,25\n")


@pytest.fixture
def make_analysis_payload():
    """Factory for the reasoning service's JSON answer."""

    def _make(
        code: str = "return len(dataset)",
        thought_process: str = "Count the rows.",
        final_summary: str = "There are **3** rows.",
        audit_log: list | None = None,
    ) -> dict:
        return {
            "thought_process": thought_process,
            "code": code,
            "audit_log": audit_log
            if audit_log is not None
            else [
                {
                    "step": 1,
                    "action_type": "CALCULATION",
                    "description": "Counted rows",
                    "technical_detail": "len(dataset)",
                }
            ],
            "final_summary": final_summary,
        }

    return _make


@pytest.fixture
def mock_reasoning_client(make_analysis_payload):
    """Mock reasoning client for testing without an Ollama service."""
    client = MagicMock()
    client.is_available.return_value = True
    client.is_model_available.return_value = True
    client.generate.return_value = json.dumps(make_analysis_payload())
    return client


@pytest.fixture
def reasoning_client_returning():
    """Factory for a mock reasoning client that answers with a given payload."""

    def _make(payload: dict | str | None) -> MagicMock:
        client = MagicMock()
        client.generate.return_value = payload if payload is None or isinstance(payload, str) else json.dumps(payload)
        return client

    return _make
