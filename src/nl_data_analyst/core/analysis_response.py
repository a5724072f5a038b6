"""
AnalysisResponse - Typed contract for the reasoning service's answer to one question.

The wire format is snake_case JSON:
    {
      "thought_process": "...",
      "code": "...",
      "audit_log": [{"step": 1, "action_type": "FILTER", "description": "...",
                     "technical_detail": "..."}],
      "final_summary": "..."
    }
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import structlog

from nl_data_analyst.core.errors import GenerationError
from nl_data_analyst.core.llm_json import validate_shape

logger = structlog.get_logger()

EXECUTION_NOTE_TEMPLATE = "\n\n**Note:** I encountered an error while calculating the exact numbers: {message}"


class ActionType(Enum):
    """Kind of step recorded in the audit log."""

    FILTER = "FILTER"
    IMPUTATION = "IMPUTATION"
    CALCULATION = "CALCULATION"
    AGGREGATION = "AGGREGATION"
    VISUALIZATION = "VISUALIZATION"
    ANALYSIS = "ANALYSIS"

    @classmethod
    def parse(cls, value: Any) -> ActionType:
        """Parse a wire value, falling back to ANALYSIS for anything unrecognised."""
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.ANALYSIS


@dataclass(frozen=True)
class AuditEntry:
    """One logged reasoning step. Display only."""

    step: int
    action_type: ActionType
    description: str
    technical_detail: str = ""


@dataclass(frozen=True)
class AnalysisResponse:
    """
    Immutable structured response for one question.

    Attributes:
        thought_process: Reasoning shown before the code
        code: Python function body over `dataset`, ending with a return
        audit_log: Ordered audit entries
        final_summary: Natural-language answer (markdown)
    """

    thought_process: str
    code: str
    audit_log: tuple[AuditEntry, ...]
    final_summary: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | list[Any] | None) -> AnalysisResponse:
        """
        Build an AnalysisResponse from a parsed JSON payload.

        Missing text fields default to empty strings; malformed audit entries are
        dropped. Steps are renumbered when the service returns non-positive or
        non-increasing values.

        Raises:
            GenerationError: If the payload is not an object or has no code string
        """
        validation = validate_shape(payload, "analysis_response")
        if not isinstance(payload, dict) or not isinstance(payload.get("code"), str):
            raise GenerationError(
                "Reasoning engine output is missing the analysis code.",
                reason="invalid_shape",
            )
        if not validation.valid:
            logger.info("analysis_response_partially_valid", errors=validation.errors)

        return cls(
            thought_process=_text(payload.get("thought_process")),
            code=payload["code"],
            audit_log=_parse_audit_log(payload.get("audit_log")),
            final_summary=_text(payload.get("final_summary")),
        )

    def with_execution_note(self, message: str) -> AnalysisResponse:
        """Return a copy whose summary carries the execution error note."""
        return replace(self, final_summary=self.final_summary + EXECUTION_NOTE_TEMPLATE.format(message=message))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _parse_audit_log(raw: Any) -> tuple[AuditEntry, ...]:
    if not isinstance(raw, list):
        return ()

    entries: list[AuditEntry] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or "description" not in item:
            logger.debug("audit_entry_dropped", index=idx)
            continue
        if not validate_shape(item, "audit_entry").valid:
            logger.debug("audit_entry_coerced", index=idx)
        try:
            step = int(item.get("step", 0))
        except (TypeError, ValueError):
            step = 0
        entries.append(
            AuditEntry(
                step=step,
                action_type=ActionType.parse(item.get("action_type")),
                description=_text(item.get("description")),
                technical_detail=_text(item.get("technical_detail")),
            )
        )

    steps = [e.step for e in entries]
    monotonic = all(s > 0 for s in steps) and all(a < b for a, b in zip(steps, steps[1:]))
    if not monotonic:
        entries = [replace(entry, step=position) for position, entry in enumerate(entries, start=1)]
    return tuple(entries)
