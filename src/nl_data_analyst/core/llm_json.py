"""
Centralized LLM JSON parsing and validation module.

This module provides a single choke point for parsing the reasoning service's
structured responses, preventing duplicated brittle parsing logic.

Key functions:
- strip_code_fences: Remove a markdown fence wrapped around the JSON document
- parse_json_response: Parse raw LLM text into Python dict/list
- validate_shape: Validate parsed payload against known schemas

Design principles:
- Graceful degradation (return None on failures, never crash)
- Standardized error logging
- Schema validation with clear error messages
"""

import json
import re
from dataclasses import dataclass
from typing import Any, cast

import structlog

logger = structlog.get_logger()

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_EMBEDDED_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n(.*?)\n?\s*```", re.DOTALL)


@dataclass
class ValidationResult:
    """Result of schema validation."""

    valid: bool
    errors: list[str]


def strip_code_fences(raw: str) -> str:
    """
    Remove a markdown code fence surrounding the response, if present.

    Examples:
        >>> strip_code_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
        >>> strip_code_fences('{"a": 1}')
        '{"a": 1}'
    """
    match = _FENCE_RE.match(raw)
    if match:
        return match.group(1).strip()
    # Fenced block after a preamble line
    embedded = _EMBEDDED_FENCE_RE.search(raw)
    if embedded:
        return embedded.group(1).strip()
    return raw.strip()


def parse_json_response(raw: str | None) -> dict[str, Any] | list[Any] | None:
    """
    Parse raw LLM response into Python dict or list.

    Markdown fences (```json ... ```) are stripped before parsing.

    Args:
        raw: Raw text from LLM response (may be None, empty, or malformed)

    Returns:
        Parsed dict/list if valid JSON, None otherwise

    Examples:
        >>> parse_json_response('{"code": "return 1"}')
        {'code': 'return 1'}
        >>> parse_json_response('not json')
        None
        >>> parse_json_response(None)
        None
    """
    if raw is None or raw.strip() == "":
        logger.debug("llm_json_parse_empty", raw=raw)
        return None

    text = strip_code_fences(raw)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(
            "llm_json_parse_failed",
            error=str(e),
            raw_length=len(raw),
            raw_preview=raw[:100] if len(raw) > 100 else raw,
        )
        return None

    if not isinstance(parsed, dict | list):
        logger.warning("llm_json_parse_not_container", parsed_type=type(parsed).__name__)
        return None

    logger.debug("llm_json_parse_success", length=len(text))
    return cast(dict[str, Any] | list[Any], parsed)


# Schema definitions
# Each schema defines required fields and their expected types
_SCHEMAS: dict[str, dict[str, Any]] = {
    "analysis_response": {
        "required_fields": ["code"],
        "optional_fields": ["thought_process", "audit_log", "final_summary"],
        "field_types": {
            "thought_process": str,
            "code": str,
            "audit_log": list,
            "final_summary": str,
        },
    },
    "audit_entry": {
        "required_fields": ["step", "action_type", "description"],
        "optional_fields": ["technical_detail"],
        "field_types": {
            "step": int,
            "action_type": str,
            "description": str,
            "technical_detail": str,
        },
    },
}


def validate_shape(payload: dict[str, Any] | list[Any] | None, schema_name: str) -> ValidationResult:
    """
    Validate parsed JSON payload against expected schema.

    Args:
        payload: Parsed JSON (dict or list)
        schema_name: Name of schema to validate against (e.g., "analysis_response")

    Returns:
        ValidationResult with valid flag and error list

    Examples:
        >>> validate_shape({"code": "return 1"}, "analysis_response").valid
        True
        >>> result = validate_shape({"final_summary": "hi"}, "analysis_response")
        >>> result.valid
        False
    """
    if payload is None:
        return ValidationResult(valid=False, errors=["Payload is None"])

    if schema_name not in _SCHEMAS:
        return ValidationResult(
            valid=False,
            errors=[f"Unknown schema: {schema_name}. Available schemas: {list(_SCHEMAS.keys())}"],
        )

    if not isinstance(payload, dict):
        errors = [f"Expected dict for schema '{schema_name}', got {type(payload).__name__}"]
        logger.warning("llm_json_validation_failed", schema=schema_name, errors=errors)
        return ValidationResult(valid=False, errors=errors)

    schema = _SCHEMAS[schema_name]
    errors: list[str] = []

    for field in schema.get("required_fields", []):
        if field not in payload:
            errors.append(f"Missing required field: {field}")

    for field, expected_type in schema.get("field_types", {}).items():
        if field in payload and not isinstance(payload[field], expected_type):
            errors.append(
                f"Field '{field}' has wrong type: expected {expected_type.__name__}, got {type(payload[field]).__name__}"
            )

    if errors:
        logger.warning(
            "llm_json_validation_failed",
            schema=schema_name,
            errors=errors,
            payload_keys=list(payload.keys()),
        )
        return ValidationResult(valid=False, errors=errors)

    logger.debug("llm_json_validation_success", schema=schema_name)
    return ValidationResult(valid=True, errors=[])
