"""
Analysis request formatting and the reasoning service call.

Builds the prompt (schema description + user question) and the system
instruction that defines the generated-code contract, then turns the service's
raw text into an AnalysisResponse.

The generated code contract:
- Python statements forming the body of a function whose only parameter is
  `dataset` (a list of dicts, one per row)
- must end with an explicit `return`
- builtins only; no imports, files or network
"""

import time

import structlog

from nl_data_analyst.core.analysis_response import AnalysisResponse
from nl_data_analyst.core.errors import GenerationError
from nl_data_analyst.core.llm_client import ReasoningClient
from nl_data_analyst.core.llm_json import parse_json_response
from nl_data_analyst.core.schema import SchemaSummary, describe_schema

logger = structlog.get_logger()

ANALYSIS_SYSTEM_PROMPT = """You are an Expert Data Analyst and Audit Logger.
Your goal is to write Python code that answers the user's question about their dataset, \
while maintaining a strict audit log.

### DATA CONTEXT
You will receive the dataset schema (columns, types, samples).
The actual data is available to your code as a variable named `dataset`.
`dataset` is a list of dicts, where each dict is one row keyed by column name.

### RULES:
1. **No Hallucinations:** Only use column names provided in the schema.
2. **Atomic Steps:** Break complex requests into logical steps.
3. **Python Execution:** Write valid Python statements that process the `dataset` list.
   - Your code is the body of a function. It MUST end with a `return` statement.
   - Use only Python builtins (len, sum, min, max, sorted, round, ...). Do NOT import modules.
     Do NOT read files, print, or access the network.
   - Format text with f-strings; `str.format` is not available.
   - If the result is a number or string, return it directly.
   - If the result is a table/list, return a list of dicts.
   - If the user asks for a plot/chart, OR if the data represents a ranking, distribution, \
comparison, or trend that would be better visualized, return a chart configuration dict:
     `return {"chartType": "bar" | "line" | "scatter" | "pie", "xKey": "columnName", \
"dataKeys": ["col1", "col2"], "data": processed_rows, "title": "Chart Title"}`
   - IMPORTANT: You MUST include the `data` key in the returned dict.
   - Any calculated metrics (like percentages, totals) should be included as keys in the \
`data` rows so they appear in the results table, even if not used in the chart.
4. **Structured Output:** You must output your response in valid JSON format.

### OUTPUT SCHEMA:
{
  "thought_process": "Brief explanation of the logic before writing code.",
  "code": "The Python code string. It must end with a return statement.",
  "audit_log": [
    {
      "step": 1,
      "action_type": "FILTER | IMPUTATION | CALCULATION | AGGREGATION | VISUALIZATION | ANALYSIS",
      "description": "Human-readable description.",
      "technical_detail": "e.g., 'Filtered dataset where Age > 20'"
    }
  ],
  "final_summary": "A natural language answer to the user, summarizing the findings."
}
"""


def build_analysis_prompt(schema: SchemaSummary, query: str) -> str:
    """
    Build the user prompt sent to the reasoning service.

    Args:
        schema: Schema snapshot of the loaded dataset
        query: User question

    Returns:
        Prompt text containing the schema description and the quoted question
    """
    return f'{describe_schema(schema)}\n\nUser Query: "{query}"\n\nGenerate the analysis JSON.'


def request_analysis(client: ReasoningClient, schema: SchemaSummary, query: str) -> AnalysisResponse:
    """
    Ask the reasoning service for an analysis of one question.

    Args:
        client: Injected reasoning client
        schema: Schema snapshot of the loaded dataset
        query: User question

    Returns:
        Parsed AnalysisResponse

    Raises:
        GenerationError: If the call fails, times out, or the JSON is unusable
    """
    start_time = time.perf_counter()
    try:
        raw_text = client.generate(
            prompt=build_analysis_prompt(schema, query),
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            json_mode=True,
        )
    except Exception as e:
        logger.error("analysis_request_client_error", error_type=type(e).__name__, error=str(e))
        raise GenerationError("Failed to generate analysis.", reason="client_error") from e
    latency_ms = (time.perf_counter() - start_time) * 1000

    if raw_text is None:
        logger.warning("analysis_request_unavailable", latency_ms=latency_ms)
        raise GenerationError("Failed to generate analysis.", reason="unavailable")

    payload = parse_json_response(raw_text)
    if payload is None:
        logger.warning(
            "analysis_request_json_parse_failed",
            latency_ms=latency_ms,
            raw_length=len(raw_text),
        )
        raise GenerationError("Failed to parse reasoning engine output.", reason="json_parse_failed")

    response = AnalysisResponse.from_payload(payload)
    logger.info(
        "analysis_request_success",
        latency_ms=latency_ms,
        code_length=len(response.code),
        audit_steps=len(response.audit_log),
    )
    return response
