"""
Renderer Registry - Strategy pattern for assistant turn rendering.

A classified result can carry several payload parts (chart, chart warning,
table). Each part has its own renderer; render_result walks the parts present
in a fixed order so the chart always sits above its table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import pandas as pd
import streamlit as st

from nl_data_analyst.core.analysis_response import AnalysisResponse
from nl_data_analyst.core.charts import render_chart_png
from nl_data_analyst.core.conversation_manager import ChatMessage
from nl_data_analyst.core.report_export import generate_html_report, report_filename, table_columns
from nl_data_analyst.core.result_classifier import ChartPayload, ClassifiedResult
from nl_data_analyst.ui import messages
from nl_data_analyst.ui.config import DISPLAY_ROW_LIMIT

# Order in which payload parts are rendered
PART_ORDER = ("chart", "chart_warning", "table")

# Session-state entry holding rendered chart PNGs and reports, keyed by message id.
# Turns are immutable, so an entry never goes stale.
ARTIFACT_CACHE_KEY = "turn_artifacts"


@runtime_checkable
class Renderer(Protocol):
    """Protocol for result part renderers."""

    def render(self, result: ClassifiedResult, *, key: str) -> None:
        """Render one payload part to the UI."""
        ...


# Global registry for module-level decorator
RENDERERS: dict[str, Renderer] = {}


def register(part: str):
    """Decorator to register a renderer for a payload part in global registry."""

    def decorator(renderer_class: type) -> type:
        RENDERERS[part] = renderer_class()
        return renderer_class

    return decorator


def present_parts(result: ClassifiedResult) -> list[str]:
    """Payload parts carried by a result, in render order."""
    present = {
        "chart": result.chart is not None,
        "chart_warning": result.chart is None and bool(result.chart_warning),
        "table": bool(result.table_rows),
    }
    return [part for part in PART_ORDER if present[part]]


def render_result(result: ClassifiedResult, *, key: str) -> None:
    """Render every payload part of a result using the global registry."""
    for part in present_parts(result):
        renderer = RENDERERS.get(part)
        if not renderer:
            raise ValueError(f"Unknown result part: {part}")
        renderer.render(result, key=key)


def _artifact_cache() -> dict[str, Any]:
    if ARTIFACT_CACHE_KEY not in st.session_state:
        st.session_state[ARTIFACT_CACHE_KEY] = {}
    return st.session_state[ARTIFACT_CACHE_KEY]


def cached_chart_png(chart: ChartPayload, *, key: str) -> bytes:
    """Render a turn's chart once; later reruns reuse the PNG."""
    cache = _artifact_cache()
    cache_key = f"chart_png_{key}"
    if cache_key not in cache:
        cache[cache_key] = render_chart_png(chart)
    return cache[cache_key]


def cached_report(message: ChatMessage, question: str | None) -> tuple[str, str]:
    """
    Build a turn's HTML report once.

    Returns:
        (report HTML, download file name)
    """
    cache = _artifact_cache()
    cache_key = f"report_{message.id}"
    if cache_key not in cache:
        turn = message.turn
        assert turn is not None
        chart_png = cached_chart_png(turn.result.chart, key=message.id) if turn.result.chart is not None else None
        generated_at = datetime.now()
        cache[cache_key] = (
            generate_html_report(
                question or "", turn.response, turn.result, generated_at=generated_at, chart_png=chart_png
            ),
            report_filename(generated_at),
        )
    return cache[cache_key]


def clear_artifact_cache() -> None:
    """Drop cached charts and reports (conversation cleared or dataset replaced)."""
    st.session_state.pop(ARTIFACT_CACHE_KEY, None)


# PANDAS EXCEPTION: Required for Streamlit st.dataframe display
def table_frame(rows: list[Any], limit: int = DISPLAY_ROW_LIMIT) -> tuple[pd.DataFrame, bool]:
    """
    Build the on-screen table for result rows.

    Rows that are not dicts are shown under a single "value" column.

    Args:
        rows: Table rows from the classified result
        limit: Maximum rows to display

    Returns:
        (DataFrame of at most `limit` rows, whether rows were cut off)
    """
    shown = rows[:limit]
    normalised = [row if isinstance(row, dict) else {"value": row} for row in shown]
    columns = table_columns(normalised)
    frame = pd.DataFrame(normalised, columns=columns)
    # Mixed types in one column break Arrow serialization in st.dataframe
    for column in frame.columns:
        if frame[column].dropna().map(type).nunique() > 1:
            frame[column] = frame[column].map(lambda v: None if v is None else str(v))
    return frame, len(rows) > limit


# =============================================================================
# Concrete Renderer Implementations
# =============================================================================


@register("chart")
class ChartRenderer:
    """Renders the chart and offers it as a PNG download."""

    def render(self, result: ClassifiedResult, *, key: str) -> None:
        chart = result.chart
        assert chart is not None
        png = cached_chart_png(chart, key=key)
        st.image(png)

        st.download_button(
            messages.DOWNLOAD_CHART,
            data=png,
            file_name=f"{chart.title or 'chart'}-{int(datetime.now().timestamp() * 1000)}.png",
            mime="image/png",
            key=f"chart_png_{key}",
        )


@register("chart_warning")
class ChartWarningRenderer:
    """Renders the degraded state of a chart without usable data."""

    def render(self, result: ClassifiedResult, *, key: str) -> None:
        st.warning(result.chart_warning)


@register("table")
class TableRenderer:
    """Renders result rows, capped at DISPLAY_ROW_LIMIT."""

    def render(self, result: ClassifiedResult, *, key: str) -> None:
        rows = result.table_rows or []
        frame, truncated = table_frame(rows)
        st.dataframe(frame, use_container_width=True, hide_index=True)
        if truncated:
            st.caption(messages.TABLE_TRUNCATED.format(shown=len(frame), total=len(rows)))


def render_audit_log(response: AnalysisResponse) -> None:
    """Render the audit log as a compact table."""
    if not response.audit_log:
        return
    frame = pd.DataFrame(
        [
            {
                "Step": entry.step,
                "Action": entry.action_type.value,
                "Description": entry.description,
                "Technical detail": entry.technical_detail,
            }
            for entry in response.audit_log
        ]
    )
    st.dataframe(frame, use_container_width=True, hide_index=True)


def render_message(message: ChatMessage, *, question: str | None = None) -> None:
    """
    Render one chat message.

    User messages and failed turns are plain text. Assistant turns show the
    summary, the result payload, collapsible reasoning/code/audit sections and
    the report download.

    Args:
        message: Message from the session log
        question: The question that produced an assistant turn (for the report)
    """
    with st.chat_message(message.role):
        turn = message.turn
        if turn is None:
            if message.error:
                st.error(message.text)
            else:
                st.markdown(message.text)
            return

        st.markdown(turn.response.final_summary)
        render_result(turn.result, key=message.id)

        if turn.response.thought_process:
            with st.expander(messages.REASONING_HEADER):
                st.markdown(turn.response.thought_process)
        with st.expander(messages.CODE_HEADER):
            st.code(turn.response.code, language="python")
        if turn.response.audit_log:
            with st.expander(messages.AUDIT_HEADER):
                render_audit_log(turn.response)

        report_html, report_name = cached_report(message, question)
        st.download_button(
            messages.DOWNLOAD_REPORT,
            data=report_html,
            file_name=report_name,
            mime="text/html",
            key=f"report_{message.id}",
        )
