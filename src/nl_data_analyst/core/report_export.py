"""
HTML report export for a single assistant turn.

The report is one self-contained HTML document: inline CSS, the chart embedded as
a base64 PNG rendered from the chart payload, the full result table (not capped
like the on-screen table), the summary, reasoning, executed code and audit log.
All text coming from the user, the reasoning service or the data is escaped.
"""

from __future__ import annotations

import base64
import html
import re
from datetime import datetime
from typing import Any

import structlog

from nl_data_analyst.core.analysis_response import AnalysisResponse
from nl_data_analyst.core.charts import render_chart_png
from nl_data_analyst.core.result_classifier import ClassifiedResult

logger = structlog.get_logger()

REPORT_FILENAME_TEMPLATE = "analysis_report_{timestamp}.html"

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_CODE_RE = re.compile(r"`([^`]+)`")

_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
       background: #f3f4f6; margin: 0; padding: 2rem; color: #374151; }
.report { max-width: 64rem; margin: 0 auto; background: #fff; border: 1px solid #e5e7eb;
          border-radius: 1rem; overflow: hidden; }
header { padding: 2rem; border-bottom: 1px solid #e5e7eb; }
header h1 { margin: 0 0 1rem 0; font-size: 1.5rem; color: #111827; }
.meta { display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; font-size: 0.875rem; color: #6b7280; }
.meta span { display: block; font-weight: 600; color: #374151; }
main { padding: 2rem; }
section { margin-bottom: 2.5rem; }
h2 { font-size: 1.125rem; color: #111827; }
.summary { background: #f9fafb; border: 1px solid #f3f4f6; border-radius: 0.75rem; padding: 1.5rem;
           line-height: 1.6; }
.summary code { background: #f3f4f6; color: #db2777; padding: 0.1rem 0.3rem; border-radius: 0.25rem; }
.reasoning { background: #eff6ff; border: 1px solid #dbeafe; border-radius: 0.75rem; padding: 1.5rem;
             color: #1e3a8a; font-size: 0.875rem; line-height: 1.6; white-space: pre-wrap; }
pre { background: #111827; color: #f3f4f6; padding: 1.5rem; border-radius: 0.75rem; overflow-x: auto; }
.table-wrap { overflow-x: auto; border: 1px solid #e5e7eb; border-radius: 0.75rem; }
table { width: 100%; border-collapse: collapse; font-size: 0.875rem; }
th { background: #f9fafb; text-align: left; padding: 0.5rem 1rem; color: #6b7280; white-space: nowrap; }
td { padding: 0.5rem 1rem; border-top: 1px solid #e5e7eb; white-space: nowrap; }
td.mono { font-family: monospace; font-size: 0.75rem; white-space: normal; word-break: break-all; }
.badge { padding: 0.1rem 0.5rem; border-radius: 999px; background: #dbeafe; color: #1e40af;
         font-size: 0.75rem; border: 1px solid #bfdbfe; }
.chart img { max-width: 100%; border: 1px solid #e5e7eb; border-radius: 0.75rem; }
.warning { background: #fffbeb; border: 1px solid #fde68a; color: #92400e; padding: 1rem;
           border-radius: 0.75rem; }
footer { background: #f9fafb; padding: 1.5rem; text-align: center; font-size: 0.75rem; color: #9ca3af;
         border-top: 1px solid #e5e7eb; }
"""


def _escape(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def format_summary(text: str) -> str:
    """
    Render the minimal markdown used in summaries as HTML.

    Only **bold**, `code` and newlines are supported; everything is escaped first.

    Examples:
        >>> format_summary("**Total:** `42`")
        '<strong>Total:</strong> <code>42</code>'
    """
    escaped = html.escape(text)
    escaped = _BOLD_RE.sub(r"<strong>\1</strong>", escaped)
    escaped = _CODE_RE.sub(r"<code>\1</code>", escaped)
    return escaped.replace("\n", "<br>")


def table_columns(rows: list[Any]) -> list[str]:
    """Union of row keys in first-seen order."""
    columns: list[str] = []
    for row in rows:
        if isinstance(row, dict):
            for key in row:
                if key not in columns:
                    columns.append(key)
    return columns


def _table_section(rows: list[Any]) -> str:
    columns = table_columns(rows)
    if not columns:
        return ""

    header = "".join(f"<th>{_escape(col)}</th>" for col in columns)
    body = "".join(
        "<tr>" + "".join(f"<td>{_escape(row.get(col))}</td>" for col in columns) + "</tr>"
        for row in rows
        if isinstance(row, dict)
    )
    return f"""
      <section>
        <h2>Results Data</h2>
        <div class="table-wrap">
          <table>
            <thead><tr>{header}</tr></thead>
            <tbody>{body}</tbody>
          </table>
        </div>
      </section>"""


def _chart_section(result: ClassifiedResult, chart_png: bytes | None = None) -> str:
    if result.chart is not None:
        if chart_png is None:
            chart_png = render_chart_png(result.chart)
        png = base64.b64encode(chart_png).decode("ascii")
        alt = _escape(result.chart.title or "Chart")
        return f"""
      <section class="chart">
        <h2>Visualization</h2>
        <img src="data:image/png;base64,{png}" alt="{alt}">
      </section>"""
    if result.chart_warning:
        return f"""
      <section>
        <h2>Visualization</h2>
        <div class="warning">{_escape(result.chart_warning)}</div>
      </section>"""
    return ""


def _audit_section(response: AnalysisResponse) -> str:
    rows = "".join(
        f"""
              <tr>
                <td>{entry.step}</td>
                <td><span class="badge">{_escape(entry.action_type.value)}</span></td>
                <td>{_escape(entry.description)}</td>
                <td class="mono">{_escape(entry.technical_detail)}</td>
              </tr>"""
        for entry in response.audit_log
    )
    return f"""
      <section>
        <h2>Audit Log</h2>
        <div class="table-wrap">
          <table>
            <thead><tr><th>Step</th><th>Action</th><th>Description</th><th>Technical Detail</th></tr></thead>
            <tbody>{rows}</tbody>
          </table>
        </div>
      </section>"""


def generate_html_report(
    query: str,
    response: AnalysisResponse,
    result: ClassifiedResult,
    generated_at: datetime | None = None,
    chart_png: bytes | None = None,
) -> str:
    """
    Build the self-contained HTML report for one assistant turn.

    Args:
        query: The question that produced the turn
        response: Structured response (summary, reasoning, code, audit log)
        result: Classified execution result (chart and/or table)
        generated_at: Timestamp shown in the report (defaults to now)
        chart_png: Already rendered chart image to embed (rendered here when None)

    Returns:
        Complete HTML document as a string
    """
    generated_at = generated_at or datetime.now()
    date = generated_at.strftime("%Y-%m-%d %H:%M:%S")

    table_section = _table_section(result.table_rows) if result.table_rows else ""

    document = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Analysis Report - {date}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="report">
    <header>
      <h1>Data Analysis Report</h1>
      <div class="meta">
        <div><span>Generated</span>{date}</div>
        <div><span>Query</span>&quot;{_escape(query)}&quot;</div>
      </div>
    </header>
    <main>
      <section>
        <h2>Executive Summary</h2>
        <div class="summary">{format_summary(response.final_summary)}</div>
      </section>
{_chart_section(result, chart_png)}
{table_section}
      <section>
        <h2>Reasoning Engine</h2>
        <div class="reasoning">{_escape(response.thought_process)}</div>
      </section>
      <section>
        <h2>Executed Code</h2>
        <pre><code>{_escape(response.code)}</code></pre>
      </section>
{_audit_section(response)}
    </main>
    <footer>Generated by Natural Language Data Analyst</footer>
  </div>
</body>
</html>
"""
    logger.info(
        "report_generated",
        has_chart=result.chart is not None,
        table_rows=len(result.table_rows) if result.table_rows else 0,
        audit_steps=len(response.audit_log),
    )
    return document


def report_filename(generated_at: datetime | None = None) -> str:
    """File name offered for the report download."""
    generated_at = generated_at or datetime.now()
    return REPORT_FILENAME_TEMPLATE.format(timestamp=int(generated_at.timestamp() * 1000))
