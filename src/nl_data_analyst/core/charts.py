"""
Chart rendering for classified results.

Builds matplotlib figures from a ChartPayload. Used by the Streamlit renderers
(st.pyplot), the PNG download and the HTML report, so all three show the same
picture.
"""

from __future__ import annotations

import io

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import structlog  # noqa: E402

from nl_data_analyst.core.result_classifier import ChartPayload  # noqa: E402

logger = structlog.get_logger()

SERIES_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#6366f1"]
LABEL_MAX_LENGTH = 15


def truncate_label(value: object) -> str:
    """
    Shorten long category labels for axis ticks.

    Examples:
        >>> truncate_label("Short")
        'Short'
        >>> truncate_label("A very long category name")
        'A very long cat...'
    """
    text = "" if value is None else str(value)
    if len(text) > LABEL_MAX_LENGTH:
        return f"{text[:LABEL_MAX_LENGTH]}..."
    return text


# PANDAS EXCEPTION: DataFrame keeps mixed per-row keys aligned for plotting
def chart_frame(chart: ChartPayload) -> pd.DataFrame:
    """Rows of a chart payload as a DataFrame (non-dict rows are dropped)."""
    rows = [row for row in chart.data if isinstance(row, dict)]
    return pd.DataFrame(rows)


def _series(frame: pd.DataFrame, key: str) -> pd.Series:
    if key not in frame.columns:
        return pd.Series([float("nan")] * len(frame), index=frame.index)
    return pd.to_numeric(frame[key], errors="coerce")


def _categories(frame: pd.DataFrame, chart: ChartPayload) -> list[str]:
    if chart.x_key and chart.x_key in frame.columns:
        return [truncate_label(v) for v in frame[chart.x_key]]
    return [str(i + 1) for i in range(len(frame))]


def build_chart_figure(chart: ChartPayload) -> plt.Figure:
    """
    Create a matplotlib figure for a chart payload.

    Bar and line charts plot every data key against the x key as categories;
    scatter plots numeric x against each data key; pie uses the first data key
    as slice sizes and the x key as labels. Unknown types were already
    normalised to bar by the classifier.

    Args:
        chart: Classified chart payload

    Returns:
        Matplotlib figure (caller closes it)
    """
    frame = chart_frame(chart)
    fig, ax = plt.subplots(figsize=(10, 6))

    if frame.empty:
        ax.text(0.5, 0.5, "No data to plot", ha="center", va="center")
        ax.set_axis_off()
        logger.warning("chart_render_empty", chart_type=chart.chart_type)
        return fig

    data_keys = list(chart.data_keys)

    if chart.chart_type == "pie":
        values = _series(frame, data_keys[0]).fillna(0) if data_keys else pd.Series(dtype=float)
        labels = _categories(frame, chart)
        positive = values > 0
        if positive.any():
            ax.pie(
                values[positive],
                labels=[label for label, keep in zip(labels, positive) if keep],
                colors=[SERIES_COLORS[i % len(SERIES_COLORS)] for i in range(int(positive.sum()))],
                autopct="%1.0f%%",
            )
            ax.axis("equal")
        else:
            ax.text(0.5, 0.5, "No positive values to plot", ha="center", va="center")
            ax.set_axis_off()

    elif chart.chart_type == "scatter":
        x_values = _series(frame, chart.x_key) if chart.x_key else pd.Series(range(len(frame)))
        for i, key in enumerate(data_keys):
            ax.scatter(x_values, _series(frame, key), label=key, color=SERIES_COLORS[i % len(SERIES_COLORS)])
        ax.set_xlabel(chart.x_key or "")
        ax.grid(True, alpha=0.3)

    else:
        categories = _categories(frame, chart)
        positions = list(range(len(categories)))
        if chart.chart_type == "line":
            for i, key in enumerate(data_keys):
                ax.plot(
                    positions,
                    _series(frame, key),
                    label=key,
                    linewidth=2,
                    marker="o",
                    color=SERIES_COLORS[i % len(SERIES_COLORS)],
                )
        else:
            width = 0.8 / max(len(data_keys), 1)
            for i, key in enumerate(data_keys):
                offset = (i - (len(data_keys) - 1) / 2) * width
                ax.bar(
                    [p + offset for p in positions],
                    _series(frame, key).fillna(0),
                    width=width,
                    label=key,
                    color=SERIES_COLORS[i % len(SERIES_COLORS)],
                )
        ax.set_xticks(positions)
        ax.set_xticklabels(categories, rotation=45, ha="right")
        ax.set_xlabel(chart.x_key or "")
        ax.grid(True, axis="y", alpha=0.3)

    if chart.chart_type != "pie" and data_keys:
        ax.legend()
    if chart.title:
        ax.set_title(chart.title, fontsize=14, fontweight="bold")

    fig.tight_layout()
    return fig


def figure_to_png_bytes(fig: plt.Figure) -> bytes:
    """Serialize a figure to PNG bytes (white background)."""
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=100, facecolor="white")
    return buffer.getvalue()


def render_chart_png(chart: ChartPayload) -> bytes:
    """Render a chart payload straight to PNG bytes and release the figure."""
    fig = build_chart_figure(chart)
    try:
        return figure_to_png_bytes(fig)
    finally:
        plt.close(fig)
