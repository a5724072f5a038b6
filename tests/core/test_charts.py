"""
Tests for chart figure rendering.
"""

import matplotlib.pyplot as plt
import pytest

from nl_data_analyst.core.charts import build_chart_figure, render_chart_png, truncate_label
from nl_data_analyst.core.result_classifier import ChartPayload

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _chart(chart_type: str, **overrides) -> ChartPayload:
    fields = {
        "chart_type": chart_type,
        "x_key": "name",
        "data_keys": ("age", "score"),
        "title": "People",
        "data": [
            {"name": "Alice", "age": 30, "score": 88.5},
            {"name": "A rather long participant name", "age": 25, "score": "n/a"},
        ],
    }
    fields.update(overrides)
    return ChartPayload(**fields)


class TestTruncateLabel:
    """Axis label shortening."""

    def test_truncate_label_keeps_short_and_cuts_long(self):
        """Test that long axis labels are cut with an ellipsis."""
        # Act & Assert
        assert truncate_label("Alice") == "Alice"
        assert truncate_label("x" * 15) == "x" * 15
        assert truncate_label("A rather long participant name") == "A rather long p..."
        assert truncate_label(None) == ""
        assert truncate_label(42) == "42"


class TestBuildChartFigure:
    """Figures for each chart type."""

    @pytest.mark.parametrize("chart_type", ["bar", "line", "scatter", "pie"])
    def test_build_chart_figure_for_each_type(self, chart_type):
        """Test that every supported chart type builds a single-axes figure."""
        # Act
        fig = build_chart_figure(_chart(chart_type))

        # Assert
        try:
            assert len(fig.axes) == 1
            if chart_type != "pie":
                assert fig.axes[0].get_title() == "People"
        finally:
            plt.close(fig)

    def test_build_bar_chart_uses_truncated_categories(self):
        """Test that bar categories use truncated labels."""
        # Act
        fig = build_chart_figure(_chart("bar"))

        # Assert
        try:
            labels = [tick.get_text() for tick in fig.axes[0].get_xticklabels()]
            assert labels == ["Alice", "A rather long p..."]
        finally:
            plt.close(fig)

    def test_build_chart_figure_with_missing_columns_does_not_raise(self):
        """Test that keys absent from the rows still produce a figure."""
        # Act
        fig = build_chart_figure(_chart("line", x_key="missing", data_keys=("nope",)))

        # Assert
        plt.close(fig)

    def test_build_chart_figure_with_non_dict_rows_shows_placeholder(self):
        """Test that rows without columns draw the no-data placeholder."""
        # Act
        fig = build_chart_figure(_chart("bar", data=[1, 2, 3]))

        # Assert
        try:
            assert fig.axes[0].texts[0].get_text() == "No data to plot"
        finally:
            plt.close(fig)


class TestRenderChartPng:
    """PNG export."""

    def test_render_chart_png_returns_png_bytes(self):
        """Test that render_chart_png returns PNG bytes."""
        # Act
        png = render_chart_png(_chart("bar"))

        # Assert
        assert png.startswith(PNG_SIGNATURE)
