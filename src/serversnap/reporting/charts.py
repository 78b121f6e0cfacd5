"""
Plotly time-series charts for the HTML report.

One line chart per metric family; every metric of the family is one trace
with the tick timestamps on the x axis.
"""

import logging
from typing import Dict, List

import plotly.graph_objects as go
import polars as pl

from ..models.report import ReportModel
from ..storage.timeseries import metric_family, model_to_dataframe

logger = logging.getLogger(__name__)


def _family_frames(model: ReportModel) -> Dict[str, pl.DataFrame]:
    df = model_to_dataframe(model)
    if df.is_empty():
        return {}

    df = df.with_columns(
        pl.from_epoch((pl.col("timestamp") * 1000).cast(pl.Int64), time_unit="ms").alias("time")
    )
    frames: Dict[str, pl.DataFrame] = {}
    for metric in df["metric"].unique(maintain_order=True).to_list():
        family = metric_family(metric)
        part = df.filter(pl.col("metric") == metric)
        frames[family] = pl.concat([frames[family], part]) if family in frames else part
    return frames


def build_figures(model: ReportModel) -> Dict[str, go.Figure]:
    """Line charts keyed by metric family, in first-seen order."""
    figures: Dict[str, go.Figure] = {}
    for family, frame in _family_frames(model).items():
        fig = go.Figure()
        for metric, group in frame.group_by("metric", maintain_order=True):
            name = metric[0] if isinstance(metric, tuple) else metric
            fig.add_trace(
                go.Scatter(
                    x=group["time"].to_list(),
                    y=group["value"].to_list(),
                    mode="lines+markers",
                    name=name,
                )
            )
        fig.update_layout(
            title=family,
            xaxis_title="Time (UTC)",
            yaxis_title="Value",
            legend_title_text="Metric",
            height=400,
        )
        figures[family] = fig

    logger.debug(f"Built {len(figures)} charts")
    return figures


def figures_to_html(figures: Dict[str, go.Figure], plotlyjs: str = "inline") -> List[Dict[str, str]]:
    """
    HTML fragments for embedding in the report.

    Args:
        figures: Figures keyed by metric family
        plotlyjs: "inline" embeds plotly.js once in the first fragment, "cdn"
            links it from the CDN

    Returns:
        List of {"title": family, "html": fragment}
    """
    fragments = []
    for index, (family, fig) in enumerate(figures.items()):
        if plotlyjs == "cdn":
            include = "cdn" if index == 0 else False
        else:
            include = index == 0
        fragments.append(
            {"title": family, "html": fig.to_html(full_html=False, include_plotlyjs=include)}
        )
    return fragments
