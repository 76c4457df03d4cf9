"""
visualization.py — Plotly figure factories for the funding report.

Depends on: summary.py and model.py outputs (plain DataFrames).
All functions return plotly.graph_objects.Figure objects.
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from scipy.stats import gaussian_kde


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------

# Dark report palette; "converted" / "not_converted" colour the two outcomes
_COLORS = {
    "background": "#0D1117",
    "paper": "#161B22",
    "grid": "#21262D",
    "text": "#C9D1D9",
    "text_secondary": "#8B949E",
    "accent": "#58A6FF",
    "converted": "#3FB950",
    "not_converted": "#F85149",
    "highlight": "#FFA657",
}

_PLOTLY_TEMPLATE = "plotly_dark"
_FONT_FAMILY = "Inter, -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif"
_AXIS_STYLE = dict(
    gridcolor=_COLORS["grid"],
    zerolinecolor=_COLORS["grid"],
    tickfont=dict(color=_COLORS["text_secondary"]),
    title_font=dict(color=_COLORS["text_secondary"]),
)


def _apply_theme(fig: go.Figure) -> go.Figure:
    """Style a report chart in place (dark panels, muted axes); returns it."""
    panel = dict(bgcolor=_COLORS["paper"], bordercolor=_COLORS["grid"])
    fig.update_layout(
        template=_PLOTLY_TEMPLATE,
        paper_bgcolor=_COLORS["paper"],
        plot_bgcolor=_COLORS["background"],
        font=dict(family=_FONT_FAMILY, color=_COLORS["text"], size=12),
        title_font=dict(size=16, color=_COLORS["text"]),
        legend=dict(**panel, borderwidth=1, font=dict(color=_COLORS["text_secondary"])),
        hoverlabel=dict(**panel, font=dict(color=_COLORS["text"])),
        margin=dict(l=60, r=30, t=70, b=50),
    )
    fig.update_xaxes(**_AXIS_STYLE)
    fig.update_yaxes(**_AXIS_STYLE)
    return fig


def _label(column: str) -> str:
    return column.replace("_", " ").title()


# ---------------------------------------------------------------------------
# Exploratory plots
# ---------------------------------------------------------------------------

def plot_amount_distribution(
    df: pd.DataFrame,
    column: str = "funding_total_usd",
    title: Optional[str] = None,
) -> go.Figure:
    """
    Histogram of log10 amounts with a Gaussian KDE overlay.

    Zero, negative and missing amounts are left out.
    """
    if column not in df.columns:
        return go.Figure()
    amounts = df[column].astype(np.float64)
    amounts = amounts[amounts > 0]
    if amounts.empty:
        return go.Figure()

    log_amounts = np.log10(amounts.to_numpy())
    fig = go.Figure()
    fig.add_trace(
        go.Histogram(
            x=log_amounts,
            nbinsx=60,
            name="Companies",
            marker_color=_COLORS["accent"],
            opacity=0.6,
            histnorm="probability density",
            hovertemplate="log10($): %{x:.2f}<br>Density: %{y:.4f}<extra></extra>",
        )
    )

    try:
        kde = gaussian_kde(log_amounts, bw_method="scott")
        x_range = np.linspace(log_amounts.min(), log_amounts.max(), 200)
        fig.add_trace(
            go.Scatter(
                x=x_range,
                y=kde(x_range),
                name="KDE",
                line=dict(color=_COLORS["highlight"], width=2),
                hoverinfo="skip",
            )
        )
    except (np.linalg.LinAlgError, ValueError):
        pass  # KDE fails on a single point or constant data

    median = float(np.median(log_amounts))
    fig.add_vline(
        x=median,
        line_dash="dash",
        line_color=_COLORS["converted"],
        annotation_text=f"Median: ${10 ** median:,.0f}",
        annotation_position="top right",
    )

    fig.update_layout(
        title=title or f"Distribution of {_label(column)}",
        xaxis_title=f"log10 {_label(column)}",
        yaxis_title="Probability Density",
        bargap=0.02,
    )
    return _apply_theme(fig)


def plot_grouped_stats(
    stats: pd.DataFrame,
    by: str,
    title: Optional[str] = None,
    value_label: str = "Total Funding ($)",
) -> go.Figure:
    """
    Bar chart of group means with one-standard-deviation error bars.

    Parameters
    ----------
    stats:
        Output of summary.grouped_stats() (columns: by, count, mean, std, sem).
    by:
        Name of the grouping column.
    """
    if stats.empty:
        return go.Figure()

    fig = go.Figure(
        go.Bar(
            x=stats[by].astype(str),
            y=stats["mean"],
            error_y=dict(type="data", array=stats["std"].fillna(0.0), visible=True),
            marker_color=_COLORS["accent"],
            customdata=np.stack([stats["count"], stats["std"]], axis=-1),
            hovertemplate=(
                "%{x}<br>Mean: $%{y:,.0f}<br>Std: $%{customdata[1]:,.0f}"
                "<br>n = %{customdata[0]}<extra></extra>"
            ),
            name="Mean",
        )
    )
    fig.update_layout(
        title=title or f"Mean Funding by {_label(by)} (± 1 std)",
        xaxis_title=_label(by),
        yaxis_title=value_label,
        showlegend=False,
    )
    return _apply_theme(fig)


def plot_funding_by_year(stats: pd.DataFrame, title: str = "Companies and Funding by First-Funding Year") -> go.Figure:
    """Company counts as bars with mean total funding on a secondary axis."""
    if stats.empty:
        return go.Figure()

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Bar(
            x=stats["first_funding_year"],
            y=stats["companies"],
            name="Companies",
            marker_color=_COLORS["accent"],
            opacity=0.7,
            hovertemplate="%{x}<br>Companies: %{y:,}<extra></extra>",
        ),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(
            x=stats["first_funding_year"],
            y=stats["mean"],
            name="Mean Funding",
            mode="lines+markers",
            line=dict(color=_COLORS["highlight"], width=2),
            marker=dict(size=4),
            hovertemplate="%{x}<br>Mean: $%{y:,.0f}<extra></extra>",
        ),
        secondary_y=True,
    )
    fig.update_layout(title=title, xaxis_title="First Funding Year", hovermode="x unified")
    fig.update_yaxes(title_text="Companies", secondary_y=False)
    fig.update_yaxes(title_text="Mean Total Funding ($)", secondary_y=True)
    return _apply_theme(fig)


def plot_conversion_by_amount(
    buckets: pd.DataFrame,
    feature: str = "round_A",
    target: str = "round_B",
) -> go.Figure:
    """
    Target-round conversion rate per feature-amount bucket.

    Parameters
    ----------
    buckets:
        Output of summary.series_b_rate_by_amount().
    """
    if buckets.empty:
        return go.Figure()

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Bar(
            x=buckets["bucket"],
            y=buckets["rate"],
            name=f"{_label(target)} rate",
            marker_color=_COLORS["converted"],
            text=[f"{r:.0%}" for r in buckets["rate"]],
            textposition="outside",
            hovertemplate="%{x}<br>Rate: %{y:.1%}<extra></extra>",
        ),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(
            x=buckets["bucket"],
            y=buckets["count"],
            name="Companies",
            mode="lines+markers",
            line=dict(color=_COLORS["text_secondary"], width=1, dash="dot"),
            hovertemplate="%{x}<br>n = %{y}<extra></extra>",
        ),
        secondary_y=True,
    )
    fig.update_layout(
        title=f"{_label(target)} Rate by {_label(feature)} Amount Quantile",
        xaxis_title=f"{_label(feature)} Amount ($)",
    )
    fig.update_yaxes(title_text="Conversion Rate", tickformat=".0%", secondary_y=False)
    fig.update_yaxes(title_text="Companies", secondary_y=True)
    return _apply_theme(fig)


def plot_feature_vs_target(
    df: pd.DataFrame,
    feature: str = "round_A",
    target: str = "round_B",
) -> go.Figure:
    """Box plot of log10 feature amount split by whether the target round happened."""
    if feature not in df.columns or target not in df.columns:
        return go.Figure()
    subset = df.loc[df[feature] > 0]
    if subset.empty:
        return go.Figure()

    fig = go.Figure()
    outcomes = [(False, f"No {_label(target)}", _COLORS["not_converted"]),
                (True, _label(target), _COLORS["converted"])]
    for occurred, name, color in outcomes:
        values = subset.loc[(subset[target] > 0) == occurred, feature]
        if values.empty:
            continue
        fig.add_trace(
            go.Box(
                y=np.log10(values.to_numpy(dtype=np.float64)),
                name=name,
                marker_color=color,
                boxmean="sd",
            )
        )
    fig.update_layout(
        title=f"{_label(feature)} Amount vs {_label(target)} Occurrence",
        yaxis_title=f"log10 {_label(feature)} ($)",
        showlegend=False,
    )
    return _apply_theme(fig)


# ---------------------------------------------------------------------------
# Model plots
# ---------------------------------------------------------------------------

def plot_confusion_matrix(cm: pd.DataFrame, title: str = "Confusion Matrix (test set)") -> go.Figure:
    """Annotated heatmap of a 2x2 confusion matrix from SeriesBModel.confusion_matrix()."""
    if cm.empty:
        return go.Figure()

    fig = go.Figure(
        go.Heatmap(
            z=cm.to_numpy(),
            x=list(cm.columns),
            y=list(cm.index),
            text=cm.to_numpy(),
            texttemplate="%{text}",
            colorscale="Blues",
            showscale=False,
            hovertemplate="%{y} / %{x}: %{z}<extra></extra>",
        )
    )
    fig.update_layout(title=title, xaxis_title="Predicted", yaxis_title="Actual")
    fig.update_yaxes(autorange="reversed")
    return _apply_theme(fig)


def plot_roc_curve(roc: pd.DataFrame, auc: float, title: str = "ROC Curve (test set)") -> go.Figure:
    """ROC line with the chance diagonal."""
    if roc.empty:
        return go.Figure()

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=roc["fpr"],
            y=roc["tpr"],
            mode="lines",
            name=f"Random forest (AUC = {auc:.3f})",
            line=dict(color=_COLORS["accent"], width=3),
            hovertemplate="FPR %{x:.2f}<br>TPR %{y:.2f}<extra></extra>",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=[0, 1],
            y=[0, 1],
            mode="lines",
            name="Chance",
            line=dict(color=_COLORS["text_secondary"], dash="dot"),
            hoverinfo="skip",
        )
    )
    fig.update_layout(
        title=title,
        xaxis_title="False Positive Rate",
        yaxis_title="True Positive Rate",
        xaxis=dict(range=[0, 1]),
        yaxis=dict(range=[0, 1.02]),
    )
    return _apply_theme(fig)


def plot_feature_importance(importances: pd.DataFrame, title: str = "Feature Importance") -> go.Figure:
    """Horizontal bar chart, most important feature on top."""
    if importances.empty:
        return go.Figure()

    ordered = importances.sort_values("importance")
    fig = go.Figure(
        go.Bar(
            y=ordered["feature"],
            x=ordered["importance"],
            orientation="h",
            marker_color=_COLORS["accent"],
            hovertemplate="%{y}: %{x:.3f}<extra></extra>",
        )
    )
    fig.update_layout(title=title, xaxis_title="Mean Decrease in Impurity", showlegend=False)
    return _apply_theme(fig)


def plot_probability_curve(
    curve: pd.DataFrame,
    target: str = "round_B",
    title: Optional[str] = None,
) -> go.Figure:
    """Predicted target-round probability against the feature amount (log x-axis)."""
    if curve.empty:
        return go.Figure()

    x = curve["amount"].clip(lower=1.0)
    fig = go.Figure(
        go.Scatter(
            x=x,
            y=curve["probability"],
            mode="lines",
            line=dict(color=_COLORS["converted"], width=3),
            hovertemplate="$%{x:,.0f}<br>P = %{y:.2f}<extra></extra>",
            name="Predicted probability",
        )
    )
    fig.update_layout(
        title=title or f"Predicted Probability of {_label(target)}",
        xaxis_title="Amount ($)",
        yaxis_title="Probability",
        xaxis_type="log",
        yaxis=dict(range=[0, 1]),
        showlegend=False,
    )
    return _apply_theme(fig)
