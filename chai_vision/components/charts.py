"""
Chart components for sales visualization
"""
from typing import Dict, Tuple

import pandas as pd
import plotly.graph_objects as go

from chai_vision.display_utils import aggregate_frame, format_currency, growth_frame, targets_frame
from chai_vision.models import AggregateResult, ComparisonResult, GroupField, TargetComparison


def _empty_figure(message: str) -> go.Figure:
    return go.Figure().add_annotation(
        text=message,
        xref="paper", yref="paper",
        x=0.5, y=0.5, showarrow=False
    )


def _label(key: Tuple) -> str:
    return " / ".join(str(part) for part in key)


def create_target_chart(comparisons: Dict[Tuple, TargetComparison],
                        group_by: Tuple[GroupField, ...],
                        title: str = "Revenue vs Target") -> go.Figure:
    """
    Grouped bars of actual revenue and target per key

    Args:
        comparisons: Output of targets.compare
        group_by: Grouping the comparison keys follow
        title: Chart title

    Returns:
        Plotly figure
    """
    if not comparisons:
        return _empty_figure("No sales data for this selection")

    df = targets_frame(comparisons, group_by)
    labels = [_label(key) for key in comparisons]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels,
        y=df['actual'],
        name='Actual',
        marker_color='#366092',
        text=[format_currency(v) for v in df['actual']],
        textposition='auto',
        hovertemplate='%{y:$,.0f}<extra></extra>'
    ))
    # Keys without a target get no target bar
    fig.add_trace(go.Bar(
        x=labels,
        y=df['target'],
        name='Target',
        marker_color='lightgray',
        hovertemplate='%{y:$,.0f}<extra></extra>'
    ))

    fig.update_layout(
        title=title,
        xaxis_title=", ".join(f.value.title() for f in group_by),
        yaxis_title="Revenue",
        barmode='group',
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1)
    )
    return fig


def create_trend_chart(trend: AggregateResult, title: str = "Revenue Trend",
                       show_markers: bool = True) -> go.Figure:
    """
    Line per channel over the time buckets of a trend aggregate

    The aggregate must be grouped by a time field first and channel second,
    as DashboardService.trend returns it.
    """
    if trend.is_empty:
        return _empty_figure("No sales data for this period")

    df = aggregate_frame(trend)
    time_column = trend.group_by[0].value

    fig = go.Figure()
    for channel, channel_df in df.groupby('channel', sort=True):
        channel_df = channel_df.sort_values(time_column)
        fig.add_trace(go.Scatter(
            x=channel_df[time_column],
            y=channel_df['revenue'],
            mode='lines+markers' if show_markers else 'lines',
            name=channel,
            text=[f"${v:,.0f}" for v in channel_df['revenue']],
            hovertemplate='%{text}<extra></extra>'
        ))

    fig.update_layout(
        title=title,
        xaxis_title="Period",
        yaxis_title="Revenue",
        hovermode='x unified',
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1)
    )
    return fig


def create_growth_chart(comparison: ComparisonResult, title: str = "Growth") -> go.Figure:
    """Bar per key, green for growth and red for decline; new keys are left out"""
    df = growth_frame(comparison)
    labels = pd.Series([_label(key) for key in comparison.rows], dtype=object)
    finite = df['growth_percent'].abs() != float('inf')
    df, labels = df[finite], labels[finite.values]

    if df.empty:
        return _empty_figure("No comparable sales in either period")

    colors = ['green' if v > 0 else 'red' for v in df['growth_percent']]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=list(labels),
        y=df['growth_percent'],
        marker_color=colors,
        text=[f"{v:.1f}%" for v in df['growth_percent']],
        textposition='auto',
        hovertemplate='%{y:.1f}%<extra></extra>'
    ))

    fig.update_layout(
        title=f"{title} - {comparison.current.period.label} vs {comparison.prior.period.label}",
        xaxis_title=", ".join(f.value.title() for f in comparison.current.group_by),
        yaxis_title="Growth %",
        showlegend=False
    )
    fig.update_yaxes(tickformat='.1f', ticksuffix='%')
    return fig


def create_contribution_chart(result: AggregateResult, title: str = "Revenue Mix") -> go.Figure:
    """Pie of each key's share of the period total"""
    if result.is_empty or result.total <= 0:
        return _empty_figure("No sales data for this period")

    fig = go.Figure(go.Pie(
        labels=[_label(key) for key in result.buckets],
        values=[float(bucket.revenue) for bucket in result.buckets.values()],
        hole=0.4,
        hovertemplate='%{label}: %{value:$,.0f} (%{percent})<extra></extra>'
    ))
    fig.update_layout(title=title)
    return fig
