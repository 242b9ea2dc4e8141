"""
Plotly figure construction for the "Show graph" panel.

The figure is built server-side and returned as JSON; the page hands it to
Plotly.js, which draws it into the panel's container.
"""

import json

import plotly.graph_objects as go

from sampler import Samples


LINE_COLOR = "#ffffff"
GRID_COLOR = "rgba(255,255,255,0.15)"
ZERO_LINE_COLOR = "rgba(255,255,255,0.4)"

PLOT_CONFIG = {"displayModeBar": False, "responsive": True}


def _axis(title: str, **extra) -> dict:
    return dict(
        title=dict(text=title, font=dict(color=LINE_COLOR)),
        tickfont=dict(color=LINE_COLOR),
        gridcolor=GRID_COLOR,
        zerolinecolor=ZERO_LINE_COLOR,
        linecolor=LINE_COLOR,
        **extra,
    )


def build_figure(samples: Samples) -> go.Figure:
    """Single white line on a transparent, dark-theme friendly layout."""
    fig = go.Figure(
        data=[
            go.Scatter(
                x=samples.xs,
                y=samples.ys,
                mode="lines",
                name="y",
                line=dict(color=LINE_COLOR, width=4),
                connectgaps=False,
            )
        ]
    )
    fig.update_layout(
        autosize=True,
        margin=dict(t=10, r=10, b=50, l=55),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        template="none",
        showlegend=False,
        xaxis=_axis("x"),
        yaxis=_axis("y", autorange=True),
    )
    return fig


def figure_payload(samples: Samples) -> dict:
    """Figure as a plain JSON-ready dict: {data, layout, config}."""
    figure = json.loads(build_figure(samples).to_json())
    return {
        "data": figure["data"],
        "layout": figure["layout"],
        "config": PLOT_CONFIG,
    }
