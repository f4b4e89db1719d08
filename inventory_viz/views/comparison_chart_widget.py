from __future__ import annotations

from typing import Any

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from inventory_viz.core.models import ComparisonResult
from inventory_viz.core.notification_bus import Channel
from inventory_viz.views.base_widget import BaseWidget, pick_x_column, records_to_frame


class ComparisonChartWidget(BaseWidget):
    """
    Paired timelines of the two datasets.

    Each list of records in the comparison payload becomes one group in the chart,
    named after its key (e.g. the two dataset filenames).
    """

    id = "comparison"
    label = "Dataset comparison"
    channel = Channel.COMPARISON_UPDATE
    empty_message = "Upload a second dataset to compare"

    def __init__(self, x_key: str = "date"):
        super().__init__()
        self.x_key = x_key

    def compute_data(self, payload: Any) -> pd.DataFrame:
        if isinstance(payload, ComparisonResult):
            payload = payload.payload

        frames = []
        for name, records in payload.items():
            if not isinstance(records, list) or not records:
                continue
            df = records_to_frame(records)
            x = pick_x_column(df, self.x_key)
            values = df.drop(columns=[x]).select_dtypes(include="number")
            if values.empty:
                continue
            long = pd.concat([df[[x]], values], axis=1).melt(id_vars=x, var_name="series", value_name="value")
            long = long.rename(columns={x: "x"})
            long["dataset"] = str(name)
            frames.append(long)

        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    def render_figure(self, data: pd.DataFrame) -> go.Figure:
        fig = px.line(
            data,
            x="x",
            y="value",
            color="dataset",
            line_dash="series",
            markers=True,
        )
        fig.update_layout(
            title=self.title(),
            height=450,
            margin=dict(l=40, r=40, t=60, b=40),
            xaxis_title=self.x_key,
            yaxis_title="Inventory",
            legend_title="Dataset",
        )
        return fig
