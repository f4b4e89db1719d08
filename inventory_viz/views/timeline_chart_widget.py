from __future__ import annotations

from typing import Any

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from inventory_viz.core.notification_bus import Channel
from inventory_viz.views.base_widget import BaseWidget, pick_x_column, records_to_frame


class TimelineChartWidget(BaseWidget):
    """
    Inventory timeline of the primary dataset: one line per numeric segment field.
    """

    id = "timeline"
    label = "Inventory timeline"
    channel = Channel.CHART_UPDATE
    empty_message = "Upload a dataset to see its timeline"

    def __init__(self, x_key: str = "date"):
        super().__init__()
        self.x_key = x_key

    def compute_data(self, payload: Any) -> pd.DataFrame:
        df = records_to_frame(payload)
        if df.empty:
            return df

        x = pick_x_column(df, self.x_key)
        values = df.drop(columns=[x]).select_dtypes(include="number")
        if values.empty:
            return pd.DataFrame()

        long = pd.concat([df[[x]], values], axis=1).melt(id_vars=x, var_name="series", value_name="value")
        return long.rename(columns={x: "x"})

    def render_figure(self, data: pd.DataFrame) -> go.Figure:
        fig = px.line(data, x="x", y="value", color="series", markers=True)
        fig.update_layout(
            title=self.title(),
            height=450,
            margin=dict(l=40, r=40, t=60, b=40),
            xaxis_title=self.x_key,
            yaxis_title="Inventory",
            legend_title="Series",
        )
        return fig
