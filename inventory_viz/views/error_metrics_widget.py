from __future__ import annotations

import logging
from typing import Any, List

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from inventory_viz.core.models import ErrorMetricsResult
from inventory_viz.core.notification_bus import Channel
from inventory_viz.views.base_widget import BaseWidget

logger = logging.getLogger(__name__)


class ErrorMetricsWidget(BaseWidget):
    """
    Error metrics between the primary and the comparison dataset, one bar per metric.

    Nested metric groups are flattened to dotted names ("daily.mae").
    """

    id = "error_metrics"
    label = "Error metrics"
    channel = Channel.ERROR_UPDATE
    empty_message = "Error metrics appear once two datasets are compared"

    def compute_data(self, payload: Any) -> pd.DataFrame:
        if isinstance(payload, ErrorMetricsResult):
            payload = payload.payload
        if not payload:
            return pd.DataFrame()

        flat = pd.json_normalize(payload)
        numeric = flat.select_dtypes(include="number")
        if numeric.empty:
            return pd.DataFrame()

        df = numeric.iloc[0].rename_axis("metric").reset_index(name="value")
        return df.sort_values("metric", ignore_index=True)

    def render_figure(self, data: pd.DataFrame) -> go.Figure:
        fig = px.bar(data, x="metric", y="value", text_auto=".3g")
        fig.update_layout(
            title=self.title(),
            height=350,
            margin=dict(l=40, r=40, t=60, b=40),
            xaxis_title="Metric",
            yaxis_title="Value",
        )
        return fig

    def table_rows(self) -> List[dict]:
        """Metric/value rows for a plain table next to the chart."""
        if self.payload is None:
            return []
        try:
            data = self.compute_data(self.payload)
        except Exception:
            logger.exception("Error metrics table failed", extra={"widget": self.id})
            return []
        return data.to_dict("records")
