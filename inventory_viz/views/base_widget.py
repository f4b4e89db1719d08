from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import pandas as pd
import plotly.graph_objects as go

from inventory_viz.core.filter_state import FilterCriteria
from inventory_viz.core.notification_bus import Channel, NotificationBus, Subscription

logger = logging.getLogger(__name__)


class BaseWidget(ABC):
    """
    Abstract base class for all presentation widgets.

    A widget listens on the NotificationBus and never queries the backend itself.
    Every widget:
    - exposes an 'id' and a 'label'
    - names the 'channel' whose payloads it renders
    - resets its visual state when 'clear' is published
    - remembers the last committed filters from 'filter-change' (for titles)
    - implements 'compute_data' (payload -> DataFrame) and 'render_figure' (DataFrame -> Figure)
    """

    id: str = None
    label: str = None
    channel: Channel = None
    empty_message: str = "No data yet"

    def __init__(self):
        self.payload: Any = None
        self.filters: Optional[FilterCriteria] = None
        self._subscriptions: List[Subscription] = []

    def attach(self, bus: NotificationBus) -> None:
        self._subscriptions = [
            bus.subscribe(self.channel, self.on_update),
            bus.subscribe(Channel.CLEAR, self.on_clear),
            bus.subscribe(Channel.FILTER_CHANGE, self.on_filter_change),
        ]

    def detach(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    def on_update(self, payload: Any) -> None:
        self.payload = payload

    def on_clear(self, flag: bool) -> None:
        if flag:
            self.payload = None

    def on_filter_change(self, criteria: FilterCriteria) -> None:
        self.filters = criteria

    @abstractmethod
    def compute_data(self, payload: Any) -> pd.DataFrame:
        raise NotImplementedError()

    @abstractmethod
    def render_figure(self, data: pd.DataFrame) -> go.Figure:
        raise NotImplementedError()

    def figure(self) -> go.Figure:
        if self.payload is None:
            return self.empty_figure(self.empty_message)

        try:
            data = self.compute_data(self.payload)
        except Exception:
            logger.exception("Widget failed to build its data", extra={"widget": self.id})
            return self.empty_figure("Could not read the data returned by the backend")

        if data is None or data.empty:
            return self.empty_figure("No data for the current filters")
        return self.render_figure(data)

    def title(self) -> str:
        if self.filters is None or self.filters.is_empty():
            return self.label
        return f"{self.label} ({describe_filters(self.filters)})"

    @staticmethod
    def empty_figure(message: str) -> go.Figure:
        """
        Standardised 'no data' figure used by all widgets.
        """
        fig = go.Figure()
        fig.update_layout(
            title=message,
            xaxis={"visible": False},
            yaxis={"visible": False},
        )
        return fig


def describe_filters(criteria: FilterCriteria) -> str:
    parts = []
    if criteria.device:
        parts.append(criteria.device)
    if criteria.countries:
        parts.append(", ".join(sorted(criteria.countries)))
    if criteria.from_date or criteria.to_date:
        start = criteria.from_date.isoformat() if criteria.from_date else "…"
        end = criteria.to_date.isoformat() if criteria.to_date else "…"
        parts.append(f"{start} to {end}")
    if criteria.period is not None:
        parts.append(criteria.period.label)
    return " · ".join(parts)


def records_to_frame(records: Any) -> pd.DataFrame:
    """Flatten a list of JSON records into a DataFrame (nested keys become dotted columns)."""
    if not records:
        return pd.DataFrame()
    return pd.json_normalize(list(records))


def pick_x_column(df: pd.DataFrame, preferred: str) -> str:
    if preferred in df.columns:
        return preferred
    return df.columns[0]
