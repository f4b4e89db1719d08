from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import dash
from dash import Input, Output, State

from inventory_viz.core.dataset_registry import Mode
from inventory_viz.core.exceptions import InventoryVizError
from inventory_viz.ui.ids import IDs
from inventory_viz.views.base_widget import BaseWidget, describe_filters

if TYPE_CHECKING:
    from inventory_viz.ui.session_pool import SessionPool

logger = logging.getLogger(__name__)


def register_render_callbacks(app: dash.Dash, pool: SessionPool) -> None:
    # ---------------------------------------------------------
    # Render tick -> figures from the session's widgets
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.TIMELINE_GRAPH, "figure"),
        Output(IDs.Control.ERROR_GRAPH, "figure"),
        Output(IDs.Control.ERROR_TABLE, "data"),
        Output(IDs.Control.COMPARISON_GRAPH, "figure"),
        Output(IDs.Control.PAGE_INDICATOR, "children"),
        Output(IDs.Control.FILTER_SUMMARY, "children"),
        Input(IDs.Store.RENDER_TICK, "data"),
        State(IDs.Store.SESSION_ID, "data"),
    )
    def render(_tick, session_id):
        try:
            session = pool.get(session_id)
        except InventoryVizError as e:
            logger.warning("Cannot render session", extra={"session_id": session_id, "error": str(e)})
            empty = BaseWidget.empty_figure("Backend unavailable")
            return empty, empty, [], empty, "", ""

        orch = session.orchestrator
        committed = orch.committed_filters
        summary = describe_filters(committed) if orch.filtered else "No filters"

        if orch.mode is Mode.EMPTY:
            page_text = ""
        else:
            page_text = f"{orch.mode.value} · page {orch.page + 1}"

        return (
            session.timeline.figure(),
            session.errors.figure(),
            session.errors.table_rows(),
            session.comparison.figure(),
            page_text,
            summary,
        )
