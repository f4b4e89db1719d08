from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dcc, html

from inventory_viz.ui.config import AppConfig
from inventory_viz.ui.ids import IDs
from inventory_viz.ui.layout.build_filter_modal import build_filter_modal
from inventory_viz.ui.layout.build_plot_panel import build_plot_panel
from inventory_viz.ui.layout.build_upload_panel import build_upload_panel
from inventory_viz.ui.session_pool import new_session_id


def build_layout(config: AppConfig):
    """
    Called by Dash on every page load (layout is a function), so each tab gets
    a fresh session id.
    """
    return dbc.Container(
        fluid=True,
        children=[
            dbc.NavbarSimple(brand=config.ui_title, color="dark", dark=True, className="mb-3"),

            dcc.Store(id=IDs.Store.SESSION_ID, data=new_session_id(), storage_type="memory"),
            dcc.Store(id=IDs.Store.RENDER_TICK, data=0, storage_type="memory"),

            build_filter_modal(),
            dbc.Row(
                [
                    dbc.Col(build_upload_panel(), md=3),
                    dbc.Col(build_plot_panel(), md=9),
                ],
                className="gx-3",
            ),
            html.Div(id=IDs.Control.STATUS_BAR, className="small text-muted mt-2"),
        ],
    )
