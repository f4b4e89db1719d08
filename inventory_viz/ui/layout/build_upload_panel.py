from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dcc, html

from inventory_viz.ui.ids import IDs


def _upload(component_id: str, label: str) -> dcc.Upload:
    return dcc.Upload(
        id=component_id,
        children=html.Div([f"{label}: drag and drop or ", html.A("select a file")]),
        multiple=False,
        className="border rounded p-2 text-center small",
    )


def build_upload_panel() -> dbc.Card:
    """
    Dataset uploads (primary, then comparison target) plus session controls.
    """
    return dbc.Card(
        [
            dbc.CardHeader("Datasets"),
            dbc.CardBody(
                [
                    html.Label("Primary dataset", className="form-label mb-1"),
                    _upload(IDs.Control.PRIMARY_UPLOAD, "Primary"),
                    html.Label("Comparison dataset", className="form-label mt-3 mb-1"),
                    _upload(IDs.Control.COMPARISON_UPLOAD, "Compare with"),
                    html.Hr(),
                    dbc.Button(
                        "Filters",
                        id=IDs.Control.FILTER_OPEN_BTN,
                        color="primary",
                        size="sm",
                        className="me-2",
                    ),
                    dbc.Button(
                        "Reset session",
                        id=IDs.Control.RESET_BTN,
                        color="secondary",
                        outline=True,
                        size="sm",
                    ),
                    html.Div(id=IDs.Control.FILTER_SUMMARY, className="small text-muted mt-2"),
                ]
            ),
        ],
    )
