from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dash_table, dcc, html

from inventory_viz.ui.ids import IDs


def _graph(component_id: str, height: str) -> dcc.Loading:
    return dcc.Loading(
        type="default",
        children=dcc.Graph(
            id=component_id,
            style={"height": height},
            config={"responsive": True},
        ),
    )


def build_plot_panel() -> dbc.Card:
    return dbc.Card(
        [
            dbc.CardHeader(
                html.Div(
                    [
                        html.Strong("Timeline"),
                        html.Span(id=IDs.Control.PAGE_INDICATOR, className="ms-auto small text-muted"),
                    ],
                    className="d-flex align-items-center",
                ),
                className="p-2",
            ),
            dbc.CardBody(
                [
                    _graph(IDs.Control.TIMELINE_GRAPH, "450px"),
                    _graph(IDs.Control.ERROR_GRAPH, "350px"),
                    dash_table.DataTable(
                        id=IDs.Control.ERROR_TABLE,
                        data=[],
                        columns=[{"name": "Metric", "id": "metric"}, {"name": "Value", "id": "value"}],
                        style_table={"overflowX": "auto"},
                        style_as_list_view=True,
                        page_size=20,
                    ),
                    _graph(IDs.Control.COMPARISON_GRAPH, "450px"),
                    html.Div(
                        dbc.Button(
                            "Load more",
                            id=IDs.Control.LOAD_MORE_BTN,
                            color="secondary",
                            size="sm",
                            className="mt-2 ms-auto me-2",
                        ),
                        className="d-flex justify-content-end align-items-center",
                    ),
                ]
            ),
        ],
    )
