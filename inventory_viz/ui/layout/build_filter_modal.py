from __future__ import annotations

import dash_bootstrap_components as dbc
from dash import dcc, html

from inventory_viz.core.filter_state import TimePeriod
from inventory_viz.ui.ids import IDs


def build_filter_modal() -> dbc.Modal:
    """
    Filter modal. Dates are typed as M-D-YYYY; device/country options are filled
    from the last segment page the backend returned.
    """
    period_options = [{"label": p.label, "value": p.value} for p in TimePeriod]

    return dbc.Modal(
        [
            dbc.ModalHeader(dbc.ModalTitle("Filters"), close_button=False),
            dbc.ModalBody(
                [
                    html.Label("Device", className="form-label"),
                    dcc.Dropdown(id=IDs.Control.DEVICE_SELECT, options=[], clearable=True),
                    html.Label("Countries", className="form-label mt-2"),
                    dcc.Dropdown(id=IDs.Control.COUNTRY_SELECT, options=[], multi=True),
                    dbc.Row(
                        [
                            dbc.Col(
                                [
                                    html.Label("From (M-D-YYYY)", className="form-label mt-2"),
                                    dbc.Input(id=IDs.Control.FROM_DATE_INPUT, type="text", placeholder="1-31-2021"),
                                ]
                            ),
                            dbc.Col(
                                [
                                    html.Label("To (M-D-YYYY)", className="form-label mt-2"),
                                    dbc.Input(id=IDs.Control.TO_DATE_INPUT, type="text", placeholder="12-31-2021"),
                                ]
                            ),
                        ]
                    ),
                    html.Label("Time period", className="form-label mt-2"),
                    dcc.Dropdown(id=IDs.Control.PERIOD_SELECT, options=period_options, clearable=True),
                ]
            ),
            dbc.ModalFooter(
                [
                    dbc.Button("Cancel", id=IDs.Control.FILTER_CANCEL_BTN, color="secondary", outline=True),
                    dbc.Button("Apply", id=IDs.Control.FILTER_APPLY_BTN, color="primary"),
                ]
            ),
        ],
        id=IDs.Control.FILTER_MODAL,
        is_open=False,
        # only Apply/Cancel may close it, so the edit always ends in an outcome
        backdrop="static",
        keyboard=False,
    )
