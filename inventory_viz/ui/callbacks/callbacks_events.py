from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import dash
from dash import Input, Output, State, no_update

from inventory_viz.core.exceptions import InventoryVizError
from inventory_viz.core.filter_state import Cancelled, Committed
from inventory_viz.ui.helpers import (
    criteria_from_inputs,
    decode_upload,
    dropdown_options,
    inputs_from_criteria,
)
from inventory_viz.ui.ids import IDs

if TYPE_CHECKING:
    from inventory_viz.ui.session_pool import SessionPool

logger = logging.getLogger(__name__)


def register_event_callbacks(app: dash.Dash, pool: SessionPool) -> None:
    # ---------------------------------------------------------
    # User events -> orchestrator transitions
    # Every event bumps the render tick; the render callback redraws from the widgets.
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.RENDER_TICK, "data"),
        Output(IDs.Control.STATUS_BAR, "children"),
        Output(IDs.Control.FILTER_MODAL, "is_open"),
        Output(IDs.Control.DEVICE_SELECT, "value"),
        Output(IDs.Control.COUNTRY_SELECT, "value"),
        Output(IDs.Control.FROM_DATE_INPUT, "value"),
        Output(IDs.Control.TO_DATE_INPUT, "value"),
        Output(IDs.Control.PERIOD_SELECT, "value"),
        Output(IDs.Control.DEVICE_SELECT, "options"),
        Output(IDs.Control.COUNTRY_SELECT, "options"),
        Input(IDs.Control.PRIMARY_UPLOAD, "contents"),
        Input(IDs.Control.COMPARISON_UPLOAD, "contents"),
        Input(IDs.Control.FILTER_OPEN_BTN, "n_clicks"),
        Input(IDs.Control.FILTER_APPLY_BTN, "n_clicks"),
        Input(IDs.Control.FILTER_CANCEL_BTN, "n_clicks"),
        Input(IDs.Control.LOAD_MORE_BTN, "n_clicks"),
        Input(IDs.Control.RESET_BTN, "n_clicks"),
        State(IDs.Control.PRIMARY_UPLOAD, "filename"),
        State(IDs.Control.COMPARISON_UPLOAD, "filename"),
        State(IDs.Control.DEVICE_SELECT, "value"),
        State(IDs.Control.COUNTRY_SELECT, "value"),
        State(IDs.Control.FROM_DATE_INPUT, "value"),
        State(IDs.Control.TO_DATE_INPUT, "value"),
        State(IDs.Control.PERIOD_SELECT, "value"),
        State(IDs.Store.SESSION_ID, "data"),
        State(IDs.Store.RENDER_TICK, "data"),
        prevent_initial_call=True,
    )
    def handle_event(
            primary_contents,
            comparison_contents,
            _open_clicks,
            _apply_clicks,
            _cancel_clicks,
            _more_clicks,
            _reset_clicks,
            primary_filename,
            comparison_filename,
            device,
            countries,
            from_text,
            to_text,
            period,
            session_id,
            tick,
    ):
        triggered = dash.ctx.triggered_id
        tick = (tick or 0) + 1
        keep_fields = (no_update,) * 7

        try:
            session = pool.get(session_id)
            orch = session.orchestrator

            if triggered == IDs.Control.PRIMARY_UPLOAD and primary_contents:
                ref = orch.upload_primary(decode_upload(primary_contents, primary_filename))
                status = f"Loaded {ref.id if ref else primary_filename}"
                return (tick, status, no_update) + keep_fields

            if triggered == IDs.Control.COMPARISON_UPLOAD and comparison_contents:
                ref = orch.upload_comparison(decode_upload(comparison_contents, comparison_filename))
                status = f"Comparing with {ref.id if ref else comparison_filename}"
                return (tick, status, no_update) + keep_fields

            if triggered == IDs.Control.FILTER_OPEN_BTN:
                draft = orch.begin_filter_edit() or orch.draft_filters
                d_device, d_countries, d_from, d_to, d_period = inputs_from_criteria(draft)
                return (
                    no_update,
                    no_update,
                    True,
                    d_device,
                    d_countries,
                    d_from,
                    d_to,
                    d_period,
                    dropdown_options(orch.available_devices, [d_device]),
                    dropdown_options(orch.available_countries, d_countries),
                )

            if triggered == IDs.Control.FILTER_APPLY_BTN:
                try:
                    criteria = criteria_from_inputs(device, countries, from_text, to_text, period)
                except ValueError as e:
                    # keep the modal open so the user can fix the dates
                    return (no_update, f"Invalid filters: {e}", True) + keep_fields
                orch.apply_filter_outcome(Committed(criteria))
                return (tick, "Filters applied", False) + keep_fields

            if triggered == IDs.Control.FILTER_CANCEL_BTN:
                orch.apply_filter_outcome(Cancelled())
                return (no_update, no_update, False) + keep_fields

            if triggered == IDs.Control.LOAD_MORE_BTN:
                orch.scroll()
                return (tick, no_update, no_update) + keep_fields

            if triggered == IDs.Control.RESET_BTN:
                orch.reset_session()
                return (tick, "Session reset", False) + keep_fields

        except InventoryVizError as e:
            logger.warning("Event failed", extra={"event": triggered, "error": str(e)})
            return (tick, str(e), no_update) + keep_fields
        except Exception:
            logger.exception("Unexpected error while handling event", extra={"event": triggered})
            return (tick, "Something went wrong. Check the logs for details.", no_update) + keep_fields

        return (no_update, no_update, no_update) + keep_fields
