from __future__ import annotations

__all__ = ["IDs"]


class IDs:
    class Store:
        SESSION_ID = "session-id"
        RENDER_TICK = "render-tick"

    class Control:
        # Uploads
        PRIMARY_UPLOAD = "primary-upload"
        COMPARISON_UPLOAD = "comparison-upload"
        RESET_BTN = "reset-session-btn"

        # Filter modal
        FILTER_OPEN_BTN = "filter-open-btn"
        FILTER_MODAL = "filter-modal"
        FILTER_APPLY_BTN = "filter-apply-btn"
        FILTER_CANCEL_BTN = "filter-cancel-btn"
        DEVICE_SELECT = "device-select"
        COUNTRY_SELECT = "country-select"
        FROM_DATE_INPUT = "from-date-input"
        TO_DATE_INPUT = "to-date-input"
        PERIOD_SELECT = "period-select"
        FILTER_SUMMARY = "filter-summary"

        # Paging
        LOAD_MORE_BTN = "load-more-btn"
        PAGE_INDICATOR = "page-indicator"

        # Graphs
        TIMELINE_GRAPH = "timeline-graph"
        COMPARISON_GRAPH = "comparison-graph"
        ERROR_GRAPH = "error-graph"
        ERROR_TABLE = "error-table"

        # Status bar
        STATUS_BAR = "status-bar"
