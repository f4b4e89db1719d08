from __future__ import annotations

import logging
from typing import Optional

import dash_bootstrap_components as dbc
from dash import Dash

from inventory_viz.services.storage import LocalFileSystemStorage, StorageBackend
from inventory_viz.ui.callbacks.callbacks_events import register_event_callbacks
from inventory_viz.ui.callbacks.callbacks_render import register_render_callbacks
from inventory_viz.ui.config import AppConfig
from inventory_viz.ui.layout.build_layout import build_layout
from inventory_viz.ui.session_pool import BackendFactory, SessionPool

logger = logging.getLogger(__name__)


def create_dash_app(
        config: Optional[AppConfig] = None,
        storage: Optional[StorageBackend] = None,
        backend_factory: Optional[BackendFactory] = None,
) -> Dash:
    # 1) Config
    config = config or AppConfig.from_env()
    config.validate()

    # 2) Per-user sessions (token storage creates its directory if needed)
    storage = storage or LocalFileSystemStorage(config.storage_root)
    pool = SessionPool(config, storage, backend_factory=backend_factory)

    # 3) App
    app = Dash(__name__, external_stylesheets=[dbc.themes.FLATLY])
    app.title = config.ui_title

    def serve_layout():
        return build_layout(config)

    app.layout = serve_layout

    register_event_callbacks(app, pool)
    register_render_callbacks(app, pool)

    logger.info("Dash app created", extra={"api": config.api_base_url})
    return app
