from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from inventory_viz.core.exceptions import ConfigError
from inventory_viz.core.pagination import PAGE_SIZE

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_MAX_SESSIONS = 200


@dataclass
class AppConfig:
    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    storage_root: Path = Path(".inventory_viz")
    ui_title: str = "Inventory Visualizer"
    page_size: int = PAGE_SIZE
    max_sessions: int = DEFAULT_MAX_SESSIONS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
        env = os.environ if environ is None else environ
        try:
            timeout = float(env.get("INVENTORY_VIZ_TIMEOUT", "30"))
        except ValueError:
            raise ConfigError(f"INVENTORY_VIZ_TIMEOUT must be a number, got {env['INVENTORY_VIZ_TIMEOUT']!r}")
        try:
            max_sessions = int(env.get("INVENTORY_VIZ_MAX_SESSIONS", str(DEFAULT_MAX_SESSIONS)))
        except ValueError:
            raise ConfigError(
                f"INVENTORY_VIZ_MAX_SESSIONS must be an integer, got {env['INVENTORY_VIZ_MAX_SESSIONS']!r}"
            )

        cfg = cls(
            api_base_url=env.get("INVENTORY_VIZ_API_URL", DEFAULT_API_URL),
            request_timeout=timeout,
            storage_root=Path(env.get("INVENTORY_VIZ_STORAGE_ROOT", ".inventory_viz")),
            ui_title=env.get("INVENTORY_VIZ_TITLE", "Inventory Visualizer"),
            max_sessions=max_sessions,
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """Reject settings the app cannot start with."""
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ConfigError(f"API URL must be http(s), got {self.api_base_url!r}")
        if self.request_timeout <= 0:
            raise ConfigError("Request timeout must be positive")
        if self.page_size <= 0:
            raise ConfigError("Page size must be positive")
        if self.max_sessions <= 0:
            raise ConfigError("Session limit must be positive")
