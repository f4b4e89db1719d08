"""
Backend API Client
Connects the orchestrator to the inventory timeline backend over HTTP.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from inventory_viz.core.exceptions import FetchError, UploadError
from inventory_viz.core.filter_state import FilterCriteria
from inventory_viz.core.models import (
    ComparisonResult,
    ErrorMetricsResult,
    SegmentPage,
    UploadFile,
    UploadReceipt,
)
from inventory_viz.services.session_service import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class InventoryApiClient:
    """
    Client for the backend API; implements the InventoryBackend contract.

    Every request carries the session token as a bearer token. Tokens handed back
    by /register and /upload replace the stored one.
    """

    def __init__(
            self,
            base_url: str,
            token_store: TokenStore,
            timeout: float = DEFAULT_TIMEOUT,
            session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def close(self) -> None:
        self.session.close()

    def _headers(self) -> Dict[str, str]:
        token = self.token_store.get()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _post(self, endpoint: str, data: Optional[dict] = None, files: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        if files:
            resp = self.session.post(url, files=files, headers=self._headers(), timeout=self.timeout)
        else:
            resp = self.session.post(url, json=data, headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _query(self, endpoint: str, data: dict, query: str) -> Dict[str, Any]:
        try:
            return self._post(endpoint, data=data)
        except (requests.RequestException, ValueError) as e:
            logger.error("Backend query failed", extra={"endpoint": endpoint, "error": str(e)})
            raise FetchError(f"{query} query failed: {e}", query=query) from e

    # =========================================================================
    # Session
    # =========================================================================

    def register_user(self, username: str) -> str:
        try:
            result = self._post("/register", data={"username": username})
        except (requests.RequestException, ValueError) as e:
            raise FetchError(f"Registration failed: {e}", query="register") from e
        return str(result["token"])

    # =========================================================================
    # Upload
    # =========================================================================

    def upload(self, file: UploadFile) -> UploadReceipt:
        files = {"file": (file.filename, file.content, file.content_type)}
        try:
            result = self._post("/upload", files=files)
            receipt = UploadReceipt.from_dict(result)
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error("Upload failed", extra={"upload_name": file.filename, "error": str(e)})
            raise UploadError(f"Upload of '{file.filename}' failed: {e}") from e

        if receipt.token:
            self.token_store.set(receipt.token)
        return receipt

    # =========================================================================
    # Queries
    # =========================================================================

    def fetch_segments(
            self,
            dataset_id: str,
            page: int,
            page_size: int,
            filters: FilterCriteria,
    ) -> SegmentPage:
        result = self._query(
            "/segments",
            {
                "filename": dataset_id,
                "page": page,
                "pageSize": page_size,
                "filters": filters.to_dict(),
            },
            query="segments",
        )
        return SegmentPage.from_dict(result)

    def fetch_comparison(
            self,
            dataset_id_a: str,
            dataset_id_b: str,
            page: int,
            page_size: int,
            filters: FilterCriteria,
    ) -> ComparisonResult:
        result = self._query(
            "/compare",
            {
                "filenameA": dataset_id_a,
                "filenameB": dataset_id_b,
                "page": page,
                "pageSize": page_size,
                "filters": filters.to_dict(),
            },
            query="comparison",
        )
        return ComparisonResult.from_dict(result)

    def fetch_error_metrics(
            self,
            dataset_id_a: str,
            dataset_id_b: str,
            filters: FilterCriteria,
    ) -> ErrorMetricsResult:
        result = self._query(
            "/errors",
            {
                "filenameA": dataset_id_a,
                "filenameB": dataset_id_b,
                "filters": filters.to_dict(),
            },
            query="error_metrics",
        )
        return ErrorMetricsResult.from_dict(result)
