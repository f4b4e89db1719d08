from __future__ import annotations

from typing import Callable, Protocol

from .filter_state import FilterCriteria, FilterOutcome
from .models import (
    ComparisonResult,
    ErrorMetricsResult,
    SegmentPage,
    UploadFile,
    UploadReceipt,
)


class InventoryBackend(Protocol):
    """
    Network/query collaborator used by the orchestrator.

    Implementations raise UploadError from upload() and may raise anything from the
    fetch methods; the query router converts those failures to FetchError.
    """

    def upload(self, file: UploadFile) -> UploadReceipt:
        ...

    def fetch_segments(
            self,
            dataset_id: str,
            page: int,
            page_size: int,
            filters: FilterCriteria,
    ) -> SegmentPage:
        ...

    def fetch_comparison(
            self,
            dataset_id_a: str,
            dataset_id_b: str,
            page: int,
            page_size: int,
            filters: FilterCriteria,
    ) -> ComparisonResult:
        ...

    def fetch_error_metrics(
            self,
            dataset_id_a: str,
            dataset_id_b: str,
            filters: FilterCriteria,
    ) -> ErrorMetricsResult:
        ...


# Modal collaborator: receives the draft to pre-fill, returns Committed(criteria) or Cancelled().
FilterPrompt = Callable[[FilterCriteria], FilterOutcome]
