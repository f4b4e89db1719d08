from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, List, Optional, Tuple

from .contracts import FilterPrompt, InventoryBackend
from .dataset_registry import DatasetRegistry, Mode
from .exceptions import (
    CapacityExceeded,
    InvalidTransition,
    InventoryVizError,
    StaleResponse,
    UploadError,
)
from .filter_state import Cancelled, Committed, FilterCriteria, FilterOutcome, FilterState
from .models import (
    ComparisonResult,
    DatasetRef,
    ErrorMetricsResult,
    Segment,
    SegmentPage,
    UploadFile,
    UploadReceipt,
)
from .notification_bus import Channel, Notification, NotificationBus
from .pagination import PAGE_SIZE, PaginationCursor
from .query_router import (
    ComparisonFetch,
    ErrorMetricsFetch,
    QueryRouter,
    QueryStep,
    SegmentFetch,
    Trigger,
    plan_queries,
)

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    EMPTY = "empty"
    AWAITING_PRIMARY_UPLOAD = "awaiting_primary_upload"
    SINGLE = "single"
    AWAITING_FILTERS = "awaiting_filters"
    AWAITING_COMPARISON_UPLOAD = "awaiting_comparison_upload"
    COMPARISON = "comparison"


_SETTLED_PHASE = {
    Mode.EMPTY: SessionPhase.EMPTY,
    Mode.SINGLE: SessionPhase.SINGLE,
    Mode.COMPARISON: SessionPhase.COMPARISON,
}


@dataclass(frozen=True)
class _StateSnapshot:
    """Everything a failed transition has to put back."""
    datasets: Tuple[DatasetRef, ...]
    page: int
    committed: FilterCriteria
    filtered: bool
    segments: Tuple[Segment, ...]
    countries: Tuple[str, ...]
    devices: Tuple[str, ...]
    has_displayed_data: bool
    comparison: Optional[ComparisonResult]
    error_metrics: Optional[ErrorMetricsResult]


class Orchestrator:
    """
    Session state machine of the visualizer.

    Reacts to uploads, filter modal outcomes and scroll events, decides which backend
    queries to run through the QueryRouter and broadcasts the results on the
    NotificationBus. One instance per user session; it owns the dataset registry,
    the filter state, the page cursor and the current segment page.

    Concurrency:
    - every state-mutating operation runs to completion (backend calls included) under
      a per-instance lock, so calls from other threads wait their turn
    - an operation requested from inside a subscriber callback, while another operation
      is running on the same thread, is queued and runs right after it; such calls
      return None
    - a response whose request snapshot (datasets, page, committed filters, generation)
      is no longer current is dropped without publishing

    Failures:
    - UploadError / FetchError leave datasets, page, filters and segments exactly as they
      were before the call, so re-invoking the same operation is safe
    - if the first query of a transition fails nothing is published at all
    - if a later query fails (second step of a comparison refresh), widgets already saw
      part of the new state; the restored state is published again so they match it
    """

    def __init__(
            self,
            backend: InventoryBackend,
            bus: Optional[NotificationBus] = None,
            page_size: int = PAGE_SIZE,
    ):
        self._backend = backend
        self.bus = bus if bus is not None else NotificationBus()
        self._router = QueryRouter(backend, self.bus)

        self._registry = DatasetRegistry()
        self._filters = FilterState()
        self._cursor = PaginationCursor(page_size)

        self._segments: List[Segment] = []
        self._countries: List[str] = []
        self._devices: List[str] = []
        self._has_displayed_data = False
        self._comparison: Optional[ComparisonResult] = None
        self._error_metrics: Optional[ErrorMetricsResult] = None

        self._phase = SessionPhase.EMPTY
        self._generation = 0
        # set once the running transition has published anything
        self._announced = False

        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self._pending: Deque[Tuple[str, Callable[..., Any], tuple]] = deque()

    # ------------------------------------------------------------------
    # Read-only accessors for presentation components
    # ------------------------------------------------------------------
    @property
    def mode(self) -> Mode:
        return self._registry.mode()

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def page(self) -> int:
        return self._cursor.value

    @property
    def page_size(self) -> int:
        return self._cursor.page_size

    @property
    def datasets(self) -> Tuple[DatasetRef, ...]:
        return self._registry.snapshot()

    @property
    def committed_filters(self) -> FilterCriteria:
        return self._filters.committed

    @property
    def draft_filters(self) -> FilterCriteria:
        return self._filters.draft.copy()

    @property
    def filtered(self) -> bool:
        return self._filters.filtered

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    @property
    def available_countries(self) -> List[str]:
        return list(self._countries)

    @property
    def available_devices(self) -> List[str]:
        return list(self._devices)

    @property
    def has_displayed_data(self) -> bool:
        return self._has_displayed_data

    @property
    def comparison(self) -> Optional[ComparisonResult]:
        return self._comparison

    @property
    def error_metrics(self) -> Optional[ErrorMetricsResult]:
        return self._error_metrics

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def upload_primary(self, file: UploadFile) -> Optional[DatasetRef]:
        """
        Upload the primary dataset and show its first page.

        In single mode the new upload replaces the current primary dataset.

        Raises:
            CapacityExceeded: if a comparison dataset is already attached
            UploadError: if the upload collaborator failed
            FetchError: if the first segment page could not be fetched
        """
        return self._serialised("upload_primary", self._upload_primary, file)

    def upload_comparison(self, file: UploadFile) -> Optional[DatasetRef]:
        """
        Upload a second dataset and switch to comparison mode.

        Raises:
            InvalidTransition: if no primary dataset is registered yet
            CapacityExceeded: if two datasets are already registered
            UploadError / FetchError: as for upload_primary
        """
        return self._serialised("upload_comparison", self._upload_comparison, file)

    def scroll(self) -> None:
        """Load the next page for the current mode. No-op without datasets."""
        return self._serialised("scroll", self._scroll)

    def begin_filter_edit(self) -> Optional[FilterCriteria]:
        """Start editing filters: returns the draft, pre-filled with the committed criteria."""
        return self._serialised("begin_filter_edit", self._begin_filter_edit)

    def apply_filter_outcome(self, outcome: FilterOutcome) -> None:
        """Consume the filter modal result: Committed(criteria) re-queries, Cancelled() discards."""
        return self._serialised("apply_filter_outcome", self._apply_filter_outcome, outcome)

    def commit_filters(self, criteria: Optional[FilterCriteria] = None) -> None:
        """Commit the given criteria, or the current draft when none are given."""
        return self._serialised("commit_filters", self._commit_filters, criteria)

    def discard_filters(self) -> None:
        return self._serialised("discard_filters", self._apply_filter_outcome, Cancelled())

    def open_filters(self, prompt: FilterPrompt) -> None:
        """
        Run the whole filter modal interaction: the prompt receives the draft and
        returns Committed(criteria) or Cancelled().
        """
        return self._serialised("open_filters", self._open_filters, prompt)

    def reset_session(self) -> None:
        """Forget datasets, filters and pages, and tell widgets to clear."""
        return self._serialised("reset_session", self._reset_session)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _upload_primary(self, file: UploadFile) -> Optional[DatasetRef]:
        if self._registry.mode() is Mode.COMPARISON:
            raise CapacityExceeded("A comparison is active; reset the session before uploading a new primary dataset")

        saved = self._snapshot_state()
        self._phase = SessionPhase.AWAITING_PRIMARY_UPLOAD
        try:
            receipt = self._upload(file)
            ref = DatasetRef(receipt.dataset_id)
            self._registry.clear()
            self._registry.add(ref)
            self._cursor.reset()
            self._generation += 1
            self._run(Trigger.UPLOAD)
            return ref
        except StaleResponse:
            return None
        except Exception:
            self._roll_back(saved)
            raise
        finally:
            self._settle_phase()

    def _upload_comparison(self, file: UploadFile) -> Optional[DatasetRef]:
        mode = self._registry.mode()
        if mode is Mode.EMPTY:
            raise InvalidTransition("Upload a primary dataset before adding a comparison dataset")
        if mode is Mode.COMPARISON:
            raise CapacityExceeded("Session already compares two datasets; reset it first")

        saved = self._snapshot_state()
        self._phase = SessionPhase.AWAITING_COMPARISON_UPLOAD
        try:
            receipt = self._upload(file)
            ref = DatasetRef(receipt.dataset_id)
            self._cursor.reset()
            self._registry.add(ref)
            self._generation += 1
            self._run(
                Trigger.UPLOAD,
                announcements=[Notification(Channel.CLEAR, True)],
            )
            return ref
        except StaleResponse:
            return None
        except Exception:
            self._roll_back(saved)
            raise
        finally:
            self._settle_phase()

    def _scroll(self) -> None:
        if self._registry.mode() is Mode.EMPTY:
            logger.debug("Scroll ignored: no dataset uploaded")
            self._settle_phase()
            return

        saved = self._snapshot_state()
        try:
            self._cursor.advance()
            self._generation += 1
            self._run(Trigger.SCROLL)
        except StaleResponse:
            return
        except Exception:
            self._roll_back(saved)
            raise
        finally:
            self._settle_phase()

    def _begin_filter_edit(self) -> FilterCriteria:
        self._phase = SessionPhase.AWAITING_FILTERS
        return self._filters.begin_edit()

    def _open_filters(self, prompt: FilterPrompt) -> None:
        draft = self._begin_filter_edit()
        try:
            outcome = prompt(draft)
        except Exception:
            self._filters.discard()
            self._settle_phase()
            raise
        self._apply_filter_outcome(outcome)

    def _commit_filters(self, criteria: Optional[FilterCriteria]) -> None:
        if criteria is None:
            criteria = self._filters.draft.copy()
        self._apply_filter_outcome(Committed(criteria))

    def _apply_filter_outcome(self, outcome: FilterOutcome) -> None:
        if isinstance(outcome, Cancelled):
            self._filters.discard()
            self._settle_phase()
            logger.info("Filter edit discarded")
            return

        if not isinstance(outcome, Committed):
            raise TypeError(f"Unexpected filter outcome: {outcome!r}")

        saved = self._snapshot_state()
        try:
            self._filters.replace_draft(outcome.criteria)
            committed = self._filters.commit()
            self._cursor.reset()
            self._generation += 1
            logger.info("Filters committed", extra={"filters": committed.to_dict()})
            self._run(
                Trigger.FILTER_COMMIT,
                announcements=[
                    Notification(Channel.FILTER_CHANGE, committed),
                    Notification(Channel.CLEAR, True),
                ],
            )
        except StaleResponse:
            return
        except Exception:
            self._roll_back(saved)
            raise
        finally:
            self._settle_phase()

    def _reset_session(self) -> None:
        self._registry.clear()
        self._filters = FilterState()
        self._cursor.reset()
        self._segments = []
        self._countries = []
        self._devices = []
        self._has_displayed_data = False
        self._comparison = None
        self._error_metrics = None
        self._generation += 1
        self._settle_phase()
        logger.info("Session reset")
        self.bus.publish(Channel.CLEAR, True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _upload(self, file: UploadFile) -> UploadReceipt:
        logger.info("Uploading dataset", extra={"upload_name": file.filename, "size": len(file.content)})
        try:
            return self._backend.upload(file)
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"Upload of '{file.filename}' failed: {e}") from e

    def _run(self, trigger: Trigger, announcements: Optional[List[Notification]] = None) -> None:
        announcements = announcements or []

        def announce() -> None:
            self._announced = True
            for n in announcements:
                self.bus.publish_notification(n)

        plan = plan_queries(
            self._registry.mode(),
            self._registry.primary(),
            self._registry.secondary(),
            self._cursor.value,
            self._filters.committed,
            trigger,
            page_size=self._cursor.page_size,
        )
        if plan.is_empty():
            announce()
            return

        request_key = self._request_key()
        self._router.execute(
            plan,
            is_current=lambda: self._request_key() == request_key,
            on_result=self._apply_result,
            before_publish=announce,
        )

    def _request_key(self) -> tuple:
        return (
            self._generation,
            self._registry.ids(),
            self._cursor.value,
            self._filters.committed.to_dict(),
        )

    def _apply_result(self, step: QueryStep, result: Any) -> None:
        if isinstance(step, SegmentFetch):
            page: SegmentPage = result
            # each page replaces what is displayed, nothing accumulates
            self._segments = list(page.segments)
            self._countries = list(page.countries)
            self._devices = list(page.devices)
        elif isinstance(step, ComparisonFetch):
            self._comparison = result
        elif isinstance(step, ErrorMetricsFetch):
            self._error_metrics = result
        self._has_displayed_data = True

    def _snapshot_state(self) -> _StateSnapshot:
        self._announced = False
        return _StateSnapshot(
            datasets=self._registry.snapshot(),
            page=self._cursor.value,
            committed=self._filters.committed,
            filtered=self._filters.filtered,
            segments=tuple(self._segments),
            countries=tuple(self._countries),
            devices=tuple(self._devices),
            has_displayed_data=self._has_displayed_data,
            comparison=self._comparison,
            error_metrics=self._error_metrics,
        )

    def _restore_state(self, saved: _StateSnapshot) -> None:
        self._registry.restore(saved.datasets)
        self._cursor.restore(saved.page)
        self._filters.restore(saved.committed, saved.filtered)
        self._segments = list(saved.segments)
        self._countries = list(saved.countries)
        self._devices = list(saved.devices)
        self._has_displayed_data = saved.has_displayed_data
        self._comparison = saved.comparison
        self._error_metrics = saved.error_metrics
        self._settle_phase()

    def _roll_back(self, saved: _StateSnapshot) -> None:
        self._restore_state(saved)
        if self._announced:
            self._republish_state()

    def _republish_state(self) -> None:
        """Put widgets back in line with the current state after a partly published transition."""
        logger.info("Republishing restored state", extra={"mode": self._registry.mode().value})
        self.bus.publish(Channel.FILTER_CHANGE, self._filters.committed)
        self.bus.publish(Channel.CLEAR, True)

        mode = self._registry.mode()
        if mode is Mode.SINGLE and self._has_displayed_data:
            self.bus.publish(Channel.CHART_UPDATE, list(self._segments))
        elif mode is Mode.COMPARISON:
            if self._error_metrics is not None:
                self.bus.publish(Channel.ERROR_UPDATE, self._error_metrics)
            if self._comparison is not None:
                self.bus.publish(Channel.COMPARISON_UPDATE, self._comparison)

    def _settle_phase(self) -> None:
        self._phase = _SETTLED_PHASE[self._registry.mode()]

    def _serialised(self, name: str, fn: Callable[..., Any], *args: Any) -> Any:
        if self._owner == threading.get_ident():
            logger.info("Queueing operation behind in-flight transition", extra={"operation": name})
            self._pending.append((name, fn, args))
            return None

        with self._lock:
            self._owner = threading.get_ident()
            try:
                return fn(*args)
            finally:
                try:
                    self._drain_pending()
                finally:
                    self._owner = None

    def _drain_pending(self) -> None:
        while self._pending:
            name, fn, args = self._pending.popleft()
            try:
                fn(*args)
            except InventoryVizError:
                logger.warning("Queued operation failed", exc_info=True, extra={"operation": name})
            except Exception:
                logger.exception("Queued operation crashed", extra={"operation": name})
