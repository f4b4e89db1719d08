from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, List, Optional, Tuple, Union

from .contracts import InventoryBackend
from .dataset_registry import Mode
from .exceptions import FetchError, StaleResponse
from .filter_state import FilterCriteria
from .models import DatasetRef
from .notification_bus import Channel, Notification, NotificationBus
from .pagination import PAGE_SIZE

logger = logging.getLogger(__name__)


class Trigger(str, Enum):
    """What caused a query: scrolling only pages, everything else starts over."""
    UPLOAD = "upload"
    FILTER_COMMIT = "filter_commit"
    SCROLL = "scroll"


@dataclass(frozen=True)
class SegmentFetch:
    query: ClassVar[str] = "segments"
    channel: ClassVar[Channel] = Channel.CHART_UPDATE

    dataset_id: str
    page: int
    page_size: int
    filters: FilterCriteria

    def run(self, backend: InventoryBackend) -> Any:
        return backend.fetch_segments(self.dataset_id, self.page, self.page_size, self.filters)

    def payload(self, result: Any) -> Any:
        # chart widgets receive the segment list, not the whole page envelope
        return list(result.segments)


@dataclass(frozen=True)
class ComparisonFetch:
    query: ClassVar[str] = "comparison"
    channel: ClassVar[Channel] = Channel.COMPARISON_UPDATE

    dataset_id_a: str
    dataset_id_b: str
    page: int
    page_size: int
    filters: FilterCriteria

    def run(self, backend: InventoryBackend) -> Any:
        return backend.fetch_comparison(
            self.dataset_id_a, self.dataset_id_b, self.page, self.page_size, self.filters
        )

    def payload(self, result: Any) -> Any:
        return result


@dataclass(frozen=True)
class ErrorMetricsFetch:
    query: ClassVar[str] = "error_metrics"
    channel: ClassVar[Channel] = Channel.ERROR_UPDATE

    dataset_id_a: str
    dataset_id_b: str
    filters: FilterCriteria

    def run(self, backend: InventoryBackend) -> Any:
        return backend.fetch_error_metrics(self.dataset_id_a, self.dataset_id_b, self.filters)

    def payload(self, result: Any) -> Any:
        return result


QueryStep = Union[SegmentFetch, ComparisonFetch, ErrorMetricsFetch]


@dataclass(frozen=True)
class QueryPlan:
    trigger: Trigger
    steps: Tuple[QueryStep, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.steps


def plan_queries(
        mode: Mode,
        primary: Optional[DatasetRef],
        secondary: Optional[DatasetRef],
        page: int,
        filters: FilterCriteria,
        trigger: Trigger,
        page_size: int = PAGE_SIZE,
) -> QueryPlan:
    """
    Decide which backend queries to issue, in order.

    - empty: nothing to query
    - single: one segment page for the primary dataset
    - comparison after an upload or a filter commit: error metrics over the whole range
      first, then the comparison page; the error view must be fed before the first
      comparison update of that selection
    - comparison after a scroll: only the next comparison page, error metrics do not
      depend on the page

    Any trigger other than SCROLL takes the two-step path, so a filter commit right
    after the second upload still refreshes the error metrics.
    """
    filters = filters.copy()

    if mode is Mode.EMPTY:
        return QueryPlan(trigger=trigger)

    if mode is Mode.SINGLE:
        return QueryPlan(
            trigger=trigger,
            steps=(SegmentFetch(primary.id, page, page_size, filters),),
        )

    comparison = ComparisonFetch(primary.id, secondary.id, page, page_size, filters)
    if trigger is Trigger.SCROLL:
        return QueryPlan(trigger=trigger, steps=(comparison,))

    return QueryPlan(
        trigger=trigger,
        steps=(ErrorMetricsFetch(primary.id, secondary.id, filters), comparison),
    )


class QueryRouter:
    """
    Runs query plans against the backend and broadcasts each result on its channel.

    The router does not retry and does not touch pagination or filter state; callers
    decide what a failure means for their own state.
    """

    def __init__(self, backend: InventoryBackend, bus: NotificationBus):
        self._backend = backend
        self._bus = bus

    def execute(
            self,
            plan: QueryPlan,
            *,
            is_current: Callable[[], bool] = lambda: True,
            on_result: Optional[Callable[[QueryStep, Any], None]] = None,
            before_publish: Optional[Callable[[], None]] = None,
    ) -> List[Any]:
        """
        Execute the steps of a plan strictly in order.

        :param is_current: checked after every response; False means the request snapshot
            moved on and the response must not be published
        :param on_result: called with each successful (and current) response before it is published
        :param before_publish: called once, just before the first publish of the plan
        :return: the raw backend results, one per step

        Raises:
            FetchError: a backend call failed; later steps are not issued
            StaleResponse: a response arrived for an outdated snapshot; nothing of it was published
        """
        results: List[Any] = []
        announced = False

        for step in plan.steps:
            result = self._fetch(step)

            if not is_current():
                logger.info(
                    "Dropping stale response",
                    extra={"query": step.query, "trigger": plan.trigger.value},
                )
                raise StaleResponse(f"Stale {step.query} response")

            if not announced and before_publish is not None:
                before_publish()
            announced = True

            if on_result is not None:
                on_result(step, result)

            self._bus.publish_notification(Notification(step.channel, step.payload(result)))
            results.append(result)

        return results

    def _fetch(self, step: QueryStep) -> Any:
        logger.info(
            "Issuing query",
            extra={"query": step.query, "page": getattr(step, "page", None)},
        )
        try:
            return step.run(self._backend)
        except FetchError:
            raise
        except Exception as e:
            logger.error(
                "Query failed",
                extra={"query": step.query, "error": str(e)},
            )
            raise FetchError(f"{step.query} query failed: {e}", query=step.query) from e
