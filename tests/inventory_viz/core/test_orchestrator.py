from __future__ import annotations

import logging
from datetime import date

import pytest

from inventory_viz.core.dataset_registry import Mode
from inventory_viz.core.exceptions import (
    CapacityExceeded,
    FetchError,
    InvalidTransition,
    UploadError,
)
from inventory_viz.core.filter_state import Cancelled, Committed, FilterCriteria, TimePeriod
from inventory_viz.core.models import (
    ComparisonResult,
    DatasetRef,
    ErrorMetricsResult,
    SegmentPage,
    UploadFile,
    UploadReceipt,
)
from inventory_viz.core.notification_bus import Channel
from inventory_viz.core.orchestrator import Orchestrator, SessionPhase
from inventory_viz.views import ComparisonChartWidget, ErrorMetricsWidget, TimelineChartWidget


class FakeBackend:
    """
    In-memory backend. Queries listed in 'fail_on' raise ConnectionError;
    'hooks' maps a query name to a callable run before it answers.
    """

    def __init__(self):
        self.calls = []
        self.fail_on = set()
        self.hooks = {}

    def _enter(self, query, *args):
        self.calls.append((query,) + args)
        hook = self.hooks.get(query)
        if hook is not None:
            hook()
        if query in self.fail_on:
            if query == "upload":
                raise UploadError("rejected")
            raise ConnectionError(f"{query} unavailable")

    def upload(self, file):
        self._enter("upload", file.filename)
        return UploadReceipt(dataset_id=f"srv-{file.filename}", token="tok")

    def fetch_segments(self, dataset_id, page, page_size, filters):
        self._enter("segments", dataset_id, page, page_size, filters.to_dict())
        return SegmentPage(
            segments=[{"date": f"{page}-{i}", "inventory": i} for i in range(2)],
            countries=["FR", "US"],
            devices=["desktop", "mobile"],
        )

    def fetch_comparison(self, dataset_id_a, dataset_id_b, page, page_size, filters):
        self._enter("comparison", dataset_id_a, dataset_id_b, page, page_size, filters.to_dict())
        return ComparisonResult({"page": page, "device": filters.device})

    def fetch_error_metrics(self, dataset_id_a, dataset_id_b, filters):
        self._enter("error_metrics", dataset_id_a, dataset_id_b, filters.to_dict())
        return ErrorMetricsResult({"mae": 1.5, "device": filters.device})

    def queries(self):
        return [c[0] for c in self.calls if c[0] != "upload"]


def _file(name: str) -> UploadFile:
    return UploadFile(filename=name, content=b"date,inventory\n1-1-2021,5\n")


def _recorder(orch: Orchestrator) -> list:
    seen = []
    for channel in Channel:
        orch.bus.subscribe(channel, lambda p, c=channel: seen.append((c, p)))
    return seen


def _channels(seen) -> list:
    return [c for c, _ in seen]


def _single_session():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    orch.upload_primary(_file("a.csv"))
    return backend, orch


def _comparison_session():
    backend, orch = _single_session()
    orch.upload_comparison(_file("b.csv"))
    backend.calls.clear()
    return backend, orch


def test_end_to_end_scenario():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    seen = _recorder(orch)
    assert orch.mode is Mode.EMPTY
    assert orch.phase is SessionPhase.EMPTY

    # upload A
    ref = orch.upload_primary(_file("a.csv"))
    assert ref == DatasetRef("srv-a.csv")
    assert orch.mode is Mode.SINGLE
    assert orch.page == 0
    assert seen == [(Channel.CHART_UPDATE, [{"date": "0-0", "inventory": 0}, {"date": "0-1", "inventory": 1}])]
    assert orch.available_devices == ["desktop", "mobile"]

    # scroll
    seen.clear()
    orch.scroll()
    assert orch.page == 1
    assert _channels(seen) == [Channel.CHART_UPDATE]
    assert seen[0][1][0]["date"] == "1-0"
    assert orch.segments == seen[0][1]

    # upload B
    seen.clear()
    orch.upload_comparison(_file("b.csv"))
    assert orch.mode is Mode.COMPARISON
    assert orch.phase is SessionPhase.COMPARISON
    assert orch.page == 0
    assert _channels(seen) == [Channel.CLEAR, Channel.ERROR_UPDATE, Channel.COMPARISON_UPDATE]
    assert seen[0][1] is True
    assert seen[2][1].payload["page"] == 0

    # commit device=mobile
    seen.clear()
    orch.scroll()
    assert orch.page == 1
    seen.clear()
    orch.commit_filters(FilterCriteria(device="mobile"))
    assert orch.page == 0
    assert _channels(seen) == [
        Channel.FILTER_CHANGE,
        Channel.CLEAR,
        Channel.ERROR_UPDATE,
        Channel.COMPARISON_UPDATE,
    ]
    assert seen[0][1] == FilterCriteria(device="mobile")
    assert seen[2][1].payload["device"] == "mobile"
    assert seen[3][1].payload == {"page": 0, "device": "mobile"}
    assert orch.filtered is True


def test_failed_primary_fetch_leaves_state_and_publishes_nothing():
    backend = FakeBackend()
    backend.fail_on.add("segments")
    orch = Orchestrator(backend)
    seen = _recorder(orch)

    with pytest.raises(FetchError):
        orch.upload_primary(_file("a.csv"))

    assert orch.mode is Mode.EMPTY
    assert orch.phase is SessionPhase.EMPTY
    assert seen == []

    # retrying the same operation is safe
    backend.fail_on.clear()
    orch.upload_primary(_file("a.csv"))
    assert orch.datasets == (DatasetRef("srv-a.csv"),)
    assert _channels(seen) == [Channel.CHART_UPDATE]


def test_failed_scroll_does_not_advance_cursor():
    backend, orch = _single_session()
    seen = _recorder(orch)
    before = orch.segments

    backend.fail_on.add("segments")
    with pytest.raises(FetchError):
        orch.scroll()

    assert orch.page == 0
    assert orch.segments == before
    assert seen == []

    backend.fail_on.clear()
    orch.scroll()
    assert orch.page == 1


def test_failed_commit_keeps_previous_filters_and_publishes_nothing():
    backend, orch = _comparison_session()
    orch.scroll()
    seen = _recorder(orch)

    backend.fail_on.add("error_metrics")
    with pytest.raises(FetchError):
        orch.commit_filters(FilterCriteria(device="mobile"))

    assert orch.committed_filters == FilterCriteria()
    assert orch.filtered is False
    assert orch.page == 1
    assert seen == []
    assert orch.phase is SessionPhase.COMPARISON


def test_failed_comparison_upload_can_be_retried():
    backend, orch = _single_session()
    backend.fail_on.add("comparison")

    with pytest.raises(FetchError):
        orch.upload_comparison(_file("b.csv"))
    assert orch.mode is Mode.SINGLE

    backend.fail_on.clear()
    orch.upload_comparison(_file("b.csv"))
    assert orch.mode is Mode.COMPARISON


def test_upload_error_mutates_nothing():
    backend, orch = _single_session()
    seen = _recorder(orch)
    backend.fail_on.add("upload")

    with pytest.raises(UploadError):
        orch.upload_comparison(_file("b.csv"))

    assert orch.mode is Mode.SINGLE
    assert orch.phase is SessionPhase.SINGLE
    assert seen == []


def test_unexpected_upload_failure_becomes_upload_error():
    backend = FakeBackend()

    def explode():
        raise OSError("disk full")

    backend.hooks["upload"] = explode
    orch = Orchestrator(backend)

    with pytest.raises(UploadError):
        orch.upload_primary(_file("a.csv"))
    assert orch.mode is Mode.EMPTY


def test_third_dataset_is_rejected_before_uploading():
    backend, orch = _comparison_session()

    with pytest.raises(CapacityExceeded):
        orch.upload_comparison(_file("c.csv"))
    with pytest.raises(CapacityExceeded):
        orch.upload_primary(_file("c.csv"))

    assert orch.datasets == (DatasetRef("srv-a.csv"), DatasetRef("srv-b.csv"))
    assert backend.calls == []


def test_comparison_upload_needs_a_primary():
    orch = Orchestrator(FakeBackend())
    with pytest.raises(InvalidTransition):
        orch.upload_comparison(_file("b.csv"))


def test_new_primary_replaces_the_old_one():
    backend, orch = _single_session()
    orch.scroll()

    orch.upload_primary(_file("c.csv"))

    assert orch.datasets == (DatasetRef("srv-c.csv"),)
    assert orch.page == 0


def test_scroll_in_comparison_skips_error_metrics_and_clear():
    backend, orch = _comparison_session()
    seen = _recorder(orch)

    orch.scroll()

    assert orch.page == 1
    assert backend.queries() == ["comparison"]
    assert _channels(seen) == [Channel.COMPARISON_UPDATE]


def test_scroll_without_datasets_is_ignored():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    orch.scroll()
    assert orch.page == 0
    assert backend.calls == []


def test_single_mode_commit_resets_cursor_and_refetches():
    backend, orch = _single_session()
    orch.scroll()
    orch.scroll()
    seen = _recorder(orch)
    backend.calls.clear()

    criteria = FilterCriteria(countries={"US"}, from_date=date(2021, 1, 1), period=TimePeriod.DAY)
    orch.commit_filters(criteria)

    assert orch.page == 0
    assert _channels(seen) == [Channel.FILTER_CHANGE, Channel.CLEAR, Channel.CHART_UPDATE]
    assert backend.calls == [("segments", "srv-a.csv", 0, 8, criteria.to_dict())]


def test_commit_without_datasets_only_announces():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    seen = _recorder(orch)

    orch.commit_filters(FilterCriteria(device="mobile"))

    assert _channels(seen) == [Channel.FILTER_CHANGE, Channel.CLEAR]
    assert backend.calls == []
    assert orch.committed_filters.device == "mobile"


def test_cancelled_filter_edit_discards_draft():
    backend, orch = _single_session()
    seen = _recorder(orch)
    backend.calls.clear()

    draft = orch.begin_filter_edit()
    assert orch.phase is SessionPhase.AWAITING_FILTERS
    draft.device = "tablet"

    orch.apply_filter_outcome(Cancelled())

    assert orch.draft_filters == FilterCriteria()
    assert orch.committed_filters == FilterCriteria()
    assert orch.phase is SessionPhase.SINGLE
    assert seen == []
    assert backend.calls == []


def test_open_filters_runs_prompt_with_committed_draft():
    backend, orch = _single_session()
    orch.commit_filters(FilterCriteria(device="desktop"))
    prompted = []

    def prompt(draft):
        prompted.append(draft.copy())
        draft.countries.add("FR")
        return Committed(draft)

    orch.open_filters(prompt)

    assert prompted == [FilterCriteria(device="desktop")]
    assert orch.committed_filters == FilterCriteria(device="desktop", countries={"FR"})


def test_commit_filters_without_argument_uses_draft():
    backend, orch = _single_session()
    draft = orch.begin_filter_edit()
    draft.device = "mobile"

    orch.commit_filters()

    assert orch.committed_filters.device == "mobile"


def test_unknown_filter_outcome_is_rejected():
    orch = Orchestrator(FakeBackend())
    with pytest.raises(TypeError):
        orch.apply_filter_outcome("ok")


def test_phase_while_uploading():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    phases = []
    backend.hooks["upload"] = lambda: phases.append(orch.phase)

    orch.upload_primary(_file("a.csv"))
    orch.upload_comparison(_file("b.csv"))

    assert phases == [SessionPhase.AWAITING_PRIMARY_UPLOAD, SessionPhase.AWAITING_COMPARISON_UPLOAD]


def test_stale_response_is_dropped_silently():
    backend, orch = _single_session()
    seen = _recorder(orch)

    # state moves on while the page request is in flight
    backend.hooks["segments"] = lambda: orch._cursor.advance()
    orch.scroll()

    assert seen == []


def test_operation_requested_by_a_subscriber_is_queued():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    pages = []

    def on_chart(segments):
        pages.append(orch.page)
        if len(pages) == 1:
            assert orch.scroll() is None

    orch.bus.subscribe(Channel.CHART_UPDATE, on_chart)
    orch.upload_primary(_file("a.csv"))

    # the queued scroll ran after the upload finished, not inside it
    assert pages == [0, 1]
    assert orch.page == 1
    assert backend.queries() == ["segments", "segments"]


def test_reset_session_clears_everything():
    backend, orch = _comparison_session()
    orch.commit_filters(FilterCriteria(device="mobile"))
    seen = _recorder(orch)

    orch.reset_session()

    assert orch.mode is Mode.EMPTY
    assert orch.page == 0
    assert orch.committed_filters == FilterCriteria()
    assert orch.segments == []
    assert orch.has_displayed_data is False
    assert seen == [(Channel.CLEAR, True)]

    orch.upload_primary(_file("c.csv"))
    assert orch.mode is Mode.SINGLE


def test_upload_logs_at_info_level(caplog):
    caplog.set_level(logging.INFO)
    orch = Orchestrator(FakeBackend())

    ref = orch.upload_primary(_file("a.csv"))

    assert ref == DatasetRef("srv-a.csv")
    record = next(r for r in caplog.records if r.getMessage() == "Uploading dataset")
    assert record.upload_name == "a.csv"


def test_scroll_settles_phase_left_by_an_abandoned_filter_edit():
    backend, orch = _single_session()
    orch.begin_filter_edit()
    assert orch.phase is SessionPhase.AWAITING_FILTERS

    orch.scroll()

    assert orch.phase is SessionPhase.SINGLE


def test_failed_comparison_step_republishes_restored_single_state():
    backend, orch = _single_session()
    timeline, errors = TimelineChartWidget(), ErrorMetricsWidget()
    timeline.attach(orch.bus)
    errors.attach(orch.bus)
    seen = _recorder(orch)
    backend.fail_on.add("comparison")

    with pytest.raises(FetchError):
        orch.upload_comparison(_file("b.csv"))

    # clear and error-update went out before the comparison query failed
    assert _channels(seen) == [
        Channel.CLEAR,
        Channel.ERROR_UPDATE,
        Channel.FILTER_CHANGE,
        Channel.CLEAR,
        Channel.CHART_UPDATE,
    ]
    assert orch.mode is Mode.SINGLE
    assert orch.error_metrics is None
    assert timeline.payload == orch.segments
    assert errors.payload is None


def test_failed_comparison_step_after_commit_republishes_previous_results():
    backend, orch = _comparison_session()
    before_errors, before_comparison = orch.error_metrics, orch.comparison
    errors, comparison = ErrorMetricsWidget(), ComparisonChartWidget()
    errors.attach(orch.bus)
    comparison.attach(orch.bus)
    seen = _recorder(orch)
    backend.fail_on.add("comparison")

    with pytest.raises(FetchError):
        orch.commit_filters(FilterCriteria(device="mobile"))

    assert _channels(seen) == [
        Channel.FILTER_CHANGE,
        Channel.CLEAR,
        Channel.ERROR_UPDATE,
        Channel.FILTER_CHANGE,
        Channel.CLEAR,
        Channel.ERROR_UPDATE,
        Channel.COMPARISON_UPDATE,
    ]
    assert seen[3][1] == FilterCriteria()
    assert orch.committed_filters == FilterCriteria()
    assert errors.payload is before_errors
    assert comparison.payload is before_comparison


def test_crashing_queued_operation_does_not_block_the_rest():
    backend = FakeBackend()
    orch = Orchestrator(backend)
    calls = []

    def on_chart(segments):
        calls.append(orch.page)
        if len(calls) == 1:
            orch.apply_filter_outcome("not an outcome")
            orch.scroll()

    orch.bus.subscribe(Channel.CHART_UPDATE, on_chart)
    ref = orch.upload_primary(_file("a.csv"))

    assert ref == DatasetRef("srv-a.csv")
    assert calls == [0, 1]
    assert orch.page == 1
