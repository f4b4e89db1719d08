from __future__ import annotations

from datetime import date

import pytest

from inventory_viz.core.filter_state import (
    FilterCriteria,
    FilterState,
    TimePeriod,
    format_filter_date,
    parse_filter_date,
)


def _criteria(**kwargs) -> FilterCriteria:
    defaults = dict(
        device="mobile",
        countries={"US", "FR"},
        from_date=date(2021, 1, 5),
        to_date=date(2021, 3, 14),
        period=TimePeriod.WEEK,
    )
    defaults.update(kwargs)
    return FilterCriteria(**defaults)


def test_commit_copies_draft_into_committed():
    st = FilterState()
    draft = st.begin_edit()
    draft.device = "mobile"
    draft.countries.add("US")

    committed = st.commit()

    assert committed == FilterCriteria(device="mobile", countries={"US"})
    assert st.committed == st.draft
    assert st.filtered is True


def test_discard_restores_draft_from_committed():
    st = FilterState(_criteria())
    draft = st.begin_edit()
    draft.device = "desktop"
    draft.countries.clear()

    st.discard()

    assert st.draft == _criteria()
    assert st.committed == _criteria()


@pytest.mark.parametrize(
    "edits",
    [
        [{"device": "mobile"}, {"device": None}],
        [{"countries": {"DE"}}, {"period": TimePeriod.MONTH}, {"countries": set()}],
        [{"from_date": date(2020, 2, 29), "to_date": date(2020, 3, 1)}],
    ],
)
def test_commit_discard_round_trip_law(edits):
    st = FilterState()
    for fields in edits:
        draft = st.begin_edit()
        for key, value in fields.items():
            setattr(draft, key, value)
        expected = draft.copy()
        assert st.commit() == expected
        assert st.committed == expected

        # an abandoned edit never leaks into committed
        draft = st.begin_edit()
        draft.device = "tablet"
        before = st.committed
        st.discard()
        assert st.draft == before
        assert st.committed == before


def test_committed_accessor_returns_copy():
    st = FilterState(_criteria())
    snapshot = st.committed
    snapshot.countries.add("JP")
    assert "JP" not in st.committed.countries


def test_filtered_flag_false_when_everything_cleared():
    st = FilterState(_criteria())
    assert st.filtered is True

    st.replace_draft(FilterCriteria())
    st.commit()

    assert st.filtered is False


def test_filter_date_text_is_month_day_year():
    assert parse_filter_date("3-14-2021") == date(2021, 3, 14)
    assert format_filter_date(date(2021, 3, 4)) == "3-4-2021"
    assert parse_filter_date("") is None
    assert parse_filter_date(None) is None
    assert format_filter_date(None) is None


@pytest.mark.parametrize("bad", ["2021-03-14T00", "14/3/2021", "13-1-2021", "a-b-c"])
def test_malformed_filter_date_raises(bad):
    with pytest.raises(ValueError):
        parse_filter_date(bad)


def test_criteria_to_from_dict_roundtrip():
    crit = _criteria()
    raw = crit.to_dict()

    assert raw == {
        "device": "mobile",
        "countries": ["FR", "US"],
        "fromDate": "1-5-2021",
        "toDate": "3-14-2021",
        "timePeriod": "week",
    }
    assert FilterCriteria.from_dict(raw) == crit


def test_empty_criteria_serialises_to_nulls():
    assert FilterCriteria().is_empty()
    assert FilterCriteria().to_dict() == {
        "device": None,
        "countries": [],
        "fromDate": None,
        "toDate": None,
        "timePeriod": None,
    }


def test_time_period_labels():
    assert [p.label for p in TimePeriod] == ["Daily", "Weekly", "Monthly"]
