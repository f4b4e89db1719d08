from __future__ import annotations

import base64
from datetime import date

import pytest

from inventory_viz.core.exceptions import UploadError
from inventory_viz.core.filter_state import FilterCriteria, TimePeriod
from inventory_viz.ui.helpers import (
    criteria_from_inputs,
    decode_upload,
    dropdown_options,
    inputs_from_criteria,
)


def _data_url(raw: bytes, mime: str = "text/csv") -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode()}"


def test_decode_upload_reads_data_url():
    file = decode_upload(_data_url(b"date,inventory\n1-1-2021,3\n"), "a.csv")

    assert file.filename == "a.csv"
    assert file.content == b"date,inventory\n1-1-2021,3\n"
    assert file.content_type == "text/csv"


def test_decode_upload_defaults_name_and_type():
    file = decode_upload(_data_url(b"x", mime=""), None)
    assert file.filename == "upload.csv"
    assert file.content_type == "text/csv"


@pytest.mark.parametrize("contents", ["no comma here", "data:text/csv;base64,@@@"])
def test_decode_upload_rejects_corrupted_payloads(contents):
    with pytest.raises(UploadError):
        decode_upload(contents, "a.csv")


def test_criteria_from_inputs():
    criteria = criteria_from_inputs("mobile", ["US", "FR"], "1-5-2021", "", "month")

    assert criteria == FilterCriteria(
        device="mobile",
        countries={"US", "FR"},
        from_date=date(2021, 1, 5),
        period=TimePeriod.MONTH,
    )


def test_blank_inputs_give_empty_criteria():
    assert criteria_from_inputs("", None, None, "", None).is_empty()


@pytest.mark.parametrize(
    "from_text, to_text",
    [("13-1-2021", ""), ("2021-01-01", ""), ("2-1-2021", "1-1-2021")],
)
def test_criteria_from_inputs_rejects_bad_dates(from_text, to_text):
    with pytest.raises(ValueError):
        criteria_from_inputs(None, [], from_text, to_text, None)


def test_inputs_from_criteria_fills_modal_fields():
    criteria = FilterCriteria(countries={"US", "DE"}, to_date=date(2021, 12, 31), period=TimePeriod.DAY)
    assert inputs_from_criteria(criteria) == (None, ["DE", "US"], "", "12-31-2021", "day")


def test_dropdown_options_keep_selected_values():
    options = dropdown_options(["US", "FR"], ["DE", "US"])
    assert [o["value"] for o in options] == ["US", "FR", "DE"]
