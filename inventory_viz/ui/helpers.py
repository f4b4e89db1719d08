from __future__ import annotations

import base64
import binascii
from typing import Iterable, List, Optional, Tuple

from inventory_viz.core.exceptions import UploadError
from inventory_viz.core.filter_state import (
    FilterCriteria,
    TimePeriod,
    format_filter_date,
    parse_filter_date,
)
from inventory_viz.core.models import UploadFile

MAX_UPLOAD_BYTES = 200_000_000


def decode_upload(contents: str, filename: Optional[str]) -> UploadFile:
    """
    Turn a dcc.Upload 'contents' data URL into an UploadFile.

    Raises:
        UploadError: if the payload is not valid base64 or is too large
    """
    filename = filename or "upload.csv"
    try:
        header, content_string = contents.split(",", 1)
        decoded = base64.b64decode(content_string, validate=True)
    except (ValueError, binascii.Error) as e:
        raise UploadError(f"The uploaded file '{filename}' appears to be corrupted.") from e

    if len(decoded) > MAX_UPLOAD_BYTES:
        raise UploadError(f"The uploaded file '{filename}' is larger than {MAX_UPLOAD_BYTES} bytes.")

    content_type = header[len("data:"):].split(";", 1)[0] if header.startswith("data:") else ""
    return UploadFile(filename=filename, content=decoded, content_type=content_type or "text/csv")


def criteria_from_inputs(
        device: Optional[str],
        countries: Optional[Iterable[str]],
        from_text: Optional[str],
        to_text: Optional[str],
        period: Optional[str],
) -> FilterCriteria:
    """
    Build criteria from the filter modal fields.

    Raises:
        ValueError: if a date is not M-D-YYYY or the range is reversed
    """
    from_date = parse_filter_date(from_text)
    to_date = parse_filter_date(to_text)
    if from_date and to_date and from_date > to_date:
        raise ValueError("'From' date is after 'To' date")

    return FilterCriteria(
        device=device or None,
        countries=set(countries or []),
        from_date=from_date,
        to_date=to_date,
        period=TimePeriod(period) if period else None,
    )


def inputs_from_criteria(criteria: FilterCriteria) -> Tuple[Optional[str], List[str], str, str, Optional[str]]:
    return (
        criteria.device,
        sorted(criteria.countries),
        format_filter_date(criteria.from_date) or "",
        format_filter_date(criteria.to_date) or "",
        criteria.period.value if criteria.period is not None else None,
    )


def dropdown_options(values: Iterable[str], selected: Iterable[str] = ()) -> List[dict]:
    """Options for a dropdown; selected values stay available even if the backend stopped listing them."""
    merged = list(dict.fromkeys(list(values) + [v for v in selected if v]))
    return [{"label": v, "value": v} for v in merged]
