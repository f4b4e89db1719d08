from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

# One timeline data point as decoded from the backend. The core never looks inside.
Segment = Mapping[str, Any]


@dataclass(frozen=True)
class DatasetRef:
    """
    Server-side identifier of an uploaded dataset (the filename the backend assigned).
    """
    id: str


@dataclass(frozen=True)
class UploadFile:
    filename: str
    content: bytes
    content_type: str = "text/csv"


@dataclass(frozen=True)
class UploadReceipt:
    dataset_id: str
    token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UploadReceipt:
        return cls(dataset_id=str(data["filename"]), token=data.get("token"))


@dataclass
class SegmentPage:
    """
    One page of timeline segments for a single dataset, plus the filter
    vocabularies (countries/devices) the backend found in that dataset.
    """
    segments: List[Segment] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    devices: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SegmentPage:
        return cls(
            segments=[dict(s) for s in data.get("data", [])],
            countries=[str(c) for c in data.get("countries", [])],
            devices=[str(d) for d in data.get("devices", [])],
        )


@dataclass
class ComparisonResult:
    """Paired timeline data for two datasets. Shape is owned by the comparison widget."""
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ComparisonResult:
        return cls(payload=dict(data))


@dataclass
class ErrorMetricsResult:
    """Range-wide error metrics between two datasets."""
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ErrorMetricsResult:
        return cls(payload=dict(data))
