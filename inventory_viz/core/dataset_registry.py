from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .exceptions import CapacityExceeded
from .models import DatasetRef

logger = logging.getLogger(__name__)

MAX_DATASETS = 2


class Mode(str, Enum):
    EMPTY = "empty"
    SINGLE = "single"
    COMPARISON = "comparison"


_MODE_BY_COUNT = {0: Mode.EMPTY, 1: Mode.SINGLE, 2: Mode.COMPARISON}


class DatasetRegistry:
    """
    Ordered list of the datasets uploaded in this session.

    Index 0 is the primary dataset, index 1 the comparison target. The operating
    mode is derived from how many datasets are registered and cannot be set.
    """

    def __init__(self):
        self._refs: List[DatasetRef] = []

    def add(self, ref: DatasetRef) -> None:
        """
        Append a dataset.

        Raises:
            CapacityExceeded: if a primary and a comparison dataset are already registered
        """
        if len(self._refs) >= MAX_DATASETS:
            raise CapacityExceeded(
                f"Cannot attach '{ref.id}': session already holds {MAX_DATASETS} datasets"
            )
        self._refs.append(ref)
        logger.info("Dataset registered", extra={"dataset": ref.id, "position": len(self._refs) - 1})

    def mode(self) -> Mode:
        return _MODE_BY_COUNT[len(self._refs)]

    def primary(self) -> Optional[DatasetRef]:
        return self._refs[0] if self._refs else None

    def secondary(self) -> Optional[DatasetRef]:
        return self._refs[1] if len(self._refs) > 1 else None

    def ids(self) -> Tuple[str, ...]:
        return tuple(r.id for r in self._refs)

    def clear(self) -> None:
        self._refs.clear()

    def snapshot(self) -> Tuple[DatasetRef, ...]:
        return tuple(self._refs)

    def restore(self, snapshot: Tuple[DatasetRef, ...]) -> None:
        self._refs = list(snapshot)

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[DatasetRef]:
        return iter(list(self._refs))
