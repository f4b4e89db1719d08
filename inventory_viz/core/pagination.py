from __future__ import annotations

PAGE_SIZE = 8


class PaginationCursor:
    """Zero-based page counter used verbatim in paginated queries."""

    def __init__(self, page_size: int = PAGE_SIZE):
        self.page_size = page_size
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def reset(self) -> None:
        self._value = 0

    def advance(self) -> None:
        self._value += 1

    def restore(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"Page index must be non-negative, got {value}")
        self._value = value
