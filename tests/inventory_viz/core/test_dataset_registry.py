from __future__ import annotations

import pytest

from inventory_viz.core.dataset_registry import DatasetRegistry, Mode
from inventory_viz.core.exceptions import CapacityExceeded
from inventory_viz.core.models import DatasetRef


def test_mode_follows_dataset_count():
    reg = DatasetRegistry()
    assert reg.mode() is Mode.EMPTY
    assert reg.primary() is None
    assert reg.secondary() is None

    reg.add(DatasetRef("a.csv"))
    assert reg.mode() is Mode.SINGLE
    assert reg.primary() == DatasetRef("a.csv")
    assert reg.secondary() is None

    reg.add(DatasetRef("b.csv"))
    assert reg.mode() is Mode.COMPARISON
    assert reg.secondary() == DatasetRef("b.csv")
    assert reg.ids() == ("a.csv", "b.csv")


def test_third_dataset_raises_and_keeps_existing():
    reg = DatasetRegistry()
    reg.add(DatasetRef("a.csv"))
    reg.add(DatasetRef("b.csv"))

    with pytest.raises(CapacityExceeded):
        reg.add(DatasetRef("c.csv"))

    assert list(reg) == [DatasetRef("a.csv"), DatasetRef("b.csv")]
    assert reg.mode() is Mode.COMPARISON


def test_snapshot_restore_and_clear():
    reg = DatasetRegistry()
    reg.add(DatasetRef("a.csv"))
    saved = reg.snapshot()

    reg.add(DatasetRef("b.csv"))
    reg.restore(saved)
    assert reg.ids() == ("a.csv",)

    reg.clear()
    assert len(reg) == 0
    assert reg.mode() is Mode.EMPTY
