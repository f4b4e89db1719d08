from __future__ import annotations

from inventory_viz.core.models import SegmentPage, UploadFile, UploadReceipt
from inventory_viz.core.notification_bus import Channel
from inventory_viz.services.session_service import TokenStore
from inventory_viz.services.storage import InMemoryStorage
from inventory_viz.ui.config import AppConfig
from inventory_viz.ui.session_pool import SessionPool, new_session_id


class _Backend:
    def __init__(self, token_store: TokenStore):
        self.token_store = token_store
        self.closed = False

    def close(self):
        self.closed = True

    def upload(self, file: UploadFile) -> UploadReceipt:
        return UploadReceipt(dataset_id=f"srv-{file.filename}")

    def fetch_segments(self, dataset_id, page, page_size, filters):
        return SegmentPage(segments=[{"date": "1-1-2021", "inventory": page}], countries=["US"], devices=[])

    def fetch_comparison(self, dataset_id_a, dataset_id_b, page, page_size, filters):
        raise AssertionError("not used")

    def fetch_error_metrics(self, dataset_id_a, dataset_id_b, filters):
        raise AssertionError("not used")


def _pool(max_sessions=10):
    built = []

    def factory(token_store):
        backend = _Backend(token_store)
        built.append(backend)
        return backend

    config = AppConfig(page_size=4, max_sessions=max_sessions)
    return SessionPool(config, InMemoryStorage(), backend_factory=factory), built


def test_sessions_are_built_once_per_id():
    pool, built = _pool()

    first = pool.get("abc")
    again = pool.get("abc")
    other = pool.get("xyz")

    assert first is again
    assert other is not first
    assert len(pool) == 2
    assert len(built) == 2
    assert built[0].token_store.path == "abc/token"
    assert first.orchestrator.page_size == 4


def test_widgets_follow_their_own_orchestrator():
    pool, _ = _pool()
    mine = pool.get("abc")
    theirs = pool.get("xyz")

    mine.orchestrator.upload_primary(UploadFile("a.csv", b""))

    assert mine.timeline.payload == [{"date": "1-1-2021", "inventory": 0}]
    assert theirs.timeline.payload is None


def test_drop_detaches_widgets():
    pool, _ = _pool()
    session = pool.get("abc")

    pool.drop("abc")
    pool.drop("abc")

    assert len(pool) == 0
    bus = session.orchestrator.bus
    assert all(bus.subscriber_count(channel) == 0 for channel in Channel)


def test_new_session_ids_are_unique():
    assert new_session_id() != new_session_id()


def test_least_recently_used_session_is_evicted():
    pool, built = _pool(max_sessions=2)
    pool.get("s1")
    pool.get("s2")
    pool.get("s1")

    pool.get("s3")

    assert len(pool) == 2
    assert "s1" in pool and "s3" in pool
    assert "s2" not in pool
    assert built[1].closed
    assert not built[0].closed


def test_drop_closes_backend_and_forgets_token():
    pool, built = _pool()
    session = pool.get("abc")
    session.token_store.set("tok")

    pool.drop("abc")

    assert built[0].closed
    assert session.token_store.get() is None


def test_backend_is_built_without_holding_the_pool_lock():
    lock_states = []

    def factory(token_store):
        lock_states.append(pool._lock.locked())
        return _Backend(token_store)

    pool = SessionPool(AppConfig(), InMemoryStorage(), backend_factory=factory)
    pool.get("abc")

    assert lock_states == [False]
