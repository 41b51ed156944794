import threading

import pytest

from services.errors import NotFound, TransactionConflict
from services.store import (
    COMPLAINTS,
    SERVER_TIMESTAMP,
    USERS,
    ArrayRemove,
    ArrayUnion,
    Increment,
    InMemoryStore,
    activity_path,
    document_kind,
)


def test_reads_return_copies_with_id(store):
    doc_id = store.add("things", {"tags": ["a"]})
    first = store.get("things", doc_id)
    first["tags"].append("b")
    assert store.get("things", doc_id) == {"id": doc_id, "tags": ["a"]}


def test_transforms_resolve_on_write(store, clock):
    store.set("things", "t1", {"count": 1, "tags": ["a"], "at": SERVER_TIMESTAMP})
    store.update("things", "t1", {"count": Increment(2), "tags": ArrayUnion(["a", "b"])})
    store.update("things", "t1", {"tags": ArrayRemove(["a"]), "missing": Increment(-1)})
    doc = store.get("things", "t1")
    assert doc["count"] == 3
    assert doc["tags"] == ["b"]
    assert doc["missing"] == -1
    assert doc["at"] == clock.now


def test_server_timestamps_strictly_increase(store, clock):
    store.set("things", "a", {"at": SERVER_TIMESTAMP})
    store.set("things", "b", {"at": SERVER_TIMESTAMP})
    assert store.get("things", "b")["at"] > store.get("things", "a")["at"]


def test_update_missing_document_raises(store):
    with pytest.raises(NotFound):
        store.update("things", "nope", {"count": 1})


def test_missing_document_errors_name_a_single_document(store):
    with pytest.raises(NotFound) as excinfo:
        store.update(USERS, "ghost", {"xp": Increment(5)})
    assert excinfo.value.kind == "user"

    def _fn(transaction):
        transaction.update(COMPLAINTS, "ghost", {"upvotes": Increment(1)})

    with pytest.raises(NotFound) as excinfo:
        store.run_transaction(_fn)
    assert excinfo.value.kind == "complaint"


def test_document_kind():
    assert document_kind(activity_path("c1")) == "activity entry"
    assert document_kind("things") == "document"


def test_query_filters_orders_and_limits(store):
    for name, score in [("a", 3), ("b", 1), ("c", 2)]:
        store.set("scores", name, {"name": name, "score": score, "tags": [name]})
    store.set("scores", "unscored", {"name": "unscored"})

    ranked = store.query("scores", order_by="score", descending=True, limit=2)
    assert [doc["name"] for doc in ranked] == ["a", "c"]
    assert [doc["name"] for doc in store.query("scores", filters=[("score", ">=", 2)])] == ["a", "c"]
    assert [doc["name"] for doc in store.query("scores", filters=[("tags", "array-contains", "b")])] == ["b"]
    assert len(store.query("scores", order_by="score")) == 3


def test_transaction_writes_are_all_or_nothing(store):
    store.set("things", "t1", {"count": 0})

    def _fn(transaction):
        transaction.update("things", "t1", {"count": Increment(1)})
        transaction.update("things", "ghost", {"count": Increment(1)})

    with pytest.raises(NotFound):
        store.run_transaction(_fn)
    assert store.get("things", "t1")["count"] == 0


def test_transaction_retries_after_conflicting_write(store):
    store.set("things", "t1", {"count": 0})
    attempts = []

    def _fn(transaction):
        current = transaction.get("things", "t1")["count"]
        if not attempts:
            # Someone else commits between our read and our commit.
            store.update("things", "t1", {"count": Increment(10)})
        attempts.append(current)
        transaction.update("things", "t1", {"count": current + 1})

    store.run_transaction(_fn)
    assert attempts == [0, 10]
    assert store.get("things", "t1")["count"] == 11


def test_transaction_gives_up_after_max_attempts(clock):
    store = InMemoryStore(clock=clock, max_attempts=3)
    store.set("things", "t1", {"count": 0})
    attempts = []

    def _fn(transaction):
        transaction.get("things", "t1")
        attempts.append(1)
        store.update("things", "t1", {"count": Increment(1)})
        transaction.update("things", "t1", {"count": -1})

    with pytest.raises(TransactionConflict):
        store.run_transaction(_fn)
    assert len(attempts) == 3
    assert store.get("things", "t1")["count"] == 3


def test_concurrent_read_modify_write_loses_no_updates(clock):
    store = InMemoryStore(clock=clock, max_attempts=1000)
    store.set("things", "t1", {"count": 0})

    def _bump(transaction):
        current = transaction.get("things", "t1")["count"]
        transaction.update("things", "t1", {"count": current + 1})

    def _worker():
        for _ in range(25):
            store.run_transaction(_bump)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.get("things", "t1")["count"] == 200
