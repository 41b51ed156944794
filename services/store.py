"""Document store contract shared by the Firestore backend and the in-process store.

Documents are plain dicts addressed by a collection path and an id. Nested
collections use slash paths (``complaints/<id>/activity``), the same way the
Firestore client accepts them. Reads return a copy of the stored data with the
document id under ``"id"``.

Field values may be one of the transforms below; they are resolved by the
store at write time, so concurrent writers never overwrite each other's
counter or set updates.
"""

import copy
import operator
import threading
import uuid
from collections import defaultdict
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from services.errors import NotFound, TransactionConflict
from utils.logging import get_logger
from utils.time import utcnow

logger = get_logger(__name__)

T = TypeVar("T")

Filter = Tuple[str, str, Any]

COMPLAINTS = "complaints"
USERS = "users"


def activity_path(complaint_id: str) -> str:
    return f"{COMPLAINTS}/{complaint_id}/activity"


_KINDS = {COMPLAINTS: "complaint", USERS: "user", "activity": "activity entry"}


def document_kind(path: str) -> str:
    """Singular name of the documents kept under a collection path."""
    collection = path.rsplit("/", 1)[-1]
    return _KINDS.get(collection, "document")


class Increment:
    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"Increment({self.value!r})"


class ArrayUnion:
    def __init__(self, values: Iterable):
        self.values = list(values)

    def __repr__(self):
        return f"ArrayUnion({self.values!r})"


class ArrayRemove:
    def __init__(self, values: Iterable):
        self.values = list(values)

    def __repr__(self):
        return f"ArrayRemove({self.values!r})"


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class Transaction(Protocol):
    def get(self, path: str, doc_id: str) -> Optional[dict]: ...

    def set(self, path: str, doc_id: str, data: dict) -> None: ...

    def update(self, path: str, doc_id: str, data: dict) -> None: ...

    def add(self, path: str, data: dict) -> str: ...


class DocumentStore(Protocol):
    def get(self, path: str, doc_id: str) -> Optional[dict]: ...

    def add(self, path: str, data: dict) -> str: ...

    def set(self, path: str, doc_id: str, data: dict) -> None: ...

    def update(self, path: str, doc_id: str, data: dict) -> None: ...

    def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]: ...

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T: ...


_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
    "not-in": lambda value, options: value not in options,
    "array-contains": lambda value, item: item in (value or []),
}


def new_id() -> str:
    return uuid.uuid4().hex[:20]


def _resolve(existing: Optional[dict], data: dict, now) -> dict:
    """Apply ``data`` (possibly holding transforms) on top of ``existing``."""
    result = copy.deepcopy(existing) if existing else {}
    for field, value in data.items():
        if isinstance(value, Increment):
            result[field] = (result.get(field) or 0) + value.value
        elif isinstance(value, ArrayUnion):
            current = list(result.get(field) or [])
            current.extend(v for v in value.values if v not in current)
            result[field] = current
        elif isinstance(value, ArrayRemove):
            result[field] = [v for v in (result.get(field) or []) if v not in value.values]
        elif value is SERVER_TIMESTAMP:
            result[field] = now
        else:
            result[field] = copy.deepcopy(value)
    return result


class _Conflict(Exception):
    pass


class _MemoryTransaction:
    def __init__(self, store: "InMemoryStore"):
        self._store = store
        self._reads: Dict[Tuple[str, str], int] = {}
        self._writes: List[Tuple[str, str, str, dict]] = []

    def get(self, path: str, doc_id: str) -> Optional[dict]:
        with self._store._lock:
            key = (path, doc_id)
            self._reads.setdefault(key, self._store._versions.get(key, 0))
            return self._store._snapshot(path, doc_id)

    def set(self, path: str, doc_id: str, data: dict) -> None:
        self._writes.append(("set", path, doc_id, data))

    def update(self, path: str, doc_id: str, data: dict) -> None:
        self._writes.append(("update", path, doc_id, data))

    def add(self, path: str, data: dict) -> str:
        doc_id = new_id()
        self._writes.append(("set", path, doc_id, data))
        return doc_id

    def commit(self) -> None:
        store = self._store
        with store._lock:
            for key, version in self._reads.items():
                if store._versions.get(key, 0) != version:
                    raise _Conflict(key)

            now = store._timestamp()
            staged: Dict[Tuple[str, str], dict] = {}
            for kind, path, doc_id, data in self._writes:
                key = (path, doc_id)
                current = staged.get(key, store._docs[path].get(doc_id))
                if kind == "update":
                    if current is None:
                        raise NotFound(document_kind(path), doc_id)
                    staged[key] = _resolve(current, data, now)
                else:
                    staged[key] = _resolve(None, data, now)

            for (path, doc_id), doc in staged.items():
                store._docs[path][doc_id] = doc
                store._versions[(path, doc_id)] = store._versions.get((path, doc_id), 0) + 1


class InMemoryStore:
    """Thread-safe in-process document store with optimistic transactions.

    Every document read inside ``run_transaction`` is version-checked when the
    transaction commits. If another writer committed to one of those documents
    in the meantime, the transaction function runs again from scratch, up to
    ``max_attempts`` times, after which ``TransactionConflict`` is raised. The
    writes of one transaction are applied together or not at all.

    Server timestamps come from ``clock`` and are forced to be strictly
    increasing, so entries ordered by timestamp keep their commit order.
    """

    def __init__(self, clock: Optional[Callable] = None, max_attempts: int = 5):
        self._lock = threading.RLock()
        self._docs: Dict[str, Dict[str, dict]] = defaultdict(dict)
        self._versions: Dict[Tuple[str, str], int] = {}
        self._clock = clock or utcnow
        self._last_timestamp = None
        self.max_attempts = max_attempts

    def _timestamp(self):
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _snapshot(self, path: str, doc_id: str) -> Optional[dict]:
        doc = self._docs[path].get(doc_id)
        if doc is None:
            return None
        data = copy.deepcopy(doc)
        data["id"] = doc_id
        return data

    def _write(self, path: str, doc_id: str, data: dict, merge_existing: bool) -> None:
        with self._lock:
            current = self._docs[path].get(doc_id)
            if merge_existing and current is None:
                raise NotFound(document_kind(path), doc_id)
            self._docs[path][doc_id] = _resolve(current if merge_existing else None, data, self._timestamp())
            self._versions[(path, doc_id)] = self._versions.get((path, doc_id), 0) + 1

    def get(self, path: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            return self._snapshot(path, doc_id)

    def add(self, path: str, data: dict) -> str:
        doc_id = new_id()
        self._write(path, doc_id, data, merge_existing=False)
        return doc_id

    def set(self, path: str, doc_id: str, data: dict) -> None:
        self._write(path, doc_id, data, merge_existing=False)

    def update(self, path: str, doc_id: str, data: dict) -> None:
        self._write(path, doc_id, data, merge_existing=True)

    def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        with self._lock:
            docs = [self._snapshot(path, doc_id) for doc_id in self._docs[path]]

        for field, op, value in filters:
            compare = _OPERATORS[op]
            docs = [doc for doc in docs if field in doc and compare(doc[field], value)]

        if order_by:
            # Firestore leaves out documents that lack the ordering field.
            docs = [doc for doc in docs if doc.get(order_by) is not None]
            docs.sort(key=lambda doc: doc[order_by], reverse=descending)

        if limit is not None:
            docs = docs[:limit]
        return docs

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        for attempt in range(1, self.max_attempts + 1):
            transaction = _MemoryTransaction(self)
            result = fn(transaction)
            try:
                transaction.commit()
            except _Conflict as exc:
                logger.debug("Transaction conflict on %s (attempt %d)", exc.args[0], attempt)
                continue
            return result
        raise TransactionConflict(f"Transaction failed after {self.max_attempts} attempts")
