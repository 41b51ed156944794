"""DocumentStore backed by Cloud Firestore through firebase-admin."""

from typing import Callable, List, Optional, Sequence

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from services.errors import NotFound, TransactionConflict
from services.store import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Filter,
    Increment,
    T,
    Transaction,
    document_kind,
)
from utils.logging import get_logger

logger = get_logger(__name__)


def _encode(data: dict) -> dict:
    encoded = {}
    for field, value in data.items():
        if isinstance(value, Increment):
            encoded[field] = firestore.Increment(value.value)
        elif isinstance(value, ArrayUnion):
            encoded[field] = firestore.ArrayUnion(value.values)
        elif isinstance(value, ArrayRemove):
            encoded[field] = firestore.ArrayRemove(value.values)
        elif value is SERVER_TIMESTAMP:
            encoded[field] = firestore.SERVER_TIMESTAMP
        else:
            encoded[field] = value
    return encoded


def _to_dict(snapshot) -> Optional[dict]:
    if not snapshot.exists:
        return None
    data = snapshot.to_dict()
    data["id"] = snapshot.id
    return data


class _FirestoreTransaction:
    def __init__(self, store: "FirestoreStore", transaction):
        self._store = store
        self._transaction = transaction

    def get(self, path: str, doc_id: str) -> Optional[dict]:
        snapshot = self._store._ref(path, doc_id).get(transaction=self._transaction)
        return _to_dict(snapshot)

    def set(self, path: str, doc_id: str, data: dict) -> None:
        self._transaction.set(self._store._ref(path, doc_id), _encode(data))

    def update(self, path: str, doc_id: str, data: dict) -> None:
        self._transaction.update(self._store._ref(path, doc_id), _encode(data))

    def add(self, path: str, data: dict) -> str:
        ref = self._store._client.collection(path).document()
        self._transaction.set(ref, _encode(data))
        return ref.id


class FirestoreStore:
    def __init__(self, client, max_attempts: int = 5):
        self._client = client
        self.max_attempts = max_attempts

    def _ref(self, path: str, doc_id: str):
        return self._client.collection(path).document(doc_id)

    def get(self, path: str, doc_id: str) -> Optional[dict]:
        return _to_dict(self._ref(path, doc_id).get())

    def add(self, path: str, data: dict) -> str:
        ref = self._client.collection(path).document()
        ref.set(_encode(data))
        return ref.id

    def set(self, path: str, doc_id: str, data: dict) -> None:
        self._ref(path, doc_id).set(_encode(data))

    def update(self, path: str, doc_id: str, data: dict) -> None:
        try:
            self._ref(path, doc_id).update(_encode(data))
        except google_exceptions.NotFound as exc:
            raise NotFound(document_kind(path), doc_id) from exc

    def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        query = self._client.collection(path)
        for field, op, value in filters:
            query = query.where(filter=firestore.FieldFilter(field, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [_to_dict(doc) for doc in query.stream()]

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        transaction = self._client.transaction(max_attempts=self.max_attempts)

        @firestore.transactional
        def _run(txn):
            return fn(_FirestoreTransaction(self, txn))

        try:
            return _run(transaction)
        except google_exceptions.NotFound as exc:
            # An update inside the transaction targeted a missing document.
            raise NotFound("document", str(exc)) from exc
        except (google_exceptions.Aborted, google_exceptions.Conflict) as exc:
            logger.warning("Firestore transaction gave up after %d attempts: %s", self.max_attempts, exc)
            raise TransactionConflict("Transaction could not be committed") from exc
