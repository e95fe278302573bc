"""In-memory stand-in for FirestoreService used by the unit tests.

Writes are applied to a staged copy of the store and swapped in only if every
write succeeds, so transactions and batches are all-or-nothing. Firestore
transforms (Increment, ArrayUnion) and dotted update paths are interpreted the
way the server applies them.
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud.firestore import ArrayUnion, Increment

from app.services.firestore_service import (
    MAX_BATCH_SIZE,
    DocumentKey,
    DocumentWrite,
    FirestoreService,
    TransactionPlan,
    Unsubscribe,
    WriteKind,
)

ALICE_PHOTO = "https://img.example.com/alice.png"
BOB_PHOTO = "https://img.example.com/bob.png"


def _get_field(data: Dict[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _transform(current: Any, value: Any) -> Any:
    if isinstance(value, Increment):
        return (current or 0) + value.value
    if isinstance(value, ArrayUnion):
        merged = list(current or [])
        for item in value.values:
            if item not in merged:
                merged.append(item)
        return merged
    if isinstance(value, dict):
        return {k: _transform(None, v) for k, v in value.items()}
    return copy.deepcopy(value)


def _merge(base: Dict[str, Any], data: Dict[str, Any]) -> None:
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = _transform(base.get(key), value)


def _set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = data
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = _transform(target.get(parts[-1]), value)


class _Subscription:
    def __init__(self, collection_name, callback, filters, order_by, limit, model_class):
        self.collection_name = collection_name
        self.callback = callback
        self.filters = filters
        self.order_by = order_by
        self.limit = limit
        self.model_class = model_class


class InMemoryFirestoreService(FirestoreService):
    """FirestoreService backed by nested dicts instead of a Firestore project."""

    def __init__(self):
        super().__init__("(in-memory)")
        self.store: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_next_commit: Optional[Exception] = None
        self.transaction_reads: List[List[DocumentKey]] = []
        self.batch_sizes: List[int] = []
        self.initialized = False
        self.closed = False
        self._ids = itertools.count(1)
        self._subscription_ids = itertools.count(1)
        self._subscriptions: Dict[int, _Subscription] = {}

    # Lifecycle
    def init(self) -> None:
        self.initialized = True

    def close(self) -> None:
        self.closed = True

    @property
    def app(self):
        return None

    def new_document_id(self) -> str:
        return f"doc-{next(self._ids)}"

    # Test helpers
    def seed(self, collection_name: str, document_id: str, data: Dict[str, Any]) -> None:
        self.store.setdefault(collection_name, {})[document_id] = copy.deepcopy(data)

    def doc(self, collection_name: str, document_id: str) -> Optional[Dict[str, Any]]:
        data = self.store.get(collection_name, {}).get(document_id)
        return copy.deepcopy(data) if data is not None else None

    def docs(self, collection_name: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self.store.get(collection_name, {}))

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    # FirestoreService API
    async def create_document(self, collection_name, document_data, document_id=None):
        document_id = document_id or self.new_document_id()
        self._commit(
            [DocumentWrite(kind=WriteKind.SET, collection_name=collection_name,
                           document_id=document_id, data=document_data)]
        )
        return document_id

    async def set_document(self, collection_name, document_id, document_data, merge=False):
        kind = WriteKind.MERGE if merge else WriteKind.SET
        self._commit(
            [DocumentWrite(kind=kind, collection_name=collection_name,
                           document_id=document_id, data=document_data)]
        )
        return True

    async def get_document(self, collection_name, document_id, model_class=None):
        data = self.doc(collection_name, document_id)
        if data is None:
            return None
        data["id"] = document_id
        return self._to_model(collection_name, data, model_class)

    async def update_document(self, collection_name, document_id, update_data):
        self._commit(
            [DocumentWrite(kind=WriteKind.UPDATE, collection_name=collection_name,
                           document_id=document_id, data=update_data)]
        )
        return True

    async def delete_document(self, collection_name, document_id):
        self._commit(
            [DocumentWrite(kind=WriteKind.DELETE, collection_name=collection_name,
                           document_id=document_id)]
        )
        return True

    async def query_collection(
        self, collection_name, filters=None, order_by=None, limit=None, offset=None,
        model_class=None,
    ):
        return [
            self._to_model(collection_name, data, model_class)
            for data in self._query(collection_name, filters, order_by, limit, offset)
        ]

    async def count_documents(self, collection_name, filters=None):
        return len(self._query(collection_name, filters))

    async def run_transaction(self, reads: List[DocumentKey], plan: TransactionPlan):
        self.transaction_reads.append(list(reads))
        snapshots = {key: self.doc(*key) for key in reads}
        writes = plan(snapshots)
        self._commit(writes)
        return writes

    async def commit_batch(self, writes: List[DocumentWrite]) -> int:
        for start in range(0, len(writes), MAX_BATCH_SIZE):
            chunk = writes[start : start + MAX_BATCH_SIZE]
            self.batch_sizes.append(len(chunk))
            self._commit(chunk)
        return len(writes)

    def subscribe(
        self, collection_name, callback: Callable, filters=None, order_by=None,
        limit=None, model_class=None,
    ) -> Unsubscribe:
        subscription_id = next(self._subscription_ids)
        subscription = _Subscription(
            collection_name, callback, filters, order_by, limit, model_class
        )
        self._subscriptions[subscription_id] = subscription
        self._deliver(subscription)

        def unsubscribe() -> None:
            self._subscriptions.pop(subscription_id, None)

        return unsubscribe

    # Internals
    def _commit(self, writes: List[DocumentWrite]) -> None:
        if self.fail_next_commit is not None:
            error, self.fail_next_commit = self.fail_next_commit, None
            raise error

        staged = copy.deepcopy(self.store)
        for write in writes:
            self._apply(staged, write)
        self.store = staged

        touched = {write.collection_name for write in writes}
        for subscription in list(self._subscriptions.values()):
            if subscription.collection_name in touched:
                self._deliver(subscription)

    def _apply(self, staged, write: DocumentWrite) -> None:
        documents = staged.setdefault(write.collection_name, {})
        existing = documents.get(write.document_id)

        if write.kind == WriteKind.CREATE:
            if existing is not None:
                raise AlreadyExists(f"{write.collection_name}/{write.document_id}")
            documents[write.document_id] = _transform(None, write.data)
        elif write.kind == WriteKind.SET:
            documents[write.document_id] = _transform(None, write.data)
        elif write.kind == WriteKind.MERGE:
            merged = existing if existing is not None else {}
            _merge(merged, write.data)
            documents[write.document_id] = merged
        elif write.kind == WriteKind.UPDATE:
            if existing is None:
                raise NotFound(f"{write.collection_name}/{write.document_id}")
            for path, value in write.data.items():
                _set_path(existing, path, value)
        elif write.kind == WriteKind.DELETE:
            documents.pop(write.document_id, None)

    def _query(self, collection_name, filters=None, order_by=None, limit=None, offset=None):
        results = []
        for document_id, data in self.store.get(collection_name, {}).items():
            if all(self._matches(data, f) for f in filters or []):
                results.append({**copy.deepcopy(data), "id": document_id})

        if order_by:
            results.sort(key=lambda d: (_get_field(d, order_by) is None, _get_field(d, order_by)))
        if offset:
            results = results[offset:]
        if limit:
            results = results[:limit]
        return results

    @staticmethod
    def _matches(data, query_filter) -> bool:
        field, operator, value = query_filter
        current = _get_field(data, field)
        if operator == "==":
            return current == value
        if operator == "array_contains":
            return value in (current or [])
        if operator == "in":
            return current in value
        raise ValueError(f"Unsupported operator in fake: {operator}")

    def _deliver(self, subscription: _Subscription) -> None:
        results = [
            self._to_model(subscription.collection_name, data, subscription.model_class)
            for data in self._query(
                subscription.collection_name,
                subscription.filters,
                subscription.order_by,
                subscription.limit,
            )
        ]
        subscription.callback(results)
