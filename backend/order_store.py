"""
Order document store.
Narrow read/write access to the ``orders`` collection the order details
are merged into: one scan for the foreign id -> document id mapping, and
batched field merges.

Firestore in production; a JSON file under the local storage dir when
USE_LOCAL_STORAGE=true.
"""

import os
from typing import Any, Dict, List, Tuple

import gcs_storage
from errors import OrderStoreError


FIRESTORE_PROJECT = os.environ.get('FIRESTORE_PROJECT') or None
FIRESTORE_COLLECTION = os.environ.get('FIRESTORE_COLLECTION', 'orders')
FOREIGN_ID_FIELD = os.environ.get('FOREIGN_ID_FIELD', 'csvId')

LOCAL_ORDERS_FILE = f'{gcs_storage.STATE_FOLDER}/orders.json'


def _coerce_foreign_id(value):
    """Foreign ids are stored as numbers or numeric strings; anything else is ignored."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer() or number <= 0:
        return None
    return int(number)


# ============== Firestore ==============

class FirestoreOrderStore:
    """Orders collection in Cloud Firestore."""

    def __init__(self, client=None, collection: str = None, foreign_id_field: str = None):
        if client is None:
            from google.cloud import firestore
            client = firestore.Client(project=FIRESTORE_PROJECT)
        self.client = client
        self.collection_name = collection or FIRESTORE_COLLECTION
        self.foreign_id_field = foreign_id_field or FOREIGN_ID_FIELD

    @property
    def collection(self):
        return self.client.collection(self.collection_name)

    def scan_foreign_ids(self) -> Dict[int, str]:
        """Map every order document's foreign id to its document id."""
        mapping = {}
        for snapshot in self.collection.select([self.foreign_id_field]).stream():
            data = snapshot.to_dict() or {}
            foreign_id = _coerce_foreign_id(data.get(self.foreign_id_field))
            if foreign_id is not None:
                mapping[foreign_id] = snapshot.id
        print(f"[Firestore] Found {len(mapping)} order docs in '{self.collection_name}'.")
        return mapping

    def batch(self) -> '_FirestoreWriteBatch':
        return _FirestoreWriteBatch(self)


class _FirestoreWriteBatch:
    def __init__(self, store: FirestoreOrderStore):
        self._store = store
        self._batch = store.client.batch()
        self.size = 0

    def update(self, doc_id: str, fields: Dict[str, Any]):
        self._batch.update(self._store.collection.document(doc_id), fields)
        self.size += 1

    def commit(self):
        self._batch.commit()


# ============== Local JSON ==============

class LocalOrderStore:
    """
    Orders kept as ``{doc_id: {field: value}}`` in a JSON state file.

    Mirrors the Firestore semantics the pipeline relies on: update merges
    the named fields and leaves the rest of the document alone.
    """

    def __init__(self, path: str = None, foreign_id_field: str = None):
        self.path = path or LOCAL_ORDERS_FILE
        self.foreign_id_field = foreign_id_field or FOREIGN_ID_FIELD

    def load_orders(self) -> Dict[str, Dict[str, Any]]:
        try:
            return gcs_storage.load_json(self.path) or {}
        except gcs_storage.StateFileCorrupt as e:
            raise OrderStoreError(str(e)) from e

    def save_orders(self, orders: Dict[str, Dict[str, Any]]) -> bool:
        return gcs_storage.save_json(self.path, orders)

    def scan_foreign_ids(self) -> Dict[int, str]:
        mapping = {}
        for doc_id, data in self.load_orders().items():
            if not isinstance(data, dict):
                continue
            foreign_id = _coerce_foreign_id(data.get(self.foreign_id_field))
            if foreign_id is not None:
                mapping[foreign_id] = doc_id
        print(f"[LOCAL] Found {len(mapping)} order docs in {self.path}.")
        return mapping

    def batch(self) -> '_LocalWriteBatch':
        return _LocalWriteBatch(self)


class _LocalWriteBatch:
    def __init__(self, store: LocalOrderStore):
        self._store = store
        self._updates: List[Tuple[str, Dict[str, Any]]] = []

    @property
    def size(self) -> int:
        return len(self._updates)

    def update(self, doc_id: str, fields: Dict[str, Any]):
        self._updates.append((doc_id, dict(fields)))

    def commit(self):
        orders = self._store.load_orders()
        # All updates apply or none do, like a Firestore batch
        for doc_id, _ in self._updates:
            if doc_id not in orders:
                raise KeyError(f"No order document {doc_id!r} to update")
        for doc_id, fields in self._updates:
            orders[doc_id].update(fields)
        self._store.save_orders(orders)


def get_order_store():
    """Order store for the current storage mode."""
    if gcs_storage.USE_LOCAL_STORAGE:
        return LocalOrderStore()
    return FirestoreOrderStore()
