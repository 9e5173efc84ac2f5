"""Tests for merging order details into the orders collection."""

import pytest

import gcs_storage
from checkpoint_store import CheckpointStore
from exporters.firestore_sync import sync_order_details
from models import OrderDetail, OrderItem
from order_store import FirestoreOrderStore, LocalOrderStore, get_order_store


def _detail(foreign_id, n_items=1):
    items = tuple(OrderItem('5 TAR', 'Celtionic', f'C{i}', ordered_qty=2, delivered_qty=1)
                  for i in range(n_items))
    return OrderDetail(foreign_id, items, grand_total_ordered=2 * n_items,
                       grand_total_delivered=n_items)


def _seed_orders(orders):
    gcs_storage.save_json('state/orders.json', orders)


def _checkpoint(*details):
    store = CheckpointStore()
    for detail in details:
        store.put(detail)
    return store


class TestSyncOrderDetails:

    def test_merges_fields_and_keeps_others(self):
        _seed_orders({
            'docA': {'csvId': 1, 'partyName': 'Shah & Sons', 'type': 'Complete'},
            'docB': {'csvId': 2, 'partyName': 'Patel'},
        })
        result = sync_order_details(_checkpoint(_detail(1, 2), _detail(2)), LocalOrderStore(),
                                    sleep=lambda s: None)

        orders = gcs_storage.load_json('state/orders.json')
        assert orders['docA']['partyName'] == 'Shah & Sons'
        assert orders['docA']['type'] == 'Complete'
        assert orders['docA']['grandTotalOrdered'] == 4
        assert orders['docA']['grandTotalDelivered'] == 2
        assert [i['color'] for i in orders['docA']['items']] == ['C0', 'C1']
        assert result.uploaded == 2
        assert result.total_items == 3

    def test_unknown_orders_are_skipped(self):
        _seed_orders({'docA': {'csvId': 1}})
        result = sync_order_details(_checkpoint(_detail(1), _detail(2), _detail(3)),
                                    LocalOrderStore(), sleep=lambda s: None)

        assert result.skipped == 2
        assert result.uploaded == 1
        assert result.uploaded + result.skipped == result.total == 3
        orders = gcs_storage.load_json('state/orders.json')
        assert set(orders) == {'docA'}

    def test_string_foreign_ids_are_matched(self):
        _seed_orders({'docA': {'csvId': '12'}, 'docB': {'csvId': 'n/a'}, 'docC': {}})
        result = sync_order_details(_checkpoint(_detail(12)), LocalOrderStore(),
                                    sleep=lambda s: None)
        assert result.uploaded == 1

    def test_batches_and_delays(self):
        _seed_orders({f'doc{i}': {'csvId': i} for i in range(1, 8)})
        sleeps = []
        result = sync_order_details(_checkpoint(*[_detail(i) for i in range(1, 8)]),
                                    LocalOrderStore(), batch_size=3, delay_seconds=0.3,
                                    sleep=sleeps.append)

        # 3 + 3 full batches (each followed by a pause) and a final batch of 1
        assert result.batches == 3
        assert sleeps == [0.3, 0.3]

    def test_idempotent(self):
        _seed_orders({'docA': {'csvId': 1}})
        checkpoint = _checkpoint(_detail(1, 2))
        sync_order_details(checkpoint, LocalOrderStore(), sleep=lambda s: None)
        first = gcs_storage.load_json('state/orders.json')
        sync_order_details(checkpoint, LocalOrderStore(), sleep=lambda s: None)
        assert gcs_storage.load_json('state/orders.json') == first

    def test_empty_checkpoint(self):
        _seed_orders({'docA': {'csvId': 1}})
        result = sync_order_details(CheckpointStore(), LocalOrderStore(), sleep=lambda s: None)
        assert (result.total, result.uploaded, result.skipped, result.batches) == (0, 0, 0, 0)

    def test_rejects_bad_batch_size(self):
        with pytest.raises(ValueError):
            sync_order_details(CheckpointStore(), LocalOrderStore(), batch_size=0)


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return self._data


class FakeQuery:
    def __init__(self, docs, fields):
        self.docs = docs
        self.fields = fields

    def stream(self):
        for doc_id, data in self.docs.items():
            yield FakeSnapshot(doc_id, {k: v for k, v in data.items() if k in self.fields})


class FakeCollection:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def select(self, fields):
        return FakeQuery(self.client.docs, fields)

    def document(self, doc_id):
        return (self.name, doc_id)


class FakeBatch:
    def __init__(self, client):
        self.client = client
        self.writes = []

    def update(self, ref, fields):
        self.writes.append((ref, fields))

    def commit(self):
        self.client.commits.append(self.writes)


class FakeFirestoreClient:
    def __init__(self, docs):
        self.docs = docs
        self.commits = []

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)


class TestFirestoreOrderStore:

    def test_scan_uses_foreign_id_field(self):
        client = FakeFirestoreClient({
            'a1': {'csvId': 10, 'partyName': 'x'},
            'b2': {'csvId': 11.0},
            'c3': {'partyName': 'no id'},
        })
        store = FirestoreOrderStore(client=client)
        assert store.scan_foreign_ids() == {10: 'a1', 11: 'b2'}

    def test_sync_writes_through_batches(self):
        client = FakeFirestoreClient({'a1': {'csvId': 10}, 'b2': {'csvId': 11}})
        store = FirestoreOrderStore(client=client, collection='orders')

        result = sync_order_details(_checkpoint(_detail(10), _detail(11), _detail(12)), store,
                                    batch_size=500, sleep=lambda s: None)

        assert result.uploaded == 2
        assert len(client.commits) == 1
        refs = [ref for ref, _ in client.commits[0]]
        assert refs == [('orders', 'a1'), ('orders', 'b2')]
        fields = client.commits[0][0][1]
        assert set(fields) == {'items', 'grandTotalOrdered', 'grandTotalDelivered'}

    def test_local_mode_picks_local_store(self):
        assert isinstance(get_order_store(), LocalOrderStore)
