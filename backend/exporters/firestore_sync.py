"""
Firestore Sync
Merges scraped order details into the orders collection.

Order documents are looked up by their embedded foreign id (csvId), so the
sync needs no knowledge of document ids in advance. Details whose order
does not exist in the collection yet are skipped, not retried: the order
has to be created by the seeding process first.
"""

import time
from dataclasses import dataclass
from typing import Callable

from checkpoint_store import CheckpointStore


DEFAULT_BATCH_SIZE = 500  # Firestore's limit on writes per batch
DEFAULT_DELAY_SECONDS = 0.3
PROGRESS_EVERY = 500


@dataclass
class SyncResult:
    """Totals for one sync run."""
    total: int = 0
    uploaded: int = 0
    skipped: int = 0
    total_items: int = 0
    batches: int = 0


def sync_order_details(store: CheckpointStore, target,
                       batch_size: int = DEFAULT_BATCH_SIZE,
                       delay_seconds: float = DEFAULT_DELAY_SECONDS,
                       sleep: Callable[[float], None] = time.sleep) -> SyncResult:
    """
    Merge every order detail in the checkpoint into the target store.

    Args:
        store: Loaded checkpoint
        target: Order store (FirestoreOrderStore or LocalOrderStore)
        batch_size: Merge-writes per committed batch
        delay_seconds: Pause after each full batch commit
        sleep: Sleep function (injectable for tests)

    Returns:
        SyncResult; uploaded + skipped == total
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    result = SyncResult(total=len(store))
    print(f"[Upload] Loaded {result.total} order details from {store.location}.")

    print("[Upload] Fetching order docs to map csvId -> docId...")
    doc_ids = target.scan_foreign_ids()

    batch = target.batch()
    staged = 0

    for detail in store.details():
        doc_id = doc_ids.get(detail.foreign_id)
        if not doc_id:
            result.skipped += 1
            continue

        batch.update(doc_id, detail.merge_fields())
        staged += 1
        result.total_items += len(detail.items)
        result.uploaded += 1

        if staged >= batch_size:
            batch.commit()
            result.batches += 1
            print(f"[Upload]   Committed batch - {result.uploaded} orders, "
                  f"{result.total_items} items so far")
            batch = target.batch()
            staged = 0
            sleep(delay_seconds)

        if result.uploaded % PROGRESS_EVERY == 0:
            print(f"[Upload]   Progress: {result.uploaded}/{result.total} orders "
                  f"({result.total_items} items, {result.skipped} skipped)")

    if staged > 0:
        batch.commit()
        result.batches += 1
        print("[Upload]   Committed final batch")

    print(f"\n[Upload] Done! Uploaded {result.uploaded} orders with {result.total_items} "
          f"embedded items. Skipped {result.skipped}.")
    return result
