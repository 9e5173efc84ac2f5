"""
Order details checkpoint.
Persists extracted order details as one JSON snapshot in GCS (or the local
filesystem in dev mode), keyed by the legacy order id.

A key being present means that order's bill page was fetched and parsed.
Absent ids are either not attempted yet or failed, and are picked up again
by the next scrape run.

The whole snapshot is rewritten on every save, so a flush costs O(n) in the
number of orders already scraped.
"""

import os
from typing import Dict, Iterator, Optional, Set

import gcs_storage
from errors import CheckpointError
from models import OrderDetail

# Path of the checkpoint, relative to the local storage dir / bucket root
CHECKPOINT_FILE = os.environ.get('CHECKPOINT_FILE',
    f'{gcs_storage.STATE_FOLDER}/order_details.json')


class CheckpointStore:
    """In-memory map of order details, flushed wholesale to storage."""

    def __init__(self, path: str = None):
        self.path = path or CHECKPOINT_FILE
        self._details: Dict[str, OrderDetail] = {}

    @property
    def location(self) -> str:
        return gcs_storage.describe_location(self.path)

    def load(self) -> bool:
        """
        Load the snapshot. A missing snapshot leaves the store empty.

        Returns:
            True if an existing snapshot was loaded

        Raises:
            CheckpointError: if the snapshot exists but is not a valid
                mapping of order id -> order detail
        """
        try:
            data = gcs_storage.load_json(self.path)
        except gcs_storage.StateFileCorrupt as e:
            raise CheckpointError(str(e)) from e

        if data is None:
            self._details = {}
            return False

        if not isinstance(data, dict):
            raise CheckpointError(
                f"{self.location}: expected an object keyed by order id, "
                f"got {type(data).__name__}")

        details = {}
        for key, record in data.items():
            try:
                foreign_id = int(key)
                if not isinstance(record, dict):
                    raise TypeError(f"record is {type(record).__name__}, not an object")
                details[str(foreign_id)] = OrderDetail.from_dict(record, foreign_id=foreign_id)
            except (KeyError, TypeError, ValueError) as e:
                raise CheckpointError(f"{self.location}: bad entry for order {key!r}: {e}") from e

        self._details = details
        return True

    def save(self) -> bool:
        """Write the full snapshot."""
        data = {key: detail.to_dict() for key, detail in self._details.items()}
        return gcs_storage.save_json(self.path, data)

    def put(self, detail: OrderDetail):
        """Insert or replace the whole entry for ``detail.foreign_id``."""
        self._details[detail.key] = detail

    def get(self, foreign_id) -> Optional[OrderDetail]:
        return self._details.get(str(foreign_id))

    def done_ids(self) -> Set[int]:
        return {detail.foreign_id for detail in self._details.values()}

    def details(self) -> Iterator[OrderDetail]:
        return iter(list(self._details.values()))

    def total_items(self) -> int:
        return sum(len(detail.items) for detail in self._details.values())

    def __contains__(self, foreign_id) -> bool:
        return str(foreign_id) in self._details

    def __len__(self) -> int:
        return len(self._details)
