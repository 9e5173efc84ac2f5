"""
Order Detail Models
Line items and per-order details recovered from bill pages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


def _as_number(value: float):
    """Return whole-number floats as ints so JSON stays readable (12, not 12.0)."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class OrderItem:
    """One SKU line within an order."""
    category: str
    material: str
    color: str
    ordered_qty: float = 0
    delivered_qty: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'material': self.material,
            'color': self.color,
            'orderedQty': _as_number(self.ordered_qty),
            'deliveredQty': _as_number(self.delivered_qty),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItem':
        return cls(
            category=str(data['category']),
            material=str(data['material']),
            color=str(data['color']),
            ordered_qty=float(data.get('orderedQty', 0) or 0),
            delivered_qty=float(data.get('deliveredQty', 0) or 0),
        )


@dataclass(frozen=True)
class OrderDetail:
    """
    Extracted detail for one bill page.

    Keyed by the foreign (catalog) id, never by a target store document id.
    """
    foreign_id: int
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    grand_total_ordered: float = 0
    grand_total_delivered: float = 0

    @property
    def key(self) -> str:
        """Checkpoint key for this detail."""
        return str(self.foreign_id)

    def merge_fields(self) -> Dict[str, Any]:
        """Fields written onto the target order document."""
        return {
            'items': [item.to_dict() for item in self.items],
            'grandTotalOrdered': _as_number(self.grand_total_ordered),
            'grandTotalDelivered': _as_number(self.grand_total_delivered),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {'foreignId': self.foreign_id}
        data.update(self.merge_fields())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], foreign_id: int = None) -> 'OrderDetail':
        """
        Build a detail from its serialized form.

        Args:
            data: Serialized record. ``csvId`` is accepted in place of
                ``foreignId`` for checkpoints written by the old scraper.
            foreign_id: Overrides the id stored in the record (the checkpoint
                key is authoritative).

        Raises:
            KeyError, TypeError, ValueError: if the record is not shaped
                like an order detail.
        """
        if foreign_id is None:
            raw_id = data['foreignId'] if 'foreignId' in data else data['csvId']
            foreign_id = int(raw_id)

        items = data.get('items', [])
        if not isinstance(items, list):
            raise TypeError(f"items must be a list, got {type(items).__name__}")

        return cls(
            foreign_id=int(foreign_id),
            items=tuple(OrderItem.from_dict(item) for item in items),
            grand_total_ordered=float(data.get('grandTotalOrdered', 0) or 0),
            grand_total_delivered=float(data.get('grandTotalDelivered', 0) or 0),
        )
