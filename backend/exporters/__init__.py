"""
Exporters package
Push scraped order details to the orders collection and to Excel.
"""

from .excel_exporter import export_order_details
from .firestore_sync import sync_order_details, SyncResult

__all__ = [
    'export_order_details',
    'sync_order_details',
    'SyncResult',
]
