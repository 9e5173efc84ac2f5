"""
Excel Exporter
Export scraped order details to Excel for review.
"""

from typing import Iterable

import pandas as pd
from openpyxl.utils import get_column_letter

from models import OrderDetail


def _autosize(worksheet, df: pd.DataFrame):
    """Auto-adjust column widths and freeze the header row."""
    for idx, col in enumerate(df.columns):
        col_data = df[col].fillna('').astype(str)
        max_data_len = col_data.str.len().max() if len(col_data) > 0 else 0
        max_length = max(max_data_len, len(col)) + 2
        worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(max_length, 40)

    worksheet.freeze_panes = 'A2'


def export_order_details(details: Iterable[OrderDetail], output_path: str) -> str:
    """
    Export order details to a two-sheet workbook.

    Args:
        details: Order details (e.g. from the checkpoint)
        output_path: Path for output Excel file

    Returns:
        Path to the created file
    """
    item_rows = []
    total_rows = []

    for detail in sorted(details, key=lambda d: d.foreign_id):
        for item in detail.items:
            item_rows.append({
                'Order ID': detail.foreign_id,
                'Category': item.category,
                'Material': item.material,
                'Color': item.color,
                'Ordered Qty': item.ordered_qty,
                'Delivered Qty': item.delivered_qty,
                'Pending Qty': item.ordered_qty - item.delivered_qty,
            })
        total_rows.append({
            'Order ID': detail.foreign_id,
            'Line Items': len(detail.items),
            'Grand Total Ordered': detail.grand_total_ordered,
            'Grand Total Delivered': detail.grand_total_delivered,
        })

    items_df = pd.DataFrame(item_rows, columns=[
        'Order ID', 'Category', 'Material', 'Color',
        'Ordered Qty', 'Delivered Qty', 'Pending Qty'])
    totals_df = pd.DataFrame(total_rows, columns=[
        'Order ID', 'Line Items', 'Grand Total Ordered', 'Grand Total Delivered'])

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        items_df.to_excel(writer, sheet_name='Order Items', index=False)
        _autosize(writer.sheets['Order Items'], items_df)

        totals_df.to_excel(writer, sheet_name='Order Totals', index=False)
        _autosize(writer.sheets['Order Totals'], totals_df)

    print(f"[OK] Order details exported to: {output_path}")
    return output_path
