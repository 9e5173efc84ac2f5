"""
Order Catalog Parser
Reads the party orders CSV export and returns the legacy order ids to scrape.
"""

import os
from typing import List

import pandas as pd

from errors import CatalogError


def parse_order_catalog(filepath: str) -> List[int]:
    """
    Parse the order id catalog.

    The first line is a header. For every other non-blank line the text
    before the first comma is the order id. Ids that are not strictly
    positive integers are dropped. Duplicates are kept, in file order.

    Args:
        filepath: Path to the CSV export (e.g. party_orders.csv)

    Returns:
        List of order ids in catalog order

    Raises:
        CatalogError: if the file is missing or cannot be read
    """
    if not filepath or not os.path.isfile(filepath):
        raise CatalogError(f"Order catalog not found: {filepath}")

    try:
        with open(filepath, 'r', encoding='utf-8-sig') as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogError(f"Could not read order catalog {filepath}: {e}") from e

    lines = [line for line in lines if line.strip()]
    if not lines:
        raise CatalogError(f"Order catalog is empty (no header line): {filepath}")

    rows = pd.Series(lines[1:], dtype=object)

    first_column = rows.str.split(',', n=1).str[0].str.strip().str.strip('"')
    ids = pd.to_numeric(first_column, errors='coerce')

    valid = ids.notna() & (ids > 0) & (ids == ids.round())
    order_ids = [int(i) for i in ids[valid]]

    dropped = len(rows) - len(order_ids)
    print(f"[Catalog] Loaded {len(order_ids)} order ids from {os.path.basename(filepath)}"
          + (f" ({dropped} rows skipped)" if dropped else ""))

    return order_ids
