"""
Order Detail Validators
Audits a scraped order details checkpoint before it is uploaded.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from models import OrderDetail


# Sums are float; tolerate rounding noise when comparing against grand totals
TOTALS_TOLERANCE = 1e-6


@dataclass
class AuditReport:
    """Findings of one checkpoint audit. Only errors block the upload."""
    orders: int = 0
    line_items: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str):
        self.errors.append(message)

    def add_warning(self, message: str):
        self.warnings.append(message)

    def add_info(self, message: str):
        self.info.append(message)

    def print_report(self):
        print("\n" + "=" * 70)
        print(f"ORDER DETAILS AUDIT: {self.orders} orders, {self.line_items} line items")
        print("=" * 70)
        print("\n[OK] VALIDATION PASSED" if self.is_valid else "\n[FAIL] VALIDATION FAILED")

        _print_section('[ERROR] ERRORS', self.errors, limit=10)
        _print_section('[WARN] WARNINGS', self.warnings, limit=10)
        _print_section('[INFO] INFO', self.info, limit=5)


def _print_section(title: str, messages: List[str], limit: int):
    if not messages:
        return
    print(f"\n{title} ({len(messages)}):")
    for i, message in enumerate(messages[:limit], 1):
        print(f"   {i}. {message}")
    if len(messages) > limit:
        print(f"   ... and {len(messages) - limit} more")


def validate_order_details(details: Iterable[OrderDetail],
                           catalog_ids: Optional[List[int]] = None) -> AuditReport:
    """
    Audit scraped order details.

    Args:
        details: Order details from the checkpoint
        catalog_ids: Optional catalog, to report how many orders are still missing

    Returns:
        AuditReport with all findings
    """
    details = list(details)
    report = AuditReport(orders=len(details),
                         line_items=sum(len(d.items) for d in details))

    if not details:
        report.add_warning("Checkpoint has no order details yet")

    _validate_quantities(details, report)
    _validate_totals(details, report)
    _summarize_empty_orders(details, report)

    if catalog_ids is not None:
        _cross_validate_catalog(details, catalog_ids, report)

    return report


def _validate_quantities(details: List[OrderDetail], report: AuditReport):
    """Negative quantities mean the page layout changed under the parser."""
    negative = []
    over_delivered = 0

    for detail in details:
        for item in detail.items:
            if item.ordered_qty < 0 or item.delivered_qty < 0:
                negative.append(f"Order {detail.foreign_id}: {item.category} / {item.material} / "
                                f"{item.color} has a negative quantity")
            elif item.delivered_qty > item.ordered_qty:
                over_delivered += 1

    for msg in negative[:5]:
        report.add_error(msg)
    if len(negative) > 5:
        report.add_error(f"... and {len(negative) - 5} more lines with negative quantities")

    if over_delivered:
        report.add_info(f"{over_delivered} lines delivered more than ordered")


def _validate_totals(details: List[OrderDetail], report: AuditReport):
    mismatched = []

    for detail in details:
        if not detail.items:
            continue
        ordered = sum(item.ordered_qty for item in detail.items)
        delivered = sum(item.delivered_qty for item in detail.items)
        if (abs(ordered - detail.grand_total_ordered) > TOTALS_TOLERANCE
                or abs(delivered - detail.grand_total_delivered) > TOTALS_TOLERANCE):
            mismatched.append(detail.foreign_id)

    if mismatched:
        report.add_warning(f"{len(mismatched)} orders whose line items do not add up to the "
                           f"grand totals: {mismatched[:5]}")


def _summarize_empty_orders(details: List[OrderDetail], report: AuditReport):
    empty = [d.foreign_id for d in details if not d.items]
    if empty:
        report.add_info(f"{len(empty)} orders have no line items on their bill page: {empty[:5]}")


def _cross_validate_catalog(details: List[OrderDetail], catalog_ids: List[int],
                            report: AuditReport):
    scraped = {d.foreign_id for d in details}
    missing = [i for i in dict.fromkeys(catalog_ids) if i not in scraped]
    if missing:
        report.add_warning(f"{len(missing)} catalog orders not scraped yet (failed or not attempted): "
                           f"{missing[:5]}")
    extra = scraped - set(catalog_ids)
    if extra:
        report.add_info(f"{len(extra)} scraped orders are no longer in the catalog")
