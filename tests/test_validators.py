"""Tests for the order details audit."""

from models import OrderDetail, OrderItem
from validators import AuditReport, validate_order_details


def _item(ordered, delivered, color='Red'):
    return OrderItem('5 TAR', 'Celtionic', color, ordered_qty=ordered, delivered_qty=delivered)


class TestAuditReport:

    def test_valid_without_errors(self):
        report = AuditReport()
        report.add_warning('just a warning')
        assert report.is_valid is True
        report.add_error('blocking')
        assert report.is_valid is False

    def test_print_report(self, capsys):
        report = AuditReport()
        report.add_error('bad')
        report.print_report()
        out = capsys.readouterr().out
        assert '[FAIL] VALIDATION FAILED' in out
        assert 'bad' in out

    def test_print_report_truncates_long_sections(self, capsys):
        report = AuditReport(orders=3, line_items=7)
        for n in range(12):
            report.add_warning(f'w{n}')
        report.print_report()
        out = capsys.readouterr().out
        assert 'ORDER DETAILS AUDIT: 3 orders, 7 line items' in out
        assert 'w9' in out
        assert 'w10' not in out
        assert '... and 2 more' in out


class TestValidateOrderDetails:

    def test_clean_checkpoint(self):
        details = [OrderDetail(1, (_item(5, 3), _item(2, 2, 'Blue')), 7, 5)]
        report = validate_order_details(details)
        assert report.is_valid
        assert report.warnings == []
        assert (report.orders, report.line_items) == (1, 2)

    def test_empty_checkpoint_warns(self):
        report = validate_order_details([])
        assert report.is_valid
        assert any('no order details' in w for w in report.warnings)

    def test_negative_quantity_is_an_error(self):
        details = [OrderDetail(1, (_item(-5, 0),), -5, 0)]
        report = validate_order_details(details)
        assert not report.is_valid

    def test_totals_mismatch_warns(self):
        details = [OrderDetail(4, (_item(5, 3),), 8, 5)]
        report = validate_order_details(details)
        assert report.is_valid
        assert any('[4]' in w for w in report.warnings)

    def test_orders_without_items_are_reported(self):
        details = [OrderDetail(9, (), 0, 0)]
        report = validate_order_details(details)
        assert any('no line items' in i for i in report.info)

    def test_catalog_cross_check(self):
        details = [OrderDetail(1, (_item(1, 1),), 1, 1), OrderDetail(99, (_item(1, 1),), 1, 1)]
        report = validate_order_details(details, catalog_ids=[1, 2, 3, 2])
        assert any('2 catalog orders not scraped' in w for w in report.warnings)
        assert any('no longer in the catalog' in i for i in report.info)
