"""Shared test fixtures for the order detail pipeline tests."""

import os
import sys
import pytest

# Add backend to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

# Force local storage for tests
os.environ['USE_LOCAL_STORAGE'] = 'true'
os.environ['BILL_COOKIE'] = 'PHPSESSID=test-session'

import gcs_storage  # noqa: E402


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Keep every state file inside the test's temp dir."""
    storage_dir = tmp_path / 'data'
    monkeypatch.setattr(gcs_storage, 'USE_LOCAL_STORAGE', True)
    monkeypatch.setattr(gcs_storage, 'LOCAL_STORAGE_DIR', str(storage_dir))
    return storage_dir


@pytest.fixture
def bill_html():
    """A bill page with two categories, subtotal rows and a grand total row."""
    return """
    <html><body>
    <!-- <h3>Commented Out</h3><h4>Ghost:</h4>
         <table><tr><td>Ghost</td><td>99</td><td>99</td></tr></table> -->
    <div class="container">
      <h3>5 TAR</h3>
      <h4>Celtionic :-</h4>
      <table class="table">
        <tr><th>Color</th><th>Order</th><th>Delivered</th></tr>
        <tr><td>Color</td><td>Qty</td><td>Qty</td></tr>
        <tr><td>Red</td><td>12&nbsp;-></td><td>9</td></tr>
        <tr><td><span>Navy Blue</span></td><td>3.5&nbsp;-></td><td>&nbsp;</td></tr>
        <tr class="fw-bold"><td>Total</td><td>15.5</td><td>9</td></tr>
      </table>
      <h4>Rubia:</h4>
      <table class="table">
        <tr><td>White</td><td>4&nbsp;-></td><td>4</td></tr>
        <tr class="fw-bold"><td>Total</td><td>4</td><td>4</td></tr>
      </table>
      <h3>3 TAR</h3>
      <table class="table">
        <tr><td>Black</td><td>6&nbsp;-></td><td>2</td></tr>
        <tr class="fw-bold"><td>Total</td><td>6</td><td>2</td></tr>
      </table>
      <table class="table">
        <tr class="fw-bold total-flex"><td>Grand Total</td><td>25.5&nbsp;-></td><td>15</td></tr>
      </table>
    </div>
    </body></html>
    """


def make_bill_page(foreign_id: int, items: int = 1) -> str:
    """Minimal bill page with ``items`` rows, quantities derived from the id."""
    rows = ''.join(
        f'<tr><td>Color{n}</td><td>{foreign_id}&nbsp;-></td><td>{n}</td></tr>'
        for n in range(items)
    )
    return (f'<h3>Cat {foreign_id}</h3><h4>Mat:</h4><table>{rows}'
            f'<tr class="total-flex"><td>Total</td><td>{foreign_id * items}</td>'
            f'<td>{sum(range(items))}</td></tr></table>')


@pytest.fixture
def bill_page_factory():
    return make_bill_page
