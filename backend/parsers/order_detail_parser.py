"""
Order Detail Parser
Parses the line-item table and grand totals out of a bill page (bill.php).

The page groups rows under headings:

    <h3>5 TAR</h3>                  -> category
    <h4>Celtionic :-</h4>           -> material
    <tr><td>Red</td><td>12&nbsp;-></td><td>9</td></tr>
    <tr class="fw-bold">...</tr>    -> subtotal row, not an item
    <tr class="total-flex">...</tr> -> grand total row

Only this page shape is supported. Anything unrecognized simply produces no
items; the parser never raises for malformed markup.
"""

import re
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment

from models import OrderDetail, OrderItem


BOLD_MARKER = 'fw-bold'
TOTAL_MARKER = 'total-flex'
HEADER_LABEL = 'color'
NBSP = ('&nbsp;', '\xa0')

_LEADING_NUMBER_RE = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
_HEADING_DECORATION_RE = re.compile(r'\s*:-?\s*$')


# ============== Tokenizer ==============

class _Heading:
    def __init__(self, level: int, text: str):
        self.level = level
        self.text = text


class _Row:
    def __init__(self, cells: List[str], is_bold: bool, is_total: bool):
        self.cells = cells
        self.is_bold = is_bold
        self.is_total = is_total


class _TotalMarker:
    """A non-row element tagged total-flex; the total row follows it."""


def _markers(tag) -> set:
    return {c.lower() for c in tag.get('class') or []}


def _row_event(tr) -> _Row:
    markers = _markers(tr)
    for child in tr.find_all(True):
        markers |= _markers(child)
    cells = [td.get_text().strip() for td in tr.find_all('td')
             if td.find_parent('tr') is tr]
    return _Row(cells, is_bold=BOLD_MARKER in markers, is_total=TOTAL_MARKER in markers)


def _tokenize(html: str) -> list:
    """
    Turn a bill page into a flat list of heading, row and marker events,
    in document order. Comments are dropped.
    """
    soup = BeautifulSoup(html or '', 'lxml')
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    events = []
    for tag in soup.find_all(True):
        if tag.name in ('h3', 'h4'):
            events.append(_Heading(int(tag.name[1]), tag.get_text()))
        elif tag.name == 'tr':
            events.append(_row_event(tag))
        elif TOTAL_MARKER in _markers(tag) and tag.find_parent('tr') is None:
            events.append(_TotalMarker())
    return events


# ============== Cell Cleaning ==============

def _strip_nbsp(raw: str) -> str:
    for nbsp in NBSP:
        raw = raw.replace(nbsp, '')
    return raw


def parse_quantity(raw: str) -> float:
    """
    Parse the leading number of a cell, 0 when there is none.

    Trailing junk after the number is ignored ("12 pcs" -> 12).
    """
    match = _LEADING_NUMBER_RE.match(raw.strip())
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def clean_ordered_cell(raw: str) -> float:
    """Ordered cells look like ``12&nbsp;->``."""
    return parse_quantity(_strip_nbsp(raw).replace('->', '', 1))


def clean_delivered_cell(raw: str) -> float:
    return parse_quantity(_strip_nbsp(raw))


def clean_heading(text: str, strip_decoration: bool = False) -> str:
    text = text.strip()
    if strip_decoration:
        text = _HEADING_DECORATION_RE.sub('', text).strip()
    return text


# ============== Item Scan ==============

class ParserState(Enum):
    SEEKING_HEADING = 'seeking_heading'
    IN_CATEGORY = 'in_category'
    IN_MATERIAL = 'in_material'


def _state_for(category: str, material: str) -> ParserState:
    if category and material:
        return ParserState.IN_MATERIAL
    if category:
        return ParserState.IN_CATEGORY
    return ParserState.SEEKING_HEADING


def _scan_items(events: list) -> List[OrderItem]:
    items = []
    category = ''
    material = ''
    state = ParserState.SEEKING_HEADING

    for event in events:
        if isinstance(event, _Heading):
            if event.level == 3:
                category = clean_heading(event.text)
            else:
                material = clean_heading(event.text, strip_decoration=True)
            state = _state_for(category, material)
            continue

        if not isinstance(event, _Row):
            continue
        if event.is_bold or event.is_total:
            continue
        if state is not ParserState.IN_MATERIAL:
            continue
        if len(event.cells) < 3:
            continue

        color = event.cells[0].strip()
        if not color or color.lower() == HEADER_LABEL:
            continue

        items.append(OrderItem(
            category=category,
            material=material,
            color=color,
            ordered_qty=clean_ordered_cell(event.cells[1]),
            delivered_qty=clean_delivered_cell(event.cells[2]),
        ))

    return items


# ============== Totals Scan ==============

def _explicit_total_rows(events: list) -> Iterator[_Row]:
    """Total-flex rows, and every row after a total-flex element, in page order."""
    marker_seen = False
    for event in events:
        if isinstance(event, _TotalMarker):
            marker_seen = True
        elif isinstance(event, _Row) and (event.is_total or marker_seen):
            yield event


def _total_pair(cells: List[str]) -> Optional[Tuple[float, float]]:
    if len(cells) >= 3:
        return clean_ordered_cell(cells[1]), clean_delivered_cell(cells[2])
    if len(cells) == 2:
        return clean_ordered_cell(cells[0]), clean_delivered_cell(cells[1])
    return None


def _scan_totals(events: list) -> Tuple[float, float]:
    for total_row in _explicit_total_rows(events):
        pair = _total_pair(total_row.cells)
        if pair is not None:
            return pair

    # No grand total row: add up the per-category subtotal rows
    ordered = 0.0
    delivered = 0.0
    for event in events:
        if isinstance(event, _Row) and event.is_bold and len(event.cells) >= 3:
            ordered += clean_ordered_cell(event.cells[1])
            delivered += clean_delivered_cell(event.cells[2])
    return ordered, delivered


# ============== Public API ==============

def parse_order_items(html: str) -> List[OrderItem]:
    """
    Parse the line items of a bill page.

    Args:
        html: Raw page text

    Returns:
        Items in page order; empty if the page shape is not recognized
    """
    return _scan_items(_tokenize(html))


def parse_grand_totals(html: str) -> Tuple[float, float]:
    """
    Parse (grand total ordered, grand total delivered) from a bill page.

    The explicit total-flex row wins; otherwise the fw-bold subtotal rows
    are summed; otherwise (0, 0).
    """
    return _scan_totals(_tokenize(html))


def parse_order_detail(html: str, foreign_id: int) -> OrderDetail:
    """Parse a whole bill page into an OrderDetail for ``foreign_id``."""
    events = _tokenize(html)
    ordered, delivered = _scan_totals(events)
    return OrderDetail(
        foreign_id=int(foreign_id),
        items=tuple(_scan_items(events)),
        grand_total_ordered=ordered,
        grand_total_delivered=delivered,
    )
