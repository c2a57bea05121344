"""Helpers for estimating invoice pagination constraints.

Estimates count table rows (item rows plus two per group for the title and
column header) against the single-line row height. Wrapped descriptions and
long terms only add pages, so the estimate is a lower bound.
"""

from __future__ import annotations

from .models import Invoice
from .pdf_constants import CONTENT_BOTTOM, CONTENT_TOP, ITEM_ROW_H

# Meta, client/event columns and the items heading on page 1
FIRST_PAGE_OVERHEAD = 160.0
# Totals, dividers and the signature block at the end
LAST_PAGE_OVERHEAD = 180.0

MID_PAGE_CAPACITY = int((CONTENT_BOTTOM - CONTENT_TOP) // ITEM_ROW_H)
FIRST_PAGE_CAPACITY = int((CONTENT_BOTTOM - CONTENT_TOP - FIRST_PAGE_OVERHEAD) // ITEM_ROW_H)
TAIL_ROWS = int(-(-LAST_PAGE_OVERHEAD // ITEM_ROW_H))


def table_rows(invoice: Invoice) -> int:
    return sum(len(group.items) + 2 for group in invoice.groups)


def estimate_page_count(row_count: int) -> int:
    rows = row_count + TAIL_ROWS
    if rows <= FIRST_PAGE_CAPACITY:
        return 1
    remaining = rows - FIRST_PAGE_CAPACITY
    return 1 + (remaining + MID_PAGE_CAPACITY - 1) // MID_PAGE_CAPACITY


def max_rows_for_pages(page_count: int) -> int:
    if page_count <= 1:
        return max(0, FIRST_PAGE_CAPACITY - TAIL_ROWS)
    return FIRST_PAGE_CAPACITY + MID_PAGE_CAPACITY * (page_count - 1) - TAIL_ROWS
