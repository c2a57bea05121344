"""Subtotal, tax and total computation."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .models import Group, Invoice


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: float
    tax: float
    total: float


def round_half_up_cents(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def group_total(group: Group) -> float:
    return sum((item.qty * item.unit.amount for item in group.items), 0.0)


def invoice_totals(invoice: Invoice) -> InvoiceTotals:
    """Compute invoice totals.

    Only the tax term is rounded to cents; the subtotal is summed without
    rounding and added to the rounded tax as-is. Existing invoices were
    issued with this policy, so changing it changes their totals.
    """
    subtotal = sum((group_total(group) for group in invoice.groups), 0.0)
    tax = round_half_up_cents(subtotal * invoice.tax.rate)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)
