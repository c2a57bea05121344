"""Public package API for invoice PDF generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import Invoice, RenderOptions
    from .parsing import ParsedGroup
    from .totals import InvoiceTotals


def render_invoice(invoice: "Invoice", options: Optional["RenderOptions"] = None) -> bytes:
    from .rendering import render_invoice as _render_invoice

    return _render_invoice(invoice, options)


def parse_free_text(text: str) -> List["ParsedGroup"]:
    from .parsing import parse_free_text as _parse_free_text

    return _parse_free_text(text)


def invoice_totals(invoice: "Invoice") -> "InvoiceTotals":
    from .totals import invoice_totals as _invoice_totals

    return _invoice_totals(invoice)


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    from .server import run as _run

    _run(host, port)


__all__ = ["invoice_totals", "parse_free_text", "render_invoice", "run"]
