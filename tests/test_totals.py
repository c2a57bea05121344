import unittest

from factura_pdf.models import Client, Currency, Group, Invoice, InvoiceMeta, LineItem, Money, TaxConfig
from factura_pdf.totals import group_total, invoice_totals, round_half_up_cents


def make_invoice(groups, rate: float) -> Invoice:
    return Invoice(
        id="inv-1",
        meta=InvoiceMeta(issued_at="2025-03-09"),
        client=Client(name="Cliente"),
        groups=groups,
        tax=TaxConfig(rate=rate),
    )


def item(qty: int, amount: float, currency: Currency = Currency.GTQ) -> LineItem:
    return LineItem(id=f"it-{qty}-{amount}", qty=qty, desc="Item", unit=Money(amount, currency))


class TotalsTests(unittest.TestCase):
    def test_twelve_percent_on_one_thousand(self) -> None:
        invoice = make_invoice([Group(id="g1", title="A", items=[item(1, 1000)])], 0.12)

        totals = invoice_totals(invoice)

        self.assertEqual(totals.subtotal, 1000)
        self.assertEqual(totals.tax, 120.0)
        self.assertEqual(totals.total, 1120.0)

    def test_tax_rounds_half_up_to_cents(self) -> None:
        invoice = make_invoice([Group(id="g1", title="A", items=[item(1, 0.25)])], 0.5)

        totals = invoice_totals(invoice)

        self.assertEqual(totals.tax, 0.13)
        self.assertAlmostEqual(totals.total, 0.38)

    def test_subtotal_sums_every_group(self) -> None:
        groups = [
            Group(id="g1", title="A", items=[item(100, 15), item(10, 50)]),
            Group(id="g2", title="B", items=[item(1, 2000)]),
        ]
        invoice = make_invoice(groups, 0.0)

        self.assertEqual(group_total(groups[0]), 2000)
        self.assertEqual(invoice_totals(invoice).subtotal, 4000)
        self.assertEqual(invoice_totals(invoice).tax, 0)

    def test_empty_invoice_totals_are_zero(self) -> None:
        totals = invoice_totals(make_invoice([], 0.12))

        self.assertEqual((totals.subtotal, totals.tax, totals.total), (0, 0, 0))

    def test_repeated_calls_return_identical_results(self) -> None:
        invoice = make_invoice([Group(id="g1", title="A", items=[item(3, 33.33)])], 0.12)

        self.assertEqual(invoice_totals(invoice), invoice_totals(invoice))

    def test_round_half_up_cents_is_idempotent(self) -> None:
        for value in (0.125, 1.005, 2.675, 10.0, 99.995):
            once = round_half_up_cents(value)
            self.assertEqual(round_half_up_cents(once), once)


if __name__ == "__main__":
    unittest.main()
