import itertools
import unittest

from factura_pdf.models import Client, Currency, Group, Invoice, InvoiceMeta, LineItem, Money
from factura_pdf.parsing import (
    DEFAULT_GROUP_TITLE,
    ParsedGroup,
    ParsedItem,
    detect_currency,
    merge_parsed_groups,
    parse_free_text,
    parse_line,
    to_number,
)


class ParseFreeTextTests(unittest.TestCase):
    def test_groups_and_items_from_headed_text(self) -> None:
        text = "Mobiliario:\nSillas 100 x 15\nMesas 10 @ 50\n\nLogística:\nTransporte Q2000"

        groups = parse_free_text(text)

        self.assertEqual([group.title for group in groups], ["Mobiliario", "Logística"])
        self.assertEqual(
            groups[0].items,
            [
                ParsedItem(desc="Sillas", qty=100, price=15, currency=Currency.GTQ),
                ParsedItem(desc="Mesas", qty=10, price=50, currency=Currency.GTQ),
            ],
        )
        self.assertEqual(
            groups[1].items,
            [ParsedItem(desc="Transporte", qty=1, price=2000, currency=Currency.GTQ)],
        )

    def test_items_before_a_heading_use_default_group(self) -> None:
        groups = parse_free_text("Sillas 10 x 5\n# Sonido\nBocinas 2 x 300")

        self.assertEqual([group.title for group in groups], [DEFAULT_GROUP_TITLE, "Sonido"])

    def test_empty_groups_are_dropped(self) -> None:
        groups = parse_free_text("Vacío:\nMobiliario:\nSillas 1 x 1\n:")

        self.assertEqual([group.title for group in groups], ["Mobiliario"])

    def test_blank_text(self) -> None:
        self.assertEqual(parse_free_text(""), [])
        self.assertEqual(parse_free_text("  \n\n "), [])


class ParseLineTests(unittest.TestCase):
    def test_decimal_comma_and_thousands_dot(self) -> None:
        item = parse_line("Carpa 2 x 1.500,50")

        self.assertEqual((item.desc, item.qty, item.price), ("Carpa", 2, 1500.5))

    def test_leading_quantity(self) -> None:
        item = parse_line("3 Manteles 25")

        self.assertEqual((item.desc, item.qty, item.price), ("Manteles", 3, 25))

    def test_trailing_price_defaults_quantity_to_one(self) -> None:
        item = parse_line("Montaje 350")

        self.assertEqual((item.desc, item.qty, item.price), ("Montaje", 1, 350))

    def test_dollar_sign_marks_usd(self) -> None:
        item = parse_line("Arreglos $250")

        self.assertEqual(item, ParsedItem(desc="Arreglos", qty=1, price=250, currency=Currency.USD))

    def test_usd_word_marks_usd(self) -> None:
        item = parse_line("Sonido 300 usd")

        self.assertEqual((item.desc, item.price, item.currency), ("Sonido", 300, Currency.USD))

    def test_unparseable_line_keeps_raw_description(self) -> None:
        item = parse_line("Decoración floral")

        self.assertEqual(item, ParsedItem(desc="Decoración floral", qty=1, price=None))

    def test_words_starting_with_q_are_not_currency(self) -> None:
        item = parse_line("Queso 5")

        self.assertEqual((item.desc, item.price), ("Queso", 5))


class NumberAndCurrencyTests(unittest.TestCase):
    def test_to_number(self) -> None:
        self.assertEqual(to_number("1.500,50"), 1500.5)
        self.assertEqual(to_number("15"), 15)
        self.assertEqual(to_number("12abc"), 12)
        self.assertIsNone(to_number("abc"))
        self.assertIsNone(to_number(""))
        self.assertIsNone(to_number(None))

    def test_detect_currency(self) -> None:
        self.assertEqual(detect_currency("Total USD"), Currency.USD)
        self.assertEqual(detect_currency("Q 200"), Currency.GTQ)
        self.assertEqual(detect_currency("500 quetzales"), Currency.GTQ)
        self.assertIsNone(detect_currency("Sillas 10"))


class MergeParsedGroupsTests(unittest.TestCase):
    def setUp(self) -> None:
        counter = itertools.count(1)
        self.id_factory = lambda prefix: f"{prefix}-{next(counter)}"
        self.invoice = Invoice(
            id="inv-1",
            meta=InvoiceMeta(issued_at="2025-03-09"),
            client=Client(name="Cliente"),
            groups=[
                Group(
                    id="g-existing",
                    title="Mobiliario",
                    items=[LineItem(id="it-a", qty=1, desc="Mesa", unit=Money(50))],
                )
            ],
        )

    def test_matching_title_appends_to_existing_group(self) -> None:
        parsed = [ParsedGroup(title=" mobiliario ", items=[ParsedItem(desc="Sillas", qty=100, price=15)])]

        merged = merge_parsed_groups(self.invoice, parsed, id_factory=self.id_factory)

        self.assertEqual(len(merged.groups), 1)
        self.assertEqual(merged.groups[0].id, "g-existing")
        self.assertEqual([item.desc for item in merged.groups[0].items], ["Mesa", "Sillas"])
        self.assertEqual(merged.groups[0].items[1].id, "it-1")

    def test_unmatched_title_creates_new_group(self) -> None:
        parsed = [
            ParsedGroup(
                title="Extras",
                items=[ParsedItem(desc="Flores", qty=2.5, price=None, currency=Currency.USD)],
            )
        ]

        merged = merge_parsed_groups(self.invoice, parsed, id_factory=self.id_factory)

        self.assertEqual([group.title for group in merged.groups], ["Mobiliario", "Extras"])
        new_group = merged.groups[1]
        self.assertEqual(new_group.id, "grp-1")
        self.assertEqual(
            new_group.items,
            [LineItem(id="it-2", qty=3, desc="Flores", unit=Money(0.0, Currency.USD))],
        )

    def test_original_invoice_is_unchanged(self) -> None:
        parsed = parse_free_text("Mobiliario:\nSillas 100 x 15")

        merge_parsed_groups(self.invoice, parsed, id_factory=self.id_factory)

        self.assertEqual(len(self.invoice.groups[0].items), 1)


if __name__ == "__main__":
    unittest.main()
