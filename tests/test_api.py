import errno
import json
import unittest
from unittest.mock import patch

from factura_pdf.server import (
    decode_json_body,
    handle_parse_payload,
    is_client_disconnect,
    validate_invoice_payload,
)


def invoice_payload() -> dict:
    return {
        "id": "inv-1",
        "meta": {"issuedAt": "2025-03-09", "locale": "es-GT"},
        "client": {"name": "María López"},
        "groups": [
            {
                "id": "g1",
                "title": "Mobiliario",
                "items": [{"id": "it1", "qty": 10, "desc": "Mesas", "unit": {"amount": 50, "currency": "GTQ"}}],
            }
        ],
        "tax": {"rate": 0.12},
        "currency": "GTQ",
    }


class ApiValidationTests(unittest.TestCase):
    def _json_bytes(self, payload: object) -> bytes:
        return json.dumps(payload).encode("utf-8")

    def test_accepts_valid_payload(self) -> None:
        job, error = validate_invoice_payload(
            self._json_bytes({"invoice": invoice_payload(), "options": {"title": "Cotización"}}),
            max_pages=100,
        )

        self.assertIsNone(error)
        assert job is not None
        invoice, options = job
        self.assertEqual(invoice.groups[0].items[0].desc, "Mesas")
        self.assertEqual(options.title, "Cotización")

    def test_rejects_invalid_utf8(self) -> None:
        _, error = validate_invoice_payload(b"\xff", max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 400)
        self.assertEqual(error[1]["error"], "invalid_encoding")

    def test_rejects_invalid_json(self) -> None:
        _, error = validate_invoice_payload(b'{"invoice":', max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 400)
        self.assertEqual(error[1]["error"], "invalid_json")

    def test_rejects_non_object_root(self) -> None:
        _, error = validate_invoice_payload(self._json_bytes(["bad-root"]), max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 400)
        self.assertEqual(error[1]["error"], "invalid_payload")

    def test_rejects_missing_invoice(self) -> None:
        _, error = validate_invoice_payload(self._json_bytes({"options": {}}), max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 400)
        self.assertEqual(error[1]["error"], "invalid_payload")

    def test_rejects_invalid_invoice(self) -> None:
        payload = invoice_payload()
        payload["tax"]["rate"] = 2

        _, error = validate_invoice_payload(self._json_bytes({"invoice": payload}), max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 400)
        self.assertEqual(error[1]["error"], "invalid_invoice")
        self.assertIn("invoice.tax.rate", error[1]["detail"])

    def test_rejects_invalid_options(self) -> None:
        body = self._json_bytes({"invoice": invoice_payload(), "options": {"headerColorHex": "red"}})

        _, error = validate_invoice_payload(body, max_pages=100)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[1]["error"], "invalid_invoice")

    def test_rejects_payload_exceeding_max_pages(self) -> None:
        with patch("factura_pdf.server.estimate_page_count", return_value=11):
            _, error = validate_invoice_payload(self._json_bytes({"invoice": invoice_payload()}), max_pages=10)

        self.assertIsNotNone(error)
        assert error is not None
        self.assertEqual(error[0], 413)
        self.assertEqual(error[1]["error"], "invoice_too_large")
        self.assertIn("max_rows", error[1])


class ParseEndpointTests(unittest.TestCase):
    def test_parses_text_into_groups(self) -> None:
        body = json.dumps({"text": "Mobiliario:\nSillas 100 x 15"}).encode("utf-8")

        status, payload = handle_parse_payload(body)

        self.assertEqual(status, 200)
        self.assertEqual(
            payload,
            {
                "groups": [
                    {
                        "title": "Mobiliario",
                        "items": [{"desc": "Sillas", "qty": 100, "price": 15, "currency": "GTQ"}],
                    }
                ]
            },
        )

    def test_merges_into_supplied_invoice(self) -> None:
        body = json.dumps(
            {"text": "mobiliario:\nSillas 100 x 15\nSonido:\nBocinas 2 x 300 usd", "invoice": invoice_payload()}
        ).encode("utf-8")

        status, payload = handle_parse_payload(body)

        self.assertEqual(status, 200)
        groups = payload["invoice"]["groups"]
        self.assertEqual([group["title"] for group in groups], ["Mobiliario", "Sonido"])
        self.assertEqual([item["desc"] for item in groups[0]["items"]], ["Mesas", "Sillas"])
        self.assertEqual(groups[1]["items"][0]["unit"], {"amount": 300, "currency": "USD"})

    def test_rejects_missing_text(self) -> None:
        status, payload = handle_parse_payload(b"{}")

        self.assertEqual(status, 400)
        self.assertEqual(payload["error"], "invalid_payload")

    def test_rejects_undecodable_bodies(self) -> None:
        cases = [
            (b"\xff\xfe", "invalid_encoding"),
            (b"{", "invalid_json"),
            (b"[]", "invalid_payload"),
        ]
        for body, error in cases:
            with self.subTest(body=body):
                status, payload = handle_parse_payload(body)
                self.assertEqual(status, 400)
                self.assertEqual(payload["error"], error)

    def test_decode_errors_come_with_empty_payload(self) -> None:
        payload, error = decode_json_body(b"null")

        self.assertEqual(payload, {})
        self.assertEqual(error[0], 400)

    def test_rejects_invalid_invoice(self) -> None:
        body = json.dumps({"text": "Sillas 1 x 1", "invoice": {"id": "x"}}).encode("utf-8")

        status, payload = handle_parse_payload(body)

        self.assertEqual(status, 400)
        self.assertEqual(payload["error"], "invalid_invoice")


class ClientDisconnectTests(unittest.TestCase):
    def test_recognises_disconnect_errors(self) -> None:
        self.assertTrue(is_client_disconnect(BrokenPipeError()))
        self.assertTrue(is_client_disconnect(ConnectionResetError()))
        self.assertTrue(is_client_disconnect(OSError(errno.EPIPE, "Broken pipe")))
        self.assertFalse(is_client_disconnect(OSError(errno.ENOENT, "No such file")))
        self.assertFalse(is_client_disconnect(ValueError("boom")))


if __name__ == "__main__":
    unittest.main()
