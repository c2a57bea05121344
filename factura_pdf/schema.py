"""Conversion between the invoice JSON contract and the dataclass model.

The JSON shape is the one the persistence/editor layer stores (camelCase
keys, ``unit: {amount, currency}``, ``tax: {rate}``). Invariants are checked
here so that the layout engine can assume valid input.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from .models import (
    LOCALE,
    BankAccount,
    BankDetails,
    Client,
    Currency,
    Event,
    Group,
    Invoice,
    InvoiceMeta,
    LineItem,
    Money,
    RenderOptions,
    SecondaryCurrency,
    TaxConfig,
)
from .parsing import ParsedGroup

MAX_TAX_RATE = 0.25


class SchemaError(ValueError):
    """Raised when a payload does not match the invoice contract."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def _require_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaError(path, "must be an object")
    return value


def _string(data: Mapping[str, Any], key: str, path: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise SchemaError(f"{path}.{key}", "must be a string")
    return value


def _optional_string(data: Mapping[str, Any], key: str, path: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SchemaError(f"{path}.{key}", "must be a string")
    return value


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(path, "must be a number")
    if not math.isfinite(value):
        raise SchemaError(path, "must be finite")
    return float(value)


def _currency(value: Any, path: str, allowed: Optional[List[Currency]] = None) -> Currency:
    try:
        currency = Currency(value)
    except ValueError:
        raise SchemaError(path, f"unsupported currency {value!r}") from None
    if allowed is not None and currency not in allowed:
        raise SchemaError(path, f"must be one of {', '.join(c.value for c in allowed)}")
    return currency


def _line_item(data: Any, path: str) -> LineItem:
    data = _require_mapping(data, path)
    qty = _number(data.get("qty"), f"{path}.qty")
    if not qty.is_integer():
        raise SchemaError(f"{path}.qty", "must be an integer")
    if qty < 0:
        raise SchemaError(f"{path}.qty", "must be >= 0")

    unit = _require_mapping(data.get("unit"), f"{path}.unit")
    amount = _number(unit.get("amount"), f"{path}.unit.amount")
    if amount < 0:
        raise SchemaError(f"{path}.unit.amount", "must be >= 0")

    return LineItem(
        id=_string(data, "id", path),
        qty=int(qty),
        desc=_string(data, "desc", path),
        unit=Money(amount=amount, currency=_currency(unit.get("currency"), f"{path}.unit.currency")),
        notes=_optional_string(data, "notes", path),
    )


def _group(data: Any, path: str) -> Group:
    data = _require_mapping(data, path)
    items = data.get("items")
    if not isinstance(items, list):
        raise SchemaError(f"{path}.items", "must be an array")
    return Group(
        id=_string(data, "id", path),
        title=_string(data, "title", path),
        items=[_line_item(item, f"{path}.items[{i}]") for i, item in enumerate(items)],
    )


def _bank_account(data: Any, path: str) -> Optional[BankAccount]:
    if data is None:
        return None
    data = _require_mapping(data, path)
    return BankAccount(
        bank=_string(data, "bank", path),
        account_type=_string(data, "type", path),
        account=_string(data, "account", path),
        name=_string(data, "name", path),
    )


def invoice_from_dict(data: Any) -> Invoice:
    data = _require_mapping(data, "invoice")

    meta = _require_mapping(data.get("meta"), "invoice.meta")
    locale = meta.get("locale", LOCALE)
    if locale != LOCALE:
        raise SchemaError("invoice.meta.locale", f"must be {LOCALE!r}")

    client = _require_mapping(data.get("client"), "invoice.client")

    groups = data.get("groups")
    if not isinstance(groups, list):
        raise SchemaError("invoice.groups", "must be an array")

    tax = _require_mapping(data.get("tax"), "invoice.tax")
    rate = _number(tax.get("rate"), "invoice.tax.rate")
    if not 0 <= rate <= MAX_TAX_RATE:
        raise SchemaError("invoice.tax.rate", f"must be between 0 and {MAX_TAX_RATE}")

    event = None
    if data.get("event") is not None:
        raw_event = _require_mapping(data["event"], "invoice.event")
        event = Event(
            name=_optional_string(raw_event, "name", "invoice.event"),
            date=_optional_string(raw_event, "date", "invoice.event"),
            location=_optional_string(raw_event, "location", "invoice.event"),
        )

    secondary = None
    if data.get("secondaryCurrency") is not None:
        raw_secondary = _require_mapping(data["secondaryCurrency"], "invoice.secondaryCurrency")
        secondary = SecondaryCurrency(
            code=_currency(
                raw_secondary.get("code"),
                "invoice.secondaryCurrency.code",
                allowed=[Currency.USD],
            ),
            rate_note=_optional_string(raw_secondary, "rateNote", "invoice.secondaryCurrency"),
        )

    bank = None
    if data.get("bank") is not None:
        raw_bank = _require_mapping(data["bank"], "invoice.bank")
        bank = BankDetails(
            gtq=_bank_account(raw_bank.get("gtq"), "invoice.bank.gtq"),
            usd=_bank_account(raw_bank.get("usd"), "invoice.bank.usd"),
        )

    return Invoice(
        id=_string(data, "id", "invoice"),
        meta=InvoiceMeta(
            issued_at=_string(meta, "issuedAt", "invoice.meta"),
            locale=locale,
            number=_optional_string(meta, "number", "invoice.meta"),
            series=_optional_string(meta, "series", "invoice.meta"),
            due_at=_optional_string(meta, "dueAt", "invoice.meta"),
        ),
        client=Client(
            name=_string(client, "name", "invoice.client"),
            contact=_optional_string(client, "contact", "invoice.client"),
            address=_optional_string(client, "address", "invoice.client"),
            tax_id=_optional_string(client, "dpi", "invoice.client"),
        ),
        groups=[_group(group, f"invoice.groups[{i}]") for i, group in enumerate(groups)],
        tax=TaxConfig(rate=rate),
        currency=_currency(data.get("currency", "GTQ"), "invoice.currency", allowed=[Currency.GTQ]),
        event=event,
        secondary_currency=secondary,
        bank=bank,
        terms=_optional_string(data, "terms", "invoice"),
        notes=_optional_string(data, "notes", "invoice"),
    )


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _bank_account_dict(account: Optional[BankAccount]) -> Optional[Dict[str, Any]]:
    if account is None:
        return None
    return {
        "bank": account.bank,
        "type": account.account_type,
        "account": account.account,
        "name": account.name,
    }


def invoice_to_dict(invoice: Invoice) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": invoice.id,
        "meta": _drop_none(
            {
                "issuedAt": invoice.meta.issued_at,
                "locale": invoice.meta.locale,
                "number": invoice.meta.number,
                "series": invoice.meta.series,
                "dueAt": invoice.meta.due_at,
            }
        ),
        "client": _drop_none(
            {
                "name": invoice.client.name,
                "contact": invoice.client.contact,
                "address": invoice.client.address,
                "dpi": invoice.client.tax_id,
            }
        ),
        "groups": [
            {
                "id": group.id,
                "title": group.title,
                "items": [
                    _drop_none(
                        {
                            "id": item.id,
                            "qty": item.qty,
                            "desc": item.desc,
                            "unit": {"amount": item.unit.amount, "currency": item.unit.currency.value},
                            "notes": item.notes,
                        }
                    )
                    for item in group.items
                ],
            }
            for group in invoice.groups
        ],
        "tax": {"rate": invoice.tax.rate},
        "currency": invoice.currency.value,
        "terms": invoice.terms,
        "notes": invoice.notes,
    }
    if invoice.event is not None:
        data["event"] = _drop_none(
            {
                "name": invoice.event.name,
                "date": invoice.event.date,
                "location": invoice.event.location,
            }
        )
    if invoice.secondary_currency is not None:
        data["secondaryCurrency"] = _drop_none(
            {
                "code": invoice.secondary_currency.code.value,
                "rateNote": invoice.secondary_currency.rate_note,
            }
        )
    if invoice.bank is not None:
        data["bank"] = _drop_none(
            {
                "gtq": _bank_account_dict(invoice.bank.gtq),
                "usd": _bank_account_dict(invoice.bank.usd),
            }
        )
    return _drop_none(data)


OPTION_KEYS = {
    "title": "title",
    "logoUrl": "logo_url",
    "logoDataUrl": "logo_data_url",
    "footerNote": "footer_note",
    "headerColorHex": "header_color_hex",
    "itemsHeading": "items_heading",
    "signerName": "signer_name",
    "signerTitle": "signer_title",
    "signatureUrl": "signature_url",
    "signatureDataUrl": "signature_data_url",
    "signaturePrintedName": "signature_printed_name",
}


def options_from_dict(data: Any) -> RenderOptions:
    if data is None:
        return RenderOptions()
    data = _require_mapping(data, "options")
    values = {
        field_name: _optional_string(data, key, "options")
        for key, field_name in OPTION_KEYS.items()
    }
    color = values["header_color_hex"]
    if color is not None:
        digits = color.strip().lstrip("#")
        if len(digits) not in (3, 6) or any(ch not in "0123456789abcdefABCDEF" for ch in digits):
            raise SchemaError("options.headerColorHex", "must be a 3 or 6 digit hex colour")
    return RenderOptions(**values)


def parsed_groups_to_list(groups: List[ParsedGroup]) -> List[Dict[str, Any]]:
    return [
        {
            "title": group.title,
            "items": [
                _drop_none(
                    {
                        "desc": item.desc,
                        "qty": item.qty,
                        "price": item.price,
                        "currency": item.currency.value,
                    }
                )
                for item in group.items
            ],
        }
        for group in groups
    ]
