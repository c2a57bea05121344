"""Invoice document model and render options."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from . import config
from .pdf_constants import DEFAULT_HEADER_COLOR, DEFAULT_ITEMS_HEADING, DEFAULT_TITLE


class Currency(str, Enum):
    GTQ = "GTQ"
    USD = "USD"


LOCALE = "es-GT"


@dataclass(frozen=True)
class Money:
    amount: float
    currency: Currency = Currency.GTQ


@dataclass(frozen=True)
class LineItem:
    id: str
    qty: int
    desc: str
    unit: Money
    notes: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.qty * self.unit.amount


@dataclass(frozen=True)
class Group:
    id: str
    title: str
    items: List[LineItem] = field(default_factory=list)


@dataclass(frozen=True)
class InvoiceMeta:
    issued_at: str
    locale: str = LOCALE
    number: Optional[str] = None
    series: Optional[str] = None
    due_at: Optional[str] = None


@dataclass(frozen=True)
class Client:
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None


@dataclass(frozen=True)
class Event:
    name: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class TaxConfig:
    rate: float = 0.0


@dataclass(frozen=True)
class SecondaryCurrency:
    code: Currency = Currency.USD
    rate_note: Optional[str] = None


@dataclass(frozen=True)
class BankAccount:
    bank: str
    account_type: str
    account: str
    name: str


@dataclass(frozen=True)
class BankDetails:
    gtq: Optional[BankAccount] = None
    usd: Optional[BankAccount] = None

    def accounts(self) -> List[tuple]:
        """Present accounts as ``(currency, account)`` pairs, GTQ first."""
        pairs = []
        if self.gtq is not None:
            pairs.append((Currency.GTQ, self.gtq))
        if self.usd is not None:
            pairs.append((Currency.USD, self.usd))
        return pairs


@dataclass(frozen=True)
class Invoice:
    id: str
    meta: InvoiceMeta
    client: Client
    groups: List[Group] = field(default_factory=list)
    tax: TaxConfig = field(default_factory=TaxConfig)
    currency: Currency = Currency.GTQ
    event: Optional[Event] = None
    secondary_currency: Optional[SecondaryCurrency] = None
    bank: Optional[BankDetails] = None
    terms: Optional[str] = None
    notes: Optional[str] = None


def _first_present(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


@dataclass(frozen=True)
class RenderOptions:
    title: Optional[str] = None
    logo_url: Optional[str] = None
    logo_data_url: Optional[str] = None
    footer_note: Optional[str] = None
    header_color_hex: Optional[str] = None
    items_heading: Optional[str] = None
    signer_name: Optional[str] = None
    signer_title: Optional[str] = None
    signature_url: Optional[str] = None
    signature_data_url: Optional[str] = None
    signature_printed_name: Optional[str] = None

    @property
    def resolved_title(self) -> str:
        return self.title or DEFAULT_TITLE

    @property
    def resolved_header_color(self) -> str:
        return self.header_color_hex or DEFAULT_HEADER_COLOR

    @property
    def resolved_items_heading(self) -> str:
        return DEFAULT_ITEMS_HEADING if self.items_heading is None else self.items_heading

    @property
    def logo_source(self) -> Optional[str]:
        return _first_present(self.logo_data_url, self.logo_url, config.DEFAULT_LOGO_SOURCE)

    @property
    def signature_source(self) -> Optional[str]:
        return _first_present(self.signature_data_url, self.signature_url)
