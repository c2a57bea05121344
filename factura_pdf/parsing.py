"""Free-text line item parser.

Accepts loosely structured text such as::

    Mobiliario:
    Sillas 100 x 15
    Mesas 10 @ 50

    Logística:
    Transporte Q2000

Lines ending in a colon (or starting with ``# ``) open a group; item lines
before any heading land in a default ``Items`` group.
"""

from __future__ import annotations

import dataclasses
import math
import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .models import Currency, Group, Invoice, LineItem, Money

DEFAULT_GROUP_TITLE = "Items"

NUMBER = r"\d+(?:[.,]\d+)*"
HEADING_SUFFIX_RE = re.compile(r"[:：]\s*$")
HEADING_PREFIX_RE = re.compile(r"^#\s+")
USD_RE = re.compile(r"\busd\b|\$", re.IGNORECASE)
GTQ_RE = re.compile(r"\b(?:q|gtq|quetzal(?:es)?)\b|(?<![\w$])q(?=\d)", re.IGNORECASE)
CURRENCY_TOKEN_RE = re.compile(
    r"(?<![\w$])(?:gtq|usd|quetzal(?:es)?|q|\$)(?=\d|\s|$)",
    re.IGNORECASE,
)
QTY_TIMES_PRICE_RE = re.compile(
    rf"^(.+?)\s+({NUMBER})\s*(?:x|×|@)\s*({NUMBER})(?!\S)",
    re.IGNORECASE,
)
LEADING_QTY_RE = re.compile(rf"^({NUMBER})\s+(.+?)\s+({NUMBER})$")
TRAILING_PRICE_RE = re.compile(rf"^(.+?)\s+({NUMBER})$")
LEADING_FLOAT_RE = re.compile(r"\d+(?:\.\d*)?")


@dataclass
class ParsedItem:
    desc: str
    qty: Optional[float] = 1
    price: Optional[float] = None
    currency: Currency = Currency.GTQ


@dataclass
class ParsedGroup:
    title: str
    items: List[ParsedItem] = field(default_factory=list)


def to_number(token: Optional[str]) -> Optional[float]:
    """Parse ``1.500,50`` style numbers: ``.`` groups thousands, ``,`` is decimal."""
    if not token:
        return None
    cleaned = token.replace(".", "").replace(",", ".", 1)
    match = LEADING_FLOAT_RE.match(cleaned)
    if not match:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


def detect_currency(line: str) -> Optional[Currency]:
    if USD_RE.search(line):
        return Currency.USD
    if GTQ_RE.search(line):
        return Currency.GTQ
    return None


def _heading_title(line: str) -> Optional[str]:
    if not (HEADING_SUFFIX_RE.search(line) or HEADING_PREFIX_RE.match(line)):
        return None
    return HEADING_SUFFIX_RE.sub("", HEADING_PREFIX_RE.sub("", line)).strip()


def parse_line(raw: str) -> ParsedItem:
    currency = detect_currency(raw) or Currency.GTQ
    text = CURRENCY_TOKEN_RE.sub("", raw)
    text = re.sub(r"\s{2,}", " ", text).strip()

    match = QTY_TIMES_PRICE_RE.match(text)
    if match:
        return ParsedItem(
            desc=match.group(1).strip(),
            qty=to_number(match.group(2)),
            price=to_number(match.group(3)),
            currency=currency,
        )

    match = LEADING_QTY_RE.match(text)
    if match:
        return ParsedItem(
            desc=match.group(2).strip(),
            qty=to_number(match.group(1)),
            price=to_number(match.group(3)),
            currency=currency,
        )

    match = TRAILING_PRICE_RE.match(text)
    if match:
        return ParsedItem(
            desc=match.group(1).strip(),
            qty=1,
            price=to_number(match.group(2)),
            currency=currency,
        )

    return ParsedItem(desc=raw, qty=1, price=None, currency=currency)


def parse_free_text(text: str) -> List[ParsedGroup]:
    lines = [line.strip() for line in re.split(r"\r?\n", text or "")]
    lines = [line for line in lines if line]
    if not lines:
        return []

    current = ParsedGroup(title=DEFAULT_GROUP_TITLE)
    groups = [current]
    for line in lines:
        title = _heading_title(line)
        if title is not None:
            if title:
                current = ParsedGroup(title=title)
                groups.append(current)
            continue
        current.items.append(parse_line(line))

    return [group for group in groups if group.items]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:7]}"


def _whole_qty(qty: Optional[float]) -> int:
    if qty is None:
        return 1
    return max(0, int(math.floor(qty + 0.5)))


def merge_parsed_groups(
    invoice: Invoice,
    parsed: Iterable[ParsedGroup],
    id_factory: Callable[[str], str] = new_id,
) -> Invoice:
    """Return a copy of ``invoice`` with parsed items appended.

    Parsed groups join the first existing group whose trimmed title matches
    case-insensitively; unmatched titles become new groups at the end.
    """
    titles = [group.title for group in invoice.groups]
    ids = [group.id for group in invoice.groups]
    items = [list(group.items) for group in invoice.groups]

    for parsed_group in parsed:
        key = parsed_group.title.strip().lower()
        index = next(
            (i for i, title in enumerate(titles) if title.strip().lower() == key),
            None,
        )
        if index is None:
            titles.append(parsed_group.title)
            ids.append(id_factory("grp"))
            items.append([])
            index = len(titles) - 1

        for parsed_item in parsed_group.items:
            items[index].append(
                LineItem(
                    id=id_factory("it"),
                    qty=_whole_qty(parsed_item.qty),
                    desc=parsed_item.desc,
                    unit=Money(
                        amount=parsed_item.price if parsed_item.price is not None else 0.0,
                        currency=parsed_item.currency,
                    ),
                )
            )

    groups = [
        Group(id=group_id, title=title, items=group_items)
        for group_id, title, group_items in zip(ids, titles, items)
    ]
    return dataclasses.replace(invoice, groups=groups)
