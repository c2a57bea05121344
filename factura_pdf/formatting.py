"""Formatting and text wrapping helpers."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Protocol, Tuple

from dateutil import parser as dateutil_parser

from .pdf_constants import CURRENCY_SYMBOLS

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
BULLET_RE = re.compile(r"^\s*([-*•]|\d+\.)\s+")
PARAGRAPH_SPLIT_RE = re.compile(r"\r?\n\r?\n")
LINE_SPLIT_RE = re.compile(r"\r?\n")


class TextWidthProvider(Protocol):
    def text_width(self, text: str, size: float, bold: bool = False) -> float:
        ...


def currency_symbol(currency: Any) -> str:
    code = str(getattr(currency, "value", currency) or "GTQ").upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def fmt_money(amount: float, symbol: str) -> str:
    # Half-up on the exact binary value, no grouping: "Q 1500.50"
    cents = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol} {cents}"


def fmt_qty(qty: Any) -> str:
    try:
        quantity = float(qty)
        if quantity.is_integer():
            return str(int(quantity))
        return str(quantity)
    except (TypeError, ValueError):
        return str(qty)


def fmt_percent(rate: float) -> str:
    return f"{math.floor(rate * 100 + 0.5)}%"


def fmt_date(raw: str | None) -> str:
    """Render ``YYYY-MM-DD`` as ``DD/MM/YYYY``; other input is returned as-is."""
    if not raw:
        return ""
    raw = raw.strip()
    if not ISO_DATE_RE.match(raw):
        return raw
    try:
        dt = dateutil_parser.isoparse(raw)
    except (ValueError, OverflowError):
        return raw
    return dt.strftime("%d/%m/%Y")


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    digits = value.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) != 6:
        raise ValueError(f"Invalid hex colour: {value!r}")
    number = int(digits, 16)
    return (number >> 16) & 255, (number >> 8) & 255, number & 255


def split_lines(text: str) -> List[str]:
    if not text:
        return []
    return LINE_SPLIT_RE.split(text)


def split_paragraphs(text: str) -> List[str]:
    return PARAGRAPH_SPLIT_RE.split(text or "")


def collapse_whitespace(text: str) -> str:
    return " ".join((text or "").split())


def is_bullet_line(line: str) -> bool:
    return BULLET_RE.match(line) is not None


def strip_bullet(line: str) -> str:
    return BULLET_RE.sub("", line, count=1)


def _break_token(token: str, fits) -> List[str]:
    pieces: List[str] = []
    chunk = ""
    for char in token:
        candidate = chunk + char
        if chunk and not fits(candidate):
            pieces.append(chunk)
            chunk = char
        else:
            chunk = candidate
    if chunk:
        pieces.append(chunk)
    return pieces


def _greedy_wrap(text: str, fits) -> List[str]:
    lines: List[str] = []
    current = ""
    for word in (text or "").split():
        if not fits(word):
            if current:
                lines.append(current)
            pieces = _break_token(word, fits)
            lines.extend(pieces[:-1])
            current = pieces[-1]
            continue

        candidate = word if not current else f"{current} {word}"
        if fits(candidate):
            current = candidate
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)
    return lines if lines else [""]


def wrap_by_width(
    fonts_obj: TextWidthProvider,
    text: str,
    max_width: float,
    font_size: float,
    bold: bool = False,
) -> List[str]:
    """Greedy word wrap by measured width.

    Words wider than ``max_width`` are split by characters; a lone character
    is never split further even if it does not fit.
    """

    def fits(value: str) -> bool:
        return fonts_obj.text_width(value, font_size, bold=bold) <= max_width

    return _greedy_wrap(text, fits)


def wrap_text(text: str, max_chars: int) -> List[str]:
    """Greedy word wrap by character count."""
    return _greedy_wrap(text, lambda value: len(value) <= max_chars)
