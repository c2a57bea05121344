"""Document layout engine.

Lays an invoice out onto fixed-size pages as lists of draw operations. The
engine never touches the PDF backend: ``rendering.InvoiceRenderer`` paints
the resulting pages. Coordinates are points with a top-left origin, so the
content cursor ``LayoutState.y`` only ever grows within a page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

from .assets import EmbeddedImage
from .formatting import (
    TextWidthProvider,
    collapse_whitespace,
    currency_symbol,
    fmt_date,
    fmt_money,
    fmt_percent,
    fmt_qty,
    hex_to_rgb,
    is_bullet_line,
    split_lines,
    split_paragraphs,
    strip_bullet,
    wrap_by_width,
    wrap_text,
)
from .models import BankDetails, Client, Event, Group, Invoice, InvoiceMeta, LineItem, RenderOptions
from .pdf_constants import (
    BANK_LABELS,
    BANK_LINE_H,
    BULLET_BLANK_GAP,
    BULLET_GLYPH,
    BULLET_INDENT,
    BULLET_MAX_CHARS,
    COLOR_DIVIDER,
    COLOR_FOOTER_BAR,
    COLOR_FOOTER_TEXT,
    COLOR_MUTED,
    COLOR_TABLE_HEADER,
    COLOR_TEXT,
    COLOR_TITLE,
    COLUMN_LABEL_GAP,
    COLUMN_LINE_H,
    COLUMN_MAX_CHARS,
    COLUMNS_BOTTOM_GAP,
    CONTENT_BOTTOM,
    CONTENT_TOP,
    DEFAULT_HEADER_COLOR,
    DESC_PADDING,
    DESC_X,
    DIVIDER_H,
    DIVIDER_OFFSET,
    EVENT_COL_W,
    FONT_SIZE_FOOTER,
    FONT_SIZE_HEADING,
    FONT_SIZE_NORMAL,
    FONT_SIZE_SECTION,
    FONT_SIZE_SMALL,
    FONT_SIZE_TITLE,
    FOOTER_BASELINE,
    FOOTER_H,
    GROUP_BOTTOM_GAP,
    GROUP_TITLE_GAP,
    HEADER_H,
    ITEM_ROW_H,
    ITEMS_HEADING_AFTER,
    ITEMS_HEADING_BEFORE,
    LABEL_BANK,
    LABEL_CLIENT,
    LABEL_CONFIRMATION,
    LABEL_DESC,
    LABEL_DUE,
    LABEL_EVENT,
    LABEL_GRAND_TOTAL,
    LABEL_ISSUED,
    LABEL_NOTES,
    LABEL_NUMBER,
    LABEL_QTY,
    LABEL_SIGNATURE_LINE,
    LABEL_SUBTOTAL,
    LABEL_TAX,
    LABEL_TERMS,
    LABEL_TOTAL,
    LABEL_UNIT,
    LEFT,
    LOGO_MAX_H,
    META_BLOCK_GAP,
    META_LINE_GAP,
    PAGE_H,
    PAGE_NUMBER_OFFSET,
    PAGE_W,
    PARAGRAPH_GAP,
    PROSE_MAX_CHARS,
    QTY_X,
    RATE_NOTE_H,
    RIGHT,
    SECTION_TITLE_GAP,
    SECTION_TOP_GAP,
    SIGNATURE_IMAGE_GAP,
    SIGNATURE_IMAGE_LIFT,
    SIGNATURE_LABEL_GAP,
    SIGNATURE_LINE_GAP,
    SIGNATURE_MAX_H,
    SIGNATURE_SPACE,
    SIGNATURE_TOP_GAP,
    SIGNER_LINE_H,
    TABLE_HEADER_GAP,
    TABLE_HEADER_H,
    TEXT_LINE_H,
    TITLE_BASELINE,
    TOTAL_RIGHT,
    TOTALS_GAP,
    TOTALS_SUB_H,
    TOTALS_TAX_H,
    TOTALS_TOP_GAP,
    TOTALS_TOTAL_H,
    UNIT_RIGHT,
)
from .totals import InvoiceTotals, invoice_totals

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    size: float
    bold: bool = False
    color: Color = COLOR_TEXT


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    color: Color


@dataclass(frozen=True)
class ImageOp:
    image: EmbeddedImage
    x: float
    y: float
    width: float
    height: float


DrawOp = Union[TextOp, RectOp, ImageOp]


@dataclass
class Page:
    number: int
    ops: List[DrawOp] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass
class LayoutState:
    """Mutable state of one layout pass: page list plus content cursor."""

    fonts: TextWidthProvider
    on_new_page: Optional[Callable[["LayoutState"], None]] = None
    pages: List[Page] = field(default_factory=list)
    y: float = CONTENT_TOP

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def new_page(self) -> Page:
        page = Page(number=len(self.pages) + 1)
        self.pages.append(page)
        self.y = CONTENT_TOP
        if self.on_new_page is not None:
            self.on_new_page(self)
        return page

    def fits(self, height: float) -> bool:
        return self.y + height <= CONTENT_BOTTOM

    def ensure_room(self, height: float) -> None:
        """Break to a new page unless ``height`` fits above the footer band.

        A block taller than a whole content area is drawn from the top of a
        fresh page rather than breaking again.
        """
        if not self.pages:
            self.new_page()
            return
        if self.fits(height) or self.y <= CONTENT_TOP:
            return
        self.new_page()

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        return self.fonts.text_width(text, size, bold=bold)

    def text(
        self,
        x: float,
        y: float,
        text: str,
        size: float = FONT_SIZE_NORMAL,
        bold: bool = False,
        color: Color = COLOR_TEXT,
    ) -> None:
        self.page.ops.append(TextOp(x, y, text, size, bold, color))

    def text_right(
        self,
        right: float,
        y: float,
        text: str,
        size: float = FONT_SIZE_NORMAL,
        bold: bool = False,
        color: Color = COLOR_TEXT,
    ) -> None:
        self.text(right - self.measure(text, size, bold), y, text, size, bold, color)

    def rect(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        self.page.ops.append(RectOp(x, y, width, height, color))

    def image(self, image: EmbeddedImage, x: float, y: float, width: float, height: float) -> None:
        self.page.ops.append(ImageOp(image, x, y, width, height))

    def divider(self) -> None:
        self.rect(LEFT, self.y + DIVIDER_OFFSET - DIVIDER_H, RIGHT - LEFT, DIVIDER_H, COLOR_DIVIDER)


def header_rgb(value: str) -> Color:
    try:
        return hex_to_rgb(value)
    except ValueError:
        logger.warning("Invalid header colour %r; using %s", value, DEFAULT_HEADER_COLOR)
        return hex_to_rgb(DEFAULT_HEADER_COLOR)


def draw_header_band(
    state: LayoutState,
    title: str,
    color: Color,
    logo: Optional[EmbeddedImage] = None,
) -> None:
    state.rect(0, 0, PAGE_W, HEADER_H, color)
    if logo is not None:
        height = LOGO_MAX_H
        state.image(logo, LEFT, (HEADER_H - height) / 2.0, logo.scaled_width(height), height)
    state.text_right(RIGHT, TITLE_BASELINE, title, FONT_SIZE_TITLE, bold=True, color=COLOR_TITLE)


def draw_footer_bands(state: LayoutState, note: Optional[str] = None) -> None:
    """Terminal pass: footers go on once the page count is final."""
    total = len(state.pages)
    for page in state.pages:
        page.ops.append(RectOp(0, PAGE_H - FOOTER_H, PAGE_W, FOOTER_H, COLOR_FOOTER_BAR))
        if note:
            page.ops.append(TextOp(LEFT, FOOTER_BASELINE, note, FONT_SIZE_FOOTER, color=COLOR_FOOTER_TEXT))
        page.ops.append(
            TextOp(
                RIGHT - PAGE_NUMBER_OFFSET,
                FOOTER_BASELINE,
                f"{page.number} / {total}",
                FONT_SIZE_FOOTER,
                color=COLOR_FOOTER_TEXT,
            )
        )


def layout_meta(state: LayoutState, meta: InvoiceMeta) -> None:
    lines = []
    if meta.number:
        lines.append(f"{LABEL_NUMBER} {meta.number}")
    if meta.issued_at:
        lines.append(f"{LABEL_ISSUED} {fmt_date(meta.issued_at)}")
    if meta.due_at:
        lines.append(f"{LABEL_DUE} {fmt_date(meta.due_at)}")

    for line in lines:
        state.text_right(RIGHT, state.y, line)
        state.y += META_LINE_GAP
    state.y += META_BLOCK_GAP


def _draw_multiline(state: LayoutState, text: str, x: float, y: float) -> float:
    for raw in split_lines(text):
        if not raw.strip():
            y += COLUMN_LINE_H
            continue
        for line in wrap_text(raw, COLUMN_MAX_CHARS):
            state.text(x, y, line)
            y += COLUMN_LINE_H
    return y


def layout_client_event(state: LayoutState, client: Client, event: Optional[Event]) -> None:
    event_x = RIGHT - EVENT_COL_W
    state.text(LEFT, state.y, LABEL_CLIENT, bold=True)
    state.text(event_x, state.y, LABEL_EVENT, bold=True)
    state.y += COLUMN_LABEL_GAP

    y_client = state.y
    state.text(LEFT, y_client, client.name or "")
    y_client += COLUMN_LINE_H
    for extra in (client.contact, client.address):
        if extra and extra.strip():
            y_client = _draw_multiline(state, extra, LEFT, y_client)

    y_event = state.y
    if event is not None:
        if event.name:
            state.text(event_x, y_event, event.name)
            y_event += COLUMN_LINE_H
        if event.date:
            state.text(event_x, y_event, fmt_date(event.date))
            y_event += COLUMN_LINE_H
        if event.location and event.location.strip():
            y_event = _draw_multiline(state, event.location, event_x, y_event)

    state.y = max(y_client, y_event) + COLUMNS_BOTTOM_GAP


def layout_items_heading(state: LayoutState, heading: str) -> None:
    state.divider()
    state.y += ITEMS_HEADING_BEFORE
    if heading:
        state.text(LEFT, state.y, heading, FONT_SIZE_HEADING)
    state.y += ITEMS_HEADING_AFTER


def draw_table_header(state: LayoutState) -> None:
    y = state.y
    state.rect(LEFT, y - (TABLE_HEADER_H - 2), RIGHT - LEFT, TABLE_HEADER_H, COLOR_TABLE_HEADER)
    state.text(QTY_X, y, LABEL_QTY, bold=True)
    state.text(DESC_X, y, LABEL_DESC, bold=True)
    state.text_right(UNIT_RIGHT, y, LABEL_UNIT, bold=True)
    state.text_right(TOTAL_RIGHT, y, LABEL_TOTAL, bold=True)
    state.y += TABLE_HEADER_GAP


def description_width() -> float:
    return UNIT_RIGHT - DESC_X - DESC_PADDING


def description_lines(state: LayoutState, item: LineItem) -> List[str]:
    return wrap_by_width(state.fonts, item.desc or "", description_width(), FONT_SIZE_NORMAL)


def layout_item_row(state: LayoutState, item: LineItem, symbol: str) -> None:
    # Row amounts use the invoice currency symbol.
    lines = description_lines(state, item)
    row_h = ITEM_ROW_H * max(1, len(lines))
    state.ensure_room(row_h)

    y = state.y
    state.text(QTY_X, y, fmt_qty(item.qty))
    state.text_right(UNIT_RIGHT, y, fmt_money(item.unit.amount, symbol))
    state.text_right(TOTAL_RIGHT, y, fmt_money(item.line_total, symbol))
    for index, line in enumerate(lines):
        state.text(DESC_X, y + index * ITEM_ROW_H, line)
    state.y += row_h


def layout_group(state: LayoutState, group: Group, symbol: str) -> None:
    # Title, column header and the whole first row stay together.
    first_row_h = ITEM_ROW_H
    if group.items:
        first_row_h *= max(1, len(description_lines(state, group.items[0])))
    state.ensure_room(GROUP_TITLE_GAP + TABLE_HEADER_GAP + first_row_h)
    state.text(LEFT, state.y, group.title, FONT_SIZE_SECTION, bold=True)
    state.y += GROUP_TITLE_GAP
    draw_table_header(state)
    for item in group.items:
        layout_item_row(state, item, symbol)
    state.y += GROUP_BOTTOM_GAP


def layout_totals(state: LayoutState, invoice: Invoice, totals: InvoiceTotals) -> None:
    symbol = currency_symbol(invoice.currency)
    note_lines: List[str] = []
    if invoice.secondary_currency is not None and invoice.secondary_currency.rate_note:
        note_lines = wrap_by_width(
            state.fonts,
            invoice.secondary_currency.rate_note,
            RIGHT - LEFT,
            FONT_SIZE_SMALL,
        )

    height = DIVIDER_OFFSET * 2 + TOTALS_TOP_GAP + TOTALS_SUB_H + TOTALS_TAX_H + TOTALS_TOTAL_H
    height += RATE_NOTE_H * len(note_lines)
    state.ensure_room(height)
    state.divider()
    state.y += DIVIDER_OFFSET * 2

    sub_amount = fmt_money(totals.subtotal, symbol)
    tax_amount = fmt_money(totals.tax, symbol)
    total_amount = fmt_money(totals.total, symbol)
    widest = max(
        state.measure(sub_amount, FONT_SIZE_NORMAL),
        state.measure(tax_amount, FONT_SIZE_NORMAL),
        state.measure(total_amount, FONT_SIZE_SECTION, bold=True),
    )
    label_right = RIGHT - widest - TOTALS_GAP

    state.y += TOTALS_TOP_GAP
    state.text_right(label_right, state.y, LABEL_SUBTOTAL, bold=True)
    state.text_right(RIGHT, state.y, sub_amount)
    state.y += TOTALS_SUB_H

    tax_label = f"{LABEL_TAX} ({fmt_percent(invoice.tax.rate)})"
    state.text_right(label_right, state.y, tax_label, bold=True)
    state.text_right(RIGHT, state.y, tax_amount)
    state.y += TOTALS_TAX_H

    state.text_right(label_right, state.y, LABEL_GRAND_TOTAL, FONT_SIZE_SECTION, bold=True)
    state.text_right(RIGHT, state.y, total_amount, FONT_SIZE_SECTION, bold=True)
    state.y += TOTALS_TOTAL_H

    for line in note_lines:
        state.text_right(RIGHT, state.y, line, FONT_SIZE_SMALL, color=COLOR_MUTED)
        state.y += RATE_NOTE_H

    state.ensure_room(GROUP_BOTTOM_GAP + DIVIDER_OFFSET)
    state.y += GROUP_BOTTOM_GAP
    state.divider()
    state.y += DIVIDER_OFFSET * 2


def _section_title(state: LayoutState, title: str, first_line_h: float) -> None:
    state.ensure_room(SECTION_TOP_GAP + SECTION_TITLE_GAP + first_line_h)
    state.y += SECTION_TOP_GAP
    state.text(LEFT, state.y, title, FONT_SIZE_SECTION, bold=True)
    state.y += SECTION_TITLE_GAP


def layout_bank(state: LayoutState, bank: Optional[BankDetails]) -> None:
    accounts = bank.accounts() if bank is not None else []
    if not accounts:
        return
    _section_title(state, LABEL_BANK, BANK_LINE_H * len(accounts))
    for currency, account in accounts:
        line = (
            f"{BANK_LABELS[currency.value]}: {account.bank} – {account.account_type}"
            f" – {account.account} – {account.name}"
        )
        state.text(LEFT, state.y, line)
        state.y += BANK_LINE_H


def _wrapped_lines(state: LayoutState, lines: List[str], x: float) -> None:
    for line in lines:
        state.ensure_room(TEXT_LINE_H)
        state.text(x, state.y, line)
        state.y += TEXT_LINE_H


def layout_notes(state: LayoutState, notes: Optional[str]) -> None:
    if not notes or not notes.strip():
        return
    _section_title(state, LABEL_NOTES, TEXT_LINE_H)
    _wrapped_lines(state, wrap_text(collapse_whitespace(notes), PROSE_MAX_CHARS), LEFT)


def layout_terms_paragraph(state: LayoutState, paragraph: str) -> None:
    raw_lines = split_lines(paragraph)
    if any(is_bullet_line(line) for line in raw_lines):
        for raw in raw_lines:
            if not raw.strip():
                state.y += BULLET_BLANK_GAP
                continue
            wrapped = wrap_text(strip_bullet(raw).strip(), BULLET_MAX_CHARS)
            state.ensure_room(TEXT_LINE_H)
            state.text(LEFT, state.y, BULLET_GLYPH)
            state.text(LEFT + BULLET_INDENT, state.y, wrapped[0])
            state.y += TEXT_LINE_H
            _wrapped_lines(state, wrapped[1:], LEFT + BULLET_INDENT)
    else:
        collapsed = collapse_whitespace(paragraph)
        if collapsed:
            _wrapped_lines(state, wrap_text(collapsed, PROSE_MAX_CHARS), LEFT)
    state.y += PARAGRAPH_GAP


def layout_terms(state: LayoutState, terms: Optional[str]) -> None:
    if not terms or not terms.strip():
        return
    _section_title(state, LABEL_TERMS, TEXT_LINE_H)
    for paragraph in split_paragraphs(terms):
        layout_terms_paragraph(state, paragraph)


def layout_signature(
    state: LayoutState,
    options: RenderOptions,
    signature: Optional[EmbeddedImage] = None,
) -> None:
    state.ensure_room(SIGNATURE_TOP_GAP + SIGNATURE_LABEL_GAP + SIGNATURE_LINE_GAP)
    state.y += SIGNATURE_TOP_GAP
    state.text(LEFT, state.y, LABEL_CONFIRMATION, FONT_SIZE_SECTION, bold=True)
    state.y += SIGNATURE_LABEL_GAP + SIGNATURE_LINE_GAP
    state.text(LEFT, state.y, LABEL_SIGNATURE_LINE)
    state.y += SIGNATURE_SPACE

    if signature is not None:
        height = SIGNATURE_MAX_H
        state.ensure_room(height - SIGNATURE_IMAGE_LIFT)
        top = state.y - SIGNATURE_IMAGE_LIFT
        state.image(signature, LEFT, top, signature.scaled_width(height), height)
        state.y = top + height + SIGNATURE_IMAGE_GAP

    for line in (options.signature_printed_name, options.signer_name, options.signer_title):
        if line:
            state.ensure_room(SIGNER_LINE_H)
            state.text(LEFT, state.y, line, FONT_SIZE_SMALL, color=COLOR_MUTED)
            state.y += SIGNER_LINE_H


def layout_document(
    invoice: Invoice,
    options: Optional[RenderOptions],
    fonts: TextWidthProvider,
    totals: Optional[InvoiceTotals] = None,
    logo: Optional[EmbeddedImage] = None,
    signature: Optional[EmbeddedImage] = None,
) -> List[Page]:
    """Run one layout pass and return the finished pages."""
    options = options or RenderOptions()
    totals = totals or invoice_totals(invoice)
    title = options.resolved_title
    color = header_rgb(options.resolved_header_color)

    state = LayoutState(
        fonts=fonts,
        on_new_page=lambda current: draw_header_band(current, title, color, logo),
    )
    state.new_page()

    layout_meta(state, invoice.meta)
    layout_client_event(state, invoice.client, invoice.event)
    layout_items_heading(state, options.resolved_items_heading)
    symbol = currency_symbol(invoice.currency)
    for group in invoice.groups:
        layout_group(state, group, symbol)
    layout_totals(state, invoice, totals)
    layout_bank(state, invoice.bank)
    layout_notes(state, invoice.notes)
    layout_terms(state, invoice.terms)
    layout_signature(state, options, signature)

    draw_footer_bands(state, options.footer_note)
    return state.pages
