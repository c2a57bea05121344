"""Page geometry, colours and fixed labels for the invoice layout.

All measures are PDF points on an A4 portrait page with a top-left origin;
text ``y`` values are baselines.
"""

from __future__ import annotations

PAGE_FORMAT = "A4"
PAGE_W = 595.28
PAGE_H = 841.89

MARGIN_X = 40.0
LEFT = MARGIN_X
RIGHT = PAGE_W - MARGIN_X

HEADER_H = 64.0
FOOTER_H = 26.0
BOTTOM_MARGIN = 80.0

# Content cursor bounds
CONTENT_TOP = HEADER_H + 20.0
CONTENT_BOTTOM = PAGE_H - (BOTTOM_MARGIN + FOOTER_H)

# Header band
LOGO_MAX_H = 40.0
TITLE_BASELINE = HEADER_H - (HEADER_H - 12.0) / 2.0

# Footer band
FOOTER_BASELINE = PAGE_H - 8.0
PAGE_NUMBER_OFFSET = 24.0

# Meta stack
META_LINE_GAP = 12.0
META_BLOCK_GAP = 10.0

# Client / event columns
EVENT_COL_W = 240.0
COLUMN_LABEL_GAP = 14.0
COLUMN_LINE_H = 12.0
COLUMN_MAX_CHARS = 42
COLUMNS_BOTTOM_GAP = 8.0

# Dividers
DIVIDER_OFFSET = 6.0
DIVIDER_H = 0.8

# Items section
ITEMS_HEADING_BEFORE = 32.0
ITEMS_HEADING_AFTER = 24.0
GROUP_TITLE_GAP = 16.0
TABLE_HEADER_H = 16.0
TABLE_HEADER_GAP = 14.0
ITEM_ROW_H = 14.0
GROUP_BOTTOM_GAP = 8.0
QTY_X = LEFT
DESC_X = LEFT + 60.0
UNIT_RIGHT = RIGHT - 120.0
TOTAL_RIGHT = RIGHT
DESC_PADDING = 8.0

# Totals block
TOTALS_GAP = 16.0
TOTALS_TOP_GAP = 6.0
TOTALS_SUB_H = 14.0
TOTALS_TAX_H = 16.0
TOTALS_TOTAL_H = 16.0
RATE_NOTE_H = 12.0

# Free-text sections (bank, notes, terms)
SECTION_TOP_GAP = 10.0
SECTION_TITLE_GAP = 16.0
BANK_LINE_H = 14.0
TEXT_LINE_H = 12.0
PROSE_MAX_CHARS = 96
BULLET_MAX_CHARS = 88
BULLET_INDENT = 14.0
BULLET_BLANK_GAP = 6.0
PARAGRAPH_GAP = 6.0

# Signature block
SIGNATURE_TOP_GAP = 14.0
SIGNATURE_LABEL_GAP = 12.0
SIGNATURE_LINE_GAP = 16.0
SIGNATURE_SPACE = 36.0
SIGNATURE_MAX_H = 63.0
SIGNATURE_IMAGE_LIFT = 8.0
SIGNATURE_IMAGE_GAP = 10.0
SIGNER_LINE_H = 10.0

FONT_SIZE_FOOTER = 8
FONT_SIZE_SMALL = 9
FONT_SIZE_NORMAL = 10
FONT_SIZE_SECTION = 12
FONT_SIZE_TITLE = 14
FONT_SIZE_HEADING = 20

# Colors (RGB)
COLOR_TEXT = (0, 0, 0)
COLOR_TITLE = (255, 255, 255)
COLOR_DIVIDER = (217, 219, 230)      # #D9DBE6
COLOR_TABLE_HEADER = (245, 247, 255) # #F5F7FF
COLOR_FOOTER_BAR = (245, 245, 245)   # #F5F5F5
COLOR_FOOTER_TEXT = (64, 64, 64)     # #404040
COLOR_MUTED = (89, 89, 89)           # #595959

DEFAULT_HEADER_COLOR = "#161616"
DEFAULT_TITLE = "Propuesta / Factura"
DEFAULT_ITEMS_HEADING = "Detalle / Ítems"

LABEL_CLIENT = "Cliente"
LABEL_EVENT = "Evento"
LABEL_NUMBER = "N.º"
LABEL_ISSUED = "Fecha:"
LABEL_DUE = "Vence:"
LABEL_QTY = "CANT"
LABEL_DESC = "Descripción"
LABEL_UNIT = "Precio U."
LABEL_TOTAL = "Total"
LABEL_SUBTOTAL = "SUBTOTAL"
LABEL_TAX = "IMPUESTOS"
LABEL_GRAND_TOTAL = "TOTAL"
LABEL_BANK = "Datos bancarios"
LABEL_NOTES = "Notas"
LABEL_TERMS = "Condiciones del servicio"
LABEL_CONFIRMATION = "Confirmación de presupuesto"
LABEL_SIGNATURE_LINE = "Firma: ________________________________"
BULLET_GLYPH = "•"

CURRENCY_SYMBOLS = {
    "GTQ": "Q",
    "USD": "$",
}
BANK_LABELS = {
    "GTQ": "Q",
    "USD": "USD",
}
