"""Invoice PDF rendering: asset loading, layout and painting."""

from __future__ import annotations

import logging
from typing import List, Optional

from fpdf import FPDF  # type: ignore

from . import config
from .assets import EmbeddedImage, load_image
from .fonts import FontManager
from .layout import ImageOp, Page, RectOp, TextOp, layout_document
from .models import Invoice, RenderOptions
from .pdf_constants import PAGE_FORMAT
from .totals import invoice_totals

logger = logging.getLogger(__name__)


class RenderError(RuntimeError):
    """Raised when the PDF document cannot be produced."""


class InvoiceRenderer:
    def __init__(
        self,
        invoice: Invoice,
        options: Optional[RenderOptions] = None,
        fonts: Optional[FontManager] = None,
    ) -> None:
        self.invoice = invoice
        self.options = options or RenderOptions()
        self.pdf = FPDF(unit="pt", format=PAGE_FORMAT)
        self.pdf.set_auto_page_break(False)
        self.pdf.set_margins(0, 0, 0)

        self.fonts = fonts or FontManager(self.pdf)
        self.totals = invoice_totals(invoice)

    def load_assets(self) -> tuple:
        logo_source = self.options.logo_source
        logo = load_image(logo_source, trusted=logo_source == config.DEFAULT_LOGO_SOURCE)
        signature = load_image(self.options.signature_source)
        return logo, signature

    def layout(
        self,
        logo: Optional[EmbeddedImage] = None,
        signature: Optional[EmbeddedImage] = None,
    ) -> List[Page]:
        return layout_document(
            self.invoice,
            self.options,
            self.fonts,
            totals=self.totals,
            logo=logo,
            signature=signature,
        )

    def _paint_page(self, page: Page) -> None:
        self.pdf.add_page()
        for op in page.ops:
            if isinstance(op, TextOp):
                self.fonts.draw_text(op.x, op.y, op.text, op.size, op.color, bold=op.bold)
            elif isinstance(op, RectOp):
                self.pdf.set_fill_color(*op.color)
                self.pdf.rect(op.x, op.y, op.width, op.height, style="F")
            elif isinstance(op, ImageOp):
                self.pdf.image(op.image.image, x=op.x, y=op.y, w=op.width, h=op.height)

    def render(self) -> bytes:
        logo, signature = self.load_assets()
        pages = self.layout(logo, signature)
        for page in pages:
            self._paint_page(page)
        logger.debug("Rendered invoice %s on %d page(s)", self.invoice.id, len(pages))

        try:
            pdf_blob = self.pdf.output()
        except Exception as exc:
            raise RenderError(f"PDF serialization failed: {exc}") from exc
        if isinstance(pdf_blob, (bytes, bytearray)):
            return bytes(pdf_blob)
        raise RenderError(f"Unexpected PDF output type: {type(pdf_blob).__name__}")


def render_invoice(invoice: Invoice, options: Optional[RenderOptions] = None) -> bytes:
    return InvoiceRenderer(invoice, options).render()
