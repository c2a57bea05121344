"""Font loading, measurement and text drawing."""

from __future__ import annotations

import logging
import threading
import unicodedata
from typing import List, Optional, Sequence, Tuple

from fpdf import FPDF  # type: ignore

from . import config
from .assets import load_font_file

logger = logging.getLogger(__name__)

FONT_INIT_LOCK = threading.Lock()

BUILTIN_FAMILY = "helvetica"
BUILTIN_ENCODING = "windows-1252"


def find_font_path(sources: Sequence[str]) -> Optional[str]:
    for source in sources:
        path = load_font_file(source)
        if path:
            return path
    return None


class FontManager:
    """Active font for one document.

    Prefers the configured custom TTF (regular + bold); falls back to the
    built-in Helvetica pair when the regular face cannot be loaded.
    """

    FAMILY = "FacturaFont"

    def __init__(
        self,
        pdf: FPDF,
        regular_sources: Optional[List[str]] = None,
        bold_sources: Optional[List[str]] = None,
    ) -> None:
        self.pdf = pdf
        self.family = BUILTIN_FAMILY
        self.has_bold = True
        self.is_builtin = True

        if regular_sources is None:
            regular_sources = [config.FONT_REGULAR_SOURCE]
        if bold_sources is None:
            bold_sources = list(config.FONT_BOLD_SOURCES)

        regular_path = find_font_path(regular_sources)
        if regular_path and self._register(regular_path, ""):
            self.family = self.FAMILY
            self.is_builtin = False
            bold_path = find_font_path(bold_sources)
            self.has_bold = bool(bold_path) and self._register(bold_path, "B")
        else:
            logger.info("Custom font unavailable; using built-in %s", BUILTIN_FAMILY)
            self.pdf.core_fonts_encoding = BUILTIN_ENCODING

    def _register(self, path: str, style: str) -> bool:
        try:
            with FONT_INIT_LOCK:
                self.pdf.add_font(self.FAMILY, style, path)
        except Exception as exc:  # fontTools raises a variety of parse errors
            logger.warning("Could not load font %s: %s", path, exc)
            return False
        return True

    def _style(self, bold: bool) -> str:
        return "B" if bold and self.has_bold else ""

    def safe_text(self, text: str) -> str:
        """Replace characters the built-in font cannot encode."""
        text = str(text or "")
        if not self.is_builtin:
            return text
        try:
            text.encode(BUILTIN_ENCODING)
            return text
        except UnicodeEncodeError:
            normalized = unicodedata.normalize("NFKC", text)
            return normalized.encode(BUILTIN_ENCODING, "replace").decode(BUILTIN_ENCODING)

    def set_font(self, size: float, bold: bool = False) -> None:
        self.pdf.set_font(self.family, self._style(bold), size)

    def text_width(self, text: str, size: float, bold: bool = False) -> float:
        self.set_font(size, bold)
        return self.pdf.get_string_width(self.safe_text(text))

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        size: float,
        color: Tuple[int, int, int],
        bold: bool = False,
    ) -> None:
        self.pdf.set_text_color(*color)
        self.set_font(size, bold)
        text = self.safe_text(text)
        if bold and not self.has_bold:
            self.pdf.text(x, y, text)
            self.pdf.text(x + 0.4, y, text)
        else:
            self.pdf.text(x, y, text)
