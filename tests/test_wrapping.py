import unittest

from factura_pdf.formatting import wrap_by_width, wrap_text


class FixedWidthFonts:
    """Every character is half the font size wide."""

    def text_width(self, text: str, size: float, bold: bool = False) -> float:
        return len(text) * size * 0.5


class WrapByWidthTests(unittest.TestCase):
    def setUp(self) -> None:
        self.fonts = FixedWidthFonts()

    def test_empty_text_yields_single_empty_line(self) -> None:
        self.assertEqual(wrap_by_width(self.fonts, "", 50, 10), [""])
        self.assertEqual(wrap_by_width(self.fonts, "   ", 50, 10), [""])

    def test_greedy_wrap_keeps_words_whole(self) -> None:
        lines = wrap_by_width(self.fonts, "alpha beta gamma delta", 50, 10)

        self.assertEqual(lines, ["alpha beta", "gamma", "delta"])

    def test_every_line_fits_and_words_are_preserved(self) -> None:
        text = "Montaje de carpa con iluminación cálida y sonido para cien personas"
        lines = wrap_by_width(self.fonts, text, 80, 10)

        for line in lines:
            self.assertLessEqual(self.fonts.text_width(line, 10), 80)
        self.assertEqual(" ".join(lines).split(), text.split())

    def test_long_word_is_split_by_characters(self) -> None:
        lines = wrap_by_width(self.fonts, "abcdefghijklmnopqrstuvwxy z", 50, 10)

        self.assertEqual(lines, ["abcdefghij", "klmnopqrst", "uvwxy z"])

    def test_long_word_flushes_pending_line(self) -> None:
        lines = wrap_by_width(self.fonts, "ab abcdefghijklm", 50, 10)

        self.assertEqual(lines, ["ab", "abcdefghij", "klm"])

    def test_single_character_is_never_split(self) -> None:
        self.assertEqual(wrap_by_width(self.fonts, "abc", 1, 10), ["a", "b", "c"])


class WrapTextTests(unittest.TestCase):
    def test_wraps_by_character_count(self) -> None:
        self.assertEqual(wrap_text("uno dos tres", 7), ["uno dos", "tres"])

    def test_collapses_runs_of_whitespace(self) -> None:
        self.assertEqual(wrap_text("uno   dos", 20), ["uno dos"])

    def test_empty_text(self) -> None:
        self.assertEqual(wrap_text("", 10), [""])


if __name__ == "__main__":
    unittest.main()
