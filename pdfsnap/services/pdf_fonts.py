"""
Font embedding unit.

Base fonts (Times, Helvetica, Courier) are referenced by name only. The cursive
face is embedded as a TrueType FontFile2 with a fixed descriptor and width
table measured from the bundled Italianno face; other faces would need their
own metrics. Both paths register their tag on every page and are memoized per
document, so repeated calls never duplicate font programs.
"""

import logging
from collections import Counter
from typing import Dict

from pdfsnap.services.fonts import FONT_TAGS, FontFamily
from pdfsnap.services.pdf_document import PdfDocument
from pdfsnap.utils.content_stream import parse_content_stream

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 11.0

BASE_FONTS: Dict[str, str] = {
    FONT_TAGS[FontFamily.SERIF]: "Times-Roman",
    FONT_TAGS[FontFamily.SANS_SERIF]: "Helvetica",
    FONT_TAGS[FontFamily.MONO]: "Courier",
}

CURSIVE_BASE_FONT = "ABCDEE+ItalianoRegular"

# Italianno metrics, glyph space units
_CURSIVE_DESCRIPTOR = {
    "Flags": 32,
    "Ascent": 800,
    "Descent": -450,
    "CapHeight": 800,
    "ItalicAngle": 0,
    "AvgWidth": 419,
    "MaxWidth": 1728,
    "FontWeight": 400,
    "StemV": 41,
    "XHeight": 250,
}
_CURSIVE_BBOX = (-464, -450, 1264, 800)
_FIRST_CHAR = 32
_LAST_CHAR = 126
_CURSIVE_WIDTHS = (
    169, 295, 168, 579, 313, 632, 608, 106, 268, 507, 507, 326, 129, 249, 149, 377,
    368, 243, 331, 314, 403, 331, 336, 310, 351, 336, 154, 154, 293, 344, 293, 434,
    707, 768, 562, 527, 626, 478, 582, 576, 770, 365, 203, 560, 547, 830, 721, 594,
    541, 599, 602, 451, 432, 611, 538, 892, 542, 452, 453, 362, 498, 397, 313, 846,
    223, 294, 269, 238, 294, 249, 182, 265, 294, 192, 135, 324, 214, 470, 330, 265,
    255, 279, 272, 232, 198, 393, 294, 500, 299, 344, 234, 354, 364, 411, 277,
)


def _register_on_all_pages(doc: PdfDocument, tag: str, font_xref: int):
    for page in doc.pages():
        doc.set_resource(page, "Font", tag, font_xref)


def register_base_fonts(doc: PdfDocument):
    """Register the three standard fonts under their tags on every page."""
    for tag, base_font in BASE_FONTS.items():
        if tag in doc.embedded_fonts:
            continue
        font_xref = doc.new_object(
            f"<</Type/Font/Subtype/Type1/BaseFont/{base_font}/Encoding/WinAnsiEncoding>>"
        )
        _register_on_all_pages(doc, tag, font_xref)
        doc.embedded_fonts[tag] = font_xref
    logger.info(f"[FONT] Base fonts registered on {doc.page_count} page(s)")


def embed_truetype_font(doc: PdfDocument, font_data: bytes, tag: str,
                        base_font: str = CURSIVE_BASE_FONT) -> int:
    """Embed a TrueType program once per document and return the font dictionary xref.

    The Widths array and descriptor metrics are those of the bundled cursive
    face; other programs would be mis-measured by viewers.
    """
    existing = doc.embedded_fonts.get(tag)
    if existing is not None:
        logger.debug(f"[FONT] {tag} already embedded as object {existing}")
        return existing

    file_xref = doc.new_stream(f"<</Length1 {len(font_data)}>>", font_data)

    descriptor = "".join(f"/{key} {value}" for key, value in _CURSIVE_DESCRIPTOR.items())
    bbox = " ".join(str(v) for v in _CURSIVE_BBOX)
    descriptor_xref = doc.new_object(
        f"<</Type/FontDescriptor/FontName/{base_font}{descriptor}"
        f"/FontBBox[{bbox}]/FontFile2 {file_xref} 0 R>>"
    )

    widths = " ".join(str(w) for w in _CURSIVE_WIDTHS)
    font_xref = doc.new_object(
        f"<</Type/Font/Subtype/TrueType/Name/{tag}/BaseFont/{base_font}"
        f"/Encoding/WinAnsiEncoding/FirstChar {_FIRST_CHAR}/LastChar {_LAST_CHAR}"
        f"/Widths[{widths}]/FontDescriptor {descriptor_xref} 0 R>>"
    )

    _register_on_all_pages(doc, tag, font_xref)
    doc.embedded_fonts[tag] = font_xref
    logger.info(f"[FONT] Embedded {base_font} as {tag} ({len(font_data)} bytes)")
    return font_xref


def _shown_length(operator: str, operands) -> int:
    if operator in ("Tj", "'"):
        text = operands[-1] if operands else b""
        return len(text) if isinstance(text, bytes) else 0
    if operator == '"':
        text = operands[2] if len(operands) >= 3 else b""
        return len(text) if isinstance(text, bytes) else 0
    if operator == "TJ":
        items = operands[0] if operands and isinstance(operands[0], list) else []
        return sum(len(item) for item in items if isinstance(item, bytes))
    return 0


def get_most_used_font_size(doc: PdfDocument) -> float:
    """Effective font size (Tf size x Tm vertical scale) that draws the most characters.

    Text state starts at the default size and carries across pages, so text
    shown before any ``Tf`` is counted at the size in effect.
    """
    tally: Counter = Counter()
    size = DEFAULT_FONT_SIZE
    scale = 1.0
    for page in doc.pages():
        for op in parse_content_stream(doc.page_content(page)):
            if op.operator == "Tf":
                numbers = [v for v in op.operands if isinstance(v, (int, float))]
                if numbers:
                    size = float(numbers[-1])
            elif op.operator == "Tm" and len(op.operands) >= 4:
                if isinstance(op.operands[3], (int, float)):
                    scale = float(op.operands[3])
            else:
                count = _shown_length(op.operator, op.operands)
                if count:
                    tally[round(size * scale, 4)] += count

    tally.pop(0.0, None)
    if not tally:
        return DEFAULT_FONT_SIZE
    best_size, _ = max(tally.items(), key=lambda item: (item[1], item[0]))
    logger.info(f"[FONT] Most used template font size: {best_size}")
    return best_size
