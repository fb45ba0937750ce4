"""
Text and signature content generator.

Boxes are given top-down (y from the top edge of the page); every baseline is
flipped exactly once, in ``_baseline``. Two layout policies:

- wrap: character-count pre-wrap, then word-wrap at the requested size.
- fit:  25-character pre-wrap, then the largest size that fits the box, with
        fixed baseline corrections per vertical alignment.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from pdfsnap.core.errors import FontFitError
from pdfsnap.services.fonts import (
    LINE_HEIGHT_MULTIPLIER,
    FontFace,
    fit_font_size,
    hard_wrap_by_chars,
    measure,
    wrap,
)
from pdfsnap.services.pdf_document import PageRef, PdfDocument
from pdfsnap.utils.color import BLACK, Color
from pdfsnap.utils.content_stream import Name, Operation, encode_operations, encode_text

logger = logging.getLogger(__name__)

# Baseline sits this fraction of the font size above the line's top edge (after flip)
BASELINE_DROP = 0.2
# Per-glyph advance correction used for the cursive face
CURSIVE_ADVANCE_CORRECTION = 0.75
FIT_PREWRAP_CHARS = 25
MIN_PREWRAP_CHARS = 5
MAX_PREWRAP_CHARS = 120


class AlignH(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class AlignV(Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    w: float
    h: float


@dataclass
class TextStyle:
    face: FontFace
    tag: str
    color: Color = BLACK
    align_h: AlignH = AlignH.LEFT
    align_v: AlignV = AlignV.TOP
    per_glyph: bool = False


def _baseline(page_height: float, y: float, font_size: float) -> float:
    return page_height - y - font_size * BASELINE_DROP


def _line_operations(style: TextStyle, line: str, x: float, baseline_y: float,
                     font_size: float) -> List[Operation]:
    r, g, b = style.color.to_pdf()
    ops = [
        Operation("rg", [r, g, b]),
        Operation("BT"),
        Operation("Tf", [Name(style.tag), font_size]),
        Operation("Tm", [1, 0, 0, 1, x, baseline_y]),
    ]
    if style.per_glyph:
        scale = style.face.scale(font_size)
        for glyph in style.face.shape(line):
            ops.append(Operation("Tj", [encode_text(glyph.char)]))
            if glyph.x_advance != 0:
                advance = glyph.x_advance * scale - font_size * scale * CURSIVE_ADVANCE_CORRECTION
                ops.append(Operation("Td", [advance, 0]))
    else:
        ops.append(Operation("Tj", [encode_text(line)]))
    ops.append(Operation("ET"))
    return ops


def _horizontal_offset(align: AlignH, box_width: float, line_width: float) -> float:
    if align == AlignH.CENTER:
        return (box_width - line_width) / 2.0
    if align == AlignH.RIGHT:
        return box_width - line_width
    return 0.0


def _layout_operations(doc: PdfDocument, page: PageRef, style: TextStyle, lines: List[str],
                       box: Box, font_size: float, y_offset: float) -> List[Operation]:
    page_height = doc.page_height(page)
    line_height = font_size * LINE_HEIGHT_MULTIPLIER
    ops: List[Operation] = []
    for i, line in enumerate(lines):
        line_width = measure(style.face, line, font_size)
        x = box.x + _horizontal_offset(style.align_h, box.w, line_width)
        line_y = box.y + y_offset + i * line_height
        ops.extend(_line_operations(style, line, x, _baseline(page_height, line_y, font_size), font_size))
        logger.debug(f"[TEXT] Page {page.index} line {i}: {line!r} at ({x:.2f}, {line_y:.2f}) {font_size:.2f}pt")
    return ops


def draw_text(doc: PdfDocument, page: PageRef, style: TextStyle, text: str,
              x: float, y: float, font_size: float):
    """Draw one line with its top-left at (x, y), top-down coordinates."""
    page_height = doc.page_height(page)
    ops = _line_operations(style, text, x, _baseline(page_height, y, font_size), font_size)
    doc.append_content(page, encode_operations(ops))


def layout_wrapped(style: TextStyle, text: str, box: Box, font_size: float) -> Tuple[List[str], float]:
    """Lines and vertical offset for the wrap policy."""
    chars_per_line = box.w / max(font_size, 1.0) * LINE_HEIGHT_MULTIPLIER
    chars_per_line = int(min(max(chars_per_line, MIN_PREWRAP_CHARS), MAX_PREWRAP_CHARS))
    prewrapped = hard_wrap_by_chars(text, chars_per_line)
    wrapped, line_count, _ = wrap(style.face, prewrapped, font_size, box.w)
    lines = wrapped.split("\n") if wrapped else []

    text_height = line_count * font_size * LINE_HEIGHT_MULTIPLIER
    if style.align_v == AlignV.MIDDLE:
        y_offset = (box.h - text_height) / 2.0
    elif style.align_v == AlignV.BOTTOM:
        y_offset = box.h - text_height
    else:
        y_offset = 0.0
    return lines, y_offset


def layout_fitted(style: TextStyle, text: str, box: Box) -> Tuple[List[str], float, float]:
    """Lines, chosen font size and vertical offset for the fit policy."""
    prewrapped = hard_wrap_by_chars(text, FIT_PREWRAP_CHARS)
    fitted = fit_font_size(style.face, prewrapped, box.w, box.h)
    if fitted is None:
        raise FontFitError(f"Unable to fit text: {text!r} in {box.w}x{box.h}")

    size = fitted.font_size
    lines = fitted.lines
    text_height = len(lines) * size * LINE_HEIGHT_MULTIPLIER
    if style.align_v == AlignV.MIDDLE:
        y_offset = (box.h - text_height) / 2.0 + 0.6 * size
    elif style.align_v == AlignV.BOTTOM:
        y_offset = box.h - text_height + 1.0 * size
    else:
        y_offset = 0.25 * size
    return lines, size, y_offset


def draw_text_wrap(doc: PdfDocument, page: PageRef, style: TextStyle, text: str,
                   box: Box, font_size: float) -> int:
    """Word-wrap at ``font_size`` inside ``box``; returns the number of lines drawn."""
    lines, y_offset = layout_wrapped(style, text, box, font_size)
    if lines:
        doc.append_content(page, encode_operations(
            _layout_operations(doc, page, style, lines, box, font_size, y_offset)
        ))
    logger.info(f"[TEXT] Wrapped {len(lines)} line(s) at {font_size:.2f}pt on page {page.index}")
    return len(lines)


def draw_text_fit(doc: PdfDocument, page: PageRef, style: TextStyle, text: str, box: Box) -> float:
    """Shrink-to-fit inside ``box``; returns the chosen font size."""
    lines, size, y_offset = layout_fitted(style, text, box)
    if lines:
        doc.append_content(page, encode_operations(
            _layout_operations(doc, page, style, lines, box, size, y_offset)
        ))
    logger.info(f"[TEXT] Fitted {len(lines)} line(s) at {size:.2f}pt on page {page.index}")
    return size
