"""
Variable overlay orchestrator.

Runs the whole pipeline synchronously on one document:

  load → validate pages → strip forms → default font size → base fonts
       → variables → footer → serialize

Any error aborts the request; the half-built document is discarded.
"""

import logging
import time
import zlib
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from pdfsnap.core.errors import NetworkError
from pdfsnap.schemas.pdf import (
    ImageVariable,
    PdfVariable,
    SignatureVariable,
    TextVariable,
    variables_json,
)
from pdfsnap.services.acroform import strip_acroforms
from pdfsnap.services.fonts import FONT_TAGS, FontFamily, FontRegistry, FontWeight
from pdfsnap.services.image_renderer import ImageFormat, draw_image
from pdfsnap.services.link_renderer import add_link
from pdfsnap.services.pdf_document import PageRef, PdfDocument
from pdfsnap.services.pdf_fonts import (
    embed_truetype_font,
    get_most_used_font_size,
    register_base_fonts,
)
from pdfsnap.services.text_renderer import (
    AlignH,
    AlignV,
    Box,
    TextStyle,
    draw_text,
    draw_text_fit,
    draw_text_wrap,
)
from pdfsnap.utils.color import GRAY

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], Tuple[bytes, ImageFormat]]

FOOTER_MARGIN_RIGHT = 232.0
FOOTER_TOP = 20.0
FOOTER_WIDTH = 220.0
FOOTER_LINK_HEIGHT = 9.0
FOOTER_CAPTION_HEIGHT = 12.0
FOOTER_FONT_SIZE = 9.0


@dataclass
class VerificationOptions:
    label: str
    url: str


@dataclass
class GeneratedPdf:
    data: bytes
    template_hash: str
    form_schema_hash: str
    timestamp: int

    @property
    def verification_code(self) -> str:
        return f"{self.timestamp}-{self.template_hash}-{self.form_schema_hash}"


def crc32_hex(data: bytes) -> str:
    return f"{zlib.crc32(data):x}"


class _Overlay:
    """Per-request state: the open document plus defaults read from the template."""

    def __init__(self, doc: PdfDocument, registry: FontRegistry, image_loader: Optional[ImageLoader],
                 default_font_size: float):
        self.doc = doc
        self.registry = registry
        self.image_loader = image_loader
        self.default_font_size = default_font_size

    def draw(self, variable: PdfVariable):
        page = self.doc.page(variable.page)
        box = Box(variable.x, variable.y, variable.w, variable.h)
        if isinstance(variable, TextVariable):
            self._draw_text(page, box, variable)
        elif isinstance(variable, SignatureVariable):
            self._draw_signature(page, box, variable)
        elif isinstance(variable, ImageVariable):
            self._draw_image(page, box, variable)
        else:
            raise TypeError(f"Unknown variable type: {type(variable).__name__}")

    def _draw_text(self, page: PageRef, box: Box, variable: TextVariable):
        style = TextStyle(
            face=self.registry.get(FontFamily.SANS_SERIF, FontWeight.REGULAR, False),
            tag=FONT_TAGS[FontFamily.SANS_SERIF],
            color=variable.rgb,
            align_h=AlignH(variable.align_h),
            align_v=AlignV(variable.align_v),
        )
        if variable.wrap:
            font_size = variable.font_size or self.default_font_size
            draw_text_wrap(self.doc, page, style, variable.value, box, font_size)
        else:
            draw_text_fit(self.doc, page, style, variable.value, box)

    def _draw_signature(self, page: PageRef, box: Box, variable: SignatureVariable):
        face = self.registry.cursive
        tag = FONT_TAGS[FontFamily.CURSIVE]
        embed_truetype_font(self.doc, face.data, tag)
        style = TextStyle(
            face=face,
            tag=tag,
            color=variable.rgb,
            align_h=AlignH.CENTER,
            align_v=AlignV(variable.align_v),
            per_glyph=True,
        )
        draw_text_fit(self.doc, page, style, variable.value, box)

    def _draw_image(self, page: PageRef, box: Box, variable: ImageVariable):
        if self.image_loader is None:
            raise NetworkError(f"No image loader configured for {variable.field or variable.value}")
        data, image_format = self.image_loader(variable.value)
        draw_image(self.doc, page, data, image_format, box)

    def draw_footer(self, code: str, verification: VerificationOptions):
        style = TextStyle(
            face=self.registry.get(FontFamily.SANS_SERIF),
            tag=FONT_TAGS[FontFamily.SANS_SERIF],
            color=GRAY,
        )
        caption = f"{verification.label}: {code}"
        link = f"{verification.url}?verification-code={code}"
        for page in self.doc.pages():
            x = self.doc.page_width(page) - FOOTER_MARGIN_RIGHT
            add_link(self.doc, page, link, Box(x, FOOTER_TOP, FOOTER_WIDTH, FOOTER_LINK_HEIGHT))
            draw_text(self.doc, page, style, caption, x, FOOTER_TOP, FOOTER_FONT_SIZE)
        logger.info(f"[GENERATE] Verification footer on {self.doc.page_count} page(s): {code}")


def generate_pdf(
    template: bytes,
    variables: List[PdfVariable],
    registry: FontRegistry,
    image_loader: Optional[ImageLoader] = None,
    verification: Optional[VerificationOptions] = None,
    timestamp: Optional[int] = None,
) -> GeneratedPdf:
    """Overlay ``variables`` onto ``template`` and return the finished PDF."""
    started = time.time()
    result = GeneratedPdf(
        data=b"",
        template_hash=crc32_hex(template),
        form_schema_hash=crc32_hex(variables_json(variables).encode("utf-8")),
        timestamp=int(started) if timestamp is None else timestamp,
    )

    doc = PdfDocument.load(template)
    try:
        # Every target page must exist before anything is drawn
        for variable in variables:
            doc.page(variable.page)

        strip_acroforms(doc)
        # Scanned before anything is drawn so overlay text is not counted
        default_font_size = get_most_used_font_size(doc)
        register_base_fonts(doc)

        overlay = _Overlay(doc, registry, image_loader, default_font_size)
        for i, variable in enumerate(variables):
            logger.debug(f"[GENERATE] Variable {i} ({variable.type}) field={variable.field!r} page={variable.page}")
            overlay.draw(variable)

        if verification is not None:
            overlay.draw_footer(result.verification_code, verification)

        result.data = doc.serialize()
    finally:
        doc.close()

    logger.info(
        f"[GENERATE] {len(variables)} variable(s) → {len(result.data)} bytes "
        f"in {time.time() - started:.2f}s (template {result.template_hash}, schema {result.form_schema_hash})"
    )
    return result
