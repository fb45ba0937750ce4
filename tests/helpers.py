"""
Builders for test inputs: synthetic TrueType faces and hand-assembled PDFs.

Test faces have 1000 units per em, every printable ASCII glyph 500 units wide
(space 250), and one kerning pair (A V: -80) in a GPOS 'kern' feature.
"""

import zlib
from io import BytesIO
from typing import Iterable, List, Union

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from PIL import Image

UNITS_PER_EM = 1000
GLYPH_ADVANCE = 500
SPACE_ADVANCE = 250
KERN_AV = -80

REQUIRED_FONT_FILES = {
    "sans-serif/OpenSans-Regular.ttf": "Test Sans",
    "serif/DejaVuSerif.ttf": "Test Serif",
    "mono/JetBrainsMonoNL-Regular.ttf": "Test Mono",
    "cursive/Italianno-Regular.ttf": "Test Cursive",
}


def _box_glyph(width: int):
    pen = TTGlyphPen(None)
    pen.moveTo((50, 0))
    pen.lineTo((50, 700))
    pen.lineTo((width - 50, 700))
    pen.lineTo((width - 50, 0))
    pen.closePath()
    return pen.glyph()


def build_test_font(family: str = "Test Sans", kern: bool = True) -> bytes:
    codepoints = list(range(33, 127))
    names = {cp: f"uni{cp:04X}" for cp in codepoints}
    glyph_order = [".notdef", "space"] + [names[cp] for cp in codepoints]

    cmap = {32: "space"}
    cmap.update({cp: names[cp] for cp in codepoints})

    glyphs = {".notdef": _box_glyph(GLYPH_ADVANCE), "space": TTGlyphPen(None).glyph()}
    glyphs.update({names[cp]: _box_glyph(GLYPH_ADVANCE) for cp in codepoints})

    metrics = {name: (GLYPH_ADVANCE, 50) for name in glyph_order}
    metrics["space"] = (SPACE_ADVANCE, 0)

    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    fb.setupGlyf(glyphs)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    fb.setupPost()
    if kern:
        fb.addOpenTypeFeatures(f"feature kern {{ pos uni0041 uni0056 {KERN_AV}; }} kern;")

    buf = BytesIO()
    fb.save(buf)
    return buf.getvalue()


# ─── PDFs ─────────────────────────────────────────────────────────────────

PdfObject = Union[str, bytes]


def stream_object(data: bytes, extra: str = "") -> bytes:
    return f"<< /Length {len(data)} {extra}>>\nstream\n".encode("latin-1") + data + b"\nendstream"


def build_pdf(objects: List[PdfObject]) -> bytes:
    """Serialize objects numbered from 1 (object 1 must be the catalog)."""
    out = bytearray(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
    offsets = []
    for number, obj in enumerate(objects, start=1):
        if isinstance(obj, str):
            obj = obj.encode("latin-1")
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + obj + b"\nendobj\n"

    xref_pos = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_pos}\n%%EOF\n"
    ).encode("ascii")
    return bytes(out)


def simple_template(pages: int = 1, contents: Iterable[bytes] = (), width: int = 612,
                    height: int = 792) -> bytes:
    """Catalog 1, page tree 2, pages 3.. then their content streams.

    ``contents`` gives the content of the first pages; pages beyond it have none.
    """
    contents = list(contents)
    page_numbers = [3 + i for i in range(pages)]
    content_numbers = [3 + pages + i for i in range(len(contents))]
    kids = " ".join(f"{n} 0 R" for n in page_numbers)

    objects: List[PdfObject] = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {pages} >>",
    ]
    for i in range(pages):
        entry = f" /Contents {content_numbers[i]} 0 R" if i < len(contents) else ""
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {width} {height}] "
            f"/Resources << >>{entry} >>"
        )
    objects.extend(stream_object(data) for data in contents)
    return build_pdf(objects)


def text_content(*runs) -> bytes:
    """Content drawing each (size, text) run with /F1."""
    parts = []
    for i, (size, text) in enumerate(runs):
        parts.append(f"BT /F1 {size} Tf 1 0 0 1 72 {700 - i * 30} Tm ({text}) Tj ET")
    return "\n".join(parts).encode("latin-1")


def template_with_font(*runs) -> bytes:
    """One page whose content uses a real Helvetica /F1."""
    content = text_content(*runs)
    return build_pdf([
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        "/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        stream_object(content),
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ])


def acroform_template() -> bytes:
    """One page with a text field widget and the catalog /AcroForm."""
    return build_pdf([
        "<< /Type /Catalog /Pages 2 0 R /AcroForm << /Fields [4 0 R] >> >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources << >> /Annots [4 0 R] >>",
        "<< /Type /Annot /Subtype /Widget /FT /Tx /T (name) /Rect [100 600 300 620] /P 3 0 R >>",
    ])


def inherited_template() -> bytes:
    """Resources and MediaBox live on the page tree node, not on the page."""
    return build_pdf([
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 /MediaBox [0 0 595 842] "
        "/Resources << /Font << /F1 4 0 R >> >> >>",
        "<< /Type /Page /Parent 2 0 R >>",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ])


def shared_resources_template() -> bytes:
    """Two pages pointing at the same indirect /Resources dictionary (object 5)."""
    return build_pdf([
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R 4 0 R] /Count 2 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources 5 0 R >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources 5 0 R >>",
        "<< /Font << /F1 6 0 R >> >>",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ])


def annots_template(annots: str, extra_objects: List[PdfObject] = ()) -> bytes:
    """One page whose /Annots value is ``annots``; extra objects start at 4."""
    return build_pdf([
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources << >> /Annots {annots} >>",
        *extra_objects,
    ])


EXISTING_LINK = (
    "<< /Type /Annot /Subtype /Link /Rect [0 0 10 10] /Border [0 0 0] "
    "/A << /S /URI /URI (https://example.com/old) >> >>"
)


# ─── Images ───────────────────────────────────────────────────────────────

def image_bytes(fmt: str = "PNG", size=(4, 3), color=(255, 0, 0), mode: str = "RGB") -> bytes:
    img = Image.new(mode, size, color if mode == "RGB" else 128)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def crc32_hex(data: bytes) -> str:
    return f"{zlib.crc32(data):x}"
