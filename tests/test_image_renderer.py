import struct
import zlib

import pytest
from PIL import Image

from helpers import image_bytes

from pdfsnap.core.errors import ImageDecodeError
from pdfsnap.services.image_renderer import ImageFormat, draw_image, encode_image
from pdfsnap.services.pdf_document import parse_ref
from pdfsnap.services.text_renderer import Box
from pdfsnap.utils.content_stream import Name, parse_content_stream


def _png_header(width, height):
    """PNG signature plus an IHDR chunk; no pixel data follows."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    chunk = b"IHDR" + ihdr
    return b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(ihdr)) + chunk + struct.pack(">I", zlib.crc32(chunk))


def _xobject(doc, page, name):
    type_, value = doc.get_key(page.xref, f"Resources/XObject/{name}")
    assert type_ == "xref"
    return parse_ref(value)


class TestImageFormat:

    @pytest.mark.parametrize("mime,expected", [
        ("image/jpeg", ImageFormat.JPEG),
        ("image/png", ImageFormat.PNG),
        ("image/PNG; charset=binary", ImageFormat.PNG),
        ("image/webp", ImageFormat.WEBP),
        ("image/gif", ImageFormat.GIF),
        ("image/bmp", ImageFormat.BMP),
        ("image/tiff", ImageFormat.TIFF),
    ])
    def test_from_mime(self, mime, expected):
        assert ImageFormat.from_mime(mime) is expected

    @pytest.mark.parametrize("mime", [None, "", "text/html", "application/octet-stream"])
    def test_unknown_mime_rejected(self, mime):
        with pytest.raises(ImageDecodeError):
            ImageFormat.from_mime(mime)


class TestEncodeImage:

    def test_rgb_jpeg_passes_through(self):
        data = image_bytes("JPEG", size=(8, 6))
        stream, filter_name, width, height = encode_image(data, ImageFormat.JPEG)
        assert stream == data
        assert filter_name == "DCTDecode"
        assert (width, height) == (8, 6)

    def test_grayscale_jpeg_is_reencoded(self):
        data = image_bytes("JPEG", size=(8, 6), mode="L")
        _, filter_name, _, _ = encode_image(data, ImageFormat.JPEG)
        assert filter_name == "FlateDecode"

    def test_garbage_rejected(self):
        with pytest.raises(ImageDecodeError):
            encode_image(b"not an image", ImageFormat.PNG)

    def test_oversized_image_rejected(self):
        with pytest.raises(ImageDecodeError) as excinfo:
            encode_image(_png_header(20000, 20000), ImageFormat.PNG)
        assert isinstance(excinfo.value.__cause__, Image.DecompressionBombError)


class TestDrawImage:

    def test_png_becomes_flate_rgb_xobject(self, blank_doc):
        page = blank_doc.page(0)
        name = draw_image(blank_doc, page, image_bytes("PNG", size=(4, 3)), ImageFormat.PNG, Box(50, 100, 200, 150))

        assert name.startswith("Im")
        xobject = _xobject(blank_doc, page, name)
        assert blank_doc.get_key(xobject, "Subtype") == ("name", "/Image")
        assert blank_doc.get_key(xobject, "Width") == ("int", "4")
        assert blank_doc.get_key(xobject, "Height") == ("int", "3")
        assert blank_doc.get_key(xobject, "ColorSpace") == ("name", "/DeviceRGB")
        assert blank_doc.get_key(xobject, "BitsPerComponent") == ("int", "8")
        assert blank_doc.get_key(xobject, "Filter") == ("name", "/FlateDecode")
        pixels = blank_doc.doc.xref_stream(xobject)
        assert len(pixels) == 4 * 3 * 3
        assert pixels[:3] == b"\xff\x00\x00"

    def test_placement_operators(self, blank_doc):
        page = blank_doc.page(0)
        name = draw_image(blank_doc, page, image_bytes("PNG"), ImageFormat.PNG, Box(50, 100, 200, 150))

        ops = parse_content_stream(blank_doc.page_content(page))
        assert [op.operator for op in ops] == ["q", "cm", "Do", "Q"]
        assert ops[1].operands == [200, 0, 0, 150, 50, 792 - 100 - 150]
        assert ops[2].operands == [Name(name)]

    def test_jpeg_stream_kept_raw(self, blank_doc):
        page = blank_doc.page(0)
        data = image_bytes("JPEG", size=(8, 8))
        name = draw_image(blank_doc, page, data, ImageFormat.JPEG, Box(0, 0, 10, 10))

        xobject = _xobject(blank_doc, page, name)
        assert blank_doc.get_key(xobject, "Filter") == ("name", "/DCTDecode")
        assert blank_doc.doc.xref_stream_raw(xobject) == data

    def test_each_image_gets_unique_name(self, blank_doc):
        page = blank_doc.page(0)
        first = draw_image(blank_doc, page, image_bytes("PNG"), ImageFormat.PNG, Box(0, 0, 10, 10))
        second = draw_image(blank_doc, page, image_bytes("PNG"), ImageFormat.PNG, Box(20, 0, 10, 10))
        assert first != second
        assert _xobject(blank_doc, page, first) != _xobject(blank_doc, page, second)

    def test_undecodable_image_leaves_page_untouched(self, blank_doc):
        page = blank_doc.page(0)
        with pytest.raises(ImageDecodeError):
            draw_image(blank_doc, page, b"\x89PNG broken", ImageFormat.PNG, Box(0, 0, 10, 10))
        assert blank_doc.page_content(page) == b""
