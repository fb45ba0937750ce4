import logging
import uuid
import zlib
from enum import Enum
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from pdfsnap.core.errors import ImageDecodeError
from pdfsnap.services.pdf_document import PageRef, PdfDocument
from pdfsnap.services.text_renderer import Box
from pdfsnap.utils.content_stream import Name, Operation, encode_operations

logger = logging.getLogger(__name__)


class ImageFormat(Enum):
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    BMP = "bmp"
    TIFF = "tiff"

    @classmethod
    def from_mime(cls, content_type: Optional[str]) -> "ImageFormat":
        """Map a Content-Type header (parameters ignored) to a decoder."""
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        fmt = _MIME_TYPES.get(mime)
        if fmt is None:
            raise ImageDecodeError(f"Unsupported image type: {content_type!r}")
        return fmt


_MIME_TYPES = {
    "image/jpeg": ImageFormat.JPEG,
    "image/jpg": ImageFormat.JPEG,
    "image/pjpeg": ImageFormat.JPEG,
    "image/png": ImageFormat.PNG,
    "image/gif": ImageFormat.GIF,
    "image/webp": ImageFormat.WEBP,
    "image/bmp": ImageFormat.BMP,
    "image/x-ms-bmp": ImageFormat.BMP,
    "image/tiff": ImageFormat.TIFF,
}


def encode_image(data: bytes, image_format: ImageFormat) -> Tuple[bytes, str, int, int]:
    """Return (stream data, filter name, width, height) for an image XObject.

    RGB JPEGs are embedded as-is; everything else becomes deflated 8-bit RGB.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            width, height = img.size
            if image_format == ImageFormat.JPEG and img.format == "JPEG" and img.mode == "RGB":
                return data, "DCTDecode", width, height
            raw = img.convert("RGB").tobytes()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode {image_format.value} image: {e}") from e

    return zlib.compress(raw, 9), "FlateDecode", width, height


def draw_image(doc: PdfDocument, page: PageRef, data: bytes, image_format: ImageFormat, box: Box) -> str:
    """Paint the image scaled into ``box`` and return its XObject resource name."""
    stream, filter_name, width, height = encode_image(data, image_format)
    xobject = doc.new_stream(
        f"<</Type/XObject/Subtype/Image/Width {width}/Height {height}"
        f"/ColorSpace/DeviceRGB/BitsPerComponent 8>>",
        stream,
        filter_name=filter_name,
    )
    name = f"Im{uuid.uuid4().hex}"
    doc.set_resource(page, "XObject", name, xobject)

    page_height = doc.page_height(page)
    ops = [
        Operation("q"),
        Operation("cm", [box.w, 0, 0, box.h, box.x, page_height - box.y - box.h]),
        Operation("Do", [Name(name)]),
        Operation("Q"),
    ]
    doc.append_content(page, encode_operations(ops))
    logger.info(
        f"[IMAGE] Page {page.index}: {width}x{height} {filter_name} as /{name} "
        f"in {box.w}x{box.h} at ({box.x}, {box.y})"
    )
    return name
