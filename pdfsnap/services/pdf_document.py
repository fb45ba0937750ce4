"""
Document model adapter over the PyMuPDF xref API.

Every edit goes through (xref, key) handles on the open document: read a key,
compute the new value as PDF source, write it back. Pages are addressed by
``PageRef`` and never by cached ``fitz.Page`` objects, so handles stay valid
across the prune/reopen done after acroform stripping.
"""

import fitz  # PyMuPDF
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from pdfsnap.core.errors import PageNotFoundError, ResourceAccessError, TemplateLoadError

logger = logging.getLogger(__name__)

_REF_RE = re.compile(r"^\s*(\d+)\s+(\d+)\s+R\s*$")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)")


@dataclass(frozen=True)
class PageRef:
    index: int
    xref: int
    generation: int = 0


def parse_ref(value: str) -> Optional[int]:
    """Return the object number of an indirect reference like ``12 0 R``."""
    match = _REF_RE.match(value or "")
    return int(match.group(1)) if match else None


def ref(xref: int) -> str:
    return f"{xref} 0 R"


class PdfDocument:
    """An editable PDF owned by exactly one request."""

    def __init__(self, doc: "fitz.Document"):
        self.doc = doc
        # tag -> font dictionary xref, so large font programs are embedded once
        self.embedded_fonts: Dict[str, int] = {}
        # pages whose template content is already bracketed in q/Q
        self._isolated_pages: Set[int] = set()

    @classmethod
    def load(cls, data: bytes) -> "PdfDocument":
        if not data:
            raise TemplateLoadError("Template is empty")
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise TemplateLoadError(f"Cannot open template: {e}") from e
        if not doc.is_pdf:
            doc.close()
            raise TemplateLoadError("Template is not a PDF document")
        if doc.needs_pass or doc.is_encrypted:
            doc.close()
            raise TemplateLoadError("Encrypted templates are not supported")
        if doc.page_count == 0:
            doc.close()
            raise TemplateLoadError("Template has no pages")
        logger.info(f"[LOAD] Opened template: {doc.page_count} page(s), {len(data)} bytes")
        return cls(doc)

    def close(self):
        self.doc.close()

    # ─── Pages ──────────────────────────────────────────────────────────────

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def pages(self) -> List[PageRef]:
        """Pages in template order."""
        return [PageRef(i, self.doc.page_xref(i)) for i in range(self.doc.page_count)]

    def page(self, index: int) -> PageRef:
        if index < 0 or index >= self.doc.page_count:
            raise PageNotFoundError(index, self.doc.page_count)
        return PageRef(index, self.doc.page_xref(index))

    # ─── Raw object access ─────────────────────────────────────────────────

    def get_key(self, xref: int, key: str) -> Tuple[str, str]:
        """(type, value) of a dictionary key; type is "null" when absent."""
        try:
            return self.doc.xref_get_key(xref, key)
        except Exception as e:
            raise ResourceAccessError(f"Cannot read /{key} of object {xref}: {e}") from e

    def set_key(self, xref: int, key: str, value: str):
        """Write PDF source ``value`` at ``key`` (path notation creates sub-dictionaries)."""
        try:
            self.doc.xref_set_key(xref, key, value)
        except Exception as e:
            raise ResourceAccessError(f"Cannot write /{key} of object {xref}: {e}") from e

    def object_source(self, xref: int) -> str:
        try:
            return self.doc.xref_object(xref, compressed=True)
        except Exception as e:
            raise ResourceAccessError(f"Cannot read object {xref}: {e}") from e

    def catalog(self) -> int:
        return self.doc.pdf_catalog()

    def new_object(self, source: str) -> int:
        """Allocate a new indirect object holding ``source``."""
        try:
            xref = self.doc.get_new_xref()
            self.doc.update_object(xref, source)
        except Exception as e:
            raise ResourceAccessError(f"Cannot create object: {e}") from e
        return xref

    def update_object(self, xref: int, source: str):
        try:
            self.doc.update_object(xref, source)
        except Exception as e:
            raise ResourceAccessError(f"Cannot update object {xref}: {e}") from e

    def new_stream(self, dictionary: str, data: bytes, compress: bool = True,
                   filter_name: Optional[str] = None) -> int:
        """Create a stream object.

        With ``filter_name`` the data is stored as given (already encoded) and
        /Filter is set explicitly afterwards.
        """
        xref = self.new_object(dictionary)
        try:
            self.doc.update_stream(xref, data, new=True, compress=compress and filter_name is None)
        except Exception as e:
            raise ResourceAccessError(f"Cannot write stream {xref}: {e}") from e
        if filter_name:
            self.set_key(xref, "Filter", f"/{filter_name}")
        return xref

    def resolve(self, type_: str, value: str) -> Tuple[str, str]:
        """Follow an indirect reference one level, returning the target's source."""
        if type_ != "xref":
            return type_, value
        target = parse_ref(value)
        if target is None:
            raise ResourceAccessError(f"Malformed reference: {value!r}")
        source = self.object_source(target).strip()
        if source.startswith("["):
            return "array", source
        if source.startswith("<<"):
            return "dict", source
        return "other", source

    def get_inherited(self, page: PageRef, key: str) -> Tuple[str, str]:
        """Look ``key`` up on the page, then up its /Parent chain."""
        xref = page.xref
        seen = set()
        while xref and xref not in seen:
            seen.add(xref)
            found = self.get_key(xref, key)
            if found[0] != "null":
                return found
            parent_type, parent = self.get_key(xref, "Parent")
            if parent_type != "xref":
                break
            xref = parse_ref(parent)
        return ("null", "null")

    # ─── Resources ─────────────────────────────────────────────────────────

    def get_or_create_resources(self, page: PageRef):
        """Make the page's /Resources a direct, page-local dictionary.

        Inherited or shared (indirect) resources are copied onto the page
        with all existing entries preserved.
        """
        type_, value = self.get_key(page.xref, "Resources")
        if type_ == "dict":
            return
        if type_ == "null":
            type_, value = self.get_inherited(page, "Resources")
            if type_ == "null":
                self.set_key(page.xref, "Resources", "<<>>")
                return
        type_, source = self.resolve(type_, value)
        if type_ != "dict":
            raise ResourceAccessError(f"Page {page.index} /Resources is not a dictionary")
        self.set_key(page.xref, "Resources", source)
        logger.debug(f"[RESOURCES] Materialized page-local resources on page {page.index}")

    def set_resource(self, page: PageRef, category: str, name: str, xref: int):
        """Register ``/name -> xref`` under ``/Resources/<category>`` of one page."""
        self.get_or_create_resources(page)
        path = f"Resources/{category}"
        type_, value = self.get_key(page.xref, path)
        if type_ == "xref":
            type_, source = self.resolve(type_, value)
            if type_ != "dict":
                raise ResourceAccessError(f"Page {page.index} /{path} is not a dictionary")
            self.set_key(page.xref, path, source)
        elif type_ == "null":
            self.set_key(page.xref, path, "<<>>")
        elif type_ != "dict":
            raise ResourceAccessError(f"Page {page.index} /{path} has type {type_}")
        self.set_key(page.xref, f"{path}/{name}", ref(xref))

    # ─── Geometry ──────────────────────────────────────────────────────────

    def media_box(self, page: PageRef) -> Tuple[float, float, float, float]:
        """(x0, y0, x1, y1) of the page's (possibly inherited) /MediaBox."""
        type_, value = self.resolve(*self.get_inherited(page, "MediaBox"))
        if type_ != "array":
            raise ResourceAccessError(f"Page {page.index} has no usable /MediaBox")
        numbers = _NUMBER_RE.findall(value)
        if len(numbers) != 4:
            raise ResourceAccessError(f"Page {page.index} /MediaBox must have 4 numbers: {value}")
        x0, y0, x1, y1 = (float(n) for n in numbers)
        return x0, y0, x1, y1

    def page_height(self, page: PageRef) -> float:
        return self.media_box(page)[3]

    def page_width(self, page: PageRef) -> float:
        return self.media_box(page)[2]

    # ─── Content ───────────────────────────────────────────────────────────

    def page_content(self, page: PageRef) -> bytes:
        """All content streams of a page, decoded and concatenated."""
        try:
            return self.doc[page.index].read_contents()
        except Exception as e:
            raise ResourceAccessError(f"Cannot read content of page {page.index}: {e}") from e

    def append_content(self, page: PageRef, data: bytes) -> int:
        """Append a new content stream after the page's existing ones.

        The first append to a page with template content brackets that content
        in q/Q so its graphics state cannot leak into the overlay.
        """
        type_, value = self.get_key(page.xref, "Contents")
        holder = None
        if type_ == "null":
            existing = ""
        elif type_ == "array":
            existing = value.strip()[1:-1].strip()
        elif type_ == "xref":
            target = parse_ref(value)
            if target is not None and self.doc.xref_is_stream(target):
                existing = value
            else:
                resolved, source = self.resolve(type_, value)
                if resolved != "array":
                    raise ResourceAccessError(f"Page {page.index} /Contents has unexpected shape")
                existing = source.strip()[1:-1].strip()
                holder = target
        else:
            raise ResourceAccessError(f"Page {page.index} /Contents has type {type_}")

        if existing and page.xref not in self._isolated_pages:
            push = self.new_stream("<<>>", b"q\n")
            existing = f"{ref(push)} {existing}"
            data = b"Q\n" + data
            self._isolated_pages.add(page.xref)

        stream_xref = self.new_stream("<<>>", data)
        if not existing:
            self.set_key(page.xref, "Contents", ref(stream_xref))
            self._isolated_pages.add(page.xref)
        elif holder is not None:
            self.update_object(holder, f"[{existing} {ref(stream_xref)}]")
        else:
            self.set_key(page.xref, "Contents", f"[{existing} {ref(stream_xref)}]")
        return stream_xref

    # ─── Output ────────────────────────────────────────────────────────────

    def prune(self):
        """Drop objects no longer reachable from the trailer, keeping object numbers."""
        try:
            data = self.doc.tobytes(garbage=1)
            self.doc.close()
            self.doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ResourceAccessError(f"Cannot prune unreferenced objects: {e}") from e

    def serialize(self) -> bytes:
        """Compress streams, deduplicate objects and return the final file."""
        try:
            return self.doc.tobytes(garbage=4, deflate=True)
        except Exception as e:
            raise ResourceAccessError(f"Cannot serialize document: {e}") from e
