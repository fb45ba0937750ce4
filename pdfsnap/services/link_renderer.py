import logging

from pdfsnap.services.pdf_document import PageRef, PdfDocument, parse_ref, ref
from pdfsnap.services.text_renderer import Box
from pdfsnap.utils.content_stream import escape_literal, format_number

logger = logging.getLogger(__name__)


def _literal(text: str) -> str:
    return "(" + escape_literal(text.encode("latin-1", errors="replace")).decode("latin-1") + ")"


def add_link(doc: PdfDocument, page: PageRef, url: str, box: Box) -> int:
    """Add a borderless URI link annotation over ``box`` and return its xref.

    Existing /Annots may be absent, a direct array or a reference to an array;
    any other value is replaced.
    """
    page_height = doc.page_height(page)
    rect = " ".join(format_number(v) for v in (
        box.x, page_height - box.y - box.h, box.x + box.w, page_height - box.y,
    ))
    annot = doc.new_object(
        f"<</Type/Annot/Subtype/Link/Rect[{rect}]/Border[0 0 0]"
        f"/A<</S/URI/URI{_literal(url)}>>>>"
    )

    type_, value = doc.get_key(page.xref, "Annots")
    resolved, source = doc.resolve(type_, value)
    if type_ == "null":
        doc.set_key(page.xref, "Annots", f"[{ref(annot)}]")
    elif type_ == "array":
        doc.set_key(page.xref, "Annots", f"{value.strip()[:-1]} {ref(annot)}]")
    elif type_ == "xref" and resolved == "array":
        doc.update_object(parse_ref(value), f"{source.strip()[:-1]} {ref(annot)}]")
    else:
        logger.warning(f"[LINK] Page {page.index} /Annots has type {type_}, replacing it")
        doc.set_key(page.xref, "Annots", f"[{ref(annot)}]")

    logger.info(f"[LINK] Page {page.index}: {url} at [{rect}]")
    return annot
