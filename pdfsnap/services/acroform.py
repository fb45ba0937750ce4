import logging

from pdfsnap.services.pdf_document import PdfDocument

logger = logging.getLogger(__name__)


def strip_acroforms(doc: PdfDocument) -> int:
    """Remove the catalog /AcroForm and every page's /Annots, then prune orphans.

    Returns the number of entries removed; a second call removes nothing.
    """
    removed = 0
    catalog = doc.catalog()
    if doc.get_key(catalog, "AcroForm")[0] != "null":
        doc.set_key(catalog, "AcroForm", "null")
        removed += 1

    for page in doc.pages():
        if doc.get_key(page.xref, "Annots")[0] != "null":
            doc.set_key(page.xref, "Annots", "null")
            removed += 1

    if removed:
        doc.prune()
        logger.info(f"[ACROFORM] Removed {removed} form/annotation entries")
    return removed
