# File: pdfsnap/core/errors.py
"""
Error taxonomy for PDF generation.

Any of these aborts the whole request: there is no partial output.
Wrap lower-level failures with ``raise ... from exc`` so the cause chain survives.
"""


class PdfSnapError(Exception):
    """Base class for every generation failure."""


class TemplateLoadError(PdfSnapError):
    """The template bytes could not be opened as an editable PDF."""


class PageNotFoundError(PdfSnapError):
    """A variable targets a page index the template does not have."""

    def __init__(self, page: int, page_count: int):
        self.page = page
        self.page_count = page_count
        super().__init__(f"Page not found: index {page} (template has {page_count} page(s))")


class ResourceAccessError(PdfSnapError):
    """The object graph does not have the shape we expected."""


class FontFitError(PdfSnapError):
    """No font size in range lets the text fit its box."""


class FontLoadError(PdfSnapError):
    """A bundled font face is missing or unparsable."""


class ImageDecodeError(PdfSnapError):
    """Image bytes are missing a usable type or cannot be decoded."""


class NetworkError(PdfSnapError):
    """Fetching a template or image failed."""


class StorageError(PdfSnapError):
    """Uploading the generated document failed."""
