import os

import pytest

from helpers import REQUIRED_FONT_FILES, build_test_font, simple_template

from pdfsnap.services.fonts import FontFamily, FontRegistry
from pdfsnap.services.pdf_document import PdfDocument


@pytest.fixture(scope="session")
def font_dir(tmp_path_factory):
    """A FONT_DIR holding the four required faces, all synthetic."""
    root = tmp_path_factory.mktemp("fonts")
    for relative, family in REQUIRED_FONT_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_test_font(family))
    return str(root)


@pytest.fixture(scope="session")
def registry(font_dir):
    return FontRegistry.from_directory(font_dir)


@pytest.fixture(scope="session")
def sans_face(registry):
    return registry.get(FontFamily.SANS_SERIF)


@pytest.fixture
def blank_doc():
    doc = PdfDocument.load(simple_template())
    yield doc
    doc.close()


@pytest.fixture
def open_doc():
    """Factory opening template bytes; every document is closed after the test."""
    opened = []

    def _open(data: bytes) -> PdfDocument:
        doc = PdfDocument.load(data)
        opened.append(doc)
        return doc

    yield _open
    for doc in opened:
        try:
            doc.close()
        except ValueError:
            pass


@pytest.fixture
def empty_font_dir(tmp_path):
    os.makedirs(tmp_path / "sans-serif", exist_ok=True)
    return str(tmp_path)
