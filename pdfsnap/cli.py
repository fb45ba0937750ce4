"""
Command-line generator.

    pdfsnap-cli template.pdf variables.json -o out.pdf [--verification]

TEMPLATE may be a local path or an http(s) URL. VARIABLES_JSON holds the same
variable list the HTTP API accepts.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List

from pydantic import TypeAdapter, ValidationError

from pdfsnap.core.config import settings
from pdfsnap.core.errors import PdfSnapError
from pdfsnap.schemas.pdf import PdfVariable
from pdfsnap.services.fetcher import fetch_image, fetch_template
from pdfsnap.services.fonts import FontRegistry
from pdfsnap.services.pdf_document import PdfDocument
from pdfsnap.services.pdf_fonts import get_most_used_font_size
from pdfsnap.services.pdf_generator import VerificationOptions, generate_pdf

logger = logging.getLogger("pdfsnap.cli")

_variables_adapter = TypeAdapter(List[PdfVariable])


def _read_template(source: str) -> bytes:
    if source.startswith(("http://", "https://")):
        return asyncio.run(fetch_template(source, timeout=settings.FETCH_TIMEOUT))
    with open(source, "rb") as fh:
        return fh.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pdfsnap-cli", description="Fill a PDF template with variables")
    parser.add_argument("template", help="template PDF path or http(s) URL")
    parser.add_argument("variables", help="JSON file with the variable list")
    parser.add_argument("-o", "--output", required=True, help="where to write the filled PDF")
    parser.add_argument("--verification", action="store_true", help="add the verification footer")
    parser.add_argument("--font-dir", default=settings.FONT_DIR, help="bundled fonts directory")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        with open(args.variables, "r", encoding="utf-8") as fh:
            variables = _variables_adapter.validate_python(json.load(fh))
        template = _read_template(args.template)
        registry = FontRegistry.from_directory(args.font_dir)

        doc = PdfDocument.load(template)
        try:
            print(f"Pages: {doc.page_count}")
            print(f"Default font size: {get_most_used_font_size(doc)}")
        finally:
            doc.close()

        verification = None
        if args.verification:
            verification = VerificationOptions(settings.VERIFICATION_LABEL, settings.VERIFICATION_URL)
        result = generate_pdf(
            template,
            variables,
            registry,
            image_loader=lambda url: fetch_image(url, timeout=settings.FETCH_TIMEOUT),
            verification=verification,
        )
    except (OSError, ValueError, ValidationError, PdfSnapError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    with open(args.output, "wb") as fh:
        fh.write(result.data)
    print(f"Wrote {len(result.data)} bytes to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
