from fastapi import APIRouter, HTTPException, Request, Response
from starlette.concurrency import run_in_threadpool
from functools import partial
from typing import Any, Tuple
import logging

from pdfsnap.core.config import settings
from pdfsnap.core.errors import (
    FontFitError,
    ImageDecodeError,
    NetworkError,
    PageNotFoundError,
    PdfSnapError,
    StorageError,
    TemplateLoadError,
)
from pdfsnap.schemas.pdf import GeneratePdfRequest, GeneratePdfResponse
from pdfsnap.services.fetcher import fetch_image, fetch_template, template_name
from pdfsnap.services.image_renderer import ImageFormat
from pdfsnap.services.pdf_generator import VerificationOptions, generate_pdf
from pdfsnap.services.storage import upload_pdf

router = APIRouter()
logger = logging.getLogger(__name__)

_UNPROCESSABLE = (PageNotFoundError, FontFitError, ImageDecodeError, TemplateLoadError)


def _load_image(url: str) -> Tuple[bytes, ImageFormat]:
    return fetch_image(url, timeout=settings.FETCH_TIMEOUT)


@router.post("/generate-pdf")
async def generate_pdf_endpoint(body: GeneratePdfRequest, request: Request) -> Any:
    """
    Fill a template with the given variables.
    Returns the PDF itself, or a JSON download link when storeOutput is set.
    """
    registry = request.app.state.font_registry
    pool = request.app.state.pdf_pool

    verification = None
    if body.include_hash_in_header:
        verification = VerificationOptions(settings.VERIFICATION_LABEL, settings.VERIFICATION_URL)

    try:
        template = await fetch_template(body.template_url, timeout=settings.FETCH_TIMEOUT)
        result = await pool.render(partial(
            generate_pdf,
            template,
            body.variables,
            registry,
            image_loader=_load_image,
            verification=verification,
        ))
    except _UNPROCESSABLE as e:
        logger.warning(f"[GENERATE] Rejected {body.template_url}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except NetworkError as e:
        logger.error(f"[GENERATE] Fetch failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))
    except PdfSnapError as e:
        logger.error(f"[GENERATE] Generation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    if not body.store_output:
        return Response(
            content=result.data,
            media_type="application/pdf",
            headers={
                "X-Template-Hash": result.template_hash,
                "X-Form-Schema-Hash": result.form_schema_hash,
                "X-Generated-Timestamp": str(result.timestamp),
            },
        )

    response = GeneratePdfResponse(
        template_name=template_name(body.template_url),
        template_hash=result.template_hash,
        form_schema_hash=result.form_schema_hash,
    )
    try:
        response.download_link = await run_in_threadpool(upload_pdf, result.data)
    except StorageError as e:
        logger.error(f"[S3] {e}", exc_info=True)
        response.error = str(e)
    return response.model_dump(by_alias=True)
