"""
S3 storage for generated documents.
Only used when a request asks for the output to be stored.
"""

import logging
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pdfsnap.core.config import settings
from pdfsnap.core.errors import StorageError

logger = logging.getLogger(__name__)

_s3_client = None


def _get_s3():
    """Get or create the S3 client from settings."""
    global _s3_client
    if _s3_client is None:
        if not settings.S3_BUCKET:
            raise StorageError("S3_BUCKET must be set to store generated documents")
        _s3_client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT or None,
            region_name=settings.S3_REGION,
            aws_access_key_id=settings.S3_ACCESS_KEY or None,
            aws_secret_access_key=settings.S3_SECRET_KEY or None,
        )
    return _s3_client


def get_file_url(filename: str, bucket: str = "", url_format: str = "") -> str:
    """Public URL for a stored object.

    ``url_format`` placeholders: ``%f`` file name, ``%b`` bucket, ``%%`` a literal percent.
    """
    bucket = bucket or settings.S3_BUCKET
    url_format = url_format or settings.S3_PUBLIC_URL_FORMAT
    if not url_format:
        endpoint = (settings.S3_ENDPOINT or f"https://s3.{settings.S3_REGION}.amazonaws.com").rstrip("/")
        return f"{endpoint}/{bucket}/{filename}"

    out = []
    i = 0
    while i < len(url_format):
        ch = url_format[i]
        if ch == "%" and i + 1 < len(url_format):
            nxt = url_format[i + 1]
            if nxt in "fb%":
                out.append({"f": filename, "b": bucket, "%": "%"}[nxt])
                i += 2
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def upload_pdf(pdf_bytes: bytes) -> str:
    """Upload under a fresh ``<uuid4>.pdf`` key and return the public URL."""
    filename = f"{uuid.uuid4()}.pdf"
    try:
        _get_s3().put_object(
            Bucket=settings.S3_BUCKET,
            Key=filename,
            Body=pdf_bytes,
            ContentType="application/pdf",
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"[S3] Upload of {filename} failed: {e}")
        raise StorageError(f"Failed to upload {filename}: {e}") from e
    logger.info(f"[S3] Uploaded {len(pdf_bytes)} bytes to {settings.S3_BUCKET}/{filename}")
    return get_file_url(filename)
