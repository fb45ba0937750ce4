from fastapi import APIRouter

from pdfsnap.api.endpoints import pdf

api_router = APIRouter(prefix="/api/v0")
api_router.include_router(pdf.router, prefix="/pdf", tags=["pdf"])
