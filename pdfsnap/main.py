from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging

from pdfsnap.core.config import settings
from pdfsnap.api.api import api_router
from pdfsnap.services.fonts import FontRegistry
from pdfsnap.services.pdf_pool import PdfPool

# Set up logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fonts are parsed once and shared read-only by every request
    app.state.font_registry = FontRegistry.from_directory(settings.FONT_DIR)
    app.state.pdf_pool = PdfPool(settings.PDF_WORKERS, settings.PDF_MAX_PENDING)
    logger.info(f"{settings.PROJECT_NAME} {settings.PROJECT_VERSION} ready")
    try:
        yield
    finally:
        app.state.pdf_pool.shutdown()


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    lifespan=lifespan,
)

# Include API router
app.include_router(api_router)


@app.get("/healthcheck")
def healthcheck():
    return {"status": "ok"}


def run():
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
