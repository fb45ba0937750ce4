# File: pdfsnap/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings:
    PROJECT_NAME: str = "PDFSnap API"
    PROJECT_VERSION: str = "0.1.0"

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "6970"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Fonts
    FONT_DIR: str = os.getenv("FONT_DIR", os.path.join(_PACKAGE_DIR, "static", "fonts"))

    # Worker pool
    PDF_WORKERS: int = int(os.getenv("PDF_WORKERS", "4"))
    PDF_MAX_PENDING: int = int(os.getenv("PDF_MAX_PENDING", "32"))

    # Network
    FETCH_TIMEOUT: float = float(os.getenv("FETCH_TIMEOUT", "30"))

    # S3 settings
    S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
    S3_ACCESS_KEY: str = os.getenv("S3_ACCESS_KEY", "")
    S3_SECRET_KEY: str = os.getenv("S3_SECRET_KEY", "")
    S3_REGION: str = os.getenv("S3_REGION", "us-east-1")
    S3_BUCKET: str = os.getenv("S3_BUCKET", "")
    S3_PUBLIC_URL_FORMAT: str = os.getenv("S3_PUBLIC_URL_FORMAT", "")

    # Verification caption
    VERIFICATION_LABEL: str = os.getenv(
        "VERIFICATION_LABEL", "BetterInternship E-Sign Verification Code"
    )
    VERIFICATION_URL: str = os.getenv("VERIFICATION_URL", "https://docs.betterinternship.com")


settings = Settings()
