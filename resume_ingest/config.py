"""Configuration classes for resume ingestion."""

import os
from dataclasses import dataclass, field
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from resume_ingest.logger import setup_logging


def _default_max_workers() -> int:
    return max(1, min(os.cpu_count() or 1, 4))


@dataclass
class OCRConfig:
    """Configuration for text extraction and OCR processing.

    Rasterization settings are fixed per instance; there is no per-call
    override.

    Examples:
        >>> # Defaults: 100 DPI pages bounded to 2000x2000, English OCR
        >>> config = OCRConfig()

        >>> # Multi-language OCR with a per-image timeout
        >>> config = OCRConfig(languages="eng+deu", ocr_timeout=30)
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng"
    """Default OCR language hint in Tesseract format (e.g., "eng", "eng+fra")."""

    ocr_enabled: bool = True
    """When False, OCR always contributes nothing (empty text)."""

    ocr_timeout: float = 0
    """Seconds allowed for a single image recognition. 0 disables the timeout."""

    dpi: int = 100
    """Rendering density for PDF pages sent to OCR."""

    max_width: int = 2000
    """Maximum rendered page width in pixels. Larger pages are scaled down."""

    max_height: int = 2000
    """Maximum rendered page height in pixels. Larger pages are scaled down."""

    psm_mode: int = 6
    """Page segmentation mode (0-13). Default: 6 (uniform block of text).

    Common modes:
    - 3: Fully automatic page segmentation
    - 6: Uniform block of text (good for documents)
    - 11: Sparse text (for documents with few words)
    """

    use_oem_1: bool = True
    """Use Tesseract OEM 1 (LSTM engine only)."""

    max_workers: int = field(default_factory=_default_max_workers)
    """Number of pages OCR'd concurrently during the PDF fallback.

    Also bounds how many rendered pages are held in memory at once.
    """

    ocr_fallback_min_chars: int = 20
    """Native PDF text shorter than this (after trimming) triggers OCR."""

    enable_image_preprocessing: bool = True
    """Convert to grayscale and boost contrast before OCR."""

    contrast_enhancement: float = 1.2
    """Contrast enhancement factor for image preprocessing.

    - 1.0: No enhancement
    - 1.2: Default, 20% contrast boost (good for scanned documents)
    - 1.5: Strong enhancement (for poor quality scans)
    """

    pdf_markdown: bool = False
    """Extract native PDF text as Markdown via pymupdf4llm instead of plain text."""

    @property
    def tesseract_flags(self) -> str:
        flags = f"--psm {self.psm_mode}"
        if self.use_oem_1:
            flags = f"--oem 1 {flags}"
        return flags


class IngestSettings(BaseSettings):
    """Environment-driven settings (``RESUME_INGEST_*`` variables or ``.env``)."""

    model_config = SettingsConfigDict(
        env_prefix="RESUME_INGEST_",
        env_file=".env",
        extra="ignore",
    )

    tesseract_cmd: str = "tesseract"
    tessdata_prefix: Optional[str] = None
    ocr_languages: str = "eng"
    ocr_enabled: bool = True
    ocr_timeout: float = 0
    ocr_workers: int = _default_max_workers()
    ocr_fallback_min_chars: int = 20
    pdf_markdown: bool = False
    log_level: str = "INFO"

    def to_ocr_config(self) -> OCRConfig:
        return OCRConfig(
            tesseract_cmd=self.tesseract_cmd,
            tessdata_prefix=self.tessdata_prefix,
            languages=self.ocr_languages,
            ocr_enabled=self.ocr_enabled,
            ocr_timeout=self.ocr_timeout,
            max_workers=max(1, self.ocr_workers),
            ocr_fallback_min_chars=self.ocr_fallback_min_chars,
            pdf_markdown=self.pdf_markdown,
        )


def load_config(settings: Optional[IngestSettings] = None) -> OCRConfig:
    """Build an OCRConfig from the environment.

    Args:
        settings: Pre-loaded settings. If None, reads the environment.

    Returns:
        OCRConfig with environment overrides applied
    """
    settings = settings or IngestSettings()
    return settings.to_ocr_config()


def configure_logging(settings: Optional[IngestSettings] = None) -> None:
    """Set up application logging at the environment's ``log_level``.

    Call once at application startup.
    """
    settings = settings or IngestSettings()
    setup_logging(settings.log_level)
