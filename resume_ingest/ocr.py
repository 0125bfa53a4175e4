"""Tesseract-backed image recognition.

Recognizers never raise: any failure is logged and reported as empty text,
so one bad page cannot abort a batch of pages.
"""

import io
import os
from typing import Optional, Protocol

import pytesseract
from PIL import Image, ImageEnhance, ImageOps

from resume_ingest.config import OCRConfig
from resume_ingest.logger import Timer, get_logger

logger = get_logger(__name__)


class ImageRecognizer(Protocol):
    def recognize(self, image: bytes, language: Optional[str] = None) -> str:
        ...


class NullRecognizer:
    """Recognizer used when OCR is disabled or no backend is installed."""

    def __init__(self, reason: str = "disabled"):
        self.reason = reason

    def recognize(self, image: bytes, language: Optional[str] = None) -> str:
        logger.debug(
            "OCR unavailable, returning empty text",
            extra_data={"reason": self.reason, "image_size_bytes": len(image)},
        )
        return ""


class TesseractRecognizer:
    """Runs Tesseract OCR on single raster images via pytesseract."""

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        if self.config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.config.tessdata_prefix

    def recognize(self, image: bytes, language: Optional[str] = None) -> str:
        """Recognize text in an encoded image.

        Args:
            image: Encoded image bytes (PNG, JPEG, TIFF, ...)
            language: Tesseract language hint. Defaults to the configured languages.

        Returns:
            Recognized text, stripped; empty string on any failure
        """
        lang = language or self.config.languages

        try:
            with Image.open(io.BytesIO(image)) as source:
                prepared = self._prepare(source)
                with Timer("image_ocr") as timer:
                    text = pytesseract.image_to_string(
                        prepared,
                        lang=lang,
                        config=self.config.tesseract_flags,
                        timeout=self.config.ocr_timeout,
                    )
        except Exception as exc:
            logger.error(
                "Image OCR failed, returning empty text",
                extra_data={
                    "language": lang,
                    "image_size_bytes": len(image),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return ""

        result = (text or "").strip()

        logger.debug(
            "Image OCR completed",
            extra_data={
                "language": lang,
                "image_dimensions": f"{prepared.width}x{prepared.height}",
                "characters_extracted": len(result),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result

    def _prepare(self, image: Image.Image) -> Image.Image:
        # Honour EXIF rotation from phone photos before anything else
        image = ImageOps.exif_transpose(image)
        if not self.config.enable_image_preprocessing:
            return image.convert("RGB") if image.mode not in ("RGB", "L") else image

        grayscale = image.convert("L")
        if self.config.contrast_enhancement != 1.0:
            grayscale = ImageEnhance.Contrast(grayscale).enhance(
                self.config.contrast_enhancement
            )
        return grayscale


def tesseract_available(config: OCRConfig) -> bool:
    """Probe for a usable Tesseract binary."""
    if config.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
    try:
        version = pytesseract.get_tesseract_version()
    except (pytesseract.TesseractNotFoundError, OSError) as exc:
        logger.warning(
            "Tesseract binary not found, OCR will return empty text",
            extra_data={"tesseract_cmd": config.tesseract_cmd, "error": str(exc)},
        )
        return False

    logger.info(
        "Tesseract backend detected",
        extra_data={"tesseract_cmd": config.tesseract_cmd, "version": version},
    )
    return True


def build_recognizer(config: Optional[OCRConfig] = None) -> ImageRecognizer:
    """Select the OCR backend once, at startup.

    Args:
        config: OCR configuration. If None, uses defaults.

    Returns:
        A TesseractRecognizer, or a NullRecognizer if OCR is disabled or
        Tesseract is not installed
    """
    config = config or OCRConfig()

    if not config.ocr_enabled:
        logger.info("OCR disabled by configuration")
        return NullRecognizer(reason="disabled")

    if not tesseract_available(config):
        return NullRecognizer(reason="tesseract_not_found")

    return TesseractRecognizer(config)
