"""High-level API for resume ingestion."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from resume_ingest.config import OCRConfig, load_config
from resume_ingest.detector import guess_mime_type
from resume_ingest.fields import parse_resume
from resume_ingest.handler import ResumeIngestHandler
from resume_ingest.models import IngestionResult, ParsedResume
from resume_ingest.ocr import ImageRecognizer, build_recognizer


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    mime_type: Optional[str] = None,
    ocr_config: Optional[OCRConfig] = None,
) -> IngestionResult:
    """Extract text from a resume document and parse its fields.

    High-level convenience function that accepts either a file path or raw bytes.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename (required if using file_bytes)
        mime_type: Declared MIME type (guessed from the filename if not provided)
        ocr_config: OCR configuration (optional, loaded from the environment if not provided)

    Returns:
        IngestionResult with extracted text, parsed fields, title and headline

    Raises:
        ValueError: If neither or both of file_path and file_bytes are provided,
            or if file_bytes is provided without file_name
        UnsupportedFormatError: If the document type is not supported
        MalformedDocumentError: If a Word document cannot be read
        NoExtractableTextError: If no text could be extracted

    Examples:
        >>> result = parse_document(file_path="resume.pdf")
        >>> print(result.resume.email)

        >>> config = OCRConfig(languages="eng+fra")
        >>> with open("scan.png", "rb") as f:
        ...     result = parse_document(
        ...         file_bytes=f.read(),
        ...         file_name="scan.png",
        ...         mime_type="image/png",
        ...         ocr_config=config,
        ...     )
    """
    if file_path and file_bytes:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if not file_path and not file_bytes:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path:
        path = Path(file_path)
        if not path.exists():
            raise ValueError(f"File not found: {file_path}")

        file_bytes = path.read_bytes()
        file_name = path.name

    if not file_name:
        raise ValueError("file_name is required when using file_bytes")

    if not mime_type:
        mime_type = guess_mime_type(file_name) or ""

    handler = ResumeIngestHandler(ocr_config=ocr_config)
    return handler.ingest(file_bytes=file_bytes, mime_type=mime_type, file_name=file_name)


def parse_text(text: str) -> ParsedResume:
    """Parse resume fields from text the caller already has."""
    return parse_resume(text)


def recognize_image(
    image_bytes: bytes,
    language: Optional[str] = None,
    ocr_config: Optional[OCRConfig] = None,
    recognizer: Optional[ImageRecognizer] = None,
) -> str:
    """OCR a single image. Returns an empty string when nothing is recognized.

    Args:
        image_bytes: Encoded image bytes
        language: Tesseract language hint. Defaults to the configured languages.
        ocr_config: OCR configuration. If None, loaded from the environment.
        recognizer: Pre-built recognizer to reuse across calls. Without one,
            a recognizer is built from ocr_config, or shared when ocr_config is None.
    """
    if recognizer is None:
        recognizer = build_recognizer(ocr_config) if ocr_config else _default_recognizer()
    config = ocr_config or _default_config()
    return recognizer.recognize(image_bytes, language or config.languages)


@lru_cache(maxsize=1)
def _default_config() -> OCRConfig:
    return load_config()


@lru_cache(maxsize=1)
def _default_recognizer() -> ImageRecognizer:
    return build_recognizer(_default_config())
