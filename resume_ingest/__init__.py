"""Resume ingestion: document text extraction with OCR fallback and field parsing."""

from resume_ingest.config import IngestSettings, OCRConfig, configure_logging, load_config
from resume_ingest.detector import DocumentDetector, DocumentFormat
from resume_ingest.exceptions import (
    ExtractionError,
    IngestionCancelledError,
    InvalidBase64Error,
    MalformedDocumentError,
    NoExtractableTextError,
    RasterizationFailedError,
    ResumeIngestError,
    UnsupportedFormatError,
)
from resume_ingest.extractor import DocumentExtractor
from resume_ingest.fields import parse_resume
from resume_ingest.handler import ResumeIngestHandler
from resume_ingest.models import (
    Document,
    EducationEntry,
    ExperienceEntry,
    ExtractionResult,
    IngestionResult,
    PageImage,
    ParsedResume,
    SourceStrategy,
)
from resume_ingest.ocr import NullRecognizer, TesseractRecognizer, build_recognizer
from resume_ingest.parser import parse_document, parse_text, recognize_image
from resume_ingest.rasterizer import PageRasterizer

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "parse_document",
    "parse_text",
    "parse_resume",
    "recognize_image",
    # Core classes
    "ResumeIngestHandler",
    "DocumentExtractor",
    "DocumentDetector",
    "PageRasterizer",
    "TesseractRecognizer",
    "NullRecognizer",
    "build_recognizer",
    # Data models
    "Document",
    "DocumentFormat",
    "ExtractionResult",
    "SourceStrategy",
    "PageImage",
    "ParsedResume",
    "ExperienceEntry",
    "EducationEntry",
    "IngestionResult",
    # Configuration
    "OCRConfig",
    "IngestSettings",
    "load_config",
    "configure_logging",
    # Exceptions
    "ResumeIngestError",
    "InvalidBase64Error",
    "ExtractionError",
    "UnsupportedFormatError",
    "MalformedDocumentError",
    "NoExtractableTextError",
    "RasterizationFailedError",
    "IngestionCancelledError",
]
