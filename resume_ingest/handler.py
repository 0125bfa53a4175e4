"""Resume ingestion orchestration: decode, extract, parse."""

import base64
import binascii
import re
import threading
from pathlib import PurePath
from typing import Optional

from resume_ingest.config import OCRConfig
from resume_ingest.exceptions import InvalidBase64Error
from resume_ingest.extractor import DocumentExtractor
from resume_ingest.fields import parse_resume
from resume_ingest.logger import Timer, get_logger, set_ingestion_id
from resume_ingest.models import Document, IngestionResult

logger = get_logger(__name__)

HEADLINE_MAX_CHARS = 1200
DEFAULT_HEADLINE = "Imported resume"
PARAGRAPH_BREAK = re.compile(r"\n{2,}")


def derive_title(file_name: str) -> str:
    """Use the original filename without its extension as the title."""
    name = PurePath(file_name or "").name
    stem = re.sub(r"\.[^/.]+$", "", name)
    return stem or name


def derive_headline(text: str) -> str:
    """First paragraph of the text, capped at HEADLINE_MAX_CHARS."""
    first_block = PARAGRAPH_BREAK.split(text.strip().replace("\r\n", "\n"), maxsplit=1)[0]
    return first_block[:HEADLINE_MAX_CHARS] or DEFAULT_HEADLINE


class ResumeIngestHandler:
    def __init__(
        self,
        extractor: Optional[DocumentExtractor] = None,
        ocr_config: Optional[OCRConfig] = None,
    ) -> None:
        """Initialize ingestion handler.

        Args:
            extractor: Document extractor. If None, creates default with ocr_config.
            ocr_config: OCR configuration for the extractor. Only used if extractor is None;
                loaded from the environment when both are None.
        """
        self.extractor = extractor or DocumentExtractor(config=ocr_config)

    def decode_file(self, encoded: str) -> bytes:
        """Decode base64-encoded file.

        Raises:
            InvalidBase64Error: If decoding fails
        """
        try:
            with Timer("base64_decode") as timer:
                decoded = base64.b64decode(encoded, validate=True)
        except (ValueError, TypeError, binascii.Error) as exc:
            logger.error(
                "Failed to decode base64 string",
                extra_data={
                    "error_type": type(exc).__name__,
                    "encoded_length": len(encoded) if encoded else 0,
                },
            )
            raise InvalidBase64Error("file_base64 must be a valid base64 string") from exc

        logger.debug(
            "Successfully decoded base64 file",
            extra_data={
                "decoded_size_bytes": len(decoded),
                "decode_time_ms": timer.get_elapsed_ms(),
            },
        )
        return decoded

    def ingest(
        self,
        file_bytes: bytes,
        mime_type: str,
        file_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> IngestionResult:
        """Extract text from an uploaded document and parse resume fields.

        Args:
            file_bytes: Raw file content
            mime_type: Declared MIME type
            file_name: Original filename
            cancel_event: Optional event; once set, the call is abandoned

        Returns:
            IngestionResult with extraction metadata, parsed fields, title and headline

        Raises:
            UnsupportedFormatError: If the MIME type is not supported
            MalformedDocumentError: If a Word document cannot be read
            NoExtractableTextError: If no strategy produced usable text
            IngestionCancelledError: If cancel_event was set
        """
        set_ingestion_id()
        logger.info(
            "Processing uploaded file",
            extra_data={
                "file_name": file_name,
                "mime_type": mime_type,
                "file_size_bytes": len(file_bytes),
            },
        )

        document = Document(data=file_bytes, mime_type=mime_type, file_name=file_name)
        with Timer("ingestion") as timer:
            extraction = self.extractor.extract(document, cancel_event=cancel_event)
            resume = parse_resume(extraction.text)

        result = IngestionResult(
            extraction=extraction,
            resume=resume,
            title=derive_title(file_name),
            headline=derive_headline(extraction.text),
        )

        logger.info(
            "Resume ingestion completed",
            extra_data={
                "file_name": file_name,
                "source_strategy": extraction.source_strategy.value,
                "character_count": extraction.character_count,
                "skill_count": len(resume.skills),
                "experience_count": len(resume.experience),
                "education_count": len(resume.education),
                "ingestion_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result

    def ingest_base64(
        self,
        encoded: str,
        mime_type: str,
        file_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> IngestionResult:
        """Decode a base64 upload and ingest it.

        Raises:
            InvalidBase64Error: If base64 decoding fails
            ExtractionError: See ingest()
        """
        return self.ingest(self.decode_file(encoded), mime_type, file_name, cancel_event)
