"""Document format resolution from declared MIME types."""

import mimetypes
from enum import Enum
from typing import Optional

from resume_ingest.exceptions import UnsupportedFormatError
from resume_ingest.logger import get_logger

logger = get_logger(__name__)


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    DOC = "doc"
    IMAGE = "image"


PDF_MIME_TYPE = "application/pdf"
DOC_MIME_TYPE = "application/msword"
DOCX_MIME_TYPES = frozenset(
    {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.template",
        "application/vnd.ms-word.document.macroenabled.12",
        "application/vnd.ms-word.template.macroenabled.12",
    }
)

# Not every platform's mime.types knows the OOXML extensions
mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx"
)
mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.wordprocessingml.template", ".dotx"
)


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lower-case a MIME type and drop any ``; parameter`` suffix."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def guess_mime_type(file_name: str) -> Optional[str]:
    """Guess a MIME type from a file name's extension."""
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed


class DocumentDetector:
    """Resolves the declared MIME type to a supported DocumentFormat."""

    def resolve(self, mime_type: str, file_name: str = "") -> DocumentFormat:
        """Resolve a declared MIME type.

        Args:
            mime_type: MIME type declared by the uploader
            file_name: Original filename (logging only)

        Returns:
            The matching DocumentFormat

        Raises:
            UnsupportedFormatError: If the MIME type is not PDF, Word or image
        """
        normalized = normalize_mime_type(mime_type)
        document_format = self._lookup(normalized)

        if document_format is None:
            logger.warning(
                "Unsupported MIME type declared",
                extra_data={"file_name": file_name, "mime_type": mime_type},
            )
            raise UnsupportedFormatError(f"Unsupported mime type: {mime_type or '<empty>'}")

        logger.debug(
            "Document format resolved",
            extra_data={
                "file_name": file_name,
                "mime_type": normalized,
                "document_format": document_format.value,
            },
        )
        return document_format

    @staticmethod
    def _lookup(mime_type: str) -> Optional[DocumentFormat]:
        if mime_type == PDF_MIME_TYPE:
            return DocumentFormat.PDF
        if mime_type in DOCX_MIME_TYPES:
            return DocumentFormat.DOCX
        if mime_type == DOC_MIME_TYPE:
            return DocumentFormat.DOC
        if mime_type.startswith("image/") and len(mime_type) > len("image/"):
            return DocumentFormat.IMAGE
        return None
