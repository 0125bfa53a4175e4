"""Custom exceptions for resume ingestion."""


class ResumeIngestError(Exception):
    """Base exception for resume ingestion errors."""

    pass


class InvalidBase64Error(ResumeIngestError):
    """Raised when base64 decoding fails."""

    pass


class ExtractionError(ResumeIngestError):
    """Base for terminal text extraction failures surfaced to the caller."""

    pass


class UnsupportedFormatError(ExtractionError):
    """Raised when the declared MIME type is not a supported document format."""

    pass


class MalformedDocumentError(ExtractionError):
    """Raised when a document container cannot be read."""

    pass


class NoExtractableTextError(ExtractionError):
    """Raised when every extraction strategy produced no usable text."""

    pass


class RasterizationFailedError(ResumeIngestError):
    """Raised when a PDF cannot be opened for rendering.

    Always recovered by the orchestrator, never surfaced on its own.
    """

    pass


class IngestionCancelledError(ResumeIngestError):
    """Raised when the caller cancels an in-flight ingestion."""

    pass
