"""Data models for resume ingestion."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class SourceStrategy(str, Enum):
    """How the final text of an ExtractionResult was obtained."""

    NATIVE = "native"
    OCR = "ocr"
    OCR_FALLBACK = "ocr-fallback"


@dataclass(frozen=True)
class Document:
    """Uploaded file buffer with its declared MIME type."""

    data: bytes
    mime_type: str
    file_name: str


@dataclass(frozen=True)
class ExtractionResult:
    """Result of document text extraction."""

    text: str
    source_strategy: SourceStrategy
    page_count: Optional[int] = None
    mime_type: str = ""
    file_name: str = ""

    @property
    def character_count(self) -> int:
        return len(self.text)

    @property
    def ocr_used(self) -> bool:
        return self.source_strategy is not SourceStrategy.NATIVE


@dataclass(frozen=True)
class PageImage:
    """A single rendered PDF page; pixels are PNG-encoded."""

    index: int
    pixels: bytes


@dataclass(frozen=True)
class ExperienceEntry:
    title: Optional[str] = None
    company: Optional[str] = None
    date_range: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "title": self.title,
                "company": self.company,
                "dateRange": self.date_range,
                "description": self.description,
            }
        )


@dataclass(frozen=True)
class EducationEntry:
    degree: Optional[str] = None
    institution: Optional[str] = None
    date_range: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "degree": self.degree,
                "institution": self.institution,
                "dateRange": self.date_range,
            }
        )


@dataclass(frozen=True)
class ParsedResume:
    """Best-effort structured fields recognized in resume text.

    ``raw`` is always the exact text handed to the parser.
    """

    raw: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: tuple[str, ...] = ()
    experience: tuple[ExperienceEntry, ...] = ()
    education: tuple[EducationEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict, omitting absent optional fields."""
        data = _compact({"name": self.name, "email": self.email, "phone": self.phone})
        data["skills"] = list(self.skills)
        data["experience"] = [entry.to_dict() for entry in self.experience]
        data["education"] = [entry.to_dict() for entry in self.education]
        data["raw"] = self.raw
        return data


@dataclass(frozen=True)
class IngestionResult:
    """Extraction plus parsing outcome of one uploaded document."""

    extraction: ExtractionResult
    resume: ParsedResume
    title: str
    headline: str


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}
