import base64
from unittest.mock import patch

import pytest

from conftest import FakeRasterizer, FakeRecognizer, make_docx, make_pdf, retype_docx
from resume_ingest import parser
from resume_ingest.config import OCRConfig
from resume_ingest.exceptions import (
    InvalidBase64Error,
    NoExtractableTextError,
    UnsupportedFormatError,
)
from resume_ingest.extractor import DocumentExtractor
from resume_ingest.handler import ResumeIngestHandler, derive_headline, derive_title
from resume_ingest.models import EducationEntry, ExperienceEntry, SourceStrategy
from resume_ingest.parser import parse_document, parse_text, recognize_image

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

RESUME_PARAGRAPHS = [
    "Jane Doe",
    "jane.doe@example.com",
    "Skills: Python, SQL, Docker",
    "Experience",
    "Data Engineer - Acme Corp (2019-2023)",
    "Education",
    "BSc Mathematics - Oxford (2018)",
]


@pytest.fixture
def handler():
    extractor = DocumentExtractor(
        config=OCRConfig(max_workers=2),
        recognizer=FakeRecognizer(default="Scanned Person\nscan@example.org"),
        rasterizer=FakeRasterizer(page_count=1),
    )
    return ResumeIngestHandler(extractor=extractor)


def test_derive_title():
    assert derive_title("resume.pdf") == "resume"
    assert derive_title("my.cv.final.docx") == "my.cv.final"
    assert derive_title("uploads/scan.png") == "scan"
    assert derive_title("README") == "README"
    assert derive_title(".profile") == ".profile"


def test_derive_headline():
    assert derive_headline("  Jane Doe\nEngineer\n\nExperience\n...") == "Jane Doe\nEngineer"
    assert derive_headline("Jane\r\n\r\nDoe") == "Jane"
    assert derive_headline("x" * 5000) == "x" * 1200
    assert derive_headline("   ") == "Imported resume"


def test_ingest_docx(handler):
    result = handler.ingest(make_docx(RESUME_PARAGRAPHS), DOCX_MIME, "Jane Doe CV.docx")

    assert result.title == "Jane Doe CV"
    assert result.extraction.source_strategy is SourceStrategy.NATIVE
    assert result.resume.raw == result.extraction.text
    assert result.resume.name == "Jane Doe"
    assert result.resume.email == "jane.doe@example.com"
    assert result.resume.skills == ("Python", "SQL", "Docker")
    assert result.resume.experience == (
        ExperienceEntry(title="Data Engineer", company="Acme Corp", date_range="2019-2023"),
    )
    assert result.resume.education == (
        EducationEntry(degree="BSc Mathematics", institution="Oxford", date_range="2018"),
    )


def test_ingest_macro_enabled_docx(handler):
    data = retype_docx(
        make_docx(RESUME_PARAGRAPHS), "application/vnd.ms-word.document.macroEnabled.main+xml"
    )

    result = handler.ingest(data, "application/vnd.ms-word.document.macroEnabled.12", "cv.docm")

    assert result.title == "cv"
    assert result.resume.email == "jane.doe@example.com"


def test_ingest_scanned_pdf(handler):
    result = handler.ingest(make_pdf([""]), "application/pdf", "scan.pdf")

    assert result.extraction.source_strategy is SourceStrategy.OCR_FALLBACK
    assert result.resume.name == "Scanned Person"
    assert result.resume.email == "scan@example.org"
    assert result.headline == "Scanned Person\nscan@example.org"


def test_ingest_image(handler):
    result = handler.ingest(b"\x89PNG...", "image/png", "photo.png")

    assert result.extraction.source_strategy is SourceStrategy.OCR
    assert result.resume.name == "Scanned Person"


def test_ingest_errors_propagate(handler):
    with pytest.raises(UnsupportedFormatError):
        handler.ingest(b"hello", "text/plain", "notes.txt")

    with pytest.raises(NoExtractableTextError):
        handler.ingest(make_docx([""]), DOCX_MIME, "empty.docx")


def test_ingest_base64(handler):
    encoded = base64.b64encode(make_docx(RESUME_PARAGRAPHS)).decode("ascii")

    result = handler.ingest_base64(encoded, DOCX_MIME, "cv.docx")

    assert result.resume.name == "Jane Doe"


@pytest.mark.parametrize("encoded", ["not base64!!", "abc"])
def test_invalid_base64(handler, encoded):
    with pytest.raises(InvalidBase64Error):
        handler.ingest_base64(encoded, DOCX_MIME, "cv.docx")


class TestHighLevelApi:
    def test_requires_exactly_one_source(self):
        with pytest.raises(ValueError):
            parse_document()
        with pytest.raises(ValueError):
            parse_document(file_path="cv.pdf", file_bytes=b"%PDF")

    def test_bytes_need_a_file_name(self):
        with pytest.raises(ValueError):
            parse_document(file_bytes=b"%PDF")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            parse_document(file_path=str(tmp_path / "missing.pdf"))

    def test_file_path_guesses_mime_type(self, tmp_path):
        path = tmp_path / "jane.docx"
        path.write_bytes(make_docx(RESUME_PARAGRAPHS))

        result = parse_document(file_path=str(path), ocr_config=OCRConfig(ocr_enabled=False))

        assert result.title == "jane"
        assert result.resume.email == "jane.doe@example.com"

    def test_text_pdf_from_bytes(self):
        data = make_pdf(["Jane Doe\njane.doe@example.com\nSkills: Go, Rust"])

        result = parse_document(
            file_bytes=data,
            file_name="jane.pdf",
            ocr_config=OCRConfig(ocr_enabled=False),
        )

        assert result.extraction.source_strategy is SourceStrategy.NATIVE
        assert result.resume.name == "Jane Doe"
        assert result.resume.skills == ("Go", "Rust")

    def test_parse_text_skips_extraction(self):
        resume = parse_text("John Smith\nSoftware Engineer")
        assert resume.name == "John Smith"
        assert resume.raw == "John Smith\nSoftware Engineer"

    def test_recognize_image_with_ocr_disabled(self):
        assert recognize_image(b"\x89PNG", ocr_config=OCRConfig(ocr_enabled=False)) == ""

    def test_recognize_image_with_injected_recognizer(self):
        recognizer = FakeRecognizer(default="Jane Doe")

        assert recognize_image(b"png", language="deu", recognizer=recognizer) == "Jane Doe"
        assert recognizer.calls == [(b"png", "deu")]

    def test_recognize_image_builds_default_recognizer_once(self):
        parser._default_config.cache_clear()
        parser._default_recognizer.cache_clear()
        try:
            with patch(
                "resume_ingest.parser.build_recognizer",
                return_value=FakeRecognizer(default="Jane Doe"),
            ) as build:
                assert recognize_image(b"one") == "Jane Doe"
                assert recognize_image(b"two") == "Jane Doe"

            build.assert_called_once()
        finally:
            parser._default_config.cache_clear()
            parser._default_recognizer.cache_clear()
