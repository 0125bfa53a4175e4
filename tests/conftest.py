"""
Pytest configuration and fixtures for resume ingestion tests.
"""
import io
import threading
import time
import zipfile

import fitz
import pytest
from docx import Document as DocxDocument
from PIL import Image

from resume_ingest.config import OCRConfig
from resume_ingest.detector import DocumentFormat
from resume_ingest.exceptions import MalformedDocumentError, RasterizationFailedError
from resume_ingest.extractor import DocumentExtractor
from resume_ingest.models import PageImage


class FakeRecognizer:
    """Returns canned text per image buffer and records every call."""

    def __init__(self, responses=None, default="", delays=None):
        self.responses = responses or {}
        self.default = default
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def recognize(self, image, language=None):
        with self._lock:
            self.calls.append((image, language))
        delay = self.delays.get(image)
        if delay:
            time.sleep(delay)
        return self.responses.get(image, self.default)


class FakeRasterizer:
    """Yields PageImages whose pixels are b"img<index>"."""

    def __init__(self, page_count=0, error=None):
        self.page_count = page_count
        self.error = error
        self.calls = 0

    def rasterize(self, pdf_bytes):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return iter(
            [PageImage(index=i, pixels=f"img{i}".encode()) for i in range(self.page_count)]
        )


class FakePdfExtractor:
    def __init__(self, pages=None, error=None):
        self.pages = pages if pages is not None else []
        self.error = error

    def extract_pages(self, data):
        if self.error is not None:
            raise self.error
        return list(self.pages)


class FakeWordExtractor:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error

    def extract(self, data):
        if self.error is not None:
            raise self.error
        return self.text


def make_pdf(pages):
    """Build a PDF in memory; each item is the text of one page ("" for blank)."""
    pdf = fitz.open()
    for text in pages:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = pdf.tobytes()
    pdf.close()
    return data


def make_docx(paragraphs, table_rows=None):
    doc = DocxDocument()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row, values in zip(table.rows, table_rows):
            for cell, value in zip(row.cells, values):
                cell.text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def retype_docx(data, main_content_type):
    """Rewrite a DOCX package so its main part declares another Word content type."""
    source = zipfile.ZipFile(io.BytesIO(data))
    buffer = io.BytesIO()
    with source, zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            payload = source.read(item.filename)
            if item.filename == "[Content_Types].xml":
                payload = payload.replace(
                    b"application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml",
                    main_content_type.encode(),
                )
            target.writestr(item, payload)
    return buffer.getvalue()


def make_png(size=(60, 30), color="white"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def ocr_config():
    return OCRConfig(max_workers=2)


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def rasterizer():
    return FakeRasterizer()


@pytest.fixture
def build_extractor(ocr_config):
    """Factory for DocumentExtractor wired with fakes."""

    def _build(
        recognizer=None,
        rasterizer=None,
        pdf_extractor=None,
        word_text="",
        word_error=None,
        config=None,
    ):
        return DocumentExtractor(
            config=config or ocr_config,
            recognizer=recognizer or FakeRecognizer(),
            rasterizer=rasterizer or FakeRasterizer(),
            pdf_extractor=pdf_extractor or FakePdfExtractor(),
            word_extractors={
                DocumentFormat.DOCX: FakeWordExtractor(text=word_text, error=word_error),
                DocumentFormat.DOC: FakeWordExtractor(text=word_text, error=word_error),
            },
        )

    return _build


@pytest.fixture
def malformed_error():
    return MalformedDocumentError("broken container")


@pytest.fixture
def rasterization_error():
    return RasterizationFailedError("cannot open")
