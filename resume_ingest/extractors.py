"""Format-specific text extractors.

PyMuPDF for native PDF text (optionally Markdown via pymupdf4llm),
python-docx for DOCX, system converters for legacy .doc and the configured
image recognizer for raster images.
"""

import io
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Protocol

import fitz  # PyMuPDF
import pymupdf4llm
from docx import Document as DocxDocument

from resume_ingest.config import OCRConfig
from resume_ingest.exceptions import MalformedDocumentError
from resume_ingest.logger import Timer, get_logger
from resume_ingest.ocr import ImageRecognizer

logger = get_logger(__name__)

CONVERTER_TIMEOUT_SECONDS = 60

CONTENT_TYPES_PART = "[Content_Types].xml"
WORD_DOCUMENT_MAIN = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"
)
# Main-part types of templates and macro-enabled files; python-docx only opens WORD_DOCUMENT_MAIN
WORD_VARIANT_MAIN_TYPES = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.template.main+xml",
    "application/vnd.ms-word.document.macroEnabled.main+xml",
    "application/vnd.ms-word.template.macroEnabledTemplate.main+xml",
)


class TextExtractor(Protocol):
    def extract(self, data: bytes) -> str:
        ...


class PdfTextExtractor:
    """Pulls the embedded text layer out of a PDF, page by page."""

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

    def extract(self, data: bytes) -> str:
        return "\n".join(self.extract_pages(data))

    def extract_pages(self, data: bytes) -> list[str]:
        """Extract native text for every page.

        Raises:
            MalformedDocumentError: If the PDF cannot be opened, is encrypted or has no pages
        """
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise MalformedDocumentError(f"Cannot open PDF: {exc}") from exc

        try:
            if pdf_document.needs_pass:
                raise MalformedDocumentError("PDF is encrypted")
            if pdf_document.page_count == 0:
                raise MalformedDocumentError("PDF has no pages")

            with Timer("pdf_native_extraction") as timer:
                try:
                    if self.config.pdf_markdown:
                        pages = self._markdown_pages(pdf_document)
                    else:
                        pages = [page.get_text("text") for page in pdf_document]
                except Exception as exc:
                    raise MalformedDocumentError(f"Cannot read PDF text: {exc}") from exc

            logger.debug(
                "PDF native text extraction completed",
                extra_data={
                    "page_count": len(pages),
                    "characters_extracted": sum(len(page.strip()) for page in pages),
                    "markdown": self.config.pdf_markdown,
                    "extraction_time_ms": timer.get_elapsed_ms(),
                },
            )
            return pages
        finally:
            pdf_document.close()

    @staticmethod
    def _markdown_pages(pdf_document: fitz.Document) -> list[str]:
        chunks = pymupdf4llm.to_markdown(
            pdf_document,
            page_chunks=True,
            table_strategy="lines_strict",
            force_text=True,
            write_images=False,
            ignore_images=True,
            fontsize_limit=3,
        )
        return [chunk.get("text", "") for chunk in chunks]


def as_word_document_package(data: bytes) -> bytes:
    """Retype a template or macro-enabled package as a plain Word document.

    Only the main-part override in ``[Content_Types].xml`` changes; every
    other part is copied as is. Plain documents are returned untouched.
    """
    with zipfile.ZipFile(io.BytesIO(data)) as source:
        content_types = source.read(CONTENT_TYPES_PART)
        retyped = content_types
        for variant in WORD_VARIANT_MAIN_TYPES:
            retyped = retyped.replace(variant.encode(), WORD_DOCUMENT_MAIN.encode())
        if retyped == content_types:
            return data

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
            for item in source.infolist():
                if item.filename == CONTENT_TYPES_PART:
                    target.writestr(item, retyped)
                else:
                    target.writestr(item, source.read(item.filename))

    logger.debug("Retyped Word template or macro-enabled package as a document")
    return buffer.getvalue()


class DocxTextExtractor:
    """Reads paragraphs and tables from a DOCX container with python-docx."""

    def extract(self, data: bytes) -> str:
        """Extract text from DOCX bytes.

        Raises:
            MalformedDocumentError: If the container cannot be read
        """
        try:
            with Timer("docx_extraction") as timer:
                doc = DocxDocument(io.BytesIO(as_word_document_package(data)))
                paragraphs = [para.text.strip() for para in doc.paragraphs]
                paragraphs = [text for text in paragraphs if text]

                table_rows = []
                for table in doc.tables:
                    for row in table.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        if any(cells):
                            table_rows.append(" | ".join(cells))
        except Exception as exc:
            logger.error(
                "DOCX container could not be read",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            raise MalformedDocumentError(
                "Failed to parse Word document. Please ensure it's a valid .docx file."
            ) from exc

        result = "\n".join(paragraphs + table_rows)

        logger.debug(
            "DOCX extraction completed",
            extra_data={
                "paragraph_count": len(paragraphs),
                "table_row_count": len(table_rows),
                "characters_extracted": len(result),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result


class LegacyDocExtractor:
    """Converts legacy binary .doc files to text with textutil or LibreOffice."""

    def extract(self, data: bytes) -> str:
        """Extract text from .doc bytes.

        Raises:
            MalformedDocumentError: If no available converter can read the file
        """
        with tempfile.TemporaryDirectory() as tmp_dir:
            doc_path = Path(tmp_dir) / "document.doc"
            doc_path.write_bytes(data)

            if shutil.which("textutil"):
                text = self._run_textutil(doc_path)
                if text:
                    return text

            soffice = shutil.which("soffice") or shutil.which("libreoffice")
            if soffice:
                text = self._run_soffice(soffice, doc_path, Path(tmp_dir))
                if text:
                    return text

        raise MalformedDocumentError(
            "Failed to extract .doc file. Install textutil (macOS) or LibreOffice, or convert to DOCX."
        )

    @staticmethod
    def _run_textutil(doc_path: Path) -> str:
        with Timer("doc_textutil") as timer:
            try:
                result = subprocess.run(
                    ["textutil", "-convert", "txt", str(doc_path), "-stdout"],
                    capture_output=True,
                    text=True,
                    timeout=CONVERTER_TIMEOUT_SECONDS,
                )
            except subprocess.TimeoutExpired:
                logger.warning("textutil conversion timed out")
                return ""

        text = result.stdout.strip() if result.returncode == 0 else ""
        logger.info(
            "DOC conversion via textutil finished",
            extra_data={
                "return_code": result.returncode,
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text

    @staticmethod
    def _run_soffice(soffice: str, doc_path: Path, out_dir: Path) -> str:
        with Timer("doc_soffice") as timer:
            try:
                conversion = subprocess.run(
                    [
                        soffice,
                        "--headless",
                        "--convert-to",
                        "txt:Text",
                        str(doc_path),
                        "--outdir",
                        str(out_dir),
                    ],
                    capture_output=True,
                    text=True,
                    timeout=CONVERTER_TIMEOUT_SECONDS,
                )
            except subprocess.TimeoutExpired:
                logger.warning("soffice conversion timed out")
                return ""

        out_path = out_dir / f"{doc_path.stem}.txt"
        if conversion.returncode != 0 or not out_path.exists():
            logger.warning(
                "DOC conversion via soffice failed",
                extra_data={"return_code": conversion.returncode},
            )
            return ""

        text = out_path.read_text(encoding="utf-8", errors="ignore").strip()
        logger.info(
            "DOC conversion via soffice finished",
            extra_data={
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text


class ImageTextExtractor:
    """OCR is the only strategy for raster images."""

    def __init__(self, recognizer: ImageRecognizer, language: Optional[str] = None):
        self.recognizer = recognizer
        self.language = language

    def extract(self, data: bytes) -> str:
        return self.recognizer.recognize(data, self.language)
