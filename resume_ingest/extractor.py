"""Extraction orchestrator: native text first, Tesseract OCR as fallback."""

import contextvars
import threading
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Optional

from resume_ingest.config import OCRConfig, load_config
from resume_ingest.detector import DocumentDetector, DocumentFormat
from resume_ingest.exceptions import (
    IngestionCancelledError,
    MalformedDocumentError,
    NoExtractableTextError,
    RasterizationFailedError,
)
from resume_ingest.extractors import (
    DocxTextExtractor,
    ImageTextExtractor,
    LegacyDocExtractor,
    PdfTextExtractor,
    TextExtractor,
)
from resume_ingest.logger import Timer, get_logger
from resume_ingest.models import Document, ExtractionResult, PageImage, SourceStrategy
from resume_ingest.ocr import ImageRecognizer, build_recognizer
from resume_ingest.rasterizer import PageRasterizer

logger = get_logger(__name__)

CANCEL_POLL_SECONDS = 0.25


class DocumentExtractor:
    """Turns an uploaded PDF, Word document or image into plain text.

    PDFs go through PyMuPDF first. When the native text layer is nearly
    empty the PDF is treated as a scan: pages are rendered and OCR'd in
    parallel with Tesseract. Word documents are read natively and images
    are OCR'd directly.
    """

    def __init__(
        self,
        config: Optional[OCRConfig] = None,
        recognizer: Optional[ImageRecognizer] = None,
        rasterizer: Optional[PageRasterizer] = None,
        pdf_extractor: Optional[PdfTextExtractor] = None,
        word_extractors: Optional[dict[DocumentFormat, TextExtractor]] = None,
        detector: Optional[DocumentDetector] = None,
    ):
        """Initialize extractor with configuration and backends.

        Args:
            config: OCR configuration. If None, loaded from the environment.
            recognizer: OCR backend. If None, selected from config at startup.
            rasterizer: PDF page renderer. If None, creates default.
            pdf_extractor: Native PDF text extractor. If None, creates default.
            word_extractors: Extractors for DOCX/DOC. If None, creates defaults.
            detector: MIME type resolver. If None, creates default.
        """
        self.config = config or load_config()
        self.recognizer = recognizer or build_recognizer(self.config)
        self.rasterizer = rasterizer or PageRasterizer(self.config)
        self.pdf_extractor = pdf_extractor or PdfTextExtractor(self.config)
        self.word_extractors: dict[DocumentFormat, TextExtractor] = {
            DocumentFormat.DOCX: DocxTextExtractor(),
            DocumentFormat.DOC: LegacyDocExtractor(),
            **(word_extractors or {}),
        }
        self.detector = detector or DocumentDetector()
        self.image_extractor = ImageTextExtractor(self.recognizer, self.config.languages)

        logger.info(
            "Initializing DocumentExtractor",
            extra_data={
                "recognizer": type(self.recognizer).__name__,
                "languages": self.config.languages,
                "dpi": self.config.dpi,
                "max_workers": self.config.max_workers,
                "ocr_fallback_min_chars": self.config.ocr_fallback_min_chars,
            },
        )

    def extract(
        self, document: Document, cancel_event: Optional[threading.Event] = None
    ) -> ExtractionResult:
        """Extract plain text from a document.

        Args:
            document: Uploaded buffer with declared MIME type
            cancel_event: Optional event; once set, the call is abandoned

        Returns:
            ExtractionResult with non-empty text

        Raises:
            UnsupportedFormatError: If the MIME type is not supported
            MalformedDocumentError: If a Word document cannot be read
            NoExtractableTextError: If no strategy produced usable text
            IngestionCancelledError: If cancel_event was set
        """
        document_format = self.detector.resolve(document.mime_type, document.file_name)

        logger.debug(
            "Starting document extraction",
            extra_data={
                "file_name": document.file_name,
                "document_format": document_format.value,
                "file_size_bytes": len(document.data),
            },
        )

        with Timer("extraction") as timer:
            if document_format is DocumentFormat.PDF:
                text, strategy, page_count = self._extract_pdf(document, cancel_event)
            elif document_format is DocumentFormat.IMAGE:
                text = self.image_extractor.extract(document.data)
                strategy, page_count = SourceStrategy.OCR, 1
            else:
                text = self.word_extractors[document_format].extract(document.data)
                strategy, page_count = SourceStrategy.NATIVE, None

        self._check_cancelled(cancel_event)

        text = text.strip()
        if not text:
            logger.warning(
                "No text content extracted from document",
                extra_data={
                    "file_name": document.file_name,
                    "document_format": document_format.value,
                    "source_strategy": strategy.value,
                    "file_size_bytes": len(document.data),
                },
            )
            raise NoExtractableTextError(
                "Failed to extract text from the provided file. "
                "Please try a different file or enable OCR."
            )

        logger.info(
            "Successfully extracted text from document",
            extra_data={
                "file_name": document.file_name,
                "document_format": document_format.value,
                "source_strategy": strategy.value,
                "page_count": page_count,
                "character_count": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )

        return ExtractionResult(
            text=text,
            source_strategy=strategy,
            page_count=page_count,
            mime_type=document.mime_type,
            file_name=document.file_name,
        )

    def recognize_image(self, data: bytes, language: Optional[str] = None) -> str:
        """OCR a single image without the document pipeline. Never raises."""
        return self.recognizer.recognize(data, language or self.config.languages)

    def _extract_pdf(
        self, document: Document, cancel_event: Optional[threading.Event]
    ) -> tuple[str, SourceStrategy, Optional[int]]:
        page_count: Optional[int] = None
        try:
            pages = self.pdf_extractor.extract_pages(document.data)
            native_text = "\n".join(pages)
            page_count = len(pages)
        except MalformedDocumentError as exc:
            # Unreadable text layer is recoverable: the rasterizer may still cope
            logger.warning(
                "Native PDF extraction failed, treating as empty text",
                extra_data={"file_name": document.file_name, "error": str(exc)},
            )
            native_text = ""

        native_chars = len(native_text.strip())
        if native_chars >= self.config.ocr_fallback_min_chars:
            return native_text, SourceStrategy.NATIVE, page_count

        logger.info(
            "Triggering OCR fallback for PDF",
            extra_data={
                "file_name": document.file_name,
                "native_characters": native_chars,
                "threshold": self.config.ocr_fallback_min_chars,
                "page_count": page_count,
            },
        )

        try:
            page_images = self.rasterizer.rasterize(document.data)
        except RasterizationFailedError as exc:
            logger.warning(
                "PDF rasterization failed, keeping native text",
                extra_data={"file_name": document.file_name, "error": str(exc)},
            )
            return native_text, SourceStrategy.NATIVE, page_count

        with Timer("pdf_ocr") as ocr_timer:
            ocr_text, rendered = self._ocr_pages(page_images, document.file_name, cancel_event)

        logger.info(
            "OCR fallback completed",
            extra_data={
                "file_name": document.file_name,
                "pages_rendered": rendered,
                "characters_extracted": len(ocr_text),
                "ocr_time_ms": ocr_timer.get_elapsed_ms(),
            },
        )

        if not page_count:
            page_count = rendered
        if ocr_text:
            return ocr_text, SourceStrategy.OCR_FALLBACK, page_count
        return native_text, SourceStrategy.NATIVE, page_count

    def _ocr_pages(
        self,
        page_images: Iterable[PageImage],
        file_name: str,
        cancel_event: Optional[threading.Event],
    ) -> tuple[str, int]:
        """OCR rendered pages in parallel, joining results in page order.

        At most ``max_workers`` pages are rendered and waiting at any time.

        Returns:
            Tuple of (joined page text, number of pages rendered)
        """
        page_results: dict[int, str] = {}
        in_flight: set[Future] = set()
        rendered = 0

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers)
        try:
            for page in page_images:
                self._check_cancelled(cancel_event)
                rendered += 1
                context = contextvars.copy_context()
                in_flight.add(executor.submit(context.run, self._ocr_page, page, file_name))

                if len(in_flight) >= self.config.max_workers:
                    in_flight = self._collect(in_flight, page_results, cancel_event)

            while in_flight:
                in_flight = self._collect(in_flight, page_results, cancel_event)
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        finally:
            # Releases the PyMuPDF document if iteration stopped early
            close = getattr(page_images, "close", None)
            if close is not None:
                close()
        executor.shutdown(wait=True)

        texts = [page_results[index] for index in sorted(page_results) if page_results[index]]
        return "\n".join(texts), rendered

    def _collect(
        self,
        in_flight: set[Future],
        page_results: dict[int, str],
        cancel_event: Optional[threading.Event],
    ) -> set[Future]:
        """Wait for at least one page to finish and store its text."""
        while True:
            self._check_cancelled(cancel_event)
            done, pending = wait(
                in_flight,
                timeout=CANCEL_POLL_SECONDS if cancel_event is not None else None,
                return_when=FIRST_COMPLETED,
            )
            if done:
                break

        for future in done:
            index, text = future.result()
            page_results[index] = text
        return pending

    def _ocr_page(self, page: PageImage, file_name: str) -> tuple[int, str]:
        text = self.recognizer.recognize(page.pixels, self.config.languages).strip()
        logger.debug(
            f"OCR completed for page {page.index + 1}",
            extra_data={
                "file_name": file_name,
                "page_number": page.index + 1,
                "characters_extracted": len(text),
            },
        )
        return page.index, text

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Ingestion cancelled, discarding partial results")
            raise IngestionCancelledError("Ingestion was cancelled")
