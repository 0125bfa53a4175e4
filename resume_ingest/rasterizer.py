"""PDF page rendering for the OCR fallback."""

from collections.abc import Iterator
from typing import Optional

import fitz  # PyMuPDF

from resume_ingest.config import OCRConfig
from resume_ingest.exceptions import RasterizationFailedError
from resume_ingest.logger import get_logger
from resume_ingest.models import PageImage

logger = get_logger(__name__)

PDF_POINTS_PER_INCH = 72


class PageRasterizer:
    """Renders PDF pages to PNG images at a fixed resolution."""

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

    def rasterize(self, pdf_bytes: bytes) -> Iterator[PageImage]:
        """Render every page of a PDF, in document order.

        The document is opened eagerly so an unreadable buffer fails here,
        while pages are rendered lazily one at a time as the iterator is
        consumed. The iterator is single-use.

        Args:
            pdf_bytes: Raw PDF bytes

        Returns:
            Iterator of PageImage, possibly empty

        Raises:
            RasterizationFailedError: If the PDF cannot be opened or is encrypted
        """
        try:
            pdf_document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as exc:
            raise RasterizationFailedError(f"Cannot open PDF for rendering: {exc}") from exc

        if pdf_document.needs_pass:
            pdf_document.close()
            raise RasterizationFailedError("Cannot render an encrypted PDF")

        logger.debug(
            "Opened PDF for rasterization",
            extra_data={
                "page_count": pdf_document.page_count,
                "dpi": self.config.dpi,
                "max_dimensions": f"{self.config.max_width}x{self.config.max_height}",
            },
        )
        return self._render_pages(pdf_document)

    def _render_pages(self, pdf_document: fitz.Document) -> Iterator[PageImage]:
        try:
            for page in pdf_document:
                try:
                    pix = page.get_pixmap(matrix=self._page_matrix(page.rect), alpha=False)
                    pixels = pix.tobytes("png")
                except Exception as exc:
                    logger.error(
                        f"Rendering failed for page {page.number + 1}, skipping",
                        extra_data={
                            "page_number": page.number + 1,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )
                    continue
                yield PageImage(index=page.number, pixels=pixels)
        finally:
            pdf_document.close()

    def _page_matrix(self, rect: fitz.Rect) -> fitz.Matrix:
        """Scale for the configured DPI, shrunk to fit the maximum dimensions."""
        zoom = self.config.dpi / PDF_POINTS_PER_INCH
        if rect.width > 0 and rect.height > 0:
            zoom = min(
                zoom,
                self.config.max_width / rect.width,
                self.config.max_height / rect.height,
            )
        return fitz.Matrix(zoom, zoom)
