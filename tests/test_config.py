import logging

import pytest

from resume_ingest.config import IngestSettings, OCRConfig, configure_logging, load_config
from resume_ingest.extractor import DocumentExtractor
from resume_ingest.ocr import NullRecognizer


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def test_defaults():
    config = OCRConfig()

    assert config.languages == "eng"
    assert config.dpi == 100
    assert (config.max_width, config.max_height) == (2000, 2000)
    assert config.ocr_fallback_min_chars == 20
    assert 1 <= config.max_workers <= 4
    assert config.tesseract_flags == "--oem 1 --psm 6"


def test_load_config_from_environment(monkeypatch):
    monkeypatch.setenv("RESUME_INGEST_OCR_LANGUAGES", "eng+fra")
    monkeypatch.setenv("RESUME_INGEST_OCR_ENABLED", "false")
    monkeypatch.setenv("RESUME_INGEST_OCR_WORKERS", "3")
    monkeypatch.setenv("RESUME_INGEST_OCR_FALLBACK_MIN_CHARS", "50")
    monkeypatch.setenv("RESUME_INGEST_PDF_MARKDOWN", "true")

    config = load_config(IngestSettings(_env_file=None))

    assert config.languages == "eng+fra"
    assert config.ocr_enabled is False
    assert config.max_workers == 3
    assert config.ocr_fallback_min_chars == 50
    assert config.pdf_markdown is True
    # rendering stays fixed
    assert config.dpi == 100


def test_worker_count_is_at_least_one():
    config = IngestSettings(_env_file=None, ocr_workers=0).to_ocr_config()
    assert config.max_workers == 1


def test_default_extractor_reads_environment(monkeypatch):
    monkeypatch.setenv("RESUME_INGEST_OCR_FALLBACK_MIN_CHARS", "500")
    monkeypatch.setenv("RESUME_INGEST_OCR_LANGUAGES", "deu")

    extractor = DocumentExtractor(recognizer=NullRecognizer())

    assert (extractor.config.ocr_fallback_min_chars, extractor.config.languages) == (500, "deu")
    assert extractor.image_extractor.language == "deu"


def test_explicit_config_wins_over_environment(monkeypatch):
    monkeypatch.setenv("RESUME_INGEST_OCR_LANGUAGES", "deu")

    extractor = DocumentExtractor(config=OCRConfig(), recognizer=NullRecognizer())

    assert extractor.config.languages == "eng"


def test_configure_logging_uses_log_level(monkeypatch, restore_root_logger):
    monkeypatch.setenv("RESUME_INGEST_LOG_LEVEL", "debug")

    configure_logging(IngestSettings(_env_file=None))

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
