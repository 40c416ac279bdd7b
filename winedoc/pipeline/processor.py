"""End-to-end processing of label and receipt images.

Validates the image reference, obtains OCR text through the cache or the
text source, classifies it and hands it to the matching extractor.
"""

import uuid
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

from winedoc.cache.content_cache import ContentCache
from winedoc.cache.keys import is_remote
from winedoc.classification.classifier import DocumentClassifier, DocumentType
from winedoc.classification.policy import get_policy
from winedoc.extraction.label_extractor import LabelExtractor
from winedoc.extraction.receipt_extractor import ReceiptExtractor
from winedoc.ocr.mock_source import MockTextSource
from winedoc.ocr.tesseract_engine import TesseractEngine
from winedoc.utils.config import AppConfig
from winedoc.utils.errors import (
    InputError,
    UpstreamError,
    UpstreamErrorKind,
    map_upstream_error,
)
from winedoc.utils.logger import get_logger, mask_path

from .results import Document, LabelDocument, PipelineResult, ReceiptDocument, UnknownDocument

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"})


class TextSource(Protocol):
    """Anything that turns an image reference into OCR text."""

    def extract_text(self, image_ref: str) -> str: ...


def validate_image_ref(image_ref: str) -> None:
    """Check that an image reference can be processed.

    Args:
        image_ref: Local path or URL of an image.

    Raises:
        InputError: If the reference is empty or not a supported image type.
        UpstreamError: If a local file does not exist.
    """
    if not image_ref or not image_ref.strip():
        raise InputError("Image reference must not be empty")

    path = urlparse(image_ref).path if is_remote(image_ref) else image_ref
    extension = Path(path).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise InputError(
            f"Unsupported image format '{extension or '(none)'}'. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )

    if not is_remote(image_ref) and not Path(image_ref).exists():
        raise UpstreamError(UpstreamErrorKind.NOT_FOUND, image_ref)


class DocumentPipeline:
    """Turns a label or receipt photo into structured fields.

    Args:
        text_source: OCR text provider.
        cache: Optional OCR text cache; used only while enabled.
        classifier: Document classifier.
        label_extractor: Wine label field extractor.
        receipt_extractor: Receipt field extractor.
    """

    def __init__(
        self,
        text_source: TextSource,
        cache: ContentCache | None = None,
        classifier: DocumentClassifier | None = None,
        label_extractor: LabelExtractor | None = None,
        receipt_extractor: ReceiptExtractor | None = None,
    ) -> None:
        self.text_source = text_source
        self.cache = cache
        self.classifier = classifier or DocumentClassifier()
        self.label_extractor = label_extractor or LabelExtractor()
        self.receipt_extractor = receipt_extractor or ReceiptExtractor()

    @property
    def cache_enabled(self) -> bool:
        return self.cache is not None and self.cache.config.enabled

    def _acquire_text(self, image_ref: str, request_id: str) -> tuple[str, bool]:
        key = None
        if self.cache_enabled:
            key = self.cache.compute_key(image_ref)
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("[%s] Using cached OCR text", request_id)
                return cached, True

        try:
            text = self.text_source.extract_text(image_ref) or ""
        except InputError:
            raise
        except Exception as exc:
            error = map_upstream_error(exc, image_ref)
            logger.error(
                "[%s] Text extraction failed for %s: %s (%s)",
                request_id,
                mask_path(image_ref),
                error.kind,
                error.detail,
            )
            raise error from exc

        if key is not None:
            self.cache.set(key, text)
        return text, False

    def _extract(self, doc_type: DocumentType, text: str) -> Document:
        if doc_type == DocumentType.WINE_LABEL:
            return LabelDocument(self.label_extractor.extract(text))
        if doc_type == DocumentType.RECEIPT:
            return ReceiptDocument(self.receipt_extractor.extract(text))
        return UnknownDocument()

    @staticmethod
    def _empty_document(doc_type: DocumentType) -> Document:
        if doc_type == DocumentType.WINE_LABEL:
            return LabelDocument()
        if doc_type == DocumentType.RECEIPT:
            return ReceiptDocument()
        return UnknownDocument()

    def process(self, image_ref: str) -> PipelineResult:
        """Process one image.

        Args:
            image_ref: Local path or ``http(s)`` URL of an image.

        Returns:
            The classified document with its extracted fields. Extraction
            failures are reported in ``error`` instead of being raised.

        Raises:
            InputError: If the reference is not a supported image.
            UpstreamError: If the image is missing or OCR fails.
        """
        request_id = uuid.uuid4().hex[:8]
        validate_image_ref(image_ref)
        logger.info("[%s] Processing image %s", request_id, mask_path(image_ref))

        text, cached = self._acquire_text(image_ref, request_id)
        classification = self.classifier.classify(text)

        error = None
        try:
            document = self._extract(classification.type, text)
        except Exception as exc:
            logger.error("[%s] Extraction failed: %s", request_id, exc)
            document = self._empty_document(classification.type)
            error = f"Failed to parse image data: {exc}"

        logger.info(
            "[%s] Processed as %s (confidence=%.2f, cached=%s)",
            request_id,
            classification.type,
            classification.confidence,
            cached,
        )
        return PipelineResult(
            document=document,
            classification=classification,
            raw_text=text,
            cached=cached,
            error=error,
        )


def build_pipeline(config: AppConfig) -> DocumentPipeline:
    """Assemble a pipeline from application configuration.

    Args:
        config: Application configuration.

    Returns:
        A pipeline using the mock text source when ``ocr.mock_mode`` is set
        and Tesseract otherwise.
    """
    if config.ocr.mock_mode:
        text_source: TextSource = MockTextSource()
    else:
        text_source = TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            psm=config.ocr.psm,
        )

    cache = ContentCache(config.cache) if config.cache.enabled else None
    classifier = DocumentClassifier(get_policy(config.classifier.policy_version))
    logger.info(
        "Pipeline ready (environment=%s, mock_mode=%s, cache=%s)",
        config.environment,
        config.ocr.mock_mode,
        cache is not None,
    )
    return DocumentPipeline(text_source, cache=cache, classifier=classifier)
