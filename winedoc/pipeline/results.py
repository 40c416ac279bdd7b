"""Tagged result types returned by the document pipeline."""

from dataclasses import dataclass, field

from winedoc.classification.classifier import ClassificationResult, DocumentType
from winedoc.extraction.label_extractor import LabelFields
from winedoc.extraction.receipt_extractor import ReceiptFields


@dataclass(frozen=True)
class LabelDocument:
    """Fields extracted from a wine label."""

    fields: LabelFields = field(default_factory=LabelFields)
    type: DocumentType = field(default=DocumentType.WINE_LABEL, init=False)


@dataclass(frozen=True)
class ReceiptDocument:
    """Fields and line items extracted from a receipt."""

    fields: ReceiptFields = field(default_factory=ReceiptFields)
    type: DocumentType = field(default=DocumentType.RECEIPT, init=False)


@dataclass(frozen=True)
class UnknownDocument:
    """Text that could not be classified."""

    type: DocumentType = field(default=DocumentType.UNKNOWN, init=False)


Document = LabelDocument | ReceiptDocument | UnknownDocument


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of processing one image.

    Attributes:
        document: Extracted document variant.
        classification: How the OCR text was classified.
        raw_text: OCR text the document was extracted from.
        cached: Whether the OCR text came from the cache.
        error: Extraction failure message, if extraction failed.
    """

    document: Document
    classification: ClassificationResult
    raw_text: str
    cached: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize the result for JSON output."""
        document = self.document
        data: dict[str, object] = {
            "type": str(document.type),
            "confidence": round(self.classification.confidence, 4),
            "indicators": list(self.classification.indicators),
            "cached": self.cached,
        }
        if isinstance(document, (LabelDocument, ReceiptDocument)):
            data["fields"] = document.fields.to_dict()
        if self.error:
            data["error"] = self.error
        data["raw_text"] = self.raw_text
        return data
