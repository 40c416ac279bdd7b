"""Canned OCR text for tests and offline runs."""

from winedoc.utils.logger import get_logger, mask_path

logger = get_logger(__name__)

LABEL_TEXT = """CHÂTEAU MARGAUX
PREMIER GRAND CRU CLASSÉ
APPELLATION MARGAUX CONTRÔLÉE
2019
750 ML
13.5% VOL
PRODUCT OF FRANCE
Estate Bottled"""

RECEIPT_TEXT = """Receipt
Store: Wine Shop
Date: 2024-01-15
Item: Château Margaux 2019
Price: $500.00
Total: $500.00"""

DEFAULT_TEXT = """CHÂTEAU TEST WINE
MOCK WINE LABEL
2020
FRANCE
750 ML"""

DEFAULT_MOCK_TEXTS: dict[str, str] = {
    "test1.jpg": LABEL_TEXT,
    "test2.jpg": RECEIPT_TEXT,
}


class MockTextSource:
    """Text source that returns fixed text chosen by image file name.

    Args:
        texts: File name to OCR text mapping.
        default: Text returned for any other image.
    """

    def __init__(
        self,
        texts: dict[str, str] | None = None,
        default: str = DEFAULT_TEXT,
    ) -> None:
        self.texts = dict(DEFAULT_MOCK_TEXTS if texts is None else texts)
        self.default = default
        self.calls: list[str] = []

    def extract_text(self, image_ref: str) -> str:
        self.calls.append(image_ref)
        name = image_ref.replace("\\", "/").rsplit("/", 1)[-1].split("?", 1)[0]
        text = self.texts.get(name, self.default)
        logger.debug(
            "Mock OCR response for %s (length=%d)", mask_path(image_ref), len(text)
        )
        return text
