"""Tesseract OCR text source for label and receipt photos.

Reads local image files with Pillow and runs Tesseract through
pytesseract. Failures are reported as ``UpstreamError`` with a stable kind.
"""

from dataclasses import dataclass
from pathlib import Path

import pytesseract
from PIL import Image, UnidentifiedImageError

from winedoc.cache.keys import is_remote
from winedoc.utils.errors import InputError, UpstreamError, UpstreamErrorKind, map_upstream_error
from winedoc.utils.logger import get_logger, mask_path

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Complete OCR result for one image."""

    text: str
    language: str
    confidence: float
    word_count: int


class TesseractEngine:
    """Wrapper around Tesseract OCR for label and receipt images.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "kor+eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def _load_image(self, image_ref: str) -> Image.Image:
        if is_remote(image_ref):
            raise InputError(
                f"Remote images are not supported by the Tesseract engine: {image_ref}"
            )
        try:
            with Image.open(Path(image_ref)) as image:
                image.load()
                return image.convert("RGB")
        except FileNotFoundError as exc:
            raise UpstreamError(UpstreamErrorKind.NOT_FOUND, image_ref, str(exc)) from exc
        except UnidentifiedImageError as exc:
            raise UpstreamError(
                UpstreamErrorKind.UNSUPPORTED_FORMAT, image_ref, str(exc)
            ) from exc
        except Image.DecompressionBombError as exc:
            raise UpstreamError(
                UpstreamErrorKind.PAYLOAD_TOO_LARGE, image_ref, str(exc)
            ) from exc

    def recognize(self, image_ref: str, lang: str | None = None) -> OCRResult:
        """Run OCR on an image file.

        Args:
            image_ref: Path of a local image file.
            lang: OCR language code. Defaults to the engine default.

        Returns:
            OCRResult containing full text and average word confidence.

        Raises:
            InputError: If ``image_ref`` is a remote URL.
            UpstreamError: If the image cannot be read or Tesseract fails.
        """
        lang = lang or self.default_lang
        config = f"--psm {self.psm}"
        image = self._load_image(image_ref)

        try:
            text = pytesseract.image_to_string(image, lang=lang, config=config)
            data = pytesseract.image_to_data(
                image,
                lang=lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise UpstreamError(
                UpstreamErrorKind.UNAVAILABLE, image_ref, str(exc)
            ) from exc
        except (pytesseract.TesseractError, RuntimeError) as exc:
            raise map_upstream_error(exc, image_ref) from exc

        total_conf = 0.0
        word_count = 0
        for conf, word in zip(data["conf"], data["text"]):
            if float(conf) > 0 and word.strip():
                total_conf += float(conf)
                word_count += 1

        avg_conf = (total_conf / word_count / 100.0) if word_count > 0 else 0.0

        logger.info(
            "OCR extracted %d words from %s with average confidence %.2f",
            word_count,
            mask_path(image_ref),
            avg_conf,
        )
        return OCRResult(
            text=text.strip(),
            language=lang,
            confidence=avg_conf,
            word_count=word_count,
        )

    def extract_text(self, image_ref: str) -> str:
        """Return only the recognized text of an image."""
        return self.recognize(image_ref).text
