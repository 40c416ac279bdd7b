"""Rule-based field extraction for wine label OCR text.

Each field has its own ordered list of patterns; the first pattern that
yields a valid value wins. Fields that cannot be found confidently are
left as ``None``.
"""

import re
from dataclasses import asdict, dataclass

from winedoc.utils.errors import InputError
from winedoc.utils.logger import get_logger

from .rules import (
    MAX_VINTAGE,
    MIN_VINTAGE,
    VINTAGE_YEAR_PATTERN,
    contains_any,
    find_term,
    parse_amount,
    parse_int,
    run_rule,
    split_lines,
)

logger = get_logger(__name__)


@dataclass
class LabelFields:
    """Structured data read from a wine label."""

    name: str | None = None
    vintage: int | None = None
    producer: str | None = None
    region: str | None = None
    appellation: str | None = None
    variety: str | None = None
    alcohol: float | None = None
    volume: str | None = None
    classification: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return only the fields that were found."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class LabelVocabulary:
    """Keyword tables used by :class:`LabelExtractor`."""

    keywords: tuple[str, ...] = (
        "wine", "château", "chateau", "domaine", "appellation", "vintage",
        "와인", "년산", "vol", "도", "soave", "denominazione", "doc", "docg",
        "farina",
    )
    estate_terms: tuple[str, ...] = ("château", "chateau", "domaine", "estate", "winery")
    producer_terms: tuple[str, ...] = (
        "domaine", "château", "chateau", "estate", "winery", "producer",
    )
    producer_name_terms: tuple[str, ...] = ("château", "chateau", "domaine")
    non_producer_terms: tuple[str, ...] = ("denominazione", "appellation", "doc")
    # Wines whose producer is printed on the line under the wine name.
    producer_below_name_terms: tuple[str, ...] = ("soave",)
    regions: tuple[str, ...] = (
        "bordeaux", "burgundy", "champagne", "loire", "rhône", "alsace",
        "tuscany", "piedmont", "veneto", "sicily",
        "napa valley", "sonoma", "paso robles",
        "rioja", "ribera del duero",
        "barossa", "hunter valley",
        "보르도", "부르고뉴", "샴페인", "토스카나",
    )
    varieties: tuple[str, ...] = (
        "cabernet sauvignon", "merlot", "pinot noir", "chardonnay",
        "sauvignon blanc", "syrah", "shiraz", "grenache", "mourvèdre",
        "tempranillo", "sangiovese", "riesling", "gewürztraminer",
        "pinot grigio", "pinot gris", "garganega",
        "까베르네 소비뇽", "메를로", "피노 누아", "샤르도네",
    )
    variety_aliases: tuple[tuple[str, str], ...] = (
        ("까베르네 소비뇽", "Cabernet Sauvignon"),
        ("메를로", "Merlot"),
        ("피노 누아", "Pinot Noir"),
        ("샤르도네", "Chardonnay"),
    )
    classifications: tuple[str, ...] = (
        "grand cru", "premier cru", "cru classé", "reserve", "réserve",
        "superieur", "supérieur", "villages", "doc", "docg", "igt",
        "aoc", "ava", "appellation",
    )


DEFAULT_LABEL_VOCABULARY = LabelVocabulary()

_VINTAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
    VINTAGE_YEAR_PATTERN,
    re.compile(r"(\d{4})년산"),
    re.compile(r"vintage\s+(\d{4})", re.IGNORECASE),
    re.compile(r"récolte\s+(\d{4})", re.IGNORECASE),
    re.compile(r"harvest\s+(\d{4})", re.IGNORECASE),
)

_ALCOHOL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+(?:\.\d+)?)\s*%\s*vol", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*%\s*alcohol", re.IGNORECASE),
    re.compile(r"alc\.?\s*(\d+(?:\.\d+)?)\s*%", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)도"),
)

_VOLUME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+(?:\.\d+)?)[ \t]*(ml)\b", re.IGNORECASE | re.ASCII),
    re.compile(r"(\d+(?:\.\d+)?)[ \t]*(cl)\b", re.IGNORECASE | re.ASCII),
    re.compile(r"(\d+(?:\.\d+)?)[ \t]*(l)\b", re.IGNORECASE | re.ASCII),
)

_APPELLATION_PATTERN = re.compile(
    r"appellation[ \t]+([\w \t\-']+?)[ \t]+contr[oô]l[ée]e", re.IGNORECASE
)

# Lines that never hold the wine name.
_NON_NAME_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}$"),
    re.compile(r"appellation", re.IGNORECASE),
    re.compile(r"\d+\s*(ml|cl|l|%)", re.IGNORECASE),
    re.compile(r"vol|alcohol", re.IGNORECASE),
    re.compile(r"^\d+\.?\d*\s*도$"),
)

_YEAR_TOKEN = re.compile(r"\b\d{4}\b")
_WHITESPACE = re.compile(r"\s+")


class LabelExtractor:
    """Extracts structured fields from wine label OCR text.

    Args:
        vocabulary: Keyword tables; defaults to the built-in vocabulary.
    """

    def __init__(self, vocabulary: LabelVocabulary = DEFAULT_LABEL_VOCABULARY) -> None:
        self.vocabulary = vocabulary
        self._estate_patterns = [
            re.compile(rf"{re.escape(term)}[ \t]+[\w \t\-'.]+", re.IGNORECASE)
            for term in vocabulary.estate_terms
        ]
        self._aliases = dict(vocabulary.variety_aliases)

    def extract(self, text: str) -> LabelFields:
        """Extract label fields from OCR text.

        Text with no wine keyword and no vintage year is not treated as a
        label and yields empty fields.

        Args:
            text: OCR text of a wine label.

        Returns:
            The fields that could be found.

        Raises:
            InputError: If ``text`` is ``None``.
        """
        if text is None:
            raise InputError("label text must not be None")
        if not text.strip():
            return LabelFields()

        if (
            not contains_any(text, self.vocabulary.keywords)
            and self.extract_vintage(text) is None
        ):
            logger.debug("No wine label keywords found, skipping extraction")
            return LabelFields()

        lines = split_lines(text)
        name = run_rule("name", self.extract_name, lines, text)
        fields = LabelFields(
            name=name,
            vintage=run_rule("vintage", self.extract_vintage, text),
            producer=run_rule("producer", self.extract_producer, lines, name),
            region=run_rule("region", self.extract_region, text),
            appellation=run_rule("appellation", self.extract_appellation, text),
            variety=run_rule("variety", self.extract_variety, text),
            alcohol=run_rule("alcohol", self.extract_alcohol, text),
            volume=run_rule("volume", self.extract_volume, text),
            classification=run_rule("classification", self.extract_classification, text),
        )
        logger.info("Label extraction found %d fields", len(fields.to_dict()))
        return fields

    def extract_vintage(self, text: str) -> int | None:
        for pattern in _VINTAGE_PATTERNS:
            match = pattern.search(text)
            if match:
                year = parse_int("vintage", match.group(1))
                if MIN_VINTAGE <= year <= MAX_VINTAGE:
                    return year
        return None

    def extract_name(self, lines: list[str], text: str) -> str | None:
        """Find the wine name.

        Estate-style names ("Château ...", "Domaine ...") are preferred;
        otherwise the first line that is not a year, volume, alcohol or
        appellation line is used.
        """
        for pattern in self._estate_patterns:
            match = pattern.search(text)
            if match:
                name = _YEAR_TOKEN.sub("", match.group(0))
                name = _WHITESPACE.sub(" ", name).strip()
                if len(name) > 3:
                    return name

        for line in lines:
            if len(line) < 3:
                continue
            if any(p.search(line) for p in _NON_NAME_LINE_PATTERNS):
                continue
            return line
        return None

    def extract_producer(self, lines: list[str], name: str | None) -> str | None:
        vocab = self.vocabulary
        for line in lines:
            if contains_any(line, vocab.producer_terms):
                return line

        if name and contains_any(name, vocab.producer_name_terms):
            return name

        if len(lines) >= 2 and contains_any(lines[0], vocab.producer_below_name_terms):
            candidate = lines[1]
            if len(candidate) > 2 and not contains_any(candidate, ("denominazione", "doc")):
                return candidate

        # Producers are commonly printed right under the wine name.
        if len(lines) >= 2:
            candidate = lines[1]
            if (
                len(candidate) > 2
                and not candidate[0].isdigit()
                and not contains_any(candidate, vocab.non_producer_terms)
            ):
                return candidate
        return None

    def extract_region(self, text: str) -> str | None:
        return find_term(text, self.vocabulary.regions)

    def extract_appellation(self, text: str) -> str | None:
        match = _APPELLATION_PATTERN.search(text)
        if not match:
            return None
        appellation = _WHITESPACE.sub(" ", match.group(1)).strip()
        if not appellation:
            return None
        return appellation.title() if appellation.isupper() else appellation

    def extract_variety(self, text: str) -> str | None:
        """Find grape varieties in order of appearance, joined by ``", "``."""
        found: list[tuple[int, int, str]] = []
        for term in self.vocabulary.varieties:
            match = re.search(re.escape(term), text, re.IGNORECASE)
            if match:
                found.append((match.start(), match.end(), match.group(0)))

        varieties: list[str] = []
        taken_until = -1
        for start, end, matched in sorted(found, key=lambda f: (f[0], f[0] - f[1])):
            if start < taken_until:
                continue
            taken_until = end
            canonical = self._aliases.get(matched, matched)
            if canonical not in varieties:
                varieties.append(canonical)

        return ", ".join(varieties) if varieties else None

    def extract_alcohol(self, text: str) -> float | None:
        for pattern in _ALCOHOL_PATTERNS:
            match = pattern.search(text)
            if match:
                alcohol = parse_amount("alcohol", match.group(1))
                if 0 < alcohol <= 20:
                    return alcohol
        return None

    def extract_volume(self, text: str) -> str | None:
        for pattern in _VOLUME_PATTERNS:
            match = pattern.search(text)
            if match:
                return f"{match.group(1)}{match.group(2).lower()}"
        return None

    def extract_classification(self, text: str) -> str | None:
        return find_term(text, self.vocabulary.classifications)
