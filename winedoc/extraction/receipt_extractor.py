"""Rule-based field extraction for wine shop receipt OCR text."""

import re
from dataclasses import asdict, dataclass, field
from datetime import date

from winedoc.utils.errors import InputError, ParseError
from winedoc.utils.logger import get_logger

from .rules import (
    VINTAGE_YEAR_PATTERN,
    contains_any,
    find_vintage_year,
    parse_amount,
    parse_int,
    run_rule,
    split_lines,
)

logger = get_logger(__name__)


@dataclass
class ReceiptItem:
    """One purchased line of a receipt."""

    name: str
    price: float
    quantity: int = 1
    vintage: int | None = None


@dataclass
class ReceiptFields:
    """Structured data read from a receipt."""

    store: str | None = None
    date: str | None = None
    time: str | None = None
    items: list[ReceiptItem] = field(default_factory=list)
    subtotal: float | None = None
    tax: float | None = None
    total: float | None = None
    payment_method: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return the fields that were found; ``items`` is always present."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    def is_empty(self) -> bool:
        return not self.items and len(self.to_dict()) == 1


@dataclass(frozen=True)
class ReceiptVocabulary:
    """Keyword tables used by :class:`ReceiptExtractor`."""

    keywords: tuple[str, ...] = (
        "total", "qty", "payment", "총액", "수량", "결제", "₩", "$", "€",
    )
    store_indicators: tuple[str, ...] = (
        "store", "shop", "mart", "점", "마트", "상점", "wine", "cellar",
    )
    # (regex, reported method) pairs, most specific first.
    payment_methods: tuple[tuple[str, str], ...] = (
        (r"신용카드\s*결제", "신용카드"),
        (r"credit\s*card", "Credit Card"),
        (r"현금\s*결제", "현금"),
        (r"cash\s*payment", "Cash"),
        (r"카드\s*결제", "카드"),
        (r"debit\s*card", "Debit Card"),
    )
    # Item names that are only a field label left over once the price is cut.
    label_names: tuple[str, ...] = (
        "price", "amount", "item", "가격", "금액", "qty", "quantity", "수량",
    )


DEFAULT_RECEIPT_VOCABULARY = ReceiptVocabulary()

_YMD_DATE = re.compile(r"(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})")
_MDY_DATE = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")

_TIME_WITH_SECONDS = re.compile(r"(\d{1,2}):(\d{2}):(\d{2})")
_TIME_12H = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)\b", re.IGNORECASE)
_TIME_24H = re.compile(r"(\d{1,2}):(\d{2})")

_CURRENCY_PRICE = re.compile(r"[₩$€£]\s*\d")
_RECEIPT_HEADER = re.compile(r"^(receipt|영수증)\b", re.IGNORECASE)

_EXCLUDED_LINE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^[-=*_]+$",
        r"^(매장|점포|상점)",
        r"^(tel|telephone|phone)\b",
        r"^전화",
        r"^address\b",
        r"^주소",
        r"^receipt\b",
        r"^영수증",
        r"^thank\s*you",
        r"^감사합니다",
        r"^승인번호",
        r"^approval\b",
        r"^카드번호",
        r"^card\s*no\b",
        r"^소계",
        r"\bsubtotal\b",
        r"^부가세",
        r"^(tax|vat)\b",
        r"^총액",
        r"\btotal\b",
        r"합계",
        r"^결제",
        r"\bpayment\b",
        r"^\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}",
        r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{4}",
        r"^(date|time|날짜|일시)\s*:",
        r"^(time\s*)?\d{1,2}:\d{2}(:\d{2})?(\s*(am|pm))?$",
    )
)

_NUMBER = r"([0-9][0-9,]*(?:\.\d+)?)"

_PRICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"₩\s*([0-9][0-9,]*)"),
    re.compile(r"\$\s*" + _NUMBER),
    re.compile(r"€\s*" + _NUMBER),
    re.compile(r"([0-9][0-9,]*)\s*원"),
)
_TRAILING_NUMBER = re.compile(r"(?<![\d:])" + _NUMBER + r"\s*$")

_QUANTITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"수량\s*:\s*(\d+)"),
    re.compile(r"\bqty\s*:\s*(\d+)", re.IGNORECASE),
    re.compile(r"\bquantity\s*:\s*(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)\s*개"),
)

_AMOUNT = r"\s*:\s*[₩$€£]?\s*" + _NUMBER

_SUBTOTAL_PATTERNS = (
    re.compile(r"소계" + _AMOUNT),
    re.compile(r"\bsubtotal" + _AMOUNT, re.IGNORECASE),
)
_TAX_PATTERNS = (
    re.compile(r"부가세" + _AMOUNT),
    re.compile(r"\btax" + _AMOUNT, re.IGNORECASE),
    re.compile(r"\bvat" + _AMOUNT, re.IGNORECASE),
)
_TOTAL_PATTERNS = (
    re.compile(r"총액" + _AMOUNT),
    re.compile(r"\btotal" + _AMOUNT, re.IGNORECASE),
    re.compile(r"합계" + _AMOUNT),
)

_WHITESPACE = re.compile(r"\s+")


def _find_amount(field_name: str, patterns: tuple[re.Pattern[str], ...], text: str) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return parse_amount(field_name, match.group(1))
    return None


class ReceiptExtractor:
    """Extracts structured fields and line items from receipt OCR text.

    Args:
        vocabulary: Keyword tables; defaults to the built-in vocabulary.
    """

    def __init__(
        self, vocabulary: ReceiptVocabulary = DEFAULT_RECEIPT_VOCABULARY
    ) -> None:
        self.vocabulary = vocabulary
        self._payment_patterns = [
            (re.compile(regex, re.IGNORECASE), method)
            for regex, method in vocabulary.payment_methods
        ]

    def extract(self, text: str) -> ReceiptFields:
        """Extract receipt fields from OCR text.

        Text with no receipt keyword and no valid date is not treated as a
        receipt and yields an empty result.

        Args:
            text: OCR text of a receipt.

        Returns:
            The fields and line items that could be found.

        Raises:
            InputError: If ``text`` is ``None``.
        """
        if text is None:
            raise InputError("receipt text must not be None")
        if not text.strip():
            return ReceiptFields()

        receipt_date = run_rule("date", self.extract_date, text)
        if not contains_any(text, self.vocabulary.keywords) and receipt_date is None:
            logger.debug("No receipt keywords found, skipping extraction")
            return ReceiptFields()

        lines = split_lines(text)
        fields = ReceiptFields(
            store=run_rule("store", self.extract_store, lines),
            date=receipt_date,
            time=run_rule("time", self.extract_time, text),
            items=run_rule("items", self.extract_items, lines) or [],
            subtotal=run_rule("subtotal", _find_amount, "subtotal", _SUBTOTAL_PATTERNS, text),
            tax=run_rule("tax", _find_amount, "tax", _TAX_PATTERNS, text),
            total=run_rule("total", _find_amount, "total", _TOTAL_PATTERNS, text),
            payment_method=run_rule("payment_method", self.extract_payment_method, text),
        )
        logger.info(
            "Receipt extraction found %d items (total=%s)", len(fields.items), fields.total
        )
        return fields

    def extract_store(self, lines: list[str]) -> str | None:
        """Take the first line as the store name unless it is clearly not one."""
        if lines:
            first = lines[0]
            if (
                len(first) > 2
                and not _YMD_DATE.search(first)
                and not _CURRENCY_PRICE.search(first)
                and not _RECEIPT_HEADER.search(first)
            ):
                return first

        for line in lines:
            if contains_any(line, self.vocabulary.store_indicators):
                return line
        return None

    def extract_date(self, text: str) -> str | None:
        """Find the first calendar-valid date, normalized to ``YYYY-MM-DD``.

        Day-first dates are not recognized: ``NN/NN/YYYY`` is read as
        month/day/year.
        """
        candidates = [
            (m.group(1), m.group(2), m.group(3)) for m in _YMD_DATE.finditer(text)
        ] + [
            (m.group(3), m.group(1), m.group(2)) for m in _MDY_DATE.finditer(text)
        ]
        for year, month, day in candidates:
            try:
                return date(int(year), int(month), int(day)).isoformat()
            except ValueError:
                continue
        return None

    def extract_time(self, text: str) -> str | None:
        match = _TIME_WITH_SECONDS.search(text)
        if match:
            hour, minute, second = (int(g) for g in match.groups())
            if hour < 24 and minute < 60 and second < 60:
                return f"{hour:02d}:{minute:02d}:{second:02d}"

        match = _TIME_12H.search(text)
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            meridiem = match.group(3).upper()
            if 1 <= hour <= 12 and minute < 60:
                if meridiem == "PM" and hour != 12:
                    hour += 12
                elif meridiem == "AM" and hour == 12:
                    hour = 0
                return f"{hour:02d}:{minute:02d}"

        match = _TIME_24H.search(text)
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return f"{hour:02d}:{minute:02d}"
        return None

    def extract_payment_method(self, text: str) -> str | None:
        for pattern, method in self._payment_patterns:
            if pattern.search(text):
                return method
        return None

    def is_excluded_line(self, line: str) -> bool:
        """Return whether a line is a header, footer, total or date line."""
        return any(p.search(line) for p in _EXCLUDED_LINE_PATTERNS)

    def extract_items(self, lines: list[str]) -> list[ReceiptItem]:
        """Parse purchased items line by line.

        A quantity marker on the line after an item belongs to that item,
        and that line is consumed, unless the line is an item of its own.
        """
        items: list[ReceiptItem] = []
        consumed: set[int] = set()

        for i, line in enumerate(lines):
            if i in consumed or self.is_excluded_line(line):
                continue

            next_line = lines[i + 1] if i + 1 < len(lines) else ""
            try:
                item = self.parse_item_line(line)
            except ParseError as exc:
                logger.warning("Skipping receipt line %d: %s", i, exc)
                continue
            if item is None:
                continue

            next_quantity = self._quantity_line(next_line)
            if next_quantity is not None:
                consumed.add(i + 1)
                if item.quantity == 1 and not self._has_quantity(line) and next_quantity >= 1:
                    item.quantity = next_quantity

            items.append(item)

        return items

    @staticmethod
    def _has_quantity(line: str) -> bool:
        return any(p.search(line) for p in _QUANTITY_PATTERNS)

    def _quantity_line(self, line: str) -> int | None:
        """Read the quantity from a line that carries only a quantity marker.

        Returns ``None`` for blank or excluded lines, lines without a marker,
        and lines that still hold a priced item once the marker is removed.
        """
        if not line or self.is_excluded_line(line):
            return None

        for pattern in _QUANTITY_PATTERNS:
            match = pattern.search(line)
            if match:
                break
        else:
            return None

        rest = (line[: match.start()] + " " + line[match.end():]).strip()
        try:
            if rest and self.parse_item_line(rest) is not None:
                return None
        except ParseError:
            return None
        return parse_int("quantity", match.group(1))

    def _find_price(self, line: str) -> tuple[float, tuple[int, int]] | None:
        for pattern in _PRICE_PATTERNS:
            match = pattern.search(line)
            if match:
                return parse_amount("price", match.group(1)), match.span()

        match = _TRAILING_NUMBER.search(line)
        if match:
            raw = match.group(1)
            # A year at the end of an item name is a vintage, not a price.
            if VINTAGE_YEAR_PATTERN.fullmatch(raw):
                return None
            return parse_amount("price", raw), match.span()
        return None

    def parse_item_line(self, line: str) -> ReceiptItem | None:
        """Parse one receipt line into an item.

        Args:
            line: A trimmed, non-excluded receipt line.

        Returns:
            The item, or ``None`` if the line has no usable price or name.

        Raises:
            ParseError: If a matched price or quantity is not a number.
        """
        found = self._find_price(line)
        if found is None:
            return None
        price, (start, end) = found
        if price <= 0:
            return None

        name = _WHITESPACE.sub(" ", line[:start] + " " + line[end:]).strip()

        quantity = 1
        for pattern in _QUANTITY_PATTERNS:
            match = pattern.search(name)
            if match:
                value = parse_int("quantity", match.group(1))
                if value >= 1:
                    quantity = value
                name = _WHITESPACE.sub(" ", name[: match.start()] + " " + name[match.end():]).strip()
                break

        if len(name) < 2:
            return None
        if name.rstrip(":").strip().lower() in self.vocabulary.label_names:
            return None

        return ReceiptItem(
            name=name,
            price=price,
            quantity=quantity,
            vintage=find_vintage_year(name),
        )
