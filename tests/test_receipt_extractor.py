"""Tests for receipt field and line item extraction."""

import pytest

from winedoc.extraction.receipt_extractor import (
    ReceiptExtractor,
    ReceiptFields,
    ReceiptItem,
    ReceiptVocabulary,
)
from winedoc.utils.errors import InputError


class TestExtract:
    """Tests for ReceiptExtractor.extract on complete receipts."""

    def setup_method(self) -> None:
        self.extractor = ReceiptExtractor()

    def test_english_receipt(self, receipt_text: str) -> None:
        fields = self.extractor.extract(receipt_text)
        assert fields.total == pytest.approx(500.00)
        assert fields.date == "2024-01-15"
        assert fields.store == "Store: Wine Shop"
        assert fields.subtotal is None
        assert fields.time is None
        assert fields.items == []

    def test_korean_receipt(self, korean_receipt_text: str) -> None:
        fields = self.extractor.extract(korean_receipt_text)
        assert fields.store == "와인앤모어 강남점"
        assert fields.date == "2024-07-20"
        assert fields.time == "15:30:25"
        assert fields.subtotal == 430000
        assert fields.tax == 43000
        assert fields.total == 473000
        assert fields.payment_method == "신용카드"
        assert fields.items == [
            ReceiptItem(name="샤또 마고 2015", price=150000, quantity=1, vintage=2015),
            ReceiptItem(name="돔 페리뇽 2012", price=280000, quantity=2, vintage=2012),
        ]

    def test_none_raises(self) -> None:
        with pytest.raises(InputError):
            self.extractor.extract(None)  # type: ignore[arg-type]

    def test_blank_text(self) -> None:
        fields = self.extractor.extract("  ")
        assert fields == ReceiptFields()
        assert fields.is_empty()

    def test_non_receipt_text_is_empty(self) -> None:
        fields = self.extractor.extract("Château Margaux\nGrand Cru Classé")
        assert fields.is_empty()
        assert fields.to_dict() == {"items": []}

    def test_date_alone_passes_guard(self) -> None:
        fields = self.extractor.extract("Wine Cellar\n2024/03/05")
        assert fields.date == "2024-03-05"
        assert fields.store == "Wine Cellar"


class TestItems:
    """Tests for line item parsing."""

    def setup_method(self) -> None:
        self.extractor = ReceiptExtractor()

    def test_dollar_line_item(self) -> None:
        item = self.extractor.parse_item_line("Château Margaux 2019 $500.00")
        assert item == ReceiptItem(
            name="Château Margaux 2019", price=500.00, quantity=1, vintage=2019
        )

    @pytest.mark.parametrize(
        ("line", "name", "price"),
        [
            ("Sassicaia ₩450,000", "Sassicaia", 450000),
            ("Barolo €89.50", "Barolo", 89.5),
            ("모스카토 다스티 25,000원", "모스카토 다스티", 25000),
            ("House Red 18.90", "House Red", 18.9),
        ],
    )
    def test_price_formats(self, line: str, name: str, price: float) -> None:
        item = self.extractor.parse_item_line(line)
        assert item is not None
        assert item.name == name
        assert item.price == pytest.approx(price)

    def test_trailing_vintage_is_not_price(self) -> None:
        assert self.extractor.parse_item_line("Item: Château Margaux 2019") is None

    def test_label_only_name_rejected(self) -> None:
        assert self.extractor.parse_item_line("Price: $500.00") is None
        assert self.extractor.parse_item_line("가격: ₩10,000") is None

    def test_zero_price_rejected(self) -> None:
        assert self.extractor.parse_item_line("Free tasting $0.00") is None

    def test_short_name_rejected(self) -> None:
        assert self.extractor.parse_item_line("A $5.00") is None

    def test_quantity_on_same_line(self) -> None:
        item = self.extractor.parse_item_line("Chablis Qty: 3 $30.00")
        assert item is not None
        assert item.quantity == 3
        assert item.name == "Chablis"

    def test_korean_count_suffix(self) -> None:
        item = self.extractor.parse_item_line("까바 2개 ₩30,000")
        assert item is not None
        assert item.quantity == 2
        assert item.name == "까바"

    def test_zero_quantity_stays_one(self) -> None:
        item = self.extractor.parse_item_line("Chablis qty: 0 $30.00")
        assert item is not None
        assert item.quantity == 1

    def test_quantity_on_next_line_is_consumed(self) -> None:
        lines = ["Rioja Reserva $25.00", "Qty: 4", "Cava $12.00"]
        items = self.extractor.extract_items(lines)
        assert [(i.name, i.quantity) for i in items] == [("Rioja Reserva", 4), ("Cava", 1)]

    def test_same_line_quantity_wins(self) -> None:
        lines = ["Rioja qty: 2 $25.00", "수량: 5"]
        items = self.extractor.extract_items(lines)
        assert len(items) == 1
        assert items[0].quantity == 2

    def test_next_line_marker_with_trailing_words(self) -> None:
        items = self.extractor.extract_items(["Merlot $20.00", "Qty: 2 bottles"])
        assert [(i.name, i.quantity) for i in items] == [("Merlot", 2)]

    def test_next_item_count_not_taken(self) -> None:
        items = self.extractor.extract_items(["Merlot ₩20,000", "까바 2개 ₩30,000"])
        assert [(i.name, i.quantity) for i in items] == [("Merlot", 1), ("까바", 2)]

    def test_summary_lines_not_items(self) -> None:
        lines = [
            "Merlot $20.00",
            "Grand Total: $20.00",
            "Card Payment: $20.00",
            "Order Subtotal: $20.00",
        ]
        items = self.extractor.extract_items(lines)
        assert items == [ReceiptItem(name="Merlot", price=20.0)]

    @pytest.mark.parametrize("line", ["14:30", "Time 14:30", "Opened 09:15"])
    def test_clock_time_is_not_price(self, line: str) -> None:
        assert self.extractor.parse_item_line(line) is None

    @pytest.mark.parametrize(
        "line",
        [
            "-----------",
            "Tel: 02-555-1234",
            "Phone 555 1234",
            "주소: 서울시 중구 1",
            "Subtotal: $10.00",
            "Tax: $1.00",
            "VAT 10%",
            "Total: $11.00",
            "합계: ₩11,000",
            "Payment: Card 1234",
            "승인번호: 98765432",
            "2024-01-15 14:22",
            "Date: 01/15/2024",
            "Time: 14:22",
            "14:30",
            "Time 14:30",
            "3:05 PM",
            "Grand Total: $20.00",
            "Order Subtotal: $20.00",
            "Card Payment: $20.00",
            "카드 합계 ₩20,000",
            "Thank you 2",
        ],
    )
    def test_excluded_lines(self, line: str) -> None:
        assert self.extractor.is_excluded_line(line)
        assert self.extractor.extract_items([line]) == []

    def test_product_lines_not_excluded(self) -> None:
        assert not self.extractor.is_excluded_line("Taxonomy Red $10.00")
        assert not self.extractor.is_excluded_line("Totally Natural Wine $20.00")


class TestFields:
    """Tests for date, time, totals, store and payment."""

    def setup_method(self) -> None:
        self.extractor = ReceiptExtractor()

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2024-01-15", "2024-01-15"),
            ("2024/1/5", "2024-01-05"),
            ("2024.07.20", "2024-07-20"),
            ("01/15/2024", "2024-01-15"),
            ("3-7-2023", "2023-03-07"),
        ],
    )
    def test_date_formats(self, text: str, expected: str) -> None:
        assert self.extractor.extract_date(text) == expected

    def test_invalid_date_skipped(self) -> None:
        assert self.extractor.extract_date("2024-13-45") is None
        assert self.extractor.extract_date("2024-02-30 then 2024-03-01") == "2024-03-01"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("15:30:25", "15:30:25"),
            ("3:05 PM", "15:05"),
            ("12:10 am", "00:10"),
            ("12:45 PM", "12:45"),
            ("9:05", "09:05"),
        ],
    )
    def test_time_formats(self, text: str, expected: str) -> None:
        assert self.extractor.extract_time(text) == expected

    def test_invalid_time(self) -> None:
        assert self.extractor.extract_time("99:99") is None

    def test_total_not_read_from_subtotal(self) -> None:
        text = "Subtotal: $90.00\nTax: $9.00\nTotal: $99.00"
        fields = self.extractor.extract(text)
        assert fields.subtotal == pytest.approx(90.0)
        assert fields.tax == pytest.approx(9.0)
        assert fields.total == pytest.approx(99.0)

    def test_only_subtotal(self) -> None:
        fields = self.extractor.extract("Subtotal: $90.00\nqty")
        assert fields.subtotal == pytest.approx(90.0)
        assert fields.total is None

    def test_thousands_separator(self) -> None:
        fields = self.extractor.extract("TOTAL : $1,234.50")
        assert fields.total == pytest.approx(1234.5)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("신용카드 결제", "신용카드"),
            ("Paid by Credit Card", "Credit Card"),
            ("현금결제", "현금"),
            ("cash payment", "Cash"),
            ("카드 결제", "카드"),
            ("DEBIT CARD", "Debit Card"),
            ("voucher", None),
        ],
    )
    def test_payment_methods(self, text: str, expected: str | None) -> None:
        assert self.extractor.extract_payment_method(text) == expected

    def test_store_first_line(self) -> None:
        assert self.extractor.extract_store(["La Cave", "Total: $5"]) == "La Cave"

    def test_store_skips_date_first_line(self) -> None:
        lines = ["2024-01-15", "Wine Cellar Seoul", "Total: $5"]
        assert self.extractor.extract_store(lines) == "Wine Cellar Seoul"

    def test_store_skips_price_first_line(self) -> None:
        lines = ["$5.00", "Total: $5"]
        assert self.extractor.extract_store(lines) is None

    def test_custom_store_indicators(self) -> None:
        extractor = ReceiptExtractor(ReceiptVocabulary(store_indicators=("bodega",)))
        assert extractor.extract_store(["12", "Bodega Central"]) == "Bodega Central"
