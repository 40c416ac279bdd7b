"""Shared test fixtures for the wine document test suite."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from winedoc.cache.content_cache import ContentCache
from winedoc.utils.config import CacheConfig, profile_config

MB = 1024 * 1024

LABEL_TEXT = (
    "CHÂTEAU MARGAUX\nPREMIER GRAND CRU CLASSÉ\n"
    "APPELLATION MARGAUX CONTRÔLÉE\n2019\n750 ML\n13.5% VOL"
)

RECEIPT_TEXT = (
    "Receipt\nStore: Wine Shop\nDate: 2024-01-15\n"
    "Item: Château Margaux 2019\nPrice: $500.00\nTotal: $500.00"
)

KOREAN_RECEIPT_TEXT = """와인앤모어 강남점
주소: 서울시 강남구 테헤란로 123
Tel: 02-1234-5678
2024-07-20 15:30:25
--------------------
샤또 마고 2015 ₩150,000
수량: 1
돔 페리뇽 2012 ₩280,000
수량: 2
--------------------
소계: ₩430,000
부가세: ₩43,000
총액: ₩473,000
신용카드 결제
승인번호: 12345678
감사합니다"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMemory:
    """Settable ``(used, total)`` memory reader."""

    def __init__(self, used: int = 10 * MB, total: int = 50 * MB) -> None:
        self.used = used
        self.total = total

    def __call__(self) -> tuple[int, int]:
        return self.used, self.total


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test under the ``test`` configuration profile."""
    monkeypatch.setenv("WINEDOC_ENV", "test")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_memory() -> FakeMemory:
    return FakeMemory()


@pytest.fixture
def cache_config() -> CacheConfig:
    """Cache settings of the test profile (100 keys, 300s TTL, no monitor)."""
    return profile_config("test").cache


@pytest.fixture
def cache(
    cache_config: CacheConfig, fake_clock: FakeClock, fake_memory: FakeMemory
) -> Iterator[ContentCache]:
    """A cache driven by the fake clock and memory reader."""
    with ContentCache(
        cache_config, clock=fake_clock, memory_reader=fake_memory
    ) as content_cache:
        yield content_cache


@pytest.fixture
def label_text() -> str:
    return LABEL_TEXT


@pytest.fixture
def receipt_text() -> str:
    return RECEIPT_TEXT


@pytest.fixture
def korean_receipt_text() -> str:
    return KOREAN_RECEIPT_TEXT


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
