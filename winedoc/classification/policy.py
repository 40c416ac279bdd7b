"""Versioned scoring policies for document classification.

The weights and thresholds here were tuned empirically against real
label and receipt photos. Changing any value changes classification
output, so new tunings are added as a new policy version rather than
edited in place.
"""

import re
from dataclasses import dataclass

_PATTERN_FLAGS = re.IGNORECASE | re.ASCII


@dataclass(frozen=True)
class BonusRule:
    """A fixed score addition triggered by a strong signal.

    Term rules fire on plain substring containment of any term (or of
    every term when ``require_all`` is set); pattern rules fire on a
    regex search.
    """

    weight: float
    terms: tuple[str, ...] = ()
    pattern: re.Pattern[str] | None = None
    require_all: bool = False

    def applies(self, text: str) -> bool:
        if self.pattern is not None:
            return self.pattern.search(text) is not None
        check = all if self.require_all else any
        return check(term in text for term in self.terms)


def _terms(weight: float, *terms: str, require_all: bool = False) -> BonusRule:
    return BonusRule(weight=weight, terms=terms, require_all=require_all)


def _pattern(weight: float, regex: str) -> BonusRule:
    return BonusRule(weight=weight, pattern=re.compile(regex, _PATTERN_FLAGS))


@dataclass(frozen=True)
class TypeScoring:
    """Indicator vocabulary and ordered bonus rules for one document type."""

    indicators: tuple[str, ...]
    bonuses: tuple[BonusRule, ...]
    indicator_weight: float = 0.1


@dataclass(frozen=True)
class ScoringPolicy:
    """Complete classification policy.

    Attributes:
        version: Identifier recorded alongside classification output.
        label: Scoring for wine labels.
        receipt: Scoring for receipts.
        threshold: A type must score strictly above this to be chosen.
        gap_boost: Share of the score gap added to the winner's confidence.
        max_confidence: Upper bound on reported confidence.
        substring_symbols: Indicators containing any of these characters
            are matched by substring instead of on word boundaries.
    """

    version: str
    label: TypeScoring
    receipt: TypeScoring
    threshold: float = 0.4
    gap_boost: float = 0.1
    max_confidence: float = 0.95
    substring_symbols: str = "₩$€£#"


POLICY_V1 = ScoringPolicy(
    version="v1",
    label=TypeScoring(
        indicators=(
            "appellation", "château", "chateau", "domaine", "vintage", "estate",
            "wine", "rouge", "blanc", "rosé", "rose", "sec", "demi-sec",
            "cabernet", "merlot", "chardonnay", "pinot", "sauvignon",
            "bordeaux", "burgundy", "champagne", "contrôlée", "controlee",
            "vol", "ml", "cl", "alcohol", "도", "년산", "와인", "winery",
            "producer", "harvest", "reserve", "grand", "cru", "premier",
            "soave", "farina", "doc", "docg", "denominazione", "origine",
            "controllata", "prodotto", "italia", "garganega",
        ),
        bonuses=(
            _terms(0.3, "château", "chateau"),
            _terms(0.3, "appellation"),
            _terms(0.3, "contrôlée", "controlee"),
            _terms(0.2, "bordeaux"),
            _terms(0.2, "vintage", "년산"),
            _terms(0.3, "doc", "docg"),
            _terms(0.3, "denominazione", "origine", require_all=True),
            _terms(0.2, "soave"),
            _terms(0.2, "farina"),
            _pattern(0.2, r"\b(19|20)\d{2}\b"),
            _pattern(0.2, r"\d+\.?\d*\s*(%)?\s*(vol|도)"),
            _pattern(0.1, r"\d+\s*(ml|cl|l)"),
        ),
    ),
    receipt=TypeScoring(
        indicators=(
            "total", "subtotal", "tax", "receipt", "qty", "quantity",
            "payment", "card", "cash", "change", "date", "time",
            "₩", "$", "€", "£", "no.", "#", "수량", "소계", "총액",
            "부가세", "결제", "신용카드", "카드", "현금", "승인번호",
            "매장", "점포", "상점", "store", "shop", "mart",
        ),
        bonuses=(
            _terms(0.3, "total", "총액"),
            _terms(0.2, "subtotal", "소계"),
            _terms(0.2, "qty", "quantity", "수량"),
            _terms(0.2, "payment", "결제"),
            _terms(0.3, "₩", "$", "€"),
            _pattern(0.2, r"\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}"),
            _pattern(0.1, r"\d{1,2}:\d{2}(:\d{2})?"),
            _pattern(0.3, r"[₩$€£]\s*\d{1,3}(,\d{3})*"),
            _terms(0.2, "점", "마트", "store"),
        ),
    ),
)

POLICIES: dict[str, ScoringPolicy] = {POLICY_V1.version: POLICY_V1}


def get_policy(version: str = "v1") -> ScoringPolicy:
    """Look up a registered scoring policy.

    Args:
        version: Policy version identifier.

    Returns:
        The matching policy.

    Raises:
        ValueError: If no policy is registered under ``version``.
    """
    try:
        return POLICIES[version]
    except KeyError:
        raise ValueError(
            f"Unknown classifier policy '{version}', "
            f"available: {', '.join(sorted(POLICIES))}"
        ) from None
