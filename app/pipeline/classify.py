from __future__ import annotations

from dataclasses import dataclass

from ..config import settings
from ..utils import split_csv


@dataclass(frozen=True)
class CategoryRules:
    """Keyword and category tables that drive classification.

    Matching is data, not control flow: callers pass a different instance to
    change which categories count as essential or which outflows are treated
    as payments to HMRC.
    """
    essential_categories: frozenset[str]
    tax_payment_keywords: tuple[str, ...]
    salary_keywords: tuple[str, ...]
    dividend_keywords: tuple[str, ...]

    @classmethod
    def from_settings(cls, cfg=None) -> "CategoryRules":
        cfg = cfg or settings
        return cls(
            essential_categories=frozenset(split_csv(cfg.essential_categories)),
            tax_payment_keywords=tuple(split_csv(cfg.tax_payment_keywords)),
            salary_keywords=tuple(split_csv(cfg.salary_keywords)),
            dividend_keywords=tuple(split_csv(cfg.dividend_keywords)),
        )

    def is_essential(self, category: str | None) -> bool:
        return (category or "").strip().lower() in self.essential_categories

    def is_tax_payment(self, text: str | None) -> bool:
        return _contains_any(text, self.tax_payment_keywords)

    def is_salary(self, category: str | None) -> bool:
        return _contains_any(category, self.salary_keywords)

    def is_dividend(self, category: str | None) -> bool:
        return _contains_any(category, self.dividend_keywords)


def _contains_any(text: str | None, keywords) -> bool:
    lowered = (text or "").lower()
    return any(kw in lowered for kw in keywords)
