from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

import structlog

from ..utils import coerce_float, day_key, parse_datetime, safe_divide, start_of_day
from .classify import CategoryRules
from .ranges import DateRange

log = structlog.get_logger()

DEFAULT_CATEGORY = "Uncategorised"
TOP_MERCHANTS = 8
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Transaction:
    date: datetime
    amount: float
    category: str
    description: str
    account_id: str | None = None

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_spend(self) -> bool:
        return self.amount < 0


def normalize_transactions(records) -> list[Transaction]:
    """Coerce collaborator records; records with unparsable dates are dropped."""
    out = []
    dropped = 0
    for rec in records or []:
        if not isinstance(rec, dict):
            dropped += 1
            continue
        when = parse_datetime(rec.get("date"))
        if when is None:
            dropped += 1
            continue
        category = rec.get("category") or rec.get("personal_finance_category") or DEFAULT_CATEGORY
        description = rec.get("description") or rec.get("merchant_name") or rec.get("name") or ""
        account_id = rec.get("accountId") or rec.get("account_id")
        out.append(
            Transaction(
                date=start_of_day(when),
                amount=coerce_float(rec.get("amount"), 0.0),
                category=str(category),
                description=str(description),
                account_id=str(account_id) if account_id is not None else None,
            )
        )
    if dropped:
        log.info("transactions_dropped", dropped=dropped, kept=len(out))
    return out


def filter_in_range(transactions: list[Transaction], rng: DateRange) -> list[Transaction]:
    return [tx for tx in transactions if rng.contains(tx.date)]


def total_income(transactions: list[Transaction]) -> float:
    return sum(tx.amount for tx in transactions if tx.is_income)


def total_spend(transactions: list[Transaction]) -> float:
    return sum(-tx.amount for tx in transactions if tx.is_spend)


def category_label(category: str) -> str:
    return " / ".join(part[:1].upper() + part[1:] for part in category.split("/"))


def _categorise(transactions: list[Transaction], sign: int) -> list[dict]:
    buckets = defaultdict(float)
    for tx in transactions:
        if tx.amount * sign <= 0:
            continue
        buckets[tx.category.strip().lower() or DEFAULT_CATEGORY.lower()] += abs(tx.amount)
    total = sum(buckets.values())
    rows = [
        {
            "category": cat,
            "label": category_label(cat),
            "amount": amount,
            "share": safe_divide(amount, total),
        }
        for cat, amount in buckets.items()
        if amount != 0
    ]
    return sorted(rows, key=lambda row: row["amount"], reverse=True)


def categorise_spend(transactions: list[Transaction]) -> list[dict]:
    return _categorise(transactions, -1)


def categorise_income(transactions: list[Transaction]) -> list[dict]:
    return _categorise(transactions, 1)


def _normalise_description(text: str) -> str:
    return _WS_RE.sub(" ", (text or "").strip().lower()) or "unknown"


def detect_duplicates(transactions: list[Transaction]) -> list[dict]:
    """Same day, same amount in minor units, same normalised description.

    A review aid only: recurring identical payments on one day are flagged too.
    """
    groups = defaultdict(list)
    for tx in transactions:
        key = (day_key(tx.date), round(tx.amount * 100), _normalise_description(tx.description))
        groups[key].append(tx)
    clusters = []
    for items in groups.values():
        if len(items) < 2:
            continue
        first = items[0]
        clusters.append(
            {
                "date": day_key(first.date),
                "amount": first.amount,
                "description": first.description or "Unlabelled transaction",
                "count": len(items),
                "distinctAccountIds": sorted({tx.account_id for tx in items if tx.account_id}),
            }
        )
    return sorted(clusters, key=lambda c: abs(c["amount"]), reverse=True)


def top_merchants(transactions: list[Transaction], limit: int = TOP_MERCHANTS) -> list[dict]:
    spend = defaultdict(float)
    counts = defaultdict(int)
    names = {}
    for tx in transactions:
        if not tx.is_spend:
            continue
        key = _normalise_description(tx.description)
        names.setdefault(key, tx.description.strip() or "Unknown")
        spend[key] += -tx.amount
        counts[key] += 1
    rows = [
        {"name": names[key], "amount": amount, "transactions": counts[key]}
        for key, amount in spend.items()
        if amount != 0
    ]
    rows.sort(key=lambda row: row["amount"], reverse=True)
    return rows[:limit]


def savings_capacity(transactions: list[Transaction], rng: DateRange, rules: CategoryRules, contributions: float = 0.0) -> dict:
    income = total_income(transactions)
    spend = total_spend(transactions)
    essentials = sum(-tx.amount for tx in transactions if tx.is_spend and rules.is_essential(tx.category))
    discretionary = max(0.0, spend - essentials)
    net = income - spend - contributions
    monthly = net * (30 / rng.days)
    if monthly < 0:
        status = "behind"
    elif monthly > 500:
        status = "ahead"
    else:
        status = "steady"
    return {
        "income": income,
        "spend": spend,
        "essentials": essentials,
        "discretionary": discretionary,
        "contributions": contributions,
        "net": net,
        "monthlyCapacity": monthly,
        "savingsRate": max(0.0, safe_divide(income - spend, income)),
        "status": status,
    }


def aggregate(transactions: list[Transaction], rng: DateRange, rules: CategoryRules, contributions: float = 0.0, merchants_limit: int = TOP_MERCHANTS) -> dict:
    """All range-scoped transaction aggregates for one window."""
    in_range = filter_in_range(transactions, rng)
    return {
        "transactions": in_range,
        "spendByCategory": categorise_spend(in_range),
        "incomeByCategory": categorise_income(in_range),
        "duplicates": detect_duplicates(in_range),
        "merchants": top_merchants(in_range, merchants_limit),
        "savings": savings_capacity(in_range, rng, rules, contributions),
    }
