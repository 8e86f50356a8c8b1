from __future__ import annotations

from collections import defaultdict

from ..utils import coerce_float, safe_divide
from .transactions import category_label

ACCOUNT_TYPES = ("cash", "savings", "investment", "asset", "credit", "loan")
DEBT_TYPES = ("credit", "loan")


def normalize_accounts(records) -> list[dict]:
    out = []
    for rec in records or []:
        if not isinstance(rec, dict):
            continue
        acct_type = str(rec.get("type") or "").lower()
        if acct_type not in ACCOUNT_TYPES:
            continue
        out.append({"type": acct_type, "balance": coerce_float(rec.get("balance"), 0.0)})
    return out


def account_snapshot(accounts: list[dict], holdings_value: float = 0.0) -> dict:
    """Net worth from account balances; investments fall back to holdings value."""
    totals = defaultdict(float)
    for acct in accounts:
        totals[acct["type"]] += acct["balance"]
    cash = totals["cash"] + totals["savings"]
    investments = totals["investment"] or holdings_value
    debt = totals["credit"] + totals["loan"]
    return {
        "cash": cash,
        "investments": investments,
        "assets": totals["asset"],
        "credit": totals["credit"],
        "loans": totals["loan"],
        "debt": debt,
        "netWorth": cash + investments + totals["asset"] - debt,
    }


def debt_outstanding(accounts: list[dict]) -> float:
    return sum(max(0.0, acct["balance"]) for acct in accounts if acct["type"] in DEBT_TYPES)


def wealth_breakdown(plan: dict | None) -> dict:
    plan = plan or {}
    assets = [a for a in plan.get("assets") or [] if isinstance(a, dict)]
    liabilities = [l for l in plan.get("liabilities") or [] if isinstance(l, dict)]

    def _value(item):
        return coerce_float(item.get("value"), None) or coerce_float(item.get("balance"), 0.0)

    assets_total = sum(_value(a) for a in assets)
    liabilities_total = sum(coerce_float(l.get("balance"), 0.0) for l in liabilities)
    by_category = defaultdict(float)
    for a in assets:
        by_category[str(a.get("category") or "other").lower()] += _value(a)
    mix_total = sum(by_category.values())
    mix = [
        {"label": category_label(cat), "value": value, "share": safe_divide(value, mix_total)}
        for cat, value in by_category.items()
    ]
    return {
        "assetsTotal": assets_total,
        "liabilitiesTotal": liabilities_total,
        "netWorth": assets_total - liabilities_total,
        "assetMix": sorted(mix, key=lambda m: m["value"], reverse=True),
    }


def monthly_contributions(plan: dict | None) -> float:
    contributions = (plan or {}).get("contributions") or {}
    return coerce_float(contributions.get("monthly"), 0.0)


def liquidity(assets_total: float, liabilities_total: float) -> dict:
    if not liabilities_total:
        return {"ratio": None, "label": "No liabilities recorded"}
    ratio = safe_divide(assets_total, max(1.0, liabilities_total))
    return {"ratio": ratio, "label": f"{ratio:.2f}x asset coverage"}
