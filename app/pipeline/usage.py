from __future__ import annotations

from .wealth import debt_outstanding


def compute_usage_stats(current_savings: dict, previous_savings: dict, accounts: list[dict], days: int) -> dict:
    """Progress figures stored alongside the user after each fresh computation."""
    spend_cur = current_savings["spend"]
    spend_prev = previous_savings["spend"]
    net_cur = current_savings["income"] - spend_cur
    net_prev = previous_savings["income"] - spend_prev
    debt = debt_outstanding(accounts)
    debt_reduced = min(debt, max(0.0, net_cur))
    saved_change = (spend_prev - spend_cur) / spend_prev * 100 if spend_prev > 0 else None
    return {
        "moneySavedEstimate": round(max(0.0, spend_prev - spend_cur)),
        "moneySavedPrevSpend": round(spend_prev),
        "moneySavedChangePct": None if saved_change is None else round(saved_change),
        "debtOutstanding": round(debt),
        "debtReduced": round(debt_reduced),
        "debtReductionDelta": round(debt_reduced - max(0.0, net_prev)),
        "netCashFlow": round(net_cur),
        "netCashPrev": round(net_prev),
        "usageWindowDays": days,
    }
