from __future__ import annotations

from typing import List

import structlog

from ..utils import fmt_gbp
from .constants import (
    ALLOWANCE_UTILISATION_WARNING,
    DUPLICATE_MIN_CLUSTERS,
    HMRC_BALANCE_FLOOR,
    SAVINGS_CAPACITY_FLOOR,
    SEVERITIES,
    SPEND_CONCENTRATION_SHARE,
)

log = structlog.get_logger()


def _mk(alert_id: str, severity: str, title: str, body: str) -> dict:
    if severity not in SEVERITIES:
        raise ValueError(f"unknown severity {severity}")
    return {"id": alert_id, "severity": severity, "title": title, "body": body}


def _fmt_pct(x, precision: int = 1):
    return f"{float(x) * 100:.{precision}f}%"


def evaluate_alerts(
    duplicates: list[dict],
    savings: dict,
    allowances: list[dict],
    spend_by_category: list[dict],
    hmrc: dict,
) -> List[dict]:
    """Fixed-threshold alerts for one dashboard computation."""
    alerts: List[dict] = []

    # 1) Possible duplicates
    if len(duplicates) >= DUPLICATE_MIN_CLUSTERS:
        alerts.append(
            _mk(
                "duplicates",
                "warning",
                "Possible duplicate transactions",
                f"{len(duplicates)} group(s) share the same date, amount and description. Review before reconciling.",
            )
        )

    # 2) Cashflow
    if savings["monthlyCapacity"] < SAVINGS_CAPACITY_FLOOR:
        alerts.append(
            _mk(
                "cashflow",
                "danger",
                "Negative savings capacity",
                "Spending and commitments exceed income in the selected range. Consider trimming discretionary costs.",
            )
        )

    # 3) Allowances close to exhausted
    for allowance in allowances:
        if allowance["utilisation"] > ALLOWANCE_UTILISATION_WARNING:
            alerts.append(
                _mk(
                    f"allowance-{allowance['key']}",
                    "warning",
                    f"{allowance['label']} nearly used",
                    f"You have used {_fmt_pct(allowance['utilisation'], 0)} of this allowance. Plan top-ups carefully.",
                )
            )

    # 4) Spend concentration
    top = spend_by_category[0] if spend_by_category else None
    if top and top["share"] > SPEND_CONCENTRATION_SHARE:
        alerts.append(
            _mk(
                "concentration",
                "info",
                "Spend concentrated in one area",
                f"{top['label']} makes up {_fmt_pct(top['share'])} of spend. Check for optimisation opportunities.",
            )
        )

    # 5) Money owed to HMRC
    if hmrc["net"] > HMRC_BALANCE_FLOOR:
        alerts.append(
            _mk(
                "hmrc-due",
                "danger",
                "Provision for HMRC due",
                f"Set aside {fmt_gbp(hmrc['net'])} for upcoming payments.",
            )
        )

    log.debug("alerts_evaluated", count=len(alerts), ids=[a["id"] for a in alerts])
    return alerts
