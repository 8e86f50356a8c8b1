"""Insight seeds for the assistant panel, derived from dashboard alerts."""
from __future__ import annotations

from ..alerts.constants import MAX_INSIGHT_SEEDS

ACTION_BY_SEVERITY = {
    "danger": "View action plan",
}


def insight_seeds(alerts: list[dict], limit: int = MAX_INSIGHT_SEEDS) -> list[dict]:
    """First ``limit`` alerts in presentation order."""
    return [
        {
            "id": alert["id"],
            "title": alert["title"],
            "body": alert["body"],
            "action": ACTION_BY_SEVERITY.get(alert["severity"]),
        }
        for alert in alerts[:limit]
    ]
