from __future__ import annotations

DELTA_MODES = ("absolute", "percent")

TRACKED_METRICS = [
    ("income", "Income"),
    ("spend", "Spend"),
    ("essentials", "Essentials"),
    ("discretionary", "Discretionary"),
    ("savingsCapacity", "Savings capacity (monthly)"),
    ("hmrcBalance", "HMRC balance"),
]


def validate_delta_mode(mode: str | None, default: str = "absolute") -> str:
    mode = (mode or default).strip().lower()
    if mode not in DELTA_MODES:
        raise ValueError(f"delta_mode must be {'|'.join(DELTA_MODES)}")
    return mode


def _delta_abs(current: float, previous: float) -> float:
    return current - previous


def _delta_pct(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return (current - previous) / abs(previous) * 100


def compute_delta(current, previous, mode: str = "absolute") -> float:
    cur = float(current or 0)
    prev = float(previous or 0)
    if mode == "percent":
        return _delta_pct(cur, prev)
    return _delta_abs(cur, prev)


def metric_values(savings: dict, hmrc: dict) -> dict:
    return {
        "income": savings["income"],
        "spend": savings["spend"],
        "essentials": savings["essentials"],
        "discretionary": savings["discretionary"],
        "savingsCapacity": savings["monthlyCapacity"],
        "hmrcBalance": hmrc["net"],
    }


def build_comparatives(current: dict, previous: dict, mode: str) -> dict:
    rows = []
    for key, label in TRACKED_METRICS:
        cur = float(current.get(key) or 0)
        prev = float(previous.get(key) or 0)
        rows.append(
            {
                "key": key,
                "label": label,
                "current": cur,
                "previous": prev,
                "delta": compute_delta(cur, prev, mode),
                "deltaAbs": _delta_abs(cur, prev),
                "deltaPct": _delta_pct(cur, prev),
            }
        )
    return {"label": "vs previous period", "mode": mode, "values": rows}


def top_costs(spend_by_category: list[dict], prev_spend_by_category: list[dict], limit: int = 5) -> list[dict]:
    prev_map = {row["category"]: row["amount"] for row in prev_spend_by_category}
    return [
        {
            "label": row["label"],
            "value": round(row["amount"]),
            "previous": round(prev_map.get(row["category"], 0.0)),
            "change": round(_delta_pct(row["amount"], prev_map.get(row["category"], 0.0))),
        }
        for row in spend_by_category[:limit]
    ]
