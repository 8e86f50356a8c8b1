from __future__ import annotations

from datetime import timedelta

from ..utils import add_months, start_of_month
from .ranges import DateRange
from .transactions import Transaction

# UK CPI index (2015=100), monthly.
CPI_INDEX = {
    "2023-10": 127.4,
    "2023-11": 127.7,
    "2023-12": 128.2,
    "2024-01": 128.7,
    "2024-02": 129.1,
    "2024-03": 129.8,
    "2024-04": 130.2,
    "2024-05": 130.5,
    "2024-06": 130.9,
    "2024-07": 131.1,
    "2024-08": 131.4,
    "2024-09": 131.8,
    "2024-10": 132.2,
    "2024-11": 132.6,
    "2024-12": 133.1,
}


def index_for(month_key: str, table: dict | None = None) -> float:
    """Exact month, else the latest earlier month, else the earliest known."""
    table = CPI_INDEX if table is None else table
    if month_key in table:
        return table[month_key]
    keys = sorted(table)
    if not keys:
        return 100.0
    before = [k for k in keys if k <= month_key]
    return table[before[-1]] if before else table[keys[0]]


def inflation_trend(transactions: list[Transaction], rng: DateRange, months_back: int = 6, table: dict | None = None) -> list[dict]:
    """Nominal vs real (range-end prices) monthly spend ending at the range end."""
    anchor = start_of_month(rng.end - timedelta(microseconds=1))
    base_index = index_for(anchor.strftime("%Y-%m"), table)
    spend_by_month = {}
    for tx in transactions:
        if tx.is_spend:
            key = tx.date.strftime("%Y-%m")
            spend_by_month[key] = spend_by_month.get(key, 0.0) - tx.amount
    points = []
    for offset in range(months_back - 1, -1, -1):
        month = add_months(anchor, -offset)
        key = month.strftime("%Y-%m")
        nominal = spend_by_month.get(key, 0.0)
        index = index_for(key, table) or base_index
        points.append(
            {
                "label": month.strftime("%b %Y"),
                "month": key,
                "nominal": round(nominal),
                "real": round(nominal * (base_index / index)),
            }
        )
    return points
