from __future__ import annotations

from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..utils import add_months, coerce_float, iso_utc, parse_datetime, safe_divide, start_of_month
from . import metrics
from .ranges import DateRange

UNKNOWN_ASSET_CLASS = "Unknown"


@dataclass(frozen=True)
class Holding:
    symbol: str
    qty: float
    asset_class: str
    last_price: float | None = None


@dataclass(frozen=True)
class PriceSeries:
    """Ascending (date, price) points for one symbol."""
    dates: tuple
    prices: tuple

    def __len__(self):
        return len(self.dates)

    @property
    def last_price(self) -> float | None:
        return self.prices[-1] if self.prices else None


def normalize_holdings(records) -> list[Holding]:
    out = []
    for rec in records or []:
        if not isinstance(rec, dict):
            continue
        symbol = rec.get("symbol")
        if not symbol:
            continue
        out.append(
            Holding(
                symbol=str(symbol).upper(),
                qty=coerce_float(rec.get("qty", rec.get("shares")), 0.0),
                asset_class=str(rec.get("assetClass") or rec.get("asset_class") or UNKNOWN_ASSET_CLASS),
                last_price=coerce_float(rec.get("lastPrice", rec.get("last_price"))),
            )
        )
    return out


def build_series_map(price_history) -> dict[str, PriceSeries]:
    """Accepts ``[{symbol, data: [{date, price}]}]`` or ``{"series": [...]}``."""
    if isinstance(price_history, dict):
        price_history = price_history.get("series") or []
    out = {}
    for series in price_history or []:
        if not isinstance(series, dict) or not series.get("symbol"):
            continue
        points = []
        for pt in series.get("data") or []:
            when = parse_datetime(pt.get("date")) if isinstance(pt, dict) else None
            price = coerce_float(pt.get("price")) if isinstance(pt, dict) else None
            if when is None or price is None:
                continue
            points.append((when, price))
        # Stable sort keeps collaborator order for repeated dates.
        points.sort(key=lambda p: p[0])
        out[str(series["symbol"]).upper()] = PriceSeries(
            dates=tuple(p[0] for p in points),
            prices=tuple(p[1] for p in points),
        )
    return out


def price_on_or_before(series: PriceSeries | None, when: datetime) -> float | None:
    """Most recent price at or before ``when``; None if empty or all later."""
    if not series:
        return None
    idx = bisect_right(series.dates, when)
    if idx == 0:
        return None
    return series.prices[idx - 1]


def latest_price(holding: Holding, series_map: dict[str, PriceSeries]) -> float:
    series = series_map.get(holding.symbol)
    if series and series.last_price is not None:
        return series.last_price
    return holding.last_price or 0.0


def month_grid(rng: DateRange) -> list[tuple[datetime, datetime]]:
    """(month_start, reference) for every month the range touches.

    The reference is the last instant of the month that still lies inside the
    range, so the final partial month is valued as of the range end.
    """
    last_instant = rng.end - timedelta(microseconds=1)
    month = start_of_month(rng.start)
    out = []
    while month <= last_instant:
        nxt = add_months(month, 1)
        out.append((month, min(nxt, rng.end) - timedelta(microseconds=1)))
        month = nxt
    if not out:
        out.append((start_of_month(rng.start), rng.start))
    return out


def portfolio_history(holdings: list[Holding], series_map: dict[str, PriceSeries], rng: DateRange) -> list[dict]:
    points = []
    for month, ref in month_grid(rng):
        value = 0.0
        priced = 0
        for h in holdings:
            px = price_on_or_before(series_map.get(h.symbol), ref)
            if px is None:
                continue
            value += h.qty * px
            priced += 1
        points.append(
            {
                "label": month.strftime("%b %y"),
                "date": iso_utc(month),
                "value": round(value, 2),
                "pricedHoldings": priced,
                "holdings": len(holdings),
            }
        )
    return points


def asset_allocation(holdings: list[Holding], series_map: dict[str, PriceSeries]) -> list[dict]:
    buckets = defaultdict(float)
    for h in holdings:
        buckets[h.asset_class] += h.qty * latest_price(h, series_map)
    total = sum(buckets.values())
    rows = [
        {"label": label, "value": round(value, 2), "pct": round(safe_divide(value, total) * 100, 2)}
        for label, value in buckets.items()
    ]
    return sorted(rows, key=lambda row: row["value"], reverse=True)


def holdings_value(holdings: list[Holding], series_map: dict[str, PriceSeries]) -> float:
    return sum(h.qty * latest_price(h, series_map) for h in holdings)


def ytd_return_pct(history: list[dict]) -> float:
    if len(history) < 2:
        return 0.0
    first = history[0]["value"]
    last = history[-1]["value"]
    if not first:
        return 0.0
    return (last / first - 1) * 100


def value_portfolio(holdings: list[Holding], series_map: dict[str, PriceSeries], rng: DateRange) -> dict:
    history = portfolio_history(holdings, series_map, rng)
    return {
        "history": history,
        "allocation": asset_allocation(holdings, series_map),
        "ytd": ytd_return_pct(history),
        "currentValue": round(holdings_value(holdings, series_map), 2),
        "risk": metrics.history_risk(history),
    }
