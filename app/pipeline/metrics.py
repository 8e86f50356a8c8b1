from __future__ import annotations

import numpy as np
import pandas as pd

ANNUAL_PERIODS = 12


def _as_series(history: list[dict]) -> pd.Series:
    if not history:
        return pd.Series(dtype=float)
    index = pd.to_datetime([point["date"] for point in history], utc=True)
    return pd.Series([float(point["value"]) for point in history], index=index).sort_index()


def period_returns(values: pd.Series) -> pd.Series:
    if values is None or values.empty:
        return pd.Series(dtype=float)
    v = values[values > 0]
    if v.size < 2:
        return pd.Series(dtype=float)
    return (v / v.shift(1) - 1.0).dropna()


def annualized_volatility(returns: pd.Series, periods: int = ANNUAL_PERIODS) -> float | None:
    if returns is None or returns.size < 2:
        return None
    return float(returns.std(ddof=0) * np.sqrt(periods))


def max_drawdown(values: pd.Series) -> float | None:
    v = values[values > 0] if values is not None else None
    if v is None or v.empty:
        return None
    peak = v.cummax()
    dd = v / peak - 1.0
    return float(dd.min())


def history_risk(history: list[dict]) -> dict:
    """Drawdown and volatility of the monthly valuation series."""
    values = _as_series(history)
    returns = period_returns(values)
    return {
        "maxDrawdownPct": _pct(max_drawdown(values)),
        "volatilityPct": _pct(annualized_volatility(returns)),
        "months": int(values.size),
    }


def _pct(val: float | None) -> float | None:
    return None if val is None else round(val * 100, 3)
