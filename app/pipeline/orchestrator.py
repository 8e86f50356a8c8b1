import time
from dataclasses import dataclass, field

import structlog

from ..cache_layer import ResultCache
from ..config import settings
from ..services.ai_insights import insight_seeds
from ..utils import now_utc, iso_utc
from ..alerts.evaluator import evaluate_alerts
from .classify import CategoryRules
from .comparatives import build_comparatives, compute_delta, metric_values, top_costs, validate_delta_mode
from .holdings import build_series_map, holdings_value, normalize_holdings, value_portfolio
from .inflation import inflation_trend
from .ranges import DateRange, tax_year_label
from .tax import estimate_hmrc
from .transactions import aggregate, normalize_transactions
from .usage import compute_usage_stats
from .wealth import account_snapshot, liquidity, monthly_contributions, normalize_accounts, wealth_breakdown

log = structlog.get_logger()

_SAVINGS_SUBLABEL = {
    "ahead": "Plenty of headroom for goals.",
    "steady": "Balanced cashflow this period.",
    "behind": "Overspending detected this period.",
}
_SAVINGS_NOTE = {
    "ahead": "Comfortably covering commitments this period.",
    "steady": "Cashflow balanced; monitor upcoming expenses.",
    "behind": "Cashflow negative; plan adjustments.",
}


@dataclass
class DashboardInputs:
    transactions: list = field(default_factory=list)
    accounts: list = field(default_factory=list)
    holdings: list = field(default_factory=list)
    series_map: dict = field(default_factory=dict)


def preferred_delta_mode(user: dict, default: str | None = None) -> str:
    prefs = (user or {}).get("preferences") or {}
    return validate_delta_mode(prefs.get("comparativesMode"), default or settings.default_delta_mode)


def _user_id(user: dict) -> str:
    user = user or {}
    return str(user.get("id") or user.get("_id") or "unknown")


def compute_state(user: dict, rng: DateRange, inputs: DashboardInputs, rules: CategoryRules, now, merchants_limit: int = 8) -> dict:
    """Every aggregate the payload is assembled from, for the range and its predecessor."""
    plan = (user or {}).get("wealthPlan") or {}
    contributions = monthly_contributions(plan)
    prev_rng = rng.previous()

    current = aggregate(inputs.transactions, rng, rules, contributions, merchants_limit)
    previous = aggregate(inputs.transactions, prev_rng, rules, contributions, merchants_limit)
    hmrc = estimate_hmrc(current["incomeByCategory"], current["transactions"], rng.days, rules, now)
    prev_hmrc = estimate_hmrc(previous["incomeByCategory"], previous["transactions"], prev_rng.days, rules, now)
    portfolio = value_portfolio(inputs.holdings, inputs.series_map, rng)
    return {
        "range": rng,
        "previousRange": prev_rng,
        "current": current,
        "previous": previous,
        "hmrc": hmrc,
        "prevHmrc": prev_hmrc,
        "portfolio": portfolio,
        "accounts": account_snapshot(inputs.accounts, holdings_value(inputs.holdings, inputs.series_map)),
        "hasAccounts": bool(inputs.accounts),
        "wealth": wealth_breakdown(plan),
    }


def _metric(key: str, label: str, value: float, delta: float, mode: str, sub_label: str | None = None) -> dict:
    out = {"key": key, "label": label, "value": round(value), "format": "currency", "delta": delta, "deltaMode": mode}
    if sub_label:
        out["subLabel"] = sub_label
    return out


def _net_worth_block(state: dict, now) -> dict:
    wealth = state["wealth"]
    if state["hasAccounts"]:
        snap = state["accounts"]
        assets_total = snap["cash"] + snap["investments"] + snap["assets"]
        liabilities_total = snap["debt"]
        source = "accounts"
    else:
        assets_total = wealth["assetsTotal"]
        liabilities_total = wealth["liabilitiesTotal"]
        source = "wealthPlan"
    net = assets_total - liabilities_total
    return {
        "netWorth": {"total": round(net), "asOf": iso_utc(now), "source": source},
        "breakdown": [
            {"label": "Assets", "value": round(assets_total)},
            {"label": "Liabilities", "value": round(liabilities_total)},
            {"label": "Net worth", "value": round(net)},
        ],
        "liquidity": liquidity(assets_total, liabilities_total),
    }


def assemble_payload(user: dict, state: dict, mode: str, trend: list[dict], now) -> dict:
    rng = state["range"]
    cur = state["current"]
    savings = cur["savings"]
    prev_savings = state["previous"]["savings"]
    hmrc = state["hmrc"]
    portfolio = state["portfolio"]
    spend_by_category = cur["spendByCategory"]
    income_by_category = cur["incomeByCategory"]

    current_values = metric_values(savings, hmrc)
    previous_values = metric_values(prev_savings, state["prevHmrc"])
    comparatives = build_comparatives(current_values, previous_values, mode)

    def _delta(key):
        return compute_delta(current_values[key], previous_values[key], mode)

    hmrc_balance = {
        "value": round(hmrc["net"]),
        "label": hmrc["label"],
        "delta": _delta("hmrcBalance"),
        "deltaMode": mode,
        "band": hmrc["band"],
        "estTaxAnnual": round(hmrc["estTaxAnnual"]),
        "estTaxForRange": round(hmrc["estTaxForRange"]),
        "paymentsInRange": round(hmrc["paymentsInRange"]),
    }
    alerts = evaluate_alerts(cur["duplicates"], savings, hmrc["allowances"], spend_by_category, hmrc)
    metrics = [
        _metric("income", "Gross income", savings["income"], _delta("income"), mode),
        _metric("spend", "Total spend", savings["spend"], _delta("spend"), mode),
        _metric(
            "savingsCapacity",
            "Savings capacity (monthly)",
            savings["monthlyCapacity"],
            _delta("savingsCapacity"),
            mode,
            _SAVINGS_SUBLABEL[savings["status"]],
        ),
        _metric("hmrcBalance", hmrc["label"], hmrc["net"], _delta("hmrcBalance"), mode, "Provision for obligations in this period."),
    ]

    posture = _net_worth_block(state, now)
    top_income = ", ".join(c["label"] for c in income_by_category[:2])
    top_spend = ", ".join(c["label"] for c in spend_by_category[:2])
    posture.update(
        {
            "savings": {
                "monthlyCapacity": round(savings["monthlyCapacity"]),
                "savingsRate": savings["savingsRate"],
                "essentials": round(savings["essentials"]),
                "discretionary": round(savings["discretionary"]),
                "contributions": round(savings["contributions"]),
                "status": savings["status"],
                "note": _SAVINGS_NOTE[savings["status"]],
            },
            "assetMix": state["wealth"]["assetMix"],
            "income": {
                "total": round(savings["income"]),
                "note": f"Top sources: {top_income}" if top_income else "Connect payroll and other income sources to populate.",
                "series": [{"label": c["label"], "value": round(c["amount"])} for c in income_by_category],
            },
            "spend": {
                "total": round(savings["spend"]),
                "note": f"Largest areas: {top_spend}" if top_spend else "No spending recorded in this period.",
                "series": [{"label": c["label"], "value": round(c["amount"])} for c in spend_by_category],
            },
            "topCosts": top_costs(spend_by_category, state["previous"]["spendByCategory"]),
            "investments": {
                "allocation": portfolio["allocation"],
                "history": [{"label": p["label"], "date": p["date"], "value": p["value"]} for p in portfolio["history"]],
                "ytd": portfolio["ytd"],
                "currentValue": portfolio["currentValue"],
                "risk": portfolio["risk"],
            },
        }
    )

    return {
        "range": rng.to_dict(),
        "hasData": bool(cur["transactions"]),
        "preferences": (user or {}).get("preferences") or {},
        "accounting": {
            "metrics": metrics,
            "spendByCategory": spend_by_category,
            "incomeByCategory": income_by_category,
            "duplicates": cur["duplicates"],
            "merchants": cur["merchants"],
            "inflationTrend": trend,
            "allowances": hmrc["allowances"],
            "obligations": hmrc["obligations"],
            "alerts": alerts,
            "comparatives": comparatives,
            "hmrcBalance": hmrc_balance,
            "emtr": hmrc["emtr"],
        },
        "financialPosture": posture,
        "aiInsights": insight_seeds(alerts),
        "gating": {"tier": (user or {}).get("licenseTier") or settings.default_license_tier},
        "computedAt": iso_utc(now),
    }


class DashboardEngine:
    """Computes dashboard payloads over data supplied by ``source``.

    ``source`` provides ``load_transactions``, ``load_accounts``,
    ``load_holdings`` and ``load_price_history`` (each taking a user id) and
    optionally ``save_usage_stats(user_id, stats)``.
    """

    def __init__(self, source, cache: ResultCache | None = None, rules: CategoryRules | None = None, clock=None, cfg=None):
        self.source = source
        self.cache = cache
        self.cfg = cfg or settings
        self.rules = rules or CategoryRules.from_settings(self.cfg)
        self.clock = clock or now_utc

    def load_inputs(self, user_id: str) -> DashboardInputs:
        return DashboardInputs(
            transactions=normalize_transactions(self.source.load_transactions(user_id)),
            accounts=normalize_accounts(self.source.load_accounts(user_id)),
            holdings=normalize_holdings(self.source.load_holdings(user_id)),
            series_map=build_series_map(self.source.load_price_history(user_id)),
        )

    def compute_dashboard(self, user: dict, rng: DateRange, delta_mode: str = "absolute") -> dict:
        mode = validate_delta_mode(delta_mode)
        user_id = _user_id(user)

        def _compute():
            return self._compute(user, user_id, rng, mode)

        if self.cache is None:
            return _compute()
        cache_key = self.cache.make_key(user_id, rng.key, mode)
        payload, hit, age = self.cache.fetch(cache_key, _compute)
        if hit:
            log.info("dashboard_cache_hit", user_id=user_id, range_key=rng.key, delta_mode=mode, age_seconds=round(age, 1))
        return payload

    def _compute(self, user: dict, user_id: str, rng: DateRange, mode: str) -> dict:
        started = time.monotonic()
        now = self.clock()
        inputs = self.load_inputs(user_id)
        state = compute_state(user, rng, inputs, self.rules, now, self.cfg.top_merchants_limit)
        trend = inflation_trend(inputs.transactions, rng, self.cfg.inflation_trend_months)
        payload = assemble_payload(user, state, mode, trend, now)
        log.info(
            "dashboard_computed",
            user_id=user_id,
            range_key=rng.key,
            delta_mode=mode,
            transactions=len(state["current"]["transactions"]),
            alerts=len(payload["accounting"]["alerts"]),
            elapsed_ms=round((time.monotonic() - started) * 1000, 2),
        )
        self._persist_usage(user_id, state, inputs)
        return payload

    def _persist_usage(self, user_id: str, state: dict, inputs: DashboardInputs):
        save = getattr(self.source, "save_usage_stats", None)
        if save is None:
            return
        try:
            stats = compute_usage_stats(
                state["current"]["savings"],
                state["previous"]["savings"],
                inputs.accounts,
                state["range"].days,
            )
            save(user_id, stats)
        except Exception:
            log.warning("usage_stats_persist_failed", user_id=user_id, exc_info=True)

    def tax_summary(self, user: dict, rng: DateRange) -> dict:
        """Tax-path view: band, HMRC position, EMTR, allowances and deadlines."""
        user_id = _user_id(user)
        now = self.clock()
        transactions = normalize_transactions(self.source.load_transactions(user_id))
        current = aggregate(transactions, rng, self.rules, 0.0, self.cfg.top_merchants_limit)
        hmrc = estimate_hmrc(current["incomeByCategory"], current["transactions"], rng.days, self.rules, now)
        return {
            "year": tax_year_label(rng.start),
            "currency": "GBP",
            "range": rng.to_dict(),
            "kpis": {
                "taxBand": hmrc["band"],
                "hmrc": {
                    "estTaxAnnual": round(hmrc["estTaxAnnual"]),
                    "estTaxForRange": round(hmrc["estTaxForRange"]),
                    "paymentsInRange": round(hmrc["paymentsInRange"]),
                    "netForRange": round(hmrc["net"]),
                    "label": hmrc["label"],
                },
                "incomeTotal": round(current["savings"]["income"]),
                "spendTotal": round(current["savings"]["spend"]),
            },
            "income": hmrc["income"],
            "tax": hmrc["tax"],
            "emtr": hmrc["emtr"],
            "allowances": hmrc["allowances"],
            "obligations": hmrc["obligations"],
        }


def build_engine(source, cfg=None) -> DashboardEngine:
    cfg = cfg or settings
    cache = ResultCache(cfg.result_cache_ttl_seconds) if bool(cfg.result_cache_enabled) else None
    return DashboardEngine(source, cache=cache, cfg=cfg)
