"""UK income and dividend tax estimate (2025/26 thresholds).

Figures are annualised from the selected range, taxed, then pro-rated back to
the range for the HMRC position. Band thresholds apply to taxable income.
"""
from __future__ import annotations

import math
from datetime import date, datetime

import numpy as np

from ..utils import fmt_gbp, safe_divide
from .classify import CategoryRules
from .transactions import Transaction

PERSONAL_ALLOWANCE = 12570
TAPER_START = 100000
BASIC_END = 50270
ADDL_START = 125140
DIVIDEND_ALLOWANCE = 500
CGT_ALLOWANCE = 3000
PENSION_ALLOWANCE = 60000
ISA_ALLOWANCE = 20000

INCOME_RATES = {"basic": 0.20, "higher": 0.40, "addl": 0.45}
DIV_RATES = {"basic": 0.0875, "higher": 0.3375, "addl": 0.3935}
TAPER_MARGINAL_RATE = 0.60

DUE_SOON_DAYS = 30
EMTR_STEPS = 12
EMTR_MIN_CEILING = 60000
EMTR_HEADROOM = 1.3

# (key, title, month, day)
DEADLINES = [
    ("paymentOnAccount", "Payment on account", 7, 31),
    ("selfAssessment", "Self assessment filing", 1, 31),
]


def annualise(value: float, days: int) -> float:
    return value * (365 / max(1, days))


def deannualise(value: float, days: int) -> float:
    return value * (max(1, days) / 365)


def personal_allowance(annual_income: float) -> float:
    if annual_income <= TAPER_START:
        return PERSONAL_ALLOWANCE
    reduction = math.floor((annual_income - TAPER_START) / 2)
    return max(0, PERSONAL_ALLOWANCE - reduction)


def income_tax(taxable: float) -> float:
    if taxable <= 0:
        return 0.0
    tax = min(taxable, BASIC_END) * INCOME_RATES["basic"]
    if taxable > BASIC_END:
        tax += (min(taxable, ADDL_START) - BASIC_END) * INCOME_RATES["higher"]
    if taxable > ADDL_START:
        tax += (taxable - ADDL_START) * INCOME_RATES["addl"]
    return tax


def dividend_tax(dividends: float, taxable_salary: float) -> float:
    """Dividends sit on top of taxable salary; the allowance is used first."""
    remaining = max(0.0, dividends - DIVIDEND_ALLOWANCE)
    if remaining <= 0:
        return 0.0
    base = max(0.0, taxable_salary)
    basic_part = min(remaining, max(0.0, BASIC_END - base))
    remaining -= basic_part
    higher_part = min(remaining, max(0.0, ADDL_START - (base + basic_part)))
    remaining -= higher_part
    return (
        basic_part * DIV_RATES["basic"]
        + higher_part * DIV_RATES["higher"]
        + remaining * DIV_RATES["addl"]
    )


def tax_band_label(annual_income: float) -> str:
    taxable = max(0.0, annual_income - personal_allowance(annual_income))
    if taxable <= 0:
        return "Nil rate"
    if taxable <= BASIC_END:
        return "Basic rate"
    if taxable <= ADDL_START:
        return "Higher rate"
    return "Additional rate"


def marginal_rate(income: float) -> float:
    if TAPER_START < income <= ADDL_START:
        return TAPER_MARGINAL_RATE
    if income > ADDL_START:
        return INCOME_RATES["addl"]
    if income > BASIC_END:
        return INCOME_RATES["higher"]
    if income <= PERSONAL_ALLOWANCE:
        return 0.0
    return INCOME_RATES["basic"]


def emtr_curve(gross_annual_income: float) -> list[dict]:
    ceiling = max(EMTR_MIN_CEILING, math.ceil(gross_annual_income * EMTR_HEADROOM))
    incomes = [int(round(float(p))) for p in np.linspace(0, ceiling, EMTR_STEPS + 1)]
    return [{"income": inc, "rate": marginal_rate(inc)} for inc in incomes]


def split_income(income_by_category: list[dict], rules: CategoryRules) -> dict:
    """Range totals for salary, dividends and everything else."""
    salary = sum(row["amount"] for row in income_by_category if rules.is_salary(row["category"]))
    dividends = sum(
        row["amount"]
        for row in income_by_category
        if rules.is_dividend(row["category"]) and not rules.is_salary(row["category"])
    )
    total = sum(row["amount"] for row in income_by_category)
    return {"salary": salary, "dividends": dividends, "other": total - salary - dividends, "total": total}


def annual_tax(salary: float, dividends: float, other: float) -> dict:
    gross = salary + dividends + other
    pa = personal_allowance(gross)
    taxable_salary = max(0.0, salary + other - pa)
    tax_salary = income_tax(taxable_salary)
    tax_dividends = dividend_tax(dividends, taxable_salary)
    return {
        "grossIncome": gross,
        "personalAllowance": pa,
        "taxableIncome": taxable_salary,
        "taxOnSalary": tax_salary,
        "taxOnDividends": tax_dividends,
        "total": tax_salary + tax_dividends,
        "band": tax_band_label(gross),
    }


def observed_tax_payments(transactions: list[Transaction], rules: CategoryRules) -> float:
    return sum(-tx.amount for tx in transactions if tx.is_spend and rules.is_tax_payment(tx.category))


def hmrc_label(net: float) -> str:
    if net > 0:
        return f"Owe HMRC {fmt_gbp(net)}"
    if net < 0:
        return f"HMRC owes you {fmt_gbp(abs(net))}"
    return "Settled"


def build_allowances(salary_annual: float, dividends_annual: float, other_annual: float) -> list[dict]:
    entries = [
        ("personalAllowance", "Personal allowance", min(PERSONAL_ALLOWANCE, max(0.0, salary_annual + other_annual)), PERSONAL_ALLOWANCE),
        ("dividendAllowance", "Dividend allowance", min(DIVIDEND_ALLOWANCE, max(0.0, dividends_annual)), DIVIDEND_ALLOWANCE),
        ("cgtAllowance", "CGT annual exempt", 0.0, CGT_ALLOWANCE),
        ("pensionAnnual", "Pension annual allowance", min(PENSION_ALLOWANCE, max(0.0, salary_annual * 0.12)), PENSION_ALLOWANCE),
        ("isaAllowance", "ISA allowance", min(ISA_ALLOWANCE, max(0.0, dividends_annual * 0.25)), ISA_ALLOWANCE),
    ]
    return [
        {
            "key": key,
            "label": label,
            "used": round(used),
            "total": round(total),
            "utilisation": safe_divide(used, total),
        }
        for key, label, used, total in entries
    ]


def _next_occurrence(month: int, day: int, today: date) -> date:
    due = date(today.year, month, day)
    if due < today:
        due = due.replace(year=due.year + 1)
    return due


def build_obligations(liability: float, now: datetime) -> list[dict]:
    today = now.date()
    amount = max(0, round(liability / len(DEADLINES)))
    out = []
    for key, title, month, day in DEADLINES:
        due = _next_occurrence(month, day, today)
        out.append(
            {
                "key": key,
                "title": title,
                "dueDate": due.isoformat(),
                "amountDue": amount,
                "status": "due-soon" if (due - today).days <= DUE_SOON_DAYS else "scheduled",
            }
        )
    return sorted(out, key=lambda o: o["dueDate"])


def estimate_hmrc(income_by_category: list[dict], transactions: list[Transaction], days: int, rules: CategoryRules, now: datetime) -> dict:
    """Range-scoped tax estimate against observed payments to HMRC."""
    parts = split_income(income_by_category, rules)
    salary_ann = annualise(parts["salary"], days)
    dividends_ann = annualise(parts["dividends"], days)
    other_ann = annualise(parts["other"], days)
    tax = annual_tax(salary_ann, dividends_ann, other_ann)
    est_for_range = deannualise(tax["total"], days)
    paid = observed_tax_payments(transactions, rules)
    net = est_for_range - paid
    return {
        "income": {
            "salaryAnnual": salary_ann,
            "dividendsAnnual": dividends_ann,
            "otherAnnual": other_ann,
            "grossAnnual": tax["grossIncome"],
        },
        "tax": tax,
        "estTaxAnnual": tax["total"],
        "estTaxForRange": est_for_range,
        "paymentsInRange": paid,
        "net": net,
        "label": hmrc_label(net),
        "band": tax["band"],
        "allowances": build_allowances(salary_ann, dividends_ann, other_ann),
        "obligations": build_obligations(est_for_range, now),
        "emtr": emtr_curve(tax["grossIncome"]),
    }
