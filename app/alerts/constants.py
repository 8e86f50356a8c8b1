from __future__ import annotations

# Thresholds (ratios unless noted)
DUPLICATE_MIN_CLUSTERS = 1
SAVINGS_CAPACITY_FLOOR = 0.0         # monthly £; below this is danger
ALLOWANCE_UTILISATION_WARNING = 0.9
SPEND_CONCENTRATION_SHARE = 0.35
HMRC_BALANCE_FLOOR = 0.0             # £; net above this is danger

# Insight seeds surfaced from the alert list
MAX_INSIGHT_SEEDS = 3

SEVERITIES = ("info", "warning", "danger")
