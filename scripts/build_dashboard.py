from pathlib import Path
import argparse
import os
import sys
import json

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from app.config import settings
from app.logging import setup_logging
from app.pipeline.orchestrator import DashboardEngine, preferred_delta_mode
from app.pipeline.ranges import resolve_range, resolve_tax_range
from app.store import JsonStore


def main(user_id: str, preset: str | None, start: str | None, end: str | None, delta_mode: str | None, tax: bool, data_dir: str):
    engine = DashboardEngine(JsonStore(data_dir))
    user = JsonStore(data_dir).load_user(user_id)
    if tax:
        rng = resolve_tax_range(preset, start, end)
        payload = engine.tax_summary(user, rng)
        out_name = f"tax-{user_id}-{rng.start.date().isoformat()}.json"
    else:
        rng = resolve_range(preset, start, end)
        payload = engine.compute_dashboard(user, rng, delta_mode or preferred_delta_mode(user))
        out_name = f"dashboard-{user_id}-{rng.start.date().isoformat()}.json"
    with open(out_name, "w") as f:
        json.dump(payload, f, indent=2, sort_keys=False)
    print("Wrote", out_name)


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Compute a dashboard (or tax summary) payload from JSON data files.")
    ap.add_argument("--user", default=settings.default_user_id)
    ap.add_argument("--preset", default=None, help="last-month|last-quarter|last-year|year-to-date")
    ap.add_argument("--start", default=None)
    ap.add_argument("--end", default=None)
    ap.add_argument("--delta-mode", default=None, choices=["absolute", "percent"])
    ap.add_argument("--tax", action="store_true", help="tax-path summary (last-year = previous tax year)")
    ap.add_argument("--data-dir", default=settings.data_dir)
    args = ap.parse_args()
    setup_logging()
    try:
        main(args.user, args.preset, args.start, args.end, args.delta_mode, args.tax, args.data_dir)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2)
