import json
from pathlib import Path

import structlog

from .utils import now_utc, iso_utc

log = structlog.get_logger()

FILES = {
    "transactions": ("transactions.json", "transactions"),
    "accounts": ("accounts.json", "accounts"),
    "holdings": ("holdings.json", "holdings"),
    "prices_history": ("prices_history.json", "series"),
    "users": ("users.json", "users"),
    "usage_stats": ("usage_stats.json", "usage"),
}

def _read_json(path: Path, default):
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        log.warning("store_json_invalid", path=str(path))
        return default

class JsonStore:
    """
    JSON-file data source for the dashboard engine.
    Each file holds either a bare list or ``{<collection>: [...]}``; records
    may carry a ``userId`` and are filtered to the requesting user when they do.
    """
    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def _collection(self, name: str) -> list:
        filename, field = FILES[name]
        raw = _read_json(self.data_dir / filename, [])
        if isinstance(raw, dict):
            raw = raw.get(field) or []
        return raw if isinstance(raw, list) else []

    def _for_user(self, name: str, user_id) -> list:
        return [
            rec for rec in self._collection(name)
            if not isinstance(rec, dict) or rec.get("userId") in (None, str(user_id))
        ]

    def load_user(self, user_id) -> dict:
        for rec in self._collection("users"):
            if isinstance(rec, dict) and str(rec.get("id")) == str(user_id):
                return rec
        return {"id": str(user_id)}

    def load_transactions(self, user_id) -> list:
        return self._for_user("transactions", user_id)

    def load_accounts(self, user_id) -> list:
        return self._for_user("accounts", user_id)

    def load_holdings(self, user_id) -> list:
        return self._for_user("holdings", user_id)

    def load_price_history(self, user_id) -> list:
        return self._collection("prices_history")

    def save_usage_stats(self, user_id, stats: dict):
        filename, field = FILES["usage_stats"]
        path = self.data_dir / filename
        doc = _read_json(path, {field: {}})
        if not isinstance(doc, dict) or not isinstance(doc.get(field), dict):
            doc = {field: {}}
        doc[field][str(user_id)] = {**stats, "updatedAt": iso_utc(now_utc())}
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
