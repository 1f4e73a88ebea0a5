import json
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional


SEC_FINANCIALS = "sec_financials"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FinancialsCache:
    """JSON file cache with one entry per (run_id, data_type) and a fixed lifetime."""

    def __init__(
        self,
        cache_dir: Path,
        ttl_hours: int = 24,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = timedelta(hours=ttl_hours)
        self._now = clock or _utcnow

    def _path(self, run_id: str, data_type: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", f"{run_id}__{data_type}")
        return self.cache_dir / f"{safe}.json"

    def get(self, run_id: str, data_type: str = SEC_FINANCIALS) -> Optional[Dict[str, Any]]:
        path = self._path(run_id, data_type)
        if not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            expired = datetime.fromisoformat(entry["expires_at"]) <= self._now()
        except (OSError, ValueError, KeyError, TypeError):
            expired = True
        if expired:
            path.unlink(missing_ok=True)
            return None
        return entry

    def put(
        self,
        run_id: str,
        data: Dict[str, Any],
        data_type: str = SEC_FINANCIALS,
        source: str = "sec_edgar",
    ) -> Dict[str, Any]:
        fetched_at = self._now()
        entry = {
            "run_id": run_id,
            "data_type": data_type,
            "source": source,
            "fetched_at": fetched_at.isoformat(),
            "expires_at": (fetched_at + self.ttl).isoformat(),
            "data": data,
        }
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(self._path(run_id, data_type), "w", encoding="utf-8") as f:
            json.dump(entry, f, ensure_ascii=False, indent=2)
        return entry
