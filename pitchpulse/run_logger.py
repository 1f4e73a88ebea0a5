import json
import time
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict

RUN_LOG_NAME = "run.log"


def _json_default(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def log_step(output_dir: Path, step: str, payload: Dict[str, Any]) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    entry = {"ts": time.time(), "step": step, "payload": payload}
    with open(output_dir / RUN_LOG_NAME, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False, default=_json_default) + "\n")

