import json
from pathlib import Path
from typing import Any, Dict, List

from pitchpulse.run_logger import RUN_LOG_NAME


def read_steps(output_dir: Path) -> List[Dict[str, Any]]:
    log_path = output_dir / RUN_LOG_NAME
    if not log_path.exists():
        return []
    with open(log_path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
