import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv


DEFAULT_SEC_USER_AGENT = "PitchPulse/1.0 (contact@pitchpulse.app)"


@dataclass
class AppConfig:
    sec_user_agent: str
    sec_timeout_seconds: int
    sec_max_retries: int
    sec_retry_base_delay: float
    cache_dir: Path
    cache_ttl_hours: int
    output_dir: Path
    debug: bool


def _int_env(name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return max(low, min(value, high))


def load_config() -> AppConfig:
    load_dotenv()
    user_agent = os.getenv("SEC_USER_AGENT", "").strip() or DEFAULT_SEC_USER_AGENT

    try:
        retry_base_delay = float(os.getenv("SEC_RETRY_BASE_DELAY", "1.0"))
    except ValueError:
        retry_base_delay = 1.0
    retry_base_delay = max(0.0, min(retry_base_delay, 30.0))

    return AppConfig(
        sec_user_agent=user_agent,
        sec_timeout_seconds=_int_env("SEC_TIMEOUT_SECONDS", 20, 1, 120),
        sec_max_retries=_int_env("SEC_MAX_RETRIES", 3, 1, 10),
        sec_retry_base_delay=retry_base_delay,
        cache_dir=Path(os.getenv("CACHE_DIR") or ".cache/sec").expanduser(),
        cache_ttl_hours=_int_env("CACHE_TTL_HOURS", 24, 1, 24 * 7),
        output_dir=Path(os.getenv("OUTPUT_DIR") or "outputs").expanduser(),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )
