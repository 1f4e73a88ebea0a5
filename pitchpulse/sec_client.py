import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from .run_logger import log_step


SEC_TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"
SEC_COMPANYFACTS_URL = "https://data.sec.gov/api/xbrl/companyfacts/CIK{cik}.json"
SEC_SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik}.json"


class SecDataError(RuntimeError):
    pass


class TickerNotFoundError(SecDataError):
    pass


class SecRateLimitError(SecDataError):
    pass


def pad_cik(cik: Any) -> str:
    return str(int(str(cik).strip())).zfill(10)


class SecClient:
    def __init__(
        self,
        user_agent: str,
        timeout: int = 20,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        get_fn: Optional[Callable[..., Any]] = None,
        sleep_fn: Optional[Callable[[float], None]] = None,
        log_dir: Optional[Path] = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_base_delay = retry_base_delay
        self.log_dir = log_dir
        self._get = get_fn or requests.get
        self._sleep = sleep_fn or time.sleep
        self._tickers: Optional[List[Dict[str, Any]]] = None

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }

    def _log(self, step: str, payload: Dict[str, Any]) -> None:
        if self.log_dir is not None:
            log_step(self.log_dir, step, payload)

    def _get_with_retry(self, url: str):
        for attempt in range(self.max_retries):
            delay = self.retry_base_delay * (2 ** attempt)
            try:
                resp = self._get(url, headers=self._headers(), timeout=self.timeout)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                if attempt == self.max_retries - 1:
                    raise SecDataError(f"Request to {url} failed: {exc}") from exc
                self._log("sec_retry", {"url": url, "attempt": attempt + 1, "error": str(exc)})
                self._sleep(delay)
                continue

            if resp.status_code == 429:
                self._log("sec_rate_limited", {"url": url, "attempt": attempt + 1, "wait_seconds": delay})
                self._sleep(delay)
                continue
            return resp
        raise SecRateLimitError(f"Max retries exceeded for {url}")

    def _json_payload(self, resp, what: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise SecDataError(f"{what} response is not valid JSON") from exc

    def _load_company_tickers(self) -> List[Dict[str, Any]]:
        if self._tickers is not None:
            return self._tickers

        resp = self._get_with_retry(SEC_TICKERS_URL)
        if not resp.ok:
            raise SecDataError("Failed to fetch company tickers")
        payload = self._json_payload(resp, "Company tickers")

        if isinstance(payload, dict):
            values = payload.values()
        elif isinstance(payload, list):
            values = payload
        else:
            values = []

        rows: List[Dict[str, Any]] = []
        for item in values:
            if not isinstance(item, dict):
                continue
            cik = item.get("cik_str") or item.get("cik")
            ticker = str(item.get("ticker", "")).upper().strip()
            if cik is None or not ticker:
                continue
            try:
                padded = pad_cik(cik)
            except (TypeError, ValueError):
                continue
            rows.append({"cik": padded, "ticker": ticker, "title": str(item.get("title", "")).strip()})
        self._tickers = rows
        return rows

    def resolve_ticker(self, ticker: str) -> Tuple[str, str]:
        wanted = (ticker or "").upper().strip()
        for row in self._load_company_tickers():
            if row["ticker"] == wanted:
                return row["cik"], row["title"]
        raise TickerNotFoundError(f'Ticker "{wanted}" not found in SEC database')

    def fetch_company_facts(self, cik: str) -> Dict[str, Any]:
        resp = self._get_with_retry(SEC_COMPANYFACTS_URL.format(cik=pad_cik(cik)))
        if not resp.ok:
            raise SecDataError(f"Failed to fetch company facts: {resp.status_code}")
        payload = self._json_payload(resp, "Company facts")
        if not isinstance(payload, dict):
            raise SecDataError("Company facts payload is not an object")
        return payload

    def fetch_sic_code(self, cik: str) -> Optional[str]:
        try:
            resp = self._get_with_retry(SEC_SUBMISSIONS_URL.format(cik=pad_cik(cik)))
        except SecDataError:
            return None
        if not resp.ok:
            return None
        try:
            payload = resp.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        sic = str(payload.get("sic") or "").strip()
        return sic or None
