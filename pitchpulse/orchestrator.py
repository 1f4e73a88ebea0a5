import json
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, StrictInt, field_validator, model_validator

from .cache import FinancialsCache
from .credit_analysis import analyze_credit
from .financials import (
    normalize_financials,
    normalized_financials_from_dict,
    raw_fact_set_from_companyfacts,
)
from .run_logger import log_step
from .sec_client import SecClient
from .validation import validate_financials


EARLIEST_FISCAL_YEAR = 1990
MAX_FISCAL_YEAR_SPAN = 20


class FetchRequest(BaseModel):
    run_id: UUID
    ticker: Optional[str] = None
    cik: Optional[str] = None
    fiscal_year_start: StrictInt
    fiscal_year_end: StrictInt
    force_refresh: bool = False

    @field_validator("ticker")
    @classmethod
    def _check_ticker(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not re.fullmatch(r"[A-Za-z]{1,5}", value):
            raise ValueError("ticker must be 1-5 alphabetic characters")
        return value.upper()

    @field_validator("cik")
    @classmethod
    def _check_cik(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not re.fullmatch(r"\d{1,10}", value):
            raise ValueError("cik must be 1-10 numeric digits")
        return value

    @field_validator("fiscal_year_start", "fiscal_year_end")
    @classmethod
    def _check_year(cls, value: int) -> int:
        latest = date.today().year + 1
        if value < EARLIEST_FISCAL_YEAR:
            raise ValueError(f"fiscal year must be {EARLIEST_FISCAL_YEAR} or later")
        if value > latest:
            raise ValueError(f"fiscal year cannot exceed {latest}")
        return value

    @model_validator(mode="after")
    def _check_request(self) -> "FetchRequest":
        if not self.ticker and not self.cik:
            raise ValueError("Either ticker or cik must be provided")
        if self.fiscal_year_start > self.fiscal_year_end:
            raise ValueError("fiscal_year_start must be less than or equal to fiscal_year_end")
        if self.fiscal_year_end - self.fiscal_year_start > MAX_FISCAL_YEAR_SPAN:
            raise ValueError(f"Fiscal year range cannot exceed {MAX_FISCAL_YEAR_SPAN} years")
        return self


def fetch_financials(
    request: FetchRequest,
    sec_client: SecClient,
    cache: FinancialsCache,
    parallel: bool = True,
) -> Dict[str, Any]:
    run_id = str(request.run_id)
    if not request.force_refresh:
        cached = cache.get(run_id)
        if cached is not None:
            return {"data": cached["data"], "source": "cache", "fetched_at": cached["fetched_at"]}

    cik = request.cik or ""
    company_name = ""
    if not cik:
        cik, company_name = sec_client.resolve_ticker(request.ticker or "")

    if parallel:
        with ThreadPoolExecutor(max_workers=2) as executor:
            facts_future = executor.submit(sec_client.fetch_company_facts, cik)
            sic_future = executor.submit(sec_client.fetch_sic_code, cik)
            facts = facts_future.result()
            sic_code = sic_future.result()
    else:
        facts = sec_client.fetch_company_facts(cik)
        sic_code = sec_client.fetch_sic_code(cik)

    raw = raw_fact_set_from_companyfacts(facts)
    if not raw.entity_name and company_name:
        raw = replace(raw, entity_name=company_name)
    normalized = normalize_financials(
        raw,
        request.ticker or "",
        sic_code,
        request.fiscal_year_start,
        request.fiscal_year_end,
    )

    data = normalized.to_dict()
    entry = cache.put(run_id, data)
    return {"data": data, "source": "live", "fetched_at": entry["fetched_at"]}


def run_pipeline(
    request: FetchRequest,
    sec_client: SecClient,
    cache: FinancialsCache,
    output_dir: Path,
    parallel: bool = True,
) -> Dict[str, Any]:
    log_step(output_dir, "request", request.model_dump(mode="json"))

    fetched = fetch_financials(request, sec_client, cache, parallel=parallel)
    financials = normalized_financials_from_dict(fetched["data"])
    log_step(
        output_dir,
        "financials",
        {
            "source": fetched["source"],
            "fetched_at": fetched["fetched_at"],
            "cik": financials.cik,
            "years": [record.year for record in financials.fiscal_years],
        },
    )

    validation = validate_financials(financials).to_dict()
    log_step(output_dir, "validation", {"overall_status": validation["overall_status"]})

    analysis = analyze_credit(financials)
    credit_analysis = analysis.to_dict() if analysis is not None else None
    if credit_analysis is None:
        log_step(output_dir, "credit_analysis", {"available": False})
    else:
        log_step(
            output_dir,
            "credit_analysis",
            {
                "available": True,
                "overall_score": credit_analysis["overall_score"],
                "score_category": credit_analysis["score_category"],
                "risk_flags": [flag["id"] for flag in credit_analysis["risk_flags"]],
            },
        )

    output_dir.mkdir(parents=True, exist_ok=True)
    _write_json(output_dir / "financials.json", fetched)
    _write_json(output_dir / "validation.json", validation)
    _write_json(output_dir / "credit_analysis.json", {"analysis": credit_analysis})

    return {
        "financials": fetched,
        "validation": validation,
        "credit_analysis": credit_analysis,
    }


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
