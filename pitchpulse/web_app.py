import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .cache import FinancialsCache
from .config import load_config
from .credit_analysis import analyze_credit
from .financials import normalized_financials_from_dict
from .orchestrator import FetchRequest, fetch_financials, run_pipeline
from .run_logger import log_step
from .sec_client import SecClient, SecDataError, TickerNotFoundError
from .validation import ValidationOverride, validate_financials


GENERIC_FETCH_ERROR = "Failed to fetch SEC data. Please try again later."


class AnalysisRequest(BaseModel):
    financials: Dict[str, Any]


class OverrideRequest(BaseModel):
    check_id: str
    reason: str
    overridden_by: str
    overridden_at: Optional[str] = None


class ValidationRequest(BaseModel):
    financials: Optional[Dict[str, Any]] = None
    overrides: List[OverrideRequest] = []


def create_app(
    sec_client_factory: Optional[Callable[[], SecClient]] = None,
    cache: Optional[FinancialsCache] = None,
    output_root: Optional[Path] = None,
) -> FastAPI:
    config = load_config()
    app = FastAPI(title="PitchPulse", debug=config.debug)

    if sec_client_factory is None:
        def sec_client_factory() -> SecClient:
            return SecClient(
                user_agent=config.sec_user_agent,
                timeout=config.sec_timeout_seconds,
                max_retries=config.sec_max_retries,
                retry_base_delay=config.sec_retry_base_delay,
            )

    if cache is None:
        cache = FinancialsCache(config.cache_dir, ttl_hours=config.cache_ttl_hours)
    if output_root is None:
        output_root = config.output_dir

    def load_financials(data: Dict[str, Any]):
        try:
            return normalized_financials_from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Malformed financials: {exc}")

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/sec-data")
    def sec_data(payload: FetchRequest):
        try:
            result = fetch_financials(payload, sec_client_factory(), cache)
        except TickerNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        except SecDataError:
            raise HTTPException(status_code=502, detail=GENERIC_FETCH_ERROR)
        return JSONResponse(result)

    @app.post("/api/run")
    def run(payload: FetchRequest):
        output_dir = _new_output_dir(output_root)
        try:
            result = run_pipeline(payload, sec_client_factory(), cache, output_dir)
        except TickerNotFoundError as exc:
            log_step(output_dir, "error", {"error": str(exc)})
            raise HTTPException(status_code=404, detail=str(exc))
        except SecDataError as exc:
            log_step(output_dir, "error", {"error": str(exc)})
            raise HTTPException(status_code=502, detail=GENERIC_FETCH_ERROR)
        result["meta"] = {"output_dir": str(output_dir)}
        return JSONResponse(result)

    @app.post("/api/credit-analysis")
    def credit_analysis(payload: AnalysisRequest):
        analysis = analyze_credit(load_financials(payload.financials))
        return JSONResponse({"analysis": analysis.to_dict() if analysis is not None else None})

    @app.post("/api/validation")
    def validation(payload: ValidationRequest):
        financials = load_financials(payload.financials) if payload.financials is not None else None
        overrides: Dict[str, ValidationOverride] = {}
        for item in payload.overrides:
            if item.overridden_at:
                override = ValidationOverride(item.check_id, item.reason, item.overridden_by, item.overridden_at)
            else:
                override = ValidationOverride.create(item.check_id, item.reason, item.overridden_by)
            overrides[item.check_id] = override
        return JSONResponse(validate_financials(financials, overrides).to_dict())

    return app


app = create_app()


def _new_output_dir(root: Path) -> Path:
    return root / f"run_{time.time_ns()}_{uuid.uuid4().hex[:8]}"
