from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .financials import NormalizedFinancials


CheckOutcome = Tuple[str, str]


@dataclass(frozen=True)
class ValidationOverride:
    check_id: str
    reason: str
    overridden_by: str
    overridden_at: str

    @classmethod
    def create(cls, check_id: str, reason: str, overridden_by: str) -> "ValidationOverride":
        return cls(
            check_id=check_id,
            reason=reason,
            overridden_by=overridden_by,
            overridden_at=datetime.now(timezone.utc).isoformat(),
        )


@dataclass(frozen=True)
class ValidationCheck:
    id: str
    name: str
    description: str
    status: str
    message: Optional[str] = None
    overridden: bool = False
    overridden_by: Optional[str] = None
    overridden_at: Optional[str] = None
    override_reason: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    checks: List[ValidationCheck]
    overall_status: str
    last_validated_at: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _check_revenue(data: NormalizedFinancials) -> CheckOutcome:
    years = sum(1 for fy in data.fiscal_years if fy.revenue is not None)
    if years:
        return "pass", f"Revenue found for {years} fiscal years"
    return "fail", "No revenue data found in SEC filings"


def _check_net_income(data: NormalizedFinancials) -> CheckOutcome:
    years = sum(1 for fy in data.fiscal_years if fy.net_income is not None)
    if years:
        return "pass", f"Net income found for {years} fiscal years"
    return "warn", "No net income data found - some metrics may be unavailable"


def _check_balance_sheet(data: NormalizedFinancials) -> CheckOutcome:
    has_assets = any(fy.total_assets is not None for fy in data.fiscal_years)
    has_liabilities = any(fy.total_liabilities is not None for fy in data.fiscal_years)
    if has_assets and has_liabilities:
        return "pass", "Balance sheet data complete"
    if has_assets or has_liabilities:
        return "warn", "Partial balance sheet data available"
    return "fail", "No balance sheet data found"


def _check_cash_flow(data: NormalizedFinancials) -> CheckOutcome:
    if any(fy.operating_cash_flow is not None for fy in data.fiscal_years):
        return "pass", "Cash flow statement data available"
    return "warn", "No cash flow data found - liquidity metrics may be incomplete"


def _check_completeness(data: NormalizedFinancials) -> CheckOutcome:
    total = len(data.fiscal_years)
    with_data = sum(
        1
        for fy in data.fiscal_years
        if fy.revenue is not None or fy.net_income is not None or fy.total_assets is not None
    )
    completeness = (with_data / total) * 100 if total else 0.0
    if completeness >= 80:
        return "pass", f"{completeness:.0f}% data completeness"
    if completeness >= 50:
        return "warn", f"{completeness:.0f}% data completeness - some years missing"
    return "fail", f"Only {completeness:.0f}% data completeness"


def _check_sic_code(data: NormalizedFinancials) -> CheckOutcome:
    if data.sic_code:
        return "pass", f"SIC Code: {data.sic_code}"
    return "warn", "No SIC code found - peer benchmarking may be limited"


def _check_negative_assets(data: NormalizedFinancials) -> CheckOutcome:
    negative = any(
        (fy.total_assets is not None and fy.total_assets < 0)
        or (fy.current_assets is not None and fy.current_assets < 0)
        for fy in data.fiscal_years
    )
    if negative:
        return "fail", "Negative asset values detected - data quality issue"
    return "pass", "Asset values are valid"


def _check_revenue_trend(data: NormalizedFinancials) -> CheckOutcome:
    revenues = [
        fy.revenue
        for fy in sorted(data.fiscal_years, key=lambda fy: fy.year)
        if fy.revenue is not None
    ]
    if len(revenues) < 2:
        return "warn", "Insufficient data for trend analysis"
    for prev, curr in zip(revenues, revenues[1:]):
        if prev == 0:
            continue
        if abs((curr - prev) / prev) > 0.5:
            return "warn", "Significant revenue volatility detected (>50% YoY change)"
    return "pass", "Revenue trend is stable"


VALIDATION_RULES: List[Tuple[str, str, str, Callable[[NormalizedFinancials], CheckOutcome]]] = [
    ("has_revenue", "Revenue Data Available",
     "At least one fiscal year has revenue data", _check_revenue),
    ("has_net_income", "Net Income Data Available",
     "At least one fiscal year has net income data", _check_net_income),
    ("has_balance_sheet", "Balance Sheet Data Available",
     "Total assets and liabilities data present", _check_balance_sheet),
    ("has_cash_flow", "Cash Flow Data Available",
     "Operating cash flow data present", _check_cash_flow),
    ("data_completeness", "Data Completeness Check",
     "All requested fiscal years have data", _check_completeness),
    ("has_sic_code", "Industry Classification",
     "SIC code available for peer comparison", _check_sic_code),
    ("no_negative_assets", "Asset Data Quality",
     "No negative asset values detected", _check_negative_assets),
    ("revenue_trend", "Revenue Trend Analysis",
     "Check for significant revenue volatility", _check_revenue_trend),
]


def _overall_status(checks: List[ValidationCheck]) -> str:
    statuses = {check.status for check in checks}
    if "fail" in statuses:
        return "fail"
    if "warn" in statuses:
        return "warn"
    return "pass"


def validate_financials(
    data: Optional[NormalizedFinancials],
    overrides: Optional[Dict[str, ValidationOverride]] = None,
) -> ValidationResult:
    """Run the data-quality battery. An override forces its check to pass."""
    if data is None:
        pending = [
            ValidationCheck(id=rule_id, name=name, description=description, status="pending")
            for rule_id, name, description, _ in VALIDATION_RULES
        ]
        return ValidationResult(checks=pending, overall_status="pending", last_validated_at=None)

    overrides = overrides or {}
    checks: List[ValidationCheck] = []
    for rule_id, name, description, rule in VALIDATION_RULES:
        status, message = rule(data)
        override = overrides.get(rule_id)
        checks.append(
            ValidationCheck(
                id=rule_id,
                name=name,
                description=description,
                status="pass" if override else status,
                message=message,
                overridden=override is not None,
                overridden_by=override.overridden_by if override else None,
                overridden_at=override.overridden_at if override else None,
                override_reason=override.reason if override else None,
            )
        )

    return ValidationResult(
        checks=checks,
        overall_status=_overall_status(checks),
        last_validated_at=datetime.now(timezone.utc).isoformat(),
    )
