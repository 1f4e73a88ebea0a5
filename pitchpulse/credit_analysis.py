from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from .financials import FiscalYearRecord, NormalizedFinancials
from .ratio_calculator import CreditRatioCalculator


@dataclass(frozen=True)
class IndustryBenchmark:
    current_ratio: float
    debt_to_equity: float
    gross_margin: float
    net_margin: float


# Keyed by the two-digit SIC major group.
INDUSTRY_BENCHMARKS: Dict[str, IndustryBenchmark] = {
    "73": IndustryBenchmark(1.8, 0.5, 0.45, 0.12),  # business services
    "35": IndustryBenchmark(2.0, 0.6, 0.35, 0.08),  # industrial machinery
    "36": IndustryBenchmark(2.2, 0.4, 0.42, 0.10),  # electronics
    "28": IndustryBenchmark(1.5, 0.7, 0.55, 0.15),  # chemicals
    "60": IndustryBenchmark(1.2, 8.0, 0.70, 0.20),  # banking
    "62": IndustryBenchmark(1.5, 3.0, 0.65, 0.18),  # securities
    "20": IndustryBenchmark(1.4, 0.8, 0.28, 0.05),  # food products
    "49": IndustryBenchmark(0.9, 1.2, 0.40, 0.10),  # utilities
}
DEFAULT_BENCHMARK = IndustryBenchmark(1.5, 1.0, 0.35, 0.08)

ROA_BENCHMARK = 0.05
ROE_BENCHMARK = 0.15
QUICK_RATIO_BENCHMARK = 1.0

STATUS_POINTS = {"good": 100, "warning": 60, "critical": 20}
SEVERITY_PENALTIES = {"critical": 15, "high": 10, "medium": 5, "low": 2}
SCORE_CATEGORIES = [
    (80, "excellent"),
    (65, "good"),
    (50, "fair"),
    (35, "poor"),
]


@dataclass(frozen=True)
class CreditRatio:
    name: str
    value: Optional[float]
    benchmark: float
    status: str
    description: str
    formula: str


@dataclass(frozen=True)
class RiskFlag:
    id: str
    severity: str
    category: str
    title: str
    description: str
    impact: str


@dataclass(frozen=True)
class PeerComparison:
    metric: str
    company: Optional[float]
    peer_average: float
    percentile: Optional[float]
    status: str


@dataclass(frozen=True)
class CreditAnalysis:
    fiscal_year: int
    overall_score: float
    score_category: str
    ratios: List[CreditRatio]
    risk_flags: List[RiskFlag]
    peer_comparisons: List[PeerComparison]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_benchmarks(sic_code: Optional[str]) -> IndustryBenchmark:
    if not sic_code:
        return DEFAULT_BENCHMARK
    return INDUSTRY_BENCHMARKS.get(str(sic_code)[:2], DEFAULT_BENCHMARK)


def calculate_ratio_status(
    value: Optional[float],
    benchmark: float,
    higher_is_better: bool,
    good: float,
    warning: float,
) -> str:
    """Grade a ratio against its benchmark; missing values are a caution, not a failure."""
    if value is None:
        return "warning"
    if higher_is_better:
        if value >= benchmark * good:
            return "good"
        if value >= benchmark * warning:
            return "warning"
        return "critical"
    if value <= benchmark * good:
        return "good"
    if value <= benchmark * warning:
        return "warning"
    return "critical"


def _latest_and_previous(
    financials: NormalizedFinancials,
) -> Tuple[Optional[FiscalYearRecord], Optional[FiscalYearRecord]]:
    ordered = sorted(financials.fiscal_years, key=lambda record: record.year, reverse=True)
    latest = ordered[0] if ordered else None
    previous = ordered[1] if len(ordered) > 1 else None
    return latest, previous


def build_ratios(
    values: Dict[str, Optional[float]], benchmarks: IndustryBenchmark
) -> List[CreditRatio]:
    specs = [
        (
            "Current Ratio", "current_ratio", benchmarks.current_ratio, True, 0.9, 0.6,
            "Measures short-term liquidity",
            "Current Assets / Current Liabilities",
        ),
        (
            "Debt-to-Equity", "debt_to_equity", benchmarks.debt_to_equity, False, 1.0, 1.5,
            "Measures financial leverage",
            "Long-term Debt / Shareholders' Equity",
        ),
        (
            "Net Profit Margin", "net_margin", benchmarks.net_margin, True, 0.8, 0.5,
            "Measures profitability",
            "Net Income / Revenue",
        ),
        (
            "Return on Assets", "return_on_assets", ROA_BENCHMARK, True, 1.0, 0.6,
            "Measures asset efficiency",
            "Net Income / Total Assets",
        ),
        (
            "Return on Equity", "return_on_equity", ROE_BENCHMARK, True, 0.9, 0.5,
            "Measures return to shareholders",
            "Net Income / Shareholders' Equity",
        ),
        (
            "Quick Ratio", "quick_ratio", QUICK_RATIO_BENCHMARK, True, 0.9, 0.6,
            "Measures immediate liquidity",
            "(Cash + Receivables) / Current Liabilities",
        ),
    ]
    ratios: List[CreditRatio] = []
    for name, key, benchmark, higher_is_better, good, warning, description, formula in specs:
        value = values.get(key)
        ratios.append(
            CreditRatio(
                name=name,
                value=value,
                benchmark=benchmark,
                status=calculate_ratio_status(value, benchmark, higher_is_better, good, warning),
                description=description,
                formula=formula,
            )
        )
    return ratios


def build_risk_flags(
    latest: FiscalYearRecord,
    previous: Optional[FiscalYearRecord],
    values: Dict[str, Optional[float]],
    benchmarks: IndustryBenchmark,
    cash_to_assets: Optional[float],
) -> List[RiskFlag]:
    flags: List[RiskFlag] = []

    current_ratio = values.get("current_ratio")
    if current_ratio is not None and current_ratio < 1.0:
        flags.append(
            RiskFlag(
                id="low-current-ratio",
                severity="critical" if current_ratio < 0.5 else "high",
                category="Liquidity",
                title="Low Current Ratio",
                description=(
                    f"Current ratio of {current_ratio:.2f} indicates potential difficulty "
                    "meeting short-term obligations."
                ),
                impact="May struggle to pay suppliers and creditors on time.",
            )
        )

    debt_to_equity = values.get("debt_to_equity")
    if debt_to_equity is not None and debt_to_equity > benchmarks.debt_to_equity * 1.5:
        flags.append(
            RiskFlag(
                id="high-leverage",
                severity="critical" if debt_to_equity > benchmarks.debt_to_equity * 2.5 else "high",
                category="Leverage",
                title="High Debt Levels",
                description=(
                    f"Debt-to-equity of {debt_to_equity:.2f} exceeds industry benchmark "
                    f"of {benchmarks.debt_to_equity:.2f}."
                ),
                impact="Increased interest expense burden and reduced financial flexibility.",
            )
        )

    net_margin = values.get("net_margin")
    if net_margin is not None and net_margin < 0:
        flags.append(
            RiskFlag(
                id="negative-margin",
                severity="critical",
                category="Profitability",
                title="Negative Profit Margin",
                description=f"Net margin of {net_margin * 100:.1f}% indicates operating losses.",
                impact="Company is burning cash and may require additional financing.",
            )
        )
    elif net_margin is not None and net_margin < benchmarks.net_margin * 0.5:
        flags.append(
            RiskFlag(
                id="low-margin",
                severity="medium",
                category="Profitability",
                title="Below-Average Profit Margin",
                description=(
                    f"Net margin of {net_margin * 100:.1f}% is significantly below "
                    "industry benchmark."
                ),
                impact="Limited ability to reinvest in growth or weather economic downturns.",
            )
        )

    if (
        previous is not None
        and latest.revenue is not None
        and previous.revenue is not None
        and previous.revenue != 0
    ):
        revenue_growth = (latest.revenue - previous.revenue) / previous.revenue
        if revenue_growth < -0.1:
            flags.append(
                RiskFlag(
                    id="revenue-decline",
                    severity="critical" if revenue_growth < -0.2 else "high",
                    category="Growth",
                    title="Declining Revenue",
                    description=(
                        f"Revenue declined {abs(revenue_growth) * 100:.1f}% year-over-year."
                    ),
                    impact="May indicate loss of market share or weakening demand.",
                )
            )

    if cash_to_assets is not None and cash_to_assets < 0.02:
        flags.append(
            RiskFlag(
                id="low-cash",
                severity="high",
                category="Liquidity",
                title="Low Cash Reserves",
                description=f"Cash represents only {cash_to_assets * 100:.1f}% of total assets.",
                impact="Limited buffer for unexpected expenses or opportunities.",
            )
        )

    if latest.revenue is None or latest.total_assets is None or latest.total_liabilities is None:
        flags.append(
            RiskFlag(
                id="incomplete-data",
                severity="medium",
                category="Data Quality",
                title="Incomplete Financial Data",
                description="Some key financial metrics are missing from SEC filings.",
                impact="Limited ability to perform comprehensive credit analysis.",
            )
        )

    return flags


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _peer_comparison(
    metric: str, value: Optional[float], benchmark: float, higher_is_better: bool
) -> PeerComparison:
    if value is None:
        return PeerComparison(metric, None, benchmark, None, "at")
    relative = (value / benchmark) * 50
    if higher_is_better:
        percentile = _clamp(relative, 1, 99)
        status = "above" if value >= benchmark else "below"
    else:
        percentile = _clamp(100 - relative, 1, 99)
        status = "above" if value <= benchmark else "below"
    return PeerComparison(metric, value, benchmark, percentile, status)


def build_peer_comparisons(
    values: Dict[str, Optional[float]], benchmarks: IndustryBenchmark
) -> List[PeerComparison]:
    return [
        _peer_comparison("Current Ratio", values.get("current_ratio"), benchmarks.current_ratio, True),
        _peer_comparison("Debt-to-Equity", values.get("debt_to_equity"), benchmarks.debt_to_equity, False),
        _peer_comparison("Net Margin", values.get("net_margin"), benchmarks.net_margin, True),
        _peer_comparison("Return on Assets", values.get("return_on_assets"), ROA_BENCHMARK, True),
    ]


def score_analysis(ratios: List[CreditRatio], flags: List[RiskFlag]) -> Tuple[float, str]:
    if ratios:
        base = sum(STATUS_POINTS[ratio.status] for ratio in ratios) / len(ratios)
    else:
        base = 0.0
    penalty = sum(SEVERITY_PENALTIES.get(flag.severity, SEVERITY_PENALTIES["low"]) for flag in flags)
    score = _clamp(base - penalty, 0, 100)
    for threshold, category in SCORE_CATEGORIES:
        if score >= threshold:
            return score, category
    return score, "critical"


def analyze_credit(financials: Optional[NormalizedFinancials]) -> Optional[CreditAnalysis]:
    if financials is None:
        return None
    latest, previous = _latest_and_previous(financials)
    if latest is None:
        return None

    benchmarks = get_benchmarks(financials.sic_code)
    calculator = CreditRatioCalculator(latest)
    values = calculator.calculate_all_ratios()

    ratios = build_ratios(values, benchmarks)
    flags = build_risk_flags(latest, previous, values, benchmarks, calculator.cash_to_assets())
    peers = build_peer_comparisons(values, benchmarks)
    score, category = score_analysis(ratios, flags)

    return CreditAnalysis(
        fiscal_year=latest.year,
        overall_score=score,
        score_category=category,
        ratios=ratios,
        risk_flags=flags,
        peer_comparisons=peers,
    )
