from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional
import re


ANNUAL_FORM = "10-K"
USD_UNIT = "USD"
GAAP_TAXONOMY = "us-gaap"

# Several filer tags describe the same line item. Table order decides which
# concept claims a (year, field) slot first.
METRIC_MAPPING: Dict[str, str] = {
    "Revenues": "revenue",
    "RevenueFromContractWithCustomerExcludingAssessedTax": "revenue",
    "SalesRevenueNet": "revenue",
    "NetIncomeLoss": "net_income",
    "Assets": "total_assets",
    "Liabilities": "total_liabilities",
    "StockholdersEquity": "stockholders_equity",
    "StockholdersEquityIncludingPortionAttributableToNoncontrollingInterest": "stockholders_equity",
    "NetCashProvidedByUsedInOperatingActivities": "operating_cash_flow",
    "GrossProfit": "gross_profit",
    "OperatingIncomeLoss": "operating_income",
    "LongTermDebt": "long_term_debt",
    "LongTermDebtNoncurrent": "long_term_debt",
    "AssetsCurrent": "current_assets",
    "LiabilitiesCurrent": "current_liabilities",
    "CashAndCashEquivalentsAtCarryingValue": "cash_and_equivalents",
}


@dataclass(frozen=True)
class Observation:
    end: str
    val: float
    fy: int
    form: str
    filed: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Observation":
        return cls(
            end=str(data.get("end", "")),
            val=float(data["val"]),
            fy=int(data["fy"]),
            form=str(data.get("form", "")),
            filed=str(data.get("filed", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RawFactSet:
    cik: int
    entity_name: str
    facts: Dict[str, List[Observation]] = field(default_factory=dict)


@dataclass(frozen=True)
class FiscalYearRecord:
    year: int
    revenue: Optional[float] = None
    net_income: Optional[float] = None
    total_assets: Optional[float] = None
    total_liabilities: Optional[float] = None
    stockholders_equity: Optional[float] = None
    operating_cash_flow: Optional[float] = None
    ebitda: Optional[float] = None
    gross_profit: Optional[float] = None
    operating_income: Optional[float] = None
    long_term_debt: Optional[float] = None
    current_assets: Optional[float] = None
    current_liabilities: Optional[float] = None
    cash_and_equivalents: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


FISCAL_YEAR_FIELDS = [f.name for f in fields(FiscalYearRecord) if f.name != "year"]


@dataclass(frozen=True)
class NormalizedFinancials:
    cik: str
    entity_name: str
    ticker: str
    sic_code: Optional[str]
    fiscal_years: List[FiscalYearRecord]
    raw_metrics: Dict[str, List[Observation]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cik": self.cik,
            "entity_name": self.entity_name,
            "ticker": self.ticker,
            "sic_code": self.sic_code,
            "fiscal_years": [record.to_dict() for record in self.fiscal_years],
            "raw_metrics": {
                concept: [obs.to_dict() for obs in observations]
                for concept, observations in self.raw_metrics.items()
            },
        }


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = str(value).strip().replace(",", "")
    if not re.fullmatch(r"-?\d+(?:\.\d+)?", cleaned):
        return None
    return float(cleaned)


def _coerce_year(value: Any) -> Optional[int]:
    number = _coerce_number(value)
    if number is None or number != int(number):
        return None
    return int(number)


def raw_fact_set_from_companyfacts(payload: Dict[str, Any]) -> RawFactSet:
    """Flatten a companyfacts document into concept -> USD observations.

    Entries without a numeric value or an attributed fiscal year are dropped;
    everything else is kept in filing order, duplicates included.
    """
    concepts = ((payload.get("facts", {}) or {}).get(GAAP_TAXONOMY, {}) or {})
    facts: Dict[str, List[Observation]] = {}
    for concept, concept_payload in concepts.items():
        units = (concept_payload or {}).get("units", {}) or {}
        observations: List[Observation] = []
        for entry in units.get(USD_UNIT, []) or []:
            if not isinstance(entry, dict):
                continue
            value = _coerce_number(entry.get("val"))
            year = _coerce_year(entry.get("fy"))
            if value is None or year is None:
                continue
            observations.append(
                Observation(
                    end=str(entry.get("end", "")),
                    val=value,
                    fy=year,
                    form=str(entry.get("form", "")),
                    filed=str(entry.get("filed", "")),
                )
            )
        if observations:
            facts[concept] = observations

    return RawFactSet(
        cik=int(_coerce_number(payload.get("cik")) or 0),
        entity_name=str(payload.get("entityName", "")).strip(),
        facts=facts,
    )


def _is_eligible(observation: Observation, fiscal_year_start: int, fiscal_year_end: int) -> bool:
    return (
        observation.form == ANNUAL_FORM
        and fiscal_year_start <= observation.fy <= fiscal_year_end
    )


def normalize_financials(
    raw: RawFactSet,
    ticker: str,
    sic_code: Optional[str],
    fiscal_year_start: int,
    fiscal_year_end: int,
) -> NormalizedFinancials:
    year_values: Dict[int, Dict[str, float]] = {
        year: {} for year in range(fiscal_year_start, fiscal_year_end + 1)
    }

    for concept, field_name in METRIC_MAPPING.items():
        for observation in raw.facts.get(concept, []):
            if not _is_eligible(observation, fiscal_year_start, fiscal_year_end):
                continue
            # First match wins; later filings for the same slot are ignored.
            year_values[observation.fy].setdefault(field_name, observation.val)

    fiscal_years = [
        FiscalYearRecord(year=year, **{**values, "ebitda": None})
        for year, values in sorted(year_values.items())
    ]

    raw_metrics = {
        concept: [
            obs for obs in observations
            if _is_eligible(obs, fiscal_year_start, fiscal_year_end)
        ]
        for concept, observations in raw.facts.items()
        if observations
    }

    return NormalizedFinancials(
        cik=str(raw.cik).zfill(10),
        entity_name=raw.entity_name,
        ticker=(ticker or "").upper(),
        sic_code=sic_code or None,
        fiscal_years=fiscal_years,
        raw_metrics=raw_metrics,
    )


def normalized_financials_from_dict(data: Dict[str, Any]) -> NormalizedFinancials:
    fiscal_years: List[FiscalYearRecord] = []
    for item in data.get("fiscal_years", []) or []:
        values = {name: _coerce_number(item.get(name)) for name in FISCAL_YEAR_FIELDS}
        fiscal_years.append(FiscalYearRecord(year=int(item["year"]), **values))

    raw_metrics = {
        concept: [Observation.from_dict(entry) for entry in entries or []]
        for concept, entries in (data.get("raw_metrics", {}) or {}).items()
    }

    sic_code = data.get("sic_code")
    return NormalizedFinancials(
        cik=str(data.get("cik", "")),
        entity_name=str(data.get("entity_name", "")),
        ticker=str(data.get("ticker", "")),
        sic_code=str(sic_code) if sic_code else None,
        fiscal_years=sorted(fiscal_years, key=lambda record: record.year),
        raw_metrics=raw_metrics,
    )
