from pitchpulse.financials import FiscalYearRecord, NormalizedFinancials
from pitchpulse.validation import VALIDATION_RULES, ValidationOverride, validate_financials


def _financials(records, sic_code="7372"):
    return NormalizedFinancials(
        cik="0000000001",
        entity_name="Example Co.",
        ticker="EXMP",
        sic_code=sic_code,
        fiscal_years=records,
        raw_metrics={},
    )


def _complete(year, revenue=1000.0, **overrides):
    values = dict(
        revenue=revenue,
        net_income=100.0,
        total_assets=2000.0,
        total_liabilities=900.0,
        operating_cash_flow=150.0,
        current_assets=600.0,
    )
    values.update(overrides)
    return FiscalYearRecord(year=year, **values)


def _status(result):
    return {check.id: check.status for check in result.checks}


def test_missing_data_leaves_every_check_pending():
    result = validate_financials(None)
    assert result.overall_status == "pending"
    assert result.last_validated_at is None
    assert [check.id for check in result.checks] == [rule[0] for rule in VALIDATION_RULES]
    assert {check.status for check in result.checks} == {"pending"}


def test_complete_data_passes_every_check():
    result = validate_financials(_financials([_complete(2021), _complete(2022, revenue=1100.0)]))
    assert set(_status(result).values()) == {"pass"}
    assert result.overall_status == "pass"
    assert result.last_validated_at is not None


def test_empty_years_fail_and_warn():
    result = validate_financials(_financials([FiscalYearRecord(year=2021)], sic_code=None))
    status = _status(result)
    assert status["has_revenue"] == "fail"
    assert status["has_net_income"] == "warn"
    assert status["has_balance_sheet"] == "fail"
    assert status["has_cash_flow"] == "warn"
    assert status["data_completeness"] == "fail"
    assert status["has_sic_code"] == "warn"
    assert status["no_negative_assets"] == "pass"
    assert status["revenue_trend"] == "warn"
    assert result.overall_status == "fail"


def test_partial_balance_sheet_warns():
    result = validate_financials(_financials([_complete(2021, total_liabilities=None)]))
    assert _status(result)["has_balance_sheet"] == "warn"


def test_completeness_thresholds():
    two_of_three = [_complete(2020), _complete(2021), FiscalYearRecord(year=2022)]
    result = validate_financials(_financials(two_of_three))
    check = {c.id: c for c in result.checks}["data_completeness"]
    assert check.status == "warn"
    assert check.message == "67% data completeness - some years missing"


def test_negative_assets_fail():
    result = validate_financials(_financials([_complete(2021, current_assets=-1.0)]))
    assert _status(result)["no_negative_assets"] == "fail"


def test_revenue_volatility_warns():
    result = validate_financials(_financials([_complete(2021), _complete(2022, revenue=1600.0)]))
    assert _status(result)["revenue_trend"] == "warn"
    assert result.overall_status == "warn"


def test_override_forces_pass_and_records_author():
    override = ValidationOverride.create("has_sic_code", "Manually classified", "analyst-1")
    result = validate_financials(
        _financials([_complete(2021), _complete(2022)], sic_code=None),
        overrides={"has_sic_code": override},
    )
    check = {c.id: c for c in result.checks}["has_sic_code"]
    assert check.status == "pass"
    assert check.overridden is True
    assert check.overridden_by == "analyst-1"
    assert check.override_reason == "Manually classified"
    assert check.message == "No SIC code found - peer benchmarking may be limited"
    assert result.overall_status == "pass"
