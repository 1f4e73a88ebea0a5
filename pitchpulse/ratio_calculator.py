from typing import Dict, Optional

from .financials import FiscalYearRecord


# Share of non-cash current assets treated as collectable within the quick ratio.
NON_CASH_CURRENT_ASSET_HAIRCUT = 0.5


class CreditRatioCalculator:
    def __init__(self, record: FiscalYearRecord) -> None:
        self.record = record

    @staticmethod
    def _safe_divide(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
        if numerator is None or denominator is None or denominator == 0:
            return None
        return numerator / denominator

    def equity(self) -> Optional[float]:
        if self.record.stockholders_equity is not None:
            return self.record.stockholders_equity
        assets = self.record.total_assets
        liabilities = self.record.total_liabilities
        if assets is None or liabilities is None:
            return None
        return assets - liabilities

    def _positive_equity(self) -> Optional[float]:
        equity = self.equity()
        if equity is None or equity <= 0:
            return None
        return equity

    def current_ratio(self) -> Optional[float]:
        return self._safe_divide(self.record.current_assets, self.record.current_liabilities)

    def debt_to_equity(self) -> Optional[float]:
        return self._safe_divide(self.record.long_term_debt, self._positive_equity())

    def net_margin(self) -> Optional[float]:
        return self._safe_divide(self.record.net_income, self.record.revenue)

    def return_on_assets(self) -> Optional[float]:
        return self._safe_divide(self.record.net_income, self.record.total_assets)

    def return_on_equity(self) -> Optional[float]:
        return self._safe_divide(self.record.net_income, self._positive_equity())

    def quick_ratio(self) -> Optional[float]:
        cash = self.record.cash_and_equivalents
        current_assets = self.record.current_assets
        if cash is None or current_assets is None:
            return None
        liquid = cash + NON_CASH_CURRENT_ASSET_HAIRCUT * (current_assets - cash)
        return self._safe_divide(liquid, self.record.current_liabilities)

    def cash_to_assets(self) -> Optional[float]:
        return self._safe_divide(self.record.cash_and_equivalents, self.record.total_assets)

    def calculate_all_ratios(self) -> Dict[str, Optional[float]]:
        return {
            "current_ratio": self.current_ratio(),
            "debt_to_equity": self.debt_to_equity(),
            "net_margin": self.net_margin(),
            "return_on_assets": self.return_on_assets(),
            "return_on_equity": self.return_on_equity(),
            "quick_ratio": self.quick_ratio(),
        }
