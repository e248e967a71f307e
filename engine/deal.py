"""
Deal-scenario inputs: cap table, sale intent and cost assumptions
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .constants import PCT_SUM_TOLERANCE
from .valuation import ValuationResult
from .validation import FieldErrors, parse_enum, pct_sum_matches


class SaleIntent(Enum):
    FULL = "전량"  # Founder wants to sell everything
    PARTIAL = "일부"  # Founder keeps a stake


class EbitdaTrend(Enum):
    """Three-year EBITDA direction"""
    RISING = "상승"
    FLAT = "보합"
    VOLATILE = "변동"


@dataclass
class CapTable:
    """Ownership split, in percent"""
    founder_share: float
    investor_share: float = 0.0
    option_pool: float = 0.0

    @property
    def total(self) -> float:
        return self.founder_share + self.investor_share + self.option_pool

    @property
    def founder_ratio(self) -> float:
        return self.founder_share / 100

    def sums_to_100(self) -> bool:
        return pct_sum_matches(
            [self.founder_share, self.investor_share, self.option_pool], 100, PCT_SUM_TOLERANCE
        )

    def to_dict(self) -> dict:
        return {
            "founder_share": self.founder_share,
            "investor_share": self.investor_share,
            "option_pool": self.option_pool,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CapTable":
        return cls(
            founder_share=float(data.get("founder_share", 0)),
            investor_share=float(data.get("investor_share", 0)),
            option_pool=float(data.get("option_pool", 0)),
        )


@dataclass
class DealScenarioInput:
    """Everything the deal-structure generator needs"""
    equity_value_low: int
    equity_value_high: int
    cap_table: CapTable
    sale_intent: SaleIntent
    revenue_growth: float  # %
    ebitda_trend: EbitdaTrend
    company_profile: str = ""
    equity_value_median: Optional[int] = None  # Midpoint of low/high when omitted

    # Transaction premises
    expected_exit_date: Optional[str] = None  # YYYY-MM
    secondary_ratio: float = 100.0  # % of the sale that is existing shares
    primary_issue: bool = False

    # Cost assumptions, in percent
    escrow_assumption_pct: float = 0.0
    earnout_probability_pct: Optional[float] = None  # DealConfig default when omitted
    fee_rate_pct: Optional[float] = None  # DealConfig default when omitted
    tax_rate_pct: Optional[float] = None  # No tax unless supplied

    @property
    def equity_median(self) -> float:
        if self.equity_value_median is not None:
            return self.equity_value_median
        return (self.equity_value_low + self.equity_value_high) / 2

    @property
    def is_full_exit(self) -> bool:
        return self.sale_intent == SaleIntent.FULL

    def validate(self) -> bool:
        """Boundary validation; raises InputValidationError listing every problem"""
        errors = FieldErrors()

        # Zero is a legitimate floored equity value when net debt exceeds EV
        errors.check_range("equity_value_low", self.equity_value_low, 0, message="지분가치는 0 이상이어야 합니다")
        errors.check_range("equity_value_high", self.equity_value_high, 0, message="지분가치는 0 이상이어야 합니다")
        if self.equity_value_low > self.equity_value_high:
            errors.add("equity_value_low", "지분가치 하단이 상단보다 클 수 없습니다")
        if self.equity_value_median is not None:
            errors.check_range(
                "equity_value_median", self.equity_value_median, 0, message="지분가치는 0 이상이어야 합니다"
            )

        if self.expected_exit_date is not None and not isinstance(self.expected_exit_date, str):
            errors.add("expected_exit_date", "예상 엑싯 시점은 YYYY-MM 형식의 문자열이어야 합니다")

        for name in ("founder_share", "investor_share", "option_pool"):
            errors.check_range(f"cap_table.{name}", getattr(self.cap_table, name), 0, 100)
        if not self.cap_table.sums_to_100():
            errors.add("cap_table", "Cap Table 합계가 100%여야 합니다")

        errors.check_range("secondary_ratio", self.secondary_ratio, 0, 100)
        errors.check_range("escrow_assumption_pct", self.escrow_assumption_pct, 0, 100)
        for name in ("earnout_probability_pct", "fee_rate_pct", "tax_rate_pct"):
            value = getattr(self, name)
            if value is not None:
                errors.check_range(name, value, 0, 100)

        errors.raise_if_any()
        return True

    def to_dict(self) -> dict:
        return {
            "equity_value_low": self.equity_value_low,
            "equity_value_high": self.equity_value_high,
            "equity_value_median": self.equity_value_median,
            "cap_table": self.cap_table.to_dict(),
            "sale_intent": self.sale_intent.value,
            "expected_exit_date": self.expected_exit_date,
            "secondary_ratio": self.secondary_ratio,
            "primary_issue": self.primary_issue,
            "revenue_growth": self.revenue_growth,
            "ebitda_trend": self.ebitda_trend.value,
            "company_profile": self.company_profile,
            "escrow_assumption_pct": self.escrow_assumption_pct,
            "earnout_probability_pct": self.earnout_probability_pct,
            "fee_rate_pct": self.fee_rate_pct,
            "tax_rate_pct": self.tax_rate_pct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealScenarioInput":
        """Create input from a snake_case request payload"""
        errors = FieldErrors()
        sale_intent = parse_enum(SaleIntent, data.get("sale_intent"), "sale_intent", errors)
        ebitda_trend = parse_enum(EbitdaTrend, data.get("ebitda_trend"), "ebitda_trend", errors)
        for key in ("equity_value_low", "equity_value_high", "cap_table", "revenue_growth"):
            if data.get(key) is None:
                errors.add(key, "필수 입력값입니다")
        errors.raise_if_any()

        def optional_float(key):
            value = data.get(key)
            return None if value is None else float(value)

        median = data.get("equity_value_median")
        exit_date = data.get("expected_exit_date")
        return cls(
            equity_value_low=int(data["equity_value_low"]),
            equity_value_high=int(data["equity_value_high"]),
            equity_value_median=None if median is None else int(median),
            cap_table=CapTable.from_dict(data["cap_table"]),
            sale_intent=sale_intent,
            expected_exit_date=str(exit_date) if exit_date else None,
            secondary_ratio=float(data.get("secondary_ratio", 100)),
            primary_issue=bool(data.get("primary_issue", False)),
            revenue_growth=float(data["revenue_growth"]),
            ebitda_trend=ebitda_trend,
            company_profile=data.get("company_profile") or "",
            escrow_assumption_pct=float(data.get("escrow_assumption_pct") or 0),
            earnout_probability_pct=optional_float("earnout_probability_pct"),
            fee_rate_pct=optional_float("fee_rate_pct"),
            tax_rate_pct=optional_float("tax_rate_pct"),
        )

    @classmethod
    def from_valuation(
        cls,
        valuation: ValuationResult,
        cap_table: CapTable,
        sale_intent: SaleIntent,
        ebitda_trend: EbitdaTrend,
        **kwargs,
    ) -> "DealScenarioInput":
        """Carry the equity range and growth rate over from a valuation result"""
        kwargs.setdefault("revenue_growth", valuation.profile.revenue_growth)
        return cls(
            equity_value_low=valuation.equity_value.low,
            equity_value_high=valuation.equity_value.high,
            equity_value_median=valuation.equity_value.mid,
            cap_table=cap_table,
            sale_intent=sale_intent,
            ebitda_trend=ebitda_trend,
            **kwargs,
        )
