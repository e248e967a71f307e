"""
Relative valuation for private SMEs
EV/EBITDA multiples blended with a DLOM-discounted peer proxy, adjusted for
growth, size and company age, then bridged to equity via net debt
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
import logging

from .config import ValuationConfig, get_valuation_config
from .constants import (
    IndustryGroup,
    EmployeeBand,
    INDUSTRY_MULTIPLES,
    KSIC_TO_INDUSTRY,
    KSIC_SUBCLASS_OVERRIDES,
    GROWTH_ADJUSTMENT_BANDS,
    NEGATIVE_GROWTH_ADJUSTMENT,
    SIZE_ADJUSTMENTS,
    AGE_ADJUSTMENT_BANDS,
    MATURE_AGE_ADJUSTMENT,
    EV_RANGE_SPREAD_NORMAL,
    EV_RANGE_SPREAD_WIDE,
    WIDE_SPREAD_WARNING_COUNT,
    MARGIN_WARNING_RATIO,
    MIN_GROWTH_PCT,
    MAX_GROWTH_PCT,
    MIN_FOUNDED_YEAR,
)
from .formatting import round_krw, format_krw, format_signed_pct
from .validation import FieldErrors, parse_enum

logger = logging.getLogger(__name__)

VALUATION_METHOD = "EV/EBITDA (Relative)"

FALLBACK_REASON = (
    "EBITDA가 0 이하로 EV/EBITDA 기반 상대가치 평가가 불가합니다. "
    "매출 기반 PSR 로직은 추후 지원 예정입니다."
)
FALLBACK_EXPLAIN_TEXT = (
    "귀사의 EBITDA가 0 이하이므로 EV/EBITDA 배수를 적용한 상대가치 평가가 어렵습니다. "
    "매출 기반 평가(PSR) 또는 자산 기반 평가가 필요하며, 해당 기능은 추후 지원 예정입니다."
)
EQUITY_FLOOR_WARNING = "순차입금이 커서 지분가치가 낮게 산출되었습니다."


class EarningsType(Enum):
    """Which earnings figure was entered in the EBITDA field"""
    EBITDA = "EBITDA"
    OPERATING_INCOME = "영업이익"


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


class ValuationBasis(Enum):
    """Point of the equity range handed to the payout simulator"""
    LOW = "low"
    MID = "mid"
    HIGH = "high"


@dataclass(frozen=True)
class ValidationIssue:
    """A consistency finding on the financial profile"""
    field: str
    message: str
    severity: Severity


# =============================================================================
# INPUT
# =============================================================================

@dataclass(frozen=True)
class FinancialProfile:
    """Company facts entered by the user (amounts in KRW)"""
    founded_year: int
    employee_band: EmployeeBand
    revenue: int
    ebitda: int  # May be negative
    net_income: int  # May be negative
    revenue_growth: float  # YoY, in percent
    total_debt: int = 0  # Interest-bearing debt
    cash: int = 0
    industry_code: str = ""  # KSIC code, e.g. "C10" or "J62"
    industry_group: Optional[IndustryGroup] = None  # Bypasses code mapping when set
    ebitda_type: EarningsType = EarningsType.EBITDA
    company_name: str = ""

    @property
    def net_debt(self) -> int:
        """Total debt minus cash (negative = net cash)"""
        return self.total_debt - self.cash

    def resolve_industry_group(self) -> IndustryGroup:
        if self.industry_group is not None:
            return self.industry_group
        return map_to_industry_group(self.industry_code)

    def validate(self, as_of_year: Optional[int] = None) -> bool:
        """Boundary validation; raises InputValidationError listing every problem"""
        year = as_of_year or _current_year()
        errors = FieldErrors()

        if not self.industry_code and self.industry_group is None:
            errors.add("industry_code", "산업분류를 선택해주세요")
        errors.check_range("founded_year", self.founded_year, MIN_FOUNDED_YEAR, year,
                           "설립연도가 올바르지 않습니다")
        errors.check_range("revenue", self.revenue, 0, None, "매출액은 0 이상이어야 합니다")
        errors.check_range("revenue_growth", self.revenue_growth, MIN_GROWTH_PCT, MAX_GROWTH_PCT,
                           "성장률은 -100% ~ 300% 범위 내여야 합니다")
        errors.check_range("total_debt", self.total_debt, 0, None, "총 차입금은 0 이상이어야 합니다")
        errors.check_range("cash", self.cash, 0, None, "현금은 0 이상이어야 합니다")

        errors.raise_if_any()
        return True

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "industry_code": self.industry_code,
            "industry_group": self.industry_group.value if self.industry_group else None,
            "founded_year": self.founded_year,
            "employee_band": self.employee_band.value,
            "revenue": self.revenue,
            "ebitda": self.ebitda,
            "ebitda_type": self.ebitda_type.value,
            "net_income": self.net_income,
            "revenue_growth": self.revenue_growth,
            "total_debt": self.total_debt,
            "cash": self.cash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FinancialProfile":
        """Create a profile from a snake_case request payload"""
        errors = FieldErrors()
        employee_band = parse_enum(EmployeeBand, data.get("employee_band"), "employee_band", errors)
        ebitda_type = parse_enum(EarningsType, data.get("ebitda_type", "EBITDA"), "ebitda_type", errors)
        industry_group = None
        if data.get("industry_group"):
            industry_group = parse_enum(IndustryGroup, data["industry_group"], "industry_group", errors)
        for key in ("founded_year", "revenue", "ebitda", "net_income", "revenue_growth"):
            if data.get(key) is None:
                errors.add(key, "필수 입력값입니다")
        errors.raise_if_any()

        return cls(
            company_name=data.get("company_name", ""),
            industry_code=data.get("industry_code", "") or "",
            industry_group=industry_group,
            founded_year=int(data["founded_year"]),
            employee_band=employee_band,
            revenue=int(data["revenue"]),
            ebitda=int(data["ebitda"]),
            ebitda_type=ebitda_type,
            net_income=int(data["net_income"]),
            revenue_growth=float(data["revenue_growth"]),
            total_debt=int(data.get("total_debt", 0)),
            cash=int(data.get("cash", 0)),
        )


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class MultiplesInfo:
    """Industry, peer-proxy and blended EV/EBITDA multiples"""
    industry_low: float
    industry_median: float
    industry_high: float
    peer_proxy_median: float
    dlom: float
    weight_industry: float
    weight_peer: float
    final_low: float
    final_median: float
    final_high: float


@dataclass(frozen=True)
class AdjustmentsInfo:
    growth_adj: float
    size_adj: float
    age_adj: float
    total_multiplier: float  # Product of (1 + adj)

    @property
    def total_adj(self) -> float:
        return self.total_multiplier - 1


@dataclass(frozen=True)
class EnterpriseValue:
    base_low: int  # EBITDA x final low multiple
    base_mid: int
    base_high: int
    adjusted_mid: int  # base_mid x total multiplier
    range_low: int
    range_high: int


@dataclass(frozen=True)
class ValueRange:
    low: int
    high: int

    @property
    def mid(self) -> int:
        return round_krw((self.low + self.high) / 2)


@dataclass(frozen=True)
class ValuationResult:
    """Complete calculator output, every intermediate figure included"""
    valuation_method: str
    can_evaluate: bool
    industry_group: IndustryGroup
    profile: FinancialProfile
    multiples: MultiplesInfo
    adjustments: AdjustmentsInfo
    enterprise_value: EnterpriseValue
    net_debt: int
    equity_value: ValueRange
    spread: Tuple[float, float]
    explain_text: str
    warnings: Tuple[str, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()
    fallback_reason: Optional[str] = None

    def equity_value_at(self, basis: ValuationBasis) -> int:
        """Equity figure for the chosen basis (low / mid / high)"""
        if basis == ValuationBasis.LOW:
            return self.equity_value.low
        if basis == ValuationBasis.HIGH:
            return self.equity_value.high
        return self.equity_value.mid

    def to_dict(self) -> dict:
        """Serialize to the snake_case wire format"""
        m = self.multiples
        a = self.adjustments
        ev = self.enterprise_value
        return {
            "valuation_method": self.valuation_method,
            "can_evaluate": self.can_evaluate,
            "fallback_reason": self.fallback_reason,
            "industry_group": self.industry_group.value,
            "ksic": self.profile.industry_code,
            "inputs": self.profile.to_dict(),
            "multiples": {
                "industry_low": m.industry_low,
                "industry_median": m.industry_median,
                "industry_high": m.industry_high,
                "peer_proxy_median": m.peer_proxy_median,
                "dlom": m.dlom,
                "weights": {"industry": m.weight_industry, "peer": m.weight_peer},
                "final_low": m.final_low,
                "final_median": m.final_median,
                "final_high": m.final_high,
            },
            "adjustments": {
                "growth_adj": a.growth_adj,
                "size_adj": a.size_adj,
                "age_adj": a.age_adj,
                "total_multiplier": a.total_multiplier,
                "total_adj": a.total_adj,
            },
            "enterprise_value": {
                "base_low": ev.base_low,
                "base_mid": ev.base_mid,
                "base_high": ev.base_high,
                "after_adjustments_mid": ev.adjusted_mid,
                "range_low": ev.range_low,
                "range_high": ev.range_high,
            },
            "net_debt": self.net_debt,
            "equity_value": {
                "low": self.equity_value.low,
                "mid": self.equity_value.mid,
                "high": self.equity_value.high,
            },
            "spread": {"low": self.spread[0], "high": self.spread[1]},
            "warnings": list(self.warnings),
            "issues": [
                {"field": i.field, "message": i.message, "severity": i.severity.value}
                for i in self.issues
            ],
            "explain_text": self.explain_text,
        }


# =============================================================================
# INDUSTRY MAPPING
# =============================================================================

def map_to_industry_group(industry_code: Optional[str]) -> IndustryGroup:
    """
    Map a KSIC code to an industry group

    Sub-code overrides (e.g. J62 software) win over the section letter.
    Empty or unknown codes fall back to OTHER.
    """
    if not industry_code:
        return IndustryGroup.OTHER

    code = industry_code.strip().upper()
    if not code:
        return IndustryGroup.OTHER

    override = KSIC_SUBCLASS_OVERRIDES.get(code[:3])
    if override is not None:
        return override

    return KSIC_TO_INDUSTRY.get(code[0], IndustryGroup.OTHER)


# =============================================================================
# CONSISTENCY CHECKS
# =============================================================================

def validate_profile(profile: FinancialProfile, as_of_year: Optional[int] = None) -> List[ValidationIssue]:
    """Non-blocking consistency checks; errors are surfaced, not raised"""
    year = as_of_year or _current_year()
    issues = []

    if profile.revenue > 0 and abs(profile.ebitda) > profile.revenue * MARGIN_WARNING_RATIO:
        issues.append(ValidationIssue(
            "ebitda",
            "EBITDA가 매출액의 50%를 초과합니다. 입력값을 확인해주세요.",
            Severity.WARNING,
        ))

    if profile.revenue > 0 and abs(profile.net_income) > profile.revenue * MARGIN_WARNING_RATIO:
        issues.append(ValidationIssue(
            "net_income",
            "순이익이 매출액의 50%를 초과합니다. 입력값을 확인해주세요.",
            Severity.WARNING,
        ))

    if profile.net_income > profile.ebitda:
        issues.append(ValidationIssue(
            "net_income",
            "순이익이 EBITDA보다 큽니다. 일반적이지 않은 수치입니다.",
            Severity.WARNING,
        ))

    if profile.founded_year > year:
        issues.append(ValidationIssue(
            "founded_year",
            "설립연도가 현재 연도보다 클 수 없습니다.",
            Severity.ERROR,
        ))

    if profile.revenue_growth < MIN_GROWTH_PCT or profile.revenue_growth > MAX_GROWTH_PCT:
        issues.append(ValidationIssue(
            "revenue_growth",
            "성장률은 -100% ~ 300% 범위 내여야 합니다.",
            Severity.ERROR,
        ))

    return issues


# =============================================================================
# ADJUSTMENTS
# =============================================================================

def calculate_growth_adjustment(revenue_growth: float) -> float:
    """Growth adjustment from the first band whose threshold is met"""
    for threshold, adj in GROWTH_ADJUSTMENT_BANDS:
        if revenue_growth >= threshold:
            return adj
    return NEGATIVE_GROWTH_ADJUSTMENT


def calculate_size_adjustment(employee_band: EmployeeBand) -> float:
    """Headcount adjustment; unknown bands get none"""
    return SIZE_ADJUSTMENTS.get(employee_band, 0.0)


def calculate_age_adjustment(founded_year: int, as_of_year: Optional[int] = None) -> float:
    """Young-company adjustment; mature companies get none"""
    company_age = (as_of_year or _current_year()) - founded_year
    for max_age, adj in AGE_ADJUSTMENT_BANDS:
        if company_age < max_age:
            return adj
    return MATURE_AGE_ADJUSTMENT


def calculate_adjustments(profile: FinancialProfile, as_of_year: Optional[int] = None) -> AdjustmentsInfo:
    growth_adj = calculate_growth_adjustment(profile.revenue_growth)
    size_adj = calculate_size_adjustment(profile.employee_band)
    age_adj = calculate_age_adjustment(profile.founded_year, as_of_year)

    return AdjustmentsInfo(
        growth_adj=growth_adj,
        size_adj=size_adj,
        age_adj=age_adj,
        total_multiplier=(1 + growth_adj) * (1 + size_adj) * (1 + age_adj),
    )


# =============================================================================
# MULTIPLES
# =============================================================================

def calculate_final_multiples(
    industry_group: IndustryGroup,
    config: Optional[ValuationConfig] = None,
) -> MultiplesInfo:
    """Blend the industry triple with the DLOM-discounted peer proxy"""
    config = config or get_valuation_config()
    industry = INDUSTRY_MULTIPLES[industry_group]

    peer_factor = config.peer_proxy_multiplier * (1 - config.dlom)
    peer_low = industry.low * peer_factor
    peer_median = industry.median * peer_factor
    peer_high = industry.high * peer_factor

    def blend(industry_multiple: float, peer_multiple: float) -> float:
        return round(config.weight_industry * industry_multiple + config.weight_peer * peer_multiple, 2)

    return MultiplesInfo(
        industry_low=industry.low,
        industry_median=industry.median,
        industry_high=industry.high,
        peer_proxy_median=industry.median * config.peer_proxy_multiplier,
        dlom=config.dlom,
        weight_industry=config.weight_industry,
        weight_peer=config.weight_peer,
        final_low=blend(industry.low, peer_low),
        final_median=blend(industry.median, peer_median),
        final_high=blend(industry.high, peer_high),
    )


# =============================================================================
# EVALUATION
# =============================================================================

def evaluate_valuation(
    profile: FinancialProfile,
    config: Optional[ValuationConfig] = None,
    as_of_year: Optional[int] = None,
) -> ValuationResult:
    """
    Run the relative valuation

    Args:
        profile: Company financial profile
        config: Multiple blending parameters (process default if None)
        as_of_year: Valuation year for the age adjustment (current year if None)

    Returns:
        ValuationResult; check can_evaluate before reading numeric fields
    """
    config = config or get_valuation_config()
    year = as_of_year or _current_year()

    issues = validate_profile(profile, year)
    warnings = [issue.message for issue in issues]
    industry_group = profile.resolve_industry_group()
    net_debt = profile.net_debt

    if profile.ebitda <= 0:
        logger.debug("EBITDA %s <= 0, returning non-evaluable result", profile.ebitda)
        return _not_evaluable_result(profile, industry_group, config, net_debt, warnings, issues)

    multiples = calculate_final_multiples(industry_group, config)

    base_low = profile.ebitda * multiples.final_low
    base_mid = profile.ebitda * multiples.final_median
    base_high = profile.ebitda * multiples.final_high

    adjustments = calculate_adjustments(profile, year)
    adjusted_mid = base_mid * adjustments.total_multiplier

    warning_count = sum(1 for i in issues if i.severity == Severity.WARNING)
    spread = EV_RANGE_SPREAD_WIDE if warning_count >= WIDE_SPREAD_WARNING_COUNT else EV_RANGE_SPREAD_NORMAL

    ev_range_low = adjusted_mid * spread[0]
    ev_range_high = adjusted_mid * spread[1]

    equity_low = max(0, ev_range_low - net_debt)
    equity_high = max(0, ev_range_high - net_debt)
    if equity_low == 0 or equity_high == 0:
        warnings.append(EQUITY_FLOOR_WARNING)

    equity_value = ValueRange(low=round_krw(equity_low), high=round_krw(equity_high))

    explain_text = _build_explain_text(
        profile, industry_group, multiples, adjustments, spread, net_debt, bool(issues)
    )

    result = ValuationResult(
        valuation_method=VALUATION_METHOD,
        can_evaluate=True,
        industry_group=industry_group,
        profile=profile,
        multiples=multiples,
        adjustments=adjustments,
        enterprise_value=EnterpriseValue(
            base_low=round_krw(base_low),
            base_mid=round_krw(base_mid),
            base_high=round_krw(base_high),
            adjusted_mid=round_krw(adjusted_mid),
            range_low=round_krw(ev_range_low),
            range_high=round_krw(ev_range_high),
        ),
        net_debt=net_debt,
        equity_value=equity_value,
        spread=spread,
        explain_text=explain_text,
        warnings=tuple(warnings),
        issues=tuple(issues),
    )
    logger.debug(
        "Valued %s: EV %s~%s, equity %s~%s",
        industry_group.value, result.enterprise_value.range_low, result.enterprise_value.range_high,
        equity_value.low, equity_value.high,
    )
    return result


def _not_evaluable_result(
    profile: FinancialProfile,
    industry_group: IndustryGroup,
    config: ValuationConfig,
    net_debt: int,
    warnings: List[str],
    issues: List[ValidationIssue],
) -> ValuationResult:
    return ValuationResult(
        valuation_method=VALUATION_METHOD,
        can_evaluate=False,
        industry_group=industry_group,
        profile=profile,
        multiples=MultiplesInfo(
            industry_low=0, industry_median=0, industry_high=0,
            peer_proxy_median=0,
            dlom=config.dlom,
            weight_industry=config.weight_industry,
            weight_peer=config.weight_peer,
            final_low=0, final_median=0, final_high=0,
        ),
        adjustments=AdjustmentsInfo(growth_adj=0, size_adj=0, age_adj=0, total_multiplier=1.0),
        enterprise_value=EnterpriseValue(0, 0, 0, 0, 0, 0),
        net_debt=net_debt,
        equity_value=ValueRange(0, 0),
        spread=EV_RANGE_SPREAD_NORMAL,
        explain_text=FALLBACK_EXPLAIN_TEXT,
        warnings=tuple(warnings),
        issues=tuple(issues),
        fallback_reason=FALLBACK_REASON,
    )


def _build_explain_text(
    profile: FinancialProfile,
    industry_group: IndustryGroup,
    multiples: MultiplesInfo,
    adjustments: AdjustmentsInfo,
    spread: Tuple[float, float],
    net_debt: int,
    has_issues: bool,
) -> str:
    parts = [
        f"귀사는 {industry_group.value} 산업군으로 분류되어, 해당 산업의 "
        f"EV/EBITDA 멀티플({multiples.final_median:.1f}배)을 적용하였습니다."
    ]

    if profile.ebitda_type == EarningsType.OPERATING_INCOME:
        parts.append("EBITDA 대신 입력된 영업이익을 기준 이익으로 사용하였습니다.")

    parts.append(
        f"비상장 기업의 유동성 부족을 반영하여 {multiples.dlom * 100:.0f}%의 "
        f"DLOM(비유동성 할인)을 적용하였습니다."
    )

    adj_parts = []
    if adjustments.growth_adj != 0:
        adj_parts.append(f"성장률 보정 {format_signed_pct(adjustments.growth_adj)}")
    if adjustments.size_adj != 0:
        adj_parts.append(f"규모 보정 {format_signed_pct(adjustments.size_adj)}")
    if adjustments.age_adj != 0:
        adj_parts.append(f"업력 보정 {format_signed_pct(adjustments.age_adj)}")
    if adj_parts:
        parts.append(f"기업 특성을 반영하여 {', '.join(adj_parts)}을 적용하였습니다.")

    spread_pct = round((spread[1] - 1) * 100)
    parts.append(f"평가 결과의 불확실성을 반영하여 ±{spread_pct}% 범위로 제시하였습니다.")

    if net_debt != 0:
        label = "순차입금" if net_debt > 0 else "순현금"
        parts.append(f"{label} {format_krw(abs(net_debt))}을 반영하여 최종 지분가치를 산출하였습니다.")

    if has_issues:
        parts.append("※ 입력된 재무정보에 일부 비정상적인 수치가 있어 결과 해석에 주의가 필요합니다.")

    return " ".join(parts)


def _current_year() -> int:
    return datetime.now().year
