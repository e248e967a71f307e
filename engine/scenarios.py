"""
Deal-structure scenario generator
Evaluates five fixed transaction archetypes against the founder's equity range
and preferences, then scores and ranks them
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging

from .config import DealConfig, get_deal_config
from .constants import (
    ALL_CASH_TARGET_SALE_RATIO,
    ROLLOVER_TARGET_SALE_RATIO,
    ROLLOVER_RETAINED_RATIO,
    EARNOUT_BASE_PAYMENT_RATIO,
    EARNOUT_RATIO,
    EARNOUT_YEARS,
    CASH_AND_STOCK_CASH_RATIO,
    CASH_AND_STOCK_STOCK_RATIO,
    CASH_AND_STOCK_LOCKUP_YEARS,
    CASH_AND_STOCK_STOCK_DISCOUNT,
    ASSET_CONTRIBUTION_RATIO,
    CONTROL_MIN_FOUNDER_SHARE_PCT,
    ROLLOVER_MIN_FOUNDER_SHARE_PCT,
    ROLLOVER_MIN_GROWTH_PCT,
    HIGH_GROWTH_PCT,
    SYNERGY_KEYWORDS,
    BUSINESS_UNIT_KEYWORDS,
    UNUSUAL_MIN_FOUNDER_SHARE_PCT,
    UNUSUAL_MAX_OPTION_POOL_PCT,
)
from .deal import DealScenarioInput, EbitdaTrend, SaleIntent
from .formatting import round_krw

logger = logging.getLogger(__name__)

TOP_N = 3


class ScenarioCode(Enum):
    ALL_CASH_CONTROL = "ALL_CASH_CONTROL"
    PARTIAL_EXIT_ROLLOVER = "PARTIAL_EXIT_ROLLOVER"
    PERFORMANCE_EARNOUT = "PERFORMANCE_EARNOUT"
    CASH_AND_STOCK = "CASH_AND_STOCK"
    ASSET_DEAL = "ASSET_DEAL"


@dataclass(frozen=True)
class CashBreakdown:
    """Founder-level proceeds by timing and certainty, in won"""
    immediate_cash: float = 0.0
    deferred_cash: float = 0.0  # Certain but delayed, e.g. escrow
    conditional_cash_expected: float = 0.0  # Probability-weighted
    conditional_cash_best: float = 0.0
    stock_value: float = 0.0
    retained_value: float = 0.0
    corporate_cash_in: Optional[float] = None  # Paid to the company, asset deals only

    @property
    def certain_cash(self) -> float:
        return self.immediate_cash + self.deferred_cash

    def to_dict(self) -> dict:
        data = {
            "immediate_cash": round_krw(self.immediate_cash),
            "deferred_cash": round_krw(self.deferred_cash),
            "conditional_cash_expected": round_krw(self.conditional_cash_expected),
            "conditional_cash_best": round_krw(self.conditional_cash_best),
            "stock_value": round_krw(self.stock_value),
            "retained_value": round_krw(self.retained_value),
        }
        if self.corporate_cash_in is not None:
            data["corporate_cash_in"] = round_krw(self.corporate_cash_in)
        return data


@dataclass(frozen=True)
class NetBreakdown:
    """Founder gross to net after advisory fee and tax"""
    founder_gross: float = 0.0
    founder_fee: float = 0.0
    founder_tax: float = 0.0
    founder_net: float = 0.0  # Certain cash only
    founder_net_expected: float = 0.0  # Including probability-weighted conditional cash

    def to_dict(self) -> dict:
        """Whole won; founder_net_expected is gross - fee - tax after rounding"""
        gross = round_krw(self.founder_gross)
        fee = round_krw(self.founder_fee)
        tax = round_krw(self.founder_tax)
        return {
            "founder_gross": gross,
            "founder_fee": fee,
            "founder_tax": tax,
            "founder_net": round_krw(self.founder_net),
            "founder_net_expected": gross - fee - tax,
        }


@dataclass(frozen=True)
class ScenarioScore:
    cash_now: float
    upside: float
    risk: float  # Lower is better
    founder_fit: float
    total: float

    def to_dict(self) -> dict:
        return {
            "cash_now": self.cash_now,
            "upside": self.upside,
            "risk": self.risk,
            "founder_fit": self.founder_fit,
            "total": self.total,
        }


@dataclass(frozen=True)
class DealScenarioResult:
    """One archetype evaluated against the deal input"""
    code: ScenarioCode
    name: str
    eligible: bool
    eligibility_reasons: Tuple[str, ...]
    assumptions: Dict[str, float]
    breakdown: CashBreakdown
    net_breakdown: NetBreakdown
    pros: Tuple[str, ...]
    cons: Tuple[str, ...]
    explanation: str
    is_founder_cashout_calculable: bool
    score: ScenarioScore

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "name": self.name,
            "eligible": self.eligible,
            "eligibility_reasons": list(self.eligibility_reasons),
            "assumptions": dict(self.assumptions),
            "breakdown": self.breakdown.to_dict(),
            "net_breakdown": self.net_breakdown.to_dict(),
            "pros": list(self.pros),
            "cons": list(self.cons),
            "explanation": self.explanation,
            "is_founder_cashout_calculable": self.is_founder_cashout_calculable,
        }


@dataclass
class DealScenarioOutput:
    """
    All five archetypes, the Top-3 and aggregate warnings

    Top-3 ranks by score alone. With the default zero ineligibility penalty an
    ineligible archetype can still appear in it; check `eligible` on the
    scenario before presenting it as a recommendation.
    """
    base_equity_median: float
    inputs: DealScenarioInput
    scenarios: List[DealScenarioResult]
    top3: List[ScenarioCode]
    warnings: List[str] = field(default_factory=list)

    @property
    def scoring(self) -> Dict[ScenarioCode, ScenarioScore]:
        return {s.code: s.score for s in self.scenarios}

    def get(self, code: ScenarioCode) -> DealScenarioResult:
        for scenario in self.scenarios:
            if scenario.code == code:
                return scenario
        raise KeyError(code)

    def rank_of(self, code: ScenarioCode) -> Optional[int]:
        """1-based Top-3 rank, None when outside the Top-3"""
        if code in self.top3:
            return self.top3.index(code) + 1
        return None

    def is_top3(self, code: ScenarioCode) -> bool:
        return code in self.top3

    def to_dict(self) -> dict:
        return {
            "base_equity_median": round_krw(self.base_equity_median),
            "inputs_echo": self.inputs.to_dict(),
            "scenarios": [s.to_dict() for s in self.scenarios],
            "top3": [code.value for code in self.top3],
            "scoring": {s.code.value: s.score.to_dict() for s in self.scenarios},
            "warnings": list(self.warnings),
        }


# =============================================================================
# ARCHETYPES
# =============================================================================

@dataclass(frozen=True)
class DealTerms:
    """Resolved cost assumptions, as fractions"""
    escrow_ratio: float
    earnout_probability: float
    fee_rate: float
    tax_rate: float

    @classmethod
    def resolve(cls, deal: DealScenarioInput, config: DealConfig) -> "DealTerms":
        earnout_pct = deal.earnout_probability_pct
        if earnout_pct is None:
            earnout_pct = config.default_earnout_probability_pct
        fee_pct = deal.fee_rate_pct
        if fee_pct is None:
            fee_pct = config.default_fee_rate_pct
        return cls(
            escrow_ratio=deal.escrow_assumption_pct / 100,
            earnout_probability=earnout_pct / 100,
            fee_rate=fee_pct / 100,
            tax_rate=(deal.tax_rate_pct or 0.0) / 100,
        )


def _has_keyword(text: str, keywords: Tuple[str, ...]) -> bool:
    lowered = (text or "").lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def _is_high_growth(deal: DealScenarioInput) -> bool:
    return deal.revenue_growth >= HIGH_GROWTH_PCT


class DealArchetype(ABC):
    """One fixed transaction structure"""
    code: ScenarioCode
    name: str
    pros: Tuple[str, ...] = ()
    cons: Tuple[str, ...] = ()
    base_cash_now: float = 0
    base_upside: float = 0
    base_risk: float = 0
    founder_cashout_calculable = True

    @abstractmethod
    def check_eligibility(self, deal: DealScenarioInput) -> Tuple[bool, List[str]]:
        """Whether the structure fits, with the reasons either way"""

    @abstractmethod
    def calculate(
        self, deal: DealScenarioInput, equity_median: float, terms: DealTerms
    ) -> Tuple[Dict[str, float], CashBreakdown]:
        """Assumptions used and the founder's cash breakdown"""

    @abstractmethod
    def describe(self, deal: DealScenarioInput) -> str:
        """Explanation shown when the structure is eligible"""

    def founder_fit(self, deal: DealScenarioInput) -> float:
        return 0

    def explain(self, deal: DealScenarioInput, eligible: bool) -> str:
        if not eligible:
            return f"현재 조건에서는 {self.name} 구조가 적합하지 않습니다. 적합성 조건을 확인해주세요."
        return self.describe(deal)

    def score(self, deal: DealScenarioInput, eligible: bool, config: DealConfig) -> ScenarioScore:
        founder_fit = self.founder_fit(deal)
        penalty = 0 if eligible else config.ineligible_penalty
        total = self.base_cash_now + self.base_upside - self.base_risk + founder_fit + penalty
        return ScenarioScore(
            cash_now=self.base_cash_now,
            upside=self.base_upside,
            risk=self.base_risk,
            founder_fit=founder_fit,
            total=total,
        )


class AllCashControl(DealArchetype):
    code = ScenarioCode.ALL_CASH_CONTROL
    name = "전액 현금 인수"
    pros = ("거래 즉시 전액 현금 확보", "미래 리스크 없음", "구조가 단순하여 협상 용이")
    cons = ("미래 성장 업사이드 포기", "일반적으로 밸류에이션 프리미엄 낮음", "매각 후 경영 참여 불가")
    base_cash_now = 5
    base_upside = 0
    base_risk = 0

    def check_eligibility(self, deal):
        founder_share = deal.cap_table.founder_share
        if deal.is_full_exit and founder_share >= CONTROL_MIN_FOUNDER_SHARE_PCT:
            return True, ["전량 매각 희망 + 창업자 지분 50% 이상"]
        reasons = []
        if not deal.is_full_exit:
            reasons.append("전량 매각 희망 필요")
        if founder_share < CONTROL_MIN_FOUNDER_SHARE_PCT:
            reasons.append("창업자 지분 50% 미만")
        return False, reasons

    def calculate(self, deal, equity_median, terms):
        founder_gross = equity_median * ALL_CASH_TARGET_SALE_RATIO * deal.cap_table.founder_ratio
        escrow_amount = founder_gross * terms.escrow_ratio
        assumptions = {"target_sale_ratio": ALL_CASH_TARGET_SALE_RATIO, "escrow_ratio": terms.escrow_ratio}
        return assumptions, CashBreakdown(
            immediate_cash=founder_gross - escrow_amount,
            deferred_cash=escrow_amount,
        )

    def describe(self, deal):
        return (
            "전량 매각을 희망하고 창업자 지분이 충분하여 전액 현금 인수 구조가 적합합니다. "
            "거래 즉시 전액을 현금으로 수령하며, 미래 리스크 없이 깔끔한 엑싯이 가능합니다."
        )

    def founder_fit(self, deal):
        return 2 if deal.is_full_exit else -1


class PartialExitRollover(DealArchetype):
    code = ScenarioCode.PARTIAL_EXIT_ROLLOVER
    name = "부분 매각 + 롤오버"
    pros = ("즉시 현금 + 미래 업사이드 동시 확보", "경영 지속 참여 가능", "인수자와 이해관계 정렬")
    cons = ("롤오버 지분 가치 불확실성", "경영 자율성 제한 가능", "2차 매각까지 추가 시간 필요")
    base_cash_now = 3
    base_upside = 5
    base_risk = 2

    def check_eligibility(self, deal):
        founder_share = deal.cap_table.founder_share
        partial = deal.sale_intent == SaleIntent.PARTIAL
        if (partial and founder_share >= ROLLOVER_MIN_FOUNDER_SHARE_PCT
                and deal.revenue_growth >= ROLLOVER_MIN_GROWTH_PCT):
            return True, ["일부 매각 희망 + 창업자 지분 30% 이상 + 매출 성장률 10% 이상"]
        reasons = []
        if not partial:
            reasons.append("일부 매각 희망 필요")
        if founder_share < ROLLOVER_MIN_FOUNDER_SHARE_PCT:
            reasons.append("창업자 지분 30% 미만")
        if deal.revenue_growth < ROLLOVER_MIN_GROWTH_PCT:
            reasons.append("매출 성장률 10% 미만")
        return False, reasons

    def calculate(self, deal, equity_median, terms):
        founder_ratio = deal.cap_table.founder_ratio
        assumptions = {
            "target_sale_ratio": ROLLOVER_TARGET_SALE_RATIO,
            "rollover_ratio": ROLLOVER_RETAINED_RATIO,
        }
        return assumptions, CashBreakdown(
            immediate_cash=equity_median * ROLLOVER_TARGET_SALE_RATIO * founder_ratio,
            retained_value=equity_median * ROLLOVER_RETAINED_RATIO * founder_ratio,
        )

    def describe(self, deal):
        return (
            f"일부 매각을 희망하고 성장세({deal.revenue_growth:g}%)가 양호하여 부분 매각 후 "
            "롤오버 구조가 적합합니다. 즉시 현금을 확보하면서도 잔여 지분으로 미래 업사이드에 "
            "참여할 수 있습니다."
        )

    def founder_fit(self, deal):
        fit = -1 if deal.is_full_exit else 2
        if _is_high_growth(deal):
            fit += 1
        return fit


class PerformanceEarnout(DealArchetype):
    code = ScenarioCode.PERFORMANCE_EARNOUT
    name = "성과 연동 어닝아웃"
    pros = ("매수자와 가치 평가 갭 해소", "성과 달성 시 높은 총 대가", "거래 성사 가능성 높음")
    cons = ("실적 미달 시 대가 감소", "인수 후 경영 간섭 가능", "어닝아웃 조건 협상 복잡")
    base_cash_now = 2
    base_upside = 4
    base_risk = 4

    def check_eligibility(self, deal):
        volatile = deal.ebitda_trend == EbitdaTrend.VOLATILE
        if _is_high_growth(deal) and volatile:
            return True, ["매출 성장률 15% 이상 + EBITDA 추이 변동"]
        reasons = []
        if not _is_high_growth(deal):
            reasons.append("매출 성장률 15% 미만")
        if not volatile:
            reasons.append("EBITDA 추이가 변동이 아님")
        return False, reasons

    def calculate(self, deal, equity_median, terms):
        founder_ratio = deal.cap_table.founder_ratio
        earnout_max = equity_median * EARNOUT_RATIO * founder_ratio
        assumptions = {
            "base_payment_ratio": EARNOUT_BASE_PAYMENT_RATIO,
            "earnout_ratio": EARNOUT_RATIO,
            "earnout_years": EARNOUT_YEARS,
            "earnout_probability": terms.earnout_probability,
        }
        return assumptions, CashBreakdown(
            immediate_cash=equity_median * EARNOUT_BASE_PAYMENT_RATIO * founder_ratio,
            conditional_cash_expected=earnout_max * terms.earnout_probability,
            conditional_cash_best=earnout_max,
        )

    def describe(self, deal):
        return (
            f"높은 성장률({deal.revenue_growth:g}%)과 변동적인 EBITDA 추이로 인해 매수자와 가치 평가 "
            "갭이 있을 수 있습니다. 어닝아웃 구조를 통해 성과 달성 시 추가 대가를 확보할 수 있습니다."
        )

    def founder_fit(self, deal):
        fit = 0
        if _is_high_growth(deal):
            fit += 1
        if deal.ebitda_trend == EbitdaTrend.VOLATILE:
            fit += 1
        return fit


class CashAndStock(DealArchetype):
    code = ScenarioCode.CASH_AND_STOCK
    name = "현금 + 주식 혼합"
    pros = ("인수자 주식 상승 시 추가 이익", "절세 효과 가능(주식 이연)", "전략적 파트너십 강화")
    cons = ("주식 가치 변동 리스크", "락업 기간 중 매각 불가", "비상장 주식은 유동성 낮음")
    base_cash_now = 2
    base_upside = 4
    base_risk = 3

    def check_eligibility(self, deal):
        has_synergy = _has_keyword(deal.company_profile, SYNERGY_KEYWORDS)
        high_growth = _is_high_growth(deal)
        if has_synergy or high_growth:
            reasons = []
            if has_synergy:
                reasons.append("시너지 키워드 포함")
            if high_growth:
                reasons.append("매출 성장률 15% 이상")
            return True, reasons
        return False, ["시너지 키워드 없음", "매출 성장률 15% 미만"]

    def calculate(self, deal, equity_median, terms):
        founder_ratio = deal.cap_table.founder_ratio
        assumptions = {
            "cash_ratio": CASH_AND_STOCK_CASH_RATIO,
            "stock_ratio": CASH_AND_STOCK_STOCK_RATIO,
            "stock_lockup_years": CASH_AND_STOCK_LOCKUP_YEARS,
            "stock_discount": CASH_AND_STOCK_STOCK_DISCOUNT,
        }
        return assumptions, CashBreakdown(
            immediate_cash=equity_median * CASH_AND_STOCK_CASH_RATIO * founder_ratio,
            stock_value=(equity_median * CASH_AND_STOCK_STOCK_RATIO * founder_ratio
                         * (1 - CASH_AND_STOCK_STOCK_DISCOUNT)),
        )

    def describe(self, deal):
        return (
            "시너지 효과 또는 높은 성장성으로 전략적 인수 가능성이 높습니다. 현금과 주식 혼합 "
            "구조를 통해 즉시 현금과 함께 인수자의 성장에 참여할 수 있습니다."
        )

    def founder_fit(self, deal):
        return 1 if _is_high_growth(deal) else 0


class AssetDeal(DealArchetype):
    code = ScenarioCode.ASSET_DEAL
    name = "자산 양수도"
    pros = ("특정 사업부만 분리 매각 가능", "기존 법인 유지 가능", "우발채무 분리 용이")
    cons = ("창업자 직접 현금 수령 불가", "배당/청산 등 2차 절차 필요", "세금 구조 복잡")
    base_cash_now = 1
    base_upside = 2
    base_risk = 4
    founder_cashout_calculable = False

    def check_eligibility(self, deal):
        has_unit = _has_keyword(deal.company_profile, BUSINESS_UNIT_KEYWORDS)
        if not deal.is_full_exit and has_unit:
            return True, ["전량 매각이 아님 + 사업부 키워드 포함"]
        reasons = []
        if deal.is_full_exit:
            reasons.append("전량 매각 시 부적합")
        if not has_unit:
            reasons.append("사업부 키워드 없음")
        return False, reasons

    def calculate(self, deal, equity_median, terms):
        assumptions = {"asset_contribution_ratio": ASSET_CONTRIBUTION_RATIO}
        return assumptions, CashBreakdown(corporate_cash_in=equity_median * ASSET_CONTRIBUTION_RATIO)

    def describe(self, deal):
        return (
            "특정 사업부 매각을 고려하는 경우 자산 양수도 구조가 적합합니다. 법인으로 현금이 "
            "유입되며, 창업자 수령은 배당/감자/청산 등 2차 절차가 필요합니다."
        )


# Evaluation and tie-break order
ARCHETYPES: Tuple[DealArchetype, ...] = (
    AllCashControl(),
    PartialExitRollover(),
    PerformanceEarnout(),
    CashAndStock(),
    AssetDeal(),
)


def get_archetype(code: ScenarioCode) -> DealArchetype:
    for archetype in ARCHETYPES:
        if archetype.code == code:
            return archetype
    raise KeyError(code)


def format_scenario_name(code: ScenarioCode) -> str:
    return get_archetype(code).name


# =============================================================================
# GENERATOR
# =============================================================================

def calculate_net_breakdown(
    breakdown: CashBreakdown,
    fee_rate: float,
    tax_rate: float,
    is_calculable: bool = True,
) -> NetBreakdown:
    """
    Founder gross to net

    Gross includes probability-weighted conditional cash; fee comes off gross,
    tax off the post-fee amount. founder_net keeps only the certain cash.
    """
    if not is_calculable:
        return NetBreakdown()

    keep = (1 - fee_rate) * (1 - tax_rate)
    gross = breakdown.certain_cash + breakdown.conditional_cash_expected
    fee = gross * fee_rate
    tax = (gross - fee) * tax_rate

    return NetBreakdown(
        founder_gross=gross,
        founder_fee=fee,
        founder_tax=tax,
        founder_net=breakdown.certain_cash * keep,
        founder_net_expected=gross - fee - tax,
    )


def rank_top3(results: List[DealScenarioResult]) -> List[ScenarioCode]:
    """Highest total first; sorted() is stable so ties keep archetype order"""
    ranked = sorted(results, key=lambda r: r.score.total, reverse=True)
    return [r.code for r in ranked[:TOP_N]]


def evaluate_archetype(
    archetype: DealArchetype,
    deal: DealScenarioInput,
    terms: DealTerms,
    config: DealConfig,
) -> DealScenarioResult:
    eligible, reasons = archetype.check_eligibility(deal)
    assumptions, breakdown = archetype.calculate(deal, deal.equity_median, terms)
    net = calculate_net_breakdown(
        breakdown, terms.fee_rate, terms.tax_rate, archetype.founder_cashout_calculable
    )
    return DealScenarioResult(
        code=archetype.code,
        name=archetype.name,
        eligible=eligible,
        eligibility_reasons=tuple(reasons),
        assumptions=assumptions,
        breakdown=breakdown,
        net_breakdown=net,
        pros=archetype.pros,
        cons=archetype.cons,
        explanation=archetype.explain(deal, eligible),
        is_founder_cashout_calculable=archetype.founder_cashout_calculable,
        score=archetype.score(deal, eligible, config),
    )


def collect_deal_warnings(
    deal: DealScenarioInput,
    results: List[DealScenarioResult],
    as_of: Optional[date] = None,
) -> List[str]:
    """Aggregate warnings across the input and every archetype"""
    warnings = []
    cap_table = deal.cap_table

    if not cap_table.sums_to_100():
        warnings.append(f"Cap Table 합계가 100%가 아닙니다 (현재: {cap_table.total:.1f}%)")
    if cap_table.founder_share < UNUSUAL_MIN_FOUNDER_SHARE_PCT:
        warnings.append("창업자 지분이 30% 미만으로 경영권 매각 구조가 제한될 수 있습니다.")
    if cap_table.option_pool > UNUSUAL_MAX_OPTION_POOL_PCT:
        warnings.append("스톡옵션 풀이 20%를 초과합니다. 행사 및 정산 조건을 확인하세요.")

    if not (deal.company_profile or "").strip():
        warnings.append(
            "회사 소개가 비어 있어 키워드 기반 시나리오(현금+주식, 자산 양수도) 판단이 제한됩니다."
        )

    if deal.is_full_exit and deal.primary_issue:
        warnings.append("전량 매각 희망과 신주 발행이 함께 선택되었습니다. 거래 구조를 확인하세요.")
    if deal.is_full_exit and deal.secondary_ratio < 100:
        warnings.append("전량 매각 희망이지만 구주 매각 비율이 100% 미만입니다.")

    if deal.expected_exit_date:
        try:
            exit_month = datetime.strptime(deal.expected_exit_date, "%Y-%m").date()
        except (TypeError, ValueError):
            warnings.append("예상 엑싯 시점 형식이 올바르지 않습니다 (YYYY-MM).")
        else:
            today = as_of or date.today()
            if (exit_month.year, exit_month.month) < (today.year, today.month):
                warnings.append("예상 엑싯 시점이 이미 지났습니다.")

    if results and not any(r.eligible for r in results):
        warnings.append("현재 조건에 적합한 딜 구조가 없습니다. 점수 순위는 참고용입니다.")

    return warnings


def generate_deal_scenarios(
    deal: DealScenarioInput,
    config: Optional[DealConfig] = None,
    as_of: Optional[date] = None,
) -> DealScenarioOutput:
    """
    Evaluate every archetype, score, rank and collect warnings

    Args:
        deal: Boundary-validated deal input
        config: Deal defaults, process-wide config when omitted
        as_of: Reference date for the exit-date check, today when omitted

    Returns:
        DealScenarioOutput with all five archetypes in fixed order
    """
    config = config or get_deal_config()
    terms = DealTerms.resolve(deal, config)

    results = [evaluate_archetype(archetype, deal, terms, config) for archetype in ARCHETYPES]
    top3 = rank_top3(results)
    warnings = collect_deal_warnings(deal, results, as_of)

    logger.debug(
        "Deal scenarios: median=%s eligible=%s top3=%s",
        deal.equity_median,
        [r.code.value for r in results if r.eligible],
        [code.value for code in top3],
    )

    return DealScenarioOutput(
        base_equity_median=deal.equity_median,
        inputs=deal,
        scenarios=results,
        top3=top3,
        warnings=warnings,
    )
