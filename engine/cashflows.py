"""
Staged-payout cashflow simulation for equity sales
Upfront, escrow and earn-out proceeds over a lock-in period, valued under
guaranteed / expected / best realization cases
"""
import logging
import numpy as np
import numpy_financial as npf
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .constants import (
    ALLOWED_LOCK_IN_YEARS,
    MAX_EQUITY_SCENARIOS,
    MIN_DISCOUNT_RATE,
    MAX_DISCOUNT_RATE,
    PCT_SUM_TOLERANCE,
    DEFAULT_ESCROW_PROBABILITY,
    DEFAULT_EARNOUT_PROBABILITY,
    HIGH_DISCOUNT_RATE_WARNING,
    LOW_UPFRONT_WARNING_PCT,
    LOW_ESCROW_PROBABILITY_WARNING,
    HIGH_DEFERRED_SHARE_PCT,
)
from .formatting import round_krw
from .valuation import ValuationBasis, ValuationResult
from .validation import FieldErrors, parse_enum, pct_sum_matches

logger = logging.getLogger(__name__)


class ScheduleMode(Enum):
    """How an escrow or earn-out share is spread over the lock-in years"""
    LUMP_SUM_END = "lump_sum_end"
    EQUAL_ANNUAL = "equal_annual"
    CUSTOM = "custom"


class CaseType(Enum):
    GUARANTEED = "guaranteed"  # Upfront only
    EXPECTED = "expected"  # Conditional items weighted by probability
    BEST = "best"  # Every conditional item paid in full


@dataclass
class PayoutStructure:
    """Split of total proceeds, in percent"""
    upfront_pct: float
    escrow_pct: float
    earnout_pct: float

    @property
    def total_pct(self) -> float:
        return self.upfront_pct + self.escrow_pct + self.earnout_pct

    @property
    def deferred_pct(self) -> float:
        return self.escrow_pct + self.earnout_pct

    def validate(self) -> bool:
        """Validate payout split"""
        for name in ("upfront_pct", "escrow_pct", "earnout_pct"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be in [0, 100], got {value}")
        if not pct_sum_matches([self.upfront_pct, self.escrow_pct, self.earnout_pct], 100, PCT_SUM_TOLERANCE):
            raise ValueError(f"Payout percentages must sum to 100%, got {self.total_pct}%")
        return True

    def to_dict(self) -> dict:
        return {
            "upfront_pct": self.upfront_pct,
            "escrow_pct": self.escrow_pct,
            "earnout_pct": self.earnout_pct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PayoutStructure":
        return cls(
            upfront_pct=float(data.get("upfront_pct", 0)),
            escrow_pct=float(data.get("escrow_pct", 0)),
            earnout_pct=float(data.get("earnout_pct", 0)),
        )


@dataclass(frozen=True)
class ScheduleItem:
    """One conditional payment landing at the end of a lock-in year"""
    year: int  # 1..lock_in_years
    pct_of_total: float  # Percent of total proceeds
    probability: Optional[float] = None  # Achievement probability, 0-1

    def to_dict(self) -> dict:
        return {"year": self.year, "pct_of_total": self.pct_of_total, "probability": self.probability}

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleItem":
        probability = data.get("probability")
        return cls(
            year=int(data["year"]),
            pct_of_total=float(data["pct_of_total"]),
            probability=None if probability is None else float(probability),
        )


@dataclass
class SimulationInput:
    """Payout simulation request"""
    equity_basis_value: int  # Equity value picked from the valuation range
    lock_in_years: int  # 1, 3 or 5
    equity_scenarios: List[int]  # Percent of equity sold, one scenario each
    payout: PayoutStructure
    discount_rate: float  # 0.08 - 0.20
    valuation_basis: ValuationBasis = ValuationBasis.MID

    escrow_schedule_mode: ScheduleMode = ScheduleMode.LUMP_SUM_END
    escrow_schedule: Optional[List[ScheduleItem]] = None
    escrow_probability: float = DEFAULT_ESCROW_PROBABILITY

    earnout_schedule_mode: ScheduleMode = ScheduleMode.EQUAL_ANNUAL
    earnout_schedule: Optional[List[ScheduleItem]] = None
    earnout_probability: float = DEFAULT_EARNOUT_PROBABILITY

    def validate(self) -> bool:
        """Boundary validation; raises InputValidationError listing every problem"""
        errors = FieldErrors()

        if self.equity_basis_value <= 0:
            errors.add("equity_basis_value", "기준 지분가치는 0보다 커야 합니다")
        if self.lock_in_years not in ALLOWED_LOCK_IN_YEARS:
            errors.add("lock_in_years", "락인 기간은 1년, 3년, 5년 중 하나여야 합니다")

        if not self.equity_scenarios:
            errors.add("equity_scenarios", "최소 1개의 시나리오가 필요합니다")
        elif len(self.equity_scenarios) > MAX_EQUITY_SCENARIOS:
            errors.add("equity_scenarios", "최대 10개의 시나리오까지 가능합니다")
        for i, pct in enumerate(self.equity_scenarios):
            if int(pct) != pct or not 1 <= pct <= 100:
                errors.add(f"equity_scenarios.{i}", "지분 시나리오는 1~100 사이의 정수여야 합니다")

        for name in ("upfront_pct", "escrow_pct", "earnout_pct"):
            errors.check_range(f"payout.{name}", getattr(self.payout, name), 0, 100)
        if not pct_sum_matches(
            [self.payout.upfront_pct, self.payout.escrow_pct, self.payout.earnout_pct],
            100, PCT_SUM_TOLERANCE,
        ):
            errors.add("payout", "지급 구조의 합계가 100%여야 합니다")

        errors.check_range("discount_rate", self.discount_rate, MIN_DISCOUNT_RATE, MAX_DISCOUNT_RATE,
                           "할인율은 8% ~ 20% 범위여야 합니다")
        errors.check_range("escrow_probability", self.escrow_probability, 0, 1)
        errors.check_range("earnout_probability", self.earnout_probability, 0, 1)

        for prefix, schedule in (("escrow_schedule", self.escrow_schedule),
                                 ("earnout_schedule", self.earnout_schedule)):
            for i, item in enumerate(schedule or []):
                errors.check_range(f"{prefix}.{i}.year", item.year, 1, None, "연차는 1 이상이어야 합니다")
                errors.check_range(f"{prefix}.{i}.pct_of_total", item.pct_of_total, 0, 100)
                if item.probability is not None:
                    errors.check_range(f"{prefix}.{i}.probability", item.probability, 0, 1)

        errors.raise_if_any()
        return True

    def to_dict(self) -> dict:
        return {
            "equity_basis_value": self.equity_basis_value,
            "valuation_basis": self.valuation_basis.value,
            "lock_in_years": self.lock_in_years,
            "equity_scenarios": list(self.equity_scenarios),
            "payout": self.payout.to_dict(),
            "discount_rate": self.discount_rate,
            "escrow_schedule_mode": self.escrow_schedule_mode.value,
            "escrow_schedule": [i.to_dict() for i in self.escrow_schedule] if self.escrow_schedule else None,
            "escrow_probability": self.escrow_probability,
            "earnout_schedule_mode": self.earnout_schedule_mode.value,
            "earnout_schedule": [i.to_dict() for i in self.earnout_schedule] if self.earnout_schedule else None,
            "earnout_probability": self.earnout_probability,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationInput":
        """Create input from a snake_case request payload"""
        errors = FieldErrors()
        valuation_basis = parse_enum(ValuationBasis, data.get("valuation_basis") or "mid",
                                     "valuation_basis", errors)
        escrow_mode = parse_enum(ScheduleMode, data.get("escrow_schedule_mode") or "lump_sum_end",
                                 "escrow_schedule_mode", errors)
        earnout_mode = parse_enum(ScheduleMode, data.get("earnout_schedule_mode") or "equal_annual",
                                  "earnout_schedule_mode", errors)
        for key in ("equity_basis_value", "lock_in_years", "equity_scenarios", "payout", "discount_rate"):
            if data.get(key) is None:
                errors.add(key, "필수 입력값입니다")
        errors.raise_if_any()

        escrow_schedule = data.get("escrow_schedule")
        earnout_schedule = data.get("earnout_schedule")
        escrow_probability = data.get("escrow_probability")
        earnout_probability = data.get("earnout_probability")

        return cls(
            equity_basis_value=int(data["equity_basis_value"]),
            valuation_basis=valuation_basis,
            lock_in_years=int(data["lock_in_years"]),
            equity_scenarios=list(data["equity_scenarios"]),
            payout=PayoutStructure.from_dict(data["payout"]),
            discount_rate=float(data["discount_rate"]),
            escrow_schedule_mode=escrow_mode,
            escrow_schedule=[ScheduleItem.from_dict(i) for i in escrow_schedule] if escrow_schedule else None,
            escrow_probability=(DEFAULT_ESCROW_PROBABILITY if escrow_probability is None
                                else float(escrow_probability)),
            earnout_schedule_mode=earnout_mode,
            earnout_schedule=[ScheduleItem.from_dict(i) for i in earnout_schedule] if earnout_schedule else None,
            earnout_probability=(DEFAULT_EARNOUT_PROBABILITY if earnout_probability is None
                                 else float(earnout_probability)),
        )

    @classmethod
    def from_valuation(
        cls,
        valuation: ValuationResult,
        basis: ValuationBasis,
        **kwargs,
    ) -> "SimulationInput":
        """Build an input whose equity basis is taken from a valuation result"""
        return cls(
            equity_basis_value=valuation.equity_value_at(basis),
            valuation_basis=basis,
            **kwargs,
        )


@dataclass
class CaseKPIs:
    immediate_amount: int  # Paid at t=0
    final_amount: int  # Paid at t=lock_in_years
    pv_to_total_ratio: float


@dataclass
class CaseResult:
    """Cashflows and value of one realization case"""
    cashflows: List[int]  # t = 0..lock_in_years
    total_nominal: int
    pv: int
    kpis: CaseKPIs

    def to_dict(self) -> dict:
        return {
            "cashflows": list(self.cashflows),
            "total_nominal": self.total_nominal,
            "pv": self.pv,
            "kpis": {
                "immediate_amount": self.kpis.immediate_amount,
                "final_amount": self.kpis.final_amount,
                "pv_to_total_ratio": self.kpis.pv_to_total_ratio,
            },
        }


@dataclass
class ScenarioResult:
    """Results for one equity-sale percentage"""
    equity_pct: int
    total_proceeds: int  # Proceeds if every payment lands
    guaranteed: CaseResult
    expected: CaseResult
    best: CaseResult

    @property
    def cases(self) -> dict:
        return {
            CaseType.GUARANTEED: self.guaranteed,
            CaseType.EXPECTED: self.expected,
            CaseType.BEST: self.best,
        }

    def is_consistent(self) -> bool:
        """Whether guaranteed <= expected <= best holds for PV and nominal totals"""
        return (
            self.guaranteed.pv <= self.expected.pv <= self.best.pv
            and self.guaranteed.total_nominal <= self.expected.total_nominal <= self.best.total_nominal
        )

    def to_dict(self) -> dict:
        return {
            "equity_pct": self.equity_pct,
            "total_proceeds": self.total_proceeds,
            "cases": {
                "guaranteed": self.guaranteed.to_dict(),
                "expected": self.expected.to_dict(),
                "best": self.best.to_dict(),
            },
        }


@dataclass
class SimulationResult:
    """Complete payout simulation output"""
    inputs: SimulationInput
    escrow_schedule: List[ScheduleItem]  # Schedules actually applied
    earnout_schedule: List[ScheduleItem]
    scenarios: List[ScenarioResult]
    warnings: List[str] = field(default_factory=list)
    explain_text: str = ""

    def to_dict(self) -> dict:
        """Serialize to the snake_case wire format"""
        return {
            "basis": {
                "equity_basis_value": self.inputs.equity_basis_value,
                "valuation_basis": self.inputs.valuation_basis.value,
                "lock_in_years": self.inputs.lock_in_years,
                "discount_rate": self.inputs.discount_rate,
                "payout": self.inputs.payout.to_dict(),
            },
            "inputs_echo": self.inputs.to_dict(),
            "applied_schedules": {
                "escrow": [i.to_dict() for i in self.escrow_schedule],
                "earnout": [i.to_dict() for i in self.earnout_schedule],
            },
            "scenarios": [s.to_dict() for s in self.scenarios],
            "warnings": list(self.warnings),
            "explain_text": self.explain_text,
        }


# =============================================================================
# SCHEDULES
# =============================================================================

def build_schedule(
    mode: ScheduleMode,
    lock_in_years: int,
    pct: float,
    probability: float,
) -> List[ScheduleItem]:
    """
    Built-in schedule for an escrow or earn-out share

    Args:
        mode: LUMP_SUM_END or EQUAL_ANNUAL (CUSTOM yields no built-in items)
        lock_in_years: Lock-in horizon
        pct: Share of total proceeds, in percent
        probability: Achievement probability applied to every item

    Returns:
        List of ScheduleItem
    """
    if pct == 0 or mode == ScheduleMode.CUSTOM:
        return []

    if mode == ScheduleMode.LUMP_SUM_END:
        return [ScheduleItem(year=lock_in_years, pct_of_total=pct, probability=probability)]

    annual_pct = pct / lock_in_years
    return [
        ScheduleItem(year=year, pct_of_total=annual_pct, probability=probability)
        for year in range(1, lock_in_years + 1)
    ]


def _resolve_custom_schedule(
    label: str,
    items: Optional[List[ScheduleItem]],
    expected_pct: float,
    default_probability: float,
    lock_in_years: int,
    warnings: List[str],
) -> List[ScheduleItem]:
    """Apply default probabilities, drop out-of-horizon items and check the sum"""
    items = items or []

    total_pct = sum(item.pct_of_total for item in items)
    if not pct_sum_matches([total_pct], expected_pct, PCT_SUM_TOLERANCE):
        warnings.append(
            f"{label} 스케줄 합계({total_pct:.1f}%)가 설정된 비율({expected_pct:g}%)과 다릅니다."
        )

    resolved = []
    for item in items:
        if item.year > lock_in_years:
            warnings.append(
                f"{label} 스케줄의 {item.year}년차 항목이 락인 기간({lock_in_years}년)을 벗어나 제외되었습니다."
            )
            continue
        probability = default_probability if item.probability is None else item.probability
        resolved.append(ScheduleItem(item.year, item.pct_of_total, probability))

    return resolved


def normalize_schedules(sim_input: SimulationInput) -> Tuple[List[ScheduleItem], List[ScheduleItem], List[str]]:
    """Resolve the escrow and earn-out schedules actually applied"""
    warnings: List[str] = []
    payout = sim_input.payout

    if sim_input.escrow_schedule_mode == ScheduleMode.CUSTOM:
        escrow = _resolve_custom_schedule(
            "Escrow", sim_input.escrow_schedule, payout.escrow_pct,
            sim_input.escrow_probability, sim_input.lock_in_years, warnings,
        )
    else:
        escrow = build_schedule(
            sim_input.escrow_schedule_mode, sim_input.lock_in_years,
            payout.escrow_pct, sim_input.escrow_probability,
        )

    if sim_input.earnout_schedule_mode == ScheduleMode.CUSTOM:
        earnout = _resolve_custom_schedule(
            "Earn-out", sim_input.earnout_schedule, payout.earnout_pct,
            sim_input.earnout_probability, sim_input.lock_in_years, warnings,
        )
    else:
        earnout = build_schedule(
            sim_input.earnout_schedule_mode, sim_input.lock_in_years,
            payout.earnout_pct, sim_input.earnout_probability,
        )

    return escrow, earnout, warnings


# =============================================================================
# CASHFLOWS
# =============================================================================

def calculate_pv(cashflows, discount_rate: float) -> float:
    """PV = sum of cashflows[t] / (1 + r)^t, t starting at 0"""
    return float(npf.npv(discount_rate, np.asarray(cashflows, dtype=float)))


def generate_case_cashflows(
    total_proceeds: float,
    lock_in_years: int,
    upfront_pct: float,
    escrow_schedule: List[ScheduleItem],
    earnout_schedule: List[ScheduleItem],
    case: CaseType,
) -> np.ndarray:
    """
    Yearly cashflows for one realization case

    Upfront lands at t=0 in every case. Schedule items land at their year,
    weighted by probability (expected) or in full (best).
    """
    flows = np.zeros(lock_in_years + 1)
    flows[0] = total_proceeds * upfront_pct / 100

    if case == CaseType.GUARANTEED:
        return flows

    for item in list(escrow_schedule) + list(earnout_schedule):
        if not 0 < item.year <= lock_in_years:
            continue
        amount = total_proceeds * item.pct_of_total / 100
        if case == CaseType.EXPECTED:
            amount *= item.probability if item.probability is not None else 1.0
        flows[item.year] += amount

    return flows


def calculate_case_result(flows: np.ndarray, discount_rate: float) -> CaseResult:
    """Round flows to whole won and derive totals, PV and KPIs"""
    cashflows = [round_krw(cf) for cf in flows]
    total_nominal = sum(cashflows)
    pv = calculate_pv(flows, discount_rate)
    raw_total = float(flows.sum())

    return CaseResult(
        cashflows=cashflows,
        total_nominal=total_nominal,
        pv=round_krw(pv),
        kpis=CaseKPIs(
            immediate_amount=cashflows[0],
            final_amount=cashflows[-1],
            pv_to_total_ratio=round(pv / raw_total, 3) if raw_total > 0 else 0.0,
        ),
    )


def run_equity_scenario(
    sim_input: SimulationInput,
    equity_pct: int,
    escrow_schedule: List[ScheduleItem],
    earnout_schedule: List[ScheduleItem],
) -> ScenarioResult:
    """Run the three cases for one equity-sale percentage"""
    total_proceeds = sim_input.equity_basis_value * equity_pct / 100

    results = {}
    for case in CaseType:
        flows = generate_case_cashflows(
            total_proceeds,
            sim_input.lock_in_years,
            sim_input.payout.upfront_pct,
            escrow_schedule,
            earnout_schedule,
            case,
        )
        results[case] = calculate_case_result(flows, sim_input.discount_rate)

    return ScenarioResult(
        equity_pct=equity_pct,
        total_proceeds=round_krw(total_proceeds),
        guaranteed=results[CaseType.GUARANTEED],
        expected=results[CaseType.EXPECTED],
        best=results[CaseType.BEST],
    )


def simulate_payouts(sim_input: SimulationInput) -> SimulationResult:
    """
    Simulate staged payouts for every equity-sale scenario

    Args:
        sim_input: Boundary-validated simulation input

    Returns:
        SimulationResult with per-scenario cases, warnings and explanation
    """
    escrow_schedule, earnout_schedule, warnings = normalize_schedules(sim_input)

    if len(set(sim_input.equity_scenarios)) != len(sim_input.equity_scenarios):
        warnings.append("중복된 지분 시나리오가 있습니다.")

    scenarios = []
    for equity_pct in sim_input.equity_scenarios:
        scenario = run_equity_scenario(sim_input, equity_pct, escrow_schedule, earnout_schedule)
        if not (scenario.guaranteed.pv <= scenario.expected.pv <= scenario.best.pv):
            logger.warning(
                "PV ordering violated for %s%% scenario: guaranteed=%s expected=%s best=%s",
                equity_pct, scenario.guaranteed.pv, scenario.expected.pv, scenario.best.pv,
            )
            warnings.append(f"지분 {equity_pct}% 시나리오에서 케이스 간 PV 순서가 비정상입니다.")
        scenarios.append(scenario)

    if sim_input.discount_rate > HIGH_DISCOUNT_RATE_WARNING:
        warnings.append("할인율이 15%를 초과하여 현재가치가 크게 감소합니다.")
    if sim_input.payout.upfront_pct < LOW_UPFRONT_WARNING_PCT:
        warnings.append("즉시 지급 비율이 30% 미만으로 유동성 위험이 있을 수 있습니다.")
    if sim_input.escrow_probability < LOW_ESCROW_PROBABILITY_WARNING:
        warnings.append("Escrow 달성 확률이 70% 미만으로 설정되어 있습니다.")

    result = SimulationResult(
        inputs=sim_input,
        escrow_schedule=escrow_schedule,
        earnout_schedule=earnout_schedule,
        scenarios=scenarios,
        warnings=warnings,
        explain_text=_build_explain_text(sim_input, scenarios),
    )
    logger.debug("Simulated %d scenarios with %d warnings", len(scenarios), len(warnings))
    return result


def _build_explain_text(sim_input: SimulationInput, scenarios: List[ScenarioResult]) -> str:
    payout = sim_input.payout
    parts = [
        f"락인 기간 {sim_input.lock_in_years}년, 할인율 {sim_input.discount_rate * 100:.0f}%를 "
        f"적용하여 시뮬레이션하였습니다.",
        f"지급 구조는 즉시 지급 {payout.upfront_pct:g}%, Escrow {payout.escrow_pct:g}%, "
        f"Earn-out {payout.earnout_pct:g}%입니다.",
        "세 가지 케이스를 제공합니다: Guaranteed(확정, 즉시지급만), Expected(확률 반영), "
        "Best(100% 달성 가정).",
    ]

    if payout.deferred_pct > 0:
        parts.append(
            f"Escrow는 {sim_input.escrow_probability * 100:.0f}% 달성 확률을 가정하였고, "
            f"Earn-out은 연차별 조건 달성 확률(기본 {sim_input.earnout_probability * 100:.0f}%)을 적용하였습니다."
        )

    if scenarios:
        first = scenarios[0]
        expected_ratio = first.expected.kpis.pv_to_total_ratio
        if expected_ratio < 1:
            parts.append(
                f"Expected 케이스 기준, 락인 기간과 할인율로 인해 현재가치는 명목 총액의 "
                f"약 {expected_ratio * 100:.1f}%입니다."
            )
        if first.guaranteed.pv < first.expected.pv:
            parts.append("최악의 경우(Guaranteed), 즉시 지급분만 수령하게 되어 현재가치가 크게 감소합니다.")

    if payout.deferred_pct > HIGH_DEFERRED_SHARE_PCT:
        parts.append(
            "Escrow와 Earn-out 비중이 높아 후행 지급에 따른 불확실성이 있습니다. "
            "조건 달성 여부에 따라 실제 수령액이 달라질 수 있습니다."
        )

    return " ".join(parts)
