"""
Sensitivity analysis and 2-way tables for payout PV and equity value
"""
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple
import numpy as np

from .cashflows import (
    CaseType,
    SimulationInput,
    normalize_schedules,
    run_equity_scenario,
)
from .config import ValuationConfig, get_valuation_config
from .formatting import format_krw
from .valuation import FinancialProfile, ValuationBasis, evaluate_valuation


@dataclass
class SensitivityResult:
    """PV of each case at one parameter value"""
    param_value: float
    guaranteed_pv: int
    expected_pv: int
    best_pv: int

    def pv(self, case: CaseType) -> int:
        return {
            CaseType.GUARANTEED: self.guaranteed_pv,
            CaseType.EXPECTED: self.expected_pv,
            CaseType.BEST: self.best_pv,
        }[case]


@dataclass
class SensitivityTable:
    """2-way sensitivity table results"""
    param1_name: str
    param1_values: List[float]
    param2_name: str
    param2_values: List[float]
    results: np.ndarray  # 2D array, rows = param1, columns = param2
    metric: str  # "pv" or "equity_value"
    base_case_value: float


def generate_sensitivity_range(
    base_value: float,
    num_points: int = 5,
    pct_range: float = 0.20,
    absolute_range: float = None,
    bounds: Optional[Tuple[float, float]] = None,
) -> List[float]:
    """
    Generate sensitivity range around base value

    Args:
        base_value: Center value
        num_points: Number of points in range
        pct_range: Percentage range (+/- from base)
        absolute_range: Absolute range (overrides pct_range if provided)
        bounds: Optional (min, max) the range is clipped to

    Returns:
        List of values for sensitivity analysis
    """
    if absolute_range is not None:
        low = base_value - absolute_range
        high = base_value + absolute_range
    else:
        low = base_value * (1 - pct_range)
        high = base_value * (1 + pct_range)

    if bounds is not None:
        low = max(low, bounds[0])
        high = min(high, bounds[1])

    return [float(v) for v in np.linspace(low, high, num_points)]


def _scenario_for(sim_input: SimulationInput, equity_pct: int):
    escrow, earnout, _ = normalize_schedules(sim_input)
    return run_equity_scenario(sim_input, equity_pct, escrow, earnout)


def run_discount_rate_sensitivity(
    sim_input: SimulationInput,
    equity_pct: int,
    discount_rates: List[float],
) -> List[SensitivityResult]:
    """
    PV of every case across discount rates for one equity-sale percentage

    Args:
        sim_input: Base simulation input
        equity_pct: Equity-sale scenario to analyse
        discount_rates: Rates to test

    Returns:
        List of SensitivityResult, one per rate
    """
    results = []
    for rate in discount_rates:
        scenario = _scenario_for(replace(sim_input, discount_rate=rate), equity_pct)
        results.append(SensitivityResult(
            param_value=rate,
            guaranteed_pv=scenario.guaranteed.pv,
            expected_pv=scenario.expected.pv,
            best_pv=scenario.best.pv,
        ))
    return results


def run_2way_sensitivity(
    sim_input: SimulationInput,
    equity_pct: int,
    discount_rates: List[float],
    lock_in_years: List[int],
    case: CaseType = CaseType.EXPECTED,
) -> SensitivityTable:
    """
    PV of one case over discount rate x lock-in period

    Custom schedule items beyond a shorter lock-in are dropped for that cell,
    as the simulator does.
    """
    results = np.zeros((len(discount_rates), len(lock_in_years)))

    for i, rate in enumerate(discount_rates):
        for j, years in enumerate(lock_in_years):
            test_input = replace(sim_input, discount_rate=rate, lock_in_years=int(years))
            scenario = _scenario_for(test_input, equity_pct)
            results[i, j] = scenario.cases[case].pv

    base_case = _scenario_for(sim_input, equity_pct).cases[case].pv

    return SensitivityTable(
        param1_name="discount_rate",
        param1_values=list(discount_rates),
        param2_name="lock_in_years",
        param2_values=list(lock_in_years),
        results=results,
        metric="pv",
        base_case_value=base_case,
    )


def run_dlom_sensitivity(
    profile: FinancialProfile,
    dlom_values: List[float],
    peer_weights: List[float],
    config: Optional[ValuationConfig] = None,
    basis: ValuationBasis = ValuationBasis.MID,
    as_of_year: Optional[int] = None,
) -> SensitivityTable:
    """
    Equity value over DLOM x peer weight

    The industry weight moves with the peer weight so the two still sum to 1.
    Non-evaluable profiles give a table of zeros.
    """
    config = config or get_valuation_config()
    results = np.zeros((len(dlom_values), len(peer_weights)))

    for i, dlom in enumerate(dlom_values):
        for j, weight_peer in enumerate(peer_weights):
            test_config = replace(config, dlom=dlom, weight_peer=weight_peer,
                                  weight_industry=1 - weight_peer)
            test_config.validate()
            valuation = evaluate_valuation(profile, test_config, as_of_year)
            results[i, j] = valuation.equity_value_at(basis)

    base = evaluate_valuation(profile, config, as_of_year).equity_value_at(basis)

    return SensitivityTable(
        param1_name="dlom",
        param1_values=list(dlom_values),
        param2_name="weight_peer",
        param2_values=list(peer_weights),
        results=results,
        metric="equity_value",
        base_case_value=base,
    )


def format_sensitivity_table_for_display(
    table: SensitivityTable,
    format_func: Callable[[float], str] = None,
) -> Dict:
    """
    Format sensitivity table for display

    Args:
        table: SensitivityTable
        format_func: Function to format values (KRW units by default)

    Returns:
        Dict with formatted data for display
    """
    if format_func is None:
        format_func = format_krw

    def format_param(name: str, value: float) -> str:
        if name == "lock_in_years":
            return f"{int(value)}년"
        return f"{value:.1%}"

    return {
        "col_headers": [format_param(table.param2_name, v) for v in table.param2_values],
        "row_headers": [format_param(table.param1_name, v) for v in table.param1_values],
        "values": [[format_func(v) for v in row] for row in table.results],
        "param1_name": table.param1_name,
        "param2_name": table.param2_name,
        "metric": table.metric,
        "base_case": format_func(table.base_case_value),
    }
