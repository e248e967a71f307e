"""
SME Exit Valuation Engine Package
Relative valuation, staged-payout simulation and deal-structure scenarios
"""

# Reference tables
from .constants import (
    IndustryGroup,
    EmployeeBand,
    MultipleRange,
    INDUSTRY_MULTIPLES,
    KSIC_CATEGORIES,
)

# Configuration
from .config import (
    ValuationConfig,
    DealConfig,
    get_valuation_config,
    get_deal_config,
)

# Boundary validation
from .validation import InputValidationError

# Relative valuation
from .valuation import (
    FinancialProfile,
    EarningsType,
    Severity,
    ValidationIssue,
    ValuationBasis,
    ValuationResult,
    map_to_industry_group,
    validate_profile,
    calculate_adjustments,
    calculate_final_multiples,
    evaluate_valuation,
)

# Payout simulation
from .cashflows import (
    PayoutStructure,
    ScheduleItem,
    ScheduleMode,
    CaseType,
    SimulationInput,
    SimulationResult,
    ScenarioResult,
    CaseResult,
    calculate_pv,
    build_schedule,
    normalize_schedules,
    simulate_payouts,
)

# Deal inputs
from .deal import (
    CapTable,
    SaleIntent,
    EbitdaTrend,
    DealScenarioInput,
)

# Deal-structure scenarios
from .scenarios import (
    ScenarioCode,
    DealArchetype,
    DealScenarioResult,
    DealScenarioOutput,
    ARCHETYPES,
    format_scenario_name,
    generate_deal_scenarios,
)

# Sensitivity analysis
from .sensitivity import (
    SensitivityResult,
    SensitivityTable,
    generate_sensitivity_range,
    run_discount_rate_sensitivity,
    run_2way_sensitivity,
    run_dlom_sensitivity,
)

# Excel / CSV export
from .export import (
    create_excel_workbook,
    export_cashflows_to_csv,
    simulation_to_dataframe,
    deal_scenarios_to_dataframe,
)

# Display helpers
from .formatting import format_krw, format_pct

__all__ = [
    # Reference tables
    "IndustryGroup",
    "EmployeeBand",
    "MultipleRange",
    "INDUSTRY_MULTIPLES",
    "KSIC_CATEGORIES",
    # Config
    "ValuationConfig",
    "DealConfig",
    "get_valuation_config",
    "get_deal_config",
    "InputValidationError",
    # Valuation
    "FinancialProfile",
    "EarningsType",
    "Severity",
    "ValidationIssue",
    "ValuationBasis",
    "ValuationResult",
    "map_to_industry_group",
    "validate_profile",
    "calculate_adjustments",
    "calculate_final_multiples",
    "evaluate_valuation",
    # Cashflows
    "PayoutStructure",
    "ScheduleItem",
    "ScheduleMode",
    "CaseType",
    "SimulationInput",
    "SimulationResult",
    "ScenarioResult",
    "CaseResult",
    "calculate_pv",
    "build_schedule",
    "normalize_schedules",
    "simulate_payouts",
    # Deal
    "CapTable",
    "SaleIntent",
    "EbitdaTrend",
    "DealScenarioInput",
    # Scenarios
    "ScenarioCode",
    "DealArchetype",
    "DealScenarioResult",
    "DealScenarioOutput",
    "ARCHETYPES",
    "format_scenario_name",
    "generate_deal_scenarios",
    # Sensitivity
    "SensitivityResult",
    "SensitivityTable",
    "generate_sensitivity_range",
    "run_discount_rate_sensitivity",
    "run_2way_sensitivity",
    "run_dlom_sensitivity",
    # Export
    "create_excel_workbook",
    "export_cashflows_to_csv",
    "simulation_to_dataframe",
    "deal_scenarios_to_dataframe",
    # Formatting
    "format_krw",
    "format_pct",
]
