"""
Shared fixtures for engine tests
"""
import pytest

from engine.cashflows import PayoutStructure, ScheduleMode, SimulationInput
from engine.config import DealConfig, ValuationConfig
from engine.constants import EmployeeBand, IndustryGroup
from engine.deal import CapTable, DealScenarioInput, EbitdaTrend, SaleIntent
from engine.valuation import FinancialProfile

AS_OF_YEAR = 2025


@pytest.fixture
def valuation_config():
    return ValuationConfig()


@pytest.fixture
def deal_config():
    return DealConfig()


@pytest.fixture
def manufacturing_profile():
    """Mature, fast-growing manufacturer with 100+ staff"""
    return FinancialProfile(
        company_name="테스트제조",
        industry_group=IndustryGroup.MANUFACTURING,
        founded_year=AS_OF_YEAR - 10,
        employee_band=EmployeeBand.OVER_100,
        revenue=5_000_000_000,
        ebitda=1_000_000_000,
        net_income=600_000_000,
        revenue_growth=15.0,
        total_debt=2_000_000_000,
        cash=500_000_000,
    )


@pytest.fixture
def payout_input():
    """100억 basis, 3-year lock-in, 50/30/20 split"""
    return SimulationInput(
        equity_basis_value=10_000_000_000,
        lock_in_years=3,
        equity_scenarios=[100],
        payout=PayoutStructure(upfront_pct=50, escrow_pct=30, earnout_pct=20),
        discount_rate=0.12,
        escrow_schedule_mode=ScheduleMode.LUMP_SUM_END,
        escrow_probability=0.9,
        earnout_schedule_mode=ScheduleMode.EQUAL_ANNUAL,
        earnout_probability=0.6,
    )


@pytest.fixture
def make_deal_input():
    """Factory for deal inputs with sensible defaults"""

    def _make(**overrides):
        values = dict(
            equity_value_low=8_000_000_000,
            equity_value_high=12_000_000_000,
            cap_table=CapTable(founder_share=60, investor_share=30, option_pool=10),
            sale_intent=SaleIntent.PARTIAL,
            revenue_growth=12.0,
            ebitda_trend=EbitdaTrend.RISING,
            company_profile="B2B 소프트웨어 기업",
        )
        values.update(overrides)
        return DealScenarioInput(**values)

    return _make
