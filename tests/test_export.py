"""
Unit tests for Excel and CSV export
"""
from io import StringIO

import pandas as pd
import pytest
from openpyxl import load_workbook

from engine.cashflows import simulate_payouts
from engine.export import (
    create_excel_workbook,
    deal_scenarios_to_dataframe,
    export_cashflows_to_csv,
    simulation_to_dataframe,
)
from engine.scenarios import generate_deal_scenarios
from engine.valuation import evaluate_valuation

from conftest import AS_OF_YEAR


@pytest.fixture
def simulation(payout_input):
    payout_input.equity_scenarios = [50, 100]
    return simulate_payouts(payout_input)


@pytest.fixture
def deal_output(make_deal_input, deal_config):
    return generate_deal_scenarios(make_deal_input(), deal_config)


class TestDataFrames:

    def test_simulation_frame(self, simulation):
        df = simulation_to_dataframe(simulation)
        assert len(df) == 6  # 2 scenarios x 3 cases
        assert list(df.columns[:6]) == ["equity_pct", "case", "year_0", "year_1", "year_2", "year_3"]
        guaranteed = df[(df.equity_pct == 100) & (df.case == "guaranteed")].iloc[0]
        assert guaranteed["year_0"] == 5_000_000_000
        assert guaranteed["pv"] == 5_000_000_000

    def test_deal_frame(self, deal_output):
        df = deal_scenarios_to_dataframe(deal_output)
        assert list(df["code"]) == [s.code.value for s in deal_output.scenarios]
        assert df.loc[df.code == "PARTIAL_EXIT_ROLLOVER", "rank"].iloc[0] == 1

    def test_deal_frame_is_in_whole_won(self, make_deal_input, deal_config):
        deal = make_deal_input(equity_value_low=7_777_777_777, equity_value_high=9_999_999_999, tax_rate_pct=22)
        df = deal_scenarios_to_dataframe(generate_deal_scenarios(deal, deal_config))

        for column in ("immediate_cash", "founder_gross", "founder_net", "founder_net_expected"):
            assert df[column].dtype.kind == "i"
        assert (df.founder_net_expected == df.founder_gross - df.founder_fee - df.founder_tax).all()


class TestCsvExport:

    def test_all_scenarios(self, simulation):
        df = pd.read_csv(StringIO(export_cashflows_to_csv(simulation)))
        assert list(df.columns) == ["Equity_Pct", "Case", "Year", "Cashflow"]
        assert len(df) == 2 * 3 * 4

    def test_single_scenario(self, simulation):
        df = pd.read_csv(StringIO(export_cashflows_to_csv(simulation, equity_pct=50)))
        assert set(df["Equity_Pct"]) == {50}

    def test_missing_scenario(self, simulation):
        assert export_cashflows_to_csv(simulation, equity_pct=70) == ""


class TestExcelWorkbook:

    def test_full_workbook(self, manufacturing_profile, simulation, deal_output):
        valuation = evaluate_valuation(manufacturing_profile, as_of_year=AS_OF_YEAR)
        buffer = create_excel_workbook(valuation, simulation, deal_output)

        wb = load_workbook(buffer)
        assert wb.sheetnames == ["Summary", "Cashflows", "Deal Scenarios", "Assumptions"]
        assert wb["Summary"]["A1"].value == "EXIT VALUATION SUMMARY"
        assert wb["Cashflows"]["A1"].value == "equity_pct"
        assert wb["Deal Scenarios"]["A2"].value == "ALL_CASH_CONTROL"

    def test_valuation_only(self, manufacturing_profile):
        valuation = evaluate_valuation(manufacturing_profile, as_of_year=AS_OF_YEAR)
        wb = load_workbook(create_excel_workbook(valuation=valuation))
        assert wb.sheetnames == ["Summary", "Assumptions"]
