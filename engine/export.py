"""
Excel and CSV export of valuation, payout simulation and deal scenarios
"""
from io import BytesIO
from typing import Optional
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils.dataframe import dataframe_to_rows
import pandas as pd

from .cashflows import CaseType, SimulationResult
from .scenarios import DealScenarioOutput
from .valuation import ValuationResult


COLORS = {
    "header": "1F4E78",
    "accent": "2E75B6",
    "white": "FFFFFF",
    "gray": "7F7F7F",
}

KRW_FORMAT = '#,##0"원"'
MULTIPLE_FORMAT = '0.00"x"'
PERCENT_FORMAT = "0.0%"


def simulation_to_dataframe(simulation: SimulationResult) -> pd.DataFrame:
    """One row per equity scenario and case, yearly cashflows as columns"""
    years = simulation.inputs.lock_in_years
    rows = []
    for scenario in simulation.scenarios:
        for case, result in scenario.cases.items():
            row = {"equity_pct": scenario.equity_pct, "case": case.value}
            for t in range(years + 1):
                row[f"year_{t}"] = result.cashflows[t]
            row["total_nominal"] = result.total_nominal
            row["pv"] = result.pv
            row["pv_to_total_ratio"] = result.kpis.pv_to_total_ratio
            rows.append(row)

    columns = ["equity_pct", "case"] + [f"year_{t}" for t in range(years + 1)] + [
        "total_nominal", "pv", "pv_to_total_ratio",
    ]
    return pd.DataFrame(rows, columns=columns)


def deal_scenarios_to_dataframe(output: DealScenarioOutput) -> pd.DataFrame:
    """One row per archetype in fixed order, with Top-3 rank; amounts in whole won"""
    rows = []
    for s in output.scenarios:
        breakdown = s.breakdown.to_dict()
        net = s.net_breakdown.to_dict()
        rows.append({
            "code": s.code.value,
            "name": s.name,
            "eligible": s.eligible,
            "rank": output.rank_of(s.code),
            "immediate_cash": breakdown["immediate_cash"],
            "deferred_cash": breakdown["deferred_cash"],
            "conditional_cash_expected": breakdown["conditional_cash_expected"],
            "stock_value": breakdown["stock_value"],
            "retained_value": breakdown["retained_value"],
            "corporate_cash_in": breakdown.get("corporate_cash_in"),
            "founder_gross": net["founder_gross"],
            "founder_fee": net["founder_fee"],
            "founder_tax": net["founder_tax"],
            "founder_net": net["founder_net"],
            "founder_net_expected": net["founder_net_expected"],
            "cash_now": s.score.cash_now,
            "upside": s.score.upside,
            "risk": s.score.risk,
            "founder_fit": s.score.founder_fit,
            "total_score": s.score.total,
        })
    return pd.DataFrame(rows)


def export_cashflows_to_csv(
    simulation: SimulationResult,
    equity_pct: Optional[int] = None,
) -> str:
    """
    Export yearly cashflows to CSV string

    Args:
        simulation: Simulation result
        equity_pct: Only this equity scenario (all scenarios if None)

    Returns:
        CSV string in long format, empty if the scenario is not present
    """
    rows = []
    for scenario in simulation.scenarios:
        if equity_pct is not None and scenario.equity_pct != equity_pct:
            continue
        for case, result in scenario.cases.items():
            for year, amount in enumerate(result.cashflows):
                rows.append({
                    "Equity_Pct": scenario.equity_pct,
                    "Case": case.value,
                    "Year": year,
                    "Cashflow": amount,
                })

    if not rows:
        return ""
    return pd.DataFrame(rows).to_csv(index=False)


def create_excel_workbook(
    valuation: Optional[ValuationResult] = None,
    simulation: Optional[SimulationResult] = None,
    deal_output: Optional[DealScenarioOutput] = None,
) -> BytesIO:
    """
    Create Excel workbook of whichever results are supplied

    Args:
        valuation: Relative valuation result
        simulation: Payout simulation result
        deal_output: Deal-structure scenarios

    Returns:
        BytesIO buffer with Excel file
    """
    wb = Workbook()

    _create_summary_sheet(wb, valuation, simulation, deal_output)
    if simulation is not None:
        _create_cashflow_sheet(wb, simulation)
    if deal_output is not None:
        _create_deal_sheet(wb, deal_output)
    _create_assumptions_sheet(wb, valuation, simulation, deal_output)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    return buffer


def _apply_header_style(cell):
    """Apply header styling to cell"""
    cell.font = Font(bold=True, color=COLORS["white"])
    cell.fill = PatternFill(start_color=COLORS["header"], end_color=COLORS["header"], fill_type="solid")
    cell.alignment = Alignment(horizontal="center", vertical="center")


def _section_title(ws, row: int, title: str):
    ws[f"A{row}"] = title
    ws[f"A{row}"].font = Font(bold=True, size=12, color=COLORS["accent"])


def _write_pairs(ws, row: int, pairs, number_format: str = KRW_FORMAT) -> int:
    for label, value in pairs:
        ws[f"A{row}"] = label
        ws[f"B{row}"] = value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            ws[f"B{row}"].number_format = number_format
        row += 1
    return row


def _write_dataframe(ws, df: pd.DataFrame, start_row: int = 1):
    """Write df with a styled header row; missing values become empty cells"""
    df = df.astype(object).where(pd.notna(df), None)
    for r_offset, values in enumerate(dataframe_to_rows(df, index=False, header=True)):
        for c_index, value in enumerate(values, 1):
            cell = ws.cell(row=start_row + r_offset, column=c_index, value=value)
            if r_offset == 0:
                _apply_header_style(cell)
            elif isinstance(value, (int, float)) and not isinstance(value, bool) and abs(value) >= 1000:
                cell.number_format = KRW_FORMAT


def _create_summary_sheet(
    wb: Workbook,
    valuation: Optional[ValuationResult],
    simulation: Optional[SimulationResult],
    deal_output: Optional[DealScenarioOutput],
):
    """Create summary sheet"""
    ws = wb.active
    ws.title = "Summary"

    ws["A1"] = "EXIT VALUATION SUMMARY"
    ws["A1"].font = Font(bold=True, size=16, color=COLORS["header"])
    ws.merge_cells("A1:D1")

    ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    ws["A2"].font = Font(italic=True, color=COLORS["gray"])

    row = 4
    if valuation is not None:
        _section_title(ws, row, "VALUATION")
        row += 1
        ws[f"A{row}"] = "Industry Group"
        ws[f"B{row}"] = valuation.industry_group.value
        row += 1
        ws[f"A{row}"] = "Evaluable"
        ws[f"B{row}"] = "Yes" if valuation.can_evaluate else "No"
        row += 1
        row = _write_pairs(ws, row, [("Final Median Multiple", valuation.multiples.final_median)],
                           MULTIPLE_FORMAT)
        row = _write_pairs(ws, row, [
            ("EV Low", valuation.enterprise_value.range_low),
            ("EV High", valuation.enterprise_value.range_high),
            ("Net Debt", valuation.net_debt),
            ("Equity Low", valuation.equity_value.low),
            ("Equity Mid", valuation.equity_value.mid),
            ("Equity High", valuation.equity_value.high),
        ])
        row += 1

    if simulation is not None:
        _section_title(ws, row, "PAYOUT SIMULATION (EXPECTED CASE)")
        row += 1
        headers = ["Equity %", "Total Proceeds", "Expected PV", "PV / Total"]
        for col, header in enumerate(headers, 1):
            _apply_header_style(ws.cell(row=row, column=col, value=header))
        for scenario in simulation.scenarios:
            row += 1
            expected = scenario.cases[CaseType.EXPECTED]
            ws.cell(row=row, column=1, value=scenario.equity_pct)
            ws.cell(row=row, column=2, value=scenario.total_proceeds).number_format = KRW_FORMAT
            ws.cell(row=row, column=3, value=expected.pv).number_format = KRW_FORMAT
            ws.cell(row=row, column=4, value=expected.kpis.pv_to_total_ratio).number_format = PERCENT_FORMAT
        row += 2

    if deal_output is not None:
        _section_title(ws, row, "TOP 3 DEAL STRUCTURES")
        row += 1
        for rank, code in enumerate(deal_output.top3, 1):
            scenario = deal_output.get(code)
            ws.cell(row=row, column=1, value=f"{rank}. {scenario.name}")
            ws.cell(row=row, column=2, value=scenario.score.total)
            ws.cell(row=row, column=3, value=scenario.net_breakdown.founder_net_expected).number_format = KRW_FORMAT
            row += 1

    ws.column_dimensions["A"].width = 28
    for col in ["B", "C", "D"]:
        ws.column_dimensions[col].width = 20


def _create_cashflow_sheet(wb: Workbook, simulation: SimulationResult):
    """Create yearly cashflow sheet"""
    ws = wb.create_sheet(title="Cashflows")
    _write_dataframe(ws, simulation_to_dataframe(simulation))

    ws.column_dimensions["A"].width = 12
    ws.column_dimensions["B"].width = 14


def _create_deal_sheet(wb: Workbook, deal_output: DealScenarioOutput):
    """Create deal scenario comparison sheet"""
    ws = wb.create_sheet(title="Deal Scenarios")
    _write_dataframe(ws, deal_scenarios_to_dataframe(deal_output))

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 20

    if deal_output.warnings:
        row = len(deal_output.scenarios) + 3
        _section_title(ws, row, "WARNINGS")
        for i, warning in enumerate(deal_output.warnings, 1):
            ws.cell(row=row + i, column=1, value=warning)


def _create_assumptions_sheet(
    wb: Workbook,
    valuation: Optional[ValuationResult],
    simulation: Optional[SimulationResult],
    deal_output: Optional[DealScenarioOutput],
):
    """Create assumptions sheet"""
    ws = wb.create_sheet(title="Assumptions")

    ws["A1"] = "ASSUMPTIONS"
    ws["A1"].font = Font(bold=True, size=14)

    assumptions = []
    if valuation is not None:
        m = valuation.multiples
        a = valuation.adjustments
        assumptions += [
            ("Valuation", ""),
            ("DLOM", m.dlom),
            ("Industry Weight", m.weight_industry),
            ("Peer Weight", m.weight_peer),
            ("Growth Adjustment", a.growth_adj),
            ("Size Adjustment", a.size_adj),
            ("Age Adjustment", a.age_adj),
            ("", ""),
        ]
    if simulation is not None:
        inputs = simulation.inputs
        assumptions += [
            ("Payout Simulation", ""),
            ("Discount Rate", inputs.discount_rate),
            ("Lock-in Years", inputs.lock_in_years),
            ("Upfront", inputs.payout.upfront_pct / 100),
            ("Escrow", inputs.payout.escrow_pct / 100),
            ("Earn-out", inputs.payout.earnout_pct / 100),
            ("Escrow Probability", inputs.escrow_probability),
            ("Earn-out Probability", inputs.earnout_probability),
            ("", ""),
        ]
    if deal_output is not None:
        cap_table = deal_output.inputs.cap_table
        assumptions += [
            ("Deal Structure", ""),
            ("Founder Share", cap_table.founder_share / 100),
            ("Investor Share", cap_table.investor_share / 100),
            ("Option Pool", cap_table.option_pool / 100),
            ("Sale Intent", deal_output.inputs.sale_intent.value),
        ]

    for row, (label, value) in enumerate(assumptions, 3):
        ws.cell(row=row, column=1, value=label)
        if value == "":
            ws.cell(row=row, column=1).font = Font(bold=True)
            continue
        cell = ws.cell(row=row, column=2, value=value)
        if isinstance(value, float):
            cell.number_format = PERCENT_FORMAT

    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 15
