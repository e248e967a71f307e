"""
Unit tests for the staged-payout cashflow simulator
"""
from dataclasses import replace

import pytest

from engine.cashflows import (
    CaseType,
    PayoutStructure,
    ScheduleItem,
    ScheduleMode,
    SimulationInput,
    build_schedule,
    calculate_pv,
    generate_case_cashflows,
    normalize_schedules,
    simulate_payouts,
)
from engine.validation import InputValidationError
from engine.valuation import ValuationBasis, evaluate_valuation

from conftest import AS_OF_YEAR


def discounted(cashflows, rate):
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cashflows))


class TestPresentValue:
    """PV convention: first flow at t=0 is not discounted."""

    def test_first_flow_undiscounted(self):
        assert calculate_pv([100.0], 0.12) == pytest.approx(100.0)

    def test_matches_manual_discounting(self):
        flows = [5_000.0, 400.0, 400.0, 3_100.0]
        assert calculate_pv(flows, 0.12) == pytest.approx(discounted(flows, 0.12))

    def test_higher_rate_lowers_pv(self):
        flows = [0.0, 100.0, 100.0]
        assert calculate_pv(flows, 0.20) < calculate_pv(flows, 0.08)


class TestSchedules:
    """Built-in and custom schedules."""

    def test_lump_sum_lands_at_end(self):
        schedule = build_schedule(ScheduleMode.LUMP_SUM_END, 5, 30, 0.9)
        assert schedule == [ScheduleItem(year=5, pct_of_total=30, probability=0.9)]

    def test_equal_annual_splits_evenly(self):
        schedule = build_schedule(ScheduleMode.EQUAL_ANNUAL, 3, 15, 0.6)
        assert [item.year for item in schedule] == [1, 2, 3]
        assert all(item.pct_of_total == pytest.approx(5) for item in schedule)

    def test_zero_share_gives_empty_schedule(self):
        assert build_schedule(ScheduleMode.EQUAL_ANNUAL, 3, 0, 0.6) == []

    def test_custom_schedule_fills_default_probability(self, payout_input):
        sim = replace(
            payout_input,
            escrow_schedule_mode=ScheduleMode.CUSTOM,
            escrow_schedule=[ScheduleItem(1, 10), ScheduleItem(3, 20, probability=0.5)],
        )
        escrow, _, warnings = normalize_schedules(sim)
        assert escrow[0].probability == 0.9
        assert escrow[1].probability == 0.5
        assert warnings == []

    def test_custom_schedule_sum_mismatch_warns(self, payout_input):
        sim = replace(
            payout_input,
            escrow_schedule_mode=ScheduleMode.CUSTOM,
            escrow_schedule=[ScheduleItem(3, 25)],
        )
        _, _, warnings = normalize_schedules(sim)
        assert len(warnings) == 1
        assert "Escrow" in warnings[0]

    def test_custom_schedule_drops_years_beyond_lock_in(self, payout_input):
        sim = replace(
            payout_input,
            earnout_schedule_mode=ScheduleMode.CUSTOM,
            earnout_schedule=[ScheduleItem(2, 10), ScheduleItem(5, 10)],
        )
        _, earnout, warnings = normalize_schedules(sim)
        assert [item.year for item in earnout] == [2]
        assert any("5년차" in w for w in warnings)

    def test_custom_mode_without_items(self, payout_input):
        sim = replace(payout_input, earnout_schedule_mode=ScheduleMode.CUSTOM, earnout_schedule=None)
        _, earnout, warnings = normalize_schedules(sim)
        assert earnout == []
        assert any("Earn-out" in w for w in warnings)


class TestCaseCashflows:
    """Guaranteed / expected / best vectors."""

    def test_guaranteed_is_upfront_only(self):
        escrow = [ScheduleItem(3, 30, 0.9)]
        flows = generate_case_cashflows(1_000.0, 3, 50, escrow, [], CaseType.GUARANTEED)
        assert list(flows) == [500.0, 0.0, 0.0, 0.0]

    def test_expected_weights_by_probability(self):
        escrow = [ScheduleItem(3, 30, 0.9)]
        flows = generate_case_cashflows(1_000.0, 3, 50, escrow, [], CaseType.EXPECTED)
        assert flows[3] == pytest.approx(270.0)

    def test_best_pays_in_full(self):
        escrow = [ScheduleItem(3, 30, 0.9)]
        flows = generate_case_cashflows(1_000.0, 3, 50, escrow, [], CaseType.BEST)
        assert flows[3] == pytest.approx(300.0)


class TestSimulatePayouts:
    """End-to-end simulation."""

    def test_reference_scenario(self, payout_input):
        result = simulate_payouts(payout_input)
        scenario = result.scenarios[0]

        assert scenario.equity_pct == 100
        assert scenario.total_proceeds == 10_000_000_000

        guaranteed = scenario.guaranteed
        assert guaranteed.cashflows == [5_000_000_000, 0, 0, 0]
        assert guaranteed.pv == 5_000_000_000
        assert guaranteed.kpis.pv_to_total_ratio == 1.0

        expected = scenario.expected
        assert expected.cashflows == [5_000_000_000, 400_000_000, 400_000_000, 3_100_000_000]
        assert expected.total_nominal == 8_900_000_000
        assert expected.pv == pytest.approx(discounted(expected.cashflows, 0.12), abs=1)
        assert expected.kpis.immediate_amount == 5_000_000_000
        assert expected.kpis.final_amount == 3_100_000_000

        best = scenario.best
        assert best.cashflows[0] == 5_000_000_000
        assert best.cashflows[3] == pytest.approx(3_666_666_667, abs=1)
        assert best.total_nominal == pytest.approx(10_000_000_000, abs=2)

    def test_case_ordering_holds(self, payout_input):
        result = simulate_payouts(replace(payout_input, equity_scenarios=[30, 50, 100]))
        for scenario in result.scenarios:
            assert scenario.is_consistent()
            assert len(scenario.guaranteed.cashflows) == payout_input.lock_in_years + 1

    @pytest.mark.parametrize("lock_in", [1, 3, 5])
    @pytest.mark.parametrize("split", [(100, 0, 0), (50, 30, 20), (30, 40, 30), (60, 0, 40), (33.33, 33.33, 33.34)])
    @pytest.mark.parametrize("escrow_mode,earnout_mode", [
        (ScheduleMode.LUMP_SUM_END, ScheduleMode.EQUAL_ANNUAL),
        (ScheduleMode.EQUAL_ANNUAL, ScheduleMode.LUMP_SUM_END),
        (ScheduleMode.EQUAL_ANNUAL, ScheduleMode.EQUAL_ANNUAL),
    ])
    def test_totals_and_ordering_across_structures(self, payout_input, lock_in, split, escrow_mode, earnout_mode):
        sim = replace(
            payout_input,
            equity_basis_value=7_654_321_987,
            lock_in_years=lock_in,
            equity_scenarios=[17, 50, 100],
            payout=PayoutStructure(*split),
            escrow_schedule_mode=escrow_mode,
            earnout_schedule_mode=earnout_mode,
        )
        result = simulate_payouts(sim)

        for scenario in result.scenarios:
            for case in scenario.cases.values():
                assert len(case.cashflows) == lock_in + 1
                assert sum(case.cashflows) == case.total_nominal
            assert scenario.guaranteed.total_nominal <= scenario.expected.total_nominal
            assert scenario.expected.total_nominal <= scenario.best.total_nominal
            assert scenario.is_consistent()
        assert not any("PV 순서" in w for w in result.warnings)

    def test_identical_input_gives_identical_output(self, payout_input):
        sim = replace(payout_input, equity_scenarios=[30, 70, 100], lock_in_years=5)
        assert simulate_payouts(sim).to_dict() == simulate_payouts(sim).to_dict()

    def test_proceeds_scale_with_equity_pct(self, payout_input):
        result = simulate_payouts(replace(payout_input, equity_scenarios=[50, 100]))
        half, full = result.scenarios
        assert half.total_proceeds * 2 == full.total_proceeds
        assert half.expected.pv == pytest.approx(full.expected.pv / 2, abs=1)

    def test_pv_ordering_violation_is_warned(self, payout_input, caplog):
        sim = replace(
            payout_input,
            escrow_schedule_mode=ScheduleMode.CUSTOM,
            escrow_schedule=[ScheduleItem(3, 30, probability=1.5)],
        )
        with caplog.at_level("WARNING", logger="engine.cashflows"):
            result = simulate_payouts(sim)
        assert any("PV 순서" in w for w in result.warnings)
        assert "PV ordering violated" in caplog.text

    def test_global_warnings(self, payout_input):
        sim = replace(
            payout_input,
            discount_rate=0.18,
            payout=PayoutStructure(upfront_pct=20, escrow_pct=50, earnout_pct=30),
            escrow_probability=0.5,
        )
        warnings = simulate_payouts(sim).warnings
        assert any("15%" in w for w in warnings)
        assert any("30%" in w for w in warnings)
        assert any("70%" in w for w in warnings)

    def test_duplicate_scenarios_warn(self, payout_input):
        result = simulate_payouts(replace(payout_input, equity_scenarios=[50, 50]))
        assert len(result.scenarios) == 2
        assert any("중복" in w for w in result.warnings)

    def test_no_deferred_payment(self, payout_input):
        sim = replace(payout_input, payout=PayoutStructure(100, 0, 0))
        scenario = simulate_payouts(sim).scenarios[0]
        assert scenario.guaranteed.pv == scenario.expected.pv == scenario.best.pv
        assert simulate_payouts(sim).escrow_schedule == []

    def test_explain_text_mentions_mix(self, payout_input):
        text = simulate_payouts(payout_input).explain_text
        assert "락인 기간 3년" in text
        assert "할인율 12%" in text
        assert "Earn-out 20%" in text

    def test_to_dict(self, payout_input):
        data = simulate_payouts(payout_input).to_dict()
        assert data["basis"]["lock_in_years"] == 3
        assert data["applied_schedules"]["escrow"][0]["year"] == 3
        case = data["scenarios"][0]["cases"]["expected"]
        assert set(case) == {"cashflows", "total_nominal", "pv", "kpis"}


class TestSimulationInputValidation:
    """Boundary checks on the simulation request."""

    def test_valid_input(self, payout_input):
        assert payout_input.validate()

    def test_payout_within_tolerance_is_accepted(self, payout_input):
        sim = replace(payout_input, payout=PayoutStructure(49.99, 30, 20))
        assert sim.validate()

    def test_payout_off_by_five_is_rejected(self, payout_input):
        sim = replace(payout_input, payout=PayoutStructure(45, 30, 20))
        with pytest.raises(InputValidationError) as exc_info:
            sim.validate()
        assert exc_info.value.errors[0]["field"] == "payout"

    def test_collects_every_problem(self, payout_input):
        sim = replace(
            payout_input,
            lock_in_years=2,
            equity_scenarios=[0, 101],
            discount_rate=0.25,
        )
        with pytest.raises(InputValidationError) as exc_info:
            sim.validate()
        fields = {e["field"] for e in exc_info.value.errors}
        assert {"lock_in_years", "equity_scenarios.0", "equity_scenarios.1", "discount_rate"} <= fields

    def test_too_many_scenarios(self, payout_input):
        sim = replace(payout_input, equity_scenarios=list(range(10, 65, 5)))
        with pytest.raises(InputValidationError):
            sim.validate()

    def test_payout_structure_validate(self):
        assert PayoutStructure(60, 25, 15).validate()
        with pytest.raises(ValueError):
            PayoutStructure(60, 25, 10).validate()

    def test_from_dict_defaults(self):
        sim = SimulationInput.from_dict({
            "equity_basis_value": 5_000_000_000,
            "lock_in_years": 3,
            "equity_scenarios": [50, 100],
            "payout": {"upfront_pct": 60, "escrow_pct": 20, "earnout_pct": 20},
            "discount_rate": 0.1,
        })
        assert sim.escrow_schedule_mode == ScheduleMode.LUMP_SUM_END
        assert sim.earnout_schedule_mode == ScheduleMode.EQUAL_ANNUAL
        assert sim.escrow_probability == 0.9
        assert sim.earnout_probability == 0.6
        assert sim.valuation_basis == ValuationBasis.MID

    def test_from_dict_rejects_unknown_mode(self):
        with pytest.raises(InputValidationError):
            SimulationInput.from_dict({
                "equity_basis_value": 1,
                "lock_in_years": 1,
                "equity_scenarios": [100],
                "payout": {"upfront_pct": 100},
                "discount_rate": 0.1,
                "escrow_schedule_mode": "quarterly",
            })

    def test_from_valuation(self, manufacturing_profile, payout_input):
        valuation = evaluate_valuation(manufacturing_profile, as_of_year=AS_OF_YEAR)
        sim = SimulationInput.from_valuation(
            valuation,
            ValuationBasis.LOW,
            lock_in_years=3,
            equity_scenarios=[100],
            payout=payout_input.payout,
            discount_rate=0.12,
        )
        assert sim.equity_basis_value == valuation.equity_value.low
        assert sim.valuation_basis == ValuationBasis.LOW
