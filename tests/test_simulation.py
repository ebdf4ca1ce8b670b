"""Tests for the simulation driver state machine and full runs."""

import dataclasses

import pytest
from childcost_sim_sg.events import (
    DELIVERY,
    POST_SECONDARY_PATH,
    PRIMARY_ENRICHMENT,
    CostEventGenerator,
    DecisionOption,
)
from childcost_sim_sg.params import (
    Gender,
    HouseholdIncomeType,
    Profile,
    ProfileValidationError,
    Residency,
)
from childcost_sim_sg.rates import DEFAULT_RATE_TABLES
from childcost_sim_sg.simulation import (
    Outcome,
    RunStatus,
    SimulationDriver,
    SimulationStateError,
    choose_option,
    run_simulation,
)
from childcost_sim_sg.stages import GrowthStage


def _profile(**overrides) -> Profile:
    base = dict(
        residency_father=Residency.CITIZEN,
        residency_mother=Residency.CITIZEN,
        household_income_type=HouseholdIncomeType.DUAL_INCOME,
        gross_income_father=6000,
        gross_income_mother=4500,
        disposable_income_father=4800,
        disposable_income_mother=3600,
        family_savings=50000,
        child_name="Mei",
        child_gender=Gender.FEMALE,
        birth_year=2025,
    )
    base.update(overrides)
    return Profile(**base)


def _paused_at_birth() -> tuple[SimulationDriver, list]:
    driver = SimulationDriver(_profile())
    driver.start()
    events = driver.tick()
    return driver, events


class TestLifecycle:
    def test_invalid_profile_rejected(self):
        with pytest.raises(ProfileValidationError):
            SimulationDriver(_profile(family_savings=-1))

    def test_start_runs(self):
        driver = SimulationDriver(_profile())
        assert driver.state.status == RunStatus.STOPPED
        driver.start()
        assert driver.state.status == RunStatus.RUNNING
        assert driver.stage == GrowthStage.NEWBORN

    def test_tick_before_start(self):
        with pytest.raises(SimulationStateError):
            SimulationDriver(_profile()).tick()

    def test_quiet_month_keeps_running(self):
        driver, events = _paused_at_birth()
        for event in list(events):
            driver.resolve(event, event.option("public") if event.requires_decision else None)
        driver.tick()  # month 2: immunisation
        driver.acknowledge(driver.next_pending_event())
        assert driver.tick() == []
        assert driver.state.age_months == 3
        assert driver.state.status == RunStatus.RUNNING

    def test_pause_and_resume(self):
        driver = SimulationDriver(_profile())
        driver.start()
        driver.pause()
        assert driver.state.status == RunStatus.PAUSED
        driver.resume()
        assert driver.state.status == RunStatus.RUNNING

    def test_tick_rate(self):
        driver = SimulationDriver(_profile())
        driver.set_tick_rate(4)
        assert driver.state.tick_rate_multiplier == 4

    @pytest.mark.parametrize("rate", [0, -1.5])
    def test_tick_rate_must_be_positive(self, rate):
        with pytest.raises(ValueError):
            SimulationDriver(_profile()).set_tick_rate(rate)

    def test_end_by_caller(self):
        driver, _ = _paused_at_birth()
        result = driver.end()
        assert result.outcome == Outcome.ENDED_BY_CALLER
        assert result.age_months == 1
        assert driver.pending_events == ()
        assert driver.result is result

    def test_no_restart_after_end(self):
        driver, _ = _paused_at_birth()
        driver.end()
        with pytest.raises(SimulationStateError):
            driver.start()
        with pytest.raises(SimulationStateError):
            driver.end()
        with pytest.raises(SimulationStateError):
            driver.tick()


class TestPendingEvents:
    def test_birth_month_pauses(self):
        driver, events = _paused_at_birth()
        assert driver.state.status == RunStatus.PAUSED
        assert [e.id for e in driver.pending_events] == ["welcome@1", "delivery@1"]
        assert driver.next_pending_event() is events[0]

    def test_tick_while_paused(self):
        driver, _ = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.tick()

    def test_resume_with_pending_events(self):
        driver, _ = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.resume()

    def test_acknowledge_decision_event(self):
        driver, events = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.acknowledge(events[1])

    def test_decide_notification(self):
        driver, events = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.decide(events[0], DecisionOption("x", 0, "x"))

    def test_foreign_option(self):
        driver, events = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.decide(events[1], DecisionOption("Elsewhere", 0, "elsewhere"))

    def test_resolve_decision_without_option(self):
        driver, events = _paused_at_birth()
        with pytest.raises(SimulationStateError):
            driver.resolve(events[1])

    def test_event_not_pending(self):
        driver, _ = _paused_at_birth()
        stray = CostEventGenerator().events_for(2, driver.profile)[0]
        with pytest.raises(SimulationStateError):
            driver.acknowledge(stray)

    def test_resolving_all_returns_to_running(self):
        driver, events = _paused_at_birth()
        driver.acknowledge(events[0])
        assert driver.state.status == RunStatus.PAUSED
        driver.decide(events[1], events[1].option("private"))
        assert driver.state.status == RunStatus.RUNNING
        assert driver.choices == {DELIVERY: "private"}
        log = driver.ledger.decisions_log
        assert [(r.decision_key, r.value) for r in log] == [(DELIVERY, "private")]

    def test_events_resolved_in_any_order(self):
        driver, events = _paused_at_birth()
        driver.decide(events[1], events[1].option("public"))
        driver.acknowledge(events[0])
        assert driver.pending_events == ()


class TestRunningOutOfMoney:
    def test_no_savings_no_income_stops_first_tick(self):
        profile = _profile(family_savings=0, disposable_income_father=0,
                           disposable_income_mother=0)
        driver = SimulationDriver(profile)
        driver.start()
        assert driver.tick() == []
        result = driver.result
        assert result.outcome == Outcome.RAN_OUT_OF_MONEY
        assert result.age_months == 1
        assert result.snapshot.savings == 0
        assert driver.state.status == RunStatus.STOPPED

    def test_event_exhausts_savings(self):
        """3,000 - 665 first month - 4,500 welcome costs, no grants for foreigners"""
        profile = _profile(
            residency_father=Residency.FOREIGNER, residency_mother=Residency.FOREIGNER,
            family_savings=3000, disposable_income_father=0, disposable_income_mother=0)
        driver = SimulationDriver(profile)
        driver.start()
        events = driver.tick()
        driver.acknowledge(events[0])
        assert driver.result.outcome == Outcome.RAN_OUT_OF_MONEY
        assert driver.pending_events == ()
        assert driver.result.snapshot.savings == 0
        assert driver.result.snapshot.total_expenditure > 3000

    def test_run_simulation_reports_shortfall(self):
        result = run_simulation(_profile(family_savings=0, disposable_income_father=100,
                                         disposable_income_mother=0))
        assert result.outcome == Outcome.RAN_OUT_OF_MONEY
        assert not result.completed


class TestFullRun:
    def test_female_jc_completes_at_22(self):
        """16 + 2 years JC + 4 years university = 264 months"""
        result = run_simulation(_profile())
        assert result.outcome == Outcome.COMPLETED
        assert result.age_months == 264
        assert result.stage == GrowthStage.ADULT

    def test_male_poly_completes_at_25(self):
        """16 + 3 poly + 2 NS + 4 university = 300 months"""
        result = run_simulation(_profile(child_gender=Gender.MALE),
                                decisions={POST_SECONDARY_PATH: "poly"})
        assert result.completed
        assert result.age_months == 300
        assert result.decisions[POST_SECONDARY_PATH] == "poly"

    def test_ledger_invariant_holds(self):
        snap = run_simulation(_profile(), decisions={PRIMARY_ENRICHMENT: "high"}).snapshot
        assert snap.is_consistent()
        assert set(snap.per_stage) >= {
            "NEWBORN", "KINDERGARTEN", "PRIMARY", "SECONDARY", "POST_SECONDARY", "UNIVERSITY",
        }
        assert snap.savings_history[0][0] == 1
        assert snap.savings_history[-1] == (264, pytest.approx(snap.savings))

    def test_accounts_and_cash_benefits(self):
        """Edusave: 6 primary years × 230 + 4 secondary years × 290"""
        snap = run_simulation(_profile()).snapshot
        assert snap.account_balances["edusave"] == pytest.approx(6 * 230 + 4 * 290)
        assert snap.account_balances["psea"] == pytest.approx(240)
        assert snap.benefits_by_scheme["BABY_BONUS"] == pytest.approx(11_000)
        assert snap.total_tax_avoided > 0

    def test_decisions_logged_for_every_choice(self):
        result = run_simulation(_profile(), decisions={DELIVERY: "private"})
        keys = [r.decision_key for r in result.snapshot.decisions_log]
        assert keys == [DELIVERY, PRIMARY_ENRICHMENT, POST_SECONDARY_PATH]
        assert result.decisions[DELIVERY] == "private"

    def test_enrichment_costs_more(self):
        none = run_simulation(_profile(), decisions={PRIMARY_ENRICHMENT: "none"})
        high = run_simulation(_profile(), decisions={PRIMARY_ENRICHMENT: "high"})
        assert high.snapshot.total_expenditure > none.snapshot.total_expenditure


class TestChooseOption:
    def setup_method(self):
        self.delivery = CostEventGenerator().events_for(1, _profile())[1]

    def test_configured_choice(self):
        assert choose_option(self.delivery, {DELIVERY: "private"}).value == "private"

    def test_unknown_choice_falls_back(self):
        assert choose_option(self.delivery, {DELIVERY: "home"}).value == "public"

    def test_free_option_preferred(self):
        enrichment = CostEventGenerator().events_for(72, _profile())[1]
        assert choose_option(enrichment, {}).value == "none"


class TestIndexedIncome:
    def test_flat_by_default(self):
        generator = CostEventGenerator()
        assert generator.monthly_income(120, _profile()) == pytest.approx(8_400)

    def test_grows_with_cpi_when_enabled(self):
        rates = dataclasses.replace(DEFAULT_RATE_TABLES, index_income_to_cpi=True)
        generator = CostEventGenerator(rates)
        assert generator.monthly_income(11, _profile()) == pytest.approx(8_400)
        assert generator.monthly_income(120, _profile()) == pytest.approx(8_400 * 1.024 ** 10)

    def test_indexed_run_ends_richer(self):
        """Same costs, growing income: more savings at the end."""
        rates = dataclasses.replace(DEFAULT_RATE_TABLES, index_income_to_cpi=True)
        flat = run_simulation(_profile())
        indexed = run_simulation(_profile(), CostEventGenerator(rates))
        assert indexed.completed
        assert indexed.snapshot.total_expenditure == pytest.approx(flat.snapshot.total_expenditure)
        assert indexed.snapshot.savings > flat.snapshot.savings

