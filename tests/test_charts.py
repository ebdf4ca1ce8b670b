"""Tests for chart output and the command-line entry point."""

import pytest
from childcost_sim_sg.charts import decision_markers, plot_expenditure_breakdown, plot_trajectory
from childcost_sim_sg.cli import main
from childcost_sim_sg.events import DELIVERY
from childcost_sim_sg.params import Gender, HouseholdIncomeType, Profile, Residency
from childcost_sim_sg.simulation import run_simulation


def _result(**decisions):
    profile = Profile(
        residency_father=Residency.CITIZEN,
        residency_mother=Residency.PR,
        household_income_type=HouseholdIncomeType.DUAL_INCOME,
        gross_income_father=6000,
        gross_income_mother=4500,
        disposable_income_father=4800,
        disposable_income_mother=3600,
        family_savings=50000,
        child_name="Mei",
        child_gender=Gender.FEMALE,
    )
    return run_simulation(profile, decisions=decisions)


class TestCharts:
    def setup_method(self):
        self.result = _result(**{DELIVERY: "private"})

    def test_decision_markers_skip_free_choices(self):
        markers = decision_markers(self.result.snapshot)
        assert len(markers) == 1
        age, amount, label = markers[0]
        assert age == pytest.approx(1 / 12)
        assert amount < 0
        assert label == "Private hospital"

    def test_trajectory_png(self, tmp_path):
        path = plot_trajectory({"Configured": self.result}, tmp_path / "out", name="x",
                               event_markers=decision_markers(self.result.snapshot))
        assert path.name == "trajectory-x.png"
        assert path.stat().st_size > 0

    def test_trajectory_requires_results(self, tmp_path):
        with pytest.raises(ValueError):
            plot_trajectory({}, tmp_path)

    def test_breakdown_png(self, tmp_path):
        path = plot_expenditure_breakdown(self.result, tmp_path)
        assert path.name == "breakdown.png"
        assert path.exists()


class TestMain:
    def test_prints_summary(self, capsys):
        main(["--config", "/nonexistent.toml", "--child-name", "Kai", "--post-secondary", "poly"])
        out = capsys.readouterr().out
        assert "Kai" in out
        assert "[Outcome]" in out
        assert "COMPLETED" in out

    def test_index_income(self, capsys):
        main(["--config", "/nonexistent.toml", "--index-income"])
        assert "COMPLETED" in capsys.readouterr().out

    def test_scenarios_and_charts(self, tmp_path, capsys):
        main(["--config", "/nonexistent.toml", "--scenarios", "--charts", str(tmp_path)])
        out = capsys.readouterr().out
        assert "[Scenario comparison]" in out
        assert "Lowest total cost: Optimistic / JC" in out
        assert (tmp_path / "trajectory.png").exists()
        assert (tmp_path / "breakdown.png").exists()

    def test_invalid_profile_exits(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", "/nonexistent.toml", "--savings", "-1"])
        assert excinfo.value.code == 2
        assert "family_savings" in capsys.readouterr().err
