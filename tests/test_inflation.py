"""Tests for CPI lookup and cost projection."""

import json
import math

import pytest
from childcost_sim_sg.datasource import DataSourceClient
from childcost_sim_sg.inflation import CPITable, InflationAdjuster
from childcost_sim_sg.params import Gender, HouseholdIncomeType, Profile, Residency
from childcost_sim_sg.stages import GrowthStage


class TestCPITable:
    def setup_method(self):
        self.table = CPITable({2019: 100.0, 2024: 115.2, 2025: 118.0}, 0.024)

    def test_known_year(self):
        assert self.table.cpi(2024) == pytest.approx(115.2)

    def test_extrapolates_forward_from_last_year(self):
        assert self.table.cpi(2027) == pytest.approx(118.0 * 1.024 ** 2)

    def test_extrapolates_backward_from_first_year(self):
        assert self.table.cpi(2017) == pytest.approx(100.0 * 1.024 ** -2)

    def test_empty_table_uses_static_series(self):
        value = CPITable({}, 0.024).cpi(2030)
        assert math.isfinite(value) and value > 0


class TestAdjust:
    def setup_method(self):
        self.adjuster = InflationAdjuster()

    @pytest.mark.parametrize("cost", [0.0, 1.0, 123.45, 1_000_000.0])
    @pytest.mark.parametrize("year", [1990, 2019, 2025, 2060])
    def test_identity(self, cost, year):
        assert self.adjuster.adjust(cost, year, year) == cost

    def test_between_known_years(self):
        assert self.adjuster.adjust(100, 2019, 2025) == pytest.approx(118.0)

    def test_future_year(self):
        assert self.adjuster.adjust(1000, 2025, 2035) == pytest.approx(1000 * 1.024 ** 10)

    @pytest.mark.parametrize("y1,y2", [(2019, 2045), (2025, 2020), (2010, 2070), (2023, 2024)])
    def test_round_trip(self, y1, y2):
        there = self.adjuster.adjust(2500.0, y1, y2)
        assert self.adjuster.adjust(there, y2, y1) == pytest.approx(2500.0)


class TestRefresh:
    def test_without_client(self):
        assert InflationAdjuster().refresh() is False

    def test_refresh_from_file(self, tmp_path):
        payload = {"result": {"records": [{"year": "2026", "cpi_value": "121.0"}]}}
        (tmp_path / "singapore-cpi.json").write_text(json.dumps(payload))
        adjuster = InflationAdjuster(client=DataSourceClient(data_dir=tmp_path))
        assert adjuster.refresh() is True
        assert adjuster.cpi(2026) == pytest.approx(121.0)
        # existing years are kept
        assert adjuster.cpi(2019) == pytest.approx(100.0)

    def test_all_fallbacks_failed_still_finite(self, tmp_path):
        client = DataSourceClient(data_dir=tmp_path / "missing", static_records={})
        adjuster = InflationAdjuster(client=client)
        assert adjuster.refresh() is False
        value = adjuster.adjust(5000, 2025, 2040)
        assert math.isfinite(value)
        assert value == pytest.approx(5000 * 1.024 ** 15)


class TestInflationRate:
    def setup_method(self):
        self.adjuster = InflationAdjuster()

    def test_same_year_is_zero(self):
        assert self.adjuster.inflation_rate(2025, 2025) == 0

    def test_known_years(self):
        """2019 = 100, 2025 = 118."""
        assert self.adjuster.inflation_rate(2019, 2025) == pytest.approx(0.18)

    def test_extrapolated_years(self):
        assert self.adjuster.inflation_rate(2025, 2030) == pytest.approx(1.024 ** 5 - 1)


class TestStageCosts:
    def test_projected_to_stage_start_year(self):
        adjuster = InflationAdjuster()
        costs = adjuster.stage_costs(
            {GrowthStage.NEWBORN: 1000, GrowthStage.PRIMARY: 1000, GrowthStage.UNIVERSITY: 1000},
            birth_year=2025, gender=Gender.FEMALE,
        )
        assert costs[GrowthStage.NEWBORN] == pytest.approx(1000)
        assert costs[GrowthStage.PRIMARY] == pytest.approx(1000 * 1.024 ** 6)
        assert costs[GrowthStage.UNIVERSITY] == pytest.approx(1000 * 1.024 ** 18)

    def test_male_university_starts_after_national_service(self):
        costs = InflationAdjuster().stage_costs(
            {GrowthStage.UNIVERSITY: 1000}, birth_year=2025, gender=Gender.MALE)
        assert costs[GrowthStage.UNIVERSITY] == pytest.approx(1000 * 1.024 ** 20)


class TestIncomeProjection:
    def setup_method(self):
        self.profile = Profile(
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

    def test_one_entry_per_year(self):
        projections = InflationAdjuster().income_projection(self.profile, years=18)
        assert [p.year for p in projections] == list(range(2025, 2044))

    def test_base_year_unchanged(self):
        first = InflationAdjuster().income_projection(self.profile)[0]
        assert first.father_annual == pytest.approx(72_000)
        assert first.household_annual == pytest.approx(126_000)
        assert first.inflation_from_base == 0

    def test_grows_with_cpi(self):
        tenth = InflationAdjuster().income_projection(self.profile, years=10)[-1]
        assert tenth.year == 2035
        assert tenth.mother_annual == pytest.approx(54_000 * 1.024 ** 10)
        assert tenth.inflation_from_base == pytest.approx(1.024 ** 10 - 1)
