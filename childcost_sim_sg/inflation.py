"""CPI-based projection of costs and incomes between calendar years."""

import logging
from dataclasses import dataclass

from childcost_sim_sg.datasource import DataSource, DataSourceClient, cpi_series_from_records
from childcost_sim_sg.params import Gender, Profile
from childcost_sim_sg.rates import DEFAULT_RATE_TABLES, STATIC_CPI_SERIES, RateTables
from childcost_sim_sg.stages import DEFAULT_PATH, GrowthStage, stage_start_months

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CPITable:
    """Year → CPI index, extrapolated at default_rate outside the known range."""

    index: dict[int, float]
    default_rate: float = 0.024

    def cpi(self, year: int) -> float:
        if year in self.index:
            return self.index[year]
        if not self.index:
            base_year, base = max(STATIC_CPI_SERIES.items())
        elif year > max(self.index):
            base_year = max(self.index)
            base = self.index[base_year]
        else:
            base_year = min(self.index)
            base = self.index[base_year]
        return base * (1 + self.default_rate) ** (year - base_year)


@dataclass(frozen=True)
class IncomeProjection:
    """Annual gross income for one calendar year, in that year's prices."""

    year: int
    father_annual: float
    mother_annual: float
    inflation_from_base: float  # fraction, 0.05 = 5 % above the base year

    @property
    def household_annual(self) -> float:
        return self.father_annual + self.mother_annual


class InflationAdjuster:
    """Projects an amount from one year's prices to another's.

    The CPI table starts from the rate tables' series and can be refreshed
    from a DataSourceClient; a failed refresh keeps the current table.
    """

    def __init__(self, rates: RateTables = DEFAULT_RATE_TABLES,
                 client: DataSourceClient | None = None):
        self.client = client
        self.table = CPITable(dict(rates.cpi_series), rates.default_inflation_rate)

    def refresh(self) -> bool:
        """Reload CPI data from the client. Returns True if the table changed."""
        if self.client is None:
            return False
        result = self.client.fetch(DataSource.CPI)
        series = cpi_series_from_records(result.records)
        if not series:
            logger.warning("CPI refresh returned no usable data (%s)", result.error)
            return False
        merged = dict(self.table.index)
        merged.update(series)
        self.table = CPITable(merged, self.table.default_rate)
        return True

    def cpi(self, year: int) -> float:
        return self.table.cpi(year)

    def adjust(self, cost: float, from_year: int, to_year: int) -> float:
        if from_year == to_year:
            return cost
        base = self.table.cpi(from_year)
        if base <= 0:
            return cost
        return cost * self.table.cpi(to_year) / base

    def inflation_rate(self, base_year: int, target_year: int) -> float:
        """Cumulative price change between two years (0.1 = 10 %)."""
        return self.adjust(1.0, base_year, target_year) - 1.0

    def stage_costs(self, costs: dict[GrowthStage, float], birth_year: int,
                    gender: Gender, path: str = DEFAULT_PATH) -> dict[GrowthStage, float]:
        """Project birth-year prices to the calendar year each stage starts."""
        starts = stage_start_months(gender, path)
        return {
            stage: self.adjust(cost, birth_year, birth_year + starts.get(stage, 0) // 12)
            for stage, cost in costs.items()
        }

    def income_projection(self, profile: Profile, years: int = 18) -> list[IncomeProjection]:
        """Gross income indexed to CPI for each year from the birth year on."""
        father = profile.gross_income_father * 12
        mother = profile.gross_income_mother * 12
        projections = []
        for offset in range(years + 1):
            year = profile.birth_year + offset
            projections.append(IncomeProjection(
                year=year,
                father_annual=self.adjust(father, profile.birth_year, year),
                mother_annual=self.adjust(mother, profile.birth_year, year),
                inflation_from_base=self.inflation_rate(profile.birth_year, year),
            ))
        return projections
