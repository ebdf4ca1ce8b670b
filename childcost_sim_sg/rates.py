"""Versioned rate tables: tax brackets, reliefs, benefit tiers, fees and CPI."""

from dataclasses import dataclass, field

# Individual income tax (IRAS, YA2025): (lower, upper, rate) with upper inclusive
_TAX_BRACKETS_2025: tuple[tuple[float, float, float], ...] = (
    (0, 20_000, 0.0),
    (20_000, 30_000, 0.02),
    (30_000, 40_000, 0.035),
    (40_000, 80_000, 0.07),
    (80_000, 120_000, 0.115),
    (120_000, 160_000, 0.15),
    (160_000, 200_000, 0.18),
    (200_000, 240_000, 0.19),
    (240_000, 280_000, 0.195),
    (280_000, 320_000, 0.20),
    (320_000, 500_000, 0.22),
    (500_000, 1_000_000, 0.23),
    (1_000_000, float("inf"), 0.24),
)

# Childcare additional subsidy (MSF 2025): (household income ceiling, amount/month)
_CHILDCARE_ADDITIONAL_TIERS: tuple[tuple[float, float], ...] = (
    (3_000, 467),
    (4_500, 440),
    (6_000, 340),
    (7_500, 240),
    (9_000, 110),
    (10_500, 70),
    (12_000, 40),
)

# SingStat CPI, all items, 2019 = 100
_CPI_SERIES: dict[int, float] = {
    2019: 100.0,
    2020: 99.6,
    2021: 102.3,
    2022: 108.2,
    2023: 112.1,
    2024: 115.2,
    2025: 118.0,
}

# Age-banded monthly living costs (upper age in years exclusive → items, SGD/month)
_LIVING_COST_BANDS: tuple[tuple[int, dict[str, float]], ...] = (
    (3, {"clothing": 150, "diapers": 200, "formula": 150, "medical": 150, "toys": 15}),
    (7, {"clothing": 120, "allowance": 50, "enrichment": 200, "medical": 100, "transport": 50}),
    (13, {"clothing": 150, "allowance": 100, "enrichment": 300, "medical": 100,
          "transport": 50, "school_supplies": 20, "cca": 5}),
    (17, {"clothing": 200, "allowance": 200, "enrichment": 400, "medical": 120,
          "transport": 100, "school_supplies": 25, "cca": 5}),
    (20, {"clothing": 250, "allowance": 300, "enrichment": 200, "medical": 150,
          "transport": 150, "school_supplies": 25}),
    (999, {"clothing": 300, "allowance": 300, "medical": 100, "transport": 200,
           "textbooks": 20, "meals": 300}),
)


@dataclass(frozen=True)
class RateTables:
    """Static lookup data for one assessment year.

    Monetary amounts are SGD. Fee tables are keyed by child residency
    ("citizen", "pr", "foreigner").
    """

    year: int = 2025
    # Year in which the fee and cost tables are denominated
    reference_year: int = 2025

    # Tax
    tax_brackets: tuple[tuple[float, float, float], ...] = _TAX_BRACKETS_2025
    foreigner_flat_rate: float = 0.22
    spouse_relief: float = 2_000
    child_relief: float = 4_000  # QCR
    wmcr_cutoff_year: int = 2024
    wmcr_fixed: tuple[float, ...] = (8_000, 10_000, 12_000)
    wmcr_percent: tuple[float, ...] = (0.15, 0.20, 0.25)
    wmcr_percent_cap: float = 50_000
    parenthood_rebate: tuple[float, ...] = (5_000, 10_000, 20_000)
    relief_cap: float = 80_000
    pit_rebate_rate: float = 0.60
    pit_rebate_cap: float = 200

    # Benefits
    benefit_income_ceiling: float = 12_000  # household gross, SGD/month
    childcare_basic_subsidy: float = 300
    childcare_additional_tiers: tuple[tuple[float, float], ...] = _CHILDCARE_ADDITIONAL_TIERS
    baby_bonus: tuple[float, ...] = (11_000, 11_000, 13_000)
    cda_matching: tuple[float, ...] = (4_000, 7_000, 9_000, 9_000, 15_000)
    cda_first_step_grant: float = 5_000
    medisave_newborn_grant: float = 4_000
    kindergarten_startup_grant: float = 160
    psea_topup: float = 240
    edusave_primary: float = 230
    edusave_secondary: float = 290
    legacy_wmcr_rate: float = 0.15
    legacy_wmcr_cap: float = 25_000

    # Fees (monthly unless noted)
    kindergarten_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 160, "pr": 320, "foreigner": 770}
    )
    primary_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 0, "pr": 268, "foreigner": 545}
    )
    secondary_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 5, "pr": 520, "foreigner": 1010}
    )
    # Annual
    jc_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 72, "pr": 6_000, "foreigner": 12_120}
    )
    poly_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 3_000, "pr": 6_210, "foreigner": 12_120}
    )
    university_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 8_250, "pr": 11_900, "foreigner": 32_000}
    )
    # Full-day childcare market rate (informational, refreshed from ECDA data)
    childcare_market_fee: float = 800
    immunisation_visit_fees: dict[str, float] = field(
        default_factory=lambda: {"citizen": 20, "pr": 45, "foreigner": 90}
    )
    living_cost_bands: tuple[tuple[int, dict[str, float]], ...] = _LIVING_COST_BANDS
    realism_multipliers: dict[str, float] = field(
        default_factory=lambda: {"OPTIMISTIC": 0.6, "REALISTIC": 1.0, "CONSERVATIVE": 1.3}
    )

    # Inflation
    cpi_series: dict[int, float] = field(default_factory=lambda: dict(_CPI_SERIES))
    default_inflation_rate: float = 0.024
    # Grow disposable income with CPI from the birth year instead of holding it flat
    index_income_to_cpi: bool = False

    def tier_for_order(self, tiers: tuple[float, ...], child_order: int) -> float:
        """Pick a child-order tier; orders beyond the table use the last tier."""
        idx = min(max(child_order, 1), len(tiers)) - 1
        return tiers[idx]

    def living_costs(self, age_years: int) -> dict[str, float]:
        """Return the monthly living cost items for a child of this age."""
        for upper, items in self.living_cost_bands:
            if age_years < upper:
                return dict(items)
        return dict(self.living_cost_bands[-1][1])


DEFAULT_RATE_TABLES = RateTables()

# Embedded copy used as the last-resort CPI source
STATIC_CPI_SERIES: dict[int, float] = dict(_CPI_SERIES)
