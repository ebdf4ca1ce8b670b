"""Singapore personal income tax with parenthood reliefs and rebates.

Reliefs are deducted from the household's gross tax, then capped, then the
PIT rebate is applied. Amounts keep fractional cents; round when presenting.
"""

from dataclasses import dataclass, field

from childcost_sim_sg.params import HouseholdIncomeType, Profile, Residency
from childcost_sim_sg.rates import DEFAULT_RATE_TABLES, RateTables

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class TaxResult:
    gross_tax_father: float
    gross_tax_mother: float
    reliefs: dict[str, float] = field(default_factory=dict)  # spouse, child, working_mother, parenthood_rebate
    total_relief: float = 0.0  # after the relief cap
    rebate: float = 0.0        # PIT rebate
    net_payable: float = 0.0
    effective_rate: float = 0.0

    @property
    def gross_tax(self) -> float:
        return self.gross_tax_father + self.gross_tax_mother

    @property
    def tax_avoided(self) -> float:
        return max(0.0, self.gross_tax - self.net_payable)


def progressive_tax(annual_income: float, rates: RateTables = DEFAULT_RATE_TABLES) -> float:
    """Tax on annual income using (lower, upper] brackets."""
    tax = 0.0
    for lower, upper, rate in rates.tax_brackets:
        if annual_income <= lower:
            break
        tax += (min(annual_income, upper) - lower) * rate
    return tax


def marginal_rate(annual_income: float, rates: RateTables = DEFAULT_RATE_TABLES) -> float:
    """Return the bracket rate applying to the last dollar of annual income."""
    for lower, upper, rate in rates.tax_brackets:
        if annual_income <= upper:
            return rate if annual_income > lower else 0.0
    return rates.tax_brackets[-1][2]


class TaxEngine:
    def __init__(self, rates: RateTables = DEFAULT_RATE_TABLES):
        self.rates = rates

    def gross_tax(self, annual_income: float, residency: Residency) -> float:
        progressive = progressive_tax(annual_income, self.rates)
        if residency == Residency.FOREIGNER:
            return max(progressive, annual_income * self.rates.foreigner_flat_rate)
        return progressive

    def working_mother_relief(self, mother_annual_income: float, child_order: int,
                              child_born_on_or_after_cutoff: bool) -> float:
        if mother_annual_income <= 0:
            return 0.0
        r = self.rates
        if child_born_on_or_after_cutoff:
            return r.tier_for_order(r.wmcr_fixed, child_order)
        pct = r.tier_for_order(r.wmcr_percent, child_order)
        return min(mother_annual_income * pct, r.wmcr_percent_cap)

    def compute_net_tax(
        self,
        profile: Profile,
        child_order: int | None = None,
        child_born_on_or_after_cutoff: bool = True,
        include_parenthood_rebate: bool = True,
    ) -> TaxResult:
        r = self.rates
        if child_order is None:
            child_order = profile.child_order
        father_income = profile.gross_income_father * MONTHS_PER_YEAR
        mother_income = profile.gross_income_mother * MONTHS_PER_YEAR
        gross_father = self.gross_tax(father_income, profile.residency_father)
        gross_mother = self.gross_tax(mother_income, profile.residency_mother)
        gross = gross_father + gross_mother

        single = profile.household_income_type == HouseholdIncomeType.SINGLE_INCOME
        reliefs = {
            "spouse": r.spouse_relief if single else 0.0,
            "child": r.child_relief,
            "working_mother": self.working_mother_relief(
                mother_income, child_order, child_born_on_or_after_cutoff),
            "parenthood_rebate": (
                r.tier_for_order(r.parenthood_rebate, child_order)
                if include_parenthood_rebate else 0.0
            ),
        }
        total_relief = min(sum(reliefs.values()), r.relief_cap)
        before_rebate = max(0.0, gross - total_relief)
        rebate = min(before_rebate * r.pit_rebate_rate, r.pit_rebate_cap)
        net = max(0.0, before_rebate - rebate)

        household_income = father_income + mother_income
        effective = net / household_income if household_income > 0 else 0.0
        return TaxResult(
            gross_tax_father=gross_father,
            gross_tax_mother=gross_mother,
            reliefs=reliefs,
            total_relief=total_relief,
            rebate=rebate,
            net_payable=net,
            effective_rate=effective,
        )
