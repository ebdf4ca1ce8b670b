"""Government benefit schemes: eligibility and value.

Each scheme in the closed ``Scheme`` enum is bound to a typed rule object.
Callers may rebind a scheme to another rule (for example a ``Formula``) but
cannot introduce new scheme names.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from childcost_sim_sg.formula import Expr, evaluate, parse_formula, profile_fields
from childcost_sim_sg.params import Profile
from childcost_sim_sg.rates import DEFAULT_RATE_TABLES, RateTables
from childcost_sim_sg.stages import GrowthStage, resolve_stage

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


class Scheme(Enum):
    CHILDCARE_SUBSIDY = "CHILDCARE_SUBSIDY"
    BABY_BONUS = "BABY_BONUS"
    CDA_MATCHING = "CDA_MATCHING"
    CDA_FIRST_STEP_GRANT = "CDA_FIRST_STEP_GRANT"
    MEDISAVE_GRANT = "MEDISAVE_GRANT"
    KINDERGARTEN_STARTUP_GRANT = "KINDERGARTEN_STARTUP_GRANT"
    PSEA_TOPUP = "PSEA_TOPUP"
    EDUSAVE = "EDUSAVE"
    LEGACY_WMCR = "LEGACY_WMCR"


class Criterion(Enum):
    CITIZENSHIP = "CITIZENSHIP"  # either parent is a citizen or PR
    INCOME = "INCOME"            # household gross income within the ceiling
    CHILD_AGE = "CHILD_AGE"      # child's stage is one the scheme applies to


@dataclass(frozen=True)
class SchemeRule:
    """Base rule. Subclasses compute the scheme's value for a household."""

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        raise NotImplementedError


@dataclass(frozen=True)
class TieredIncomeSubsidy(SchemeRule):
    """Basic monthly amount plus an additional tier by household gross income.

    Tier ceilings are inclusive; incomes above the last ceiling get basic only.
    """

    basic: float
    tiers: tuple[tuple[float, float], ...]

    def amount_for_income(self, household_income: float) -> float:
        for ceiling, additional in self.tiers:
            if household_income <= ceiling:
                return self.basic + additional
        return self.basic

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        return self.amount_for_income(profile.household_gross_income)


@dataclass(frozen=True)
class FixedByChildOrder(SchemeRule):
    """Amount by child order; orders past the table use the last entry."""

    amounts: tuple[float, ...]

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        idx = min(max(child_order, 1), len(self.amounts)) - 1
        return self.amounts[idx]


@dataclass(frozen=True)
class FixedByStage(SchemeRule):
    amounts: dict[GrowthStage, float]

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        return self.amounts.get(stage, 0.0)


@dataclass(frozen=True)
class FixedAmount(SchemeRule):
    amount: float

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        return self.amount


@dataclass(frozen=True)
class PercentOfIncomeCapped(SchemeRule):
    """Percentage of the mother's annual gross income, capped."""

    rate: float
    cap: float

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        annual = profile.gross_income_mother * MONTHS_PER_YEAR
        return min(annual * self.rate, self.cap)


@dataclass(frozen=True)
class Formula(SchemeRule):
    """Whitelisted arithmetic over named profile fields.

    Built with ``Formula.parse(text)``; rejected text raises FormulaError.
    """

    text: str
    expr: Expr = field(compare=False, repr=False)

    @classmethod
    def parse(cls, text: str) -> "Formula":
        return cls(text, parse_formula(text))

    def value_of(self, profile: Profile, child_order: int, stage: GrowthStage) -> float:
        fields = profile_fields(profile)
        fields["child_order"] = float(child_order)
        return max(0.0, evaluate(self.expr, fields))


@dataclass(frozen=True)
class SchemeDefinition:
    rule: SchemeRule
    criteria: frozenset[Criterion]
    stages: frozenset[GrowthStage] = frozenset(GrowthStage)


_EARLY_YEARS = frozenset({GrowthStage.NEWBORN, GrowthStage.KINDERGARTEN})
_SCHOOL_YEARS = frozenset({GrowthStage.PRIMARY, GrowthStage.SECONDARY})
_CDA_YEARS = frozenset({GrowthStage.NEWBORN, GrowthStage.KINDERGARTEN, GrowthStage.PRIMARY})
_LOCAL = frozenset({Criterion.CITIZENSHIP, Criterion.CHILD_AGE})
_LOCAL_MEANS_TESTED = frozenset({Criterion.CITIZENSHIP, Criterion.INCOME, Criterion.CHILD_AGE})


def default_schemes(rates: RateTables = DEFAULT_RATE_TABLES) -> dict[Scheme, SchemeDefinition]:
    """Scheme definitions built from a rate table."""
    newborn = frozenset({GrowthStage.NEWBORN})
    return {
        Scheme.CHILDCARE_SUBSIDY: SchemeDefinition(
            TieredIncomeSubsidy(rates.childcare_basic_subsidy, rates.childcare_additional_tiers),
            _LOCAL, _EARLY_YEARS),
        Scheme.BABY_BONUS: SchemeDefinition(
            FixedByChildOrder(rates.baby_bonus), _LOCAL, newborn),
        Scheme.CDA_MATCHING: SchemeDefinition(
            FixedByChildOrder(rates.cda_matching), _LOCAL, _CDA_YEARS),
        Scheme.CDA_FIRST_STEP_GRANT: SchemeDefinition(
            FixedAmount(rates.cda_first_step_grant), _LOCAL, newborn),
        Scheme.MEDISAVE_GRANT: SchemeDefinition(
            FixedAmount(rates.medisave_newborn_grant), _LOCAL, newborn),
        Scheme.KINDERGARTEN_STARTUP_GRANT: SchemeDefinition(
            FixedAmount(rates.kindergarten_startup_grant), _LOCAL_MEANS_TESTED,
            frozenset({GrowthStage.KINDERGARTEN})),
        Scheme.PSEA_TOPUP: SchemeDefinition(
            FixedAmount(rates.psea_topup), _LOCAL, frozenset({GrowthStage.POST_SECONDARY})),
        Scheme.EDUSAVE: SchemeDefinition(
            FixedByStage({GrowthStage.PRIMARY: rates.edusave_primary,
                          GrowthStage.SECONDARY: rates.edusave_secondary}),
            _LOCAL, _SCHOOL_YEARS),
        Scheme.LEGACY_WMCR: SchemeDefinition(
            PercentOfIncomeCapped(rates.legacy_wmcr_rate, rates.legacy_wmcr_cap),
            frozenset({Criterion.CITIZENSHIP})),
    }


class BenefitsEngine:
    def __init__(self, rates: RateTables = DEFAULT_RATE_TABLES,
                 overrides: dict[Scheme, SchemeDefinition | SchemeRule] | None = None):
        self.rates = rates
        self.schemes = default_schemes(rates)
        for scheme, value in (overrides or {}).items():
            if isinstance(value, SchemeRule):
                value = SchemeDefinition(value, self.schemes[scheme].criteria,
                                         self.schemes[scheme].stages)
            self.schemes[scheme] = value

    @staticmethod
    def lookup(scheme: "Scheme | str") -> Scheme | None:
        """Resolve a scheme given by enum member or name; None if unknown."""
        if isinstance(scheme, Scheme):
            return scheme
        try:
            return Scheme[str(scheme).strip().upper()]
        except KeyError:
            return None

    def is_eligible(self, scheme: "Scheme | str", profile: Profile,
                    child_age_months: int, path: str | None = None) -> bool:
        resolved = self.lookup(scheme)
        if resolved is None:
            logger.warning("Unknown benefit scheme %r; treated as ineligible", scheme)
            return False
        definition = self.schemes[resolved]
        for criterion in definition.criteria:
            if criterion == Criterion.CITIZENSHIP and not profile.has_citizen_or_pr:
                return False
            if (criterion == Criterion.INCOME
                    and profile.household_gross_income > self.rates.benefit_income_ceiling):
                return False
            if criterion == Criterion.CHILD_AGE:
                stage = resolve_stage(child_age_months, profile.child_gender, path)
                if stage not in definition.stages:
                    return False
        return True

    def value_of(self, scheme: "Scheme | str", profile: Profile,
                 child_order: int | None = None, child_age_months: int = 0,
                 path: str | None = None) -> float:
        """Scheme value ignoring eligibility. Unknown schemes are worth 0."""
        resolved = self.lookup(scheme)
        if resolved is None:
            logger.warning("Unknown benefit scheme %r; valued at 0", scheme)
            return 0.0
        if child_order is None:
            child_order = profile.child_order
        stage = resolve_stage(child_age_months, profile.child_gender, path)
        return self.schemes[resolved].rule.value_of(profile, child_order, stage)

    def benefit(self, scheme: "Scheme | str", profile: Profile, child_age_months: int,
                child_order: int | None = None, path: str | None = None) -> float:
        """Scheme value if the household is eligible at this age, else 0."""
        if not self.is_eligible(scheme, profile, child_age_months, path):
            return 0.0
        return self.value_of(scheme, profile, child_order, child_age_months, path)

    def childcare_subsidy(self, household_income: float) -> float:
        """Monthly childcare subsidy (basic + additional) for a household income."""
        rule = self.schemes[Scheme.CHILDCARE_SUBSIDY].rule
        if not isinstance(rule, TieredIncomeSubsidy):
            rule = TieredIncomeSubsidy(self.rates.childcare_basic_subsidy,
                                       self.rates.childcare_additional_tiers)
        return rule.amount_for_income(household_income)
