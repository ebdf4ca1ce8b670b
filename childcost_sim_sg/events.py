"""Life-stage cost events and monthly committed costs.

CostEventGenerator is a pure function of (age in months, profile, prior
decisions). Events at one age are ordered: birth/stage events first, then
micro-events (immunisation, Edusave), then the annual tax event last.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from childcost_sim_sg.benefits import BenefitsEngine, Scheme
from childcost_sim_sg.inflation import InflationAdjuster
from childcost_sim_sg.params import Profile
from childcost_sim_sg.rates import DEFAULT_RATE_TABLES, RateTables
from childcost_sim_sg.stages import (
    DEFAULT_PATH,
    POST_SECONDARY_START,
    PRIMARY_START,
    GrowthStage,
    resolve_stage,
    stage_start_months,
)
from childcost_sim_sg.tax import TaxEngine

MONTHS_PER_YEAR = 12
BIRTH_EVENT_MONTH = 1
IMMUNISATION_MONTHS = (2, 4, 6, 12, 15, 18)

# Decision keys under which chosen option values are remembered
DELIVERY = "delivery"
PRIMARY_ENRICHMENT = "primary_enrichment"
POST_SECONDARY_PATH = "post_secondary_path"


class Category(Enum):
    EDUCATION = "education"
    MEDICAL = "medical"
    MISCELLANEOUS = "miscellaneous"
    TAX = "tax"


class BenefitTarget(Enum):
    CASH = "cash"                # credited to household savings
    ACCOUNT = "account"          # credited to a government account (CDA, Edusave, ...)
    TAX_AVOIDED = "tax_avoided"  # reporting only


@dataclass(frozen=True)
class CostItem:
    label: str
    amount: float
    category: Category


@dataclass(frozen=True)
class BenefitItem:
    label: str
    amount: float
    target: BenefitTarget
    scheme: str = ""
    account: str = ""


@dataclass(frozen=True)
class DecisionOption:
    label: str
    cost: float
    value: str
    description: str = ""
    category: Category = Category.MISCELLANEOUS


@dataclass(frozen=True)
class CostEvent:
    id: str
    title: str
    description: str
    category: Category
    age_months: int
    costs: tuple[CostItem, ...] = ()
    benefits: tuple[BenefitItem, ...] = ()
    options: tuple[DecisionOption, ...] = ()
    requires_decision: bool = False
    decision_key: str = ""

    @property
    def total_cost(self) -> float:
        return sum(item.amount for item in self.costs)

    @property
    def credited_benefits(self) -> float:
        """Benefits that reach savings or a government account."""
        return sum(b.amount for b in self.benefits if b.target != BenefitTarget.TAX_AVOIDED)

    def option(self, value: str) -> DecisionOption | None:
        for opt in self.options:
            if opt.value == value:
                return opt
        return None


# One-time stage purchases: (label, SGD at reference-year prices, category, discretionary)
_ItemSpec = tuple[str, float, Category, bool]

_WELCOME_ITEMS: tuple[_ItemSpec, ...] = (
    ("Newborn essentials", 2_000, Category.MISCELLANEOUS, True),
    ("Cot and pram", 1_500, Category.MISCELLANEOUS, True),
    ("Baby supplies", 1_000, Category.MISCELLANEOUS, True),
)
_STAGE_ITEMS: dict[GrowthStage, tuple[_ItemSpec, ...]] = {
    GrowthStage.KINDERGARTEN: (
        ("Kindergarten uniform", 300, Category.EDUCATION, False),
        ("Kindergarten books", 200, Category.EDUCATION, False),
    ),
    GrowthStage.PRIMARY: (
        ("Primary school uniform", 200, Category.EDUCATION, False),
        ("Primary textbooks", 300, Category.EDUCATION, False),
        ("School bag", 150, Category.EDUCATION, True),
    ),
    GrowthStage.SECONDARY: (
        ("Secondary school uniform", 250, Category.EDUCATION, False),
        ("Secondary textbooks", 400, Category.EDUCATION, False),
        ("Graphing calculator", 200, Category.EDUCATION, False),
        ("CCA equipment", 300, Category.EDUCATION, True),
    ),
    GrowthStage.NATIONAL_SERVICE: (
        ("Enlistment personal items", 200, Category.MISCELLANEOUS, False),
    ),
    GrowthStage.UNIVERSITY: (
        ("University textbooks", 1_000, Category.EDUCATION, False),
        ("Laptop", 2_000, Category.EDUCATION, True),
        ("Campus fees", 300, Category.EDUCATION, False),
    ),
}
_STAGE_TITLES = {
    GrowthStage.KINDERGARTEN: ("Starting Kindergarten", "Your child enters preschool."),
    GrowthStage.PRIMARY: ("Starting Primary School", "Primary 1 begins."),
    GrowthStage.SECONDARY: ("Starting Secondary School", "Secondary 1 begins."),
    GrowthStage.NATIONAL_SERVICE: (
        "National Service Enlistment", "Full-time National Service for two years."),
    GrowthStage.UNIVERSITY: ("Starting University", "Undergraduate studies begin."),
}

# Delivery: (value, label, SGD)
_DELIVERY_OPTIONS = (
    ("public", "Public hospital (subsidised ward)", 3_000),
    ("private", "Private hospital", 7_500),
)
# Primary enrichment: (value, label, upfront SGD, monthly SGD during PRIMARY)
_ENRICHMENT_OPTIONS = (
    ("high", "Tuition and enrichment classes", 2_000, 200),
    ("low", "Occasional enrichment", 500, 50),
    ("none", "No enrichment", 0, 0),
)
_ENRICHMENT_MONTHLY = {value: monthly for value, _, _, monthly in _ENRICHMENT_OPTIONS}
_PATH_OPTIONS = (
    ("jc", "Junior College (2 years, A-Levels)"),
    ("poly", "Polytechnic (3 years, diploma)"),
)


class CostEventGenerator:
    """Produces the events for an age and the committed monthly costs."""

    def __init__(
        self,
        rates: RateTables = DEFAULT_RATE_TABLES,
        tax_engine: TaxEngine | None = None,
        benefits: BenefitsEngine | None = None,
        inflation: InflationAdjuster | None = None,
    ):
        self.rates = rates
        self.tax_engine = tax_engine or TaxEngine(rates)
        self.benefits = benefits or BenefitsEngine(rates)
        self.inflation = inflation or InflationAdjuster(rates)

    # -- helpers ------------------------------------------------------------

    def event_year(self, age_months: int, profile: Profile) -> int:
        return profile.birth_year + age_months // MONTHS_PER_YEAR

    def project(self, amount: float, age_months: int, profile: Profile,
                discretionary: bool = False) -> float:
        """Price at the event year, scaled by realism when discretionary."""
        cost = self.inflation.adjust(
            amount, self.rates.reference_year, self.event_year(age_months, profile))
        if discretionary:
            cost *= self.rates.realism_multipliers[profile.realism.value]
        return cost

    def _items(self, specs: tuple[_ItemSpec, ...], age_months: int,
               profile: Profile) -> tuple[CostItem, ...]:
        return tuple(
            CostItem(label, self.project(amount, age_months, profile, discretionary), category)
            for label, amount, category, discretionary in specs
        )

    def _grant(self, scheme: Scheme, label: str, target: BenefitTarget, account: str,
               age_months: int, profile: Profile, path: str) -> list[BenefitItem]:
        amount = self.benefits.benefit(scheme, profile, age_months, path=path)
        if amount <= 0:
            return []
        return [BenefitItem(label, amount, target, scheme.value, account)]

    def monthly_income(self, age_months: int, profile: Profile) -> float:
        """Household disposable income for a month, CPI-indexed when the rates ask for it."""
        income = profile.household_disposable_income
        if self.rates.index_income_to_cpi:
            income = self.inflation.adjust(
                income, profile.birth_year, self.event_year(age_months, profile))
        return income

    def cancel_fetches(self) -> None:
        """Abandon any in-flight CPI fetch of the shared data client."""
        if self.inflation.client is not None:
            self.inflation.client.cancel()

    # -- events -------------------------------------------------------------

    def events_for(self, age_months: int, profile: Profile,
                   decisions: Mapping[str, str] | None = None) -> list[CostEvent]:
        decisions = decisions or {}
        path = decisions.get(POST_SECONDARY_PATH, DEFAULT_PATH)
        events: list[CostEvent] = []

        if age_months == BIRTH_EVENT_MONTH:
            events.append(self._welcome_event(age_months, profile, path))
            events.append(self._delivery_event(age_months, profile))

        starts = stage_start_months(profile.child_gender, path)
        for stage in (GrowthStage.KINDERGARTEN, GrowthStage.PRIMARY, GrowthStage.SECONDARY):
            if age_months == starts[stage]:
                events.append(self._stage_event(stage, age_months, profile, path))
        if age_months == PRIMARY_START:
            events.append(self._enrichment_event(age_months, profile))
        if age_months == POST_SECONDARY_START:
            events.append(self._path_event(age_months, profile))
        for stage in (GrowthStage.NATIONAL_SERVICE, GrowthStage.UNIVERSITY):
            if starts.get(stage) == age_months and age_months > POST_SECONDARY_START:
                events.append(self._stage_event(stage, age_months, profile, path))

        if age_months in IMMUNISATION_MONTHS:
            events.append(self._immunisation_event(age_months, profile))
        if age_months % MONTHS_PER_YEAR == 0:
            edusave = self._edusave_event(age_months, profile, path)
            if edusave is not None:
                events.append(edusave)

        if age_months > 0 and age_months % MONTHS_PER_YEAR == 0:
            events.append(self.tax_event(age_months, profile))
        return events

    def _welcome_event(self, age_months: int, profile: Profile, path: str) -> CostEvent:
        benefits = (
            self._grant(Scheme.BABY_BONUS, "Baby Bonus cash gift", BenefitTarget.CASH,
                        "", age_months, profile, path)
            + self._grant(Scheme.CDA_FIRST_STEP_GRANT, "CDA First Step Grant",
                          BenefitTarget.ACCOUNT, "cda", age_months, profile, path)
            + self._grant(Scheme.MEDISAVE_GRANT, "MediSave newborn grant",
                          BenefitTarget.ACCOUNT, "medisave", age_months, profile, path)
        )
        return CostEvent(
            id=f"welcome@{age_months}",
            title="Welcome to Parenthood",
            description=f"{profile.child_name} is born. Time to set up the nursery.",
            category=Category.MISCELLANEOUS,
            age_months=age_months,
            costs=self._items(_WELCOME_ITEMS, age_months, profile),
            benefits=tuple(benefits),
        )

    def _delivery_event(self, age_months: int, profile: Profile) -> CostEvent:
        options = tuple(
            DecisionOption(label, self.project(cost, age_months, profile), value,
                           category=Category.MEDICAL)
            for value, label, cost in _DELIVERY_OPTIONS
        )
        return CostEvent(
            id=f"delivery@{age_months}",
            title="Delivery Hospital",
            description="Choose where the delivery took place.",
            category=Category.MEDICAL,
            age_months=age_months,
            options=options,
            requires_decision=True,
            decision_key=DELIVERY,
        )

    def _stage_event(self, stage: GrowthStage, age_months: int, profile: Profile,
                     path: str) -> CostEvent:
        title, description = _STAGE_TITLES[stage]
        benefits = []
        if stage == GrowthStage.KINDERGARTEN:
            benefits = self._grant(Scheme.KINDERGARTEN_STARTUP_GRANT, "Preschool start-up grant",
                                   BenefitTarget.CASH, "", age_months, profile, path)
        category = Category.MISCELLANEOUS if stage == GrowthStage.NATIONAL_SERVICE else Category.EDUCATION
        return CostEvent(
            id=f"{stage.value.lower()}_start@{age_months}",
            title=title,
            description=description,
            category=category,
            age_months=age_months,
            costs=self._items(_STAGE_ITEMS[stage], age_months, profile),
            benefits=tuple(benefits),
        )

    def _enrichment_event(self, age_months: int, profile: Profile) -> CostEvent:
        options = tuple(
            DecisionOption(
                label,
                self.project(upfront, age_months, profile, discretionary=True),
                value,
                description=f"SGD {monthly:.0f}/month during primary school" if monthly else "",
                category=Category.EDUCATION,
            )
            for value, label, upfront, monthly in _ENRICHMENT_OPTIONS
        )
        return CostEvent(
            id=f"primary_enrichment@{age_months}",
            title="Primary Enrichment",
            description="Decide how much tuition and enrichment to commit to.",
            category=Category.EDUCATION,
            age_months=age_months,
            options=options,
            requires_decision=True,
            decision_key=PRIMARY_ENRICHMENT,
        )

    def _path_event(self, age_months: int, profile: Profile) -> CostEvent:
        psea = self._grant(Scheme.PSEA_TOPUP, "PSEA top-up", BenefitTarget.ACCOUNT, "psea",
                           age_months, profile, DEFAULT_PATH)
        return CostEvent(
            id=f"post_secondary_path@{age_months}",
            title="Post-Secondary Path",
            description="Junior College or Polytechnic after the O-Levels.",
            category=Category.EDUCATION,
            age_months=age_months,
            benefits=tuple(psea),
            options=tuple(
                DecisionOption(label, 0.0, value, category=Category.EDUCATION)
                for value, label in _PATH_OPTIONS
            ),
            requires_decision=True,
            decision_key=POST_SECONDARY_PATH,
        )

    def _immunisation_event(self, age_months: int, profile: Profile) -> CostEvent:
        fee = self.rates.immunisation_visit_fees[profile.child_residency]
        return CostEvent(
            id=f"immunisation@{age_months}",
            title="Childhood Immunisation",
            description="Scheduled vaccination visit at the polyclinic.",
            category=Category.MEDICAL,
            age_months=age_months,
            costs=(CostItem("Polyclinic visit", self.project(fee, age_months, profile),
                            Category.MEDICAL),),
        )

    def _edusave_event(self, age_months: int, profile: Profile, path: str) -> CostEvent | None:
        grant = self._grant(Scheme.EDUSAVE, "Edusave contribution", BenefitTarget.ACCOUNT,
                            "edusave", age_months, profile, path)
        if not grant:
            return None
        return CostEvent(
            id=f"edusave@{age_months}",
            title="Edusave Contribution",
            description="Annual government contribution to the Edusave account.",
            category=Category.EDUCATION,
            age_months=age_months,
            benefits=tuple(grant),
        )

    def tax_event(self, age_months: int, profile: Profile) -> CostEvent:
        """Annual tax assessment; the parenthood rebate counts only in the first year."""
        result = self.tax_engine.compute_net_tax(
            profile,
            child_order=profile.child_order,
            child_born_on_or_after_cutoff=profile.birth_year >= self.rates.wmcr_cutoff_year,
            include_parenthood_rebate=age_months == MONTHS_PER_YEAR,
        )
        benefits = ()
        if result.tax_avoided > 0:
            benefits = (BenefitItem("Tax avoided through reliefs", result.tax_avoided,
                                    BenefitTarget.TAX_AVOIDED),)
        return CostEvent(
            id=f"tax@{age_months}",
            title="Annual Income Tax",
            description=f"Year of assessment {self.event_year(age_months, profile)}.",
            category=Category.TAX,
            age_months=age_months,
            costs=(CostItem("Net income tax payable", result.net_payable, Category.TAX),),
            benefits=benefits,
        )

    # -- monthly costs ------------------------------------------------------

    def monthly_costs(self, age_months: int, profile: Profile,
                      decisions: Mapping[str, str] | None = None) -> dict[Category, float]:
        """Committed non-discrete cost for one month, by category."""
        decisions = decisions or {}
        path = decisions.get(POST_SECONDARY_PATH, DEFAULT_PATH)
        stage = resolve_stage(age_months, profile.child_gender, path)
        costs = {Category.EDUCATION: 0.0, Category.MEDICAL: 0.0, Category.MISCELLANEOUS: 0.0}
        if stage == GrowthStage.ADULT:
            return costs

        costs[Category.EDUCATION] = self._education_fee(stage, age_months, profile, path)
        if stage == GrowthStage.PRIMARY:
            tuition = _ENRICHMENT_MONTHLY.get(decisions.get(PRIMARY_ENRICHMENT, "none"), 0)
            costs[Category.EDUCATION] += self.project(tuition, age_months, profile, discretionary=True)

        for item, amount in self.rates.living_costs(age_months // MONTHS_PER_YEAR).items():
            category = Category.MEDICAL if item == "medical" else Category.MISCELLANEOUS
            costs[category] += self.project(amount, age_months, profile, discretionary=True)
        return costs

    def _education_fee(self, stage: GrowthStage, age_months: int, profile: Profile,
                       path: str) -> float:
        r = self.rates
        residency = profile.child_residency
        if stage == GrowthStage.KINDERGARTEN:
            fee = self.project(r.kindergarten_fees[residency], age_months, profile)
            if self.benefits.is_eligible(Scheme.CHILDCARE_SUBSIDY, profile, age_months, path):
                fee -= self.benefits.childcare_subsidy(profile.household_gross_income)
            return max(0.0, fee)
        monthly = {
            GrowthStage.PRIMARY: r.primary_fees[residency],
            GrowthStage.SECONDARY: r.secondary_fees[residency],
            GrowthStage.POST_SECONDARY: (
                r.poly_fees if path == "poly" else r.jc_fees)[residency] / MONTHS_PER_YEAR,
            GrowthStage.UNIVERSITY: r.university_fees[residency] / MONTHS_PER_YEAR,
        }.get(stage, 0.0)
        return self.project(monthly, age_months, profile)
