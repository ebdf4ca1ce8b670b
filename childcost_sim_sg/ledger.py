"""Household financial record mutated only by the simulation driver."""

from dataclasses import dataclass, field

from childcost_sim_sg.events import BenefitTarget, Category, CostEvent, DecisionOption
from childcost_sim_sg.stages import GrowthStage

ACCOUNTS = ("edusave", "cda", "medisave", "psea")


@dataclass(frozen=True)
class DecisionRecord:
    age_months: int
    event_id: str
    title: str
    decision_key: str
    label: str
    value: str
    cost: float


@dataclass(frozen=True)
class LedgerSnapshot:
    savings: float
    total_expenditure: float
    total_benefits: float
    per_category: dict[str, float]
    per_stage: dict[str, float]
    decisions_log: tuple[DecisionRecord, ...]
    account_balances: dict[str, float]
    total_tax_avoided: float
    benefits_by_scheme: dict[str, float]
    savings_history: tuple[tuple[int, float], ...]  # (age_months, savings)

    def is_consistent(self, tolerance: float = 1e-6) -> bool:
        """total == Σ per-category == Σ per-stage."""
        return (
            abs(sum(self.per_category.values()) - self.total_expenditure) <= tolerance
            and abs(sum(self.per_stage.values()) - self.total_expenditure) <= tolerance
        )


@dataclass
class Ledger:
    """Running totals. Savings are floored at 0; expenditure keeps the full cost."""

    savings: float
    total_expenditure: float = 0.0
    total_benefits: float = 0.0
    per_category: dict[str, float] = field(
        default_factory=lambda: {c.value: 0.0 for c in Category})
    per_stage: dict[str, float] = field(default_factory=dict)
    decisions_log: list[DecisionRecord] = field(default_factory=list)
    account_balances: dict[str, float] = field(
        default_factory=lambda: {a: 0.0 for a in ACCOUNTS})
    total_tax_avoided: float = 0.0
    benefits_by_scheme: dict[str, float] = field(default_factory=dict)
    savings_history: list[tuple[int, float]] = field(default_factory=list)

    def _spend(self, amount: float, category: Category, stage: GrowthStage) -> None:
        self.savings -= amount
        self.total_expenditure += amount
        self.per_category[category.value] += amount
        self.per_stage[stage.value] = self.per_stage.get(stage.value, 0.0) + amount

    def _floor(self) -> None:
        if self.savings < 0:
            self.savings = 0.0

    def apply_cash_flow(self, age_months: int, stage: GrowthStage, income: float,
                        costs: dict[Category, float]) -> float:
        """Credit a month's income and debit its committed costs. Returns savings."""
        self.savings += income
        for category, amount in costs.items():
            if amount:
                self._spend(amount, category, stage)
        self._floor()
        self.savings_history.append((age_months, self.savings))
        return self.savings

    def apply_event(self, event: CostEvent, stage: GrowthStage,
                    option: DecisionOption | None = None) -> float:
        """Apply an event's line items and the chosen option as one update. Returns savings."""
        for item in event.costs:
            self._spend(item.amount, item.category, stage)
        if option is not None:
            self._spend(option.cost, option.category, stage)
            self.decisions_log.append(DecisionRecord(
                age_months=event.age_months,
                event_id=event.id,
                title=event.title,
                decision_key=event.decision_key,
                label=option.label,
                value=option.value,
                cost=option.cost,
            ))
        for benefit in event.benefits:
            if benefit.target == BenefitTarget.TAX_AVOIDED:
                self.total_tax_avoided += benefit.amount
                continue
            if benefit.target == BenefitTarget.CASH:
                self.savings += benefit.amount
            else:
                account = benefit.account or "other"
                self.account_balances[account] = self.account_balances.get(account, 0.0) + benefit.amount
            self.total_benefits += benefit.amount
            key = benefit.scheme or benefit.label
            self.benefits_by_scheme[key] = self.benefits_by_scheme.get(key, 0.0) + benefit.amount
        self._floor()
        if self.savings_history and self.savings_history[-1][0] == event.age_months:
            self.savings_history[-1] = (event.age_months, self.savings)
        return self.savings

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            savings=self.savings,
            total_expenditure=self.total_expenditure,
            total_benefits=self.total_benefits,
            per_category=dict(self.per_category),
            per_stage=dict(self.per_stage),
            decisions_log=tuple(self.decisions_log),
            account_balances=dict(self.account_balances),
            total_tax_avoided=self.total_tax_avoided,
            benefits_by_scheme=dict(self.benefits_by_scheme),
            savings_history=tuple(self.savings_history),
        )
