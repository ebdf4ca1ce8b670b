"""Month-by-month simulation driver (state machine over a pending-event queue)."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from childcost_sim_sg.events import (
    POST_SECONDARY_PATH,
    CostEvent,
    CostEventGenerator,
    DecisionOption,
)
from childcost_sim_sg.ledger import Ledger, LedgerSnapshot
from childcost_sim_sg.params import Profile, ProfileValidationError, validate_profile
from childcost_sim_sg.stages import DEFAULT_PATH, GrowthStage, resolve_stage, terminal_age_months

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


class Outcome(Enum):
    COMPLETED = "COMPLETED"
    RAN_OUT_OF_MONEY = "RAN_OUT_OF_MONEY"
    ENDED_BY_CALLER = "ENDED_BY_CALLER"


class SimulationStateError(RuntimeError):
    """Operation not allowed in the driver's current state."""


@dataclass
class SimulationState:
    age_months: int = 0
    status: RunStatus = RunStatus.STOPPED
    tick_rate_multiplier: float = 1.0
    pending: list[CostEvent] = field(default_factory=list)
    finished: bool = False
    outcome: Outcome | None = None


@dataclass(frozen=True)
class SimulationResult:
    outcome: Outcome
    age_months: int
    stage: GrowthStage
    snapshot: LedgerSnapshot
    decisions: dict[str, str]

    @property
    def completed(self) -> bool:
        return self.outcome == Outcome.COMPLETED


class SimulationDriver:
    """Advances the child's age and applies costs to the household ledger.

    tick() moves one month forward. When the new age has events the driver
    pauses; each pending event must be acknowledged (notifications) or
    decided (decision events) before ticking resumes.
    """

    def __init__(self, profile: Profile, generator: CostEventGenerator | None = None):
        errors = validate_profile(profile)
        if errors:
            raise ProfileValidationError(errors)
        self.profile = profile
        self.generator = generator or CostEventGenerator()
        self.state = SimulationState()
        self.ledger = Ledger(savings=float(profile.family_savings))
        self.choices: dict[str, str] = {}
        self._result: SimulationResult | None = None

    # -- properties ---------------------------------------------------------

    @property
    def path(self) -> str:
        return self.choices.get(POST_SECONDARY_PATH, DEFAULT_PATH)

    @property
    def stage(self) -> GrowthStage:
        return resolve_stage(self.state.age_months, self.profile.child_gender, self.path)

    @property
    def terminal_age(self) -> int:
        return terminal_age_months(self.profile.child_gender, self.path)

    @property
    def pending_events(self) -> tuple[CostEvent, ...]:
        return tuple(self.state.pending)

    @property
    def result(self) -> SimulationResult | None:
        return self._result

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        if self.state.finished:
            raise SimulationStateError("Session has ended; create a new driver to run again")
        if self.state.status != RunStatus.STOPPED:
            raise SimulationStateError(f"Cannot start while {self.state.status.value}")
        self.state.status = RunStatus.RUNNING
        logger.debug("Simulation started for %s", self.profile.child_name)

    def pause(self) -> None:
        self._require(RunStatus.RUNNING, "pause")
        self.state.status = RunStatus.PAUSED

    def resume(self) -> None:
        self._require(RunStatus.PAUSED, "resume")
        if self.state.pending:
            raise SimulationStateError(
                f"Cannot resume with {len(self.state.pending)} pending event(s)")
        self.state.status = RunStatus.RUNNING

    def set_tick_rate(self, multiplier: float) -> None:
        """Store the caller's display cadence; the core never sleeps."""
        if multiplier <= 0:
            raise ValueError(f"tick rate multiplier must be > 0, got {multiplier}")
        self.state.tick_rate_multiplier = multiplier

    def end(self) -> SimulationResult:
        """Stop the run at the caller's request. Returns the final result."""
        if self.state.finished:
            raise SimulationStateError("Session has already ended")
        self.generator.cancel_fetches()
        return self._finish(Outcome.ENDED_BY_CALLER)

    # -- ticking ------------------------------------------------------------

    def tick(self) -> list[CostEvent]:
        """Advance one month. Returns the events now pending (possibly empty)."""
        self._require(RunStatus.RUNNING, "tick")
        if self.state.pending:
            raise SimulationStateError("Cannot tick with pending events")

        self.state.age_months += 1
        age = self.state.age_months
        costs = self.generator.monthly_costs(age, self.profile, self.choices)
        savings = self.ledger.apply_cash_flow(
            age, self.stage, self.generator.monthly_income(age, self.profile), costs)
        if savings <= 0:
            logger.info("Savings exhausted at month %d", age)
            self._finish(Outcome.RAN_OUT_OF_MONEY)
            return []

        events = self.generator.events_for(age, self.profile, self.choices)
        if events:
            self.state.pending = list(events)
            self.state.status = RunStatus.PAUSED
            logger.debug("Month %d: %d event(s) pending", age, len(events))
            return list(events)
        self._check_terminal()
        return []

    def next_pending_event(self) -> CostEvent | None:
        return self.state.pending[0] if self.state.pending else None

    # -- resolving events ---------------------------------------------------

    def acknowledge(self, event: CostEvent) -> None:
        if event.requires_decision:
            raise SimulationStateError(f"Event {event.id!r} requires a decision")
        self._apply(event, None)

    def decide(self, event: CostEvent, option: DecisionOption) -> None:
        if not event.requires_decision:
            raise SimulationStateError(f"Event {event.id!r} does not take a decision")
        if option not in event.options:
            raise SimulationStateError(f"Option {option.label!r} does not belong to {event.id!r}")
        self._apply(event, option)

    def resolve(self, event: CostEvent, option: DecisionOption | None = None) -> None:
        """acknowledge() or decide() depending on the event."""
        if event.requires_decision:
            if option is None:
                raise SimulationStateError(f"Event {event.id!r} requires a decision")
            self.decide(event, option)
        else:
            self.acknowledge(event)

    def _apply(self, event: CostEvent, option: DecisionOption | None) -> None:
        if self.state.status != RunStatus.PAUSED or event not in self.state.pending:
            raise SimulationStateError(f"Event {event.id!r} is not pending")
        savings = self.ledger.apply_event(event, self.stage, option)
        self.state.pending.remove(event)
        if option is not None and event.decision_key:
            self.choices[event.decision_key] = option.value
        if savings <= 0:
            logger.info("Savings exhausted by %s at month %d", event.id, event.age_months)
            self._finish(Outcome.RAN_OUT_OF_MONEY)
            return
        if not self.state.pending:
            self.state.status = RunStatus.RUNNING
            self._check_terminal()

    # -- internals ----------------------------------------------------------

    def _require(self, status: RunStatus, operation: str) -> None:
        if self.state.status != status:
            raise SimulationStateError(
                f"Cannot {operation} while {self.state.status.value}"
                + (" (session ended)" if self.state.finished else ""))

    def _check_terminal(self) -> None:
        if self.state.age_months >= self.terminal_age:
            self._finish(Outcome.COMPLETED)

    def _finish(self, outcome: Outcome) -> SimulationResult:
        self.state.status = RunStatus.STOPPED
        self.state.finished = True
        self.state.outcome = outcome
        self.state.pending.clear()
        self._result = SimulationResult(
            outcome=outcome,
            age_months=self.state.age_months,
            stage=self.stage,
            snapshot=self.ledger.snapshot(),
            decisions=dict(self.choices),
        )
        logger.debug("Simulation finished: %s at month %d", outcome.value, self.state.age_months)
        return self._result


def choose_option(event: CostEvent, decisions: Mapping[str, str]) -> DecisionOption:
    """Pick the configured option for an event, else the first free one, else the first."""
    wanted = decisions.get(event.decision_key)
    if wanted is not None:
        option = event.option(wanted)
        if option is not None:
            return option
        logger.warning("Unknown choice %r for %s; using default", wanted, event.decision_key)
    for option in event.options:
        if option.cost == 0:
            return option
    return event.options[0]


def run_simulation(
    profile: Profile,
    generator: CostEventGenerator | None = None,
    decisions: Mapping[str, str] | None = None,
) -> SimulationResult:
    """Play a whole run, resolving decision events from ``decisions``."""
    decisions = decisions or {}
    driver = SimulationDriver(profile, generator)
    driver.start()
    while driver.result is None:
        driver.tick()
        while driver.pending_events:
            event = driver.next_pending_event()
            if event.requires_decision:
                driver.decide(event, choose_option(event, decisions))
            else:
                driver.acknowledge(event)
    return driver.result
