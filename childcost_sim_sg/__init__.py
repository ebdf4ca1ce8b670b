"""Child-Raising Cost Simulation Package (Singapore)."""

from childcost_sim_sg.params import (
    Profile,
    Residency,
    HouseholdIncomeType,
    Gender,
    Realism,
    ProfileValidationError,
    validate_profile,
)
from childcost_sim_sg.rates import RateTables, DEFAULT_RATE_TABLES
from childcost_sim_sg.stages import (
    GrowthStage,
    resolve_stage,
    terminal_age_months,
    stage_thresholds,
)
from childcost_sim_sg.formula import FormulaError, parse_formula, evaluate
from childcost_sim_sg.storage import KeyValueStore, MemoryStore, JsonFileStore, ProfileRepository
from childcost_sim_sg.datasource import DataSource, DataResult, DataSourceClient, refresh_rate_tables
from childcost_sim_sg.inflation import CPITable, InflationAdjuster
from childcost_sim_sg.tax import TaxEngine, TaxResult, progressive_tax, marginal_rate
from childcost_sim_sg.benefits import (
    BenefitsEngine,
    Scheme,
    Criterion,
    SchemeRule,
    TieredIncomeSubsidy,
    FixedByChildOrder,
    FixedByStage,
    FixedAmount,
    PercentOfIncomeCapped,
    Formula,
)
from childcost_sim_sg.events import (
    Category,
    BenefitTarget,
    CostItem,
    BenefitItem,
    DecisionOption,
    CostEvent,
    CostEventGenerator,
)
from childcost_sim_sg.ledger import Ledger, LedgerSnapshot, DecisionRecord
from childcost_sim_sg.simulation import (
    SimulationDriver,
    SimulationResult,
    SimulationState,
    SimulationStateError,
    RunStatus,
    Outcome,
    run_simulation,
)
from childcost_sim_sg.scenarios import SCENARIOS, run_scenarios

__all__ = [
    "Profile",
    "Residency",
    "HouseholdIncomeType",
    "Gender",
    "Realism",
    "ProfileValidationError",
    "validate_profile",
    "RateTables",
    "DEFAULT_RATE_TABLES",
    "GrowthStage",
    "resolve_stage",
    "terminal_age_months",
    "stage_thresholds",
    "FormulaError",
    "parse_formula",
    "evaluate",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "ProfileRepository",
    "DataSource",
    "DataResult",
    "DataSourceClient",
    "refresh_rate_tables",
    "CPITable",
    "InflationAdjuster",
    "TaxEngine",
    "TaxResult",
    "progressive_tax",
    "marginal_rate",
    "BenefitsEngine",
    "Scheme",
    "Criterion",
    "SchemeRule",
    "TieredIncomeSubsidy",
    "FixedByChildOrder",
    "FixedByStage",
    "FixedAmount",
    "PercentOfIncomeCapped",
    "Formula",
    "Category",
    "BenefitTarget",
    "CostItem",
    "BenefitItem",
    "DecisionOption",
    "CostEvent",
    "CostEventGenerator",
    "Ledger",
    "LedgerSnapshot",
    "DecisionRecord",
    "SimulationDriver",
    "SimulationResult",
    "SimulationState",
    "SimulationStateError",
    "RunStatus",
    "Outcome",
    "run_simulation",
    "SCENARIOS",
    "run_scenarios",
]
