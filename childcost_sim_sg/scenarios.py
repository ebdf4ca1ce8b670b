"""Scenario definitions and multi-scenario execution."""

import dataclasses
from typing import Mapping

from childcost_sim_sg.events import POST_SECONDARY_PATH, CostEventGenerator
from childcost_sim_sg.params import Profile, Realism
from childcost_sim_sg.simulation import SimulationResult, run_simulation

# Realism tier crossed with post-secondary path
SCENARIOS = {
    "Optimistic / JC": {"realism": Realism.OPTIMISTIC, "path": "jc"},
    "Realistic / JC": {"realism": Realism.REALISTIC, "path": "jc"},
    "Conservative / JC": {"realism": Realism.CONSERVATIVE, "path": "jc"},
    "Optimistic / Poly": {"realism": Realism.OPTIMISTIC, "path": "poly"},
    "Realistic / Poly": {"realism": Realism.REALISTIC, "path": "poly"},
    "Conservative / Poly": {"realism": Realism.CONSERVATIVE, "path": "poly"},
}


def run_scenarios(
    profile: Profile,
    decisions: Mapping[str, str] | None = None,
    generator: CostEventGenerator | None = None,
    scenarios: dict | None = None,
) -> dict[str, SimulationResult]:
    """Execute a full run per scenario.

    The profile's realism tier and the post-secondary choice are overridden
    per scenario; other decisions come from ``decisions``.
    """
    generator = generator or CostEventGenerator()
    all_results = {}
    for name, scenario in (scenarios or SCENARIOS).items():
        params = dataclasses.replace(profile, realism=scenario["realism"])
        choices = dict(decisions or {})
        choices[POST_SECONDARY_PATH] = scenario["path"]
        all_results[name] = run_simulation(params, generator, choices)
    return all_results


def cheapest_scenario(results: dict[str, SimulationResult]) -> str | None:
    """Name of the completed scenario with the lowest total expenditure."""
    completed = {
        name: r.snapshot.total_expenditure for name, r in results.items() if r.completed
    }
    if not completed:
        return None
    return min(completed, key=completed.get)
