"""CLI entry point: play a full simulation with configured decisions."""

import dataclasses
import logging
import sys
from pathlib import Path

from childcost_sim_sg.config import build_decisions, build_profile, parse_args
from childcost_sim_sg.datasource import DataSourceClient, refresh_rate_tables
from childcost_sim_sg.events import CostEventGenerator
from childcost_sim_sg.inflation import InflationAdjuster
from childcost_sim_sg.params import Profile, ProfileValidationError
from childcost_sim_sg.scenarios import cheapest_scenario, run_scenarios
from childcost_sim_sg.simulation import SimulationResult, run_simulation
from childcost_sim_sg.stages import terminal_age_months
from childcost_sim_sg.storage import JsonFileStore
from childcost_sim_sg.tax import TaxEngine


def _add_cli_args(parser):
    parser.add_argument("--scenarios", action="store_true",
                        help="Compare all realism tiers and post-secondary paths")
    parser.add_argument("--charts", type=Path, default=None,
                        help="Write PNG charts to this directory")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")


def _print_header(profile: Profile, decisions: dict[str, str], tax_engine: TaxEngine):
    years = terminal_age_months(profile.child_gender, decisions.get("post_secondary_path")) // 12
    print("=" * 80)
    print(f"Child-raising cost simulation: {profile.child_name} "
          f"({profile.child_gender.value.lower()}, born {profile.birth_year}, {years} years)")
    print(f"  Parents: father {profile.residency_father.value} / mother {profile.residency_mother.value}"
          f" / {profile.household_income_type.value.replace('_', ' ').lower()}")
    print(f"  Gross income: {profile.gross_income_father:,.0f} + {profile.gross_income_mother:,.0f}"
          f" = {profile.household_gross_income:,.0f} SGD/month")
    print(f"  Disposable income: {profile.household_disposable_income:,.0f} SGD/month"
          f" / savings at birth: {profile.family_savings:,.0f} SGD")
    print(f"  Realism: {profile.realism.value.lower()} / child order: {profile.child_order}")
    tax = tax_engine.compute_net_tax(profile)
    print(f"  First-year tax: gross {tax.gross_tax:,.2f} / reliefs {tax.total_relief:,.0f}"
          f" / net {tax.net_payable:,.2f} SGD (effective {tax.effective_rate * 100:.2f}%)")
    print("  Decisions: " + ", ".join(f"{k}={v}" for k, v in decisions.items()))
    print("=" * 80)
    print()


def _print_summary(result: SimulationResult):
    s = result.snapshot
    print("[Outcome]")
    print(f"  {result.outcome.value} at {result.age_months // 12} years "
          f"{result.age_months % 12} months ({result.stage.value})")
    print(f"  Savings:            {s.savings:>14,.2f} SGD")
    print(f"  Total expenditure:  {s.total_expenditure:>14,.2f} SGD")
    print(f"  Benefits received:  {s.total_benefits:>14,.2f} SGD")
    print(f"  Tax avoided:        {s.total_tax_avoided:>14,.2f} SGD")


def _print_breakdowns(result: SimulationResult):
    s = result.snapshot
    print("\n[Expenditure by category]")
    print("-" * 50)
    for category, amount in s.per_category.items():
        share = amount / s.total_expenditure * 100 if s.total_expenditure else 0.0
        print(f"  {category:<16} {amount:>14,.2f}  {share:5.1f}%")
    print("\n[Expenditure by stage]")
    print("-" * 50)
    for stage, amount in s.per_stage.items():
        print(f"  {stage:<16} {amount:>14,.2f}")
    print("\n[Government accounts]")
    print("-" * 50)
    for account, amount in s.account_balances.items():
        print(f"  {account:<16} {amount:>14,.2f}")
    if s.decisions_log:
        print("\n[Decisions]")
        print("-" * 50)
        for d in s.decisions_log:
            print(f"  {d.age_months // 12:>2}y{d.age_months % 12:>2}m  {d.title:<22} {d.label} ({d.cost:,.2f})")


def _print_yearly_log(result: SimulationResult):
    print("\n[Savings by year]")
    print("-" * 50)
    for age, savings in result.snapshot.savings_history:
        if age % 12 == 0:
            print(f"  {age // 12:>3}  {savings:>14,.2f}")


def _print_scenarios(results: dict[str, SimulationResult]):
    print("\n[Scenario comparison]")
    print("-" * 80)
    print(f"{'Scenario':<22} {'Outcome':<18} {'Expenditure':>14} {'Savings':>14}")
    for name, r in results.items():
        print(f"{name:<22} {r.outcome.value:<18} "
              f"{r.snapshot.total_expenditure:>14,.0f} {r.snapshot.savings:>14,.0f}")
    best = cheapest_scenario(results)
    if best:
        print(f"\nLowest total cost: {best}")


def main(argv: list[str] | None = None):
    """Execute a full simulation and print the summary."""
    r, args = parse_args("Child-raising cost simulation (Singapore)", _add_cli_args, argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        profile = build_profile(r)
    except (TypeError, ValueError) as e:
        print(f"Invalid profile: {e}", file=sys.stderr)
        raise SystemExit(2)
    decisions = build_decisions(r)

    store = JsonFileStore(Path(r["cache"])) if r["cache"] else None
    client = DataSourceClient(
        data_dir=Path(r["data_dir"]) if r["data_dir"] else None, store=store,
    )
    print("Loading rate tables...", file=sys.stderr)
    rates = refresh_rate_tables(client)
    if r["index_income"]:
        rates = dataclasses.replace(rates, index_income_to_cpi=True)
    tax_engine = TaxEngine(rates)
    generator = CostEventGenerator(
        rates, tax_engine=tax_engine, inflation=InflationAdjuster(rates, client),
    )

    _print_header(profile, decisions, tax_engine)
    try:
        result = run_simulation(profile, generator, decisions)
    except ProfileValidationError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)

    _print_summary(result)
    _print_breakdowns(result)
    _print_yearly_log(result)

    results = {"Configured": result}
    if args.scenarios:
        print("Running scenarios...", file=sys.stderr)
        results = run_scenarios(profile, decisions, generator)
        _print_scenarios(results)

    if args.charts is not None:
        from childcost_sim_sg.charts import decision_markers, plot_expenditure_breakdown, plot_trajectory

        print(f"Writing charts to {args.charts}...", file=sys.stderr)
        paths = [
            plot_trajectory(results, args.charts, event_markers=decision_markers(result.snapshot)),
            plot_expenditure_breakdown(result, args.charts),
        ]
        for path in paths:
            print(f"  {path}", file=sys.stderr)


if __name__ == "__main__":
    main()
