"""Chart generation for child-raising cost simulation results."""

from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from childcost_sim_sg.ledger import LedgerSnapshot
from childcost_sim_sg.simulation import SimulationResult

SCENARIO_COLORS = {
    "Optimistic / JC": "#2ca02c",
    "Realistic / JC": "#1f77b4",
    "Conservative / JC": "#d62728",
    "Optimistic / Poly": "#98df8a",
    "Realistic / Poly": "#aec7e8",
    "Conservative / Poly": "#ff9896",
}
CATEGORY_COLORS = {
    "education": "#fc8d62",
    "medical": "#8da0cb",
    "miscellaneous": "#66c2a5",
    "tax": "#e78ac3",
}

DEFAULT_COLOR = "#7f7f7f"
STAGE_ORDER = (
    "NEWBORN", "KINDERGARTEN", "PRIMARY", "SECONDARY",
    "POST_SECONDARY", "NATIONAL_SERVICE", "UNIVERSITY", "ADULT",
)


def _format_sgd_axis(ax: plt.Axes, axis: str = "y"):
    formatter = ticker.FuncFormatter(lambda x, _: f"{x / 1000:,.0f}k" if x else "0")
    if axis == "y":
        ax.yaxis.set_major_formatter(formatter)
    else:
        ax.xaxis.set_major_formatter(formatter)


def decision_markers(snapshot: LedgerSnapshot) -> list[tuple[float, float, str]]:
    """Decisions with a cost as chart markers: [(age_years, -cost, label), ...]."""
    return [
        (d.age_months / 12, -d.cost, d.label)
        for d in snapshot.decisions_log
        if d.cost > 0
    ]


def plot_trajectory(
    results: dict[str, SimulationResult], output_path: Path, name: str = "",
    event_markers: list[tuple[float, float, str]] | None = None,
) -> Path:
    """Generate a line chart of household savings by child age.

    Args:
        results: scenario name -> SimulationResult.
        output_path: directory to save the PNG.
        name: optional suffix for the output filename ("x" → "trajectory-x.png").
        event_markers: [(age_years, signed_amount, label), ...].

    Returns:
        Path to the generated PNG file.
    """
    if not results:
        raise ValueError("No results for trajectory chart")

    fig, ax = plt.subplots(figsize=(14, 8))
    for sname, result in results.items():
        history = result.snapshot.savings_history
        ages = [age / 12 for age, _ in history]
        balances = [savings for _, savings in history]
        ax.plot(ages, balances, label=sname,
                color=SCENARIO_COLORS.get(sname, DEFAULT_COLOR), linewidth=2)

    ax.set_xlabel("Child age (years)")
    ax.set_ylabel("Household savings (SGD)")
    ax.set_title("Household savings while raising a child")
    ax.legend(loc="upper left")
    ax.grid(True, alpha=0.3)
    _format_sgd_axis(ax)

    if event_markers:
        COLOR_EXPENSE = "#c0392b"
        COLOR_INCOME = "#27ae60"
        y_lo, y_hi = ax.get_ylim()
        for i, (evt_age, evt_amount, evt_label) in enumerate(event_markers):
            color = COLOR_INCOME if evt_amount > 0 else COLOR_EXPENSE
            ax.axvline(evt_age, color="#888888", linewidth=0.7, linestyle=":", alpha=0.4, zorder=3)
            sign = "+" if evt_amount > 0 else "-"
            y_pos = y_lo + (y_hi - y_lo) * (0.05 + 0.07 * (i % 4))
            ax.annotate(
                f"{sign}{evt_label} {abs(evt_amount):,.0f}",
                xy=(evt_age, y_pos),
                fontsize=10, color=color,
                ha="center", va="bottom",
                bbox=dict(boxstyle="round,pad=0.5", fc="white", ec=color, alpha=0.9, linewidth=0.8),
                zorder=10,
            )

    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"trajectory{suffix}.png"
    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    return filepath


def plot_expenditure_breakdown(
    result: SimulationResult, output_path: Path, name: str = "",
) -> Path:
    """Generate bar charts of total expenditure by category and by growth stage."""
    snapshot = result.snapshot
    fig, (ax_cat, ax_stage) = plt.subplots(1, 2, figsize=(16, 7))

    categories = list(snapshot.per_category.keys())
    amounts = [snapshot.per_category[c] for c in categories]
    ax_cat.bar(categories, amounts,
               color=[CATEGORY_COLORS.get(c, DEFAULT_COLOR) for c in categories])
    ax_cat.set_title("Expenditure by category")
    ax_cat.set_ylabel("SGD")
    _format_sgd_axis(ax_cat)
    ax_cat.grid(True, axis="y", alpha=0.3)

    stages = [s for s in STAGE_ORDER if s in snapshot.per_stage]
    ax_stage.barh(stages, [snapshot.per_stage[s] for s in stages], color="#1f77b4")
    ax_stage.invert_yaxis()
    ax_stage.set_title("Expenditure by growth stage")
    ax_stage.set_xlabel("SGD")
    _format_sgd_axis(ax_stage, axis="x")
    ax_stage.grid(True, axis="x", alpha=0.3)

    fig.suptitle(
        f"Total {snapshot.total_expenditure:,.0f} SGD "
        f"({result.outcome.value.replace('_', ' ').lower()} at {result.age_months // 12} years)",
        fontsize=14, y=1.01,
    )
    fig.tight_layout()

    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"breakdown{suffix}.png"
    fig.savefig(filepath, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return filepath
