"""TOML config loader with CLI > config > default resolution."""

import argparse
import sys
import tomllib
from pathlib import Path
from typing import Callable

from childcost_sim_sg.events import DELIVERY, POST_SECONDARY_PATH, PRIMARY_ENRICHMENT
from childcost_sim_sg.params import Profile

DEFAULT_CONFIG_PATH = Path("config.toml")

DEFAULTS = {
    "residency_father": "CITIZEN",
    "residency_mother": "CITIZEN",
    "income_type": "DUAL_INCOME",
    "father_income": 6000.0,
    "mother_income": 4500.0,
    "father_disposable": 4800.0,
    "mother_disposable": 3600.0,
    "savings": 50000.0,
    "child_name": "Baby",
    "child_gender": "FEMALE",
    "realism": "REALISTIC",
    "child_order": 1,
    "birth_year": 2025,
    "delivery": "public",
    "enrichment": "none",
    "post_secondary": "jc",
    "index_income": False,
    "data_dir": "",
    "cache": "",
}

# Keys accepted inside a [decisions] table
_DECISION_KEYS = ("delivery", "enrichment", "post_secondary")


def load_config(path: Path | None = None) -> dict:
    """Load TOML config file. Returns empty dict if file doesn't exist."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        print(f"Failed to read config file {path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    # Flatten [decisions] and [child] tables into top-level keys
    decisions = raw.pop("decisions", {})
    if isinstance(decisions, dict):
        for key in _DECISION_KEYS:
            if key in decisions:
                raw.setdefault(key, decisions[key])
    child = raw.pop("child", {})
    if isinstance(child, dict):
        for key, value in child.items():
            target = key if key.startswith("child_") or key == "birth_year" else f"child_{key}"
            raw.setdefault(target, value)
    # Enum-valued keys are case-insensitive in the file
    for key in ("residency_father", "residency_mother", "income_type", "child_gender", "realism"):
        if key in raw:
            raw[key] = str(raw[key]).upper()
    return raw


def create_parser(description: str) -> argparse.ArgumentParser:
    """Create argparse parser with shared simulation flags."""
    d = DEFAULTS
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", type=Path, default=None, help="Config file path (default: config.toml)")
    parser.add_argument("--residency-father", type=str.upper, default=None, choices=["CITIZEN", "PR", "FOREIGNER"], help=f"Father's residency (default: {d['residency_father']})")
    parser.add_argument("--residency-mother", type=str.upper, default=None, choices=["CITIZEN", "PR", "FOREIGNER"], help=f"Mother's residency (default: {d['residency_mother']})")
    parser.add_argument("--income-type", type=str.upper, default=None, choices=["DUAL_INCOME", "SINGLE_INCOME"], help=f"Household income type (default: {d['income_type']})")
    parser.add_argument("--father-income", type=float, default=None, help=f"Father's gross monthly income, SGD (default: {d['father_income']:.0f})")
    parser.add_argument("--mother-income", type=float, default=None, help=f"Mother's gross monthly income, SGD (default: {d['mother_income']:.0f})")
    parser.add_argument("--father-disposable", type=float, default=None, help=f"Father's disposable monthly income, SGD (default: {d['father_disposable']:.0f})")
    parser.add_argument("--mother-disposable", type=float, default=None, help=f"Mother's disposable monthly income, SGD (default: {d['mother_disposable']:.0f})")
    parser.add_argument("--savings", type=float, default=None, help=f"Family savings at birth, SGD (default: {d['savings']:.0f})")
    parser.add_argument("--child-name", type=str, default=None, help=f"Child's name (default: {d['child_name']})")
    parser.add_argument("--child-gender", type=str.upper, default=None, choices=["MALE", "FEMALE"], help=f"Child's gender (default: {d['child_gender']})")
    parser.add_argument("--realism", type=str.upper, default=None, choices=["OPTIMISTIC", "REALISTIC", "CONSERVATIVE"], help=f"Discretionary cost tier (default: {d['realism']})")
    parser.add_argument("--child-order", type=int, default=None, help=f"Birth order of this child, 1 = first (default: {d['child_order']})")
    parser.add_argument("--birth-year", type=int, default=None, help=f"Calendar year of birth (default: {d['birth_year']})")
    parser.add_argument("--delivery", type=str, default=None, choices=["public", "private"], help=f"Delivery hospital (default: {d['delivery']})")
    parser.add_argument("--enrichment", type=str, default=None, choices=["high", "low", "none"], help=f"Primary enrichment commitment (default: {d['enrichment']})")
    parser.add_argument("--post-secondary", type=str, default=None, choices=["jc", "poly"], help=f"Post-secondary path (default: {d['post_secondary']})")
    parser.add_argument("--index-income", action="store_true", default=None, help="Grow disposable income with CPI instead of holding it flat")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory of pre-fetched open-data JSON files")
    parser.add_argument("--cache", type=str, default=None, help="JSON file persisting fetched data between runs")
    return parser


def build_profile(r: dict) -> Profile:
    """Build a Profile from a resolved config dict."""
    return Profile.from_dict({
        "residency_father": r["residency_father"],
        "residency_mother": r["residency_mother"],
        "household_income_type": r["income_type"],
        "gross_income_father": float(r["father_income"]),
        "gross_income_mother": float(r["mother_income"]),
        "disposable_income_father": float(r["father_disposable"]),
        "disposable_income_mother": float(r["mother_disposable"]),
        "family_savings": float(r["savings"]),
        "child_name": str(r["child_name"]),
        "child_gender": r["child_gender"],
        "realism": r["realism"],
        "child_order": int(r["child_order"]),
        "birth_year": int(r["birth_year"]),
    })


def build_decisions(r: dict) -> dict[str, str]:
    """Map resolved config keys to event decision keys."""
    return {
        DELIVERY: str(r["delivery"]).lower(),
        PRIMARY_ENRICHMENT: str(r["enrichment"]).lower(),
        POST_SECONDARY_PATH: str(r["post_secondary"]).lower(),
    }


def parse_args(
    description: str,
    add_args_fn: Callable[[argparse.ArgumentParser], None] | None = None,
    argv: list[str] | None = None,
) -> tuple[dict, argparse.Namespace]:
    """Parse CLI args, load config, resolve values.

    Returns (resolved_dict, namespace).
    """
    parser = create_parser(description)
    if add_args_fn:
        add_args_fn(parser)
    args = parser.parse_args(argv)
    config = load_config(args.config)
    return resolve(args, config), args


def resolve(args: argparse.Namespace, config: dict) -> dict:
    """Resolve values with priority: CLI flag > config.toml > hardcoded default."""
    resolved = {}
    for key, default in DEFAULTS.items():
        cli_val = getattr(args, key, None)
        resolved[key] = cli_val if cli_val is not None else config.get(key, default)
    return resolved
