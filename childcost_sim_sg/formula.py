"""Whitelisted arithmetic formulas over named profile fields.

Formula text is parsed with ``ast`` and converted into a small closed tree
(numbers, whitelisted names, + - * /, unary minus, min/max). Anything else
is rejected when the formula is parsed; evaluation never executes code.
"""

import ast
import operator
from dataclasses import dataclass
from typing import Callable, Mapping

from childcost_sim_sg.params import Profile

ALLOWED_FIELDS = (
    "income_father",
    "income_mother",
    "household_income",
    "disposable_income_father",
    "disposable_income_mother",
    "family_savings",
    "child_order",
)

_BIN_OPS: dict[type, str] = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
}
_FUNCTIONS: dict[str, Callable[..., float]] = {"min": min, "max": max}


class FormulaError(ValueError):
    """Formula text uses syntax or names outside the whitelist."""


@dataclass(frozen=True)
class Num:
    value: float


@dataclass(frozen=True)
class FieldRef:
    name: str


@dataclass(frozen=True)
class Neg:
    operand: "Expr"


@dataclass(frozen=True)
class BinOp:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Call:
    func: str
    args: tuple["Expr", ...]


Expr = Num | FieldRef | Neg | BinOp | Call


def parse_formula(text: str) -> Expr:
    """Parse formula text into an expression tree. Raises FormulaError."""
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as e:
        raise FormulaError(f"Invalid formula {text!r}: {e.msg}") from e
    return _convert(tree.body, text)


def _convert(node: ast.AST, text: str) -> Expr:
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return Num(float(node.value))
    if isinstance(node, ast.Name):
        if node.id not in ALLOWED_FIELDS:
            raise FormulaError(f"Unknown field {node.id!r} in formula {text!r}")
        return FieldRef(node.id)
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        operand = _convert(node.operand, text)
        return Neg(operand) if isinstance(node.op, ast.USub) else operand
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        return BinOp(
            _BIN_OPS[type(node.op)],
            _convert(node.left, text),
            _convert(node.right, text),
        )
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and not node.keywords
        and len(node.args) >= 2
        and not any(isinstance(arg, ast.Starred) for arg in node.args)
    ):
        return Call(node.func.id, tuple(_convert(arg, text) for arg in node.args))
    raise FormulaError(f"Unsupported expression {ast.dump(node)} in formula {text!r}")


def profile_fields(profile: Profile) -> dict[str, float]:
    """Values of the whitelisted names for a profile."""
    return {
        "income_father": profile.gross_income_father,
        "income_mother": profile.gross_income_mother,
        "household_income": profile.household_gross_income,
        "disposable_income_father": profile.disposable_income_father,
        "disposable_income_mother": profile.disposable_income_mother,
        "family_savings": profile.family_savings,
        "child_order": float(profile.child_order),
    }


def evaluate(expr: Expr, fields: Mapping[str, float]) -> float:
    """Evaluate a parsed formula. Division by zero yields 0."""
    if isinstance(expr, Num):
        return expr.value
    if isinstance(expr, FieldRef):
        return float(fields.get(expr.name, 0.0))
    if isinstance(expr, Neg):
        return -evaluate(expr.operand, fields)
    if isinstance(expr, BinOp):
        left = evaluate(expr.left, fields)
        right = evaluate(expr.right, fields)
        if expr.op == "/":
            return left / right if right != 0 else 0.0
        return _ARITHMETIC[expr.op](left, right)
    if isinstance(expr, Call):
        return float(_FUNCTIONS[expr.func](*(evaluate(a, fields) for a in expr.args)))
    raise TypeError(f"Not a formula expression: {expr!r}")


_ARITHMETIC = {"+": operator.add, "-": operator.sub, "*": operator.mul}
