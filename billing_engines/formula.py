"""
Price change formula evaluation.

Pure functions with deterministic behavior. No I/O.

Discount rules carry a single-variable arithmetic formula such as
``@ * 0.1`` or ``@ * 0,15 + 5``.  The placeholder ``@`` stands for the
undiscounted charge amount.  Formulas are written by operators in either
international or German decimal notation.

Allowed:
  - Binary operators: +, -, *, /  (also the typographic ×, ÷ and −)
  - Unary sign: -x, +x
  - Parentheses
  - Decimal literals with ``.`` or ``,`` as the decimal separator
  - The placeholder ``@``

Rejected:
  - Names, calls, attribute access, powers, comparisons and everything else
    the Python grammar would otherwise accept.

Formulas are parsed with the standard ``ast`` module in ``eval`` mode and
walked under a fixed node whitelist.  Literals are read back from the
source text so that ``0.1`` is exactly ``Decimal("0.1")``; nothing ever
goes through binary float.
"""

from __future__ import annotations

import ast
import re
from decimal import Context, Decimal, DivisionByZero, InvalidOperation, localcontext

from billing_kernel.exceptions import FormulaEvaluationError

PLACEHOLDER = "@"

# Name the placeholder is rewritten to before parsing; not a valid
# identifier in operator-written formulas, which may not contain names.
_AMOUNT_NAME = "__amount__"

_TYPOGRAPHIC_OPERATORS = str.maketrans({"×": "*", "÷": "/", "−": "-"})

# A comma between two digits is a decimal separator (German notation).
_DECIMAL_COMMA = re.compile(r"(?<=\d),(?=\d)")

# Generous precision for intermediate results; callers round to scale.
_CONTEXT = Context(prec=34)


def normalize_formula(formula: str) -> str:
    """Rewrite operator-written notation into parseable form.

    Converts decimal commas to dots and typographic operators to their
    ASCII equivalents, and replaces the placeholder with an internal name.
    """
    text = formula.strip().translate(_TYPOGRAPHIC_OPERATORS)
    text = _DECIMAL_COMMA.sub(".", text)
    return text.replace(PLACEHOLDER, f" {_AMOUNT_NAME} ").strip()


def evaluate_formula(formula: str | None, amount: Decimal) -> Decimal:
    """Evaluate a price change formula with ``@`` bound to ``amount``.

    Args:
        formula: The raw formula as stored on the discount rule.
        amount: The undiscounted charge amount.

    Returns:
        The adjustment the formula yields, unrounded.

    Raises:
        FormulaEvaluationError: If the formula is empty, malformed, uses a
            disallowed construct or divides by zero.  The error carries the
            raw formula for diagnosis.
    """
    if formula is None or not formula.strip():
        raise FormulaEvaluationError(formula, "formula is empty")

    source = normalize_formula(formula)
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise FormulaEvaluationError(formula, f"syntax error: {e.msg}") from e
    except ValueError as e:
        raise FormulaEvaluationError(formula, str(e)) from e

    with localcontext(_CONTEXT) as ctx:
        ctx.traps[DivisionByZero] = True
        ctx.traps[InvalidOperation] = True
        try:
            return _evaluate(tree.body, source, formula, amount)
        except (DivisionByZero, InvalidOperation) as e:
            raise FormulaEvaluationError(formula, "division by zero or undefined result") from e


def _evaluate(node: ast.AST, source: str, formula: str, amount: Decimal) -> Decimal:
    """Recursively evaluate a whitelisted AST node."""

    if isinstance(node, ast.BinOp):
        left = _evaluate(node.left, source, formula, amount)
        right = _evaluate(node.right, source, formula, amount)
        if isinstance(node.op, ast.Add):
            return left + right
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            return left * right
        if isinstance(node.op, ast.Div):
            return left / right
        raise FormulaEvaluationError(
            formula, f"disallowed operator: {type(node.op).__name__}"
        )

    if isinstance(node, ast.UnaryOp):
        operand = _evaluate(node.operand, source, formula, amount)
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return operand
        raise FormulaEvaluationError(
            formula, f"disallowed unary operator: {type(node.op).__name__}"
        )

    if isinstance(node, ast.Name):
        if node.id == _AMOUNT_NAME:
            return amount
        raise FormulaEvaluationError(formula, f"unknown variable: {node.id}")

    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaEvaluationError(
                formula, f"disallowed literal: {node.value!r}"
            )
        literal = ast.get_source_segment(source, node)
        try:
            return Decimal(literal)
        except (InvalidOperation, TypeError) as e:
            raise FormulaEvaluationError(formula, f"invalid number: {literal!r}") from e

    raise FormulaEvaluationError(
        formula, f"disallowed expression: {type(node).__name__}"
    )
