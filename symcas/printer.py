"""
Printers for symcas expression trees.

    print_infix(e)     2 * (x + 1) ^ 2        parses back to an equal tree
    print_postfix(e)   2 x 1 + 2 ^ *
    print_latex(e)     2 \\cdot \\left(x + 1\\right)^{2}
    print_debug(e)     * -> [ 2, ^ -> [ + -> [ x, 1 ], 2 ] ]
"""

import math
from decimal import Decimal
from typing import Optional, Sequence

from .expr import (
    Associativity, Constant, Expr, Function, Identifier, Operation, Operator,
    Variable,
)
from .number import Number, Rational

# Precedence of nodes that never need brackets
ATOMIC = 100
SIGN_PRECEDENCE = Operator.NEG.precedence

LATEX_FUNCTIONS = {
    "ln": r"\ln",
    "sin": r"\sin",
    "cos": r"\cos",
    "tan": r"\tan",
    "asin": r"\arcsin",
    "acos": r"\arccos",
    "atan": r"\arctan",
}


def format_float(value: float) -> str:
    """Positional notation that the tokenizer reads back, e.g. 1e-05 -> 0.00001."""
    if math.isnan(value) or math.isinf(value):
        return repr(value)
    text = format(Decimal(repr(value)), 'f')
    if '.' not in text:
        text += '.0'
    return text


def format_number(value: Number) -> str:
    if isinstance(value, Rational):
        if value.is_integer():
            return str(value.numerator)
        return f"({value.numerator}/{value.denominator})"
    return format_float(float(value))


def _is_signed(expr: Expr) -> bool:
    if isinstance(expr, Constant):
        return expr.value.is_negative() and not _is_fraction(expr)
    return isinstance(expr, Operation) and expr.op.is_unary


def _is_fraction(expr: Expr) -> bool:
    value = expr.value
    return isinstance(value, Rational) and not value.is_integer()


def precedence(expr: Expr) -> int:
    """Binding strength of a node when printed; leaves are atomic."""
    if isinstance(expr, Operation):
        return expr.op.precedence
    if _is_signed(expr):
        return SIGN_PRECEDENCE
    return ATOMIC


def _leading_sign(expr: Expr) -> bool:
    """True when the unbracketed text of expr starts with a sign."""
    while isinstance(expr, Operation) and not expr.op.is_unary:
        if _needs_brackets(expr.left, expr, right=False):
            return False
        expr = expr.left
    return _is_signed(expr)


def _needs_brackets(child: Expr, parent: Operation, right: bool) -> bool:
    child_prec = precedence(child)
    parent_prec = parent.op.precedence
    if right:
        # A sign after a binary operator would not tokenize as one
        if _leading_sign(child):
            return True
        return (child_prec < parent_prec
                or (child_prec == parent_prec
                    and parent.op.associativity is Associativity.LEFT))
    return (child_prec < parent_prec
            or (child_prec == parent_prec
                and parent.op.associativity is Associativity.RIGHT))


# ============================================================
# Infix
# ============================================================

def print_infix(expr: Expr, names: Optional[Sequence[str]] = None) -> str:
    """
    Infix form with the minimal brackets needed to parse back to the same tree.

    Args:
        expr: Expression to print
        names: Pattern variable names indexed by Identifier id; without
            them identifiers print as ?0, ?1, ...
    """
    def loop(e: Expr) -> str:
        if isinstance(e, Constant):
            return format_number(e.value)
        if isinstance(e, Variable):
            return e.name
        if isinstance(e, Identifier):
            if names is not None and e.id < len(names):
                return f"?{names[e.id]}"
            return f"?{e.id}"
        if isinstance(e, Function):
            return f"{e.name}({', '.join(loop(a) for a in e.args)})"
        if isinstance(e, Operation):
            if e.op.is_unary:
                operand = loop(e.left)
                if precedence(e.left) < SIGN_PRECEDENCE:
                    operand = f"({operand})"
                return f"{e.op.symbol}{operand}"
            left = loop(e.left)
            if _needs_brackets(e.left, e, right=False):
                left = f"({left})"
            right = loop(e.right)
            if _needs_brackets(e.right, e, right=True):
                right = f"({right})"
            return f"{left} {e.op.symbol} {right}"
        return str(e)

    return loop(expr)


# ============================================================
# Postfix
# ============================================================

def print_postfix(expr: Expr) -> str:
    """Space separated postfix; unary signs print as pos/neg, calls as name()."""
    tokens = []

    def loop(e: Expr):
        if isinstance(e, Constant):
            tokens.append(format_number(e.value))
        elif isinstance(e, Variable):
            tokens.append(e.name)
        elif isinstance(e, Identifier):
            tokens.append(f"?{e.id}")
        elif isinstance(e, Function):
            for arg in e.args:
                loop(arg)
            tokens.append(f"{e.name}()")
        elif isinstance(e, Operation):
            for arg in e.args:
                loop(arg)
            tokens.append(e.op.value if e.op.is_unary else e.op.symbol)

    loop(expr)
    return " ".join(tokens)


# ============================================================
# LaTeX
# ============================================================

def _latex_number(value: Number) -> str:
    if isinstance(value, Rational):
        if value.is_integer():
            return str(value.numerator)
        sign = "-" if value.is_negative() else ""
        return f"{sign}\\frac{{{abs(value.numerator)}}}{{{value.denominator}}}"
    return format_float(float(value))


def print_latex(expr: Expr) -> str:
    r"""
    LaTeX math-mode markup.

    Examples:
        1/2 + x      ->  \frac{1}{2} + x
        sqrt(x)      ->  \sqrt{x}
        log(2, x)    ->  \log_{2}\left(x\right)
    """
    def group(text: str) -> str:
        return f"\\left({text}\\right)"

    def loop(e: Expr) -> str:
        if isinstance(e, Constant):
            return _latex_number(e.value)
        if isinstance(e, Variable):
            return e.name
        if isinstance(e, Identifier):
            return f"?{e.id}"
        if isinstance(e, Function):
            return function(e)
        if isinstance(e, Operation):
            return operation(e)
        return str(e)

    def function(e: Function) -> str:
        args = [loop(a) for a in e.args]
        if e.name == "sqrt" and len(args) == 1:
            return f"\\sqrt{{{args[0]}}}"
        if e.name == "root" and len(args) == 2:
            return f"\\sqrt[{args[0]}]{{{args[1]}}}"
        if e.name == "log" and len(args) == 2:
            return f"\\log_{{{args[0]}}}{group(args[1])}"
        if e.name in LATEX_FUNCTIONS:
            return f"{LATEX_FUNCTIONS[e.name]}{group(', '.join(args))}"
        return f"\\operatorname{{{e.name}}}{group(', '.join(args))}"

    def operation(e: Operation) -> str:
        if e.op.is_unary:
            operand = loop(e.left)
            if precedence(e.left) < SIGN_PRECEDENCE:
                operand = group(operand)
            return f"{e.op.symbol}{operand}"

        if e.op is Operator.DIV:
            return f"\\frac{{{loop(e.left)}}}{{{loop(e.right)}}}"

        if e.op is Operator.POW:
            base = loop(e.left)
            if precedence(e.left) != ATOMIC or (isinstance(e.left, Constant)
                                                 and _is_fraction(e.left)):
                base = group(base)
            return f"{{{base}}}^{{{loop(e.right)}}}"

        left = loop(e.left)
        if _needs_brackets(e.left, e, right=False):
            left = group(left)
        right = loop(e.right)
        if _needs_brackets(e.right, e, right=True):
            right = group(right)
        symbol = "\\cdot" if e.op is Operator.MUL else e.op.symbol
        return f"{left} {symbol} {right}"

    return loop(expr)


# ============================================================
# Debug
# ============================================================

def print_debug(expr: Expr) -> str:
    """Tree dump: operations as `op -> [ children ]`, identifiers as \\id\\."""
    if isinstance(expr, Constant):
        return str(expr.value)
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, Identifier):
        return f"\\{expr.id}\\"
    if isinstance(expr, Function):
        return f"{expr.name} -> [ {', '.join(print_debug(a) for a in expr.args)} ]"
    if isinstance(expr, Operation):
        if expr.op.is_unary:
            return f"{expr.op.symbol}({print_debug(expr.left)})"
        return f"{expr.op.symbol} -> [ {print_debug(expr.left)}, {print_debug(expr.right)} ]"
    return repr(expr)
