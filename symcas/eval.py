"""
Evaluator for symcas.

Folds every subtree whose operands are constants and leaves the rest
symbolic:

    eval_tree(engine, parse(engine, "2*3 + x"))   # => 6 + x
    eval_tree(engine, parse(engine, "1/3 + 1/6")) # => 1/2 (exact)

With force=True every constant is converted to floating point first:

    eval_tree(engine, parse(engine, "1/4 + x"), force=True)  # => 0.25 + x
"""

import logging
import math

from .errors import ErrorKind, SymError
from .expr import (
    Constant, CustomOperator, Expr, Function, Operation, Operator,
    OperatorType, negate,
)
from .number import Irrational, Number

logger = logging.getLogger(__name__)


def apply_operator(op: OperatorType, left: Number, right: Number) -> Number:
    """
    Combine two Numbers with a binary operator.

    Raises:
        SymError(UNDEFINED): division by zero, or a result leaving the real
            domain or overflowing to infinity
    """
    if isinstance(op, CustomOperator) and op.implementation is None:
        raise SymError(ErrorKind.INVALID_OP, op.symbol)
    try:
        if op is Operator.ADD:
            result = left + right
        elif op is Operator.SUB:
            result = left - right
        elif op is Operator.MUL:
            result = left * right
        elif op is Operator.DIV:
            result = left / right
        elif op is Operator.POW:
            result = left.power(right)
        elif isinstance(op, CustomOperator):
            result = op.implementation(left, right)
        else:
            raise SymError(ErrorKind.INVALID_OP, op.symbol)
    except (ZeroDivisionError, ValueError, OverflowError) as e:
        raise SymError(ErrorKind.UNDEFINED, f"{left} {op.symbol} {right}: {e}") from None
    if not math.isfinite(float(result)):
        raise SymError(ErrorKind.UNDEFINED, f"{left} {op.symbol} {right} = {result}")
    return result


def _to_float(expr: Expr) -> Expr:
    if isinstance(expr, Constant) and not isinstance(expr.value, Irrational):
        return Constant(Irrational(float(expr.value)))
    return expr


def eval_tree(engine, expr: Expr, force: bool = False) -> Expr:
    """
    Evaluate an expression tree bottom-up.

    Leaves evaluate to themselves, functions are dispatched to the engine's
    function table, and operations with constant operands are folded. When
    force is set, constants and every folded result are Irrational.

    Raises:
        SymError(UNKNOWN_FUNCTION): function missing from the engine
        SymError(INVALID_FUNCTION_ARG_COUNT): call with the wrong arity
        SymError(UNDEFINED): domain errors and division by zero
    """
    if isinstance(expr, Function):
        entry = engine.functions.get(expr.name)
        if entry is None:
            raise SymError(ErrorKind.UNKNOWN_FUNCTION, expr.name)
        arity, handler = entry
        if len(expr.args) != arity:
            raise SymError(
                ErrorKind.INVALID_FUNCTION_ARG_COUNT,
                f"{expr.name} takes {arity} argument(s), got {len(expr.args)}",
            )
        args = tuple(eval_tree(engine, arg, force) for arg in expr.args)
        result = handler(args)
        if force:
            result = _to_float(result)
        if engine.debugging and isinstance(result, Constant):
            logger.debug("Evaluating, %s = %s", Function(expr.name, args), result)
        return result

    if not isinstance(expr, Operation):
        return _to_float(expr) if force else expr

    if expr.op is Operator.POS:
        return eval_tree(engine, expr.left, force)
    if expr.op is Operator.NEG:
        return negate(eval_tree(engine, expr.left, force))

    left = eval_tree(engine, expr.left, force)
    right = eval_tree(engine, expr.right, force)
    if isinstance(left, Constant) and isinstance(right, Constant):
        result = Constant(apply_operator(expr.op, left.value, right.value))
        if force:
            result = _to_float(result)
        if engine.debugging:
            logger.debug("Evaluating, %s = %s", Operation(expr.op, (left, right)), result)
        return result
    return Operation(expr.op, (left, right))
