"""
Infix parsing for symcas.

Three stages turn a string into a tree:

    tokenize("2(x+1)")    ->  flat Symbols, unary signs resolved
    to_postfix(symbols)   ->  postfix order (shunting-yard)
    build_tree(postfix)   ->  Expr

    parse(engine, "-3(-2^2*2)/2")
    # => Operation(DIV, (Operation(MUL, (-3, ...)), 2))

Grammar notes:
    - '**' is accepted as an alias for '^' and whitespace is ignored
    - '+'/'-' are signs when first, or after '(', '+', '-' or ','
    - '(' directly after an operand or ')' means multiplication: 2(3) = 2*3,
      and the product binds to the bracket: 6/2(3) = 6/(2*3)
    - 'name(' always starts a function call; arguments are comma separated
    - '?name' is a pattern variable, accepted only by parse_template
"""

import logging
from typing import Dict, List, Optional

from .errors import ErrorKind, SymError
from .expr import (
    Associativity, Constant, Expr, Function, Identifier, Operation,
    Operator, OperatorType, Symbol, SymbolKind, Variable, negate,
)
from .number import DIGITS, parse_number

logger = logging.getLogger(__name__)

# Tokens after which '+' and '-' are signs
SIGN_CONTEXT = frozenset("(+-,")

SEPARATOR = ","


# ============================================================
# Tokenizer
# ============================================================

def split_keep(text: str, separators) -> List[str]:
    """
    Split text on single-character separators, keeping the separators.

    Example:
        split_keep("12+x*(3)", "+*()") -> ["12", "+", "x", "*", "(", "3", ")"]
    """
    parts = []
    current = ''
    for c in text:
        if c in separators:
            if current:
                parts.append(current)
                current = ''
            parts.append(c)
        else:
            current += c
    if current:
        parts.append(current)
    return parts


def _is_name(text: str) -> bool:
    return bool(text) and all(c.isalnum() or c == '_' for c in text)


def classify(part: str, allow_identifiers: bool = False) -> Symbol:
    """Classify a non-operator run as a number, variable or pattern variable."""
    if part[0] in DIGITS or part[0] == '.':
        return Symbol.number(parse_number(part))
    if part[0] == '?':
        if allow_identifiers and _is_name(part[1:]):
            return Symbol(SymbolKind.IDENTIFIER, part[1:])
        raise SymError(ErrorKind.INVALID_OP, part)
    if part.isidentifier():
        return Symbol.variable(part)
    raise SymError(ErrorKind.INVALID_OP, part)


def tokenize(engine, text: str, allow_identifiers: bool = False) -> List[Symbol]:
    """
    Split an infix string into Symbols.

    Raises:
        SymError(NOT_A_NUMBER): malformed numeric literal
        SymError(INVALID_OP): unknown character or token
        SymError(INVALID_SIGN): operator where a sign is expected, e.g. "(*2)"
    """
    source = "".join(text.split()).replace("**", "^")
    custom = engine.operators
    separators = set("+-*/^()") | {SEPARATOR} | set(custom)

    parts = split_keep(source, separators)
    symbols = []
    for i, part in enumerate(parts):
        if part == SEPARATOR:
            symbols.append(Symbol(SymbolKind.SEPARATOR, SEPARATOR))
            continue
        if part not in separators:
            symbols.append(classify(part, allow_identifiers))
            continue

        op: OperatorType = custom[part] if part in custom else Operator.from_char(part)
        is_sign = i == 0 or parts[i - 1] in SIGN_CONTEXT
        if is_sign and op is Operator.ADD:
            op = Operator.POS
        elif is_sign and op is Operator.SUB:
            op = Operator.NEG
        elif is_sign and not op.is_parenthesis:
            raise SymError(ErrorKind.INVALID_SIGN, part)
        symbols.append(Symbol.operator(op))

    return symbols


# ============================================================
# Shunting-yard
# ============================================================

def _push_operator(stack: List[Symbol], postfix: List[Symbol], op: OperatorType) -> None:
    """Push an operator, first popping everything that binds at least as tightly."""
    # Prefix signs have no left operand, so nothing can be popped for them
    if not op.is_unary:
        while stack:
            top = stack[-1]
            if top.kind is not SymbolKind.OPERATOR or top.value.is_parenthesis:
                break
            top_op = top.value
            if (top_op.precedence > op.precedence
                    or (top_op.precedence == op.precedence
                        and op.associativity is Associativity.LEFT)):
                postfix.append(stack.pop())
            else:
                break
    stack.append(Symbol.operator(op))


def _pop_until_lparen(stack: List[Symbol], postfix: List[Symbol]) -> None:
    """Move operators to the output until '(' is on top of the stack."""
    while True:
        if not stack:
            raise SymError(ErrorKind.PARENTHESES_MISMATCH)
        if stack[-1].is_operator(Operator.LPAREN):
            return
        postfix.append(stack.pop())


def to_postfix(engine, symbols: List[Symbol]) -> List[Symbol]:
    """
    Reorder infix Symbols into postfix with the shunting-yard algorithm.

    Function names are held on the operator stack beneath their '(' and
    emitted with the argument count once the matching ')' is seen.

    Raises:
        SymError(PARENTHESES_MISMATCH): unbalanced parentheses
        SymError(INVALID_OP): ',' outside of a function call
    """
    if engine.debugging:
        logger.debug("To postfix: %s", " ".join(str(s) for s in symbols))

    postfix: List[Symbol] = []
    stack: List[Symbol] = []
    arg_counts: List[int] = []
    last_was_operand = False

    for i, symbol in enumerate(symbols):
        kind = symbol.kind

        if kind is SymbolKind.NUMBER or kind is SymbolKind.IDENTIFIER:
            postfix.append(symbol)
            last_was_operand = True

        elif kind is SymbolKind.VARIABLE:
            if i + 1 < len(symbols) and symbols[i + 1].is_operator(Operator.LPAREN):
                stack.append(Symbol.function(symbol.value))
                arg_counts.append(1)
                last_was_operand = False
            else:
                postfix.append(symbol)
                last_was_operand = True

        elif kind is SymbolKind.SEPARATOR:
            while stack and not stack[-1].is_operator(Operator.LPAREN):
                postfix.append(stack.pop())
            if len(stack) < 2 or stack[-2].kind is not SymbolKind.FUNCTION:
                raise SymError(ErrorKind.INVALID_OP, SEPARATOR)
            arg_counts[-1] += 1
            last_was_operand = False

        elif symbol.is_operator(Operator.LPAREN):
            # Implicit product, pushed without popping
            if last_was_operand:
                stack.append(Symbol.operator(Operator.MUL))
            stack.append(symbol)
            last_was_operand = False

        elif symbol.is_operator(Operator.RPAREN):
            _pop_until_lparen(stack, postfix)
            stack.pop()
            if stack and stack[-1].kind is SymbolKind.FUNCTION:
                name = stack.pop().value
                argc = arg_counts.pop()
                if symbols[i - 1].is_operator(Operator.LPAREN):
                    argc = 0
                postfix.append(Symbol.function(name, argc))
            last_was_operand = True

        else:
            _push_operator(stack, postfix, symbol.value)
            last_was_operand = False

    while stack:
        symbol = stack.pop()
        if symbol.kind is not SymbolKind.OPERATOR or symbol.value.is_parenthesis:
            raise SymError(ErrorKind.PARENTHESES_MISMATCH)
        postfix.append(symbol)

    if engine.debugging:
        logger.debug("Postfix: %s", " ".join(str(s) for s in postfix))

    return postfix


# ============================================================
# Tree builder
# ============================================================

def build_tree(
    engine,
    postfix: List[Symbol],
    names: Optional[Dict[str, int]] = None,
) -> Expr:
    """
    Consume a postfix Symbol list into a single Expr.

    Args:
        engine: supplies function arities and the maximum tree depth
        postfix: output of to_postfix
        names: pattern variable name -> id table; required when the
            postfix contains IDENTIFIER symbols, and extended in place

    Raises:
        SymError(STACK_EMPTY): an operator is missing operands
        SymError(UNKNOWN_FUNCTION): call of an unregistered function
        SymError(INVALID_FUNCTION_ARG_COUNT): call with the wrong arity
        SymError(STACK_NOT_LENGTH_ONE): operands left over, e.g. "(1)2"
        SymError(NESTING_TOO_DEEP): deeper than engine.max_depth
    """
    stack: List[Expr] = []
    depths: List[int] = []

    def push(expr: Expr, depth: int) -> None:
        if depth > engine.max_depth:
            raise SymError(ErrorKind.NESTING_TOO_DEEP, f"depth > {engine.max_depth}")
        stack.append(expr)
        depths.append(depth)

    def pop():
        if not stack:
            raise SymError(ErrorKind.STACK_EMPTY)
        return stack.pop(), depths.pop()

    for symbol in postfix:
        kind = symbol.kind

        if kind is SymbolKind.NUMBER:
            push(Constant(symbol.value), 1)

        elif kind is SymbolKind.VARIABLE:
            push(Variable(symbol.value), 1)

        elif kind is SymbolKind.IDENTIFIER:
            if names is None:
                raise SymError(ErrorKind.INVALID_OP, f"?{symbol.value}")
            push(Identifier(names.setdefault(symbol.value, len(names))), 1)

        elif kind is SymbolKind.FUNCTION:
            name = symbol.value
            arity = engine.arity(name)
            if arity is None:
                raise SymError(ErrorKind.UNKNOWN_FUNCTION, name)
            if symbol.argc != arity or len(stack) < arity:
                raise SymError(
                    ErrorKind.INVALID_FUNCTION_ARG_COUNT,
                    f"{name} takes {arity} argument(s), got {symbol.argc}",
                )
            start = len(stack) - arity
            args = stack[start:]
            depth = max(depths[start:], default=0) + 1
            del stack[start:]
            del depths[start:]
            push(Function(name, tuple(args)), depth)

        elif kind is SymbolKind.OPERATOR:
            op = symbol.value
            if op.is_parenthesis:
                raise SymError(ErrorKind.PARENTHESES_MISMATCH)
            if op is Operator.POS:
                operand, depth = pop()
                push(operand, depth)
            elif op is Operator.NEG:
                operand, depth = pop()
                if isinstance(operand, Constant):
                    push(negate(operand), depth)
                else:
                    push(negate(operand), depth + 1)
            else:
                right, right_depth = pop()
                left, left_depth = pop()
                push(Operation(op, (left, right)), max(left_depth, right_depth) + 1)

        else:
            raise SymError(ErrorKind.INVALID_OP, str(symbol))

    if len(stack) != 1:
        raise SymError(ErrorKind.STACK_NOT_LENGTH_ONE, f"{len(stack)} items left")

    return stack[0]


# ============================================================
# Entry points
# ============================================================

def parse(engine, text: str) -> Expr:
    """
    Parse an infix expression string into an Expr tree.

    Examples:
        parse(engine, "43*(4*(81/9))")
        parse(engine, "log(2, x) + sqrt(y)")
    """
    symbols = tokenize(engine, text)
    return build_tree(engine, to_postfix(engine, symbols))


def parse_template(engine, text: str, names: Dict[str, int]) -> Expr:
    """
    Parse a rule template where '?name' marks a pattern variable.

    Each new name is assigned the next free id in `names`, so the matcher
    and replacement of one rule share ids when parsed with the same dict.

    Example:
        names = {}
        parse_template(engine, "?x + 0", names)   # ?x -> Identifier(0)
    """
    symbols = tokenize(engine, text, allow_identifiers=True)
    return build_tree(engine, to_postfix(engine, symbols), names)
