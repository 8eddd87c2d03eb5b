"""
Expression types for symcas.

Operators, the flat Symbol tokens that travel between the tokenizer and the
tree builder, and the immutable Expr tree:

    Constant(Rational(2))                       2
    Variable("x")                               x
    Function("sin", (Variable("x"),))           sin(x)
    Operation(Operator.ADD, (x, Constant(...))) x + 1
    Identifier(0)                               ?0 (rule templates only)

Trees can also be built with Python operators:

    x = Variable("x")
    x * 2 + 1   # => Operation(ADD, (Operation(MUL, (x, 2)), 1))
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

from .errors import ErrorKind, SymError
from .number import Number, NumericType, Rational


class Associativity(Enum):
    LEFT = "left"
    RIGHT = "right"


class Operator(Enum):
    """Built-in operators. POS and NEG are the unary signs."""
    POS = "pos"
    NEG = "neg"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    POW = "pow"
    LPAREN = "lparen"
    RPAREN = "rparen"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @property
    def precedence(self) -> Optional[int]:
        """Binding strength; None for parentheses."""
        return _PRECEDENCE.get(self)

    @property
    def associativity(self) -> Optional[Associativity]:
        if self.is_parenthesis:
            return None
        if self in (Operator.POW, Operator.POS, Operator.NEG):
            return Associativity.RIGHT
        return Associativity.LEFT

    @property
    def is_parenthesis(self) -> bool:
        return self in (Operator.LPAREN, Operator.RPAREN)

    @property
    def is_unary(self) -> bool:
        return self in (Operator.POS, Operator.NEG)

    @property
    def arity(self) -> int:
        if self.is_parenthesis:
            return 0
        return 1 if self.is_unary else 2

    @classmethod
    def from_char(cls, c: str) -> 'Operator':
        """Binary operator or parenthesis for a character."""
        try:
            return _FROM_CHAR[c]
        except KeyError:
            raise SymError(ErrorKind.INVALID_OP, c) from None

    @staticmethod
    def is_operator(c: str) -> bool:
        return c in _FROM_CHAR


_SYMBOLS = {
    Operator.POS: "+",
    Operator.NEG: "-",
    Operator.ADD: "+",
    Operator.SUB: "-",
    Operator.MUL: "*",
    Operator.DIV: "/",
    Operator.POW: "^",
    Operator.LPAREN: "(",
    Operator.RPAREN: ")",
}

_PRECEDENCE = {
    Operator.POS: 4,
    Operator.NEG: 4,
    Operator.ADD: 2,
    Operator.SUB: 2,
    Operator.MUL: 3,
    Operator.DIV: 3,
    Operator.POW: 5,
}

_FROM_CHAR = {
    "+": Operator.ADD,
    "-": Operator.SUB,
    "*": Operator.MUL,
    "/": Operator.DIV,
    "^": Operator.POW,
    "(": Operator.LPAREN,
    ")": Operator.RPAREN,
}

# Characters that can never be registered as a custom operator
RESERVED_CHARS = frozenset("+-*/^(),.?_")


@dataclass(frozen=True)
class CustomOperator:
    """
    A user-registered binary operator.

    The implementation receives two Numbers and returns a Number:

        modulo = CustomOperator("%", 3, Associativity.LEFT,
                                lambda a, b: Number.of(float(a) % float(b)))
    """
    symbol: str
    precedence: int
    associativity: Associativity = Associativity.LEFT
    implementation: Callable[[Number, Number], Number] = field(
        default=None, compare=False, repr=False)

    is_parenthesis = False
    is_unary = False
    arity = 2


OperatorType = Union[Operator, CustomOperator]


class SymbolKind(Enum):
    NUMBER = "number"
    VARIABLE = "variable"
    FUNCTION = "function"
    OPERATOR = "operator"
    IDENTIFIER = "identifier"
    SEPARATOR = "separator"


@dataclass(frozen=True)
class Symbol:
    """
    A flat token between tokenizing and tree building.

    FUNCTION symbols in postfix carry the number of arguments the parser
    counted between the call's parentheses.
    """
    kind: SymbolKind
    value: Any = None
    argc: int = 0

    @classmethod
    def number(cls, value: Number) -> 'Symbol':
        return cls(SymbolKind.NUMBER, value)

    @classmethod
    def variable(cls, name: str) -> 'Symbol':
        return cls(SymbolKind.VARIABLE, name)

    @classmethod
    def function(cls, name: str, argc: int = 0) -> 'Symbol':
        return cls(SymbolKind.FUNCTION, name, argc)

    @classmethod
    def operator(cls, op: OperatorType) -> 'Symbol':
        return cls(SymbolKind.OPERATOR, op)

    def is_operator(self, op: OperatorType) -> bool:
        return self.kind is SymbolKind.OPERATOR and self.value == op

    def __str__(self) -> str:
        if self.kind is SymbolKind.NUMBER:
            number = self.value
            if isinstance(number, Rational) and not number.is_integer():
                return f"({number})"
            return str(number)
        if self.kind is SymbolKind.FUNCTION:
            return f"{self.value}()"
        if self.kind is SymbolKind.OPERATOR:
            if self.value in (Operator.POS, Operator.NEG):
                return self.value.value
            return self.value.symbol
        if self.kind is SymbolKind.IDENTIFIER:
            return f"?{self.value}"
        if self.kind is SymbolKind.SEPARATOR:
            return ","
        return str(self.value)


# ============================================================
# Expression tree
# ============================================================

class Expr:
    """Base class of all tree nodes. Nodes are immutable."""

    __slots__ = ()

    @classmethod
    def parse(cls, engine, text: str) -> 'Expr':
        """Parse infix text with the given engine."""
        return engine.parse(text)

    def eval(self, engine) -> 'Expr':
        """Fold constant subtrees; see symcas.eval."""
        return engine.eval(self)

    def evalf(self, engine) -> 'Expr':
        """Like eval, but every constant comes out as a float."""
        return engine.evalf(self)

    def simplify(self, engine) -> 'Expr':
        """Rewrite the root with the engine's rules until nothing matches."""
        return engine.simplify(self)

    def to_number(self, engine) -> Number:
        """Evaluate and return the resulting Number."""
        result = engine.eval(self)
        if not isinstance(result, Constant):
            raise SymError(ErrorKind.INCONVERTIBLE, str(result))
        return result.value

    @property
    def children(self) -> Tuple['Expr', ...]:
        return ()

    def print(self) -> str:
        from .printer import print_infix
        return print_infix(self)

    def print_postfix(self) -> str:
        from .printer import print_postfix
        return print_postfix(self)

    def print_latex(self) -> str:
        from .printer import print_latex
        return print_latex(self)

    def print_debug(self) -> str:
        from .printer import print_debug
        return print_debug(self)

    def __str__(self) -> str:
        return self.print()

    # Python operators build trees, folding Constant operands like
    # the evaluator does (except for powers).

    def __add__(self, other):
        return _binary(Operator.ADD, self, to_expr(other))

    def __radd__(self, other):
        return _binary(Operator.ADD, to_expr(other), self)

    def __sub__(self, other):
        return _binary(Operator.SUB, self, to_expr(other))

    def __rsub__(self, other):
        return _binary(Operator.SUB, to_expr(other), self)

    def __mul__(self, other):
        return _binary(Operator.MUL, self, to_expr(other))

    def __rmul__(self, other):
        return _binary(Operator.MUL, to_expr(other), self)

    def __truediv__(self, other):
        return _binary(Operator.DIV, self, to_expr(other))

    def __rtruediv__(self, other):
        return _binary(Operator.DIV, to_expr(other), self)

    def __pow__(self, other):
        return Operation(Operator.POW, (self, to_expr(other)))

    def __rpow__(self, other):
        return Operation(Operator.POW, (to_expr(other), self))

    def __neg__(self):
        return negate(self)

    def __pos__(self):
        return self


@dataclass(frozen=True)
class Constant(Expr):
    value: Number

    def __float__(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Variable(Expr):
    name: str


@dataclass(frozen=True)
class Identifier(Expr):
    """Pattern variable placeholder used inside rule templates."""
    id: int


@dataclass(frozen=True)
class Function(Expr):
    name: str
    args: Tuple[Expr, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'args', tuple(self.args))

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self.args


@dataclass(frozen=True)
class Operation(Expr):
    op: OperatorType
    args: Tuple[Expr, ...]

    def __post_init__(self):
        args = tuple(self.args)
        object.__setattr__(self, 'args', args)
        if self.op.is_parenthesis:
            raise SymError(ErrorKind.INVALID_OP, self.op.symbol)
        if len(args) != self.op.arity:
            raise SymError(
                ErrorKind.INVALID_OP,
                f"{self.op.symbol} takes {self.op.arity} operand(s), got {len(args)}",
            )

    @property
    def children(self) -> Tuple[Expr, ...]:
        return self.args

    @property
    def left(self) -> Expr:
        return self.args[0]

    @property
    def right(self) -> Expr:
        return self.args[-1]


def to_expr(value: Union[Expr, Number, NumericType, str]) -> Expr:
    """
    Convert a Python value into an Expr.

    Examples:
        to_expr(2)      -> Constant(Rational(2, 1))
        to_expr(2.5)    -> Constant(Irrational(2.5))
        to_expr("x")    -> Variable("x")
    """
    if isinstance(value, Expr):
        return value
    if isinstance(value, Number):
        return Constant(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Constant(Number.of(value))
    if isinstance(value, str):
        return Variable(value)
    raise TypeError(f"cannot convert {type(value).__name__} to an Expr")


def negate(expr: Expr) -> Expr:
    """Arithmetic negation, folded for constants."""
    if isinstance(expr, Constant):
        return Constant(-expr.value)
    return Operation(Operator.NEG, (expr,))


def _binary(op: Operator, left: Expr, right: Expr) -> Expr:
    if isinstance(left, Constant) and isinstance(right, Constant):
        if op is Operator.ADD:
            return Constant(left.value + right.value)
        if op is Operator.SUB:
            return Constant(left.value - right.value)
        if op is Operator.MUL:
            return Constant(left.value * right.value)
        if op is Operator.DIV and not right.value.is_zero():
            return Constant(left.value / right.value)
    return Operation(op, (left, right))
