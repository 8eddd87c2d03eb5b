"""
Engine for symcas.

An Engine bundles everything parsing, evaluation and simplification are
configured by: the function table, custom operators, the rule table, the
debug flag and the maximum tree depth. Engines are immutable; every
with_* call returns a new Engine:

    engine = Engine().with_functions().with_debugging()

    expr = engine.parse("2 * sin(0) + x * x")
    engine.eval(expr)          # => 0 + x * x
    engine.simplify(expr)      # root-only rewriting with the rule table
    engine("x + 0")            # => x   (parse + simplify)

Tracing:
    result, trace = engine.simplify(expr, trace=True)
    print(trace.format("rules"))
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Union

from .errors import SymError
from .eval import eval_tree
from .expr import RESERVED_CHARS, Associativity, CustomOperator, Expr
from .functions import BUILTIN_FUNCTIONS, FunctionHandler, FunctionTable
from .number import Number
from .parse import parse, parse_template
from .rules import (
    default_rules, format_rule, load_rules_from_dsl, load_rules_from_file,
    rules_to_json,
)
from .simplifier import Rule, Simplifier, match as _match_internal, wrap_bindings

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 512


class Engine:
    """
    Immutable configuration for parsing, evaluating and simplifying.

    Args:
        functions: name -> (arity, handler); empty by default, see with_functions()
        operators: symbol -> CustomOperator
        rules: Rules or a Simplifier; None selects the default rule table
        debugging: Log each parsing, evaluation and rewriting step at DEBUG level
        max_depth: Deepest tree the parser accepts
    """

    __slots__ = ('_functions', '_operators', '_simplifier', '_debugging', '_max_depth')

    def __init__(
        self,
        functions: Optional[FunctionTable] = None,
        operators: Optional[Dict[str, CustomOperator]] = None,
        rules: Union[Simplifier, Iterable[Rule], None] = None,
        debugging: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        if rules is None:
            rules = default_rules()
        self._functions = MappingProxyType(dict(functions or {}))
        self._operators = MappingProxyType(dict(operators or {}))
        self._simplifier = rules if isinstance(rules, Simplifier) else Simplifier(rules)
        self._debugging = bool(debugging)
        self._max_depth = max_depth

    @classmethod
    def new(cls) -> 'Engine':
        """An engine with the default rules and no functions."""
        return cls()

    def _replace(self, **changes) -> 'Engine':
        fields = {
            "functions": self._functions,
            "operators": self._operators,
            "rules": self._simplifier,
            "debugging": self._debugging,
            "max_depth": self._max_depth,
        }
        fields.update(changes)
        return Engine(**fields)

    # -- configuration --------------------------------------------------

    @property
    def functions(self):
        """Read-only view of the function table."""
        return self._functions

    @property
    def operators(self):
        """Read-only view of the custom operators, keyed by symbol."""
        return self._operators

    @property
    def simplifier(self) -> Simplifier:
        return self._simplifier

    @property
    def rules(self):
        return self._simplifier.rules

    @property
    def debugging(self) -> bool:
        return self._debugging

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def arity(self, name: str) -> Optional[int]:
        """Arity of a registered function, or None if it is unknown."""
        entry = self._functions.get(name)
        return None if entry is None else entry[0]

    def with_functions(self, table: Optional[FunctionTable] = None) -> 'Engine':
        """
        Add functions; without a table, the built-ins (ln, log, sqrt, root,
        trigonometry, atan2, rand).
        """
        if table is None:
            table = BUILTIN_FUNCTIONS
        functions = dict(self._functions)
        for name, (arity, handler) in table.items():
            _check_function(name, arity, handler)
            functions[name] = (arity, handler)
        return self._replace(functions=functions)

    def with_function(self, name: str, arity: int, handler: FunctionHandler) -> 'Engine':
        """
        Add or replace one function.

        The handler receives a tuple of evaluated argument Exprs, see
        symcas.functions.numeric_function for building one.
        """
        _check_function(name, arity, handler)
        functions = dict(self._functions)
        functions[name] = (arity, handler)
        return self._replace(functions=functions)

    def with_operator(
        self,
        symbol: str,
        precedence: int,
        associativity: Associativity = Associativity.LEFT,
        implementation: Optional[Callable[[Number, Number], Number]] = None,
    ) -> 'Engine':
        """
        Register a single-character binary operator.

        Example:
            engine.with_operator("%", 3, implementation=lambda a, b: Number.of(float(a) % float(b)))

        Raises:
            ValueError: reserved or alphanumeric symbol, or no implementation
        """
        if len(symbol) != 1 or symbol in RESERVED_CHARS or symbol.isalnum() or symbol.isspace():
            raise ValueError(f"Cannot use {symbol!r} as an operator symbol")
        if implementation is None:
            raise ValueError(f"Operator {symbol!r} needs an implementation")
        if isinstance(precedence, bool) or not isinstance(precedence, int):
            raise ValueError(f"Operator precedence must be an integer, got {precedence!r}")
        operators = dict(self._operators)
        operators[symbol] = CustomOperator(symbol, precedence, associativity, implementation)
        return self._replace(operators=operators)

    def with_rules(self, rules: Union[str, Iterable[Rule]]) -> 'Engine':
        """
        Append rules to the rule table.

        Args:
            rules: DSL text (parsed with this engine) or Rule objects
        """
        if isinstance(rules, str):
            rules = load_rules_from_dsl(rules, self)
        return self._replace(rules=self._simplifier.with_rules(rules))

    def with_rules_file(self, path: Union[str, Path]) -> 'Engine':
        """Append the rules of a .rules or .json file."""
        rules = load_rules_from_file(path, self)
        logger.debug("Loaded %d rules from %s", len(rules), path)
        return self._replace(rules=self._simplifier.with_rules(rules))

    def without_rules(self) -> 'Engine':
        return self._replace(rules=Simplifier())

    def with_debugging(self, debugging: bool = True) -> 'Engine':
        return self._replace(debugging=debugging)

    def with_max_depth(self, max_depth: int) -> 'Engine':
        if max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        return self._replace(max_depth=max_depth)

    # -- operations -----------------------------------------------------

    def parse(self, text: str) -> Expr:
        """Parse an infix expression; raises SymError."""
        return parse(self, text)

    def eval(self, expr: Union[str, Expr]) -> Expr:
        """Evaluate constant subtrees; raises SymError on domain errors."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        return eval_tree(self, expr)

    def evalf(self, expr: Union[str, Expr]) -> Expr:
        """Evaluate with every constant forced to floating point: 1/4 -> 0.25."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        return eval_tree(self, expr, force=True)

    def to_number(self, expr: Union[str, Expr]) -> Number:
        """Evaluate to a Number; raises SymError(INCONVERTIBLE) if symbolic."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        return expr.to_number(self)

    def simplify(
        self,
        expr: Union[str, Expr],
        trace: bool = False,
        max_passes: Optional[int] = None,
    ):
        """
        Rewrite the root with the rule table until a fixpoint.

        Args:
            expr: Expression (strings are parsed first)
            trace: If True, return (result, RewriteTrace)
            max_passes: Optional bound on the number of passes

        Returns:
            Simplified expression, or (expression, trace) if trace=True
        """
        if isinstance(expr, str):
            expr = self.parse(expr)
        return self._simplifier.simplify(
            expr, trace=trace, max_passes=max_passes, debugging=self._debugging)

    def apply_once(self, expr: Union[str, Expr]):
        """Apply the first matching rule to the root: (result, rule or None)."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        return self._simplifier.apply_once(expr)

    def rules_matching(self, expr: Union[str, Expr]):
        """All rules matching the root, with their bindings."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        return self._simplifier.rules_matching(expr)

    def match(self, pattern: Union[str, Expr], expr: Union[str, Expr]):
        """
        Match a template against an expression.

        A string pattern is parsed as a template and the bindings are keyed
        by pattern variable name; an Expr pattern gives bindings keyed by
        Identifier id.

        Example:
            if bindings := engine.match("?a + ?b", "x + 1"):
                print(bindings["a"], bindings["b"])
        """
        names: Dict[str, int] = {}
        if isinstance(pattern, str):
            try:
                pattern = parse_template(self, pattern, names)
            except SymError as e:
                raise ValueError(f"Invalid pattern: {e}") from e
        if isinstance(expr, str):
            expr = self.parse(expr)

        result = _match_internal(pattern, expr)
        if result is not None and names:
            result = {name: result[i] for name, i in names.items() if i in result}
        return wrap_bindings(result)

    def list_rules(self) -> List[str]:
        """All rules as DSL lines."""
        return [format_rule(rule) for rule in self._simplifier]

    def to_dsl(self, name: Optional[str] = None) -> str:
        """Export the rule table as DSL text that with_rules() reads back."""
        lines = []
        if name:
            lines.append(f"# {name}")
            lines.append("")
        lines.extend(self.list_rules())
        return "\n".join(lines)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Export the rule table as JSON that with_rules_file() reads back."""
        return rules_to_json(self._simplifier, indent=indent)

    def __call__(self, expr: Union[str, Expr], **kwargs):
        """engine(expr) is shorthand for engine.simplify(expr)."""
        return self.simplify(expr, **kwargs)

    def __len__(self) -> int:
        return len(self._simplifier)

    def __contains__(self, name: str) -> bool:
        """Check if a named rule exists: 'add-zero-right' in engine."""
        return name in self._simplifier

    def __repr__(self) -> str:
        flags = ", debugging" if self._debugging else ""
        return (f"Engine({len(self._functions)} functions, {len(self._operators)} operators, "
                f"{len(self._simplifier)} rules{flags})")


def _check_function(name: str, arity: int, handler) -> None:
    if not isinstance(name, str) or not name.isidentifier():
        raise ValueError(f"Invalid function name: {name!r}")
    if isinstance(arity, bool) or not isinstance(arity, int) or arity < 0:
        raise ValueError(f"Invalid arity for {name}: {arity!r}")
    if not callable(handler):
        raise ValueError(f"Handler for {name} is not callable")
