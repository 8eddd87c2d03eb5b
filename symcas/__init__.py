"""
symcas - a small computer algebra system

Parses infix expressions into trees, evaluates them with exact rational
arithmetic (falling back to floating point), and simplifies them with a
table of rewrite rules.

Quick Start:
    from symcas import Engine

    engine = Engine().with_functions()

    expr = engine.parse("43*(4(81/9))")
    engine.eval(expr)              # => 1548 (exact)

    engine("x * x")                # => x ^ 2
    engine.eval("ln(1)")           # => 0
    engine.parse("1/2 + x").print_latex()   # => \\frac{1}{2} + x

Expression Syntax:
    + - * / ^        binary operators; ** is an alias for ^
    -x, +x           signs, at the start or after ( + - ,
    2(x + 1)         implicit multiplication before (
    log(2, x)        function calls, comma separated arguments

Rule DSL:
    # Comments start with #
    @add-zero "x + 0 = x": ?x + 0 => ?x
    @square: ?x * ?x => ?x ^ 2
    :include other.rules
"""

__version__ = "0.1.0"

# Errors and numbers
from .errors import ErrorKind, SymError
from .number import Number, Rational, Irrational, parse_number

# Expression trees
from .expr import (
    Associativity,
    Operator,
    CustomOperator,
    Symbol,
    SymbolKind,
    Expr,
    Constant,
    Variable,
    Identifier,
    Function,
    Operation,
    to_expr,
)

# Parsing and evaluation
from .parse import tokenize, to_postfix, build_tree, parse, parse_template
from .eval import eval_tree
from .functions import (
    FunctionHandler,
    FunctionTable,
    numeric_function,
    BUILTIN_FUNCTIONS,
)

# Simplification
from .simplifier import (
    match,
    instantiate,
    Bindings,
    NoMatch,
    wrap_bindings,
    Rule,
    RuleMetadata,
    RewriteStep,
    RewriteTrace,
    Simplifier,
)
from .rules import (
    DEFAULT_RULES,
    parse_rule_line,
    load_rules_from_dsl,
    load_rules_from_file,
    load_rules_from_json,
)

# Printing
from .printer import print_infix, print_postfix, print_latex, print_debug

# Engine
from .engine import Engine

# Public API
__all__ = [
    # Version
    "__version__",
    # Errors
    "ErrorKind",
    "SymError",
    # Numbers
    "Number",
    "Rational",
    "Irrational",
    "parse_number",
    # Expressions
    "Associativity",
    "Operator",
    "CustomOperator",
    "Symbol",
    "SymbolKind",
    "Expr",
    "Constant",
    "Variable",
    "Identifier",
    "Function",
    "Operation",
    "to_expr",
    # Parsing and evaluation
    "tokenize",
    "to_postfix",
    "build_tree",
    "parse",
    "parse_template",
    "eval_tree",
    "FunctionHandler",
    "FunctionTable",
    "numeric_function",
    "BUILTIN_FUNCTIONS",
    # Simplification
    "match",
    "instantiate",
    "Bindings",
    "NoMatch",
    "wrap_bindings",
    "Rule",
    "RuleMetadata",
    "RewriteStep",
    "RewriteTrace",
    "Simplifier",
    "DEFAULT_RULES",
    "parse_rule_line",
    "load_rules_from_dsl",
    "load_rules_from_file",
    "load_rules_from_json",
    # Printing
    "print_infix",
    "print_postfix",
    "print_latex",
    "print_debug",
    # Engine
    "Engine",
]
