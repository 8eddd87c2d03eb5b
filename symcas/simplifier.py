"""
Rule-based simplifier for symcas.

A rule pairs a matcher template with a replacement template. Templates are
ordinary expression trees in which Identifier nodes act as pattern
variables:

    matcher:     ?x + 0        Operation(ADD, (Identifier(0), Constant(0)))
    replacement: ?x            Identifier(0)

Matching binds each Identifier to the subtree at its position; a variable
used twice must match structurally equal subtrees both times. The
replacement is instantiated with those bindings.

Simplification rewrites the root only. Each pass tries every rule in table
order against the current root, and passes repeat until one pass changes
nothing:

    simplifier.simplify(parse(engine, "x * x"))   # => x ^ 2
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .expr import Constant, Expr, Function, Identifier, Operation, Variable

logger = logging.getLogger(__name__)

# Pattern variable id -> bound subtree
BindingsType = Dict[Any, Expr]


# ============================================================
# Bindings Class - Dict-like interface for match results
# ============================================================

class Bindings:
    """
    Dict-like wrapper for pattern matching bindings.

    Bindings are truthy; a failed match is represented by the falsy NoMatch:

        if bindings := engine.match("?a + ?b", expr):
            print(bindings["a"], bindings["b"])

    Examples:
        bindings = Bindings({"x": Constant(Rational(1))})
        bindings["x"]      # => Constant(Rational(1, 1))
        "y" in bindings    # => False
        dict(bindings)     # => {"x": Constant(Rational(1, 1))}
    """

    __slots__ = ('_dict',)

    def __init__(self, table: BindingsType):
        self._dict = dict(table)

    def __bool__(self) -> bool:
        return True

    def __getitem__(self, key):
        return self._dict[key]

    def get(self, key, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        shown = {key: str(value) for key, value in self._dict.items()}
        return f"Bindings({shown})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        return False

    def to_dict(self) -> BindingsType:
        """Convert to a plain dictionary."""
        return self._dict.copy()


class _NoMatch:
    """Falsy singleton representing a failed pattern match."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __getitem__(self, key):
        raise KeyError(f"NoMatch has no binding for {key!r}")

    def get(self, key, default=None):
        return default

    def __contains__(self, key) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter([])


NoMatch = _NoMatch()


def wrap_bindings(result: Optional[BindingsType]) -> Union[Bindings, _NoMatch]:
    """Convert a raw binding table (None on failure) to Bindings or NoMatch."""
    if result is None:
        return NoMatch
    return Bindings(result)


# ============================================================
# Pattern Matching
# ============================================================

def extend_bindings(
    var: int, dat: Expr, bindings: Optional[BindingsType]
) -> Optional[BindingsType]:
    """
    Bind a pattern variable, or check an existing binding.

    Returns:
        The extended table, or None when var is already bound to a
        different subtree
    """
    if bindings is None:
        return None
    if var in bindings:
        return bindings if bindings[var] == dat else None
    return {**bindings, var: dat}


def match(
    pat: Expr, exp: Expr, bindings: Optional[BindingsType] = None
) -> Optional[BindingsType]:
    """
    Match a template against an expression.

    Constants match by value, variables by name, functions by name and
    arguments, operations by operator and operands. Identifiers in the
    template bind the corresponding subtree.

    Args:
        pat: Template, possibly containing Identifier nodes
        exp: Expression to match against
        bindings: Current binding table; a fresh one when omitted

    Returns:
        The binding table on success, None on failure
    """
    if bindings is None:
        bindings = {}

    if isinstance(pat, Identifier):
        return extend_bindings(pat.id, exp, bindings)

    if isinstance(pat, Constant):
        if isinstance(exp, Constant) and pat.value == exp.value:
            return bindings
        return None

    if isinstance(pat, Variable):
        if isinstance(exp, Variable) and pat.name == exp.name:
            return bindings
        return None

    if isinstance(pat, Function):
        if isinstance(exp, Function) and pat.name == exp.name:
            return match_sequence(pat.args, exp.args, bindings)
        return None

    if isinstance(pat, Operation):
        if isinstance(exp, Operation) and pat.op == exp.op:
            return match_sequence(pat.args, exp.args, bindings)
        return None

    return None


def match_sequence(
    pats: Tuple[Expr, ...], exps: Tuple[Expr, ...], bindings: Optional[BindingsType]
) -> Optional[BindingsType]:
    """Match children pairwise, threading the binding table through."""
    if len(pats) != len(exps):
        return None
    for pat, exp in zip(pats, exps):
        bindings = match(pat, exp, bindings)
        if bindings is None:
            return None
    return bindings


# ============================================================
# Instantiation
# ============================================================

def instantiate(skeleton: Expr, bindings: BindingsType) -> Expr:
    """
    Replace the Identifiers of a template by their bound subtrees.

    Identifiers without a binding are kept as they are.
    """
    if isinstance(skeleton, Identifier):
        return bindings.get(skeleton.id, skeleton)
    if isinstance(skeleton, Function):
        return Function(skeleton.name, tuple(instantiate(a, bindings) for a in skeleton.args))
    if isinstance(skeleton, Operation):
        return Operation(skeleton.op, tuple(instantiate(a, bindings) for a in skeleton.args))
    return skeleton


# ============================================================
# Rules and traces
# ============================================================

class RuleMetadata:
    """Metadata for a rule: an optional name and description."""

    def __init__(self, name: Optional[str] = None, description: Optional[str] = None):
        self.name = name
        self.description = description

    def __repr__(self) -> str:
        if not self.name:
            return "<anonymous>"
        if self.description:
            return f"@{self.name} \"{self.description}\""
        return f"@{self.name}"

    def __eq__(self, other):
        if isinstance(other, RuleMetadata):
            return (self.name, self.description) == (other.name, other.description)
        return NotImplemented

    def __hash__(self):
        return hash((self.name, self.description))


class Rule:
    """
    A rewrite rule.

    `variables` holds the pattern variable names in id order, so that
    Identifier(i) was written as ?variables[i].
    """

    __slots__ = ('matcher', 'replacement', 'metadata', 'variables')

    def __init__(self, matcher: Expr, replacement: Expr,
                 metadata: Optional[RuleMetadata] = None,
                 variables: Tuple[str, ...] = ()):
        self.matcher = matcher
        self.replacement = replacement
        self.metadata = metadata or RuleMetadata()
        self.variables = tuple(variables)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.name

    def apply(self, expr: Expr) -> Optional[Expr]:
        """Rewrite expr with this rule, or None if the matcher does not match."""
        bindings = match(self.matcher, expr)
        if bindings is None:
            return None
        return instantiate(self.replacement, bindings)

    def __eq__(self, other):
        if isinstance(other, Rule):
            return (self.matcher == other.matcher
                    and self.replacement == other.replacement
                    and self.metadata == other.metadata)
        return NotImplemented

    def __hash__(self):
        return hash((self.matcher, self.replacement, self.metadata))

    def __repr__(self) -> str:
        from .printer import print_infix
        names = self.variables or None
        body = (f"{print_infix(self.matcher, names)} => "
                f"{print_infix(self.replacement, names)}")
        if self.metadata.name:
            return f"{self.metadata!r}: {body}"
        return body


class RewriteStep:
    """A single step in a rewriting trace."""

    def __init__(self, rule_index: int, metadata: RuleMetadata,
                 before: Expr, after: Expr):
        self.rule_index = rule_index
        self.metadata = metadata
        self.before = before
        self.after = after

    @property
    def rule_name(self) -> str:
        return self.metadata.name or f"rule[{self.rule_index}]"

    def __repr__(self) -> str:
        return f"{self.rule_name}: {self.before} → {self.after}"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "rule_index": self.rule_index,
            "rule_name": self.metadata.name,
            "description": self.metadata.description,
            "before": str(self.before),
            "after": str(self.after),
        }


class RewriteTrace:
    """
    A trace of all rewriting steps applied.

    Formatting options:
        - format("verbose"): multi-line, before and after of each step
        - format("compact"): single line showing the rule chain
        - format("rules"): just the rule names applied
        - format("chain"): expression after each step
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[RewriteStep] = []
        self.initial: Optional[Expr] = None
        self.final: Optional[Expr] = None
        self.passes = 0

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def format(self, style: str = "verbose") -> str:
        if style == "compact":
            rules = ", ".join(self.rules_applied())
            return f"{self.initial} --[{rules}]--> {self.final}"

        elif style == "rules":
            rules = self.rules_applied()
            return " -> ".join(rules) if rules else "(no rules applied)"

        elif style == "chain":
            parts = [str(self.initial)]
            for step in self.steps:
                parts.append(f"  --({step.rule_name})-->")
                parts.append(str(step.after))
            return "\n".join(parts)

        else:
            return repr(self)

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        lines.append(f"Final: {self.final}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rewriting was done."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        return {
            "initial": str(self.initial),
            "final": str(self.final),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "passes": self.passes,
        }

    def rule_counts(self) -> Dict[str, int]:
        """Count how many times each rule was applied."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.rule_name] = counts.get(step.rule_name, 0) + 1
        return counts

    def rules_applied(self) -> List[str]:
        """Rule names in order of application."""
        return [step.rule_name for step in self.steps]

    def summary(self) -> str:
        if not self.steps:
            return "No rewriting performed"
        counts = self.rule_counts()
        most_used = max(counts.items(), key=lambda x: x[1])
        return (f"{len(self.steps)} steps using {len(counts)} unique rules. "
                f"Most used: {most_used[0]} ({most_used[1]}x)")


# ============================================================
# Simplifier
# ============================================================

class Simplifier:
    """
    An ordered, immutable rule table and the fixpoint rewriting loop.

    Example:
        simplifier = Simplifier(load_rules_from_dsl("@add-zero: ?x + 0 => ?x", engine))
        simplifier.simplify(parse(engine, "y + 0"))   # => y
    """

    __slots__ = ('_rules',)

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def with_rules(self, rules: Iterable[Rule]) -> 'Simplifier':
        """A new Simplifier with rules appended to this table."""
        return Simplifier(self._rules + tuple(rules))

    def apply_once(self, expr: Expr) -> Tuple[Expr, Optional[Rule]]:
        """
        Apply the first matching rule to the root.

        Returns:
            (result, rule), or (expr, None) if no rule matches
        """
        for rule in self._rules:
            result = rule.apply(expr)
            if result is not None:
                return result, rule
        return expr, None

    def rules_matching(self, expr: Expr) -> List[Tuple[Rule, Bindings]]:
        """All rules whose matcher matches the root, with their bindings."""
        matching = []
        for rule in self._rules:
            bindings = match(rule.matcher, expr)
            if bindings is not None:
                matching.append((rule, Bindings(bindings)))
        return matching

    def simplify(
        self,
        expr: Expr,
        trace: bool = False,
        max_passes: Optional[int] = None,
        debugging: bool = False,
    ) -> Union[Expr, Tuple[Expr, RewriteTrace]]:
        """
        Rewrite the root until a full pass over the rules matches nothing.

        Within a pass every rule is tried once, in table order, against the
        current root; a match replaces the root and the pass continues with
        the next rule. Subexpressions are never visited on their own.

        Args:
            expr: Expression to simplify
            trace: If True, return (result, RewriteTrace)
            max_passes: Optional bound on the number of passes; rule tables
                that rewrite in a cycle never reach a fixpoint without it
            debugging: Log every rewrite at DEBUG level

        Returns:
            The simplified expression, or (expression, trace) if trace=True
        """
        record = RewriteTrace() if trace else None
        if record is not None:
            record.initial = expr

        current = expr
        passes = 0
        while max_passes is None or passes < max_passes:
            passes += 1
            matched = False
            for index, rule in enumerate(self._rules):
                bindings = match(rule.matcher, current)
                if bindings is None:
                    continue
                result = instantiate(rule.replacement, bindings)
                if debugging:
                    logger.debug("Simplifying, %s => %s using %r", current, result, rule)
                if record is not None:
                    record.add_step(RewriteStep(index, rule.metadata, current, result))
                current = result
                matched = True
            if not matched:
                break

        if record is not None:
            record.final = current
            record.passes = passes
            return current, record
        return current

    def __call__(self, expr: Expr, **kwargs):
        return self.simplify(expr, **kwargs)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def __contains__(self, name: str) -> bool:
        """Check if a named rule exists: 'add-zero' in simplifier."""
        return any(rule.name == name for rule in self._rules)

    def __getitem__(self, name: str) -> Rule:
        for rule in self._rules:
            if rule.name == name:
                return rule
        raise KeyError(f"No rule named '{name}'")

    def __repr__(self) -> str:
        return f"Simplifier({len(self._rules)} rules)"
