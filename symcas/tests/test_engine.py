"""Tests for Engine configuration and the Expr convenience API."""

import logging

import pytest

from symcas import (
    Associativity, Bindings, Constant, Engine, ErrorKind, Expr, NoMatch, Number,
    Operation, Operator, Rational, SymError, Variable, numeric_function, to_expr,
)
from symcas.engine import DEFAULT_MAX_DEPTH

x = Variable("x")
y = Variable("y")


def modulo(a, b):
    return Number.of(float(a) % float(b))


class TestEngineConfiguration:
    """Tests for the immutable builder API."""

    def test_defaults(self):
        """Engine() has the default rules and no functions."""
        engine = Engine()
        assert len(engine) == 11
        assert len(engine.functions) == 0
        assert len(engine.operators) == 0
        assert not engine.debugging
        assert engine.max_depth == DEFAULT_MAX_DEPTH

    def test_new(self):
        """Engine.new() is the default engine."""
        assert Engine.new().rules == Engine().rules

    def test_builders_return_new_engines(self):
        """with_* never modifies the receiver."""
        base = Engine()
        extended = base.with_functions().with_debugging().with_max_depth(10)
        assert base.arity("sin") is None
        assert extended.arity("sin") == 1
        assert not base.debugging
        assert extended.debugging
        assert base.max_depth == DEFAULT_MAX_DEPTH
        assert extended.max_depth == 10

    def test_builders_keep_other_settings(self):
        """Changing one setting keeps the rest."""
        engine = Engine().with_functions().with_operator("%", 3, implementation=modulo)
        engine = engine.with_debugging().without_rules()
        assert engine.arity("log") == 2
        assert "%" in engine.operators
        assert engine.debugging
        assert len(engine) == 0

    def test_tables_read_only(self):
        """The function and operator tables cannot be modified in place."""
        engine = Engine().with_functions()
        with pytest.raises(TypeError):
            engine.functions["double"] = numeric_function("double", 1, lambda v: 2 * v)
        with pytest.raises(TypeError):
            engine.operators["%"] = None

    def test_with_function_replaces(self):
        """Registering an existing name replaces it."""
        engine = Engine().with_functions().with_function(
            "sin", *numeric_function("sin", 1, lambda v: 0.5))
        assert engine.eval("sin(1)") == Constant(Rational(1, 2))

    @pytest.mark.parametrize("name,arity,handler", [
        ("2x", 1, lambda args: args[0]),
        ("f", -1, lambda args: args[0]),
        ("f", True, lambda args: args[0]),
        ("f", 1, "not callable"),
    ])
    def test_with_function_validation(self, name, arity, handler):
        """Invalid names, arities and handlers are rejected."""
        with pytest.raises(ValueError):
            Engine().with_function(name, arity, handler)

    @pytest.mark.parametrize("symbol", ["+", "(", ",", "?", "a", "1", " ", "%%", ""])
    def test_with_operator_bad_symbol(self, symbol):
        """Reserved, alphanumeric and multi-character symbols are rejected."""
        with pytest.raises(ValueError):
            Engine().with_operator(symbol, 3, implementation=modulo)

    def test_with_operator_needs_implementation(self):
        """An operator without an implementation is rejected."""
        with pytest.raises(ValueError):
            Engine().with_operator("%", 3)

    def test_with_operator_precedence_type(self):
        """Precedence must be an integer."""
        with pytest.raises(ValueError):
            Engine().with_operator("%", "3", implementation=modulo)

    def test_right_associative_operator(self):
        """Custom operators may associate to the right."""
        engine = Engine().with_operator(
            "~", 3, Associativity.RIGHT, implementation=lambda a, b: a - b)
        expr = engine.parse("8 ~ 4 ~ 2")
        assert expr.right.op is engine.operators["~"]
        assert engine.eval(expr) == Constant(Rational(6))

    def test_with_max_depth_validation(self):
        """max_depth must be positive."""
        with pytest.raises(ValueError):
            Engine().with_max_depth(0)

    def test_with_rules_appends(self):
        """with_rules adds to the end of the table."""
        engine = Engine().with_rules("@sub-zero: ?x - 0 => ?x")
        assert len(engine) == 12
        assert engine.rules[-1].name == "sub-zero"
        assert "sub-zero" in engine
        assert "sub-zero" not in Engine()

    def test_with_rules_objects(self):
        """with_rules accepts Rule objects."""
        rules = Engine().rules[:2]
        assert len(Engine(rules=()).with_rules(rules)) == 2

    def test_with_rules_file_logs(self, tmp_path, caplog):
        """Loading a rules file is logged."""
        path = tmp_path / "extra.rules"
        path.write_text("@sub-zero: ?x - 0 => ?x\n")
        caplog.set_level(logging.DEBUG, logger="symcas")
        engine = Engine().with_rules_file(path)
        assert len(engine) == 12
        assert "Loaded 1 rules" in caplog.text

    def test_repr(self):
        """repr summarizes the configuration."""
        assert repr(Engine()) == "Engine(0 functions, 0 operators, 11 rules)"
        assert "debugging" in repr(Engine().with_debugging())


class TestEngineOperations:
    """Tests for the operations exposed on Engine."""

    def setup_method(self):
        self.engine = Engine().with_functions()

    def test_parse_eval_simplify(self):
        """The three stages compose."""
        expr = self.engine.parse("2 * sin(0) + x * x")
        evaluated = self.engine.eval(expr)
        assert evaluated == Operation(Operator.ADD, (
            Constant(Rational(0)), Operation(Operator.MUL, (x, x))))
        assert self.engine.simplify(evaluated) == Operation(
            Operator.POW, (x, Constant(Rational(2))))

    def test_call_passes_options(self):
        """engine(expr, trace=True) returns a trace too."""
        result, trace = self.engine("x + 0", trace=True)
        assert result == x
        assert trace.rules_applied() == ["add-zero-right"]

    def test_match_with_expr_pattern(self):
        """An Expr pattern gives id-keyed bindings."""
        pattern = self.engine.rules[1].matcher
        bindings = self.engine.match(pattern, "y + 0")
        assert bindings[0] == y

    def test_match_returns_bindings_or_no_match(self):
        """Named matches give Bindings, failures give the falsy NoMatch."""
        bindings = self.engine.match("?a * ?b", "x * 2")
        assert isinstance(bindings, Bindings)
        assert bindings["a"] == x
        assert bindings["b"] == Constant(Rational(2))
        failed = self.engine.match("?a * ?a", "x * y")
        assert failed is NoMatch
        assert not failed

    def test_match_bad_pattern(self):
        """Unparseable patterns raise ValueError."""
        with pytest.raises(ValueError):
            self.engine.match("?a +", "x")

    def test_parse_error_is_sym_error(self):
        """Parse failures raise SymError, not ValueError."""
        with pytest.raises(SymError) as info:
            self.engine.parse("(1")
        assert info.value.kind is ErrorKind.PARENTHESES_MISMATCH
        assert str(info.value) == "parentheses mismatch"

    def test_debugging_logs_parsing(self, caplog):
        """Parser stages are logged when debugging."""
        caplog.set_level(logging.DEBUG, logger="symcas")
        self.engine.with_debugging().parse("1 + 2")
        assert "Postfix: 1 2 +" in caplog.text


class TestExprApi:
    """Tests for building trees with Python operators."""

    def setup_method(self):
        self.engine = Engine().with_functions()

    def test_operators_build_trees(self):
        """x * 2 + 1 builds the expected tree."""
        expr = x * 2 + 1
        assert expr == Operation(Operator.ADD, (
            Operation(Operator.MUL, (x, Constant(Rational(2)))),
            Constant(Rational(1)),
        ))

    def test_reflected_operators(self):
        """Numbers on the left work too."""
        assert 2 - x == Operation(Operator.SUB, (Constant(Rational(2)), x))
        assert 1 / x == Operation(Operator.DIV, (Constant(Rational(1)), x))

    def test_constants_fold(self):
        """Constant operands fold except for powers."""
        assert Constant(Rational(1)) + 2 == Constant(Rational(3))
        assert -Constant(Rational(2)) == Constant(Rational(-2))
        assert Constant(Rational(1)) / 0 == Operation(
            Operator.DIV, (Constant(Rational(1)), Constant(Rational(0))))
        assert Constant(Rational(2)) ** 2 == Operation(
            Operator.POW, (Constant(Rational(2)), Constant(Rational(2))))

    def test_negation_and_power(self):
        """-x and x ** 2 build NEG and POW."""
        assert -x == Operation(Operator.NEG, (x,))
        assert +x is x
        assert (x ** 2).op is Operator.POW

    def test_to_expr(self):
        """to_expr converts numbers and names."""
        assert to_expr(2) == Constant(Rational(2))
        assert to_expr("y") == y
        with pytest.raises(TypeError):
            to_expr(True)
        with pytest.raises(TypeError):
            to_expr([1])

    def test_expr_methods_use_engine(self):
        """Expr.parse, eval and simplify delegate to the engine."""
        expr = Expr.parse(self.engine, "x * x + 0")
        assert expr == self.engine.parse("x * x + 0")
        assert expr.simplify(self.engine) == Operation(
            Operator.POW, (x, Constant(Rational(2))))
        assert Expr.parse(self.engine, "sqrt(4)").eval(self.engine) == Constant(Rational(2))

    def test_operation_arity_checked(self):
        """Operations need the right number of operands."""
        with pytest.raises(SymError) as info:
            Operation(Operator.ADD, (x,))
        assert info.value.kind is ErrorKind.INVALID_OP
        with pytest.raises(SymError):
            Operation(Operator.LPAREN, ())

    def test_nodes_are_hashable(self):
        """Equal trees hash alike."""
        assert len({x * 2, Variable("x") * 2}) == 1

    def test_children(self):
        """children lists operands and arguments."""
        assert (x + y).children == (x, y)
        assert x.children == ()
