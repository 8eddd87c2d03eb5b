"""Tests for the rule DSL, rule files and rule export."""

import json

import pytest

from symcas import (
    Constant, Engine, Identifier, Operation, Operator, Rational, Variable,
    load_rules_from_dsl, load_rules_from_file, load_rules_from_json,
    parse_rule_line,
)
from symcas.rules import DEFAULT_RULES, default_rules, format_rule


class TestParseRuleLine:
    """Tests for single DSL lines."""

    def setup_method(self):
        self.engine = Engine(rules=())

    def test_named_rule(self):
        """@name: matcher => replacement."""
        rule = parse_rule_line("@add-zero: ?x + 0 => ?x", self.engine)
        assert rule.name == "add-zero"
        assert rule.metadata.description is None
        assert rule.matcher == Operation(Operator.ADD, (Identifier(0), Constant(Rational(0))))
        assert rule.replacement == Identifier(0)
        assert rule.variables == ("x",)

    def test_described_rule(self):
        """@name "description": matcher => replacement."""
        rule = parse_rule_line('@mul-one "x * 1 = x": ?x * 1 => ?x', self.engine)
        assert rule.name == "mul-one"
        assert rule.metadata.description == "x * 1 = x"

    def test_anonymous_rule(self):
        """Rules without a header have no name."""
        rule = parse_rule_line("?x ^ 1 => ?x", self.engine)
        assert rule.name is None

    def test_literal_variables(self):
        """Plain names in templates match only that variable."""
        rule = parse_rule_line("@x-only: x + ?a => ?a", self.engine)
        assert rule.matcher.left == Variable("x")

    @pytest.mark.parametrize("line", ["", "   ", "# just a comment"])
    def test_blank_and_comment(self, line):
        """Blank lines and comments are not rules."""
        assert parse_rule_line(line, self.engine) is None

    @pytest.mark.parametrize("line", [
        "@broken ?x => ?x",
        "?x + 0",
        "@name: => ?x",
        "?x + => ?x",
        "?x + 0 => ?y",
        "foo(?x) => ?x",
    ])
    def test_malformed(self, line):
        """Malformed rules raise ValueError."""
        with pytest.raises(ValueError):
            parse_rule_line(line, self.engine)

    def test_unbound_variable_message(self):
        """The error names the unbound variable."""
        with pytest.raises(ValueError, match=r"\?y"):
            parse_rule_line("?x + 0 => ?x + ?y", self.engine)


class TestDefaultRuleTable:
    """Tests for the built-in rule table."""

    def test_order(self):
        """The default table has eleven rules in a fixed order."""
        names = [rule.name for rule in default_rules()]
        assert names == [
            "add-zero-left", "add-zero-right", "mul-zero-right", "mul-zero-left",
            "square", "double", "div-self", "div-to-mul",
            "factor-left", "factor-right", "pow-add",
        ]

    def test_engine_default(self):
        """Engine() starts with the default table."""
        assert Engine().rules == default_rules()
        assert len(Engine()) == 11

    def test_parsed_once(self):
        """The default table is cached."""
        assert default_rules() is default_rules()

    def test_dsl_text_loads(self):
        """DEFAULT_RULES is ordinary DSL text."""
        assert len(load_rules_from_dsl(DEFAULT_RULES, Engine(rules=()))) == 11


class TestLoadDsl:
    """Tests for multi-line DSL text and includes."""

    def setup_method(self):
        self.engine = Engine(rules=())

    def test_multiple_rules(self):
        """Every rule line is loaded in order."""
        rules = load_rules_from_dsl('''
            # algebra
            @add-zero: ?x + 0 => ?x

            @mul-one: ?x * 1 => ?x
            ?x ^ 1 => ?x
        ''', self.engine)
        assert [r.name for r in rules] == ["add-zero", "mul-one", None]

    def test_include(self, tmp_path):
        """:include splices another file's rules in place."""
        (tmp_path / "base.rules").write_text("@add-zero: ?x + 0 => ?x\n")
        (tmp_path / "main.rules").write_text(
            "@first: ?x * 1 => ?x\n:include base.rules\n@last: ?x ^ 1 => ?x\n")
        rules = load_rules_from_file(tmp_path / "main.rules", self.engine)
        assert [r.name for r in rules] == ["first", "add-zero", "last"]

    def test_nested_include_in_subdirectory(self, tmp_path):
        """Includes resolve relative to the including file."""
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "inner.rules").write_text("@inner: ?x - 0 => ?x\n")
        (sub / "outer.rules").write_text(":include inner.rules\n")
        (tmp_path / "main.rules").write_text(":include sub/outer.rules\n")
        rules = load_rules_from_file(tmp_path / "main.rules", self.engine)
        assert [r.name for r in rules] == ["inner"]

    def test_circular_include(self, tmp_path):
        """A file including itself is rejected."""
        (tmp_path / "a.rules").write_text(":include b.rules\n")
        (tmp_path / "b.rules").write_text(":include a.rules\n")
        with pytest.raises(ValueError, match="Circular"):
            load_rules_from_file(tmp_path / "a.rules", self.engine)

    def test_shared_include(self, tmp_path):
        """The same file may be included from two places."""
        (tmp_path / "common.rules").write_text("@common: ?x + 0 => ?x\n")
        (tmp_path / "left.rules").write_text(":include common.rules\n")
        (tmp_path / "right.rules").write_text(":include common.rules\n")
        (tmp_path / "main.rules").write_text(":include left.rules\n:include right.rules\n")
        rules = load_rules_from_file(tmp_path / "main.rules", self.engine)
        assert len(rules) == 2

    def test_missing_include(self, tmp_path):
        """A missing include file raises FileNotFoundError."""
        (tmp_path / "main.rules").write_text(":include nowhere.rules\n")
        with pytest.raises(FileNotFoundError):
            load_rules_from_file(tmp_path / "main.rules", self.engine)

    def test_templates_use_engine_functions(self):
        """Function names in templates must be known to the engine."""
        engine = self.engine.with_functions()
        rules = load_rules_from_dsl("@sin-zero: sin(0) => 0", engine)
        assert rules[0].matcher.name == "sin"
        with pytest.raises(ValueError):
            load_rules_from_dsl("@sin-zero: sin(0) => 0", self.engine)


class TestLoadJson:
    """Tests for JSON rule files."""

    def setup_method(self):
        self.engine = Engine(rules=())

    def test_object_and_pair_forms(self):
        """Rules may be objects or [matcher, replacement] pairs."""
        text = json.dumps({"rules": [
            {"name": "add-zero", "description": "x + 0 = x",
             "matcher": "?x + 0", "replacement": "?x"},
            ["?x * 1", "?x"],
        ]})
        rules = load_rules_from_json(text, self.engine)
        assert rules[0].name == "add-zero"
        assert rules[0].metadata.description == "x + 0 = x"
        assert rules[1].name is None
        assert rules[1].replacement == Identifier(0)

    def test_missing_key(self):
        """Objects need both templates."""
        with pytest.raises(ValueError):
            load_rules_from_json('{"rules": [{"matcher": "?x"}]}', self.engine)

    def test_top_level_must_be_object(self):
        """A bare JSON list is rejected with ValueError."""
        with pytest.raises(ValueError, match="object"):
            load_rules_from_json('[["?x + 0", "?x"]]', self.engine)

    def test_json_file(self, tmp_path):
        """.json files are loaded as JSON."""
        path = tmp_path / "rules.json"
        path.write_text('{"rules": [["?x - 0", "?x"]]}')
        engine = self.engine.with_rules_file(path)
        assert engine("y - 0") == Variable("y")


class TestExport:
    """Tests for exporting rules back to text."""

    def test_format_rule(self):
        """Rules print with their original variable names."""
        rule = parse_rule_line('@div "x / y": ?x / ?y => ?x * ?y ^ (-1)', Engine(rules=()))
        assert format_rule(rule) == '@div "x / y": ?x / ?y => ?x * ?y ^ (-1)'

    def test_list_rules(self):
        """list_rules gives one DSL line per rule."""
        lines = Engine().list_rules()
        assert len(lines) == 11
        assert lines[4] == '@square "x * x = x^2": ?x * ?x => ?x ^ 2'

    def test_dsl_round_trip(self):
        """to_dsl output loads back to the same rules."""
        engine = Engine()
        reloaded = Engine(rules=()).with_rules(engine.to_dsl("defaults"))
        assert reloaded.rules == engine.rules

    def test_json_round_trip(self, tmp_path):
        """to_json output loads back to the same rules."""
        engine = Engine()
        path = tmp_path / "defaults.json"
        path.write_text(engine.to_json())
        assert Engine(rules=()).with_rules_file(path).rules == engine.rules
