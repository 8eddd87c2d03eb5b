#!/usr/bin/env python3
"""
symcas Feature Demonstration

This script walks through parsing, evaluation, simplification and printing.
"""

import math
from pathlib import Path

from symcas import Engine, Number, SymError, Variable, numeric_function


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_evaluation():
    """Exact rational arithmetic with a floating point fallback."""
    section("Evaluation")

    engine = Engine().with_functions()
    examples = [
        "43*(4(81/9))",
        "1/3 + 1/6",
        "-3(-2^2*2)/2-0",
        "sqrt(16) + root(3, -8)",
        "log(2, 8)",
        "2 * sin(0) + x * 3",
    ]
    for text in examples:
        print(f"  {text} => {engine.eval(text)}")
    print(f"  evalf(1/3 + 1/6) => {engine.evalf('1/3 + 1/6')}")


def demo_errors():
    """Every failure carries an ErrorKind."""
    section("Errors")

    engine = Engine().with_functions()
    for text in ["(1+2", "1/0", "ln(0)", "foo(1)", "sin(1, 2)"]:
        try:
            engine.eval(text)
        except SymError as e:
            print(f"  {text}: {e.kind.name} ({e})")


def demo_simplification():
    """Root-only rewriting with the default rule table."""
    section("Simplification")

    engine = Engine()
    for text in ["x * x", "x + x*y", "x / y", "(x + 0) + 0", "x^2 * x^3"]:
        result, trace = engine.simplify(text, trace=True)
        print(f"  {text} => {result}    [{trace.format('rules')}]")


def demo_custom_rules():
    """Rules from DSL text and from a file."""
    section("Custom Rules")

    engine = Engine().with_rules('''
        @sub-self "x - x = 0": ?x - ?x => 0
        @mul-one: ?x * 1 => ?x
    ''')
    print(f"  y - y => {engine('y - y')}")
    print(f"  y * 1 => {engine('y * 1')}")

    rules_file = Path(__file__).parent / "algebra.rules"
    if rules_file.exists():
        engine = Engine().with_rules_file(rules_file)
        print(f"  Loaded {len(engine)} rules from {rules_file.name}")
        print(f"  -(-y) => {engine('-(-y)')}")

    bindings = engine.match("?a + ?b", "x * 2 + 1")
    print(f"  ?a + ?b against x * 2 + 1: a = {bindings['a']}, b = {bindings['b']}")


def demo_custom_functions_and_operators():
    """Extending the engine."""
    section("Custom Functions and Operators")

    engine = (Engine()
        .with_functions()
        .with_function("hypot", *numeric_function("hypot", 2, math.hypot))
        .with_operator("%", 3, implementation=lambda a, b: Number.of(float(a) % float(b))))

    print(f"  hypot(3, 4) => {engine.eval('hypot(3, 4)')}")
    print(f"  1 + 7 % 4 => {engine.eval('1 + 7 % 4')}")


def demo_printing():
    """The four printers."""
    section("Printing")

    engine = Engine().with_functions()
    expr = engine.parse("1/2 + sqrt(x) * (y - 1)^2")
    print(f"  infix:   {expr.print()}")
    print(f"  postfix: {expr.print_postfix()}")
    print(f"  latex:   {expr.print_latex()}")
    print(f"  debug:   {expr.print_debug()}")


def demo_expression_builder():
    """Building trees with Python operators."""
    section("Expression Builder")

    x = Variable("x")
    expr = (x + 1) ** 2 / 3
    print(f"  (x + 1) ** 2 / 3 => {expr}")
    print(f"  DSL export:\n{Engine().to_dsl('defaults')}")


def main():
    demo_evaluation()
    demo_errors()
    demo_simplification()
    demo_custom_rules()
    demo_custom_functions_and_operators()
    demo_printing()
    demo_expression_builder()


if __name__ == "__main__":
    main()
