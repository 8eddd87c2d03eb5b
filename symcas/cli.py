#!/usr/bin/env python3
"""
symcas Command-Line Interface

Evaluates expressions given as arguments, filters stdin, or runs a REPL.

Usage:
    symcas "2 * (3 + 4)"                 # Evaluate expressions
    symcas -s "x * x" "y + 0"            # Evaluate, then simplify
    symcas -l "1/2 + sqrt(x)"            # Print LaTeX
    symcas -n "1/3 + sqrt(2)"            # Force floating point results
    symcas -r algebra.rules -s "x / x"   # Extra rules
    symcas -f my_functions.py "cbrt(8)"  # Extra functions (module with FUNCTIONS)
    echo "ln(1)" | symcas                # Filter mode
    symcas                               # REPL (stdin is a terminal)

Debugging:
    -v prints the parsed, evaluated and force evaluated forms of each
    expression and logs at INFO. -vv (or CAS_DEBUG=1) also turns on engine
    debugging, which logs every parsing, evaluation and rewriting step at DEBUG.

REPL Commands:
    :help              Show help
    :load FILE         Load rules from file
    :rules             List loaded rules
    :clear             Remove all rules
    :simplify on|off   Toggle simplification
    :latex on|off      Toggle LaTeX output
    :numeric on|off    Toggle floating point results
    :trace on|off      Toggle rewrite tracing
    :postfix EXPR      Show the postfix form of EXPR
    :debug EXPR        Show the tree of EXPR
    :quit              Exit
"""

import argparse
import importlib.util
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .engine import DEFAULT_MAX_DEPTH, Engine
from .errors import SymError
from .functions import FunctionTable
from .printer import print_debug, print_infix, print_latex, print_postfix

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

logger = logging.getLogger(__name__)

ENV_DEBUG = "CAS_DEBUG"
ENV_DEBUG_VALUES = ("true", "True", "1", "on", "ON")

# Failures reported to the user instead of a traceback
USER_ERRORS = (SymError, ValueError, OSError)


def env_debugging(environ=None) -> bool:
    """True when CAS_DEBUG asks for engine debugging."""
    environ = os.environ if environ is None else environ
    return environ.get(ENV_DEBUG, "") in ENV_DEBUG_VALUES


def configure_logging(verbosity: int, debugging: bool) -> None:
    if debugging or verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_custom_functions(path) -> FunctionTable:
    """
    Load a function table from a Python file.

    The file should define a FUNCTIONS dict mapping names to
    (arity, handler) entries, e.g. built with numeric_function.

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the file has no FUNCTIONS dict
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Function module not found: {path}")

    spec = importlib.util.spec_from_file_location(f"symcas_functions_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot load functions from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    table = getattr(module, "FUNCTIONS", None)
    if not isinstance(table, dict):
        raise ValueError(f"{path} does not define a FUNCTIONS dict")
    logger.info("Loaded %d functions from %s", len(table), path)
    return table


class SymcasCompleter:
    """Tab completer for the symcas REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":load", ":rules", ":clear",
        ":simplify", ":latex", ":numeric", ":trace",
        ":postfix", ":debug",
    ]

    TOGGLE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'SymcasREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)
        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        line = line.lstrip()

        if line.startswith((":simplify ", ":latex ", ":numeric ", ":trace ")):
            return [t for t in self.TOGGLE_OPTIONS if t.startswith(text)]

        if line.startswith(":load "):
            return self._complete_path(text)

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # Expression context: function names
        return [name + "(" for name in sorted(self.repl.engine.functions)
                if name.startswith(text)]

    def _complete_path(self, text: str) -> list:
        import glob

        if not text:
            text = "./"
        matches = []
        for path in glob.glob(text + "*"):
            if Path(path).is_dir():
                matches.append(path + "/")
            else:
                matches.append(path)
        return matches


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def parse_toggle(arg: str, current: bool) -> bool:
    arg = arg.lower()
    if arg in ("on", "true", "1"):
        return True
    if arg in ("off", "false", "0"):
        return False
    return not current


class SymcasREPL:
    """Interactive REPL for symcas; also evaluates lines for the batch modes."""

    def __init__(self, engine: Engine, simplify: bool = False, latex: bool = False,
                 trace: bool = False, numeric: bool = False, verbose: bool = False,
                 history: bool = True):
        self.engine = engine
        self.simplify = simplify
        self.latex = latex
        self.trace = trace
        self.numeric = numeric
        self.verbose = verbose
        self.running = True
        self.multi_line_buffer = ""
        self.history_file = Path.home() / ".symcas_history"
        self.use_readline = HAS_READLINE and history

        if self.use_readline:
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = SymcasCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n+-*/^(),")

    def save_history(self):
        if self.use_readline:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.warning("Could not save history to %s: %s", self.history_file, e)

    def evaluate(self, text: str) -> str:
        """
        Evaluate one expression and format the result.

        The tree is evaluated; with simplification on, it is then simplified
        and evaluated again. Numeric mode forces the result to floating
        point. Verbose mode prefixes the result with the breakdown lines.

        Raises:
            SymError: on any parse or evaluation failure
        """
        parsed = self.engine.parse(text)
        result = self.engine.eval(parsed)
        trace = None
        if self.simplify:
            if self.trace:
                result, trace = self.engine.simplify(result, trace=True)
            else:
                result = self.engine.simplify(result)
            result = self.engine.eval(result)
        if self.numeric:
            result = self.engine.evalf(result)

        output = print_latex(result) if self.latex else print_infix(result)
        if trace:
            output += "\n" + trace.format("rules")
        if self.verbose:
            output = "\n".join(self.breakdown(text, parsed) + [f"Result: {output}"])
        return output

    def breakdown(self, text: str, parsed) -> List[str]:
        """Input, parsed, evaluated and force evaluated forms with their postfix."""
        def show(label, expr):
            return f"{label}: {print_infix(expr)} (postfix: {print_postfix(expr)})"

        return [
            "-" * (7 + len(text)),
            f"Input: {text}",
            show("Parsed", parsed),
            show("Evaluated", self.engine.eval(parsed)),
            show("Force evaluated", self.engine.evalf(parsed)),
        ]

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "load":
            if not arg:
                return "Usage: :load FILENAME"
            before = len(self.engine)
            self.engine = self.engine.with_rules_file(Path(arg))
            return f"Loaded {len(self.engine) - before} rules from {arg}"

        elif cmd == "rules":
            rules = self.engine.list_rules()
            if not rules:
                return "No rules loaded"
            return "\n".join(rules)

        elif cmd == "clear":
            self.engine = self.engine.without_rules()
            return "Cleared all rules"

        elif cmd == "simplify":
            self.simplify = parse_toggle(arg, self.simplify)
            return f"Simplification {'enabled' if self.simplify else 'disabled'}"

        elif cmd == "latex":
            self.latex = parse_toggle(arg, self.latex)
            return f"LaTeX output {'enabled' if self.latex else 'disabled'}"

        elif cmd == "numeric":
            self.numeric = parse_toggle(arg, self.numeric)
            return f"Numeric output {'enabled' if self.numeric else 'disabled'}"

        elif cmd == "trace":
            self.trace = parse_toggle(arg, self.trace)
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "postfix":
            if not arg:
                return "Usage: :postfix EXPR"
            return print_postfix(self.engine.parse(arg))

        elif cmd == "debug":
            if not arg:
                return "Usage: :debug EXPR"
            return print_debug(self.engine.parse(arg))

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        functions = ", ".join(sorted(self.engine.functions)) or "(none)"
        return f"""symcas REPL Commands:
  :help              Show this help
  :load FILE         Load rules from file (.rules or .json)
  :rules             List all loaded rules
  :clear             Remove all rules
  :simplify on|off   Toggle simplification
  :latex on|off      Toggle LaTeX output
  :numeric on|off    Toggle floating point results
  :trace on|off      Toggle rewrite tracing
  :postfix EXPR      Show the postfix form of EXPR
  :debug EXPR        Show the tree of EXPR
  :quit              Exit

Syntax:
  @name: ?x + 0 => ?x      Define a rule
  2 * (x + 1)              Evaluate an expression

Functions: {functions}
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None. Errors propagate.
        """
        line = line.strip()

        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        if "=>" in line:
            before = len(self.engine)
            self.engine = self.engine.with_rules(line)
            return f"Added {len(self.engine) - before} rule(s)"

        return self.evaluate(line)

    def run(self):
        """Run the REPL loop."""
        print(f"symcas {__version__}")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                prompt = "...... " if self.multi_line_buffer else "symcas> "
                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += " " + line
                else:
                    self.multi_line_buffer = line

                if count_parens(self.multi_line_buffer) > 0:
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                try:
                    result = self.process_line(complete_input)
                except USER_ERRORS as e:
                    print(f"Error: {e}")
                    continue
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class BatchRunner:
    """Runs expressions from the command line or stdin."""

    def __init__(self, repl: SymcasREPL):
        self.repl = repl

    def run_expressions(self, expressions: List[str]) -> int:
        """
        Evaluate each expression and print its result.

        Returns:
            Exit code: 1 at the first failing expression, else 0
        """
        for text in expressions:
            try:
                result = self.repl.process_line(text)
            except USER_ERRORS as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            if result:
                print(result)
        return 0

    def run_stdin(self) -> int:
        """Read expressions from stdin, one per line."""
        for lineno, line in enumerate(sys.stdin, 1):
            try:
                result = self.repl.process_line(line)
            except USER_ERRORS as e:
                print(f"<stdin>:{lineno}: Error: {e}", file=sys.stderr)
                return 1
            if result:
                print(result)
        return 0


def build_engine(args: argparse.Namespace, debugging: bool) -> Engine:
    """Engine with the built-in functions plus everything named on the command line."""
    engine = Engine().with_functions()
    for path in args.functions:
        engine = engine.with_functions(load_custom_functions(path))
    for rules_file in args.rules:
        engine = engine.with_rules_file(Path(rules_file))
        logger.info("Loaded rules from %s", rules_file)
    return engine.with_max_depth(args.max_depth).with_debugging(debugging)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="symcas",
        description="symcas - parse, evaluate and simplify mathematical expressions",
        epilog="Examples:\n"
               "  symcas '2 * (3 + 4)'             Evaluate an expression\n"
               "  symcas -s 'x * x'                Evaluate and simplify\n"
               "  symcas -l 'sqrt(x) / 2'          LaTeX output\n"
               "  echo 'ln(1)' | symcas            Filter mode\n"
               "  symcas                           REPL\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "expressions",
        nargs="*",
        help="Expressions to evaluate"
    )

    parser.add_argument(
        "-s", "--simplify",
        action="store_true",
        help="Simplify results with the rule table"
    )

    parser.add_argument(
        "-l", "--latex",
        action="store_true",
        help="Print results as LaTeX"
    )

    parser.add_argument(
        "-n", "--numeric",
        action="store_true",
        help="Force results to floating point"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Show the rules applied while simplifying"
    )

    parser.add_argument(
        "-r", "--rules",
        action="append",
        default=[],
        help="Load rules from file (can be specified multiple times)"
    )

    parser.add_argument(
        "-f", "--functions",
        action="append",
        default=[],
        help="Load functions from a Python file defining FUNCTIONS (repeatable)"
    )

    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Deepest expression tree accepted (default: %(default)s)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Show each evaluation stage; -vv also enables engine debugging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args(argv)

    debugging = args.verbose >= 2 or env_debugging()
    configure_logging(args.verbose, debugging)

    try:
        engine = build_engine(args, debugging)
    except USER_ERRORS as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    interactive = not args.expressions and sys.stdin.isatty()
    repl = SymcasREPL(engine, simplify=args.simplify, latex=args.latex,
                      trace=args.trace, numeric=args.numeric,
                      verbose=args.verbose >= 1, history=interactive)
    runner = BatchRunner(repl)

    if args.expressions:
        return runner.run_expressions(args.expressions)

    if not interactive:
        return runner.run_stdin()

    repl.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
