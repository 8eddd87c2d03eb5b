"""
Rule DSL and loaders for symcas.

DSL Format (.rules files):
    # Comment
    @name: matcher => replacement
    @name "Description text": matcher => replacement
    matcher => replacement
    :include other.rules

    Templates are infix expressions in which ?name is a pattern variable:

    @add-zero: ?x + 0 => ?x
    @factor "Pull out a common factor": ?x + ?x * ?y => ?x * (1 + ?y)

JSON Format:
    {
        "rules": [
            {"name": "add-zero", "description": "...",
             "matcher": "?x + 0", "replacement": "?x"},
            or just ["?x + 0", "?x"]
        ]
    }

Malformed rules raise ValueError; missing include files FileNotFoundError.
"""

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import SymError
from .parse import parse_template
from .printer import print_infix
from .simplifier import Rule, RuleMetadata

INCLUDE = ':include '

# Applied in this order, each at most once per pass
DEFAULT_RULES = """\
@add-zero-left "0 + x = x": 0 + ?x => ?x
@add-zero-right "x + 0 = x": ?x + 0 => ?x
@mul-zero-right "x * 0 = 0": ?x * 0 => 0
@mul-zero-left "0 * x = 0": 0 * ?x => 0
@square "x * x = x^2": ?x * ?x => ?x ^ 2
@double "x + x = 2x": ?x + ?x => 2 * ?x
@div-self "x / x = 1": ?x / ?x => 1
@div-to-mul "x / y = x * y^-1": ?x / ?y => ?x * ?y ^ (-1)
@factor-left "x + x*y = x*(1 + y)": ?x + ?x * ?y => ?x * (1 + ?y)
@factor-right "x*y + x = x*(1 + y)": ?x * ?y + ?x => ?x * (1 + ?y)
@pow-add "x^y * x^z = x^(y + z)": ?x ^ ?y * ?x ^ ?z => ?x ^ (?y + ?z)
"""


def _variables(names: Dict[str, int]) -> Tuple[str, ...]:
    return tuple(sorted(names, key=names.get))


def make_rule(
    engine,
    matcher: str,
    replacement: str,
    metadata: Optional[RuleMetadata] = None,
) -> Rule:
    """
    Build a Rule from infix matcher and replacement templates.

    Raises:
        ValueError: a template does not parse, or the replacement uses a
            pattern variable the matcher does not bind
    """
    names: Dict[str, int] = {}
    try:
        matcher_tree = parse_template(engine, matcher, names)
        bound = set(names)
        replacement_tree = parse_template(engine, replacement, names)
    except SymError as e:
        raise ValueError(f"Invalid rule template in '{matcher} => {replacement}': {e}") from e

    unbound = set(names) - bound
    if unbound:
        listed = ", ".join(f"?{name}" for name in sorted(unbound))
        raise ValueError(f"Replacement uses unbound pattern variable(s): {listed}")

    return Rule(matcher_tree, replacement_tree, metadata, _variables(names))


def parse_rule_line(line: str, engine) -> Optional[Rule]:
    """
    Parse a single rule line.

    Formats:
        @name: matcher => replacement
        @name "description": matcher => replacement
        matcher => replacement

    Returns: a Rule, or None for blank and comment lines
    """
    line = line.strip()

    if not line or line.startswith('#'):
        return None

    metadata = RuleMetadata()
    if line.startswith('@'):
        match_obj = re.match(r'@([\w-]+)\s+"([^"]+)":\s*(.+)', line)
        if match_obj:
            metadata.name = match_obj.group(1)
            metadata.description = match_obj.group(2)
            line = match_obj.group(3)
        else:
            match_obj = re.match(r'@([\w-]+):\s*(.+)', line)
            if not match_obj:
                raise ValueError(f"Malformed rule header: {line}")
            metadata.name = match_obj.group(1)
            line = match_obj.group(2)

    if '=>' not in line:
        raise ValueError(f"Rule is missing '=>': {line}")

    matcher, replacement = (part.strip() for part in line.split('=>', 1))
    if not matcher or not replacement:
        raise ValueError(f"Rule needs both a matcher and a replacement: {line}")

    return make_rule(engine, matcher, replacement, metadata)


def load_rules_from_dsl(
    text: str,
    engine,
    base_path: Optional[Path] = None,
    _included_files: Optional[frozenset] = None,
) -> List[Rule]:
    """
    Load rules from DSL text.

    Args:
        text: DSL text containing rules
        engine: Engine whose operators and functions the templates may use
        base_path: Base path for resolving relative :include paths
        _included_files: Internal tracking for circular include detection

    Returns:
        Rules in file order, included files spliced in place
    """
    rules = []
    for line in text.split('\n'):
        line_stripped = line.strip()

        if line_stripped.startswith(INCLUDE):
            include_path_str = line_stripped[len(INCLUDE):].strip()
            if not include_path_str:
                raise ValueError("Missing path after :include")
            include_path = Path(include_path_str)
            if base_path:
                include_path = base_path / include_path
            if not include_path.exists():
                raise FileNotFoundError(f"Include file not found: {include_path}")
            rules.extend(load_rules_from_file(include_path, engine, _included_files))
            continue

        rule = parse_rule_line(line, engine)
        if rule is not None:
            rules.append(rule)
    return rules


def load_rules_from_file(
    path: Union[str, Path],
    engine,
    _included_files: Optional[frozenset] = None,
) -> List[Rule]:
    """
    Load rules from a .rules or .json file.

    :include directives in DSL files resolve relative to the containing
    file. A file that (transitively) includes itself raises ValueError.
    """
    path = Path(path)
    abs_path = path.resolve()
    included = _included_files or frozenset()
    if abs_path in included:
        raise ValueError(f"Circular include detected: {path}")

    text = path.read_text()
    if path.suffix == '.json':
        return load_rules_from_json(text, engine)
    return load_rules_from_dsl(
        text,
        engine,
        base_path=path.parent,
        _included_files=included | {abs_path},
    )


def load_rules_from_json(text: str, engine) -> List[Rule]:
    """
    Load rules from JSON text.

    Expected format:
        {
            "rules": [
                {"name": "add-zero", "description": "...",
                 "matcher": "?x + 0", "replacement": "?x"},
                or just ["?x + 0", "?x"]
            ]
        }
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("JSON rules must be an object with a 'rules' list")
    rules = []

    for rule in data.get('rules', []):
        if isinstance(rule, dict):
            metadata = RuleMetadata(
                name=rule.get('name'),
                description=rule.get('description'),
            )
            try:
                matcher = rule['matcher']
                replacement = rule['replacement']
            except KeyError as e:
                raise ValueError(f"JSON rule is missing {e}") from None
        else:
            metadata = RuleMetadata()
            if len(rule) != 2:
                raise ValueError(f"JSON rule must be [matcher, replacement]: {rule}")
            matcher, replacement = rule
        rules.append(make_rule(engine, matcher, replacement, metadata))

    return rules


def format_rule(rule: Rule) -> str:
    """Render a rule as a DSL line that parse_rule_line reads back."""
    names = rule.variables or None
    body = f"{print_infix(rule.matcher, names)} => {print_infix(rule.replacement, names)}"
    meta = rule.metadata
    if not meta.name:
        return body
    if meta.description:
        return f"@{meta.name} \"{meta.description}\": {body}"
    return f"@{meta.name}: {body}"


def rules_to_json(rules, indent: Optional[int] = 2) -> str:
    """Export rules in the format load_rules_from_json reads."""
    rules_list = []
    for rule in rules:
        names = rule.variables or None
        rule_dict = {
            "matcher": print_infix(rule.matcher, names),
            "replacement": print_infix(rule.replacement, names),
        }
        if rule.metadata.name:
            rule_dict["name"] = rule.metadata.name
        if rule.metadata.description:
            rule_dict["description"] = rule.metadata.description
        rules_list.append(rule_dict)
    return json.dumps({"rules": rules_list}, indent=indent)


@lru_cache(maxsize=None)
def default_rules() -> Tuple[Rule, ...]:
    """The default rule table, parsed once."""
    from .engine import Engine
    return tuple(load_rules_from_dsl(DEFAULT_RULES, Engine(rules=())))
