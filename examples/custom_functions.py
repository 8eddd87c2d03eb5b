"""
Example function table for symcas.

This file shows how to extend the engine with extra functions.

Usage:
    symcas -f examples/custom_functions.py "cbrt(27)" "hypot(3, 4)"

Or in scripts:
    from symcas.cli import load_custom_functions
    engine = Engine().with_functions().with_functions(load_custom_functions(path))
"""

import math

from symcas import Rational, numeric_function
from symcas.functions import exact_root

FUNCTIONS = {
    # Roots and exponentials
    "cbrt": numeric_function(
        "cbrt", 1, lambda x: math.copysign(abs(x) ** (1 / 3), x),
        exact=lambda x: exact_root(Rational(3), x)),
    "exp": numeric_function("exp", 1, math.exp),

    # Hyperbolic functions
    "sinh": numeric_function("sinh", 1, math.sinh),
    "cosh": numeric_function("cosh", 1, math.cosh),
    "tanh": numeric_function("tanh", 1, math.tanh),

    # Two-argument helpers
    "hypot": numeric_function("hypot", 2, math.hypot),
    "mod": numeric_function("mod", 2, math.fmod),

    # Rounding
    "floor": numeric_function("floor", 1, lambda x: float(math.floor(x))),
    "ceil": numeric_function("ceil", 1, lambda x: float(math.ceil(x))),
}
