"""
Fuzzy operators understood by the embedded runtime.

The AND and OR tables map a FIS method name to (CFS code, implementation)
because rule activation combines clauses with them. The implementations take
an iterable of degrees so rules with any number of clauses can be combined.
The output method tables only carry CFS codes.
"""

from typing import Callable, Dict, Iterable, Tuple

from cfs.exceptions import FeatureError

Operator = Callable[[Iterable[float]], float]


# --- T-norms ---
def t_min(vals: Iterable[float]) -> float:
    return min(vals, default=1.0)


def t_prod(vals: Iterable[float]) -> float:
    p = 1.0
    for v in vals:
        p *= float(v)
    return p


# --- S-norms ---
def s_max(vals: Iterable[float]) -> float:
    return max(vals, default=0.0)


def s_probor(vals: Iterable[float]) -> float:
    acc = 0.0
    for v in vals:
        v = float(v)
        acc = acc + v - acc * v
    return acc


AND_METHODS: Dict[str, Tuple[int, Operator]] = {
    "min": (0, t_min),
    "prod": (1, t_prod),
}
OR_METHODS: Dict[str, Tuple[int, Operator]] = {
    "max": (0, s_max),
    "probor": (1, s_probor),
}
IMPLICATION_METHODS: Dict[str, int] = {
    "min": 0,
    "prod": 1,
}
AGGREGATION_METHODS: Dict[str, int] = {
    "max": 0,
    "sum": 1,
    "probor": 2,
}
DEFUZZIFICATION_METHODS: Dict[str, int] = {
    "centroid": 0,
    "bisector": 1,
    "mom": 2,
    "lom": 3,
    "som": 4,
}


def lookup(table: Dict, method: str, kind: str):
    """
    Returns the table entry for method.

    Raises:
        FeatureError: When the method is not in the table.
    """
    if method not in table:
        raise FeatureError(f"{kind} method not supported.")
    return table[method]
