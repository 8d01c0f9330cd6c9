"""
Membership function shapes and their CFS encodings.

Three encoding families share one contract:

- Piecewise linear shapes (rectangular, triangular, trapezoidal) are stored
  as a shape word followed by four knee positions normalized to the range of
  the owning variable.
- Tabulated shapes (sigmoids, Z/S/Pi curves, Gaussians, bells) are stored as
  a shape word followed by 2^tsize quantized samples of the curve.
- Coefficient shapes (linear, constant) only appear in Sugeno outputs and
  store normalized coefficients instead of a curve.
"""

import logging
import math
import numbers
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from cfs import fixed_point
from cfs.exceptions import FeatureError, InputError, UFuzzyError

membership_log = logging.getLogger("membership")


class Domain(NamedTuple):
    """Read-only snapshot of the range of the variable owning a function."""

    range_min: float
    range_max: float


def is_number(value: Any) -> bool:
    """True for finite reals; booleans, NaN and infinities are rejected."""
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def _sigmoid(a: float, c: float, x: float) -> float:
    z = a * (x - c)
    # Split on the sign so math.exp never overflows.
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def _gaussian(sigma: float, c: float, x: float) -> float:
    return math.exp(-((x - c) ** 2) / (2.0 * sigma**2))


def _s_curve(a: float, b: float, x: float) -> float:
    if x <= a:
        return 0.0
    if x >= b:
        return 1.0
    if x <= (a + b) / 2.0:
        return 2.0 * ((x - a) / (b - a)) ** 2
    return 1.0 - 2.0 * ((x - b) / (b - a)) ** 2


def _z_curve(a: float, b: float, x: float) -> float:
    return 1.0 - _s_curve(a, b, x)


class MembershipFunction:
    """
    Base class of every membership function shape.

    Attributes:
        domain (Domain): Range of the owning variable.
        parameters (Tuple[float, ...]): Shape parameters, in FIS order.
        name (Optional[str]): Linguistic label.
    """

    PARAMETER_NUMBER: Optional[int] = None
    ORDERED = False

    def __init__(self, domain: Domain, *parameters: float, name: Optional[str] = None):
        if self.PARAMETER_NUMBER is not None and len(parameters) != self.PARAMETER_NUMBER:
            raise InputError("Unexpected number of parameters.")
        if not all(is_number(p) for p in parameters):
            raise InputError("Parameters must be numeric.")
        if self.ORDERED and any(a > b for a, b in zip(parameters, parameters[1:])):
            raise InputError("Parameters are not ordered.")

        self.domain = domain
        self.name = name
        self.parameters: Tuple[float, ...] = tuple(float(p) for p in parameters)
        self._validate()

    def _validate(self) -> None:
        """Shape specific checks, run once the parameters are stored."""

    def evaluate(self, x: float) -> float:
        raise NotImplementedError

    def evaluate_many(self, xs: Sequence[float]) -> np.ndarray:
        """Evaluates the function at every position of xs."""
        return np.fromiter((self.evaluate(float(x)) for x in xs), dtype=float)

    def to_cfs(self, range_min: float, range_max: float, options: Optional[Dict[str, int]] = None) -> List[int]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.parameters}"


# ----------------------------------------------------------------------------
# Piecewise linear shapes
# ----------------------------------------------------------------------------
class PiecewiseLinear(MembershipFunction):
    """A shape fully described by its four knees."""

    CFS_TYPE = 0
    ORDERED = True

    def knees(self) -> Tuple[float, float, float, float]:
        """Returns (left foot, left shoulder, right shoulder, right foot)."""
        raise NotImplementedError

    def evaluate(self, x: float) -> float:
        a, b, c, d = self.knees()
        if x < a or x > d:
            return 0.0
        if b <= x <= c:
            return 1.0
        if x < b:
            return (x - a) / (b - a)
        return (d - x) / (d - c)

    def to_cfs(self, range_min: float, range_max: float, options: Optional[Dict[str, int]] = None) -> List[int]:
        """
        Encodes the shape word followed by the four knees.

        Knees outside [range_min, range_max] are clamped to the nearest edge.

        Args:
            range_min (float): Lower bound of the owning variable.
            range_max (float): Upper bound of the owning variable.
            options (Optional[Dict[str, int]]): Unused.

        Returns:
            List[int]: Ten bytes, two per word.
        """
        cfs_data = fixed_point.to_bytes(self.CFS_TYPE)
        for knee in self.knees():
            knee = max(range_min, min(range_max, knee))
            cfs_data.extend(
                fixed_point.to_bytes(fixed_point.quantize(knee, range_min, range_max))
            )
        return cfs_data


class Rectangular(PiecewiseLinear):
    PARAMETER_NUMBER = 2

    def knees(self):
        a, b = self.parameters
        return a, a, b, b


class Triangular(PiecewiseLinear):
    PARAMETER_NUMBER = 3

    def knees(self):
        a, b, c = self.parameters
        return a, b, b, c


class Trapezoidal(PiecewiseLinear):
    PARAMETER_NUMBER = 4

    def knees(self):
        return self.parameters


# ----------------------------------------------------------------------------
# Tabulated shapes
# ----------------------------------------------------------------------------
class Tabulated(MembershipFunction):
    """A curve stored as evenly spaced samples across the variable range."""

    CFS_TYPE = 1

    def to_cfs(self, range_min: float, range_max: float, options: Optional[Dict[str, int]] = None) -> List[int]:
        """
        Encodes the shape word followed by 2^tsize quantized samples.

        Args:
            range_min (float): Position of the first sample.
            range_max (float): Position of the last sample.
            options (Dict[str, int]): Must contain "tsize", the base 2
                logarithm of the number of samples.

        Returns:
            List[int]: Two bytes per word.
        """
        samples = self.evaluate_many(np.linspace(range_min, range_max, 2 ** options["tsize"]))

        cfs_data = fixed_point.to_bytes(self.CFS_TYPE)
        for sample in samples:
            cfs_data.extend(fixed_point.to_bytes(fixed_point.quantize(float(sample), 0.0, 1.0)))
        return cfs_data


class Sigmoid(Tabulated):
    """sigmf: 1 / (1 + exp(-a (x - c))), parameters (a, c)."""

    PARAMETER_NUMBER = 2

    def evaluate(self, x):
        a, c = self.parameters
        return _sigmoid(a, c, x)


class ZShaped(Tabulated):
    PARAMETER_NUMBER = 2
    ORDERED = True

    def evaluate(self, x):
        a, b = self.parameters
        return _z_curve(a, b, x)


class SShaped(Tabulated):
    PARAMETER_NUMBER = 2
    ORDERED = True

    def evaluate(self, x):
        a, b = self.parameters
        return _s_curve(a, b, x)


class PiShaped(Tabulated):
    """pimf: S curve rising over (a, b) times Z curve falling over (c, d)."""

    PARAMETER_NUMBER = 4
    ORDERED = True

    def evaluate(self, x):
        a, b, c, d = self.parameters
        return _s_curve(a, b, x) * _z_curve(c, d, x)


class Gaussian(Tabulated):
    """gaussmf, parameters (sigma, c)."""

    PARAMETER_NUMBER = 2

    def _validate(self):
        if self.parameters[0] == 0:
            raise InputError("Standard deviation can't be zero.")

    def evaluate(self, x):
        sigma, c = self.parameters
        return _gaussian(sigma, c, x)


class Gaussian2(Tabulated):
    """gauss2mf: left Gaussian (sigma1, c1), right Gaussian (sigma2, c2)."""

    PARAMETER_NUMBER = 4

    def _validate(self):
        if self.parameters[0] == 0 or self.parameters[2] == 0:
            raise InputError("Standard deviation can't be zero.")

    def evaluate(self, x):
        sigma1, c1, sigma2, c2 = self.parameters
        left = _gaussian(sigma1, c1, x) if x < c1 else 1.0
        right = _gaussian(sigma2, c2, x) if x > c2 else 1.0
        return left * right


class GeneralizedBell(Tabulated):
    """gbellmf: 1 / (1 + |(x - c) / a|^(2b)), parameters (a, b, c)."""

    PARAMETER_NUMBER = 3

    def _validate(self):
        if self.parameters[0] == 0:
            raise InputError("Bell width can't be zero.")

    def evaluate(self, x):
        a, b, c = self.parameters
        distance = abs((x - c) / a)
        if distance == 0.0 and b < 0:
            # Limit of the curve at its centre when the slope is negative.
            return 0.0
        try:
            return 1.0 / (1.0 + distance ** (2.0 * b))
        except OverflowError:
            return 0.0


class DifferenceSigmoid(Tabulated):
    """dsigmf, parameters (a1, c1, a2, c2)."""

    PARAMETER_NUMBER = 4

    def evaluate(self, x):
        a1, c1, a2, c2 = self.parameters
        return _clamp01(_sigmoid(a1, c1, x) - _sigmoid(a2, c2, x))


class ProductSigmoid(Tabulated):
    """psigmf, parameters (a1, c1, a2, c2)."""

    PARAMETER_NUMBER = 4

    def evaluate(self, x):
        a1, c1, a2, c2 = self.parameters
        return _sigmoid(a1, c1, x) * _sigmoid(a2, c2, x)


# ----------------------------------------------------------------------------
# Coefficient shapes (Sugeno outputs)
# ----------------------------------------------------------------------------
class CoefficientFunction(MembershipFunction):
    """A Sugeno consequent: one coefficient per input plus an independent term."""

    def terms(self, input_count: int) -> Tuple[List[float], float]:
        """Returns (input coefficients, independent term)."""
        raise NotImplementedError

    def evaluate(self, values: Sequence[float]) -> float:
        coefficients, independent = self.terms(len(values))
        return sum(a * x for a, x in zip(coefficients, values)) + independent

    def normalized_terms(
        self, inputs: Sequence[Domain], range_min: float, range_max: float
    ) -> Tuple[List[float], float]:
        """
        Rewrites the consequent for normalized inputs and output.

        With x_i = min_i + n_i * span_i and y = range_min + m * span, the
        consequent y = sum(a_i x_i) + b becomes m = sum(c_i n_i) + c_0 with
        c_i = a_i span_i / span and c_0 = (b + sum(a_i min_i) - range_min) / span.

        Args:
            inputs (Sequence[Domain]): Ranges of the input variables, in order.
            range_min (float): Lower bound of the output range.
            range_max (float): Upper bound of the output range.

        Returns:
            Tuple[List[float], float]: ([c_1 .. c_n], c_0).
        """
        coefficients, independent = self.terms(len(inputs))
        span = range_max - range_min

        normalized = [
            a * (domain.range_max - domain.range_min) / span
            for a, domain in zip(coefficients, inputs)
        ]
        offset = independent + sum(
            a * domain.range_min for a, domain in zip(coefficients, inputs)
        )
        return normalized, (offset - range_min) / span

    def to_cfs(
        self,
        range_min: float,
        range_max: float,
        options: Optional[Dict[str, int]] = None,
        inputs: Sequence[Domain] = (),
    ) -> List[int]:
        """
        Encodes the normalized input coefficients followed by the independent term.

        Raises:
            FixedPointError: When a normalized coefficient exceeds [-2, 2].
        """
        coefficients, independent = self.normalized_terms(inputs, range_min, range_max)

        cfs_data: List[int] = []
        for value in coefficients + [independent]:
            cfs_data.extend(fixed_point.to_bytes(fixed_point.to_fixed(value)))
        return cfs_data


class Linear(CoefficientFunction):
    """linear: parameters (a_1, ..., a_n, b)."""

    def _validate(self):
        if not self.parameters:
            raise InputError("Unexpected number of parameters.")

    def terms(self, input_count):
        if len(self.parameters) != input_count + 1:
            raise InputError("Unexpected number of parameters.")
        return list(self.parameters[:-1]), self.parameters[-1]


class Constant(CoefficientFunction):
    PARAMETER_NUMBER = 1

    def terms(self, input_count):
        return [0.0] * input_count, self.parameters[0]


MEMBERSHIP_FUNCTIONS = {
    "rectmf": Rectangular,
    "trimf": Triangular,
    "trapmf": Trapezoidal,
    "sigmf": Sigmoid,
    "zmf": ZShaped,
    "smf": SShaped,
    "pimf": PiShaped,
    "gaussmf": Gaussian,
    "gauss2mf": Gaussian2,
    "gbellmf": GeneralizedBell,
    "dsigmf": DifferenceSigmoid,
    "psigmf": ProductSigmoid,
    "linear": Linear,
    "constant": Constant,
}


def from_fis_data(domain: Domain, membership_data: Dict[str, Any]) -> MembershipFunction:
    """
    Builds a membership function from a parsed FIS membership entry.

    Args:
        domain (Domain): Range of the owning variable.
        membership_data (Dict[str, Any]): Entry with "index", "name", "type"
            and "parameters".

    Returns:
        MembershipFunction: The shape selected by "type".

    Raises:
        InputError: When the entry is incomplete or its parameters invalid.
        FeatureError: When "type" names an unsupported shape.
    """
    if "index" not in membership_data:
        raise InputError("Membership function index not defined.")
    index = membership_data["index"]

    try:
        if "type" not in membership_data:
            raise InputError("Type not defined.")
        if "name" not in membership_data:
            raise InputError("Name not defined.")
        if "parameters" not in membership_data:
            raise InputError("Parameters not defined.")

        function_class = MEMBERSHIP_FUNCTIONS.get(membership_data["type"])
        if function_class is None:
            raise FeatureError("Type not supported.")

        function = function_class(
            domain, *membership_data["parameters"], name=membership_data["name"]
        )
    except UFuzzyError as exc:
        raise exc.add_frame(f"Membership {index}")

    membership_log.debug("Membership %s: %r ('%s')", index, function, function.name)
    return function
