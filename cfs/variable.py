"""
Input and output variables of a fuzzy model.

A variable owns a range and an ordered list of membership functions. Rules
reference membership functions by position, so the declaration order is kept
all the way into the CFS data.

Encodings:

    input    [mf_count, 0, <membership functions>]
    Mamdani  [0, defuzz, dsteps, implication, aggregation,
              mf_count, 0, <membership functions>, rule_count, <rules>]
    Sugeno   [1, rule_count, <rules>]
"""

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cfs import fixed_point, membership, norms
from cfs.exceptions import FeatureError, FixedPointError, InputError, UFuzzyError
from cfs.membership import CoefficientFunction, Domain, MembershipFunction, is_number
from cfs.rule import MamdaniRule, Rule, SugenoRule

variable_log = logging.getLogger("variable")

MAX_COUNT = 255
ROUNDING_MARGIN = 0.00001
ROUNDING_DIGITS = Decimal("0.00001")


def count_byte(count: int, what: str) -> int:
    """Returns count, which the runtime stores in a single byte."""
    if count > MAX_COUNT:
        raise FeatureError(f"Too many {what}.")
    return count


def range_from_fis_data(variable_data: Dict[str, Any]) -> Tuple[Any, Any]:
    if "parameters" not in variable_data:
        raise InputError("No parameters found. Range is required.")
    param_data = variable_data["parameters"]

    if "Range" not in param_data:
        raise InputError("Range not defined.")

    range_data = param_data["Range"]
    if not isinstance(range_data, (list, tuple)) or len(range_data) != 2:
        raise InputError("Range matrix must have two elements.")
    return range_data[0], range_data[1]


def membership_functions_from_fis_data(
    domain: Domain, variable_data: Dict[str, Any]
) -> List[MembershipFunction]:
    return [
        membership.from_fis_data(domain, membership_data)
        for membership_data in variable_data.get("membership") or []
    ]


class Variable:
    """
    Range and membership functions shared by inputs and outputs.

    Attributes:
        index (Optional[int]): 1-based position in the FIS file.
    """

    def __init__(
        self,
        range_min: float,
        range_max: float,
        membership_functions: Sequence[MembershipFunction] = (),
        index: Optional[int] = None,
    ):
        if not is_number(range_min):
            raise InputError("Range lower bound must be a number.")
        if not is_number(range_max):
            raise InputError("Range upper bound must be a number.")
        if range_max <= range_min:
            raise InputError("Range bounds are swapped.")

        self._range_min = range_min
        self._range_max = range_max
        self.index = index
        self.membership_functions = membership_functions

    @property
    def range_min(self) -> float:
        return self._range_min

    @property
    def range_max(self) -> float:
        return self._range_max

    @property
    def domain(self) -> Domain:
        return Domain(self._range_min, self._range_max)

    @property
    def membership_functions(self) -> List[MembershipFunction]:
        return self._membership_functions

    @membership_functions.setter
    def membership_functions(self, membership_functions: Sequence[MembershipFunction]):
        for function in membership_functions:
            self._check_membership_function(function)
        self._membership_functions = list(membership_functions)

    def _check_membership_function(self, function: MembershipFunction) -> None:
        if isinstance(function, CoefficientFunction):
            raise InputError(
                "Only Sugeno variables can use linear or constant membership functions."
            )

    def _membership_functions_to_cfs(self, options: Dict[str, int]) -> List[int]:
        cfs_data = [count_byte(len(self.membership_functions), "membership functions"), 0]
        for position, function in enumerate(self.membership_functions, 1):
            try:
                cfs_data.extend(function.to_cfs(self.range_min, self.range_max, options))
            except UFuzzyError as exc:
                raise exc.add_frame(f"Membership {position}")
        return cfs_data


class InputVariable(Variable):
    """An input of the fuzzy model."""

    @classmethod
    def from_fis_data(cls, input_data: Dict[str, Any]) -> "InputVariable":
        """
        Creates an input variable from a parsed FIS input section.

        Args:
            input_data (Dict[str, Any]): Section with "index", "parameters"
                (holding "Range") and "membership".

        Raises:
            FeatureError: When a membership function type is not supported.
            InputError: When the section is incomplete or erroneous.
        """
        index = input_data.get("index")
        try:
            range_min, range_max = range_from_fis_data(input_data)
            variable = cls(range_min, range_max, index=index)
            variable.membership_functions = membership_functions_from_fis_data(
                variable.domain, input_data
            )
        except UFuzzyError as exc:
            raise exc.add_frame(f"Input {index}")

        variable_log.info(
            "Input %s: range [%s, %s], %d membership function(s).",
            index, range_min, range_max, len(variable.membership_functions),
        )
        return variable

    def to_cfs(self, options: Dict[str, int]) -> List[int]:
        """
        Converts the input variable into CFS data.

        Args:
            options (Dict[str, int]): Conversion options; "tsize" is used by
                tabulated membership functions.

        Returns:
            List[int]: [mf_count, 0, <membership functions>].
        """
        try:
            return self._membership_functions_to_cfs(options)
        except UFuzzyError as exc:
            raise exc.add_frame(f"Input {self.index}")


class OutputVariable(Variable):
    """
    Common part of Mamdani and Sugeno outputs.

    Attributes:
        rules (List[Rule]): Rules affecting this output, in FIS order.
    """

    CFS_TYPE: int
    RULE_CLASS = Rule

    def __init__(self, range_min, range_max, membership_functions=(), index=None):
        super().__init__(range_min, range_max, membership_functions, index)
        self.rules: List[Rule] = []

    @classmethod
    def from_fis_data(
        cls, output_data: Dict[str, Any], system_data: Dict[str, Any]
    ) -> "OutputVariable":
        """
        Creates an output variable from a parsed FIS output section.

        Args:
            output_data (Dict[str, Any]): The output section.
            system_data (Dict[str, Any]): The system section, holding the
                inference methods.

        Raises:
            FeatureError: When a method or membership type is not supported.
            InputError: When the section is incomplete or erroneous.
        """
        index = output_data.get("index")
        try:
            range_min, range_max = range_from_fis_data(output_data)
            variable = cls(range_min, range_max, index=index)
            variable.configure(system_data)
            variable.membership_functions = membership_functions_from_fis_data(
                variable.domain, output_data
            )
        except UFuzzyError as exc:
            raise exc.add_frame(f"Output {index}")

        variable_log.info(
            "Output %s (%s): range [%s, %s], %d membership function(s).",
            index, type(variable).__name__, range_min, range_max,
            len(variable.membership_functions),
        )
        return variable

    def configure(self, system_data: Dict[str, Any]) -> None:
        """Reads the inference methods this output type depends on."""

    def load_rules_from_fis_data(
        self,
        inputs: Sequence[InputVariable],
        rules_data: Sequence[Dict[str, Any]],
        and_operator: norms.Operator,
        or_operator: norms.Operator,
    ) -> None:
        """
        Builds the rules whose consequent for this output is not zero.

        Raises:
            InputError: When a rule references missing variables or
                membership functions.
        """
        rules = []
        for position, rule_data in enumerate(rules_data, 1):
            consequent = rule_data.get("consequent") or []
            if len(consequent) >= self.index and consequent[self.index - 1] == 0:
                continue
            rule_data = {"index": position, **rule_data}
            try:
                rules.append(
                    self.RULE_CLASS.from_fis_data(
                        inputs, self, rule_data, and_operator, or_operator
                    )
                )
            except UFuzzyError as exc:
                raise exc.add_frame(f"Rule {rule_data['index']}").add_frame(
                    f"Output {self.index}"
                )
        self.rules = rules
        variable_log.info("Output %s: %d rule(s).", self.index, len(rules))

    def _rules_to_cfs(self) -> List[int]:
        cfs_data = [count_byte(len(self.rules), "rules")]
        # Rules are numbered by their position among the rules of this output.
        for position, rule in enumerate(self.rules, 1):
            try:
                cfs_data.extend(rule.to_cfs())
            except UFuzzyError as exc:
                exc.add_frame(f"Rule {position} that affects Output {self.index}")
                self._annotate(exc)
                raise
        return cfs_data

    def _annotate(self, exc: UFuzzyError) -> None:
        """Adds output specific advice to an error raised by a rule."""

    def to_cfs(self, options: Dict[str, int]) -> List[int]:
        raise NotImplementedError


class MamdaniVariable(OutputVariable):
    """Output whose rules select one of its membership functions."""

    CFS_TYPE = 0
    RULE_CLASS = MamdaniRule

    def configure(self, system_data):
        self.defuzzification = norms.lookup(
            norms.DEFUZZIFICATION_METHODS,
            system_data.get("DefuzzMethod", "centroid"),
            "Defuzzification",
        )
        self.implication = norms.lookup(
            norms.IMPLICATION_METHODS, system_data.get("ImpMethod", "min"), "Implication"
        )
        self.aggregation = norms.lookup(
            norms.AGGREGATION_METHODS, system_data.get("AggMethod", "max"), "Aggregation"
        )

    def to_cfs(self, options: Dict[str, int]) -> List[int]:
        """
        Converts the Mamdani output into CFS data.

        Args:
            options (Dict[str, int]): Conversion options; "dsteps" is the base
                2 logarithm of the number of defuzzification steps and "tsize"
                is used by tabulated membership functions.

        Returns:
            List[int]: Header, membership functions and rules.
        """
        cfs_data = [
            self.CFS_TYPE,
            self.defuzzification,
            options["dsteps"],
            self.implication,
            self.aggregation,
        ]
        try:
            cfs_data.extend(self._membership_functions_to_cfs(options))
        except UFuzzyError as exc:
            raise exc.add_frame(f"Output {self.index}")
        cfs_data.extend(self._rules_to_cfs())
        return cfs_data


class SugenoVariable(OutputVariable):
    """Output whose rules compute a linear function of the inputs."""

    CFS_TYPE = 1
    RULE_CLASS = SugenoRule

    def configure(self, system_data):
        if system_data.get("DefuzzMethod", "wtaver") != "wtaver":
            raise FeatureError("Defuzzification method not supported.")

    def _check_membership_function(self, function):
        if not isinstance(function, CoefficientFunction):
            raise InputError(
                "Sugeno variables can only use linear or constant membership functions."
            )

    def _output_limits(self) -> Tuple[float, float]:
        ranges = [rule.output_limits() for rule in self.rules]
        minimums, maximums = zip(*ranges)
        return min(minimums), max(maximums)

    def _fit_independent_terms(
        self, range_min: float, range_max: float, scale: float
    ) -> Tuple[float, float]:
        minimum = float("inf")
        maximum = float("-inf")
        for rule in self.rules:
            rule_min, rule_max = rule.fit_independent_term(range_min, range_max, scale)
            minimum = min(minimum, rule_min)
            maximum = max(maximum, rule_max)
        return minimum, maximum

    def suggested_range(self) -> Tuple[float, float]:
        """
        Returns a range in which every rule coefficient fits in fixed point.

        Returns:
            Tuple[float, float]: (output_min, output_max). The declared range
                when the output has no rules.
        """
        if not self.rules:
            return self.range_min, self.range_max

        output_min, output_max = self._output_limits()

        # Normalizing with output_min and output_max only uses [0, 1] out of
        # the representable [-2, 2].
        range_min, range_max = fixed_point.optimal_range(output_min, output_max)

        overflows = [rule.coefficient_overflow(range_min, range_max) for rule in self.rules]
        maximum = max(overflows)
        minimum = min(overflows)
        overflow = minimum if abs(minimum) > abs(maximum) else maximum

        suggested_min, suggested_max = self._fit_independent_terms(
            range_min, range_max, max(abs(overflow), 1.0)
        )

        rounding = (suggested_max - suggested_min) * ROUNDING_MARGIN
        return (
            float(Decimal(suggested_min - rounding).quantize(ROUNDING_DIGITS, rounding=ROUND_FLOOR)),
            float(Decimal(suggested_max + rounding).quantize(ROUNDING_DIGITS, rounding=ROUND_CEILING)),
        )

    def _annotate(self, exc):
        if isinstance(exc, FixedPointError):
            exc.suggested_range = self.suggested_range()
            exc.hint = (
                f"The suggested range for Output {self.index} is "
                f"[{exc.suggested_range[0]}, {exc.suggested_range[1]}]."
            )

    def to_cfs(self, options: Dict[str, int]) -> List[int]:
        """
        Converts the Sugeno output into CFS data.

        Args:
            options (Dict[str, int]): Unused, kept for compatibility with
                the other output types.

        Raises:
            FixedPointError: When a rule coefficient overflows. The error
                carries the suggested range of this output.
        """
        return [self.CFS_TYPE] + self._rules_to_cfs()
