"""
Rules of a fuzzy model and their CFS encodings.

A rule is stored once for every output it affects. The antecedent is a list
of clauses (input, membership function, negation) combined by the AND or OR
operator chosen for the whole rule base. The consequent depends on the output
type: an output membership function for Mamdani outputs, a linear function of
the inputs for Sugeno outputs.

Rule encoding:

    [connective, clause_count,
     (input_index, membership_index | NEGATED) * clause_count,
     weight_high, weight_low,
     <consequent>]
"""

import logging
from typing import Any, Dict, List, NamedTuple, Sequence, Tuple

from cfs import fixed_point
from cfs.exceptions import FeatureError, InputError
from cfs.membership import CoefficientFunction, is_number
from cfs.norms import Operator

rule_log = logging.getLogger("rule")

# Connective values used by FIS rule lines.
FIS_AND = 1
FIS_OR = 2

# Connective values used by CFS rules.
CFS_AND = 0
CFS_OR = 1

NEGATED = 0x80


class Clause(NamedTuple):
    input_index: int
    membership_index: int
    negated: bool


def _membership_reference(value: Any, available: int, owner: str) -> Tuple[int, bool]:
    """
    Validates a 1-based, possibly negated, FIS membership reference.

    Returns:
        Tuple[int, bool]: (0-based index, negated).
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise InputError("Membership function indices must be integers.")
    if abs(value) > available:
        raise InputError(f"{owner} has no membership function {abs(value)}.")
    if abs(value) > NEGATED - 1:
        raise FeatureError("Too many membership functions.")
    return abs(value) - 1, value < 0


class Rule:
    """
    Common part of Mamdani and Sugeno rules.

    Attributes:
        inputs (Sequence): Input variables of the model, in declaration order.
        clauses (List[Clause]): Antecedent clauses, 0-based indices.
        connective (int): FIS_AND or FIS_OR.
        weight (float): Rule weight, in [0, 1].
    """

    def __init__(
        self,
        inputs: Sequence,
        clauses: List[Clause],
        connective: int,
        and_operator: Operator,
        or_operator: Operator,
        weight: float = 1.0,
        index: int = 0,
    ):
        if not clauses:
            raise InputError("Rule has no antecedent.")
        if connective not in (FIS_AND, FIS_OR):
            raise InputError("Connective must be 1 (AND) or 2 (OR).")
        if not is_number(weight) or not 0.0 <= weight <= 1.0:
            raise InputError("Weight must be a number in [0, 1].")

        self.inputs = inputs
        self.clauses = clauses
        self.connective = connective
        self.and_operator = and_operator
        self.or_operator = or_operator
        self.weight = float(weight)
        self.index = index

    @classmethod
    def from_fis_data(
        cls,
        inputs: Sequence,
        output,
        rule_data: Dict[str, Any],
        and_operator: Operator,
        or_operator: Operator,
    ) -> "Rule":
        """
        Builds the rule for one output from a parsed FIS rule line.

        Args:
            inputs (Sequence): Input variables, already built.
            output: The output variable this rule is being built for.
            rule_data (Dict[str, Any]): Entry with "antecedent",
                "consequent", "weight" and "connective".
            and_operator (Operator): T-norm of the rule base.
            or_operator (Operator): S-norm of the rule base.

        Raises:
            InputError: When the rule references missing variables or
                membership functions.
        """
        antecedent = rule_data.get("antecedent")
        if antecedent is None:
            raise InputError("Antecedent not defined.")
        if len(antecedent) != len(inputs):
            raise InputError("Antecedent must have one entry per input.")

        clauses = []
        for input_index, (value, variable) in enumerate(zip(antecedent, inputs)):
            if value == 0:
                continue
            membership_index, negated = _membership_reference(
                value, len(variable.membership_functions), f"Input {input_index + 1}"
            )
            clauses.append(Clause(input_index, membership_index, negated))

        consequent = rule_data.get("consequent")
        if consequent is None or len(consequent) < output.index:
            raise InputError(f"Consequent not defined for Output {output.index}.")
        if "connective" not in rule_data:
            raise InputError("Connective not defined.")

        rule = cls(
            inputs,
            clauses,
            rule_data["connective"],
            and_operator,
            or_operator,
            rule_data.get("weight", 1.0),
            rule_data.get("index", 0),
        )
        rule._consequent_from_fis_data(output, consequent[output.index - 1])
        rule_log.debug(
            "Rule %s -> Output %s: %d clause(s), weight %.3f",
            rule.index, output.index, len(clauses), rule.weight,
        )
        return rule

    def _consequent_from_fis_data(self, output, value: Any) -> None:
        raise NotImplementedError

    def activation(self, values: Sequence[float]) -> float:
        """
        Computes the weighted firing strength of the rule for crisp inputs.

        Args:
            values (Sequence[float]): One crisp value per input.

        Returns:
            float: Degree in [0, 1].
        """
        degrees = []
        for clause in self.clauses:
            function = self.inputs[clause.input_index].membership_functions[clause.membership_index]
            degree = function.evaluate(values[clause.input_index])
            degrees.append(1.0 - degree if clause.negated else degree)

        operator = self.and_operator if self.connective == FIS_AND else self.or_operator
        return self.weight * operator(degrees)

    def to_cfs(self) -> List[int]:
        cfs_data = [
            CFS_AND if self.connective == FIS_AND else CFS_OR,
            len(self.clauses),
        ]
        for clause in self.clauses:
            cfs_data.append(clause.input_index)
            cfs_data.append(clause.membership_index | (NEGATED if clause.negated else 0))
        cfs_data.extend(fixed_point.to_bytes(fixed_point.quantize(self.weight, 0.0, 1.0)))
        cfs_data.extend(self._consequent_to_cfs())
        return cfs_data

    def _consequent_to_cfs(self) -> List[int]:
        raise NotImplementedError


class MamdaniRule(Rule):
    """Rule whose consequent is a membership function of the output."""

    def _consequent_from_fis_data(self, output, value):
        self.membership_index, self.negated = _membership_reference(
            value, len(output.membership_functions), f"Output {output.index}"
        )

    def _consequent_to_cfs(self):
        return [self.membership_index | (NEGATED if self.negated else 0)]


class SugenoRule(Rule):
    """Rule whose consequent is a linear function of the inputs."""

    def _consequent_from_fis_data(self, output, value):
        if isinstance(value, int) and value < 0:
            raise FeatureError("Sugeno outputs don't support negated consequents.")
        membership_index, _ = _membership_reference(
            value, len(output.membership_functions), f"Output {output.index}"
        )
        self.output = output
        self.function: CoefficientFunction = output.membership_functions[membership_index]
        # Checks the number of coefficients against the number of inputs.
        self.function.terms(len(self.inputs))

    @property
    def domains(self):
        return [variable.domain for variable in self.inputs]

    def output_limits(self) -> Tuple[float, float]:
        """
        Returns the lowest and highest value the consequent can take.

        Every input is assumed to range over its whole declared interval.
        """
        coefficients, independent = self.function.terms(len(self.inputs))

        low = high = independent
        for a, variable in zip(coefficients, self.inputs):
            ends = (a * variable.range_min, a * variable.range_max)
            low += min(ends)
            high += max(ends)
        return low, high

    def coefficient_overflow(self, range_min: float, range_max: float) -> float:
        """
        Returns how far the largest input coefficient exceeds the fixed point limit.

        Args:
            range_min (float): Candidate lower bound of the output.
            range_max (float): Candidate upper bound of the output.

        Returns:
            float: Signed ratio between the coefficient with the largest
                magnitude and the representable magnitude. A magnitude above 1
                means overflow; 0.0 when the rule has no input coefficients.
        """
        coefficients, _ = self.function.normalized_terms(self.domains, range_min, range_max)
        if not coefficients:
            return 0.0
        return fixed_point.overflow(max(coefficients, key=abs))

    def fit_independent_term(
        self, range_min: float, range_max: float, scale: float
    ) -> Tuple[float, float]:
        """
        Widens a range by scale and moves it until the independent term fits.

        The span is multiplied by scale around its centre, which divides
        every input coefficient by scale. The range is then shifted, keeping
        the span, until the normalized independent term lies in [-2, 2].

        Returns:
            Tuple[float, float]: The range this rule needs.
        """
        span = (range_max - range_min) * scale
        range_min = (range_min + range_max) / 2.0 - span / 2.0

        _, independent = self.function.normalized_terms(
            self.domains, range_min, range_min + span
        )
        limit = fixed_point.MAX_MAGNITUDE
        if independent > limit:
            range_min += (independent - limit) * span
        elif independent < -limit:
            range_min += (independent + limit) * span
        return range_min, range_min + span

    def _consequent_to_cfs(self):
        return self.function.to_cfs(
            self.output.range_min, self.output.range_max, inputs=self.domains
        )
