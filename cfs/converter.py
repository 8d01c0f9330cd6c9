"""
Assembles a complete CFS model from parsed FIS data.

This module builds the input variables, the output variables and their rules,
then concatenates their encodings in declaration order:

    [input_count, output_count, and_method, or_method, tsize,
     <inputs>, <outputs>]

It serves as the main interface to the conversion core. It does not read or
write files.
"""

import logging
from typing import Any, Dict, List, Tuple

from cfs import norms
from cfs.exceptions import FeatureError, InputError, UFuzzyError
from cfs.variable import (
    InputVariable,
    MamdaniVariable,
    OutputVariable,
    SugenoVariable,
    count_byte,
)
from utils.logger import set_entity

converter_log = logging.getLogger("converter")

OUTPUT_TYPES = {
    "mamdani": MamdaniVariable,
    "sugeno": SugenoVariable,
}


class Converter:
    """
    Holds the variables built from one FIS model.

    Attributes:
        inputs (List[InputVariable]): Inputs, in declaration order.
        outputs (List[OutputVariable]): Outputs, in declaration order, each
            holding the rules that affect it.
        and_method (int): CFS code of the rule base t-norm.
        or_method (int): CFS code of the rule base s-norm.
    """

    def __init__(self, fis_data: Dict[str, Any]):
        """
        Builds every variable and rule of the model.

        Args:
            fis_data (Dict[str, Any]): Parsed FIS model with "system",
                "inputs", "outputs" and "rules".

        Raises:
            FeatureError: When the model uses an unsupported construct.
            InputError: When the model is incomplete or erroneous.
        """
        system_data = fis_data.get("system", {})
        try:
            system_type = str(system_data.get("Type", "mamdani")).lower()
            if system_type not in OUTPUT_TYPES:
                raise FeatureError("System type not supported.")
            output_class = OUTPUT_TYPES[system_type]

            self.and_method, and_operator = norms.lookup(
                norms.AND_METHODS, system_data.get("AndMethod", "min"), "And"
            )
            self.or_method, or_operator = norms.lookup(
                norms.OR_METHODS, system_data.get("OrMethod", "max"), "Or"
            )
            if not fis_data.get("inputs"):
                raise InputError("No inputs defined.")
            if not fis_data.get("outputs"):
                raise InputError("No outputs defined.")
        except UFuzzyError as exc:
            raise exc.add_frame("System")

        self.system_type = system_type
        self.inputs: List[InputVariable] = []
        for input_data in fis_data["inputs"]:
            set_entity(f"Input {input_data.get('index')}")
            self.inputs.append(InputVariable.from_fis_data(input_data))

        self.outputs: List[OutputVariable] = []
        for output_data in fis_data["outputs"]:
            set_entity(f"Output {output_data.get('index')}")
            output = output_class.from_fis_data(output_data, system_data)
            output.load_rules_from_fis_data(
                self.inputs, fis_data.get("rules", []), and_operator, or_operator
            )
            self.outputs.append(output)

        set_entity("-")
        converter_log.info(
            "Built %s model: %d input(s), %d output(s).",
            system_type, len(self.inputs), len(self.outputs),
        )

    def suggested_ranges(self) -> Dict[int, Tuple[float, float]]:
        """Returns the suggested range of every Sugeno output, by output index."""
        return {
            output.index: output.suggested_range()
            for output in self.outputs
            if isinstance(output, SugenoVariable)
        }

    def to_cfs(self, options: Dict[str, int]) -> List[int]:
        """
        Converts the whole model into CFS data.

        Args:
            options (Dict[str, int]): "dsteps" and "tsize", both base 2
                logarithms (defuzzification steps, tabulated samples).

        Returns:
            List[int]: The CFS model, one byte per element.

        Raises:
            FixedPointError: When a value can't be represented; Sugeno rule
                overflows carry the suggested range of their output.
        """
        cfs_data = [
            count_byte(len(self.inputs), "inputs"),
            count_byte(len(self.outputs), "outputs"),
            self.and_method,
            self.or_method,
            options["tsize"],
        ]
        for variable in self.inputs:
            set_entity(f"Input {variable.index}")
            cfs_data.extend(variable.to_cfs(options))
        for variable in self.outputs:
            set_entity(f"Output {variable.index}")
            cfs_data.extend(variable.to_cfs(options))
        set_entity("-")

        converter_log.info("CFS model assembled: %d bytes.", len(cfs_data))
        return cfs_data


def fis_to_cfs(fis_data: Dict[str, Any], options: Dict[str, int]) -> List[int]:
    """Converts parsed FIS data into CFS data. See Converter."""
    return Converter(fis_data).to_cfs(options)


def to_bytes(cfs_data: List[int]) -> bytes:
    return bytes(cfs_data)
