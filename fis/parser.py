"""
Reader for MATLAB style .fis files.

Grammar (summary):

  [System]              Name='x', Type='mamdani'|'sugeno', AndMethod='min', ...
  [Input<n>]            Name='x', Range=[min max], NumMFs=k
  [Output<n>]           same as inputs
      MF<k>='label':'type',[p1 p2 ...]
  [Rules]
      a_1 ... a_n, c_1 ... c_m (weight) : connective

Notes:
- Lines starting with '%' or '#' are comments.
- Membership references in rules are 1-based, 0 means "not used", a negative
  value negates the clause. Connective 1 is AND, 2 is OR.
- Sections and membership functions are returned sorted by their number,
  which is the order rules refer to them by.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from cfs.exceptions import FeatureError, InputError, UFuzzyError

parser_log = logging.getLogger("parser")

_SECTION = re.compile(r"^\[\s*([A-Za-z]+)\s*(\d*)\s*\]$")
_ENTRY = re.compile(r"^([A-Za-z]+)(\d*)\s*=\s*(.*)$")
_MEMBERSHIP = re.compile(r"^'([^']*)'\s*:\s*'([^']*)'\s*,\s*\[([^\]]*)\]$")
_RULE = re.compile(r"^([^,]*),([^(]*)\(([^)]*)\)\s*:\s*(\S+)$")


def _number(token: str):
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        raise InputError(f"Invalid number '{token}'.")


def _numbers(text: str) -> List:
    return [_number(token) for token in re.split(r"[\s,;]+", text.strip()) if token]


def _value(text: str) -> Any:
    """Parses the right hand side of a key=value entry."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1]
    if text.startswith("[") and text.endswith("]"):
        return _numbers(text[1:-1])
    try:
        return _number(text)
    except InputError:
        return text


def _membership(index: int, text: str) -> Dict[str, Any]:
    match = _MEMBERSHIP.match(text.strip())
    if not match:
        raise InputError(f"Malformed membership function MF{index}.")
    name, shape, parameters = match.groups()
    return {
        "index": index,
        "name": name,
        "type": shape,
        "parameters": _numbers(parameters),
    }


def _integers(text: str, what: str) -> List[int]:
    values = _numbers(text)
    if not all(isinstance(v, int) for v in values):
        raise FeatureError(f"{what} hedges are not supported.")
    return values


def _rule(index: int, text: str) -> Dict[str, Any]:
    match = _RULE.match(text)
    if not match:
        raise InputError("Malformed rule.")
    antecedent, consequent, weight, connective = match.groups()
    return {
        "index": index,
        "antecedent": _integers(antecedent, "Antecedent"),
        "consequent": _integers(consequent, "Consequent"),
        "weight": _number(weight.strip()),
        "connective": _number(connective),
    }


def parse_fis(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    return parse_fis_string(source)


def parse_fis_string(source: str) -> Dict[str, Any]:
    """
    Parses the text of a .fis file.

    Args:
        source (str): File contents.

    Returns:
        Dict[str, Any]: {"system": {...}, "inputs": [...], "outputs": [...],
            "rules": [...]}, in the layout expected by cfs.converter.

    Raises:
        InputError: On malformed lines, framed with their line number.
        FeatureError: On rule hedges.
    """
    system: Dict[str, Any] = {}
    variables: Dict[str, Dict[int, Dict[str, Any]]] = {"input": {}, "output": {}}
    rules: List[Dict[str, Any]] = []

    section: Tuple[str, int] = ("", 0)
    current: Dict[str, Any] = {}

    for lineno, raw in enumerate(source.splitlines(), 1):
        line = raw.strip()
        if not line or line[0] in "%#":
            continue

        try:
            match = _SECTION.match(line)
            if match:
                name = match.group(1).lower()
                number = int(match.group(2)) if match.group(2) else 0
                section = (name, number)
                if name in variables:
                    if number in variables[name]:
                        raise InputError(f"Duplicated section [{match.group(1)}{number}].")
                    current = {"index": number, "parameters": {}, "membership": {}}
                    variables[name][number] = current
                elif name not in ("system", "rules"):
                    parser_log.warning("Line %d: ignoring section [%s].", lineno, match.group(1))
                continue

            name, number = section
            if name == "rules":
                rules.append(_rule(len(rules) + 1, line))
                continue

            match = _ENTRY.match(line)
            if not match:
                raise InputError("Expected key=value.")
            key, key_number, text = match.groups()

            if name == "system":
                system[key + key_number] = _value(text)
            elif name in variables and key == "MF" and key_number:
                mf_index = int(key_number)
                current["membership"][mf_index] = _membership(mf_index, text)
            elif name in variables:
                current["parameters"][key + key_number] = _value(text)
            elif name == "":
                raise InputError("Entry outside of any section.")
        except UFuzzyError as exc:
            raise exc.add_frame(f"Line {lineno}")

    fis_data = {"system": system, "rules": rules}
    for kind in variables:
        sections = []
        for number in sorted(variables[kind]):
            data = variables[kind][number]
            data["membership"] = [data["membership"][k] for k in sorted(data["membership"])]
            sections.append(data)
        fis_data[kind + "s"] = sections

    parser_log.info(
        "Parsed FIS '%s': %d input(s), %d output(s), %d rule(s).",
        system.get("Name", ""), len(fis_data["inputs"]), len(fis_data["outputs"]), len(rules),
    )
    return fis_data
