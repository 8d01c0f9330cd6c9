# tests/test_converter.py
import pytest

from cfs.converter import Converter, fis_to_cfs, to_bytes
from cfs.exceptions import FeatureError, InputError
from cfs.variable import MamdaniVariable, SugenoVariable
from fis.parser import parse_fis_string

UNIT_INPUT = ((0, 1), [("trapmf", [0, 0, 1, 1])])


@pytest.fixture
def tiny_sugeno(make_model):
    return make_model("sugeno", [UNIT_INPUT], ((0, 2), [("linear", [1, 0])]), [([1], 1)])


def test_tiny_sugeno_model(tiny_sugeno):
    cfs = fis_to_cfs(tiny_sugeno, {"dsteps": 6, "tsize": 2})

    assert cfs == [
        # inputs, outputs, and, or, tsize
        1, 1, 0, 0, 2,
        # Input 1
        1, 0,
        0, 0, 0, 0, 0, 0, 0x3F, 0xFF, 0x3F, 0xFF,
        # Output 1
        1, 1,
        0, 1, 0, 0, 0x3F, 0xFF,
        0x1F, 0xFF, 0, 0,
    ]


def test_to_bytes(tiny_sugeno):
    cfs = fis_to_cfs(tiny_sugeno, {"dsteps": 6, "tsize": 2})
    data = to_bytes(cfs)

    assert isinstance(data, bytes)
    assert list(data) == cfs


def test_tipper(tipper_fis, options):
    converter = Converter(parse_fis_string(tipper_fis))
    cfs = converter.to_cfs(options)

    assert len(cfs) == 194
    assert cfs[:5] == [2, 1, 0, 0, 4]
    # Input 1 holds three tabulated shapes of 2^4 samples.
    assert cfs[5:7] == [3, 0]
    assert cfs[7:9] == [0, 1]
    # Input 2 holds two knee shapes.
    assert cfs[109:111] == [2, 0]
    # Output header then its three knee shapes.
    assert cfs[131:138] == [0, 0, 6, 0, 0, 3, 0]
    assert cfs[168] == 3
    assert cfs[-25:] == [
        1, 2, 0, 0, 1, 0, 0x3F, 0xFF, 0,
        0, 1, 0, 1, 0x3F, 0xFF, 1,
        1, 2, 0, 2, 1, 1, 0x3F, 0xFF, 2,
    ]


def test_tipper_variables(tipper_fis):
    converter = Converter(parse_fis_string(tipper_fis))

    assert converter.system_type == "mamdani"
    assert [v.index for v in converter.inputs] == [1, 2]
    assert len(converter.outputs) == 1
    assert isinstance(converter.outputs[0], MamdaniVariable)
    assert [rule.index for rule in converter.outputs[0].rules] == [1, 2, 3]


def test_conversion_is_deterministic(tipper_fis, options):
    fis_data = parse_fis_string(tipper_fis)
    assert fis_to_cfs(fis_data, options) == fis_to_cfs(fis_data, options)


def test_tsize_changes_tabulated_length(tipper_fis):
    fis_data = parse_fis_string(tipper_fis)

    short = fis_to_cfs(fis_data, {"dsteps": 6, "tsize": 4})
    long = fis_to_cfs(fis_data, {"dsteps": 6, "tsize": 5})

    # Three gaussmf functions, 16 more words each.
    assert len(long) - len(short) == 3 * 16 * 2


def test_sugeno_methods(make_model):
    fis_data = make_model(
        "sugeno", [UNIT_INPUT], ((0, 2), [("linear", [1, 0])]), [([1], 1)],
        AndMethod="prod", OrMethod="probor",
    )
    converter = Converter(fis_data)

    assert isinstance(converter.outputs[0], SugenoVariable)
    assert converter.to_cfs({"dsteps": 1, "tsize": 1})[:5] == [1, 1, 1, 1, 1]


@pytest.mark.parametrize(
    "system, message",
    [
        ({"Type": "tsk"}, "System: System type not supported."),
        ({"Type": "mamdani", "AndMethod": "bsum"}, "System: And method not supported."),
        ({"Type": "mamdani", "OrMethod": "min"}, "System: Or method not supported."),
    ],
)
def test_unsupported_system(tipper_fis, system, message):
    fis_data = parse_fis_string(tipper_fis)
    fis_data["system"].update(system)

    with pytest.raises(FeatureError) as excinfo:
        Converter(fis_data)
    assert str(excinfo.value) == message


@pytest.mark.parametrize(
    "section, message",
    [
        ("inputs", "System: No inputs defined."),
        ("outputs", "System: No outputs defined."),
    ],
)
def test_missing_variables(tipper_fis, section, message):
    fis_data = parse_fis_string(tipper_fis)
    fis_data[section] = []

    with pytest.raises(InputError) as excinfo:
        Converter(fis_data)
    assert str(excinfo.value) == message


def test_errors_are_located(tipper_fis):
    fis_data = parse_fis_string(tipper_fis)
    fis_data["inputs"][1]["membership"][0]["parameters"] = [3, 1, 0, 0]

    with pytest.raises(InputError) as excinfo:
        Converter(fis_data)
    assert str(excinfo.value) == "Input 2: Membership 1: Parameters are not ordered."


def test_rule_errors_are_located(tipper_fis):
    fis_data = parse_fis_string(tipper_fis)
    fis_data["rules"][2]["consequent"] = [4]

    with pytest.raises(InputError) as excinfo:
        Converter(fis_data)
    assert str(excinfo.value) == "Output 1: Rule 3: Output 1 has no membership function 4."
