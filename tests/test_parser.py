# tests/test_parser.py
import pytest

from cfs.exceptions import FeatureError, InputError
from fis.parser import parse_fis, parse_fis_string


def test_parse_tipper(tipper_fis):
    fis_data = parse_fis_string(tipper_fis)

    assert fis_data["system"]["Type"] == "mamdani"
    assert fis_data["system"]["NumInputs"] == 2
    assert fis_data["system"]["Version"] == 2.0
    assert [section["index"] for section in fis_data["inputs"]] == [1, 2]
    assert fis_data["inputs"][0]["parameters"]["Range"] == [0, 10]
    assert fis_data["inputs"][0]["parameters"]["Name"] == "service"
    assert fis_data["outputs"][0]["membership"][2] == {
        "index": 3,
        "name": "generous",
        "type": "trimf",
        "parameters": [20, 25, 30],
    }
    assert fis_data["rules"][1] == {
        "index": 2,
        "antecedent": [2, 0],
        "consequent": [2],
        "weight": 1,
        "connective": 1,
    }


def test_parse_file(tmp_path, tipper_fis):
    path = tmp_path / "tipper.fis"
    path.write_text(tipper_fis, encoding="utf-8")

    assert parse_fis(str(path)) == parse_fis_string(tipper_fis)


def test_sections_and_memberships_are_sorted():
    source = """\
[System]
Type='mamdani'

[Input2]
Range=[0 1]
MF2='b':'trimf',[0 1 1]
MF1='a':'trimf',[0 0 1]

[Input1]
Range=[-1 1]
"""
    fis_data = parse_fis_string(source)

    assert [s["index"] for s in fis_data["inputs"]] == [1, 2]
    assert [m["name"] for m in fis_data["inputs"][1]["membership"]] == ["a", "b"]
    assert fis_data["outputs"] == []
    assert fis_data["rules"] == []


def test_comments_and_blank_lines_are_skipped():
    source = """\
% generated model
[System]
# type of the model
Type='sugeno'

[Output1]
Range=[0.5 1e3]
MF1='k':'constant',[-2.5]
"""
    fis_data = parse_fis_string(source)

    assert fis_data["system"] == {"Type": "sugeno"}
    assert fis_data["outputs"][0]["parameters"]["Range"] == [0.5, 1000.0]
    assert fis_data["outputs"][0]["membership"][0]["parameters"] == [-2.5]


def test_negated_and_weighted_rules():
    source = """\
[Rules]
-1 2 0, 1 -2 (0.5) : 2
"""
    (rule,) = parse_fis_string(source)["rules"]

    assert rule["antecedent"] == [-1, 2, 0]
    assert rule["consequent"] == [1, -2]
    assert rule["weight"] == 0.5
    assert rule["connective"] == 2


def test_unknown_sections_are_ignored(caplog):
    source = """\
[System]
Type='mamdani'

[Plot]
Color=1
"""
    with caplog.at_level("WARNING", logger="parser"):
        fis_data = parse_fis_string(source)

    assert fis_data["system"] == {"Type": "mamdani"}
    assert "ignoring section [Plot]" in caplog.text


@pytest.mark.parametrize(
    "source, message",
    [
        ("[Input1]\n[Input1]\n", "Line 2: Duplicated section [Input1]."),
        ("[System]\nType\n", "Line 2: Expected key=value."),
        ("Type='mamdani'\n", "Line 1: Entry outside of any section."),
        ("[Input1]\nRange=[0 x]\n", "Line 2: Invalid number 'x'."),
        ("[Input1]\nMF1='a':'trimf'\n", "Line 2: Malformed membership function MF1."),
        ("[Rules]\n1 1 1 : 1\n", "Line 2: Malformed rule."),
    ],
)
def test_malformed_input(source, message):
    with pytest.raises(InputError) as excinfo:
        parse_fis_string(source)
    assert str(excinfo.value) == message


def test_hedges_are_not_supported():
    with pytest.raises(FeatureError) as excinfo:
        parse_fis_string("[Rules]\n1.2 1, 1 (1) : 1\n")
    assert str(excinfo.value) == "Line 2: Antecedent hedges are not supported."
