# tests/conftest.py
import logging

import pytest

from utils.logger import LOGGER_NAMES

TIPPER_FIS = """\
[System]
Name='tipper'
Type='mamdani'
Version=2.0
NumInputs=2
NumOutputs=1
NumRules=3
AndMethod='min'
OrMethod='max'
ImpMethod='min'
AggMethod='max'
DefuzzMethod='centroid'

[Input1]
Name='service'
Range=[0 10]
NumMFs=3
MF1='poor':'gaussmf',[1.5 0]
MF2='good':'gaussmf',[1.5 5]
MF3='excellent':'gaussmf',[1.5 10]

[Input2]
Name='food'
Range=[0 10]
NumMFs=2
MF1='rancid':'trapmf',[0 0 1 3]
MF2='delicious':'trapmf',[7 9 10 10]

[Output1]
Name='tip'
Range=[0 30]
NumMFs=3
MF1='cheap':'trimf',[0 5 10]
MF2='average':'trimf',[10 15 20]
MF3='generous':'trimf',[20 25 30]

[Rules]
1 1, 1 (1) : 2
2 0, 2 (1) : 1
3 2, 3 (1) : 2
"""

# One input, one output, y = 10 x. The declared output range is too narrow
# for the coefficient, which makes the conversion overflow.
RAMP_FIS = """\
[System]
Name='ramp'
Type='sugeno'
NumInputs=1
NumOutputs=1
NumRules=1
AndMethod='prod'
OrMethod='probor'
DefuzzMethod='wtaver'

[Input1]
Name='x'
Range=[0 1]
NumMFs=1
MF1='all':'trapmf',[0 0 1 1]

[Output1]
Name='y'
Range=[{output_min} {output_max}]
NumMFs=1
MF1='ramp':'linear',[10 0]

[Rules]
1, 1 (1) : 1
"""


@pytest.fixture
def options():
    return {"dsteps": 6, "tsize": 4}


@pytest.fixture
def make_variable_data():
    """
    Build a parsed variable section.
    Usage:
        data = make_variable_data(1, (0, 10), [("trimf", [0, 5, 10]), ...])
    """
    def _builder(index, range_, memberships):
        return {
            "index": index,
            "parameters": {"Name": f"var{index}", "Range": list(range_)},
            "membership": [
                {"index": i, "name": f"mf{i}", "type": shape, "parameters": list(params)}
                for i, (shape, params) in enumerate(memberships, 1)
            ],
        }

    return _builder


@pytest.fixture
def make_model(make_variable_data):
    """
    Build parsed FIS data with a single output.
    Usage:
        fis_data = make_model(
            "sugeno",
            inputs=[((0, 1), [("trapmf", [0, 0, 1, 1])])],
            output=((0, 1), [("linear", [10, 0])]),
            rules=[([1], 1), ...],            # (antecedent, consequent)
        )
    """
    def _builder(system_type, inputs, output, rules, **system):
        return {
            "system": {"Name": "model", "Type": system_type, **system},
            "inputs": [
                make_variable_data(i, range_, mfs) for i, (range_, mfs) in enumerate(inputs, 1)
            ],
            "outputs": [make_variable_data(1, output[0], output[1])],
            "rules": [
                {
                    "index": i,
                    "antecedent": list(antecedent),
                    "consequent": [consequent],
                    "weight": 1,
                    "connective": 1,
                }
                for i, (antecedent, consequent) in enumerate(rules, 1)
            ],
        }

    return _builder


@pytest.fixture
def tipper_fis():
    return TIPPER_FIS


@pytest.fixture
def ramp_fis():
    """Returns a function formatting the ramp model with a given output range."""
    def _builder(output_min=0, output_max=1):
        return RAMP_FIS.format(output_min=output_min, output_max=output_max)

    return _builder


@pytest.fixture(autouse=True)
def reset_loggers():
    """Undo setup_logging so file handlers don't leak between tests."""
    yield
    for name in LOGGER_NAMES:
        log = logging.getLogger(name)
        for h in list(log.handlers):
            log.removeHandler(h)
            h.close()
        log.propagate = True
        log.setLevel(logging.NOTSET)
