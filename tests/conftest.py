import pytest

from analysis import analyze_snapshot
from tests.helpers import scenario_chains


@pytest.fixture
def chains():
    return scenario_chains()


@pytest.fixture
def analysis(chains):
    return analyze_snapshot(chains)
