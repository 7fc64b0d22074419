import pytest

from nightbar.engine import Simulation, new_game
from nightbar.logger import UILogger


@pytest.fixture
def make_sim():
    def _make(seed=42, config=None, selector=None):
        state = new_game(seed, config)
        return Simulation(state, UILogger(), selector=selector)
    return _make


@pytest.fixture
def sim(make_sim):
    return make_sim()
