import pytest

from db import RoundStore
from rounds import RoundLifecycle
from tests.helpers import FakePuzzles


@pytest.fixture()
def store(tmp_path):
    store = RoundStore(str(tmp_path / "golf.db"))
    store.init()
    return store


@pytest.fixture()
def puzzles():
    return FakePuzzles(number=999)


@pytest.fixture()
def lifecycle(store, puzzles):
    return RoundLifecycle(store, fetch_puzzle=puzzles)
