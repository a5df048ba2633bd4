import sys
from pathlib import Path

import pytest

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).parent.parent))


class ScriptedRng:
    """Stands in for random.Random; hands out a fixed list of draws in order."""

    def __init__(self, draws):
        self.draws = list(draws)
        self.used = 0

    def random(self):
        if self.used >= len(self.draws):
            raise AssertionError("unexpected extra draw")
        v = self.draws[self.used]
        self.used += 1
        return v


@pytest.fixture
def scripted():
    return ScriptedRng
