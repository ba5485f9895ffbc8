"""
Shared test doubles and constants.
"""

from optiid.randomness import EntropySource, RandomSource

ADMIN = "0xad00000000000000000000000000000000000001"
REGISTRY_ADDRESS = "0x4e6700000000000000000000000000000000beef"
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
FEE = 1000
START_TIME = 1_700_000_000


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedRandomSource(RandomSource):
    """Returns scripted choices in order, then falls back to the first item."""

    def __init__(self, picks=None):
        self.picks = list(picks or [])
        self._counter = 0

    def randbelow(self, upper: int) -> int:
        return 0

    def token_bytes(self, length: int) -> bytes:
        self._counter += 1
        return self._counter.to_bytes(length, "big")

    def choice(self, items):
        if self.picks:
            pick = self.picks.pop(0)
            assert pick in items
            return pick
        return items[0]


class FixedEntropySource(EntropySource):
    """Yields the given values in order."""

    def __init__(self, values):
        self.values = list(values)

    def next_nonce(self) -> int:
        return self.values.pop(0)


def register_signed(registry, signer, owner, partition, label, payment=0):
    """Issue an authorization and submit it."""
    authorization = signer.issue(owner, partition, label)
    return registry.register(owner, partition, label, authorization, payment=payment)
