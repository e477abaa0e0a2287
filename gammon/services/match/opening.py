from typing import NamedTuple

from .dice import draw_die, get_rng


class OpeningRoll(NamedTuple):
    a: int
    b: int
    winner: str  # 'a' or 'b'

    @property
    def pair(self):
        return (self.a, self.b)


def resolve_opening(rng=None) -> OpeningRoll:
    """One die per side; ties are discarded and both dice redrawn.

    Unlike an in-turn roll there are no doubles here: the loop only exits on
    distinct values, so the higher die always names a strict winner.
    """
    source = get_rng(rng)
    while True:
        a = draw_die(source)
        b = draw_die(source)
        if a != b:
            return OpeningRoll(a=a, b=b, winner='a' if a > b else 'b')
