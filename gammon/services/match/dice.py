import random
from typing import List, Tuple

from flask import current_app, has_app_context


ZERO_DICE = (0, 0)
DIE_FACES = (1, 6)


def get_rng(rng=None):
    """Return the dice source: an explicit override, the app's installed
    source, or the module-level generator outside an app context.
    """
    if rng is not None:
        return rng
    if has_app_context():
        installed = current_app.extensions.get('dice_rng')
        if installed is not None:
            return installed
    return random


def make_rng(seed=None) -> random.Random:
    return random.Random(int(seed)) if seed not in (None, '') else random.Random()


def draw_die(rng) -> int:
    return rng.randint(*DIE_FACES)


def is_rolled(dice) -> bool:
    return tuple(dice) != ZERO_DICE


def move_budget(d1: int, d2: int) -> List[int]:
    """Four copies for doubles, otherwise both values high to low."""
    for d in (d1, d2):
        if not DIE_FACES[0] <= d <= DIE_FACES[1]:
            raise ValueError(f"die value out of range: {d}")
    if d1 == d2:
        return [d1] * 4
    return sorted([d1, d2], reverse=True)


def roll_turn(rng=None) -> Tuple[Tuple[int, int], List[int]]:
    """Ordinary in-turn roll. An equal pair is kept as doubles."""
    source = get_rng(rng)
    d1 = draw_die(source)
    d2 = draw_die(source)
    return (d1, d2), move_budget(d1, d2)
