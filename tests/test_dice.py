import itertools
import random

import pytest

from gammon.services.match.dice import ZERO_DICE, get_rng, is_rolled, move_budget, roll_turn
from gammon.services.match.opening import resolve_opening


def test_move_budget_for_every_pair():
    for d1, d2 in itertools.product(range(1, 7), repeat=2):
        budget = move_budget(d1, d2)
        if d1 == d2:
            assert budget == [d1, d1, d1, d1]
        else:
            assert budget == sorted([d1, d2], reverse=True)
            assert len(budget) == 2


@pytest.mark.parametrize('bad', [(0, 3), (7, 1), (3, -1)])
def test_move_budget_rejects_faces_outside_die(bad):
    with pytest.raises(ValueError):
        move_budget(*bad)


def test_is_rolled():
    assert not is_rolled(ZERO_DICE)
    assert not is_rolled([0, 0])
    assert is_rolled((3, 5))


def test_roll_turn_keeps_doubles(dice):
    rolled, budget = roll_turn(dice(4, 4))
    assert rolled == (4, 4)
    assert budget == [4, 4, 4, 4]


def test_roll_turn_sorts_budget_high_to_low(dice):
    rolled, budget = roll_turn(dice(2, 6))
    assert rolled == (2, 6)
    assert budget == [6, 2]


def test_opening_redraws_ties(dice):
    source = dice(3, 3, 5, 5, 2, 6)
    opening = resolve_opening(source)
    assert opening.pair == (2, 6)
    assert opening.winner == 'b'
    assert source.remaining == 0


def test_opening_higher_die_moves_first(dice):
    assert resolve_opening(dice(6, 1)).winner == 'a'


def test_opening_never_returns_a_tie():
    rng = random.Random(1234)
    for _ in range(500):
        opening = resolve_opening(rng)
        assert opening.a != opening.b
        assert 1 <= opening.a <= 6 and 1 <= opening.b <= 6
        assert opening.winner == ('a' if opening.a > opening.b else 'b')


def test_get_rng_prefers_override_then_app_source(flask_app, dice):
    override = dice(1)
    assert get_rng(override) is override
    assert get_rng() is flask_app.extensions['dice_rng']


def test_seeded_app_source_is_reproducible(flask_app):
    from gammon.services.match.dice import make_rng
    rng_one, rng_two = make_rng('7'), make_rng('7')
    first = [roll_turn(rng_one)[0] for _ in range(20)]
    second = [roll_turn(rng_two)[0] for _ in range(20)]
    assert first == second
