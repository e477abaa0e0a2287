"""Match session state machine.

awaiting_opponent -> awaiting_start -> in_progress -> completed

All status/turn/dice transitions for a session go through this module (and
settlement for the final edge). Writes are conditional updates via
``guard.compare_and_set`` so two clients racing on the same session can
never produce a merged state.
"""
import json
from datetime import datetime
from typing import Optional

from flask import current_app

from gammon import db
from gammon.errors import AlreadyRolled, Forbidden, InvalidState, NotFound, NotYourTurn
from gammon.models import MatchSession, SessionStatus, starting_board
from . import guard
from .dice import ZERO_DICE, is_rolled, move_budget, roll_turn
from .opening import resolve_opening


def other_side(side: str) -> str:
    return 'b' if side == 'a' else 'a'


def seat_of(session: MatchSession, user_id) -> Optional[str]:
    if user_id is None:
        return None
    if session.player_a_id == user_id:
        return 'a'
    if session.player_b_id == user_id:
        return 'b'
    return None


def get_session(session_id) -> MatchSession:
    session = db.session.get(MatchSession, session_id)
    if session is None:
        raise NotFound(f"Match session {session_id} not found")
    return session


def _reload(session_id) -> MatchSession:
    db.session.expire_all()
    return get_session(session_id)


def _require_seat(session: MatchSession, user_id) -> str:
    side = seat_of(session, user_id)
    if side is None:
        raise Forbidden('You are not a player in this match')
    return side


def _require_mover(session: MatchSession, user_id) -> str:
    side = _require_seat(session, user_id)
    if session.status != SessionStatus.IN_PROGRESS:
        raise InvalidState(f"Match is not in progress: {session.status}")
    if session.turn != side:
        raise NotYourTurn('It is not your turn')
    return side


def open_session(creator_id, wager: int = 0, is_rated: bool = True, target_score: Optional[int] = None) -> MatchSession:
    """Create a lobby session with the creator seated as player A."""
    if wager < 0:
        raise InvalidState('Wager must be non-negative')
    if target_score is None:
        target_score = int(current_app.config.get('DEFAULT_TARGET_SCORE', 5))
    session = MatchSession(
        player_a_id=creator_id,
        status=SessionStatus.AWAITING_OPPONENT.value,
        wager=wager,
        is_rated=is_rated,
        target_score=target_score,
    )
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[open] session={session.id} creator={creator_id} wager={wager} rated={is_rated}")
    return session


def join_session(session_id, caller_id) -> MatchSession:
    session = get_session(session_id)
    if session.player_b_id == caller_id:
        return session
    if session.player_a_id == caller_id:
        raise Forbidden('You cannot join your own match')
    if session.status != SessionStatus.AWAITING_OPPONENT:
        raise InvalidState(f"Match is not awaiting an opponent: {session.status}")

    landed = guard.compare_and_set(
        MatchSession, session.id,
        expected={'status': SessionStatus.AWAITING_OPPONENT.value, 'player_b_id': None},
        values={'player_b_id': caller_id, 'status': SessionStatus.AWAITING_START.value},
    )
    session = _reload(session_id)
    if not landed and session.player_b_id != caller_id:
        current_app.logger.info(f"[join-race] session={session.id} user={caller_id} seat taken by {session.player_b_id}")
        raise InvalidState('Another player has already joined this match')
    current_app.logger.info(f"[join] session={session.id} user={caller_id}")
    return session


def request_ready(session_id, caller_id, rng=None) -> MatchSession:
    """Mark the caller ready; the second ready player's call starts the match."""
    session = get_session(session_id)
    side = _require_seat(session, caller_id)

    if session.status in (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED):
        return session
    if session.status != SessionStatus.AWAITING_START:
        raise InvalidState(f"Match is in an invalid state: {session.status}")

    flag = f"player_{side}_ready"
    if not getattr(session, flag):
        landed = guard.compare_and_set(
            MatchSession, session.id,
            expected={'status': SessionStatus.AWAITING_START.value},
            values={flag: True},
        )
        if not landed:
            # The match started (or was reaped) between our read and write.
            return _reload(session_id)

    both_ready = (
        guard.read_field(MatchSession, session.id, 'player_a_ready')
        and guard.read_field(MatchSession, session.id, 'player_b_ready')
    )
    current_app.logger.info(f"[ready] session={session.id} user={caller_id} side={side} both_ready={bool(both_ready)}")
    if not both_ready:
        return _reload(session_id)

    opening = resolve_opening(rng)
    started = guard.compare_and_set(
        MatchSession, session.id,
        expected={'status': SessionStatus.AWAITING_START.value},
        values={
            'status': SessionStatus.IN_PROGRESS.value,
            'board': json.dumps(starting_board()),
            'cube_value': 1,
            'cube_owner': None,
            'cube_position': 'center',
            'turn': opening.winner,
            'opening_rolls': json.dumps({'a': opening.a, 'b': opening.b}),
            'is_opening_move': True,
            'die_one': opening.a,
            'die_two': opening.b,
            'move_budget': json.dumps(move_budget(opening.a, opening.b)),
            'started_at': datetime.utcnow(),
        },
    )
    if started:
        current_app.logger.info(
            f"[start] session={session.id} opening a={opening.a} b={opening.b} first={opening.winner}"
        )
    else:
        current_app.logger.info(f"[start-race] session={session.id} already started by the other player")
    return _reload(session_id)


def roll_dice(session_id, caller_id, rng=None) -> MatchSession:
    session = get_session(session_id)
    side = _require_mover(session, caller_id)
    if is_rolled(session.dice):
        raise AlreadyRolled('Dice have already been rolled for this turn')

    dice, budget = roll_turn(rng)
    landed = guard.compare_and_set(
        MatchSession, session.id,
        expected={
            'status': SessionStatus.IN_PROGRESS.value,
            'turn': side,
            'die_one': ZERO_DICE[0],
            'die_two': ZERO_DICE[1],
        },
        values={'die_one': dice[0], 'die_two': dice[1], 'move_budget': json.dumps(budget)},
    )
    if not landed:
        current_app.logger.warning(f"[roll-race] session={session.id} user={caller_id} lost to a concurrent roll")
        raise AlreadyRolled('Dice have already been rolled for this turn')
    current_app.logger.info(f"[roll] session={session.id} side={side} dice={dice} budget={budget}")
    return _reload(session_id)


def end_turn(session_id, caller_id) -> MatchSession:
    """Hand the turn to the other player.

    Whether the budget was used up is the rules engine's call; it only
    invokes this once the moves are exhausted or forfeited.
    """
    session = get_session(session_id)
    side = _require_mover(session, caller_id)
    next_side = other_side(side)
    landed = guard.compare_and_set(
        MatchSession, session.id,
        expected={'status': SessionStatus.IN_PROGRESS.value, 'turn': side},
        values={
            'turn': next_side,
            'die_one': ZERO_DICE[0],
            'die_two': ZERO_DICE[1],
            'move_budget': '[]',
            'is_opening_move': False,
        },
    )
    if not landed:
        raise NotYourTurn('It is not your turn')
    current_app.logger.info(f"[end_turn] session={session.id} {side} -> {next_side}")
    return _reload(session_id)
