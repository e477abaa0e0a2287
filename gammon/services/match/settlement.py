"""Post-game settlement: Elo ratings, wager transfer, ledger, finalization.

complete_match runs as a chain of sub-steps keyed by the session id. The
winner is pinned first, so every resumed call settles for the same player. Each
later sub-step checks its own marker on the session (``ratings_settled``,
``wager_settled``) before touching anything and sets that marker in the same
commit as its writes, so a retried or duplicated call resumes where a
previous one stopped instead of applying anything twice. ``status`` is
written last; once a caller observes ``completed`` it returns immediately.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from flask import current_app

from gammon import db
from gammon.errors import DataIntegrity, Forbidden, InvalidState
from gammon.models import LedgerEntry, MatchSession, PlayerRating, SessionStatus, User
from . import guard
from .controller import get_session, other_side, seat_of


DEFAULT_K_FACTOR = 32


@dataclass
class SettlementOutcome:
    session: MatchSession
    replayed: bool = False
    rating_change: Optional[int] = None
    winner_rating: Optional[int] = None
    loser_rating: Optional[int] = None
    wager_change: int = 0

    def to_dict(self):
        return {
            'replayed': self.replayed,
            'rating_change': self.rating_change,
            'winner_rating': self.winner_rating,
            'loser_rating': self.loser_rating,
            'wager_change': self.wager_change,
        }


def expected_score(rating: int, opponent_rating: int) -> float:
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def elo_delta(winner_rating: int, loser_rating: int, k: int = DEFAULT_K_FACTOR) -> int:
    """Points moved from loser to winner, rounded half up.

    The loser's change is exactly the negation, so rating is conserved.
    """
    return int(math.floor(k * (1 - expected_score(winner_rating, loser_rating)) + 0.5))


def debit_clamped(balance: int, wager: int) -> int:
    """Amount actually taken from the loser so the balance stays >= 0."""
    return max(0, min(wager, balance))


def _load_ratings(winner_id, loser_id) -> Tuple[PlayerRating, PlayerRating]:
    winner = PlayerRating.query.filter_by(user_id=winner_id).first()
    loser = PlayerRating.query.filter_by(user_id=loser_id).first()
    if winner is None or loser is None:
        missing = [uid for uid, rec in ((winner_id, winner), (loser_id, loser)) if rec is None]
        raise DataIntegrity(f"Player rating not found for user(s) {missing}")
    return winner, loser


def _load_users(winner_id, loser_id) -> Tuple[User, User]:
    winner = db.session.get(User, winner_id)
    loser = db.session.get(User, loser_id)
    if winner is None or loser is None:
        raise DataIntegrity('Player account not found for settlement')
    return winner, loser


def _claim_winner(session_id, winner_id) -> bool:
    """Pin the winner on the session before any settlement write.

    Returns False when the match was finalized by another call in the
    meantime. A resumed call naming a different winner is rejected.
    """
    claimed = guard.compare_and_set(
        MatchSession, session_id,
        expected={'winner_id': None, 'status': SessionStatus.IN_PROGRESS.value},
        values={'winner_id': winner_id},
    )
    if claimed:
        return True
    stored = guard.read_field(MatchSession, session_id, 'winner_id')
    if guard.already_reached(MatchSession, session_id, 'status', SessionStatus.COMPLETED.value):
        return False
    if stored != winner_id:
        current_app.logger.warning(
            f"[complete-conflict] session={session_id} stored winner={stored} requested={winner_id}"
        )
        raise InvalidState(f"Settlement already started with winner {stored}")
    return True


def _settle_ratings(session_id, winner: PlayerRating, loser: PlayerRating) -> Optional[int]:
    if guard.already_reached(MatchSession, session_id, 'ratings_settled', True):
        return None
    landed = guard.compare_and_set(
        MatchSession, session_id,
        expected={'ratings_settled': False, 'status': SessionStatus.IN_PROGRESS.value},
        values={'ratings_settled': True},
        commit=False,
    )
    if not landed:
        return None
    k = int(current_app.config.get('ELO_K_FACTOR', DEFAULT_K_FACTOR))
    delta = elo_delta(winner.rating, loser.rating, k)
    winner.rating += delta
    winner.games_played += 1
    winner.games_won += 1
    loser.rating -= delta
    loser.games_played += 1
    db.session.commit()
    current_app.logger.info(f"[settle-ratings] session={session_id} delta={delta}")
    return delta


def _settle_wager(session_id, wager: int, winner: User, loser: User) -> Optional[int]:
    if guard.already_reached(MatchSession, session_id, 'wager_settled', True):
        return None
    # Marker first: nothing is staged yet, so a lost race flushes no ledger rows.
    landed = guard.compare_and_set(
        MatchSession, session_id,
        expected={'wager_settled': False, 'status': SessionStatus.IN_PROGRESS.value},
        values={'wager_settled': True},
        commit=False,
    )
    if not landed:
        return None
    debit = debit_clamped(loser.balance, wager)
    # Winner always receives the full stake, even when the loser's debit is clamped.
    winner.balance += wager
    loser.balance -= debit
    db.session.add(LedgerEntry(
        user_id=winner.id,
        amount=wager,
        resulting_balance=winner.balance,
        related_session_id=session_id,
        kind='match_win',
        description=f"Won {wager} from {loser.username}",
    ))
    # Loser amount is the clamped debit; the ledger sums to the balance movement.
    description = f"Lost {wager} to {winner.username}"
    if debit < wager:
        description += f"; debit capped at available balance ({debit} of {wager})"
    db.session.add(LedgerEntry(
        user_id=loser.id,
        amount=-debit,
        resulting_balance=loser.balance,
        related_session_id=session_id,
        kind='match_loss',
        description=description,
    ))
    db.session.commit()
    if debit < wager:
        current_app.logger.warning(
            f"[settle-wager] session={session_id} loser={loser.id} short by {wager - debit}; winner credited in full"
        )
    current_app.logger.info(f"[settle-wager] session={session_id} wager={wager} debit={debit}")
    return wager


def complete_match(session_id, winner_id) -> SettlementOutcome:
    session = get_session(session_id)
    if session.status == SessionStatus.COMPLETED:
        current_app.logger.info(f"[complete-replay] session={session.id} already completed")
        return SettlementOutcome(session=session, replayed=True)

    winner_side = seat_of(session, winner_id)
    if winner_side is None:
        raise Forbidden('Winner is not a player in this match')
    if session.status != SessionStatus.IN_PROGRESS:
        raise InvalidState(f"Match is not in progress: {session.status}")
    loser_id = session.player_id_for(other_side(winner_side))

    # Resolve every record up front so a missing one fails before any write.
    ratings = _load_ratings(winner_id, loser_id) if session.is_rated else None
    users = _load_users(winner_id, loser_id) if session.wager > 0 else None

    if not _claim_winner(session.id, winner_id):
        db.session.expire_all()
        current_app.logger.info(f"[complete-race] session={session_id} finalized by a concurrent call")
        return SettlementOutcome(session=get_session(session_id), replayed=True)

    outcome = SettlementOutcome(session=session)
    if ratings is not None:
        outcome.rating_change = _settle_ratings(session.id, *ratings)
        winner_rating, loser_rating = _load_ratings(winner_id, loser_id)
        outcome.winner_rating = winner_rating.rating
        outcome.loser_rating = loser_rating.rating
    if users is not None:
        outcome.wager_change = _settle_wager(session.id, session.wager, *users) or 0

    finalized = guard.compare_and_set(
        MatchSession, session_id,
        expected={'status': SessionStatus.IN_PROGRESS.value, 'winner_id': winner_id},
        values={
            'status': SessionStatus.COMPLETED.value,
            'completed_at': datetime.utcnow(),
        },
    )
    db.session.expire_all()
    outcome.session = get_session(session_id)
    if not finalized:
        current_app.logger.info(f"[complete-race] session={session_id} finalized by a concurrent call")
        outcome.replayed = True
        return outcome
    current_app.logger.info(
        f"[complete] session={session_id} winner={winner_id} loser={loser_id} "
        f"rating_change={outcome.rating_change} wager_change={outcome.wager_change}"
    )
    return outcome
