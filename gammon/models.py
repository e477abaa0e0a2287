from gammon import db, bcrypt
from flask_login import UserMixin
from datetime import datetime
from enum import Enum
import json


class SessionStatus(str, Enum):
    AWAITING_OPPONENT = 'awaiting_opponent'
    AWAITING_START = 'awaiting_start'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class ProposalStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    DECLINED = 'declined'
    STARTED = 'started'


# Canonical opening layout: point -> (side, checkers). Side 'a' moves 24 -> 1.
STARTING_BOARD = {
    24: ('a', 2), 13: ('a', 5), 8: ('a', 3), 6: ('a', 5),
    1: ('b', 2), 12: ('b', 5), 17: ('b', 3), 19: ('b', 5),
}


def starting_board() -> dict:
    return {
        'points': {str(point): {'side': side, 'count': count} for point, (side, count) in STARTING_BOARD.items()},
        'bar': {'a': 0, 'b': 0},
        'borne_off': {'a': 0, 'b': 0},
    }


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    balance = db.Column(db.Integer, default=0, nullable=False)
    rating = db.relationship('PlayerRating', back_populates='user', uselist=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'balance': self.balance,
        }


class PlayerRating(db.Model):
    __tablename__ = 'player_rating'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    rating = db.Column(db.Integer, default=1500, nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    user = db.relationship('User', back_populates='rating')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'rating': self.rating,
            'games_played': self.games_played,
            'games_won': self.games_won,
        }


class LedgerEntry(db.Model):
    """Append-only balance movement tied to a match session."""
    __tablename__ = 'ledger_entry'
    __table_args__ = (
        db.UniqueConstraint('related_session_id', 'user_id', name='uq_ledger_session_user'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    resulting_balance = db.Column(db.Integer, nullable=False)
    related_session_id = db.Column(db.Integer, db.ForeignKey('match_session.id'), nullable=False)
    kind = db.Column(db.String(32), nullable=False)  # match_win, match_loss
    description = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'amount': self.amount,
            'resulting_balance': self.resulting_balance,
            'related_session_id': self.related_session_id,
            'kind': self.kind,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class MatchSession(db.Model):
    __tablename__ = 'match_session'
    id = db.Column(db.Integer, primary_key=True)
    player_a_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    player_b_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    status = db.Column(db.String(32), default=SessionStatus.AWAITING_OPPONENT.value, nullable=False, index=True)
    # Turn state: zero pair means the current mover has not rolled yet
    die_one = db.Column(db.Integer, default=0, nullable=False)
    die_two = db.Column(db.Integer, default=0, nullable=False)
    move_budget = db.Column(db.Text, default='[]', nullable=False)  # JSON-encoded list, descending
    turn = db.Column(db.String(1), nullable=True)  # 'a' or 'b'
    # Terms
    wager = db.Column(db.Integer, default=0, nullable=False)
    is_rated = db.Column(db.Boolean, default=True, nullable=False)
    target_score = db.Column(db.Integer, default=5, nullable=False)
    # Start handshake
    player_a_ready = db.Column(db.Boolean, default=False, nullable=False)
    player_b_ready = db.Column(db.Boolean, default=False, nullable=False)
    opening_rolls = db.Column(db.Text, nullable=True)  # JSON {"a": d, "b": d}, display only
    is_opening_move = db.Column(db.Boolean, default=False, nullable=False)
    # Opaque to this service; owned by the rules engine once play starts
    board = db.Column(db.Text, nullable=True)
    cube_value = db.Column(db.Integer, default=1, nullable=False)
    cube_owner = db.Column(db.String(1), nullable=True)
    cube_position = db.Column(db.String(16), default='center', nullable=False)
    # Outcome
    winner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    ratings_settled = db.Column(db.Boolean, default=False, nullable=False)
    wager_settled = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    @property
    def dice(self):
        return (self.die_one, self.die_two)

    @property
    def budget(self):
        try:
            return json.loads(self.move_budget or '[]')
        except ValueError:
            return []

    def player_id_for(self, side):
        return self.player_a_id if side == 'a' else self.player_b_id

    def to_dict(self):
        return {
            'id': self.id,
            'player_a_id': self.player_a_id,
            'player_b_id': self.player_b_id,
            'status': self.status,
            'dice': list(self.dice),
            'move_budget': self.budget,
            'turn': self.turn,
            'current_player_id': self.player_id_for(self.turn) if self.turn else None,
            'wager': self.wager,
            'is_rated': self.is_rated,
            'target_score': self.target_score,
            'player_a_ready': self.player_a_ready,
            'player_b_ready': self.player_b_ready,
            'opening_rolls': json.loads(self.opening_rolls) if self.opening_rolls else None,
            'is_opening_move': self.is_opening_move,
            'board': json.loads(self.board) if self.board else None,
            'cube': {'value': self.cube_value, 'owner': self.cube_owner, 'position': self.cube_position},
            'winner_id': self.winner_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class MatchProposal(db.Model):
    """An arranged match; accepted proposals are turned into a session once."""
    __tablename__ = 'match_proposal'
    id = db.Column(db.Integer, primary_key=True)
    organizer_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    opponent_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    status = db.Column(db.String(32), default=ProposalStatus.PENDING.value, nullable=False)
    wager = db.Column(db.Integer, default=0, nullable=False)
    is_rated = db.Column(db.Boolean, default=True, nullable=False)
    target_score = db.Column(db.Integer, default=5, nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey('match_session.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'organizer_id': self.organizer_id,
            'opponent_id': self.opponent_id,
            'status': self.status,
            'wager': self.wager,
            'is_rated': self.is_rated,
            'target_score': self.target_score,
            'session_id': self.session_id,
        }
