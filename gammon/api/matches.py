from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from gammon import socketio
from gammon.errors import Forbidden, InvalidState, NotFound
from gammon.models import LedgerEntry, MatchSession, PlayerRating
from gammon.services.match import controller
from gammon.services.match.settlement import complete_match as svc_complete_match


matches = Blueprint('matches', __name__)


def _broadcast(session: MatchSession) -> None:
    socketio.emit(
        'state_update',
        {'session_id': session.id, 'status': session.status},
        to=f"match:{session.id}",
        namespace='/ws',
    )


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@matches.route('/matches/create', methods=['POST'])
@login_required
def create_match():
    data = _json_body()
    try:
        wager = int(data.get('wager') or 0)
        target_score = int(data['target_score']) if data.get('target_score') is not None else None
    except (TypeError, ValueError):
        raise InvalidState('wager and target_score must be integers')
    session = controller.open_session(
        current_user.id,
        wager=wager,
        is_rated=bool(data.get('is_rated', True)),
        target_score=target_score,
    )
    return jsonify(session.to_dict()), 201


@matches.route('/matches/<int:session_id>', methods=['GET'])
@login_required
def get_match(session_id):
    return jsonify(controller.get_session(session_id).to_dict())


@matches.route('/matches/<int:session_id>/join', methods=['POST'])
@login_required
def join_match(session_id):
    session = controller.join_session(session_id, current_user.id)
    _broadcast(session)
    return jsonify(session.to_dict())


@matches.route('/matches/<int:session_id>/ready', methods=['POST'])
@login_required
def ready(session_id):
    session = controller.request_ready(session_id, current_user.id)
    _broadcast(session)
    return jsonify(session.to_dict())


@matches.route('/matches/<int:session_id>/roll', methods=['POST'])
@login_required
def roll(session_id):
    session = controller.roll_dice(session_id, current_user.id)
    _broadcast(session)
    return jsonify(session.to_dict())


@matches.route('/matches/<int:session_id>/end-turn', methods=['POST'])
@login_required
def end_turn(session_id):
    session = controller.end_turn(session_id, current_user.id)
    _broadcast(session)
    return jsonify(session.to_dict())


@matches.route('/matches/<int:session_id>/complete', methods=['POST'])
@login_required
def complete(session_id):
    data = _json_body()
    session = controller.get_session(session_id)
    if controller.seat_of(session, current_user.id) is None:
        raise Forbidden('You are not a player in this match')
    try:
        winner_id = int(data.get('winner_id', current_user.id))
    except (TypeError, ValueError):
        raise InvalidState('winner_id must be an integer')
    outcome = svc_complete_match(session_id, winner_id)
    if not outcome.replayed:
        _broadcast(outcome.session)
    payload = outcome.to_dict()
    payload['session'] = outcome.session.to_dict()
    return jsonify(payload)


@matches.route('/ratings/<int:user_id>', methods=['GET'])
def get_rating(user_id):
    rating = PlayerRating.query.filter_by(user_id=user_id).first()
    if rating is None:
        raise NotFound(f"No rating for user {user_id}")
    return jsonify(rating.to_dict())


@matches.route('/ledger', methods=['GET'])
@login_required
def my_ledger():
    entries = (
        LedgerEntry.query.filter_by(user_id=current_user.id)
        .order_by(LedgerEntry.id.desc())
        .all()
    )
    current_app.logger.debug(f"[ledger] user={current_user.id} entries={len(entries)}")
    return jsonify([e.to_dict() for e in entries])
