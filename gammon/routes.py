from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from gammon import db
from gammon.models import User, PlayerRating

main = Blueprint('main', __name__)


def create_account(username, password, balance=None):
    """Create a user together with its rating record."""
    if balance is None:
        balance = int(current_app.config.get('STARTING_BALANCE', 0))
    user = User(username=username, balance=balance)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    db.session.add(PlayerRating(
        user_id=user.id,
        rating=int(current_app.config.get('DEFAULT_RATING', 1500)),
        games_played=0,
        games_won=0,
    ))
    db.session.commit()
    return user

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the gammon match server!'})

@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    if not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400

    if User.query.filter_by(username=data['username']).first():
        return jsonify({'error': 'Username already exists'}), 400

    user = create_account(data['username'], data['password'])
    current_app.logger.info(f"[register] user={user.id} username={user.username}")
    login_user(user)
    return jsonify({'message': 'User created successfully', 'user': user.to_dict()}), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'message': 'Logged in successfully.', 'user': user.to_dict()})
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/logout')
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})

@main.route('/me')
@login_required
def me():
    payload = current_user.to_dict()
    payload['rating'] = current_user.rating.to_dict() if current_user.rating else None
    return jsonify(payload)
