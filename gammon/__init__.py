from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Replaceable dice source shared by opening and in-turn rolls
    from gammon.services.match.dice import make_rng
    flask_app.extensions['dice_rng'] = make_rng(flask_app.config.get('DICE_SEED'))

    from gammon.routes import main
    flask_app.register_blueprint(main)

    from gammon.api.matches import matches
    flask_app.register_blueprint(matches, url_prefix='/api')

    from gammon.api.proposals import proposals
    flask_app.register_blueprint(proposals, url_prefix='/api/proposals')

    from gammon.errors import MatchError, Unauthorized

    @flask_app.errorhandler(MatchError)
    def handle_match_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[{exc.kind}] {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    from gammon.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from gammon.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        exc = Unauthorized('Login required')
        return jsonify(exc.to_dict()), exc.status_code

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from gammon.routes import create_account
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users with a rating record and some balance to wager
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                create_account(u, 'password', balance=100)

            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
