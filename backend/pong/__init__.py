from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
default_origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://[::1]:8080",
]
socketio = SocketIO(async_mode=None, ping_timeout=60, ping_interval=25)


def allowed_origins_for(config) -> list:
    origins = list(default_origins)
    frontend = config.get('FRONTEND_URL')
    if frontend and frontend not in origins:
        origins.insert(0, frontend)
    return origins


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    origins = allowed_origins_for(flask_app.config)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=origins, methods=['GET', 'POST'])

    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Models must be imported before create_all / migrations see them
    from pong import models  # noqa: F401

    # One session manager per app; handlers get it by reference
    from pong.gateway import SocketIOGateway
    from pong.services.session import SessionManager
    sessions = SessionManager.from_config(SocketIOGateway(socketio), flask_app.config)
    flask_app.extensions['pong_sessions'] = sessions

    from pong.socketio_events import register_socketio_handlers
    register_socketio_handlers(sessions)

    from pong.main import main
    flask_app.register_blueprint(main)

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    flask_app.logger.info(
        f"[startup] grace={flask_app.config.get('RECONNECT_GRACE_PERIOD_SEC')}s origins={origins}"
    )
    return flask_app
