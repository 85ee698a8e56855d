import logging

from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def get_gateway(flask_app=None):
    """Return the session gateway owned by ``flask_app`` (default: current app)."""
    if flask_app is None:
        return current_app.extensions['blockclaim']
    return flask_app.extensions['blockclaim']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    logging.getLogger('blockclaim').setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    origins = flask_app.config.get('CORS_ORIGINS', [])
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from blockclaim.services.grid import GridStore, IdentityRegistry, SessionGateway
    from blockclaim.socketio_events import SocketIOTransport

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    grid = GridStore(int(flask_app.config.get('GRID_SIZE', 50)))
    registry = IdentityRegistry(max_name_length=int(flask_app.config.get('MAX_NAME_LENGTH', 20)))

    ledger = None
    if flask_app.config.get('PERSIST_CLAIMS'):
        from blockclaim.services.grid.errors import StorageFailure
        from blockclaim.services.grid.ledger import ClaimLedger
        ledger = ClaimLedger(db, flask_app)
        try:
            ledger.load_into(grid)
        except StorageFailure as exc:
            # Missing claim table: start with an empty grid
            flask_app.logger.warning(f"Claims not restored: {exc}")

    flask_app.extensions['blockclaim'] = SessionGateway(
        grid,
        registry,
        SocketIOTransport(socketio),
        ledger=ledger,
        leaderboard_size=int(flask_app.config.get('LEADERBOARD_SIZE', 10)),
    )

    # Import and register blueprints here
    from blockclaim.main import main
    flask_app.register_blueprint(main)

    from blockclaim.api.grid import grid as grid_api
    flask_app.register_blueprint(grid_api, url_prefix='/api')

    # Register Socket.IO event handlers
    from blockclaim.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the claim table."""
        from blockclaim.services.grid.ledger import ClaimLedger
        ClaimLedger(db, flask_app).reset()
        print('Claim table has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
