from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, start_task=None, sleep=None):
    """Build the Flask app and wire the room services onto it.

    ``start_task``/``sleep`` drive the turn timer; they default to the
    Socket.IO background task helpers and are replaced in tests.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    origins = flask_app.config.get('CORS_ORIGINS', [])
    CORS(flask_app, supports_credentials=True, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from mastermind.services.game import RoomRegistry, SessionController
    from mastermind.services.game.broadcaster import Broadcaster
    from mastermind.services.game.connections import ConnectionDirectory
    from mastermind.services.game.scheduler import TurnTimer
    from mastermind.services.game.session import TURN_TIMEOUT_SEC

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    registry = RoomRegistry(logger=flask_app.logger)
    connections = ConnectionDirectory()
    broadcaster = Broadcaster(socketio.emit, registry, connections, namespace=namespace, logger=flask_app.logger)
    timer = TurnTimer(
        registry,
        broadcaster,
        start_task=start_task or socketio.start_background_task,
        sleep=sleep or socketio.sleep,
        timeout=flask_app.config.get('TURN_TIMEOUT_SEC', TURN_TIMEOUT_SEC),
        logger=flask_app.logger,
    )
    controller = SessionController(registry, broadcaster, timer, connections, logger=flask_app.logger)
    flask_app.extensions['mastermind'] = controller

    from mastermind.main import main
    flask_app.register_blueprint(main, url_prefix='/api')

    from mastermind.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    @click.command('score')
    @click.argument('guess')
    @click.argument('secret')
    def score_command(guess, secret):
        """Score GUESS against SECRET the way the server does."""
        from mastermind.services.game import evaluate
        if len(guess) != len(secret) or not (guess + secret).isdigit():
            raise click.BadParameter('GUESS and SECRET must be digit strings of equal length')
        result = evaluate(guess, secret)
        click.echo(
            f"exact={result.exact_matches} value={result.value_matches} miss={result.misses}"
        )

    flask_app.cli.add_command(score_command)

    return flask_app
