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

SAMPLE_QUIZZES = [
    {
        'name': 'Capitals',
        'data': [
            {'question': 'What is the capital of France?', 'options': ['Berlin', 'Paris', 'Madrid', 'Rome'], 'correctAnswer': 1},
            {'question': 'What is the capital of Japan?', 'options': ['Tokyo', 'Kyoto', 'Osaka', 'Nagoya'], 'correctAnswer': 0},
            {'question': 'What is the capital of Canada?', 'options': ['Toronto', 'Vancouver', 'Ottawa', 'Montreal'], 'correctAnswer': 2},
        ],
    },
    {
        'name': 'Science Basics',
        'data': [
            {'question': 'What is the chemical symbol for water?', 'options': ['O2', 'H2O', 'CO2', 'NaCl'], 'correctAnswer': 1},
            {'question': 'How many planets are in the Solar System?', 'options': ['7', '8', '9', '10'], 'correctAnswer': 1},
        ],
    },
]


def _split_origins(value):
    return [o.strip() for o in (value or '').split(',') if o.strip()]


def current_catalog():
    return current_app.extensions['pinquiz']['catalog']


def current_registry():
    return current_app.extensions['pinquiz']['registry']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    allowed_origins = _split_origins(flask_app.config.get('CORS_ORIGINS'))
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game core: one catalog and one registry per application
    from pinquiz.catalog import QuizCatalog
    from pinquiz.services.games import GameRegistry, GameSettings, SocketIOBroadcaster
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    catalog = QuizCatalog()
    registry = GameRegistry(
        catalog,
        SocketIOBroadcaster(socketio, namespace),
        scheduler=socketio,
        settings=GameSettings.from_config(flask_app.config),
    )
    flask_app.extensions['pinquiz'] = {'catalog': catalog, 'registry': registry}

    from pinquiz.main import main
    flask_app.register_blueprint(main)

    from pinquiz.api.quizzes import quizzes
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')

    from pinquiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    with flask_app.app_context():
        import pinquiz.models  # noqa: F401
        catalog.load()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the quiz table."""
        from pinquiz.models import Quiz
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for sample in SAMPLE_QUIZZES:
                quiz = Quiz(name=sample['name'])
                quiz.set_questions(sample['data'])
                db.session.add(quiz)

            db.session.commit()
            count = catalog.load()
            click.echo(f'Database has been reset and seeded with {count} quizzes!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
