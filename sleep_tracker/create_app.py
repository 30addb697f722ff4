# create_app.py
from flask import Flask, jsonify, request
from flask_cors import CORS

from sleep_tracker.bootstrap import initialize_services
from sleep_tracker.database.table_initializer import initialize_all_tables
from sleep_tracker.models.base import get_engine
from sleep_tracker.utils.logging_config import get_logger, init_request_logging, set_console_level
from sleep_tracker.utils.time_utils import update_local_timezone

logger = get_logger(__name__)


def create_app(config_class="sleep_tracker.configs.config.DevelopmentConfig",
               repository=None, text_generator=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.sort_keys = False

    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        methods=app.config['CORS_METHODS'],
        supports_credentials=True,
    )

    set_console_level(app.config['LOG_CONSOLE_LEVEL'])
    init_request_logging(app)
    update_local_timezone(app.config['TIMEZONE'])

    if repository is None:
        # Auto-sync schema; an injected repository owns its own database
        initialize_all_tables(get_engine(app.config['SQLALCHEMY_DATABASE_URI']))

    DI = initialize_services(app, repository=repository, text_generator=text_generator)
    app.DI = DI

    # Import and register blueprints
    from .routes import create_sleep_blueprint, health_check_bp

    app.register_blueprint(create_sleep_blueprint(DI.sleep_repository, DI.advice_relay))
    app.register_blueprint(health_check_bp)

    @app.errorhandler(404)
    def not_found(e):
        # Routing misses under /api/, e.g. /api/sleep/abc
        if request.path.startswith('/api/'):
            return jsonify({"error": "Not found."}), 404
        return e

    logger.info(f"Sleep tracker app created with {config_class}")
    return app
