import logging

from flask import Flask
from werkzeug.exceptions import InternalServerError, MethodNotAllowed, NotFound, Unauthorized

from .auth import auth_bp
from .commands import serve_command, token_cli
from .config import BaseConfig, get_config_class


__version__ = "0.0.1"


def _configure_logging(app: Flask) -> None:
    """Configure application logging from the LOG_LEVEL config value."""

    log_level_name = app.config.get("LOG_LEVEL", "INFO")
    log_level = getattr(logging, str(log_level_name).upper(), logging.INFO)
    logging.basicConfig(level=log_level)
    app.logger.setLevel(log_level)


def _register_error_handlers(app: Flask) -> None:
    """Register centralized error handlers.

    The proxy only looks at the status code, so every error goes out with
    an empty body and never carries internal detail.
    """

    def empty_response(error):
        return "", error.code

    for error_class in (Unauthorized, NotFound, MethodNotAllowed):
        app.errorhandler(error_class)(empty_response)

    @app.errorhandler(InternalServerError)
    def handle_internal_error(error):
        app.logger.error("Internal server error: %s", error.original_exception or error)
        return "", 500


def create_app(config_class: type[BaseConfig] | None = None) -> Flask:
    """Application factory for the mellon auth service."""

    if config_class is None:
        config_class = get_config_class()

    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)
    config_class.validate(app.config)

    app.register_blueprint(auth_bp)
    app.cli.add_command(token_cli)
    app.cli.add_command(serve_command)
    _register_error_handlers(app)

    return app
