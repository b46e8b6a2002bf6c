import os
from typing import Mapping

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float | str:
    """Read a float from the environment.

    Unparseable values are kept as the raw string so that
    ``BaseConfig.validate`` reports them instead of failing at import.
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return raw


class BaseConfig:
    """Base configuration shared by all environments."""

    # --- Token store ---
    # Single file holding every label:secret record. A sibling ``.lock``
    # file next to it carries the advisory lock used by mutations.
    TOKEN_STORE_PATH = os.environ.get("MELLON_TOKEN_STORE", "/tmp/mellon/tokens")

    # Seconds a mutation (add/rescind) waits for the store lock before
    # giving up with LockTimeout.
    LOCK_TIMEOUT = _env_float("MELLON_LOCK_TIMEOUT", 5.0)

    # Seconds an auth check may spend reading the store before it fails
    # closed with a 401.
    STORE_READ_TIMEOUT = _env_float("MELLON_READ_TIMEOUT", 2.0)

    # --- Auth server ---
    # host:port for ``mellon serve``. Keep this on an internal interface;
    # only the reverse proxy should be able to reach it.
    SERVER_ADDRESS = os.environ.get("MELLON_ADDRESS", "localhost:8090")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Unhandled errors always go through the empty-body 500 handler, even
    # with DEBUG on.
    PROPAGATE_EXCEPTIONS = False

    @classmethod
    def validate(cls, config: Mapping[str, object] | None = None) -> None:
        """Validate that critical configuration values are usable.

        Runs at startup so that a bad environment fails fast instead of at
        the first auth check. When ``config`` is given (the Flask app
        config) its values win over the class attributes.
        """

        def value(name: str) -> object:
            if config is not None and name in config:
                return config[name]
            return getattr(cls, name, None)

        if not value("TOKEN_STORE_PATH"):
            raise RuntimeError(
                "Missing required configuration value: TOKEN_STORE_PATH. "
                "Check MELLON_TOKEN_STORE in your environment or .env file."
            )

        for name in ("LOCK_TIMEOUT", "STORE_READ_TIMEOUT"):
            timeout = value(name)
            if not isinstance(timeout, (int, float)) or timeout <= 0:
                raise RuntimeError(f"{name} must be a positive number of seconds, got {timeout!r}.")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False


class TestingConfig(BaseConfig):
    """Configuration used in unit tests.

    Tests point TOKEN_STORE_PATH at a temporary directory and use short
    timeouts so lock contention surfaces quickly.
    """

    TESTING = True
    LOCK_TIMEOUT = 0.5
    STORE_READ_TIMEOUT = 1.0
    SERVER_ADDRESS = "127.0.0.1:0"


def get_config_class() -> type[BaseConfig]:
    """Select the appropriate configuration class from APP_ENV.

    Defaults to ``DevelopmentConfig`` when ``APP_ENV`` is not set.
    """

    env = os.environ.get("APP_ENV", "development").lower()
    if env in {"prod", "production"}:
        return ProductionConfig
    if env in {"test", "testing"}:
        return TestingConfig
    return DevelopmentConfig
