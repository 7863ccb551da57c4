"""Flask extension instances shared across blueprints."""

from flask import current_app
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_mail import Mail
from flask_migrate import Migrate

migrate = Migrate()
jwt = JWTManager()
mail = Mail()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[lambda: current_app.config.get("RATE_LIMIT", "100 per minute")],
)


def config_limit(key: str, default: str):
    """Return a dynamic limit that reads ``key`` from the active app config."""

    return lambda: current_app.config.get(key, default)
