from logging.config import dictConfig

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from models.repositories import (
    SQLCheckInRepository,
    SQLEventRepository,
    SQLParticipantRepository,
    SQLUserRepository,
)
from models.revocation_store import build_revocation_store
from services.auth_gate import AuthGate
from services.auth_service import AuthService
from services.checkin_service import CheckInService
from services.event_service import EventService
from services.participant_service import ParticipantService
from utils.security import TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Event Check-in API",
        "version": "1.0.0",
        "description": "REST API for event organizers: authentication, participants and concurrent-safe check-ins.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(level: str) -> None:
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "[%(asctime)s] %(levelname)s %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
        },
        "root": {"level": level, "handlers": ["console"]},
    })


def init_services(app: Flask) -> None:
    """Build the codec, stores, repositories and services and register them on the app."""
    cfg = app.config
    codec = TokenCodec(cfg["JWT_SECRET"], algorithm=cfg["JWT_ALGORITHM"], issuer=cfg["JWT_ISSUER"])
    revocation_store = cfg.get("REVOCATION_STORE")
    if revocation_store is None:
        revocation_store = build_revocation_store(cfg)

    users = SQLUserRepository(storage)
    events = SQLEventRepository(storage)
    participants = SQLParticipantRepository(storage)
    checkins = SQLCheckInRepository(storage)

    app.extensions["token_codec"] = codec
    app.extensions["revocation_store"] = revocation_store
    app.extensions["user_repository"] = users
    app.extensions["event_repository"] = events
    app.extensions["participant_repository"] = participants
    app.extensions["auth_gate"] = AuthGate(codec, revocation_store)
    app.extensions["auth_service"] = AuthService(
        users,
        codec,
        revocation_store,
        access_token_ttl=cfg["ACCESS_TOKEN_EXPIRES"],
        refresh_token_ttls={
            "web": cfg["REFRESH_TOKEN_EXPIRES_WEB"],
            "mobile": cfg["REFRESH_TOKEN_EXPIRES_MOBILE"],
        },
        registrable_roles=cfg["SELF_REGISTRATION_ROLES"],
        password_min_length=cfg["PASSWORD_MIN_LENGTH"],
    )
    app.extensions["checkin_service"] = CheckInService(checkins, participants, events)
    app.extensions["event_service"] = EventService(events)
    app.extensions["participant_service"] = ParticipantService(participants, events)


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` are applied on top of the selected config class (tests use it
    for the database URL and an injected revocation store).
    """
    app = Flask(__name__)

    config = get_config(config_name)
    config.validate()
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])

    storage.configure(
        app.config["DATABASE_URL"],
        pool_timeout=app.config["DB_POOL_TIMEOUT"],
        statement_timeout_ms=app.config["DB_STATEMENT_TIMEOUT_MS"],
    )
    storage.reload()
    init_services(app)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .events import bp as events_bp
    from .participants import bp as participants_bp
    from .checkins import bp as checkins_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(events_bp, url_prefix="/api/v1")
    app.register_blueprint(participants_bp, url_prefix="/api/v1")
    app.register_blueprint(checkins_bp, url_prefix="/api/v1")

    from .cli import register_cli
    register_cli(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Event Check-in API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
