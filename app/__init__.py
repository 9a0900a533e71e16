from flask import Flask
from flask_cors import CORS

from .config import Config
from .errors import register_error_handlers
from .extensions import db, event_bus
from .notifications import register_notification_handlers
from .routes import register_routes


def create_app(config_overrides=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    app.config.from_envvar("APP_SETTINGS", silent=True)
    if config_overrides:
        app.config.from_mapping(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    event_bus.init_app(app)
    register_notification_handlers(app)

    # Allow the booking frontend to talk to the backend
    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )

    register_error_handlers(app)
    register_routes(app)

    return app
