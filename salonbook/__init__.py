from collections.abc import Mapping

from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import db
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    app.config.from_envvar("APP_SETTINGS", silent=True)

    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)

    db.init_app(app)

    origins = app.config["CORS_ORIGINS"]
    CORS(app,
         origins=["*"] if origins == "*" else [o.strip() for o in origins.split(",")],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "OPTIONS"]
    )

    register_routes(app)

    return app
