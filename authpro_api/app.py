"""
Flask entry point for the authpro JSON API.

- CORS enabled so a separately served frontend can call the API
- one blueprint (routes.py) mounted under /api
- configuration from authpro_api.config.Config, overridable per app

Run locally:
    flask --app authpro_api.app run
"""
import logging
from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from authpro import MappingIconResolver

from .config import Config


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("authpro").setLevel(app.config["LOG_LEVEL"])

    origins = app.config["CORS_ORIGINS"]
    if isinstance(origins, str) and origins != "*":
        origins = [origin.strip() for origin in origins.split(",") if origin.strip()]
    CORS(app, origins=origins)

    app.extensions["authpro_icon_resolver"] = MappingIconResolver(app.config["ICONS"])

    from .routes import api_bp
    app.register_blueprint(api_bp)

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "name": "authpro",
            "endpoints": sorted(
                str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith("/api/")
            ),
        })

    return app


app = create_app()


if __name__ == "__main__":
    app.run(debug=True, host="127.0.0.1", port=5000)
