import os
from typing import Dict, Optional

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_pymongo import PyMongo
from pymongo.errors import PyMongoError
from werkzeug.middleware.proxy_fix import ProxyFix

from .admin_gate import install_page_gate
from .commands import register_commands
from .config import load_settings
from .errors import register_error_handlers
from .ratings import RatingAggregator
from .routes import register_routes
from .storage import Store


def register_jwt_callbacks(jwt: JWTManager) -> None:
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "Unauthorized"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"error": "Invalid token"}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"error": "Token expired"}), 401


def create_app(config: Optional[Dict] = None, database=None) -> Flask:
    """Create and configure the Flask application.

    ``database`` replaces the MongoDB handle built from ``MONGO_URI``; tests
    pass an in-memory one.
    """
    app = Flask(__name__)
    app.config.update(load_settings())
    if config:
        app.config.update(config)

    # Honor proxy headers so generated links keep the public origin.
    trusted_proxy_hops = max(0, int(app.config["TRUSTED_PROXY_HOPS"]))
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # --- Initialize extensions ---
    CORS(app, supports_credentials=True, origins=app.config["CORS_ORIGINS"] or "*")

    jwt = JWTManager(app)
    register_jwt_callbacks(jwt)

    if database is None:
        database = PyMongo(app).db
    store = Store(database)
    try:
        store.ensure_indexes()
    except PyMongoError as exc:
        app.logger.warning("Unable to ensure collection indexes: %s", exc)

    ratings = RatingAggregator(
        store, app.logger, mode=app.config["RATING_REFRESH_MODE"]
    )
    app.extensions["store"] = store
    app.extensions["ratings"] = ratings

    register_error_handlers(app)
    install_page_gate(app, store)
    register_routes(app, store, ratings)
    register_commands(app)

    @app.route("/uploads/<path:filename>")
    def serve_uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    return app
