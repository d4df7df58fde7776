"""
API gateway: builds the Flask app and wires every service into it.
This is the entrypoint for running postdesk.
"""

import atexit
import logging
import sys
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from postdesk.ai_service.captioner import CaptionGenerator
from postdesk.ai_service.routes import ai_blueprint
from postdesk.auth_service.routes import auth_bp
from postdesk.database.store import Store
from postdesk.errors import ConfigError
from postdesk.gateway.config import Settings, load_settings
from postdesk.media_service.relay import MediaRelay
from postdesk.notify_service.mailer import Notifier
from postdesk.posts_service.routes import posts_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(
    settings: Optional[Settings] = None,
    store=None,
    relay=None,
    notifier=None,
    captioner=None,
) -> Flask:
    """
    Application factory for creating the Flask app.

    Collaborators that are passed in are used as-is (tests inject doubles);
    the rest are built from `settings`, which are loaded and validated from
    the environment when not given.

    Returns:
        Flask: The configured Flask application.

    Raises:
        ConfigError: Required environment variables are missing.
    """
    if settings is None and None in (store, relay, notifier, captioner):
        settings = load_settings()

    app = Flask(__name__, static_folder="static")
    max_upload_mb = settings.max_upload_mb if settings else 100
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024
    if settings:
        app.config["PORT"] = settings.port

    CORS(app, resources={
        r"/*": {
            "origins": list(settings.cors_origins) if settings else "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
        }
    })

    # --- COLLABORATORS ---
    if store is None:
        store = Store.connect(settings.database_url, maxconn=settings.db_pool_max)
        store.init_schema()
        atexit.register(store.close)
    if relay is None:
        relay = MediaRelay(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
        )
    if notifier is None:
        notifier = Notifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            recipient=settings.notify_email,
            sender=settings.smtp_from,
            secure=settings.smtp_secure,
            background=settings.notify_async,
        )
    if captioner is None:
        captioner = CaptionGenerator(
            openai_api_key=settings.openai_api_key,
            gemini_api_key=settings.gemini_api_key,
            openai_model=settings.caption_model,
            gemini_model=settings.gemini_model,
        )

    app.extensions["store"] = store
    app.extensions["relay"] = relay
    app.extensions["notifier"] = notifier
    app.extensions["captioner"] = captioner

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(ai_blueprint)
    logging.info("All blueprints registered successfully.")

    # --- STATIC LANDING PAGE & HEALTH ---
    @app.route("/")
    def index():
        return app.send_static_file("index.html")

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    # --- ERROR HANDLERS ---
    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        logging.exception(f"Unhandled error: {error}")
        return jsonify({"success": False, "message": "Internal server error"}), 500

    return app


def main() -> None:
    try:
        app = create_app()
    except ConfigError as e:
        logging.error(str(e))
        sys.exit(1)
    app.run(host="0.0.0.0", port=app.config["PORT"])


if __name__ == "__main__":
    main()
