"""
API gateway: combines the describe and generate blueprints.
This is the process entrypoint; it also owns the database handle.
"""

import atexit
import logging
import os
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from backend.database.db_connection import Database, DATABASE_URL, EXTENSION_KEY

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", 10))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


def open_database(database: Database) -> None:
    """
    Open the handle, keeping the app up when the database is unreachable.
    The health endpoint reports the outcome.
    """
    try:
        database.open()
        logging.info("Database connected.")
    except Exception as e:
        logging.error(f"Database connection failed: {e}")


def create_app(database: Optional[Database] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        database (Database, optional): An already configured handle. When
            omitted, one is built from DATABASE_URL, opened now and closed
            at process exit.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024

    origins = [origin.strip() for origin in CORS_ORIGINS.split(",")] if CORS_ORIGINS != "*" else "*"
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
        }
    })

    if database is None:
        database = Database(DATABASE_URL)
        open_database(database)
        atexit.register(database.close)
    app.extensions[EXTENSION_KEY] = database

    # --- REGISTER BLUEPRINTS ---
    from backend.vision_service.routes import vision_bp
    from backend.generation_service.routes import generation_bp

    app.register_blueprint(vision_bp, url_prefix="/api")
    app.register_blueprint(generation_bp, url_prefix="/api")
    logging.info("All blueprints registered successfully.")

    # --- HEALTH CHECK ---
    @app.route("/api/health")
    def health():
        """
        Health check endpoint, including database readiness.
        """
        return jsonify({"status": "ok", "database": database.is_connected()}), 200

    # --- JSON ERROR PAGES ---
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({"error": f"Payload exceeds {MAX_UPLOAD_MB}MB"}), 413

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
