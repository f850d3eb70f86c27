"""
Entry point for the student records admin backend.

Responsibilities:
- Register the student blueprint.
- Apply the upload size limit for CSV imports.
- Optionally apply pending schema migrations before serving.
"""

import logging
import os

from flask import Flask

from config import MAX_UPLOAD_BYTES
from students.board import bp as students_bp


def create_app(config: dict | None = None) -> Flask:
    """Application factory for tests and production."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES
    app.register_blueprint(students_bp)
    if config:
        app.config.update(config)
    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if os.getenv("RUN_MIGRATIONS", "1") == "1":
        from db.migrate import provision

        provision()
    app = create_app()
    app.run(debug=os.getenv("FLASK_DEBUG") == "1", host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
