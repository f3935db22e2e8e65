"""HTTP trigger surface.

Each route runs the same pipeline functions the scheduler uses and serializes
the result; anything that escapes the pipeline becomes a 500 JSON envelope.
"""
from datetime import datetime, timezone
from typing import Callable

from flask import Flask, jsonify
from loguru import logger
from werkzeug.exceptions import HTTPException

from .models import Digest, PollResult


def create_app(poll: Callable[[], PollResult], digest: Callable[[], Digest]) -> Flask:
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "time": datetime.now(timezone.utc).isoformat()})

    @app.route("/process-email", methods=["GET", "POST"])
    def process_email():
        logger.info("Starting email processing (HTTP)")
        return jsonify(poll().to_dict()), 200

    @app.route("/daily-summary", methods=["GET", "POST"])
    def daily_summary():
        logger.info("Starting daily summary job (HTTP)")
        return jsonify(digest().to_dict()), 200

    @app.errorhandler(Exception)
    def internal_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.opt(exception=exc).error("Unhandled error serving request")
        return jsonify({"error": "Internal server error", "message": str(exc) or exc.__class__.__name__}), 500

    return app
