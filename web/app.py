"""Flask app exposing the catalog and inventory JSON API."""

import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, Response, jsonify

from stockroom.logging_config import setup_logging

from .api import api
from .config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT

# Load environment variables from .env file (explicitly specify path)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

app = Flask(__name__)
app.register_blueprint(api)


@app.route("/health", methods=["GET"])
def health() -> Response:
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    setup_logging(level=logging.DEBUG if FLASK_DEBUG else logging.INFO)
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
