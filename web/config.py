"""Centralized configuration for the inventory web API."""

import os

# Flask app settings (env overrides; debug off unless FLASK_DEBUG=true)
# PORT is honoured when the host platform sets it
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# Hard cap on style search results per request
MAX_SEARCH_LIMIT = int(os.getenv("MAX_SEARCH_LIMIT", "200"))
