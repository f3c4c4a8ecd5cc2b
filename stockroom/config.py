"""Configuration and constants for the catalog/inventory data layer."""

import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

__all__ = [
    "PROJECT_ROOT",
    "DATA_DIR",
    "STYLES_CSV_PATH",
    "PRODUCTS_CSV_PATH",
    "SS_API_BASE",
    "SS_ACCOUNT",
    "SS_API_KEY",
    "IMAGE_BASE_URL",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "CACHE_TTL_SECONDS",
    "CACHE_DIR",
    "DEFAULT_SEARCH_LIMIT",
    "PLACEHOLDER_COLOR",
    "PREFERRED_COLORS",
    "SIZE_ORDER",
]

PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env before reading any settings
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")

# Vendor catalog files
DATA_DIR = Path(os.getenv("STOCKROOM_DATA_DIR", str(PROJECT_ROOT / "data")))
STYLES_CSV_PATH = os.getenv("STYLES_CSV_PATH", str(DATA_DIR / "Styles.csv"))
PRODUCTS_CSV_PATH = os.getenv("PRODUCTS_CSV_PATH", str(DATA_DIR / "Products.csv"))

# S&S Activewear REST API
SS_API_BASE = os.getenv("SS_API_BASE", "https://api.ssactivewear.com/v2")
SS_ACCOUNT = os.getenv("SS_ACCOUNT", os.getenv("SS_ACCOUNT_NUMBER", ""))
SS_API_KEY = os.getenv("SS_API_KEY", "")

# Relative "images/..." paths in the catalog resolve against this host
IMAGE_BASE_URL = os.getenv("IMAGE_BASE_URL", "https://www.ssactivewear.com")

HEADERS: Dict[str, str] = {
    "User-Agent": "stockroom inventory client",
    "Accept": "application/json",
}

# Request timeout (seconds)
REQUEST_TIMEOUT = float(os.getenv("SS_REQUEST_TIMEOUT", "15"))

# One TTL for both inventory cache tiers (memory and file)
CACHE_TTL_SECONDS = float(os.getenv("INVENTORY_CACHE_TTL", str(5 * 60)))
CACHE_DIR = Path(os.getenv("INVENTORY_CACHE_DIR", str(PROJECT_ROOT / ".cache" / "ssinv")))

# Style search
DEFAULT_SEARCH_LIMIT = 50

# Default colour selection
PLACEHOLDER_COLOR = "Color"
PREFERRED_COLORS: List[str] = ["white", "black"]

# Canonical apparel size order; anything else sorts after these
SIZE_ORDER: List[str] = ["XS", "S", "M", "L", "XL", "2XL", "3XL", "4XL", "5XL", "6XL"]
