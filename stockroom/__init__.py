"""Flat-file style/product catalog and S&S inventory cache."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from stockroom.aggregation import (
    StyleInventory,
    build_style_inventory,
    prefer_color,
    qty_by_sku,
    totals_by_color,
)
from stockroom.csv_decoder import detect_delimiter, parse_line, read_table
from stockroom.images import resolve_gallery, sort_gallery
from stockroom.inventory import (
    InventoryCache,
    InventoryClient,
    InventoryFetchError,
    fetch_inventory,
)
from stockroom.models import ProductRecord, StyleRecord
from stockroom.products import (
    ProductCatalog,
    get_products_by_style,
    get_sku_map_for_style,
    list_colors_for_style,
)
from stockroom.styles import StyleCatalog, get_style, search_styles

__all__ = [
    # Version
    "__version__",
    # Models
    "StyleRecord",
    "ProductRecord",
    # CSV decoding
    "detect_delimiter",
    "parse_line",
    "read_table",
    # Catalogs
    "StyleCatalog",
    "ProductCatalog",
    "get_style",
    "search_styles",
    "get_products_by_style",
    "list_colors_for_style",
    "get_sku_map_for_style",
    # Images
    "resolve_gallery",
    "sort_gallery",
    # Inventory
    "InventoryClient",
    "InventoryCache",
    "InventoryFetchError",
    "fetch_inventory",
    # Aggregation
    "StyleInventory",
    "build_style_inventory",
    "prefer_color",
    "qty_by_sku",
    "totals_by_color",
]
