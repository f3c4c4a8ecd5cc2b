"""JSON API over the catalog and inventory data layer.

Routes only parse request parameters and shape responses; all lookup,
caching and aggregation happens in the stockroom package.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

from flask import Blueprint, Response, jsonify, request

from stockroom import config as stockroom_config
from stockroom.aggregation import build_style_inventory
from stockroom.inventory import InventoryFetchError, fetch_inventory
from stockroom.products import get_product_catalog
from stockroom.styles import get_style_catalog, parse_style_id

from .config import MAX_SEARCH_LIMIT

__all__ = ["api"]

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

JsonResponse = Union[Response, Tuple[Response, int]]


def _refresh_requested() -> bool:
    return request.args.get("refresh", "").lower() in ("1", "true", "yes")


def _fetch_error_response(e: InventoryFetchError) -> Tuple[Response, int]:
    logger.warning(f"Inventory lookup failed for style {e.style_id}: {e}")
    return jsonify({"error": str(e) or "Fetch failed", "status": e.status}), 502


def _search_result(style: Any) -> Dict[str, Any]:
    return {
        "styleID": style.style_id,
        "brandName": style.brand_name,
        "styleName": style.style_name,
        "title": style.display_title,
        "styleImage": style.full_image_url(stockroom_config.IMAGE_BASE_URL),
    }


@api.route("/inventory", methods=["GET"])
def inventory() -> JsonResponse:
    """Raw vendor inventory for ?style=<id>; add refresh=1 to bypass the cache."""
    style_param = request.args.get("style")
    if not style_param:
        return jsonify({"error": "Missing ?style="}), 400
    style_id = parse_style_id(style_param)
    if style_id is None:
        return jsonify({"error": f"Invalid style id: {style_param}"}), 400

    try:
        data = fetch_inventory(style_id, refresh=_refresh_requested())
    except InventoryFetchError as e:
        return _fetch_error_response(e)
    return jsonify({"data": data})


@api.route("/styles/search", methods=["GET"])
def search_styles() -> JsonResponse:
    """Token search over brand, style name and title (?q=...&limit=...)."""
    query = request.args.get("q", "")
    limit = request.args.get("limit", default=stockroom_config.DEFAULT_SEARCH_LIMIT, type=int)
    limit = max(0, min(limit, MAX_SEARCH_LIMIT))

    results = get_style_catalog().search(query, limit)
    return jsonify({"results": [_search_result(s) for s in results]})


@api.route("/styles/<style_param>", methods=["GET"])
def style_detail(style_param: str) -> JsonResponse:
    style_id = parse_style_id(style_param)
    if style_id is None:
        return jsonify({"error": f"Invalid style id: {style_param}"}), 400

    style = get_style_catalog().get_by_id(style_id)
    if style is None:
        return jsonify({"error": f"Style {style_id} not found"}), 404

    data = style.to_dict(stockroom_config.IMAGE_BASE_URL)
    data["colors"] = get_product_catalog().list_colors(style_id)
    return jsonify(data)


@api.route("/styles/<style_param>/inventory", methods=["GET"])
def style_inventory(style_param: str) -> JsonResponse:
    """Catalog rows joined with live stock for one style."""
    style_id: Optional[int] = parse_style_id(style_param)
    if style_id is None:
        return jsonify({"error": f"Invalid style id: {style_param}"}), 400

    try:
        view = build_style_inventory(style_id, refresh=_refresh_requested())
    except InventoryFetchError as e:
        return _fetch_error_response(e)
    return jsonify(view.to_dict())


@api.route("/catalog/reload", methods=["POST"])
def reload_catalogs() -> JsonResponse:
    """Re-read both catalog files and publish the new tables."""
    styles = get_style_catalog().load(refresh=True)
    products = get_product_catalog().load(refresh=True)
    logger.info(f"Catalogs reloaded: {len(styles)} styles, {len(products)} product rows")
    return jsonify({"styles": len(styles), "products": len(products)})
