"""Join live inventory to catalog rows for the style inventory view."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from stockroom import config
from stockroom.images import resolve_gallery
from stockroom.inventory import fetch_inventory
from stockroom.logging_config import get_logger
from stockroom.models import ProductRecord
from stockroom.products import get_product_catalog, order_sizes, parse_number
from stockroom.styles import get_style, parse_style_id

__all__ = [
    "warehouse_total",
    "qty_by_sku",
    "totals_by_color",
    "prefer_color",
    "SizeRow",
    "StyleInventory",
    "build_style_inventory",
]

logger = get_logger("aggregation")


def _qty(value: Any) -> float:
    # Absent, non-numeric or non-finite quantities count as zero
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        return parse_number(value) or 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    return 0


def warehouse_total(row: Mapping[str, Any]) -> float:
    """Sum qty across all warehouses of one inventory row."""
    warehouses = row.get("warehouses") or []
    if not isinstance(warehouses, list):
        return 0
    return sum(_qty(w.get("qty")) for w in warehouses if isinstance(w, Mapping))


def qty_by_sku(payload: Optional[Iterable[Any]]) -> Dict[str, float]:
    """Total on-hand quantity per SKU, in payload order.

    A SKU listed twice keeps its last total.
    """
    totals: Dict[str, float] = {}
    if not isinstance(payload, list):
        return totals
    for row in payload:
        if not isinstance(row, Mapping) or not row.get("sku"):
            continue
        totals[str(row["sku"])] = warehouse_total(row)
    return totals


def totals_by_color(
    color_map: Mapping[str, Sequence[ProductRecord]],
    qty: Mapping[str, float],
) -> Dict[str, float]:
    """Per-color stock: the sum of per-SKU totals for every SKU of that color."""
    return {color: sum(qty.get(row.sku, 0) for row in rows) for color, rows in color_map.items()}


def prefer_color(colors: Sequence[str], totals: Mapping[str, float]) -> str:
    """Default display color for a style.

    White if in stock, else black if in stock, else the first color in
    stock, else the first color, else the placeholder.
    """
    lowered = [c.lower() for c in colors]
    for preferred in config.PREFERRED_COLORS:
        if preferred in lowered:
            color = colors[lowered.index(preferred)]
            if totals.get(color, 0) > 0:
                return color
    for color in colors:
        if totals.get(color, 0) > 0:
            return color
    return colors[0] if colors else config.PLACEHOLDER_COLOR


@dataclass
class SizeRow:
    size: str
    sku: str
    qty: float
    price: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"size": self.size, "sku": self.sku, "qty": self.qty, "price": self.price}


@dataclass
class StyleInventory:
    """Everything the style inventory page needs, already joined."""

    style_id: int
    brand_name: str
    style_name: str
    title: str
    colors: List[str] = field(default_factory=list)
    qty_by_sku: Dict[str, float] = field(default_factory=dict)
    totals_by_color: Dict[str, float] = field(default_factory=dict)
    preferred_color: str = config.PLACEHOLDER_COLOR
    gallery: List[str] = field(default_factory=list)
    sizes_by_color: Dict[str, List[SizeRow]] = field(default_factory=dict)

    @property
    def inventory(self) -> List[Dict[str, Any]]:
        return [{"sku": sku, "totalQty": total} for sku, total in self.qty_by_sku.items()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "styleID": self.style_id,
            "brandName": self.brand_name,
            "styleName": self.style_name,
            "title": self.title,
            "colors": list(self.colors),
            "inventory": self.inventory,
            "totalsByColor": dict(self.totals_by_color),
            "preferredColor": self.preferred_color,
            "gallery": list(self.gallery),
            "sizesByColor": {
                color: [row.to_dict() for row in rows] for color, rows in self.sizes_by_color.items()
            },
        }


def _size_rows(rows: Sequence[ProductRecord], qty: Mapping[str, float]) -> List[SizeRow]:
    by_size: Dict[str, ProductRecord] = {}
    for row in rows:
        by_size.setdefault(row.size_name, row)
    return [
        SizeRow(size=size, sku=by_size[size].sku, qty=qty.get(by_size[size].sku, 0), price=by_size[size].display_price())
        for size in order_sizes(list(by_size))
    ]


def build_style_inventory(style_id: Union[int, str], refresh: bool = False) -> StyleInventory:
    """Join catalog rows and live inventory for one style.

    A style with no product rows gets an empty view (no colors, no stock,
    placeholder color) without contacting the vendor.

    Raises:
        ValueError: If style_id is not numeric
        InventoryFetchError: If the live inventory lookup fails
    """
    sid = parse_style_id(style_id)
    if sid is None:
        raise ValueError(f"Invalid style id: {style_id!r}")

    # Every product view below comes from one load generation
    snapshot = get_product_catalog().snapshot()
    rows = list(snapshot.rows_for(sid))
    colors = snapshot.colors_for(sid)
    color_map = snapshot.color_map_for(sid)
    meta = get_style(sid)

    qty = qty_by_sku(fetch_inventory(sid, refresh=refresh)) if rows else {}
    color_totals = totals_by_color({c: color_map[c] for c in colors}, qty)
    preferred = prefer_color(colors, color_totals)

    first = rows[0] if rows else None
    view = StyleInventory(
        style_id=sid,
        brand_name=(meta.brand_name if meta else "") or (first.brand_name if first else ""),
        style_name=(meta.style_name if meta else "") or (first.style_name if first else ""),
        title=meta.title if meta else "",
        colors=colors,
        qty_by_sku=qty,
        totals_by_color=color_totals,
        preferred_color=preferred,
        gallery=resolve_gallery(color_map.get(preferred, []), rows) if rows else [],
        sizes_by_color={color: _size_rows(color_map.get(color, []), qty) for color in colors},
    )
    logger.debug(f"Built inventory view for style {sid}: {len(rows)} rows, {len(qty)} skus")
    return view
