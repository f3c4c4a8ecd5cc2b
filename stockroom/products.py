"""Per-SKU product catalog (Products.csv).

One row per (style, color, size). The catalog is published as a single
immutable snapshot so the flat row list, the style index and the
style -> sku index always come from the same load.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from stockroom import config
from stockroom.csv_decoder import read_table
from stockroom.logging_config import get_logger, log_catalog_event
from stockroom.models import ProductRecord
from stockroom.styles import parse_style_id

__all__ = [
    "ProductCatalog",
    "CatalogSnapshot",
    "parse_number",
    "order_sizes",
    "get_product_catalog",
    "set_product_catalog",
    "load_products",
    "get_products_by_style",
    "list_colors_for_style",
    "get_sku_map_for_style",
    "get_color_map_for_style",
]

logger = get_logger("products")

# ProductRecord field -> lower-cased header
TEXT_COLUMNS: Dict[str, str] = {
    "sku": "sku",
    "gtin": "gtin",
    "brand_name": "brandname",
    "style_name": "stylename",
    "color_name": "colorname",
    "color_code": "colorcode",
    "color_price_code_name": "colorpricecodename",
    "color_group": "colorgroup",
    "color_family": "colorfamily",
    "color_swatch_text_color": "colorswatchtextcolor",
    "color1": "color1",
    "color2": "color2",
    "color_swatch_image": "colorswatchimage",
    "color_front_image": "colorfrontimage",
    "color_side_image": "colorsideimage",
    "color_back_image": "colorbackimage",
    "color_direct_side_image": "colordirectsideimage",
    "color_on_model_front_image": "coloronmodelfrontimage",
    "color_on_model_side_image": "coloronmodelsideimage",
    "color_on_model_back_image": "coloronmodelbackimage",
    "size_name": "sizename",
    "size_code": "sizecode",
    "size_order": "sizeorder",
    "size_price_code_name": "sizepricecodename",
}

NUMBER_COLUMNS: Dict[str, str] = {
    "case_qty": "caseqty",
    "unit_weight": "unitweight",
    "map_price": "mapprice",
    "piece_price": "pieceprice",
    "dozen_price": "dozenprice",
    "case_price": "caseprice",
    "sale_price": "saleprice",
    "customer_price": "customerprice",
}

_KNOWN_HEADERS = frozenset(TEXT_COLUMNS.values()) | frozenset(NUMBER_COLUMNS.values()) | {"styleid", "skuid_master"}


def parse_number(value: Optional[str]) -> Optional[float]:
    """Parse a numeric cell permissively; blank or unparseable -> None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _record_to_product(record: Dict[str, str], raw_headers: Sequence[str]) -> Optional[ProductRecord]:
    style_id = parse_style_id(record.get("styleid", ""))
    sku = record.get("sku", "")
    if not style_id or not sku:
        return None

    fields: Dict[str, object] = {name: record.get(column, "") for name, column in TEXT_COLUMNS.items()}
    fields.update({name: parse_number(record.get(column)) for name, column in NUMBER_COLUMNS.items()})

    master = parse_number(record.get("skuid_master"))
    fields["sku_id_master"] = int(master) if master is not None else 0

    extra_images = {
        raw: record.get(raw.strip().lower(), "")
        for raw in raw_headers
        if raw.strip().lower().endswith("image")
        and raw.strip().lower() not in _KNOWN_HEADERS
        and record.get(raw.strip().lower(), "")
    }
    return ProductRecord(style_id=style_id, extra_images=MappingProxyType(extra_images), **fields)


@dataclass(frozen=True)
class CatalogSnapshot:
    """One load generation of the product table and its indexes."""

    products: Tuple[ProductRecord, ...] = ()
    by_style: Mapping[int, Tuple[ProductRecord, ...]] = field(default_factory=lambda: MappingProxyType({}))
    by_style_sku: Mapping[int, Mapping[str, ProductRecord]] = field(default_factory=lambda: MappingProxyType({}))
    delimiter: str = ","

    def rows_for(self, style_id: int) -> Tuple[ProductRecord, ...]:
        return self.by_style.get(style_id, ())

    def sku_map_for(self, style_id: int) -> Dict[str, ProductRecord]:
        return dict(self.by_style_sku.get(style_id, {}))

    def color_map_for(self, style_id: int) -> Dict[str, List[ProductRecord]]:
        """color name -> rows for one style, colors in first-seen order."""
        color_map: Dict[str, List[ProductRecord]] = {}
        for row in self.rows_for(style_id):
            color_map.setdefault(row.color_name, []).append(row)
        return color_map

    def colors_for(self, style_id: int) -> List[str]:
        """Unique non-empty color names for a style, first-seen order."""
        return [color for color in self.color_map_for(style_id) if color]


def build_snapshot(products: Sequence[ProductRecord], delimiter: str = ",") -> CatalogSnapshot:
    """Build all indexes for a row list; later duplicate SKUs overwrite earlier ones in the sku index."""
    by_style: Dict[int, List[ProductRecord]] = {}
    by_style_sku: Dict[int, Dict[str, ProductRecord]] = {}
    for row in products:
        by_style.setdefault(row.style_id, []).append(row)
        by_style_sku.setdefault(row.style_id, {})[row.sku] = row

    return CatalogSnapshot(
        products=tuple(products),
        by_style=MappingProxyType({sid: tuple(rows) for sid, rows in by_style.items()}),
        by_style_sku=MappingProxyType({sid: MappingProxyType(m) for sid, m in by_style_sku.items()}),
        delimiter=delimiter,
    )


class ProductCatalog:
    """In-memory product table indexed by style and by (style, sku)."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or config.PRODUCTS_CSV_PATH)
        self._lock = threading.Lock()
        self._snapshot: Optional[CatalogSnapshot] = None

    def _degrade(self, event_type: str, message: str) -> CatalogSnapshot:
        log_catalog_event(
            event_type,
            {"message": message, "catalog": "products", "path": str(self.path)},
            level=logging.WARNING,
            logger_name="products",
        )
        return CatalogSnapshot()

    def _read(self) -> CatalogSnapshot:
        try:
            table = read_table(self.path)
        except OSError as e:
            return self._degrade("catalog_read_failed", f"Could not read products file {self.path}: {e}")

        if table is None:
            return self._degrade("catalog_missing", f"Products file not found at {self.path}")
        if not table.headers or not table.rows:
            return self._degrade("catalog_empty", "Products file is empty or missing headers")

        products: List[ProductRecord] = []
        dropped = 0
        for record in table.records():
            row = _record_to_product(record, table.headers)
            if row is None:
                dropped += 1
                continue
            products.append(row)

        if dropped:
            log_catalog_event(
                "catalog_rows_dropped",
                {
                    "message": f"Dropped {dropped} product rows without a style id or sku",
                    "catalog": "products",
                    "dropped": dropped,
                },
                level=logging.WARNING,
                logger_name="products",
            )
        logger.info(f"Loaded {len(products)} product rows from {self.path.name} (delimiter {table.delimiter!r})")
        return build_snapshot(products, table.delimiter)

    def snapshot(self, refresh: bool = False) -> CatalogSnapshot:
        """Return the current load generation, loading on first use or on refresh."""
        snapshot = self._snapshot
        if snapshot is not None and not refresh:
            return snapshot

        with self._lock:
            if self._snapshot is not None and not refresh:
                return self._snapshot
            snapshot = self._read()
            self._snapshot = snapshot
            return snapshot

    def load(self, refresh: bool = False) -> Tuple[ProductRecord, ...]:
        return self.snapshot(refresh).products

    def all(self) -> List[ProductRecord]:
        return list(self.load())

    def get_by_style(self, style_id: Union[int, str]) -> List[ProductRecord]:
        """All rows for a style, in file order."""
        sid = parse_style_id(style_id)
        return list(self.snapshot().rows_for(sid)) if sid is not None else []

    def get_sku_map(self, style_id: Union[int, str]) -> Dict[str, ProductRecord]:
        """sku -> row for one style (a copy; callers may mutate it)."""
        sid = parse_style_id(style_id)
        return self.snapshot().sku_map_for(sid) if sid is not None else {}

    def get_color_map(self, style_id: Union[int, str]) -> Dict[str, List[ProductRecord]]:
        sid = parse_style_id(style_id)
        return self.snapshot().color_map_for(sid) if sid is not None else {}

    def list_colors(self, style_id: Union[int, str]) -> List[str]:
        sid = parse_style_id(style_id)
        return self.snapshot().colors_for(sid) if sid is not None else []

    def __len__(self) -> int:
        return len(self.load())


def order_sizes(sizes: Sequence[str]) -> List[str]:
    """Sort size names in canonical apparel order.

    Known sizes (config.SIZE_ORDER) come first in that order; unknown
    sizes follow in their input order.
    """
    rank = {name: idx for idx, name in enumerate(config.SIZE_ORDER)}
    fallback = len(rank)
    return sorted(sizes, key=lambda s: rank.get(s, fallback))


# Process-wide singleton
_catalog: Optional[ProductCatalog] = None
_catalog_lock = threading.Lock()


def get_product_catalog() -> ProductCatalog:
    """Get the product catalog singleton."""
    global _catalog
    if _catalog is None:
        with _catalog_lock:
            if _catalog is None:
                _catalog = ProductCatalog()
    return _catalog


def set_product_catalog(catalog: Optional[ProductCatalog]) -> None:
    """Replace the singleton (None resets it to a lazily created default)."""
    global _catalog
    with _catalog_lock:
        _catalog = catalog


def load_products(refresh: bool = False) -> List[ProductRecord]:
    return list(get_product_catalog().load(refresh=refresh))


def get_products_by_style(style_id: Union[int, str]) -> List[ProductRecord]:
    return get_product_catalog().get_by_style(style_id)


def list_colors_for_style(style_id: Union[int, str]) -> List[str]:
    return get_product_catalog().list_colors(style_id)


def get_sku_map_for_style(style_id: Union[int, str]) -> Dict[str, ProductRecord]:
    return get_product_catalog().get_sku_map(style_id)


def get_color_map_for_style(style_id: Union[int, str]) -> Dict[str, List[ProductRecord]]:
    return get_product_catalog().get_color_map(style_id)
