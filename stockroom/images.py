"""Image URL resolution and gallery ranking for product colors.

Catalog rows carry up to ten optional image columns, filled in unevenly
by the vendor. These helpers normalize them to absolute URLs, drop
anything that is not an image file, and order what is left so the most
representative shot comes first.
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from stockroom import config
from stockroom.models import PREFERRED_IMAGE_FIELDS, ProductRecord

__all__ = [
    "normalize_url",
    "has_image_extension",
    "is_swatch",
    "rank_image",
    "sort_gallery",
    "collect_images",
    "resolve_gallery",
]

Row = Union[ProductRecord, Mapping[str, Any]]

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
_VENDOR_RELATIVE = re.compile(r"^/?images/", re.IGNORECASE)
_IMAGE_EXTENSION = re.compile(r"\.(png|jpe?g|webp)$", re.IGNORECASE)
_SWATCH = re.compile(r"swatch", re.IGNORECASE)
_IMAGE_COLUMN = re.compile(r"image$", re.IGNORECASE)

# Background-removed "product only" renders
_PRODUCT_ONLY_SUFFIX = re.compile(r"_fm\.(jpe?g|png|webp)$")

SWATCH_SCORE = 9999
BASE_SCORE = 1000


def normalize_url(value: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """Turn a catalog image cell into an absolute URL.

    Absolute http(s) URLs pass through. Vendor-relative "images/..." paths,
    with or without a leading slash, are prefixed with the vendor host.
    Anything else returns None.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if _ABSOLUTE_URL.match(text):
        return text
    if _VENDOR_RELATIVE.match(text):
        base = (base_url or config.IMAGE_BASE_URL).rstrip("/")
        return f"{base}/{text.lstrip('/')}"
    return None


def has_image_extension(url: str) -> bool:
    return bool(_IMAGE_EXTENSION.search(url))


def is_swatch(url: str) -> bool:
    """True if the URL looks like a color chip rather than a product photo."""
    return bool(_SWATCH.search(url))


def rank_image(url: str) -> int:
    """Score an image URL; lower is more representative.

    On-model shots beat flats, front beats side beats back, and a
    product-only render gets a small bonus. Swatches always rank last.
    """
    u = url.lower()
    if is_swatch(u):
        return SWATCH_SCORE
    score = BASE_SCORE
    if "model" in u:
        score -= 600
    if "front" in u:
        score -= 300
    if "side" in u:
        score -= 100
    if "back" in u:
        score -= 50
    if _PRODUCT_ONLY_SUFFIX.search(u):
        score -= 30
    return score


def _dedupe_images(values: Iterable[Optional[str]], base_url: Optional[str] = None) -> List[str]:
    """Normalize, filter to image files, and dedupe (first occurrence wins)."""
    seen = set()
    urls: List[str] = []
    for value in values:
        url = normalize_url(value, base_url)
        if not url or not has_image_extension(url) or url in seen:
            continue
        seen.add(url)
        urls.append(url)
    return urls


def sort_gallery(urls: Iterable[Optional[str]], base_url: Optional[str] = None) -> List[str]:
    """Normalize, dedupe and order URLs best-first (stable for equal scores)."""
    return sorted(_dedupe_images(urls, base_url), key=rank_image)


def _row_image_values(row: Row) -> List[Tuple[str, Any]]:
    if isinstance(row, ProductRecord):
        return row.image_fields()

    preferred = [name for name in PREFERRED_IMAGE_FIELDS if name in row]
    # Schema drift: any other column named "...Image"
    others = [key for key in row if key not in preferred and _IMAGE_COLUMN.search(str(key))]
    return [(key, row[key]) for key in preferred + others]


def collect_images(rows: Iterable[Row], base_url: Optional[str] = None) -> List[str]:
    """Unique image URLs across rows, in row then column order (unranked)."""
    values = (value for row in rows for _, value in _row_image_values(row))
    return _dedupe_images(values, base_url)


def resolve_gallery(
    color_rows: Sequence[Row],
    all_style_rows: Sequence[Row],
    base_url: Optional[str] = None,
) -> List[str]:
    """Ranked gallery for one color, falling back to the whole style.

    When the color's own rows yield no usable image, every row of the style
    (any color) is scanned instead so the product never shows up imageless.
    """
    urls = collect_images(color_rows, base_url)
    if not urls:
        urls = collect_images(all_style_rows, base_url)
    return sorted(urls, key=rank_image)

