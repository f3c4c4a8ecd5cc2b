"""Data models for catalog rows and inventory cache entries."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

__all__ = [
    "StyleRecord",
    "ProductRecord",
    "CacheEntry",
    "PREFERRED_IMAGE_FIELDS",
]

# Named image columns scanned first, in this order
PREFERRED_IMAGE_FIELDS: Tuple[str, ...] = (
    "color_on_model_front_image",
    "color_on_model_side_image",
    "color_on_model_back_image",
    "color_front_image",
    "color_side_image",
    "color_back_image",
    "color_direct_side_image",
)

_OTHER_IMAGE_FIELDS: Tuple[str, ...] = ("color_swatch_image",)


@dataclass(frozen=True)
class StyleRecord:
    """A brand + product-line entry from the styles reference table."""

    style_id: int
    brand_name: str
    style_name: str
    title: str = ""
    description: str = ""
    # Resolved preferred image: style image, then generic image, then brand image
    image: str = ""
    brand_image: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or f"{self.brand_name} {self.style_name}".strip()

    def full_image_url(self, base_url: str) -> str:
        """Absolute URL for the style's image, or "" when it has none."""
        url = self.image or self.brand_image or ""
        if not url or url.startswith("http"):
            return url
        return f"{base_url.rstrip('/')}/{url.lstrip('/')}"

    def to_dict(self, base_url: Optional[str] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "styleID": self.style_id,
            "brandName": self.brand_name,
            "styleName": self.style_name,
            "title": self.display_title,
            "description": self.description,
        }
        data["styleImage"] = self.full_image_url(base_url) if base_url else self.image
        return data


@dataclass(frozen=True)
class ProductRecord:
    """One (style, color, size) row of the product table.

    Numeric fields are None when the source cell was blank or unparseable;
    they are never defaulted to zero.
    """

    sku: str
    style_id: int
    gtin: str = ""
    sku_id_master: int = 0
    brand_name: str = ""
    style_name: str = ""

    color_name: str = ""
    color_code: str = ""
    color_price_code_name: str = ""
    color_group: str = ""
    color_family: str = ""
    color_swatch_text_color: str = ""
    color1: str = ""
    color2: str = ""

    color_swatch_image: str = ""
    color_front_image: str = ""
    color_side_image: str = ""
    color_back_image: str = ""
    color_direct_side_image: str = ""
    color_on_model_front_image: str = ""
    color_on_model_side_image: str = ""
    color_on_model_back_image: str = ""

    size_name: str = ""
    size_code: str = ""
    size_order: str = ""
    size_price_code_name: str = ""

    case_qty: Optional[float] = None
    unit_weight: Optional[float] = None
    map_price: Optional[float] = None
    piece_price: Optional[float] = None
    dozen_price: Optional[float] = None
    case_price: Optional[float] = None
    sale_price: Optional[float] = None
    customer_price: Optional[float] = None

    # Unrecognised columns whose header ends in "image", keyed by raw header
    extra_images: Mapping[str, str] = field(default_factory=dict, compare=False)

    def display_price(self) -> Optional[float]:
        """Price shown to users: sale, then customer, then piece price.

        The first candidate that is present and greater than zero wins.
        """
        for price in (self.sale_price, self.customer_price, self.piece_price):
            if price is not None and price > 0:
                return price
        return None

    def image_fields(self) -> List[Tuple[str, str]]:
        """All image-like (column, value) pairs, preferred columns first."""
        pairs = [(name, getattr(self, name)) for name in PREFERRED_IMAGE_FIELDS]
        pairs.extend((name, getattr(self, name)) for name in _OTHER_IMAGE_FIELDS)
        pairs.extend(self.extra_images.items())
        return [(name, value) for name, value in pairs if value]


@dataclass
class CacheEntry:
    """A cached value and the epoch time it was captured."""

    value: Any
    inserted_at: float
