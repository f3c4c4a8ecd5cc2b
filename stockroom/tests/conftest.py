"""Shared fixtures for the data-layer test suite."""

import time
from typing import Any, Dict, List

import pytest

from stockroom.inventory import InventoryCache, set_inventory_cache
from stockroom.products import ProductCatalog, set_product_catalog
from stockroom.styles import StyleCatalog, set_style_catalog

STYLES_CSV = """styleID,brandName,styleName,title,description,styleImage,brandImage
1001,Gildan,5000,Heavy Cotton T-Shirt,"Classic 5.3 oz, pre-shrunk",Images/Style/1001_fm.jpg,Images/Brand/gildan.jpg
1002,Bella + Canvas,3001,Unisex Jersey Tee,Soft retail fit,,Images/Brand/bella.jpg
not-a-number,Broken,Row,Should Be Dropped,,,
1003,Gildan,18500,Heavy Blend Hooded Sweatshirt,,,
"""

PRODUCTS_CSV = """sku,styleID,brandName,styleName,colorName,sizeName,sizeOrder,piecePrice,customerPrice,salePrice,colorOnModelFrontImage,colorFrontImage,colorBackImage,colorSwatchImage
W-S,1001,Gildan,5000,White,S,1,3.50,3.10,,Images/Color/white_onmodel_front.jpg,Images/Color/white_front_fm.jpg,Images/Color/white_back.jpg,Images/Color/white_swatch.jpg
W-M,1001,Gildan,5000,White,M,2,3.50,n/a,0,,Images/Color/white_front_fm.jpg,,
N-M,1001,Gildan,5000,Navy,M,2,3.75,,,,,,
,1001,Gildan,5000,Navy,L,3,3.75,,,,,,
X-1,,Gildan,5000,Navy,XL,4,3.75,,,,,,
B-L,1002,Bella + Canvas,3001,Black,L,3,5.00,,4.25,https://cdn.example.com/black_model_front.png,,,
"""


class FakeInventoryClient:
    """Stands in for InventoryClient; records every live fetch."""

    def __init__(self, payloads: Dict[str, Any] = None, error: Exception = None):
        self.payloads = payloads or {}
        self.error = error
        self.calls: List[str] = []

    def fetch_style(self, style_id: str) -> Any:
        self.calls.append(style_id)
        if self.error is not None:
            raise self.error
        return self.payloads.get(style_id, [])


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def styles_path(tmp_path):
    path = tmp_path / "Styles.csv"
    path.write_text(STYLES_CSV, encoding="utf-8")
    return path


@pytest.fixture
def products_path(tmp_path):
    path = tmp_path / "Products.csv"
    path.write_text(PRODUCTS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def style_catalog(styles_path):
    return StyleCatalog(styles_path)


@pytest.fixture
def product_catalog(products_path):
    return ProductCatalog(products_path)


@pytest.fixture
def installed_catalogs(style_catalog, product_catalog):
    """Install the sample catalogs as the process-wide singletons."""
    set_style_catalog(style_catalog)
    set_product_catalog(product_catalog)
    yield style_catalog, product_catalog
    set_style_catalog(None)
    set_product_catalog(None)


@pytest.fixture
def fake_client():
    return FakeInventoryClient(
        payloads={
            "1001": [
                {"sku": "W-S", "warehouses": [{"warehouseAbbr": "IL", "qty": 4}, {"warehouseAbbr": "NV", "qty": 6}]},
                {"sku": "W-M", "warehouses": [{"warehouseAbbr": "IL", "qty": 0}]},
                {"sku": "N-M", "warehouses": [{"warehouseAbbr": "IL", "qty": 7}, {"warehouseAbbr": "NV"}]},
            ],
            "1002": [{"sku": "B-L", "warehouses": [{"qty": 2}]}],
        }
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def inventory_cache(fake_client, tmp_path, clock):
    return InventoryCache(client=fake_client, ttl=300, cache_dir=tmp_path / "ssinv", clock=clock)


@pytest.fixture
def installed_inventory(inventory_cache):
    set_inventory_cache(inventory_cache)
    yield inventory_cache
    set_inventory_cache(None)
