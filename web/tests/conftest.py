"""Shared fixtures for the web API test suite."""

import pytest

from stockroom.inventory import InventoryCache, set_inventory_cache
from stockroom.products import ProductCatalog, set_product_catalog
from stockroom.styles import StyleCatalog, set_style_catalog
from stockroom.tests.conftest import PRODUCTS_CSV, STYLES_CSV, FakeClock, FakeInventoryClient


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
def fake_client():
    return FakeInventoryClient(
        payloads={
            "1001": [
                {"sku": "W-S", "warehouses": [{"qty": 4}, {"qty": 6}]},
                {"sku": "W-M", "warehouses": [{"qty": 0}]},
                {"sku": "N-M", "warehouses": [{"qty": 7}]},
            ],
            "1002": [{"sku": "B-L", "warehouses": [{"qty": 2}]}],
        }
    )


@pytest.fixture
def data_layer(styles_path, products_path, fake_client, tmp_path):
    """Install sample catalogs and a fake-backed inventory cache."""
    set_style_catalog(StyleCatalog(styles_path))
    set_product_catalog(ProductCatalog(products_path))
    set_inventory_cache(
        InventoryCache(client=fake_client, ttl=300, cache_dir=tmp_path / "ssinv", clock=FakeClock())
    )
    yield
    set_style_catalog(None)
    set_product_catalog(None)
    set_inventory_cache(None)


@pytest.fixture
def client(data_layer):
    """Create Flask test client."""
    from web.app import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client
