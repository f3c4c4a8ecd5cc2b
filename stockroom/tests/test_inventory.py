"""Tests for the inventory client and the two-tier inventory cache."""

import json
import os
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests  # type: ignore[import-untyped]

from stockroom.inventory import (
    FileCache,
    InventoryCache,
    InventoryClient,
    InventoryConfigError,
    InventoryFetchError,
    create_session,
    fetch_inventory,
)
from stockroom.tests.conftest import FakeInventoryClient


def _response(status_code=200, payload=None, text="", reason="OK"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = reason
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


class TestCreateSession:
    def test_basic_auth_and_no_cache_headers(self):
        session = create_session("12345", "secret")
        assert session.auth == ("12345", "secret")
        assert session.headers["Cache-Control"] == "no-cache"
        assert session.headers["Pragma"] == "no-cache"

    def test_basic_auth_header_encoding(self):
        session = create_session("12345", "secret")
        prepared = session.prepare_request(requests.Request("GET", "https://api.test/v2/inventory/"))
        # base64("12345:secret")
        assert prepared.headers["Authorization"] == "Basic MTIzNDU6c2VjcmV0"


class TestInventoryClient:
    def test_fetch_style_success(self):
        session = MagicMock()
        session.get.return_value = _response(payload=[{"sku": "A", "warehouses": []}])
        client = InventoryClient(account="a", api_key="k", base_url="https://api.test/v2/", timeout=3, session=session)

        data = client.fetch_style("1001")

        assert data == [{"sku": "A", "warehouses": []}]
        session.get.assert_called_once_with(
            "https://api.test/v2/inventory/", params={"style": "1001"}, timeout=3
        )

    def test_non_2xx_raises_with_status_and_body(self):
        session = MagicMock()
        session.get.return_value = _response(status_code=401, text="bad credentials", reason="Unauthorized")
        client = InventoryClient(account="a", api_key="k", session=session)

        with pytest.raises(InventoryFetchError) as exc_info:
            client.fetch_style("1001")

        err = exc_info.value
        assert err.status == 401
        assert err.body == "bad credentials"
        assert err.style_id == "1001"
        assert "401" in str(err)
        assert "bad credentials" in str(err)

    def test_transport_error_is_wrapped(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("boom")
        client = InventoryClient(account="a", api_key="k", session=session)

        with pytest.raises(InventoryFetchError) as exc_info:
            client.fetch_style("1001")
        assert exc_info.value.status is None
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_invalid_json_raises(self):
        session = MagicMock()
        session.get.return_value = _response(payload=ValueError("no json"), text="<html>")
        client = InventoryClient(account="a", api_key="k", session=session)

        with pytest.raises(InventoryFetchError):
            client.fetch_style("1001")

    def test_missing_credentials(self):
        client = InventoryClient(account="", api_key="")
        with pytest.raises(InventoryConfigError):
            client.fetch_style("1001")


class TestFileCache:
    def test_roundtrip_and_name(self, tmp_path, clock):
        files = FileCache(tmp_path / "c", ttl=300, clock=clock)
        assert files.write("1001", [{"sku": "A"}])
        assert files.path_for("1001").name == "inventory-1001.json"
        data, mtime = files.read("1001")
        assert data == [{"sku": "A"}]
        assert mtime == pytest.approx(os.stat(files.path_for("1001")).st_mtime)

    def test_stale_file_is_ignored(self, tmp_path, clock):
        files = FileCache(tmp_path, ttl=300, clock=clock)
        files.write("1001", [])
        clock.advance(301)
        assert files.read("1001") is None

    def test_corrupt_file_is_a_miss(self, tmp_path, clock):
        files = FileCache(tmp_path, ttl=300, clock=clock)
        files.path_for("1001").write_text("{not json")
        assert files.read("1001") is None

    def test_write_failure_is_swallowed(self, tmp_path, clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where the cache dir should be")
        files = FileCache(blocker / "ssinv", ttl=300, clock=clock)
        assert files.write("1001", [{"sku": "A"}]) is False


class TestInventoryCache:
    def test_second_call_within_ttl_is_served_from_memory(self, inventory_cache, fake_client, clock):
        first = inventory_cache.fetch_inventory(1001)
        clock.advance(299)
        second = inventory_cache.fetch_inventory("1001")
        assert second == first
        assert fake_client.calls == ["1001"]

    def test_refresh_always_fetches_once(self, inventory_cache, fake_client):
        inventory_cache.fetch_inventory(1001)
        inventory_cache.fetch_inventory(1001, refresh=True)
        inventory_cache.fetch_inventory(1001, refresh=True)
        assert fake_client.calls == ["1001", "1001", "1001"]

    def test_expired_entries_trigger_live_fetch(self, inventory_cache, fake_client, clock):
        inventory_cache.fetch_inventory(1001)
        clock.advance(301)
        inventory_cache.fetch_inventory(1001)
        assert fake_client.calls == ["1001", "1001"]

    def test_live_fetch_writes_file_verbatim(self, inventory_cache, fake_client, tmp_path):
        data = inventory_cache.fetch_inventory(1002)
        path = tmp_path / "ssinv" / "inventory-1002.json"
        assert json.loads(path.read_text()) == data == fake_client.payloads["1002"]

    def test_file_hit_populates_memory(self, fake_client, tmp_path, clock):
        cache_dir = tmp_path / "ssinv"
        FileCache(cache_dir, ttl=300, clock=clock).write("1001", [{"sku": "FROM-FILE", "warehouses": []}])

        cache = InventoryCache(client=fake_client, ttl=300, cache_dir=cache_dir, clock=clock)
        assert cache.fetch_inventory(1001) == [{"sku": "FROM-FILE", "warehouses": []}]
        assert cache.memory.get("1001") is not None
        # Second read served from memory even if the file disappears
        os.remove(cache_dir / "inventory-1001.json")
        assert cache.fetch_inventory(1001)[0]["sku"] == "FROM-FILE"
        assert fake_client.calls == []

    def test_refresh_bypasses_fresh_file(self, fake_client, tmp_path, clock):
        cache_dir = tmp_path / "ssinv"
        FileCache(cache_dir, ttl=300, clock=clock).write("1001", [{"sku": "OLD"}])
        cache = InventoryCache(client=fake_client, ttl=300, cache_dir=cache_dir, clock=clock)
        data = cache.fetch_inventory(1001, refresh=True)
        assert data == fake_client.payloads["1001"]
        assert fake_client.calls == ["1001"]

    def test_fetch_error_propagates_and_is_not_cached(self, tmp_path, clock):
        client = FakeInventoryClient(error=InventoryFetchError("[S&S] 500", style_id="1001", status=500))
        cache = InventoryCache(client=client, ttl=300, cache_dir=tmp_path, clock=clock)
        with pytest.raises(InventoryFetchError):
            cache.fetch_inventory(1001)
        assert cache.memory.get("1001") is None
        assert not (tmp_path / "inventory-1001.json").exists()

    def test_refresh_failure_does_not_fall_back_to_stale(self, tmp_path, clock):
        client = FakeInventoryClient(payloads={"1001": [{"sku": "A"}]})
        cache = InventoryCache(client=client, ttl=300, cache_dir=tmp_path, clock=clock)
        cache.fetch_inventory(1001)
        client.error = InventoryFetchError("down", style_id="1001", status=503)
        with pytest.raises(InventoryFetchError):
            cache.fetch_inventory(1001, refresh=True)

    def test_file_write_failure_does_not_fail_fetch(self, fake_client, tmp_path, clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        cache = InventoryCache(client=fake_client, ttl=300, cache_dir=blocker / "ssinv", clock=clock)
        assert cache.fetch_inventory(1002) == fake_client.payloads["1002"]
        assert cache.fetch_inventory(1002) == fake_client.payloads["1002"]
        assert fake_client.calls == ["1002"]

    @pytest.mark.parametrize("style_id", ["abc", "-5", -5, "1e3"])
    def test_invalid_style_id_never_reaches_vendor(self, inventory_cache, fake_client, style_id):
        with pytest.raises(ValueError):
            inventory_cache.fetch_inventory(style_id)
        assert fake_client.calls == []

    def test_concurrent_cold_requests_share_one_fetch(self, tmp_path, clock):
        release = threading.Event()
        started = threading.Event()

        class SlowClient(FakeInventoryClient):
            def fetch_style(self, style_id):
                started.set()
                release.wait(timeout=5)
                return super().fetch_style(style_id)

        client = SlowClient(payloads={"1001": [{"sku": "A"}]})
        cache = InventoryCache(client=client, ttl=300, cache_dir=tmp_path, clock=clock)
        results = []

        def worker():
            results.append(cache.fetch_inventory(1001))

        first = threading.Thread(target=worker)
        first.start()
        assert started.wait(timeout=5)
        others = [threading.Thread(target=worker) for _ in range(4)]
        for t in others:
            t.start()
        # Give the joiners a moment to find the in-flight request
        time.sleep(0.2)
        release.set()
        for t in [first] + others:
            t.join(timeout=5)

        assert results == [[{"sku": "A"}]] * 5
        assert client.calls == ["1001"]

    def test_concurrent_waiters_see_the_same_error(self, tmp_path, clock):
        release = threading.Event()
        started = threading.Event()

        class FailingClient(FakeInventoryClient):
            def fetch_style(self, style_id):
                self.calls.append(style_id)
                started.set()
                release.wait(timeout=5)
                raise InventoryFetchError("[S&S] 502", style_id=style_id, status=502)

        client = FailingClient()
        cache = InventoryCache(client=client, ttl=300, cache_dir=tmp_path, clock=clock)
        errors = []

        def worker():
            try:
                cache.fetch_inventory(1001)
            except InventoryFetchError as e:
                errors.append(e.status)

        first = threading.Thread(target=worker)
        first.start()
        assert started.wait(timeout=5)
        second = threading.Thread(target=worker)
        second.start()
        time.sleep(0.2)
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert errors == [502, 502]
        # The in-flight slot is released after failure
        assert cache._inflight == {}


def test_module_level_fetch_uses_singleton(installed_inventory, fake_client):
    assert fetch_inventory(1002) == fake_client.payloads["1002"]
    assert fetch_inventory("1002") == fake_client.payloads["1002"]
    assert fake_client.calls == ["1002"]
