"""Client and two-tier cache for the S&S Activewear inventory endpoint.

Lookups go memory -> file -> live request. Both tiers share one TTL.
A successful live fetch is written through to memory and (best-effort)
to disk. Concurrent cold lookups for the same style share one request.
"""

import json
import logging
import os
import tempfile
import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import requests  # type: ignore[import-untyped]

from stockroom import config
from stockroom.logging_config import get_logger, log_catalog_event
from stockroom.styles import parse_style_id
from stockroom.ttl_cache import TTLCache

__all__ = [
    "InventoryFetchError",
    "InventoryConfigError",
    "InventoryClient",
    "FileCache",
    "InventoryCache",
    "create_session",
    "get_inventory_cache",
    "set_inventory_cache",
    "fetch_inventory",
]

logger = get_logger("inventory")

# Raw vendor payload: list of {"sku": ..., "warehouses": [{"qty": ...}, ...]}
Payload = Any


class InventoryFetchError(Exception):
    """Raised when a live inventory request fails."""

    def __init__(
        self,
        message: str,
        style_id: Optional[str] = None,
        status: Optional[int] = None,
        reason: str = "",
        body: str = "",
    ):
        super().__init__(message)
        self.style_id = style_id
        self.status = status
        self.reason = reason
        self.body = body


class InventoryConfigError(InventoryFetchError):
    """Raised when vendor credentials are not configured."""


def create_session(account: str, api_key: str) -> requests.Session:
    """Create a requests Session with basic auth and no-cache headers.

    The remote response must not be cached by any intermediary; this
    module owns the cache policy.
    """
    session = requests.Session()
    session.headers.update(config.HEADERS)
    session.headers.update({"Cache-Control": "no-cache", "Pragma": "no-cache"})
    session.auth = (account, api_key)
    return session


class InventoryClient:
    """Fetches live per-style inventory from the vendor REST API."""

    def __init__(
        self,
        account: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.account = config.SS_ACCOUNT if account is None else account
        self.api_key = config.SS_API_KEY if api_key is None else api_key
        self.base_url = (base_url or config.SS_API_BASE).rstrip("/")
        self.timeout = config.REQUEST_TIMEOUT if timeout is None else timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            if not self.account or not self.api_key:
                raise InventoryConfigError("SS_ACCOUNT and SS_API_KEY must be set for live inventory lookups")
            self._session = create_session(self.account, self.api_key)
        return self._session

    def fetch_style(self, style_id: str) -> Payload:
        """GET /inventory/?style=<id>. Single attempt, no retries.

        Raises:
            InventoryFetchError: on transport failure, non-2xx status, or a non-JSON body
        """
        url = f"{self.base_url}/inventory/"
        started = time.monotonic()
        try:
            resp = self.session.get(url, params={"style": style_id}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Inventory request for style {style_id} failed: {e}")
            raise InventoryFetchError(f"[S&S] request failed: {e}", style_id=style_id) from e

        elapsed_ms = round((time.monotonic() - started) * 1000)
        if not 200 <= resp.status_code < 300:
            body = resp.text or ""
            log_catalog_event(
                "inventory_fetch_failed",
                {
                    "message": f"Inventory API returned {resp.status_code} for style {style_id}",
                    "style_id": style_id,
                    "status": resp.status_code,
                    "elapsed_ms": elapsed_ms,
                },
                level=logging.ERROR,
                logger_name="inventory",
            )
            raise InventoryFetchError(
                f"[S&S] {resp.status_code} {resp.reason or ''} - {body}".strip(),
                style_id=style_id,
                status=resp.status_code,
                reason=resp.reason or "",
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise InventoryFetchError(
                f"[S&S] invalid JSON in inventory response for style {style_id}",
                style_id=style_id,
                status=resp.status_code,
                body=resp.text or "",
            ) from e

        log_catalog_event(
            "inventory_fetched",
            {
                "message": f"Fetched inventory for style {style_id}",
                "style_id": style_id,
                "rows": len(data) if isinstance(data, list) else None,
                "elapsed_ms": elapsed_ms,
            },
            level=logging.DEBUG,
            logger_name="inventory",
        )
        return data


class FileCache:
    """One JSON file per style holding the verbatim last-fetched payload.

    Freshness is judged by file modification time. No file locking;
    concurrent writers are last-write-wins.
    """

    def __init__(self, cache_dir: Union[str, Path], ttl: float, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._clock = clock

    def path_for(self, style_id: str) -> Path:
        return self.cache_dir / f"inventory-{style_id}.json"

    def read(self, style_id: str) -> Optional[Tuple[Payload, float]]:
        """Return (payload, mtime) if a fresh file exists, else None."""
        path = self.path_for(style_id)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not stat inventory cache file {path}: {e}")
            return None

        if self._clock() - mtime >= self.ttl:
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f), mtime
        except (OSError, ValueError) as e:
            log_catalog_event(
                "cache_read_failed",
                {"message": f"Ignoring unreadable inventory cache file {path}: {e}", "style_id": style_id},
                level=logging.WARNING,
                logger_name="inventory",
            )
            return None

    def write(self, style_id: str, data: Payload) -> bool:
        """Write the payload; failures are logged and swallowed."""
        path = self.path_for(style_id)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            log_catalog_event(
                "cache_write_failed",
                {"message": f"Could not write inventory cache file {path}: {e}", "style_id": style_id},
                level=logging.WARNING,
                logger_name="inventory",
            )
            return False
        return True


class InventoryCache:
    """Memory + file TTL cache in front of an InventoryClient."""

    def __init__(
        self,
        client: Optional[InventoryClient] = None,
        ttl: Optional[float] = None,
        cache_dir: Union[str, Path, None] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = config.CACHE_TTL_SECONDS if ttl is None else ttl
        self.client = client or InventoryClient()
        self.memory: TTLCache[Payload] = TTLCache(self.ttl, clock=clock)
        self.files = FileCache(cache_dir or config.CACHE_DIR, self.ttl, clock=clock)
        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    @staticmethod
    def _key(style_id: Union[int, str]) -> str:
        sid = parse_style_id(style_id)
        if sid is None:
            raise ValueError(f"Invalid style id: {style_id!r}")
        return str(sid)

    def fetch_inventory(self, style_id: Union[int, str], refresh: bool = False) -> Payload:
        """Inventory payload for a style, from cache when fresh.

        Args:
            style_id: Numeric style identifier (int or numeric string)
            refresh: Skip both cache tiers and fetch live

        Raises:
            ValueError: If style_id is not numeric
            InventoryFetchError: If a live fetch was needed and failed
        """
        key = self._key(style_id)

        if refresh:
            return self._fetch_live(key)

        cached = self.memory.get(key)
        if cached is not None:
            return cached

        from_file = self.files.read(key)
        if from_file is not None:
            data, mtime = from_file
            # Age the memory entry from the file, not from now
            self.memory.set(key, data, inserted_at=mtime)
            logger.debug(f"Inventory for style {key} served from file cache")
            return data

        return self._fetch_coalesced(key)

    def _fetch_coalesced(self, key: str) -> Payload:
        with self._inflight_lock:
            pending = self._inflight.get(key)
            if pending is None:
                # A fetch may have completed since the memory miss
                cached = self.memory.get(key)
                if cached is not None:
                    return cached
                pending = Future()
                self._inflight[key] = pending
                owner = True
            else:
                owner = False

        if not owner:
            logger.debug(f"Joining in-flight inventory fetch for style {key}")
            return pending.result()

        try:
            data = self._fetch_live(key)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(data)
            return data
        finally:
            with self._inflight_lock:
                self._inflight.pop(key, None)

    def _fetch_live(self, key: str) -> Payload:
        data = self.client.fetch_style(key)
        self.memory.set(key, data)
        self.files.write(key, data)
        return data


# Process-wide singleton
_cache: Optional[InventoryCache] = None
_cache_lock = threading.Lock()


def get_inventory_cache() -> InventoryCache:
    """Get the inventory cache singleton."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = InventoryCache()
    return _cache


def set_inventory_cache(cache: Optional[InventoryCache]) -> None:
    global _cache
    with _cache_lock:
        _cache = cache


def fetch_inventory(style_id: Union[int, str], refresh: bool = False) -> Payload:
    return get_inventory_cache().fetch_inventory(style_id, refresh=refresh)
